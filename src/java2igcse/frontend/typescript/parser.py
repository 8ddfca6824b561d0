"""
TypeScript Parser

lark Earley parser over ``grammar.lark`` plus the transformer into the shared
CST. When a line cannot be parsed it is reported, blanked out and the parse is
retried, so the rest of the snippet still converts.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken, VisitError

from ...shared.errors import ConversionSourceError, DiagnosticReporter, ErrorCode
from ...shared.nodes import CSTKind, CSTNode
from ...shared.source_location import SourceLocation
from ...utils.config import (
    ERROR_CONTEXT_CHARS, MAX_CONSECUTIVE_PARSE_ERRORS, TYPESCRIPT_GRAMMAR_FILE, TYPESCRIPT_LANGUAGE,
    TYPESCRIPT_START_RULE,
)
from ..base import ParseResult, SourceParser
from ..features import collect_features
from ..prechecks import check_input_limits, scan_unsupported_features, strip_comments_and_strings, \
    validate_basic_syntax
from .transformer import TypeScriptTransformer

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def typescript_grammar() -> Lark:
    """Grammar is compiled once per process."""
    grammar_path = Path(__file__).parent / TYPESCRIPT_GRAMMAR_FILE
    return Lark.open(
        str(grammar_path),
        start=[TYPESCRIPT_START_RULE, "expression"],
        parser="earley",
        lexer="basic",
        ambiguity="resolve",
        propagate_positions=True,
        maybe_placeholders=True,
    )


class ParseError(ConversionSourceError):
    """lark failure translated to a source location"""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message, location, error_code=ErrorCode.PARSE_ERROR, category="syntax")


def describe_lark_error(exc: UnexpectedInput, source: str) -> str:
    if isinstance(exc, UnexpectedToken):
        token = exc.token
        if token.type == "$END":
            return "Unexpected end of input"
        return f"Unexpected token '{token}'"
    if isinstance(exc, UnexpectedCharacters):
        context = source[exc.pos_in_stream:exc.pos_in_stream + ERROR_CONTEXT_CHARS].split("\n")[0]
        return f"Unexpected character '{source[exc.pos_in_stream]}' near '{context}'"
    if isinstance(exc, UnexpectedEOF):
        return "Unexpected end of input"
    return str(exc).strip().split("\n")[0]


class TypeScriptParser(SourceParser):
    """
    TypeScript snippets → CST.

    Recovery works line by line: the failing line becomes a ``statement``
    placeholder and the parse restarts without it.
    """

    language = TYPESCRIPT_LANGUAGE

    def parse(self, source: str, reporter: Optional[DiagnosticReporter] = None) -> ParseResult:
        if reporter is None:
            reporter = DiagnosticReporter(source if isinstance(source, str) else None, self.file_name)
        first_warning = len(reporter.warnings)

        if not isinstance(source, str):
            reporter.error("Input must be a string of TypeScript source code", ErrorCode.INVALID_INPUT)
            return ParseResult(None, reporter.warnings[first_warning:], success=False)

        empty = CSTNode(CSTKind.PROGRAM, location=SourceLocation(1, 1, self.file_name))
        if not source.strip():
            return ParseResult(empty, [], success=True)

        logger.debug(f"[typescript] parsing {len(source)} characters")
        check_input_limits(source, reporter)
        validate_basic_syntax(source, reporter)
        scan_unsupported_features(source, TYPESCRIPT_LANGUAGE, reporter)

        try:
            ast = self._parse_program(source, reporter)
        except ConversionSourceError as exc:
            reporter.error(f"Parser failure: {exc.message}", ErrorCode.PARSE_ERROR, exc.location)
            return ParseResult(empty, reporter.warnings[first_warning:], success=False)

        parsed = [s for s in ast.children if not s.get("parse_error")]
        success = bool(parsed) or not ast.children
        logger.debug(f"[typescript] parsed {len(ast.children)} top-level statement(s), success={success}")
        return ParseResult(ast, reporter.warnings[first_warning:], success, collect_features(ast))

    # =========================================================================
    # Program with line-level recovery
    # =========================================================================

    def _parse_program(self, source: str, reporter: DiagnosticReporter) -> CSTNode:
        lines = source.split("\n")
        original = list(lines)
        placeholders: List[CSTNode] = []
        failures = 0
        while True:
            text = "\n".join(lines)
            try:
                tree = typescript_grammar().parse(text, start=TYPESCRIPT_START_RULE)
            except UnexpectedInput as exc:
                failures += 1
                if failures > MAX_CONSECUTIVE_PARSE_ERRORS:
                    reporter.warn(
                        f"Too many consecutive parse errors ({MAX_CONSECUTIVE_PARSE_ERRORS}); "
                        "the rest of the input was skipped",
                        ErrorCode.PARSE_ERROR,
                    )
                    return CSTNode(CSTKind.PROGRAM, placeholders, location=SourceLocation(1, 1, self.file_name))
                if self._close_open_braces(lines, exc, reporter):
                    continue
                placeholder = self._blank_failing_line(lines, original, exc, reporter)
                if placeholder is None:
                    raise ParseError(describe_lark_error(exc, text)) from exc
                placeholders.append(placeholder)
                continue
            ast = self._transform(tree, text, reporter)
            break

        if placeholders:
            ast.children = sorted(ast.children + placeholders,
                                  key=lambda n: (n.location.line, n.location.column) if n.location else (0, 0))
        return ast

    def _transform(self, tree, text: str, reporter: DiagnosticReporter,
                   origin: Optional[SourceLocation] = None) -> CSTNode:
        transformer = TypeScriptTransformer(text, reporter, self._parse_expression, self.file_name, origin)
        try:
            return transformer.transform(tree)
        except VisitError as exc:
            if isinstance(exc.orig_exc, ConversionSourceError):
                raise exc.orig_exc
            raise ParseError(f"Could not build syntax tree: {exc.orig_exc}") from exc

    def _parse_expression(self, text: str, location: SourceLocation) -> CSTNode:
        """Template substitutions are parsed on their own with the ``expression`` start rule."""
        try:
            tree = typescript_grammar().parse(text, start="expression")
        except UnexpectedInput as exc:
            raise ParseError(describe_lark_error(exc, text), location) from exc
        return self._transform(tree, text, DiagnosticReporter(text, self.file_name), origin=location)

    def _close_open_braces(self, lines: List[str], exc: UnexpectedInput, reporter: DiagnosticReporter) -> bool:
        """Unexpected end of input with unclosed braces: report them and append the closers."""
        at_end = isinstance(exc, UnexpectedEOF) or (
            isinstance(exc, UnexpectedToken) and exc.token.type == "$END"
        )
        if not at_end:
            return False
        open_lines = _unclosed_brace_lines("\n".join(lines))
        if not open_lines:
            return False
        for line in reversed(open_lines):
            reporter.warn(f"Missing closing '}}' for block opened on line {line}",
                          ErrorCode.PARSE_ERROR, SourceLocation(line, 1, self.file_name))
        lines.append("}" * len(open_lines))
        return True

    def _blank_failing_line(self, lines: List[str], original: List[str], exc: UnexpectedInput,
                            reporter: DiagnosticReporter) -> Optional[CSTNode]:
        line = getattr(exc, "line", -1)
        if line is None or line < 1:
            line = max((i + 1 for i, text in enumerate(lines) if text.strip()), default=0)
        if not 0 < line <= len(lines) or not lines[line - 1].strip():
            return None
        message = describe_lark_error(exc, "\n".join(lines))
        loc = SourceLocation(line, max(getattr(exc, "column", 1) or 1, 1), self.file_name)
        reporter.warn(f"Parse error: {message}", ErrorCode.PARSE_ERROR, loc)
        logger.debug(f"[typescript] blanking line {line} after parse error: {message}")
        text = (original[line - 1] if line <= len(original) else lines[line - 1]).strip()
        lines[line - 1] = ""
        return CSTNode(CSTKind.STATEMENT, value=text, location=SourceLocation(line, 1, self.file_name),
                       metadata={"parse_error": True, "error_message": message, "text": text})


def _unclosed_brace_lines(source: str) -> List[int]:
    code = strip_comments_and_strings(source)
    stack: List[int] = []
    line = 1
    for ch in code:
        if ch == "{":
            stack.append(line)
        elif ch == "}" and stack:
            stack.pop()
        elif ch == "\n":
            line += 1
    return stack
