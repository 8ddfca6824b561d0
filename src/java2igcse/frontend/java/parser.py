"""
Java Parser

Entry point of the Java frontend. Runs the text pre-checks, parses the whole
snippet, and retries in recovery mode when the first attempt fails; the
recovered tree keeps every statement that could be parsed.
"""

import logging
from typing import Optional

from ...shared.errors import DiagnosticReporter, ErrorCode
from ...shared.nodes import CSTKind, CSTNode
from ...shared.source_location import SourceLocation
from ...utils.config import JAVA_LANGUAGE
from ..base import ParseResult, SourceParser
from ..features import collect_features
from ..prechecks import check_input_limits, scan_unsupported_features, validate_basic_syntax
from .cursor import SourceCursor
from .statements import StatementParser

logger = logging.getLogger(__name__)


class JavaParser(SourceParser):
    """
    Backtracking recursive-descent parser for Java snippets.

    One parser may be reused; every ``parse`` call builds its own cursor and
    statement parser.
    """

    language = JAVA_LANGUAGE

    def parse(self, source: str, reporter: Optional[DiagnosticReporter] = None) -> ParseResult:
        if reporter is None:
            reporter = DiagnosticReporter(source if isinstance(source, str) else None, self.file_name)
        first_warning = len(reporter.warnings)

        if not isinstance(source, str):
            reporter.error("Input must be a string of Java source code", ErrorCode.INVALID_INPUT)
            return ParseResult(None, reporter.warnings[first_warning:], success=False)

        empty = CSTNode(CSTKind.PROGRAM, location=SourceLocation(1, 1, self.file_name))
        if not source.strip():
            return ParseResult(empty, [], success=True)

        logger.debug(f"[java] parsing {len(source)} characters")
        check_input_limits(source, reporter)
        validate_basic_syntax(source, reporter)
        scan_unsupported_features(source, JAVA_LANGUAGE, reporter)

        ast = self._parse_program(source, reporter)
        if ast is None:
            return ParseResult(empty, reporter.warnings[first_warning:], success=False)

        validate_ast(ast, reporter)
        parsed = [s for s in ast.children if not s.get("parse_error")]
        success = bool(parsed) or not ast.children
        logger.debug(f"[java] parsed {len(ast.children)} top-level statement(s), success={success}")
        return ParseResult(ast, reporter.warnings[first_warning:], success, collect_features(ast))

    def _parse_program(self, source: str, reporter: DiagnosticReporter) -> Optional[CSTNode]:
        # First attempt reports into a scratch reporter so a retry does not duplicate warnings
        scratch = DiagnosticReporter(source, self.file_name)
        try:
            ast = StatementParser(SourceCursor(source, self.file_name), scratch).parse_program()
        except Exception as exc:
            logger.debug(f"[java] full parse failed ({exc}); retrying in recovery mode")
        else:
            reporter.extend(scratch.warnings)
            return ast

        try:
            return StatementParser(SourceCursor(source, self.file_name), reporter, recovering=True).parse_program()
        except Exception as exc:
            logger.warning(f"[java] recovery parse failed: {exc}")
            reporter.error(f"Parser failure: {exc}", ErrorCode.PARSE_ERROR)
            return None


def validate_ast(ast: CSTNode, reporter: DiagnosticReporter) -> None:
    """Structural sanity checks on the finished tree (non-fatal)."""
    for node in ast.walk():
        if node.kind in (CSTKind.DECLARATOR, CSTKind.METHOD_DECLARATION, CSTKind.CLASS_DECLARATION) \
                and not node.value:
            reporter.warn(f"Incomplete {node.type.replace('_', ' ')}: missing name",
                          ErrorCode.AST_VALIDATION_ERROR, node.location)
        elif node.kind is CSTKind.VARIABLE_DECLARATION and not node.children:
            reporter.warn("Incomplete variable declaration", ErrorCode.AST_VALIDATION_ERROR, node.location)
        elif node.kind is CSTKind.IF_STATEMENT and (not node.children or node.children[0].kind is CSTKind.EMPTY):
            reporter.warn("If statement without a condition", ErrorCode.AST_VALIDATION_ERROR, node.location)
