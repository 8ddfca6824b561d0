"""
Template Literal Parser - split out of the TypeScript transformer
Handles backtick strings with ``${...}`` substitutions
"""

from typing import Callable, List, Optional

from ...shared.errors import DiagnosticReporter, ErrorCode
from ...shared.nodes import CSTKind, CSTNode
from ...shared.source_location import SourceLocation

ExpressionCallback = Callable[[str, SourceLocation], CSTNode]

_ESCAPES = {"`": "`", "$": "$", "{": "{", "\\": "\\\\", "n": "\\n", "t": "\\t"}


class TemplateLiteralParser:
    """Dedicated parser for template literal substitutions"""

    def __init__(self, parse_expression: ExpressionCallback, reporter: DiagnosticReporter):
        self.parse_expression = parse_expression
        self.reporter = reporter

    def parse(self, raw: str, location: SourceLocation) -> CSTNode:
        """``raw`` includes the backticks; parts become string literals and expressions."""
        body = raw[1:-1]
        parts: List[CSTNode] = []
        text: List[str] = []
        i = 0
        while i < len(body):
            ch = body[i]
            if ch == "\\" and i + 1 < len(body):
                nxt = body[i + 1]
                text.append(_ESCAPES.get(nxt, "\\" + nxt))
                i += 2
                continue
            if ch == "$" and body[i + 1:i + 2] == "{":
                end = self._closing_brace(body, i + 2)
                if end is None:
                    text.append(body[i:])
                    break
                self._flush(text, parts, location)
                parts.append(self._substitution(body[i + 2:end], location))
                i = end + 1
                continue
            text.append("\\n" if ch == "\n" else ch)
            i += 1
        self._flush(text, parts, location)
        return CSTNode(CSTKind.TEMPLATE_LITERAL, parts, raw, location, {"text": raw})

    @staticmethod
    def _closing_brace(body: str, start: int) -> Optional[int]:
        depth = 1
        quote = None
        i = start
        while i < len(body):
            ch = body[i]
            if quote:
                if ch == "\\":
                    i += 1
                elif ch == quote:
                    quote = None
            elif ch in ("\"", "'", "`"):
                quote = ch
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        return None

    @staticmethod
    def _flush(text: List[str], parts: List[CSTNode], location: SourceLocation) -> None:
        if not text:
            return
        content = "".join(text).replace("\"", "\\\"")
        parts.append(CSTNode(CSTKind.LITERAL, value=f"\"{content}\"", location=location,
                             metadata={"literal_type": "string", "text": f"\"{content}\""}))
        text.clear()

    def _substitution(self, source: str, location: SourceLocation) -> CSTNode:
        try:
            expr = self.parse_expression(source.strip(), location)
        except Exception as exc:
            self.reporter.warn(
                f"Could not parse template substitution '${{{source}}}': {exc}",
                ErrorCode.SYNTAX_WARNING,
                location,
            )
            return CSTNode(CSTKind.IDENTIFIER, value=source.strip(), location=location,
                           metadata={"text": source.strip()})
        return expr
