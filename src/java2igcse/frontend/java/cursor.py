"""
Source Cursor

Character cursor over Java source with ``(position, line, column)``
snapshots. Speculative parsing goes through ``try_parse``/``lookahead``; the
only exception they catch is the internal ``_Backtrack`` signal.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, TypeVar

from ...shared.errors import ConversionSourceError, ErrorCode
from ...shared.source_location import SourceLocation

T = TypeVar('T')

# Longest first so that ``>>=`` wins over ``>>`` and ``>``
OPERATORS: Tuple[str, ...] = (
    ">>>=", "<<=", ">>=", ">>>", "...", "->", "::",
    "++", "--", "&&", "||", "==", "!=", "<=", ">=",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>",
    "+", "-", "*", "/", "%", "=", "<", ">", "!", "~", "?", ":",
    "&", "|", "^", ".", ",", ";", "(", ")", "[", "]", "{", "}", "@",
)

PRIMITIVE_TYPES = frozenset({"int", "long", "short", "byte", "double", "float", "char", "boolean", "void"})

RESERVED_WORDS = frozenset({
    "abstract", "break", "case", "catch", "class", "continue", "default", "do", "else",
    "enum", "extends", "final", "finally", "for", "if", "implements", "import", "instanceof",
    "interface", "native", "new", "package", "private", "protected", "public", "return",
    "static", "super", "switch", "synchronized", "this", "throw", "throws", "transient",
    "try", "volatile", "while", "true", "false", "null",
})


class _Backtrack(Exception):
    """Speculative production does not apply at this position."""


class JavaSyntaxError(ConversionSourceError):
    """Committed production failed; triggers statement-level recovery."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message, location, error_code=ErrorCode.PARSE_ERROR, category="syntax")


@dataclass(frozen=True)
class CursorSnapshot:
    position: int
    line: int
    column: int
    token_end: int


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in ("_", "$")


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in ("_", "$")


class SourceCursor:
    """Position tracking plus token-sized reads; whitespace and comments are trivia."""

    def __init__(self, source: str, file_name: str = "<input>"):
        self.source = source
        self.file_name = file_name
        self.position = 0
        self.line = 1
        self.column = 1
        # End offset of the last consumed token, for verbatim expression text
        self.token_end = 0

    # =========================================================================
    # Position
    # =========================================================================

    @property
    def at_end(self) -> bool:
        self.skip_trivia()
        return self.position >= len(self.source)

    def peek(self, offset: int = 0) -> str:
        i = self.position + offset
        return self.source[i] if i < len(self.source) else ""

    def advance(self, count: int = 1) -> str:
        start = self.position
        for _ in range(count):
            if self.position >= len(self.source):
                break
            if self.source[self.position] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.position += 1
        self.token_end = self.position
        return self.source[start:self.position]

    def location(self) -> SourceLocation:
        self.skip_trivia()
        return SourceLocation(self.line, self.column, self.file_name)

    def snapshot(self) -> CursorSnapshot:
        return CursorSnapshot(self.position, self.line, self.column, self.token_end)

    def restore(self, snap: CursorSnapshot) -> None:
        self.position = snap.position
        self.line = snap.line
        self.column = snap.column
        self.token_end = snap.token_end

    def text_since(self, start: int) -> str:
        return self.source[start:self.token_end].strip()

    def start_offset(self) -> int:
        self.skip_trivia()
        return self.position

    # =========================================================================
    # Backtracking combinators
    # =========================================================================

    def try_parse(self, fn: Callable[[], Optional[T]]) -> Optional[T]:
        """Run ``fn``; rewind when it returns None or signals ``_Backtrack``."""
        snap = self.snapshot()
        try:
            result = fn()
        except _Backtrack:
            self.restore(snap)
            return None
        if result is None:
            self.restore(snap)
        return result

    def lookahead(self, fn: Callable[[], Optional[T]]) -> Optional[T]:
        """Run ``fn`` and always rewind; used to classify a statement before parsing it."""
        snap = self.snapshot()
        try:
            return fn()
        except _Backtrack:
            return None
        finally:
            self.restore(snap)

    # =========================================================================
    # Trivia
    # =========================================================================

    def skip_trivia(self) -> None:
        src = self.source
        n = len(src)
        token_end = self.token_end
        while self.position < n:
            ch = src[self.position]
            if ch in " \t\r\n\f":
                self.advance()
            elif src.startswith("//", self.position):
                while self.position < n and src[self.position] != "\n":
                    self.advance()
            elif src.startswith("/*", self.position):
                end = src.find("*/", self.position + 2)
                self.advance((n if end < 0 else end + 2) - self.position)
            else:
                break
        self.token_end = token_end

    def at_line_start(self) -> bool:
        """True when only whitespace separates the position from the previous newline."""
        i = self.position - 1
        while i >= 0 and self.source[i] in " \t\r":
            i -= 1
        return i < 0 or self.source[i] == "\n"

    # =========================================================================
    # Tokens
    # =========================================================================

    def peek_operator(self) -> Optional[str]:
        self.skip_trivia()
        for op in OPERATORS:
            if self.source.startswith(op, self.position):
                return op
        return None

    def looking_at(self, op: str) -> bool:
        """Exact operator/punctuation match (``+`` does not match ``++``)."""
        return self.peek_operator() == op

    def accept(self, op: str) -> bool:
        if self.looking_at(op):
            self.advance(len(op))
            return True
        return False

    def expect(self, op: str, what: Optional[str] = None) -> None:
        if not self.accept(op):
            found = self.describe_next()
            raise JavaSyntaxError(f"Expected '{op}'{' ' + what if what else ''} but found {found}",
                                  self.location())

    def accept_char(self, ch: str) -> bool:
        """Single character regardless of operator grouping (closing ``>`` of ``>>``)."""
        self.skip_trivia()
        if self.peek() == ch:
            self.advance()
            return True
        return False

    def peek_word(self) -> Optional[str]:
        self.skip_trivia()
        if not _is_ident_start(self.peek()):
            return None
        end = self.position + 1
        while end < len(self.source) and _is_ident_char(self.source[end]):
            end += 1
        return self.source[self.position:end]

    def looking_at_keyword(self, word: str) -> bool:
        return self.peek_word() == word

    def accept_keyword(self, word: str) -> bool:
        if self.looking_at_keyword(word):
            self.advance(len(word))
            return True
        return False

    def expect_keyword(self, word: str) -> None:
        if not self.accept_keyword(word):
            raise JavaSyntaxError(f"Expected '{word}' but found {self.describe_next()}", self.location())

    def read_identifier(self, allow_types: bool = False) -> Optional[str]:
        """Identifier, or None at a reserved word (primitive type names only when ``allow_types``)."""
        word = self.peek_word()
        if word is None or word in RESERVED_WORDS:
            return None
        if word in PRIMITIVE_TYPES and not allow_types:
            return None
        self.advance(len(word))
        return word

    def expect_identifier(self, what: str = "identifier") -> str:
        name = self.read_identifier()
        if name is None:
            raise JavaSyntaxError(f"Expected {what} but found {self.describe_next()}", self.location())
        return name

    def read_number(self) -> Optional[str]:
        self.skip_trivia()
        src = self.source
        i = self.position
        if not (src[i:i + 1].isdigit() or (src[i:i + 1] == "." and src[i + 1:i + 2].isdigit())):
            return None
        if src.startswith(("0x", "0X", "0b", "0B"), i):
            i += 2
            while i < len(src) and (src[i].isalnum() or src[i] == "_"):
                i += 1
        else:
            while i < len(src) and (src[i].isdigit() or src[i] == "_"):
                i += 1
            if i < len(src) and src[i] == "." and src[i + 1:i + 2].isdigit():
                i += 1
                while i < len(src) and src[i].isdigit():
                    i += 1
            elif i < len(src) and src[i] == "." and not _is_ident_start(src[i + 1:i + 2] or "x"):
                i += 1
            if i < len(src) and src[i] in "eE":
                j = i + 1
                if j < len(src) and src[j] in "+-":
                    j += 1
                if j < len(src) and src[j].isdigit():
                    i = j
                    while i < len(src) and src[i].isdigit():
                        i += 1
            if i < len(src) and src[i] in "lLfFdD":
                i += 1
        return self.advance(i - self.position)

    def read_quoted(self) -> Optional[str]:
        """String or char literal including its quotes; unterminated literals stop at end of line."""
        self.skip_trivia()
        quote = self.peek()
        if quote not in ("\"", "'"):
            return None
        src = self.source
        i = self.position + 1
        while i < len(src) and src[i] != quote and src[i] != "\n":
            i += 2 if src[i] == "\\" else 1
        if i >= len(src) or src[i] != quote:
            raise JavaSyntaxError("Unterminated literal", self.location())
        return self.advance(i + 1 - self.position)

    def skip_balanced(self, opening: str, closing: str) -> str:
        """Consume a bracketed group starting at ``opening``; returns its text."""
        self.skip_trivia()
        start = self.position
        if self.peek() != opening:
            return ""
        depth = 0
        while self.position < len(self.source):
            ch = self.peek()
            if ch in ("\"", "'"):
                self.read_quoted()
                continue
            if ch == opening:
                depth += 1
            elif ch == closing:
                depth -= 1
                if depth == 0:
                    self.advance()
                    return self.source[start:self.position]
            self.advance()
        return self.source[start:self.position]

    def skip_to_statement_end(self) -> None:
        """Recovery: skip past the next ``;`` or line break; always makes progress."""
        start = self.position
        src = self.source
        while self.position < len(src):
            ch = src[self.position]
            if ch == ";":
                self.advance()
                break
            if ch == "\n" and self.position > start:
                break
            if ch == "}" and self.position > start:
                break
            self.advance()
        if self.position == start and self.position < len(src):
            self.advance()

    def describe_next(self) -> str:
        self.skip_trivia()
        if self.position >= len(self.source):
            return "end of input"
        word = self.peek_word()
        if word is not None:
            return f"'{word}'"
        return f"'{self.peek_operator() or self.peek()}'"
