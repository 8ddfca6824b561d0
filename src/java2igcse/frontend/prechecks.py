"""
Pre-parse checks

Cheap text scans that run before structural parsing. Everything found here is
reported as a warning; none of it stops the parser.
"""

import logging
import re
from typing import List, NamedTuple, Optional, Pattern

from ..shared.errors import DiagnosticReporter, ErrorCode
from ..shared.nodes import CSTKind, CSTNode
from ..shared.source_location import SourceLocation
from ..utils.config import JAVA_LANGUAGE, MAX_INPUT_SIZE, MAX_LINE_LENGTH

logger = logging.getLogger(__name__)


class UnsupportedPattern(NamedTuple):
    pattern: Pattern
    feature: str
    suggestion: str


def _p(regex: str, feature: str, suggestion: str) -> UnsupportedPattern:
    return UnsupportedPattern(re.compile(regex), feature, suggestion)


JAVA_UNSUPPORTED = (
    _p(r"\bimport\s+", "import statements", "Remove import statements or add as comments"),
    _p(r"\bpackage\s+", "package declarations", "Remove package declarations or add as comments"),
    _p(r"\btry\s*\{", "try-catch blocks", "Convert to conditional error checking"),
    _p(r"\bcatch\s*\(", "exception handling", "Use conditional statements for error handling"),
    _p(r"\bthrow\s+", "throw statements", "Use return statements or error flags"),
    _p(r"\bsynchronized\b", "synchronized blocks", "Remove synchronization or add as comments"),
    _p(r"\bvolatile\s+", "volatile keyword", "Remove volatile modifier"),
    _p(r"\btransient\s+", "transient keyword", "Remove transient modifier"),
    _p(r"\bnative\s+", "native methods", "Convert to regular methods or add as comments"),
    _p(r"\babstract\s+", "abstract classes/methods", "Convert to concrete implementations"),
    _p(r"\binterface\s+", "interfaces", "Convert to class with method signatures as comments"),
    _p(r"\benum\s+", "enums", "Use constants or convert to class with static variables"),
    _p(r"->", "lambda expressions", "Convert to named methods"),
    _p(r"\bStream\s*<|\.stream\s*\(", "Java Streams", "Convert to traditional loops"),
    _p(r"\bOptional\s*<", "Optional type", "Use null checks or boolean flags"),
    _p(r"\b[A-Z]\w*\s*<\s*[A-Z?][\w\s,<>?\[\]]*>", "generics", "Remove generic type parameters"),
    _p(r"(?<![\w\"'])@[A-Za-z]\w*", "annotations", "Remove annotations or convert to comments"),
)

TYPESCRIPT_UNSUPPORTED = (
    _p(r"\bimport\s+.*\bfrom\b", "ES6 imports", "Remove import statements or add as comments"),
    _p(r"\bexport\s+", "ES6 exports", "Remove export statements or add as comments"),
    _p(r"\basync\s+", "async/await", "Convert to synchronous code or add as comments"),
    _p(r"\bawait\s+", "await expressions", "Convert to synchronous calls"),
    _p(r"\bPromise\s*<", "Promises", "Convert to synchronous operations"),
    _p(r"\binterface\s+", "interfaces", "Convert to type comments or class definitions"),
    _p(r"\btype\s+\w+\s*=", "type aliases", "Convert to comments or use concrete types"),
    _p(r"\bnamespace\s+", "namespaces", "Convert to classes or remove"),
    _p(r"\bdeclare\s+", "ambient declarations", "Remove declare statements"),
    _p(r"\babstract\s+", "abstract classes", "Convert to concrete classes"),
    _p(r"\breadonly\s+", "readonly modifier", "Remove readonly modifier"),
    _p(r"\?\?", "nullish coalescing", "Use conditional statements"),
    _p(r"\?\.", "optional chaining", "Use explicit null checks"),
    _p(r"\bas\s+[A-Za-z]", "type assertions", "Remove type assertions"),
    _p(r"\b[A-Z]\w*\s*<\s*[A-Za-z][\w\s,<>|\[\]]*>", "generics", "Remove generic type parameters"),
    _p(r"(?<![\w\"'])@[A-Za-z]\w*", "decorators", "Remove decorators or convert to comments"),
)

_PAIRS = (
    ("{", "}", "braces", "check for a missing closing or opening brace"),
    ("(", ")", "parentheses", None),
    ("[", "]", "brackets", None),
)


# ============================================================================
# Input guards
# ============================================================================

def check_input_limits(source: str, reporter: DiagnosticReporter) -> None:
    """Very large inputs and very long lines are converted but flagged."""
    if len(source) > MAX_INPUT_SIZE:
        reporter.warn(
            f"Input is {len(source)} characters long; conversion may be slow",
            ErrorCode.INPUT_WARNING,
        )
    for number, line in enumerate(source.split("\n"), start=1):
        if len(line) > MAX_LINE_LENGTH:
            reporter.info(
                f"Line {number} is {len(line)} characters long",
                ErrorCode.INPUT_WARNING,
                SourceLocation(number, 1),
            )


# ============================================================================
# Structural balance
# ============================================================================

def strip_comments_and_strings(source: str) -> str:
    """
    Blank out comments and string/char literal bodies, keeping line breaks and
    offsets, so bracket counting and pattern scans ignore their content.
    """
    out: List[str] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            while i < n and source[i] != "\n":
                out.append(" ")
                i += 1
            continue
        if ch == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            end = n if end < 0 else end + 2
            out.extend("\n" if c == "\n" else " " for c in source[i:end])
            i = end
            continue
        if ch in ("\"", "'", "`"):
            out.append(ch)
            i += 1
            while i < n and source[i] != ch and (source[i] != "\n" or ch == "`"):
                if source[i] == "\\" and i + 1 < n:
                    out.append("  ")
                    i += 2
                    continue
                out.append("\n" if source[i] == "\n" else " ")
                i += 1
            if i < n and source[i] == ch:
                out.append(ch)
                i += 1
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def validate_basic_syntax(source: str, reporter: DiagnosticReporter) -> bool:
    """
    Report unbalanced brackets and unterminated literals as SYNTAX_WARNING.

    Returns True when nothing was found.
    """
    clean = True
    code = strip_comments_and_strings(source)
    for opening, closing, label, hint in _PAIRS:
        opened = code.count(opening)
        closed = code.count(closing)
        if opened != closed:
            clean = False
            reporter.warn(
                f"Mismatched {label}: {opened} opening {label}, {closed} closing {label}. "
                "Parser will attempt recovery.",
                ErrorCode.SYNTAX_WARNING,
                _first_unmatched(code, opening, closing),
                help=hint,
            )
    for location, quote in _unterminated_literals(source):
        clean = False
        kind = "string" if quote == "\"" else "character"
        reporter.warn(
            f"Unterminated {kind} literal on line {location.line}",
            ErrorCode.SYNTAX_WARNING,
            location,
        )
    return clean


def _first_unmatched(code: str, opening: str, closing: str) -> Optional[SourceLocation]:
    stack: List[SourceLocation] = []
    line, column = 1, 1
    extra_close: Optional[SourceLocation] = None
    for ch in code:
        if ch == opening:
            stack.append(SourceLocation(line, column))
        elif ch == closing:
            if stack:
                stack.pop()
            elif extra_close is None:
                extra_close = SourceLocation(line, column)
        if ch == "\n":
            line, column = line + 1, 1
        else:
            column += 1
    if extra_close is not None:
        return extra_close
    return stack[0] if stack else None


def _unterminated_literals(source: str) -> List[tuple]:
    found = []
    for number, line in enumerate(source.split("\n"), start=1):
        i = 0
        while i < len(line):
            ch = line[i]
            if ch == "/" and line[i + 1:i + 2] == "/":
                break
            if ch in ("\"", "'"):
                start = i
                i += 1
                while i < len(line) and line[i] != ch:
                    i += 2 if line[i] == "\\" else 1
                if i >= len(line):
                    found.append((SourceLocation(number, start + 1), ch))
                    break
            i += 1
    return found


# ============================================================================
# Unsupported features
# ============================================================================

def scan_unsupported_features(source: str, language: str, reporter: DiagnosticReporter) -> List[str]:
    """Pattern-scan for constructs that are degraded rather than converted."""
    patterns = JAVA_UNSUPPORTED if language == JAVA_LANGUAGE else TYPESCRIPT_UNSUPPORTED
    code = strip_comments_and_strings(source)
    found = []
    for entry in patterns:
        match = entry.pattern.search(code)
        if match is None:
            continue
        found.append(entry.feature)
        reporter.info(
            f"Unsupported feature detected: {entry.feature}. {entry.suggestion}",
            ErrorCode.UNSUPPORTED_FEATURE,
            _location_of(code, match.start()),
        )
    if found:
        logger.debug(f"[prechecks] unsupported features: {found}")
    return found


def _location_of(text: str, offset: int) -> SourceLocation:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return SourceLocation(line, column)


# ============================================================================
# Switch fall-through
# ============================================================================

def report_fall_through(clauses: List[CSTNode], reporter: DiagnosticReporter) -> None:
    """Warn for every non-empty case that runs into the next one."""
    for clause in clauses[:-1]:
        if clause.kind is not CSTKind.CASE_STATEMENT or clause.get("terminated", True):
            continue
        if len(clause.children) > 1:
            reporter.warn(
                f"Case '{clause.value}' may fall through to next case (missing break statement)",
                ErrorCode.FALL_THROUGH_WARNING,
                clause.location,
                help="IGCSE CASE branches never fall through; review the converted branches",
            )
