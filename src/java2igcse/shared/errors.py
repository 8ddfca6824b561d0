"""
Diagnostics

Warnings are accumulated by every stage and returned with the conversion
result; they are never raised. The exception classes at the bottom are used
for internal signalling only and never escape ``convert()``.
"""

import os
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .source_location import SourceLocation


# ---------------------------------------------------------------------------
# Diagnostic codes
# ---------------------------------------------------------------------------

class ErrorCode:
    """String codes carried by ConversionWarning.code."""
    INVALID_INPUT = "INVALID_INPUT"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    SYNTAX_WARNING = "SYNTAX_WARNING"
    PARSE_ERROR = "PARSE_ERROR"
    UNSUPPORTED_FEATURE = "UNSUPPORTED_FEATURE"
    TYPE_CONVERSION_ERROR = "TYPE_CONVERSION_ERROR"
    TRANSFORMATION_ERROR = "TRANSFORMATION_ERROR"
    GENERATION_ERROR = "GENERATION_ERROR"
    AST_VALIDATION_ERROR = "AST_VALIDATION_ERROR"
    FALL_THROUGH_WARNING = "FALL_THROUGH_WARNING"
    FEATURE_CONVERSION = "FEATURE_CONVERSION"
    ARRAY_INDEX_WARNING = "ARRAY_INDEX_WARNING"
    INPUT_WARNING = "INPUT_WARNING"


# Codes that make strict mode report failure
STRICT_MODE_FAILURE_CODES = frozenset({
    ErrorCode.PARSE_ERROR,
    ErrorCode.UNSUPPORTED_FEATURE,
    ErrorCode.TRANSFORMATION_ERROR,
})


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# ---------------------------------------------------------------------------
# ConversionWarning dataclass
# ---------------------------------------------------------------------------

@dataclass
class ConversionWarning:
    """One diagnostic produced while converting a snippet."""
    message: str
    code: str
    severity: Severity = Severity.WARNING
    line: Optional[int] = None
    column: Optional[int] = None
    help: Optional[str] = None

    @property
    def location(self) -> Optional[SourceLocation]:
        if self.line is None:
            return None
        return SourceLocation(line=self.line, column=self.column or 1)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["severity"] = self.severity.value
        if self.help is None:
            del data["help"]
        return data

    def __str__(self) -> str:
        where = f" (line {self.line})" if self.line is not None else ""
        return f"{self.severity.value}[{self.code}]: {self.message}{where}"


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get("JAVA2IGCSE_COLOR", "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return True

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_YELLOW = "\033[33m"
_RESET  = "\033[0m"

_SEVERITY_COLOR = {
    Severity.ERROR: _RED,
    Severity.WARNING: _YELLOW,
    Severity.INFO: _CYAN,
}

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Formatting engine
# ---------------------------------------------------------------------------

def _format_diagnostic(
    warning: ConversionWarning,
    source: Optional[str],
    file_name: str = "<input>",
    color: bool = False,
) -> str:
    """
    Render a single diagnostic in rustc style.

    Example output (plain, no color)::

        warning[SYNTAX_WARNING]: Mismatched braces: 1 opening braces, 0 closing braces.
         --> Main.java:1:1
          |
        1 | if (x > 0) {
          | ^^
          |
          = help: check for a missing closing brace
    """
    out: List[str] = []
    tone = _SEVERITY_COLOR.get(warning.severity, _YELLOW)

    # ---- header -----------------------------------------------------------
    out.append(
        _style(f"{warning.severity.value}[{warning.code}]", _BOLD, tone, color=color)
        + _style(f": {warning.message}", _BOLD, color=color)
    )

    if warning.line is None:
        _append_help(out, warning, 1, color)
        return "\n".join(out)

    line = warning.line
    column = max(warning.column or 1, 1)
    src_lines = source.split("\n") if source is not None else []
    gw = max(len(str(line)), 1)

    # ---- location arrow ---------------------------------------------------
    out.append(
        _style(" " * gw + "--> ", _BOLD, _BLUE, color=color)
        + f"{file_name}:{line}:{column}"
    )
    if not (0 < line <= len(src_lines)):
        _append_help(out, warning, gw, color)
        return "\n".join(out)

    # ---- source snippet ---------------------------------------------------
    code_line = src_lines[line - 1]
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))
    out.append(_style(str(line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)
    carets = " " * (column - 1) + "^" * _guess_span(code_line, column - 1)
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets, _BOLD, tone, color=color)
    )
    _append_help(out, warning, gw, color)
    return "\n".join(out)


def _guess_span(code_line: str, col_start: int) -> int:
    """Guess token length from the caret column."""
    if col_start >= len(code_line):
        return 1
    length = 0
    for ch in code_line[col_start:]:
        if ch in (" ", "\t", ";", ",", "(", ")", "]", "}"):
            break
        length += 1
    return max(1, length)


def _append_help(out: List[str], warning: ConversionWarning, gw: int, color: bool) -> None:
    if not warning.help:
        return
    pad = " " * (gw + 1)
    out.append(_style(f"{pad}|", _BOLD, _BLUE, color=color))
    out.append(
        _style(f"{pad}= ", _BOLD, _CYAN, color=color)
        + _style("help: ", _BOLD, color=color)
        + warning.help
    )


# ---------------------------------------------------------------------------
# DiagnosticReporter
# ---------------------------------------------------------------------------

class DiagnosticReporter:
    """
    Ordered collection of diagnostics for one conversion call.

    Stages report into the same reporter so the caller receives a single
    list in the order problems were found.
    """

    def __init__(self, source: Optional[str] = None, file_name: str = "<input>"):
        self.source = source
        self.file_name = file_name
        self.warnings: List[ConversionWarning] = []

    def report(
        self,
        message: str,
        code: str,
        severity: Severity = Severity.WARNING,
        location: Optional[SourceLocation] = None,
        help: Optional[str] = None,
    ) -> ConversionWarning:
        warning = ConversionWarning(
            message=message,
            code=code,
            severity=severity,
            line=location.line if location else None,
            column=location.column if location else None,
            help=help,
        )
        self.warnings.append(warning)
        return warning

    def warn(self, message: str, code: str, location: Optional[SourceLocation] = None,
             help: Optional[str] = None) -> ConversionWarning:
        return self.report(message, code, Severity.WARNING, location, help)

    def info(self, message: str, code: str, location: Optional[SourceLocation] = None,
             help: Optional[str] = None) -> ConversionWarning:
        return self.report(message, code, Severity.INFO, location, help)

    def error(self, message: str, code: str, location: Optional[SourceLocation] = None,
              help: Optional[str] = None) -> ConversionWarning:
        return self.report(message, code, Severity.ERROR, location, help)

    def extend(self, warnings: Iterable[ConversionWarning]) -> None:
        self.warnings.extend(warnings)

    def has_errors(self) -> bool:
        return any(w.severity is Severity.ERROR for w in self.warnings)

    def codes(self) -> List[str]:
        return [w.code for w in self.warnings]

    def format_warning(self, warning: ConversionWarning, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(warning, self.source, self.file_name, color=use_color)

    def format_all(self, color: Optional[bool] = None) -> str:
        parts = [self.format_warning(w, color=color) for w in self.warnings]
        return "\n\n".join(parts)


# ============================================================================
# Exception Classes
# ============================================================================

class ConversionError(Exception):
    """Base exception for all java2igcse errors"""
    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self):
        if self.location:
            return f"{self.message} at {self.location}"
        return self.message


class ConversionSourceError(ConversionError):
    """
    Problem in the user's snippet that one stage cannot handle locally.

    Caught by the stage boundary and turned into a ConversionWarning with the
    same code, so the caller only ever sees warnings.
    """
    def __init__(self,
                 message: str,
                 location: Optional[SourceLocation] = None,
                 error_code: str = ErrorCode.TRANSFORMATION_ERROR,
                 category: str = "transform",
                 help: Optional[str] = None):
        super().__init__(message, location)
        self.error_code = error_code
        self.category = category
        self.help_text = help

    def to_warning(self, severity: Severity = Severity.WARNING) -> ConversionWarning:
        return ConversionWarning(
            message=self.message,
            code=self.error_code,
            severity=severity,
            line=self.location.line if self.location else None,
            column=self.location.column if self.location else None,
            help=self.help_text,
        )


class ConversionImplementationError(Exception):
    """
    Error in java2igcse itself (not in the user's snippet).

    Use this for broken internal invariants, e.g. a CST node reaching the IR.
    """
    def __init__(self, message: str, error_code: str = "INTERNAL"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"
