"""
Tests for diagnostics: the warning record, the reporter and its rustc-style
formatter, and the internal exception classes.
"""

import re

from java2igcse.shared.errors import (
    ConversionError,
    ConversionImplementationError,
    ConversionSourceError,
    ConversionWarning,
    DiagnosticReporter,
    ErrorCode,
    Severity,
)
from java2igcse.shared.source_location import SourceLocation

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def _strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


class TestConversionWarning:
    """The record returned to callers."""

    def test_to_dict_drops_missing_help(self):
        warning = ConversionWarning("msg", ErrorCode.SYNTAX_WARNING, Severity.WARNING, 2, 5)
        assert warning.to_dict() == {
            "message": "msg",
            "code": "SYNTAX_WARNING",
            "severity": "warning",
            "line": 2,
            "column": 5,
        }

    def test_to_dict_keeps_help(self):
        warning = ConversionWarning("msg", ErrorCode.PARSE_ERROR, help="add a brace")
        assert warning.to_dict()["help"] == "add a brace"

    def test_str(self):
        warning = ConversionWarning("bad thing", ErrorCode.PARSE_ERROR, Severity.ERROR, line=3)
        assert str(warning) == "error[PARSE_ERROR]: bad thing (line 3)"

    def test_location(self):
        assert ConversionWarning("m", "X").location is None
        assert ConversionWarning("m", "X", line=4).location == SourceLocation(4, 1)


class TestDiagnosticReporter:
    """Ordered collection of diagnostics."""

    def test_order_and_severity(self):
        reporter = DiagnosticReporter()
        reporter.warn("first", ErrorCode.SYNTAX_WARNING)
        reporter.info("second", ErrorCode.UNSUPPORTED_FEATURE)
        reporter.error("third", ErrorCode.INVALID_INPUT)
        assert reporter.codes() == ["SYNTAX_WARNING", "UNSUPPORTED_FEATURE", "INVALID_INPUT"]
        assert [w.severity for w in reporter.warnings] == [Severity.WARNING, Severity.INFO, Severity.ERROR]
        assert reporter.has_errors()

    def test_no_errors(self):
        reporter = DiagnosticReporter()
        reporter.info("just info", ErrorCode.FEATURE_CONVERSION)
        assert not reporter.has_errors()

    def test_extend(self):
        reporter = DiagnosticReporter()
        reporter.extend([ConversionWarning("a", "A"), ConversionWarning("b", "B")])
        assert reporter.codes() == ["A", "B"]


class TestFormatting:
    """Rendering with source snippets and carets."""

    def test_snippet_and_caret(self):
        source = "int x = 5;\nif (x > 0) {"
        reporter = DiagnosticReporter(source, "Main.java")
        warning = reporter.warn("Mismatched braces", ErrorCode.SYNTAX_WARNING, SourceLocation(2, 12),
                                help="check for a missing closing brace")
        out = reporter.format_warning(warning, color=False)
        lines = out.split("\n")
        assert lines[0] == "warning[SYNTAX_WARNING]: Mismatched braces"
        assert lines[1] == " --> Main.java:2:12"
        assert "2 | if (x > 0) {" in out
        caret_line = next(line for line in lines if line.strip().startswith("|") and "^" in line)
        assert caret_line.index("^") == out.split("\n")[3].index("{")
        assert "= help: check for a missing closing brace" in out

    def test_without_location(self):
        reporter = DiagnosticReporter("x = 1;")
        warning = reporter.info("Input was empty", ErrorCode.INPUT_WARNING)
        assert reporter.format_warning(warning, color=False) == "info[INPUT_WARNING]: Input was empty"

    def test_line_beyond_source(self):
        reporter = DiagnosticReporter("a;\nb;", "f.java")
        warning = reporter.warn("bad", ErrorCode.PARSE_ERROR, SourceLocation(10, 1))
        out = reporter.format_warning(warning, color=False)
        assert " --> f.java:10:1" in out
        assert "|" not in out

    def test_color_can_be_disabled_by_environment(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        reporter = DiagnosticReporter("x;")
        warning = reporter.warn("bad", ErrorCode.PARSE_ERROR, SourceLocation(1, 1))
        out = reporter.format_warning(warning)
        assert out == _strip_ansi(out)

    def test_color_codes_present_when_requested(self):
        reporter = DiagnosticReporter("x;")
        warning = reporter.warn("bad", ErrorCode.PARSE_ERROR, SourceLocation(1, 1))
        out = reporter.format_warning(warning, color=True)
        assert out != _strip_ansi(out)
        assert _strip_ansi(out).startswith("warning[PARSE_ERROR]: bad")

    def test_format_all(self):
        reporter = DiagnosticReporter("x;")
        reporter.warn("one", "A")
        reporter.warn("two", "B")
        assert reporter.format_all(color=False) == "warning[A]: one\n\nwarning[B]: two"


class TestExceptions:
    """Internal signalling classes."""

    def test_conversion_error_str(self):
        assert str(ConversionError("oops")) == "oops"
        assert str(ConversionError("oops", SourceLocation(3, 4, "a.java"))) == "oops at a.java:3:4"

    def test_source_error_becomes_warning(self):
        exc = ConversionSourceError("cannot lower", SourceLocation(2, 7), error_code=ErrorCode.PARSE_ERROR,
                                    help="simplify the expression")
        warning = exc.to_warning()
        assert (warning.code, warning.line, warning.column) == ("PARSE_ERROR", 2, 7)
        assert warning.help == "simplify the expression"
        assert isinstance(exc, ConversionError)

    def test_implementation_error(self):
        assert str(ConversionImplementationError("bad invariant")) == "[INTERNAL] bad invariant"
