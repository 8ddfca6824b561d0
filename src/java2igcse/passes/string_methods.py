"""
String and Math Method Lowering

Maps ``s.method(args)`` onto IGCSE string functions and ``Math.f(args)`` onto
the library routines. Index arguments go through the renumbering engine so a
1-based loop variable passed to ``charAt`` is not shifted a second time.

| source                  | IGCSE                              |
|-------------------------|------------------------------------|
| ``s.length()``          | ``LENGTH(s)``                      |
| ``s.charAt(i)``         | ``MID(s, i + 1, 1)``               |
| ``s.substring(a, b)``   | ``SUBSTRING(s, a + 1, b - a)``     |
| ``s.indexOf(x)``        | ``FIND(s, x) - 1``                 |
| ``s.contains(x)``       | ``FIND(s, x) > 0``                 |
| ``s.startsWith(p)``     | ``LEFT(s, LENGTH(p)) = p``         |
| ``s.equals(x)``         | ``s = x``                          |
"""

import logging
from typing import Callable, List, Optional

from ..ir import nodes as ir
from ..ir.nodes import IRNode
from ..shared.errors import DiagnosticReporter, ErrorCode
from ..shared.source_location import SourceLocation
from ..utils.config import JAVA_LANGUAGE, STRING_CONCAT_OPERATOR
from .loop_bounds import int_value

logger = logging.getLogger(__name__)

# Methods that only exist on strings; safe to map whatever the receiver is
STRING_ONLY_METHODS = frozenset({
    "charAt", "substring", "substr", "slice", "indexOf", "lastIndexOf",
    "toLowerCase", "toUpperCase", "equalsIgnoreCase", "startsWith", "endsWith",
    "trim", "split", "concat", "repeat", "padStart", "padEnd",
})

# Shared with collections; mapped only when the receiver is not a known array
AMBIGUOUS_METHODS = frozenset({"length", "equals", "contains", "includes", "isEmpty", "replace"})

JAVA_STRING_METHODS = (STRING_ONLY_METHODS | AMBIGUOUS_METHODS) - {"substr", "slice", "repeat",
                                                                  "padStart", "padEnd", "includes"}
TYPESCRIPT_STRING_METHODS = (STRING_ONLY_METHODS | AMBIGUOUS_METHODS) - {"equalsIgnoreCase",
                                                                        "contains", "isEmpty", "equals"}

MATH_FUNCTIONS = {
    "abs": "ABS",
    "sqrt": "SQRT",
    "pow": "POW",
    "max": "MAX",
    "min": "MIN",
    "ceil": "CEIL",
    "floor": "INT",
    "trunc": "INT",
}

IndexFn = Callable[[IRNode], IRNode]


def _difference(end: IRNode, start: IRNode, location: Optional[SourceLocation]) -> IRNode:
    """``end - start`` with literal folding."""
    a, b = int_value(start), int_value(end)
    if a is not None and b is not None:
        return ir.integer(b - a, location)
    if a == 0:
        return end
    return ir.binary("-", end, start, location)


class StringMethodLowering:
    """Per-conversion mapper; ``renumber`` converts one 0-based index argument."""

    def __init__(self, language: str, renumber: IndexFn,
                 reporter: Optional[DiagnosticReporter] = None):
        self.language = language
        self.renumber = renumber
        self.reporter = reporter
        self.methods = JAVA_STRING_METHODS if language == JAVA_LANGUAGE else TYPESCRIPT_STRING_METHODS

    def handles(self, method: str, receiver_is_array: bool = False) -> bool:
        if method not in self.methods:
            return False
        return not (receiver_is_array and method in AMBIGUOUS_METHODS)

    def lower(self, receiver: IRNode, method: str, args: List[IRNode],
              location: Optional[SourceLocation] = None) -> Optional[IRNode]:
        """IGCSE expression for the call, or None when ``method`` is not mapped."""
        handler = getattr(self, f"_lower_{method}", None)
        if handler is None or method not in self.methods:
            return None
        logger.debug(f"[strings] {method} with {len(args)} argument(s)")
        return handler(receiver, args, location)

    # -------------------------------------------------------------------------
    # Length and character access
    # -------------------------------------------------------------------------

    def _lower_length(self, s, args, loc):
        return ir.call("LENGTH", [s], loc)

    def _lower_isEmpty(self, s, args, loc):
        return ir.binary("=", ir.call("LENGTH", [s], loc), ir.integer(0), loc)

    def _lower_charAt(self, s, args, loc):
        index = self.renumber(args[0]) if args else ir.integer(1)
        return ir.call("MID", [s, index, ir.integer(1)], loc)

    def _lower_substring(self, s, args, loc):
        start = args[0] if args else ir.integer(0)
        if len(args) > 1:
            length = _difference(args[1], start, loc)
        else:
            length = _difference(ir.call("LENGTH", [s], loc), start, loc)
        return ir.call("SUBSTRING", [s, self.renumber(start), length], loc)

    _lower_slice = _lower_substring

    def _lower_substr(self, s, args, loc):
        start = args[0] if args else ir.integer(0)
        length = args[1] if len(args) > 1 else _difference(ir.call("LENGTH", [s], loc), start, loc)
        return ir.call("SUBSTRING", [s, self.renumber(start), length], loc)

    # -------------------------------------------------------------------------
    # Searching
    # -------------------------------------------------------------------------

    def _lower_indexOf(self, s, args, loc):
        find = ir.call("FIND", [s] + args[:1], loc)
        self._info("indexOf converted to FIND; result shifted by -1 to stay 0-based", loc)
        return ir.binary("-", find, ir.integer(1), loc)

    _lower_lastIndexOf = _lower_indexOf

    def _lower_contains(self, s, args, loc):
        return ir.binary(">", ir.call("FIND", [s] + args[:1], loc), ir.integer(0), loc)

    _lower_includes = _lower_contains

    def _lower_startsWith(self, s, args, loc):
        prefix = args[0] if args else ir.literal('""', "string")
        left = ir.call("LEFT", [s, ir.call("LENGTH", [prefix])], loc)
        return ir.binary("=", left, prefix, loc)

    def _lower_endsWith(self, s, args, loc):
        suffix = args[0] if args else ir.literal('""', "string")
        right = ir.call("RIGHT", [s, ir.call("LENGTH", [suffix])], loc)
        return ir.binary("=", right, suffix, loc)

    # -------------------------------------------------------------------------
    # Comparison and case
    # -------------------------------------------------------------------------

    def _lower_equals(self, s, args, loc):
        return ir.binary("=", s, args[0] if args else ir.literal('""', "string"), loc)

    def _lower_equalsIgnoreCase(self, s, args, loc):
        other = args[0] if args else ir.literal('""', "string")
        return ir.binary("=", ir.call("LCASE", [s]), ir.call("LCASE", [other]), loc)

    def _lower_toLowerCase(self, s, args, loc):
        return ir.call("LCASE", [s], loc)

    def _lower_toUpperCase(self, s, args, loc):
        return ir.call("UCASE", [s], loc)

    # -------------------------------------------------------------------------
    # Building strings
    # -------------------------------------------------------------------------

    def _lower_concat(self, s, args, loc):
        result = s
        for arg in args:
            result = ir.binary(STRING_CONCAT_OPERATOR, result, arg, loc)
        return result

    def _lower_trim(self, s, args, loc):
        return ir.call("TRIM", [s], loc)

    def _lower_replace(self, s, args, loc):
        self._info("replace converted to REPLACE; not every exam board defines it", loc)
        return ir.call("REPLACE", [s] + args[:2], loc)

    def _lower_split(self, s, args, loc):
        self._info("split converted to SPLIT; the result is an array", loc)
        return ir.call("SPLIT", [s] + args[:1], loc)

    def _lower_repeat(self, s, args, loc):
        return ir.call("REPEAT", [s] + args[:1], loc)

    def _lower_padStart(self, s, args, loc):
        return ir.call("PADLEFT", [s] + args[:2], loc)

    def _lower_padEnd(self, s, args, loc):
        return ir.call("PADRIGHT", [s] + args[:2], loc)

    def _info(self, message: str, location: Optional[SourceLocation]) -> None:
        if self.reporter is not None:
            self.reporter.info(message, ErrorCode.TYPE_CONVERSION_ERROR, location)


def lower_math_call(function: str, args: List[IRNode],
                    location: Optional[SourceLocation] = None) -> IRNode:
    """
    ``Math.f(args)`` as an IGCSE library call.

    ``random`` → ``RANDOM()``, ``round(x)`` → ``ROUND(x, 0)``, ``floor`` →
    ``INT``; anything else keeps its arguments under an uppercased name.
    """
    if function == "random":
        return ir.call("RANDOM", [], location)
    if function == "round":
        return ir.call("ROUND", list(args[:1]) + [ir.integer(0)], location)
    name = MATH_FUNCTIONS.get(function, function.upper())
    return ir.call(name, args, location)
