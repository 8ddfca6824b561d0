"""
Array-Index Renumbering Engine

Java and TypeScript index arrays from 0, IGCSE pseudocode from 1. The lowering
consults one ``ArrayIndexRenumberer`` per conversion whenever it emits an
array access or a loop header; the engine remembers which loop variables it
has already shifted so that nothing is incremented twice.

Rules for one index expression ``E`` on a base that is not itself converted:

- literal ``n``                          → ``n + 1``
- references a converted loop variable  → unchanged (already 1-based)
- one-based loop variable ``v``          → unchanged
- ``v - 1`` with ``v`` one-based          → ``v``
- anything else                          → ``E + 1`` with constants folded
  (zero-based ``i`` → ``i + 1``, ``n - 1`` → ``n``)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..ir.nodes import IRNode
from ..shared.errors import DiagnosticReporter, ErrorCode
from ..shared.source_location import SourceLocation
from ..utils.config import ASSIGNMENT_ARROW
from . import loop_bounds
from .loop_bounds import LoopBounds

logger = logging.getLogger(__name__)

_IDENT_START_RE = re.compile(r"[A-Za-z_$]")
_IDENT_CHAR_RE = re.compile(r"[\w$]")
_INT_RE = re.compile(r"^\d+$")
_NAME_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_MINUS_ONE_RE = re.compile(r"^([A-Za-z_$][\w$]*)\s*-\s*1$")
_WORD_RE = re.compile(r"[A-Za-z_$][\w$]*")

# Array creation (`new int[5]`) sizes are not indices
_TYPE_NAMES = frozenset({"int", "long", "short", "byte", "double", "float", "char", "boolean", "String"})


@dataclass
class LoopVariable:
    """Start/end facts recorded for one active for-loop variable."""
    start: str
    end: str
    is_array_loop: bool = False


@dataclass
class ArrayIndexContext:
    """Per-conversion renumbering state; never shared between conversions."""
    zero_based_variables: Set[str] = field(default_factory=set)
    one_based_variables: Set[str] = field(default_factory=set)
    converted_variables: Set[str] = field(default_factory=set)
    array_names: Set[str] = field(default_factory=set)
    for_loop_variables: Dict[str, LoopVariable] = field(default_factory=dict)

    def reset(self) -> None:
        self.zero_based_variables.clear()
        self.one_based_variables.clear()
        self.converted_variables.clear()
        self.array_names.clear()
        self.for_loop_variables.clear()


@dataclass
class ArrayConversion:
    """Result of a text-level conversion."""
    converted_expression: str
    has_array_access: bool
    warnings: List[str] = field(default_factory=list)


class ArrayIndexRenumberer:
    """
    Stateful 0-based → 1-based rewriting service.

    The text API (``convert_array_access``, ``convert_array_assignment``,
    ``convert_for_loop_bounds``) works on source snippets; the IR API
    (``renumber_index``, ``enter_for_loop``/``exit_for_loop``) is what the
    lowering uses while it builds IR.
    """

    def __init__(self, context: Optional[ArrayIndexContext] = None,
                 reporter: Optional[DiagnosticReporter] = None):
        self.context = context if context is not None else ArrayIndexContext()
        self.reporter = reporter
        self._saved: List[Tuple[str, Optional[str], Optional[LoopVariable]]] = []

    def reset(self) -> None:
        self.context.reset()
        self._saved.clear()

    # =========================================================================
    # Tracking
    # =========================================================================

    def register_array(self, name: str) -> None:
        self.context.array_names.add(name)

    def is_array(self, name: str) -> bool:
        return name in self.context.array_names

    def enter_for_loop(self, variable: str, start: str, end: str, is_array_loop: bool) -> None:
        """
        Record a loop variable for the duration of its body.

        Array loops are shifted to 1-based bounds, so their variable is
        recorded as converted; other loops are zero- or one-based by their
        start value.
        """
        ctx = self.context
        self._saved.append((variable, self._classification(variable), ctx.for_loop_variables.get(variable)))
        self._unclassify(variable)
        ctx.for_loop_variables[variable] = LoopVariable(start, end, is_array_loop)
        if is_array_loop:
            ctx.converted_variables.add(variable)
        elif start.strip() == "1":
            ctx.one_based_variables.add(variable)
        else:
            ctx.zero_based_variables.add(variable)
        logger.debug(f"[renumber] loop variable {variable} start={start} array_loop={is_array_loop}")

    def exit_for_loop(self, variable: str) -> None:
        """Restore what was known about the variable before the loop."""
        ctx = self.context
        for i in range(len(self._saved) - 1, -1, -1):
            name, previous, loop_info = self._saved[i]
            if name != variable:
                continue
            del self._saved[i]
            self._unclassify(variable)
            if previous is not None:
                getattr(ctx, previous).add(variable)
            if loop_info is not None:
                ctx.for_loop_variables[variable] = loop_info
            else:
                ctx.for_loop_variables.pop(variable, None)
            return

    def _classification(self, variable: str) -> Optional[str]:
        for attr in ("converted_variables", "one_based_variables", "zero_based_variables"):
            if variable in getattr(self.context, attr):
                return attr
        return None

    def _unclassify(self, variable: str) -> None:
        self.context.converted_variables.discard(variable)
        self.context.one_based_variables.discard(variable)
        self.context.zero_based_variables.discard(variable)

    # =========================================================================
    # IR API
    # =========================================================================

    def renumber_index(self, index: IRNode, base_name: Optional[str] = None,
                       location: Optional[SourceLocation] = None) -> IRNode:
        """
        1-based counterpart of one index expression.

        The input node is never modified; converting the same node twice
        yields equal results.
        """
        ctx = self.context
        if base_name is not None and base_name in ctx.converted_variables:
            return index
        if loop_bounds.int_value(index) is not None:
            return loop_bounds.add_offset(index, 1)

        names = {n.get("name") for n in index.walk() if n.kind == "identifier"}
        if names & ctx.converted_variables:
            return index
        if index.kind == "identifier" and index.get("name") in ctx.one_based_variables:
            return index
        if index.kind == "binary_operation" and index.get("operator") == "-":
            left, right = index.children
            if left.kind == "identifier" and left.get("name") in ctx.one_based_variables \
                    and loop_bounds.is_int_literal(right, 1):
                return left
        if names & ctx.one_based_variables:
            self._warn("Array index expression uses a 1-based loop variable; review the converted index",
                       location)
            return index
        return loop_bounds.add_offset(index, 1)

    # =========================================================================
    # Text API
    # =========================================================================

    def convert_array_access(self, expression: str,
                             context: Optional[ArrayIndexContext] = None) -> ArrayConversion:
        """
        Rewrite every ``name[index]...`` group in ``expression``.

        Groups are found leftmost-first without overlap; nested groups inside
        an index are converted recursively, and every bracket group of a
        multi-dimensional access is converted in the same pass. Text inside
        string or char literals is left alone.
        """
        ctx = context if context is not None else self.context
        warnings: List[str] = []
        converted, found = self._convert_text(expression, ctx, warnings)
        return ArrayConversion(converted, found, warnings)

    def convert_array_assignment(self, variable: str, expression: str,
                                 context: Optional[ArrayIndexContext] = None) -> ArrayConversion:
        """``target ← expr`` with both sides converted."""
        left = self.convert_array_access(variable, context)
        right = self.convert_array_access(expression, context)
        return ArrayConversion(
            f"{left.converted_expression} {ASSIGNMENT_ARROW} {right.converted_expression}",
            left.has_array_access or right.has_array_access,
            left.warnings + right.warnings,
        )

    def convert_for_loop_bounds(self, variable: str, start_value: str, end_condition: str,
                                array_names: Optional[Iterable[str]] = None,
                                update: Optional[str] = None) -> LoopBounds:
        names = self.context.array_names if array_names is None else array_names
        return loop_bounds.convert_for_loop_bounds(variable, start_value, end_condition, names, update)

    def _convert_text(self, text: str, ctx: ArrayIndexContext, warnings: List[str]) -> Tuple[str, bool]:
        out: List[str] = []
        found = False
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch in ("\"", "'", "`"):
                end = _skip_quoted(text, i)
                out.append(text[i:end])
                i = end
                continue
            if _IDENT_START_RE.match(ch) and (i == 0 or not _IDENT_CHAR_RE.match(text[i - 1])):
                j = i + 1
                while j < n and _IDENT_CHAR_RE.match(text[j]):
                    j += 1
                name = text[i:j]
                k = j
                groups: List[str] = []
                while True:
                    ws = k
                    while ws < n and text[ws] in " \t":
                        ws += 1
                    if ws >= n or text[ws] != "[":
                        break
                    close = _matching_bracket(text, ws)
                    if close < 0:
                        break
                    groups.append(text[ws + 1:close])
                    k = close + 1
                if not groups:
                    out.append(name)
                    i = j
                    continue
                if name in _TYPE_NAMES:
                    out.append(text[i:k])
                    i = k
                    continue
                found = True
                rendered = [name]
                for inner in groups:
                    rendered.append(f"[{self._convert_index_text(name, inner, ctx, warnings)}]")
                out.append("".join(rendered))
                i = k
                continue
            out.append(ch)
            i += 1
        return "".join(out), found

    def _convert_index_text(self, base: str, index: str, ctx: ArrayIndexContext,
                            warnings: List[str]) -> str:
        raw = index.strip()
        nested, _ = self._convert_text(raw, ctx, warnings)
        nested = loop_bounds.length_calls_to_igcse(nested)
        if base in ctx.converted_variables:
            return nested
        if _INT_RE.match(raw):
            return str(int(raw) + 1)
        words = set(_WORD_RE.findall(raw))
        if words & ctx.converted_variables:
            return nested
        if _NAME_RE.match(raw) and raw in ctx.one_based_variables:
            return raw
        m = _MINUS_ONE_RE.match(raw)
        if m and m.group(1) in ctx.one_based_variables:
            return m.group(1)
        if words & ctx.one_based_variables:
            warnings.append(f"Arithmetic index expression '{raw}' may need manual review")
            return nested
        return loop_bounds.offset_text(nested, 1)

    def _warn(self, message: str, location: Optional[SourceLocation]) -> None:
        if self.reporter is not None:
            self.reporter.info(message, ErrorCode.ARRAY_INDEX_WARNING, location)


def _skip_quoted(text: str, start: int) -> int:
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _matching_bracket(text: str, open_index: int) -> int:
    depth = 0
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch in ("\"", "'"):
            i = _skip_quoted(text, i)
            continue
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1
