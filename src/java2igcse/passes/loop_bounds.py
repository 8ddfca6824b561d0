"""
For-loop bound conversion.

``for (init; cond; update)`` becomes ``FOR v ← start TO end [STEP s]``. The end
bound is derived from the comparison operator; loops that walk an array
(their bounds mention ``.length``, ``LENGTH(`` or a tracked array) are shifted
by one so the loop variable is already 1-based inside the body.

Two flavours of every rule live here: text-in/text-out helpers for callers
that only have source text, and IR helpers used by the lowering.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..ir import nodes as ir
from ..ir.nodes import IRCategory, IRNode
from ..shared.operators import precedence

_INT_RE = re.compile(r"^-?\d+$")
_TRAILING_CONST_RE = re.compile(r"^(.*\S)\s*([+-])\s*(\d+)$")
_CONDITION_RE = re.compile(r"^\s*([\w.\[\]()]+?)\s*(<=|>=|!=|<|>)\s*(.+?)\s*$")
_LENGTH_RE = re.compile(r"\b(\w+)\.(?:length\b(?:\s*\(\s*\))?|size\s*\(\s*\))")
_LOW_PRECEDENCE_CHARS = ("?", "<", ">", "=", "&", "|", "!")

INCREMENT_OPERATORS = frozenset({"<", "<=", "!="})
DECREMENT_OPERATORS = frozenset({">", ">="})


@dataclass
class LoopBounds:
    """Converted FOR header pieces (text form)."""
    start_value: str
    end_value: str
    is_decrement: bool = False
    is_array_loop: bool = False
    step: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# Text helpers
# ============================================================================

def length_calls_to_igcse(text: str) -> str:
    """``arr.length`` / ``list.size()`` / ``s.length()`` → ``LENGTH(x)``."""
    return _LENGTH_RE.sub(lambda m: f"LENGTH({m.group(1)})", text)


def offset_text(text: str, delta: int) -> str:
    """
    Add an integer to an expression written as text, folding trailing constants.

    >>> offset_text("LENGTH(arr) - 1", 1)
    'LENGTH(arr)'
    >>> offset_text("n", -1)
    'n - 1'
    """
    text = text.strip()
    if delta == 0:
        return text
    if _INT_RE.match(text):
        return str(int(text) + delta)
    m = _TRAILING_CONST_RE.match(text)
    if m and not any(ch in m.group(1) for ch in _LOW_PRECEDENCE_CHARS):
        head, sign, const = m.group(1), m.group(2), int(m.group(3))
        total = (const if sign == "+" else -const) + delta
        if total == 0:
            return head
        return f"{head} + {total}" if total > 0 else f"{head} - {-total}"
    if any(ch in text for ch in _LOW_PRECEDENCE_CHARS):
        text = f"({text})"
    return f"{text} + {delta}" if delta > 0 else f"{text} - {-delta}"


def mentions_array(text: str, array_names: Iterable[str] = ()) -> bool:
    """True when a bound walks an array: ``.length``, ``LENGTH(`` or a tracked array name."""
    if _LENGTH_RE.search(text) or "LENGTH(" in text:
        return True
    for name in array_names:
        if re.search(rf"\b{re.escape(name)}\b", text):
            return True
    return False


def split_condition(condition: str, variable: str) -> Optional[Tuple[str, str]]:
    """
    ``i < 10`` → (``<``, ``10``). A condition written the other way round
    (``10 > i``) is flipped so the loop variable is on the left.
    """
    m = _CONDITION_RE.match(condition)
    if not m:
        return None
    left, op, right = m.group(1), m.group(2), m.group(3)
    if left == variable:
        return op, right
    if right.strip() == variable:
        flipped = {"<": ">", ">": "<", "<=": ">=", ">=": "<=", "!=": "!="}[op]
        return flipped, left
    return None


def end_offset(operator: str) -> int:
    """Offset from the compared limit to the inclusive FOR end value."""
    if operator in ("<", "!="):
        return -1
    if operator == ">":
        return 1
    return 0


def parse_step(update: str, variable: str) -> Tuple[int, Optional[str]]:
    """
    Loop step from the update clause.

    Returns (sign, magnitude) where magnitude is None for a step of 1:
    ``i++`` → (1, None), ``i -= 2`` → (-1, "2"), ``i = i + k`` → (1, "k").
    """
    text = update.strip()
    v = re.escape(variable)
    if re.fullmatch(rf"(?:{v}\s*\+\+|\+\+\s*{v})", text):
        return 1, None
    if re.fullmatch(rf"(?:{v}\s*--|--\s*{v})", text):
        return -1, None
    m = re.fullmatch(rf"{v}\s*([+-])=\s*(.+)", text) or re.fullmatch(rf"{v}\s*=\s*{v}\s*([+-])\s*(.+)", text)
    if m:
        sign = 1 if m.group(1) == "+" else -1
        magnitude = m.group(2).strip()
        return sign, (None if magnitude == "1" else magnitude)
    return 1, None


def convert_for_loop_bounds(
    variable: str,
    start_value: str,
    end_condition: str,
    array_names: Iterable[str] = (),
    update: Optional[str] = None,
) -> LoopBounds:
    """
    Convert a classic for-loop header to FOR bounds.

    Array loops (bounds mention an array) start one higher and end at the
    1-based bound, e.g. ``i = 0; i < arr.length`` → ``1 TO LENGTH(arr)``.
    Other loops keep their start and only normalize the end operator,
    e.g. ``i = 0; i < 10`` → ``0 TO 9``.
    """
    names = list(array_names)
    warnings: List[str] = []
    start = length_calls_to_igcse(start_value.strip())
    parts = split_condition(end_condition, variable)
    if parts is None:
        warnings.append(f"Unable to parse for loop condition '{end_condition}' - using as-is")
        return LoopBounds(start, length_calls_to_igcse(end_condition.strip()), warnings=warnings)

    operator, limit = parts
    limit = length_calls_to_igcse(limit)
    is_array_loop = mentions_array(end_condition, names) or mentions_array(start_value, names)
    is_decrement = operator in DECREMENT_OPERATORS
    sign, magnitude = parse_step(update, variable) if update else (-1 if is_decrement else 1, None)
    if sign < 0:
        is_decrement = True

    end = offset_text(limit, end_offset(operator))
    if is_array_loop:
        start = offset_text(start, 1)
        end = offset_text(end, 1)
    step = None
    if is_decrement:
        step = f"-{magnitude}" if magnitude else "-1"
    elif magnitude:
        step = magnitude
    return LoopBounds(start, end, is_decrement, is_array_loop, step, warnings)


# ============================================================================
# IR helpers
# ============================================================================

def int_value(node: Optional[IRNode]) -> Optional[int]:
    """Integer value of an int literal IR node (including a negated literal)."""
    if node is None:
        return None
    if node.kind == "literal" and node.get("literal_type") == "int":
        try:
            return int(node.get("value"))
        except (TypeError, ValueError):
            return None
    if node.kind == "unary_operation" and node.get("operator") == "-" and node.children:
        inner = int_value(node.children[0])
        return -inner if inner is not None else None
    return None


def add_offset(node: IRNode, delta: int) -> IRNode:
    """
    ``node + delta`` as IR, folding literals and trailing constants.

    ``LENGTH(a) - 1`` + 1 → ``LENGTH(a)``; ``i`` + 1 → ``i + 1``; ``4`` - 1 → ``3``.
    """
    if delta == 0:
        return node
    value = int_value(node)
    if value is not None:
        return ir.integer(value + delta, node.location)
    if node.kind == "binary_operation" and node.get("operator") in ("+", "-") \
            and not node.get("parenthesized"):
        const = int_value(node.children[1])
        if const is not None:
            total = (const if node.get("operator") == "+" else -const) + delta
            head = node.children[0]
            if total == 0:
                return head
            op = "+" if total > 0 else "-"
            return ir.binary(op, head, ir.integer(abs(total)), node.location)
    operand = node
    if node.kind == "binary_operation" and precedence(node.get("operator", "")) < precedence("+"):
        operand = ir.parenthesize(node)
    op = "+" if delta > 0 else "-"
    return ir.binary(op, operand, ir.integer(abs(delta)), node.location)


def loop_end(limit: IRNode, operator: str, is_array_loop: bool) -> IRNode:
    end = add_offset(limit, end_offset(operator))
    return add_offset(end, 1) if is_array_loop else end


def loop_start(start: IRNode, is_array_loop: bool) -> IRNode:
    return add_offset(start, 1) if is_array_loop else start


def step_node(sign: int, magnitude: Optional[IRNode]) -> Optional[IRNode]:
    """STEP expression, or None for the default step of 1."""
    if magnitude is None:
        return ir.integer(-1) if sign < 0 else None
    if sign > 0:
        return magnitude
    value = int_value(magnitude)
    if value is not None:
        return ir.integer(-value)
    return ir.unary("-", magnitude)


def is_int_literal(node: Optional[IRNode], value: int) -> bool:
    return int_value(node) == value


def is_plain_identifier(node: Optional[IRNode]) -> bool:
    return node is not None and node.type is IRCategory.IDENTIFIER
