"""
Operator normalization.

Source operators are mapped to IGCSE symbols once, when IR nodes are built.
The generator only needs the precedence table to decide on parentheses.
"""

from typing import Dict

# Source operator → IGCSE operator
OPERATOR_MAP: Dict[str, str] = {
    "==": "=",
    "===": "=",
    "!=": "<>",
    "!==": "<>",
    "&&": "AND",
    "||": "OR",
    "!": "NOT",
    "%": "MOD",
}

# Comparison → its logical negation (used for REPEAT ... UNTIL)
NEGATED_COMPARISON: Dict[str, str] = {
    "<": ">=",
    ">": "<=",
    "<=": ">",
    ">=": "<",
    "=": "<>",
    "<>": "=",
}

# Binding strength of IGCSE binary operators (higher binds tighter)
PRECEDENCE: Dict[str, int] = {
    "OR": 1,
    "AND": 2,
    "=": 3, "<>": 3,
    "<": 4, ">": 4, "<=": 4, ">=": 4,
    "&": 5,
    "+": 6, "-": 6,
    "*": 7, "/": 7, "MOD": 7, "DIV": 7,
    "^": 8,
}

# Right operand needs parentheses at equal precedence
NON_ASSOCIATIVE = frozenset({"-", "/", "MOD", "DIV", "^"})

COMPARISON_OPERATORS = frozenset(NEGATED_COMPARISON)
LOGICAL_OPERATORS = frozenset({"AND", "OR"})


def normalize_operator(op: str) -> str:
    """Map a Java/TypeScript operator onto its IGCSE spelling."""
    return OPERATOR_MAP.get(op, op)


def negate_comparison(op: str) -> str:
    """Negated comparison operator, or '' when op is not a comparison."""
    return NEGATED_COMPARISON.get(op, "")


def precedence(op: str) -> int:
    return PRECEDENCE.get(op, 9)
