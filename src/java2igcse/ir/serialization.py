"""
IR Serialization to S-Expressions
====================================

Converts IR to a canonical S-expression form for debugging (``--dump-ir``,
``JAVA2IGCSE_DUMP_IR``) and for structural assertions in tests.

Shape of one node::

    (kind :key value ... child child ...)

Metadata keys become ``:key`` symbols, IR nodes stored in metadata are
serialized in place, and children follow the metadata. Uses structured
sexpr (nested lists + sexpdata.Symbol), then pretty-prints.
"""

from typing import Any, List

import sexpdata

from .nodes import IRNode

# Metadata keys that describe rendering only and are left out of dumps
_SKIPPED_KEYS = frozenset({"parenthesized"})


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ", max_line: int = 100) -> str:
    """
    Pretty-print structured sexpr. Keeps short forms on one line; breaks only when needed.
    """
    if isinstance(sexpr, list):
        if not sexpr:
            return "()"
        parts = [_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr]
        one_line = "(" + " ".join(parts) + ")"
        if len(one_line) <= max_line and "\n" not in one_line:
            return one_line
        prefix = indent_str * indent
        next_prefix = indent_str * (indent + 1)
        rest = "\n".join(next_prefix + p for p in parts[1:])
        inner = parts[0] + ("\n" + rest if rest else "")
        return f"({inner}\n{prefix})"
    return sexpdata.dumps(sexpr)


def serialize_ir(node: IRNode, include_location: bool = False, pretty: bool = True) -> str:
    """
    Serialize IR node to S-expression string.

    Args:
        node: IR node to serialize
        include_location: Include ``:loc (line column)`` for nodes that have one
        pretty: Use pretty-printed format (default True). Set False for compact single-line.
    """
    serializer = IRSerializer(include_location=include_location)
    sexpr = serializer.serialize_to_sexpr(node)
    if pretty:
        return _pretty_dumps(sexpr)
    return sexpdata.dumps(sexpr)


def load_sexpr(text: str) -> Any:
    """Parse a dump back into nested lists (symbols stay sexpdata.Symbol)."""
    return sexpdata.loads(text)


class IRSerializer:
    """IR to structured S-expression serializer."""

    def __init__(self, include_location: bool = False):
        self.include_location = include_location

    def _sym(self, s: str) -> Any:
        """Convert string to symbol (no quotes in output)."""
        return sexpdata.Symbol(s)

    def serialize_to_sexpr(self, node: Any) -> Any:
        if node is None:
            return self._sym("nil")
        if isinstance(node, IRNode):
            return self._serialize_node(node)
        return self._serialize_value(node)

    def _serialize_node(self, node: IRNode) -> List[Any]:
        out: List[Any] = [self._sym(node.kind)]
        for key in sorted(node.metadata):
            if key in _SKIPPED_KEYS:
                continue
            out.append(self._sym(f":{key}"))
            out.append(self._serialize_value(node.metadata[key]))
        if self.include_location and node.location is not None:
            out.extend([self._sym(":loc"), [node.location.line, node.location.column]])
        out.extend(self._serialize_node(c) for c in node.children)
        return out

    def _serialize_value(self, value: Any) -> Any:
        if value is None:
            return self._sym("nil")
        # Store bool as symbol to avoid sexpdata's True->() conversion
        if isinstance(value, bool):
            return self._sym("true" if value else "false")
        if isinstance(value, (int, float, str)):
            return value
        if isinstance(value, IRNode):
            return self._serialize_node(value)
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            flat: List[Any] = []
            for k in sorted(value):
                flat.extend([self._sym(f":{k}"), self._serialize_value(value[k])])
            return flat
        return str(value)
