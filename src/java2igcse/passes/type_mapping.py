"""
Type Mapping

Fixed table from Java/TypeScript type names to IGCSE data types, plus array
wrapping (``ARRAY[1:n] OF T``, nested for multi-dimensional arrays).
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Set

from ..shared.errors import DiagnosticReporter, ErrorCode
from ..shared.nodes import CSTKind, CSTNode
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_ARRAY_SIZE, DEFAULT_FALLBACK_TYPE, JAVA_LANGUAGE

logger = logging.getLogger(__name__)

JAVA_TYPES = {
    "int": "INTEGER",
    "long": "INTEGER",
    "short": "INTEGER",
    "byte": "INTEGER",
    "integer": "INTEGER",
    "double": "REAL",
    "float": "REAL",
    "string": "STRING",
    "char": "CHAR",
    "character": "CHAR",
    "boolean": "BOOLEAN",
}

TYPESCRIPT_TYPES = {
    "number": "REAL",
    "bigint": "INTEGER",
    "string": "STRING",
    "boolean": "BOOLEAN",
    "any": "STRING",
    "unknown": "STRING",
    "void": "STRING",
    "object": "STRING",
}

# Generic containers treated as plain arrays of their element type
COLLECTION_TYPES = frozenset({
    "ArrayList", "List", "LinkedList", "Vector", "Array", "ReadonlyArray", "Set", "HashSet",
})

VOID_TYPES = frozenset({"void", "Void", "undefined", "never"})

_GENERIC_RE = re.compile(r"^([\w.]+)\s*<(.*)>$")


@dataclass(frozen=True)
class MappedType:
    """Result of mapping one source type."""
    base: str
    dimensions: int = 0

    @property
    def is_array(self) -> bool:
        return self.dimensions > 0


def format_array_type(element_type: str, sizes: Sequence[str]) -> str:
    """
    ``ARRAY[1:n] OF T`` wrapping; the innermost dimension is wrapped last.

    >>> format_array_type("INTEGER", ["3", "4"])
    'ARRAY[1:3] OF ARRAY[1:4] OF INTEGER'
    """
    result = element_type
    for size in reversed(list(sizes)):
        result = f"ARRAY[1:{size or DEFAULT_ARRAY_SIZE}] OF {result}"
    return result


def split_array_suffix(type_text: str) -> tuple:
    """``int[][]`` → (``int``, 2)."""
    text = type_text.strip()
    dims = 0
    while text.endswith("[]"):
        dims += 1
        text = text[:-2].rstrip()
    return text, dims


def is_void(type_text: Optional[str]) -> bool:
    return not type_text or type_text.strip() in VOID_TYPES


class TypeMapper:
    """Maps source type names to IGCSE types, reporting fallbacks."""

    def __init__(self, language: str = JAVA_LANGUAGE, reporter: Optional[DiagnosticReporter] = None):
        self.language = language
        self.reporter = reporter
        self.known_classes: Set[str] = set()
        self._table = dict(JAVA_TYPES)
        if language != JAVA_LANGUAGE:
            self._table.update(TYPESCRIPT_TYPES)

    def map(self, type_text: Optional[str], location: Optional[SourceLocation] = None) -> MappedType:
        if not type_text:
            return MappedType(DEFAULT_FALLBACK_TYPE)
        base, dims = split_array_suffix(type_text)

        generic = _GENERIC_RE.match(base)
        if generic:
            outer, inner = generic.group(1), generic.group(2).strip()
            if outer == "Promise":
                self._report(
                    f"Promise<{inner}> unwrapped to its result type",
                    location,
                    "IGCSE pseudocode has no asynchronous values",
                )
                inner_type = self.map(inner, location)
                return MappedType(inner_type.base, inner_type.dimensions + dims)
            if outer in COLLECTION_TYPES and "," not in inner:
                inner_type = self.map(inner, location)
                return MappedType(inner_type.base, inner_type.dimensions + dims + 1)
            self._report(f"Generic type '{base}' converted to {DEFAULT_FALLBACK_TYPE}", location)
            return MappedType(DEFAULT_FALLBACK_TYPE, dims)

        if "|" in base:
            self._report(f"Union type '{base}' converted to {DEFAULT_FALLBACK_TYPE}", location)
            return MappedType(DEFAULT_FALLBACK_TYPE, dims)

        mapped = self._table.get(base.lower())
        if mapped is not None:
            if base == "float" and self.language == JAVA_LANGUAGE:
                logger.debug("float mapped to REAL; precision may differ")
            return MappedType(mapped, dims)
        if base in self.known_classes:
            return MappedType(base, dims)

        self._report(f"Unknown type '{base}' converted to {DEFAULT_FALLBACK_TYPE}", location)
        return MappedType(DEFAULT_FALLBACK_TYPE, dims)

    def type_string(self, type_text: Optional[str], location: Optional[SourceLocation] = None,
                    sizes: Sequence[str] = ()) -> str:
        """Full IGCSE spelling, including ``ARRAY[...] OF`` wrappers for arrays."""
        mapped = self.map(type_text, location)
        if not mapped.is_array:
            return mapped.base
        padded = list(sizes) + [DEFAULT_ARRAY_SIZE] * (mapped.dimensions - len(sizes))
        return format_array_type(mapped.base, padded[:mapped.dimensions])

    def _report(self, message: str, location: Optional[SourceLocation], help: Optional[str] = None) -> None:
        if self.reporter is not None:
            self.reporter.info(message, ErrorCode.TYPE_CONVERSION_ERROR, location, help=help)


def infer_literal_type(node: Optional[CSTNode]) -> Optional[str]:
    """
    Source-level type of an initializer when no annotation is given.

    Returns a Java-style type name (``int``, ``double``, ``String``, ``boolean``,
    ``char``, optionally with ``[]`` suffixes) or None when it cannot tell.
    """
    if node is None:
        return None
    if node.kind is CSTKind.LITERAL:
        return {
            "int": "int",
            "float": "double",
            "string": "String",
            "char": "char",
            "boolean": "boolean",
        }.get(node.get("literal_type"))
    if node.kind is CSTKind.TEMPLATE_LITERAL:
        return "String"
    if node.kind is CSTKind.ARRAY_LITERAL:
        for element in node.children:
            inner = infer_literal_type(element)
            if inner is not None:
                return inner + "[]"
        return None
    if node.kind is CSTKind.BINARY_EXPRESSION and node.value in ("<", ">", "<=", ">=", "==", "!=",
                                                                 "===", "!==", "&&", "||"):
        return "boolean"
    if node.kind is CSTKind.UNARY_EXPRESSION and node.value == "!":
        return "boolean"
    return None


# IGCSE result type of well-known calls, by method name
METHOD_RESULT_TYPES = {
    "length": "INTEGER", "size": "INTEGER", "indexOf": "INTEGER", "lastIndexOf": "INTEGER",
    "charAt": "CHAR",
    "substring": "STRING", "substr": "STRING", "slice": "STRING", "toUpperCase": "STRING",
    "toLowerCase": "STRING", "trim": "STRING", "concat": "STRING", "replace": "STRING",
    "repeat": "STRING", "padStart": "STRING", "padEnd": "STRING", "toString": "STRING",
    "toFixed": "STRING",
    "equals": "BOOLEAN", "equalsIgnoreCase": "BOOLEAN", "contains": "BOOLEAN", "includes": "BOOLEAN",
    "startsWith": "BOOLEAN", "endsWith": "BOOLEAN", "isEmpty": "BOOLEAN",
    "nextInt": "INTEGER", "nextLong": "INTEGER", "nextShort": "INTEGER", "nextByte": "INTEGER",
    "nextDouble": "REAL", "nextFloat": "REAL", "nextLine": "STRING", "next": "STRING",
    "nextBoolean": "BOOLEAN",
    "parseInt": "INTEGER", "parseDouble": "REAL", "parseFloat": "REAL", "valueOf": "STRING",
}

MATH_RESULT_TYPES = {
    "random": "REAL", "sqrt": "REAL", "pow": "REAL", "cbrt": "REAL",
    "round": "INTEGER", "floor": "INTEGER", "ceil": "INTEGER", "trunc": "INTEGER",
}

NUMERIC_TYPES = frozenset({"INTEGER", "REAL"})
