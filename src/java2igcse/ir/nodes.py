"""
IR Nodes

Language-agnostic intermediate representation consumed by the pseudocode
backend. Every node has a closed ``IRCategory`` and an open ``kind`` string
naming its rendering rule.

Conventions:
- ``children`` hold nested statements (bodies) or sub-expressions
- named parts (condition, target, loop bounds, ...) live in ``metadata``
- operators are already IGCSE spellings when a node is built
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, TYPE_CHECKING

from ..shared.errors import ConversionImplementationError
from ..shared.source_location import SourceLocation

if TYPE_CHECKING:
    from .visitor import IRVisitor


class IRCategory(str, Enum):
    PROGRAM = "program"
    STATEMENT = "statement"
    EXPRESSION = "expression"
    DECLARATION = "declaration"
    CONTROL_STRUCTURE = "control_structure"
    FUNCTION_DECLARATION = "function_declaration"
    VARIABLE_DECLARATION = "variable_declaration"
    ARRAY_DECLARATION = "array_declaration"
    ASSIGNMENT = "assignment"
    METHOD_CALL = "method_call"
    BINARY_OPERATION = "binary_operation"
    UNARY_OPERATION = "unary_operation"
    LITERAL = "literal"
    IDENTIFIER = "identifier"


class IRNode:
    """
    Base class for all IR nodes.

    Design: Regular class with __slots__; equality compares all slots so tests
    can compare whole trees.
    """
    __slots__ = ('type', 'kind', 'children', 'metadata', 'location')

    def __init__(
        self,
        type: IRCategory,
        kind: str,
        children: Optional[Iterable[IRNode]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        location: Optional[SourceLocation] = None,
    ):
        kids = list(children) if children is not None else []
        for c in kids:
            if not isinstance(c, IRNode):
                raise ConversionImplementationError(
                    f"IR node '{kind}' received a non-IR child: {type_name(c)}"
                )
        self.type = type
        self.kind = kind
        self.children = kids
        self.metadata = dict(metadata) if metadata else {}
        self.location = location

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        """Dispatch to ``visitor.visit_<kind>`` (generic_visit when missing)."""
        method = getattr(visitor, f"visit_{self.kind}", None)
        if method is None:
            return visitor.generic_visit(self)
        return method(self)

    def annotate(self, key: str, value: Any) -> None:
        """Generator-side annotation; the only mutation IR allows after lowering."""
        self.metadata[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    @property
    def is_expression(self) -> bool:
        return self.type in _EXPRESSION_CATEGORIES

    def walk(self) -> Iterator[IRNode]:
        """Pre-order traversal including IR nodes stored in metadata."""
        yield self
        for value in self.metadata.values():
            for n in _ir_values(value):
                yield from n.walk()
        for c in self.children:
            yield from c.walk()

    def __eq__(self, other):
        if not isinstance(other, IRNode):
            return False
        return (
            self.type == other.type
            and self.kind == other.kind
            and self.children == other.children
            and self.metadata == other.metadata
        )

    def __hash__(self):
        return hash((self.type, self.kind, len(self.children)))

    def __repr__(self) -> str:
        return f"IRNode({self.type.value}:{self.kind}, children={len(self.children)})"


_EXPRESSION_CATEGORIES = frozenset({
    IRCategory.EXPRESSION, IRCategory.BINARY_OPERATION, IRCategory.UNARY_OPERATION,
    IRCategory.LITERAL, IRCategory.IDENTIFIER, IRCategory.METHOD_CALL,
})


def type_name(value: Any) -> str:
    return value.__class__.__name__


def _ir_values(value: Any) -> List[IRNode]:
    if isinstance(value, IRNode):
        return [value]
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, IRNode)]
    return []


# ============================================================================
# Expression constructors
# ============================================================================

def literal(text: str, literal_type: str = "raw", location: Optional[SourceLocation] = None) -> IRNode:
    """Literal already spelled for the target (``5``, ``"hi"``, ``TRUE``)."""
    return IRNode(IRCategory.LITERAL, "literal", metadata={"value": text, "literal_type": literal_type},
                  location=location)


def integer(value: int, location: Optional[SourceLocation] = None) -> IRNode:
    return literal(str(value), "int", location)


def identifier(name: str, location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.IDENTIFIER, "identifier", metadata={"name": name}, location=location)


def binary(operator: str, left: IRNode, right: IRNode,
           location: Optional[SourceLocation] = None, parenthesized: bool = False) -> IRNode:
    meta: Dict[str, Any] = {"operator": operator}
    if parenthesized:
        meta["parenthesized"] = True
    return IRNode(IRCategory.BINARY_OPERATION, "binary_operation", [left, right], meta, location)


def unary(operator: str, operand: IRNode, location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.UNARY_OPERATION, "unary_operation", [operand],
                  {"operator": operator}, location)


def call(name: str, args: Iterable[IRNode] = (), location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.METHOD_CALL, "method_call", list(args), {"name": name}, location)


def array_access(base: IRNode, index: IRNode, location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.EXPRESSION, "array_access", [base, index], location=location)


def member_access(obj: IRNode, member: str, location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.EXPRESSION, "member_access", [obj], {"member": member}, location)


def array_literal(elements: Iterable[IRNode], location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.EXPRESSION, "array_literal", list(elements), location=location)


def raw_expression(text: str, location: Optional[SourceLocation] = None) -> IRNode:
    """Expression kept as text (opaque input or text-level renumbering output)."""
    return IRNode(IRCategory.EXPRESSION, "raw_expression", metadata={"text": text}, location=location)


def parenthesize(node: IRNode) -> IRNode:
    """Copy of an expression node that renders inside parentheses."""
    meta = dict(node.metadata)
    meta["parenthesized"] = True
    return IRNode(node.type, node.kind, node.children, meta, node.location)


# ============================================================================
# Statement constructors
# ============================================================================

def statement(kind: str, children: Iterable[IRNode] = (), location: Optional[SourceLocation] = None,
              category: IRCategory = IRCategory.STATEMENT, **metadata: Any) -> IRNode:
    return IRNode(category, kind, list(children), metadata, location)


def block(statements: Iterable[IRNode], location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.STATEMENT, "block", list(statements), location=location)


def comment(text: str, location: Optional[SourceLocation] = None) -> IRNode:
    return IRNode(IRCategory.STATEMENT, "comment", metadata={"text": text}, location=location)


def program(statements: Iterable[IRNode], **metadata: Any) -> IRNode:
    return IRNode(IRCategory.PROGRAM, "program", list(statements), metadata)
