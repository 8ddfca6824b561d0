"""
IR Visitor

Dispatch is by ``IRNode.kind``: ``node.accept(v)`` calls ``v.visit_<kind>``
and falls back to ``generic_visit`` for kinds the visitor does not handle.
"""

from typing import Generic, List, TypeVar

from .nodes import IRNode

T = TypeVar('T')


class IRVisitor(Generic[T]):
    """Visitor for IR nodes (no isinstance needed)."""

    def visit(self, node: IRNode) -> T:
        return node.accept(self)

    def visit_all(self, nodes: List[IRNode]) -> List[T]:
        return [n.accept(self) for n in nodes]

    def generic_visit(self, node: IRNode) -> T:
        """Called for kinds without a visit_<kind> method."""
        raise NotImplementedError(f"No visitor method for IR kind '{node.kind}'")
