"""Pseudocode expression printers. Operators arrive in IGCSE spelling; only parentheses are decided here."""

from ..ir.nodes import IRNode
from ..shared.operators import COMPARISON_OPERATORS, NON_ASSOCIATIVE, precedence


class MissingMetadata(Exception):
    """An IR node lacks a part its renderer needs."""

    def __init__(self, construct: str, key: str):
        super().__init__(f"{construct} has no {key}")
        self.construct = construct
        self.key = key


class ExpressionPrinterMixin:
    """``visit_<kind>`` for expression IR; each returns the rendered text."""

    def expr(self, node: IRNode) -> str:
        if node is None:
            raise MissingMetadata("expression", "value")
        return node.accept(self)

    def visit_literal(self, node: IRNode) -> str:
        return str(node.get("value", ""))

    def visit_identifier(self, node: IRNode) -> str:
        return str(node.get("name", ""))

    def visit_raw_expression(self, node: IRNode) -> str:
        return _wrap(str(node.get("text", "")), node)

    def visit_binary_operation(self, node: IRNode) -> str:
        op = node.get("operator")
        left, right = node.children
        text = f"{self._operand(left, op, False)} {op} {self._operand(right, op, True)}"
        return _wrap(text, node)

    def _operand(self, child: IRNode, parent_op: str, is_right: bool) -> str:
        text = self.expr(child)
        if child.kind != "binary_operation" or child.get("parenthesized"):
            return text
        inner, outer = precedence(child.get("operator")), precedence(parent_op)
        if inner < outer:
            return f"({text})"
        if inner == outer and (is_right and parent_op in NON_ASSOCIATIVE or parent_op in COMPARISON_OPERATORS):
            return f"({text})"
        return text

    def visit_unary_operation(self, node: IRNode) -> str:
        op = node.get("operator")
        operand = node.children[0]
        text = self.expr(operand)
        if operand.kind == "binary_operation" and not operand.get("parenthesized"):
            text = f"({text})"
        return _wrap(f"NOT {text}" if op == "NOT" else f"{op}{text}", node)

    def visit_method_call(self, node: IRNode) -> str:
        args = ", ".join(self.expr(a) for a in node.children)
        return f"{node.get('name')}({args})"

    def visit_array_access(self, node: IRNode) -> str:
        base, index = node.children
        return f"{self.expr(base)}[{self.expr(index)}]"

    def visit_member_access(self, node: IRNode) -> str:
        return f"{self.expr(node.children[0])}.{node.get('member')}"

    def visit_array_literal(self, node: IRNode) -> str:
        return "[" + ", ".join(self.expr(e) for e in node.children) + "]"


def _wrap(text: str, node: IRNode) -> str:
    return f"({text})" if node.get("parenthesized") else text
