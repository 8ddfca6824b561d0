"""
TypeScript lowering hooks

``console`` output, ``prompt`` input, number/string conversion functions and
single-quoted string literals.
"""

from typing import List, Optional, Sequence

from ..ir import nodes as ir
from ..ir.nodes import IRNode
from ..shared.nodes import CSTKind, CSTNode
from ..utils.config import TYPESCRIPT_LANGUAGE
from .ast_to_ir import ASTToIRLowerer, Chain, InputRead

OUTPUT_CALLEES = frozenset({"console.log", "console.error", "console.warn", "console.info"})

NUMBER_FUNCTIONS = {"parseInt": "INTEGER", "parseFloat": "REAL", "Number": "REAL"}

RESULT_TYPES = dict(NUMBER_FUNCTIONS, String="STRING", prompt="STRING")


class TypeScriptToIRLowerer(ASTToIRLowerer):
    language = TYPESCRIPT_LANGUAGE

    def _output_arguments(self, call: CSTNode) -> Optional[List[CSTNode]]:
        if call.children[0].text in OUTPUT_CALLEES:
            return list(call.children[1:])
        return None

    def _input_read(self, node: Optional[CSTNode]) -> Optional[InputRead]:
        if node is None or node.kind is not CSTKind.CALL_EXPRESSION:
            return None
        callee = node.children[0]
        args = node.children[1:]
        name = callee.text
        if name == "prompt":
            return InputRead(args[0] if args else None, "STRING")
        number_type = NUMBER_FUNCTIONS.get(name.replace("Number.", "") if name.startswith("Number.") else name)
        if number_type is not None and args:
            inner = self._input_read(args[0])
            if inner is not None:
                return InputRead(inner.prompt, number_type)
        return None

    def _is_procedure(self, node: CSTNode) -> bool:
        if node.kind is CSTKind.ARROW_FUNCTION and node.get("expression_body") and not node.get("return_type"):
            body = node.children[1]
            if body.kind is CSTKind.CALL_EXPRESSION:
                if self._output_arguments(body) is not None:
                    return True
                name = self._procedure_name(body.children[0])
                info = self.ctx.scopes.lookup_function(name) if name is not None else None
                return info is not None and info.is_procedure
        return bool(node.get("is_procedure"))

    def lower_library_call(self, receiver: Optional[CSTNode], method: str, args: Sequence[CSTNode],
                           node: CSTNode, chain: Chain) -> Optional[IRNode]:
        loc = node.location
        if receiver is None or receiver.kind is CSTKind.IDENTIFIER and receiver.value == "Number":
            if method in NUMBER_FUNCTIONS and args:
                return ir.call("STR_TO_NUM", self._lower_all(args[:1], chain), loc)
            if receiver is None and method == "String" and args:
                return ir.call("NUM_TO_STR", self._lower_all(args[:1], chain), loc)
            if receiver is None and method == "prompt":
                return self._opaque(node, "Reading input inside an expression")
            return None
        if method == "toString" and not args:
            return ir.call("NUM_TO_STR", [self.lower_expression(receiver, chain)], loc)
        if method == "toFixed":
            places = self._lower_all(args[:1], chain) or [ir.integer(0)]
            return ir.call("ROUND", [self.lower_expression(receiver, chain)] + places, loc)
        return None

    def library_result_type(self, function: str) -> Optional[str]:
        return RESULT_TYPES.get(function)

    def string_text(self, text: str) -> str:
        """Single-quoted strings are rewritten with double quotes."""
        if len(text) < 2 or text[0] != "'":
            return text
        body = text[1:-1].replace("\\'", "'").replace("\"", "\\\"")
        return f"\"{body}\""
