"""
Java lowering hooks

``System.out`` output, ``Scanner`` input and the few ``java.lang`` helpers
that have IGCSE library counterparts.
"""

import logging
from typing import List, Optional, Sequence

from ..ir import nodes as ir
from ..ir.nodes import IRNode
from ..shared.errors import ErrorCode
from ..shared.nodes import CSTKind, CSTNode
from ..utils.config import JAVA_LANGUAGE
from .ast_to_ir import ASTToIRLowerer, Chain, InputRead
from .type_mapping import METHOD_RESULT_TYPES

logger = logging.getLogger(__name__)

OUTPUT_CALLEES = frozenset({
    "System.out.println", "System.out.print", "System.out.printf",
    "System.err.println", "System.err.print",
})

# Wrapper-class parse methods and the IGCSE type they produce
PARSE_METHODS = {
    "Integer.parseInt": "INTEGER",
    "Long.parseLong": "INTEGER",
    "Short.parseShort": "INTEGER",
    "Double.parseDouble": "REAL",
    "Float.parseFloat": "REAL",
    "Integer.valueOf": "INTEGER",
    "Double.valueOf": "REAL",
}

TO_STRING_METHODS = frozenset({"String.valueOf", "Integer.toString", "Double.toString", "Long.toString"})


class JavaToIRLowerer(ASTToIRLowerer):
    language = JAVA_LANGUAGE

    def _is_scanner_creation(self, init: CSTNode) -> bool:
        return init.kind is CSTKind.NEW_EXPRESSION and str(init.value).split("<")[0].strip() == "Scanner"

    def _output_arguments(self, call: CSTNode) -> Optional[List[CSTNode]]:
        callee_text = call.children[0].text
        if callee_text not in OUTPUT_CALLEES:
            return None
        if callee_text.endswith("printf"):
            self.reporter.info("printf format string printed as written; format specifiers are not converted",
                               ErrorCode.UNSUPPORTED_FEATURE, call.location)
        return list(call.children[1:])

    def _input_read(self, node: Optional[CSTNode]) -> Optional[InputRead]:
        if node is None or node.kind is not CSTKind.CALL_EXPRESSION:
            return None
        callee = node.children[0]
        if callee.kind is not CSTKind.MEMBER_ACCESS:
            return None
        if callee.text in PARSE_METHODS and len(node.children) == 2:
            inner = self._input_read(node.children[1])
            if inner is not None:
                return InputRead(inner.prompt, PARSE_METHODS[callee.text])
            return None
        method = str(callee.value)
        if method.startswith("next") and self._is_scanner(callee.children[0]):
            return InputRead(None, METHOD_RESULT_TYPES.get(method, "STRING"))
        return None

    def _is_scanner(self, receiver: CSTNode) -> bool:
        if receiver.kind is CSTKind.IDENTIFIER:
            return receiver.value in self.ctx.scanners
        return self._is_scanner_creation(receiver)

    def lower_library_call(self, receiver: Optional[CSTNode], method: str, args: Sequence[CSTNode],
                           node: CSTNode, chain: Chain) -> Optional[IRNode]:
        if receiver is None:
            return None
        loc = node.location
        qualified = f"{receiver.text}.{method}"
        if qualified in PARSE_METHODS:
            return ir.call("STR_TO_NUM", self._lower_all(args[:1], chain), loc)
        if qualified in TO_STRING_METHODS:
            return ir.call("NUM_TO_STR", self._lower_all(args[:1], chain), loc)
        if method.startswith("next") and self._is_scanner(receiver):
            return self._opaque(node, "Reading input inside an expression")
        if method == "size" and not args:
            return ir.call("LENGTH", [self.lower_expression(receiver, chain)], loc)
        if method == "get" and len(args) == 1 and receiver.kind is CSTKind.IDENTIFIER \
                and self.ctx.renumberer.is_array(str(receiver.value)):
            index = self.lower_expression(args[0], chain)
            base = self.lower_expression(receiver, chain)
            logger.debug(f"[java] {receiver.value}.get() lowered to an array access")
            return ir.array_access(base, self.ctx.renumberer.renumber_index(index, str(receiver.value), loc), loc)
        return None
