"""
Pseudocode Backend

Renders a lowered IR program as IGCSE pseudocode text.

Every statement renderer returns its lines unindented; the enclosing
renderer indents nested bodies by one unit. A renderer that finds a required
part missing raises ``MissingMetadata``, which ``statement()`` turns into a
``// Invalid <construct>`` line and a GENERATION_ERROR warning.
"""

import logging
from typing import List, Optional

from ..ir.nodes import IRNode
from ..ir.visitor import IRVisitor
from ..shared.errors import DiagnosticReporter, ErrorCode
from ..utils.config import ASSIGNMENT_ARROW, COMMENT_PREFIX, DEFAULT_INDENT_SIZE
from .base import Backend
from .expressions import ExpressionPrinterMixin, MissingMetadata

logger = logging.getLogger(__name__)

Lines = List[str]


class PseudocodeGenerator(ExpressionPrinterMixin, IRVisitor[Lines], Backend):
    """
    IR → IGCSE pseudocode.

    ``options`` is anything with ``indent_size`` and ``include_comments``
    attributes (normally a ``ConversionOptions``); missing attributes fall
    back to the defaults.
    """

    def __init__(self, options=None, reporter: Optional[DiagnosticReporter] = None):
        indent_size = getattr(options, "indent_size", DEFAULT_INDENT_SIZE)
        self.indent_unit = " " * max(int(indent_size), 0)
        self.include_comments = bool(getattr(options, "include_comments", True))
        self.reporter = reporter if reporter is not None else DiagnosticReporter()

    @property
    def warnings(self):
        return self.reporter.warnings

    def generate(self, program: IRNode) -> str:
        logger.debug(f"[pseudocode] generating from {len(program.children)} top-level node(s)")
        if program.kind != "program":
            return "\n".join(self.statement(program))
        return "\n".join(self.visit_program(program))

    # =========================================================================
    # Helpers
    # =========================================================================

    def statement(self, node: IRNode) -> Lines:
        construct = node.kind.replace("_", " ")
        try:
            if node.is_expression:
                return [self.expr(node)]
            return node.accept(self)
        except MissingMetadata as e:
            self.reporter.warn(f"Invalid {construct}: {e}", ErrorCode.GENERATION_ERROR, node.location)
        except Exception as e:
            logger.warning(f"[pseudocode] could not render {node.kind}: {e}")
            self.reporter.warn(f"Could not render {construct}: {e}", ErrorCode.GENERATION_ERROR, node.location)
        return self._comment(f"Invalid {construct}")

    def generic_visit(self, node: IRNode) -> Lines:
        raise MissingMetadata(node.kind.replace("_", " "), "renderer")

    def body(self, node: Optional[IRNode]) -> Lines:
        """Lines of a nested body, indented one level."""
        if node is None:
            return []
        lines = self.visit_block(node) if node.kind == "block" else self.statement(node)
        return [self.indent_unit + line if line else line for line in lines]

    def _comment(self, text: str) -> Lines:
        if not self.include_comments:
            return []
        return [f"{COMMENT_PREFIX}{text}"]

    @staticmethod
    def _require(node: IRNode, key: str):
        value = node.get(key)
        if value is None or value == "":
            raise MissingMetadata(node.kind.replace("_", " "), key)
        return value

    @staticmethod
    def _child(node: IRNode, index: int) -> IRNode:
        if len(node.children) <= index:
            raise MissingMetadata(node.kind.replace("_", " "), "body")
        return node.children[index]

    # =========================================================================
    # Program structure
    # =========================================================================

    def visit_program(self, node: IRNode) -> Lines:
        out: Lines = []
        prev_kind = None
        for stmt in node.children:
            lines = self.statement(stmt)
            if not lines:
                continue
            is_function = stmt.kind == "function_declaration"
            if out and (is_function and prev_kind != "comment" or prev_kind == "function_declaration"):
                out.append("")
            out.extend(lines)
            prev_kind = stmt.kind
        return out

    def visit_block(self, node: IRNode) -> Lines:
        out: Lines = []
        for stmt in node.children:
            out.extend(self.statement(stmt))
        return out

    def visit_comment(self, node: IRNode) -> Lines:
        return self._comment(str(node.get("text", "")))

    def visit_unsupported(self, node: IRNode) -> Lines:
        return self._comment(f"Unsupported: {node.get('text') or node.get('construct', '')}")

    # =========================================================================
    # Declarations
    # =========================================================================

    def _modifier_comments(self, node: IRNode) -> Lines:
        lines: Lines = []
        if node.get("is_static"):
            lines += self._comment("Static variable")
        if node.get("is_constant"):
            lines += self._comment("Constant variable")
        return lines

    def visit_variable_declaration(self, node: IRNode) -> Lines:
        name = self._require(node, "name")
        data_type = self._require(node, "data_type")
        lines = self._modifier_comments(node) + [f"DECLARE {name} : {data_type}"]
        initial = node.get("initial_value")
        if initial is not None:
            lines.append(f"{name} {ASSIGNMENT_ARROW} {self.expr(initial)}")
        return lines

    def visit_array_declaration(self, node: IRNode) -> Lines:
        name = self._require(node, "name")
        data_type = self._require(node, "data_type")
        lines = self._modifier_comments(node) + [f"DECLARE {name} : {data_type}"]
        if node.children:
            lines += self._element_assignments(name, node.children)
        elif node.get("initial_value") is not None:
            lines.append(f"{name} {ASSIGNMENT_ARROW} {self.expr(node.get('initial_value'))}")
        return lines

    def _element_assignments(self, prefix: str, elements: List[IRNode]) -> Lines:
        lines: Lines = []
        for i, element in enumerate(elements, start=1):
            target = f"{prefix}[{i}]"
            if element.kind == "array_literal":
                lines += self._element_assignments(target, element.children)
            else:
                lines.append(f"{target} {ASSIGNMENT_ARROW} {self.expr(element)}")
        return lines

    def visit_function_declaration(self, node: IRNode) -> Lines:
        name = self._require(node, "name")
        params = ", ".join(f"{p['name']} : {p['type']}" for p in node.get("parameters") or [])
        lines: Lines = []
        if node.get("is_static") and not node.get("is_constructor"):
            lines += self._comment("Static method")
        if node.get("is_procedure"):
            lines.append(f"PROCEDURE {name}({params})")
            end = "ENDPROCEDURE"
        else:
            lines.append(f"FUNCTION {name}({params}) RETURNS {self._require(node, 'return_type')}")
            end = "ENDFUNCTION"
        for child in node.children:
            lines += self.body(child)
        lines.append(end)
        return lines

    # =========================================================================
    # Simple statements
    # =========================================================================

    def visit_assignment(self, node: IRNode) -> Lines:
        if len(node.children) != 2:
            raise MissingMetadata("assignment", "target")
        target, value = node.children
        return [f"{self.expr(target)} {ASSIGNMENT_ARROW} {self.expr(value)}"]

    def visit_expression_statement(self, node: IRNode) -> Lines:
        return [self.expr(self._child(node, 0))]

    def visit_call_statement(self, node: IRNode) -> Lines:
        return [f"CALL {self.expr(self._child(node, 0))}"]

    def visit_output_statement(self, node: IRNode) -> Lines:
        if not node.children:
            raise MissingMetadata("output statement", "value")
        return ["OUTPUT " + ", ".join(self.expr(c) for c in node.children)]

    def visit_input_statement(self, node: IRNode) -> Lines:
        target = self.expr(self._child(node, 0))
        prompt = node.get("prompt")
        if prompt is not None:
            return [f"INPUT {self.expr(prompt)}, {target}"]
        return [f"INPUT {target}"]

    def visit_return_statement(self, node: IRNode) -> Lines:
        if not node.children:
            return ["RETURN"]
        return [f"RETURN {self.expr(node.children[0])}"]

    # =========================================================================
    # Control structures
    # =========================================================================

    def visit_if_statement(self, node: IRNode) -> Lines:
        condition = self.expr(self._require(node, "condition"))
        lines = [f"IF {condition} THEN"] + self.body(self._child(node, 0))
        if len(node.children) > 1:
            lines.append("ELSE")
            lines += self.body(node.children[1])
        lines.append("ENDIF")
        return lines

    def visit_while_loop(self, node: IRNode) -> Lines:
        condition = self.expr(self._require(node, "condition"))
        return [f"WHILE {condition} DO"] + self.body(self._child(node, 0)) + ["ENDWHILE"]

    def visit_repeat_until(self, node: IRNode) -> Lines:
        condition = self.expr(self._require(node, "condition"))
        return ["REPEAT"] + self.body(self._child(node, 0)) + [f"UNTIL {condition}"]

    def visit_for_loop(self, node: IRNode) -> Lines:
        variable = self._require(node, "variable")
        start = self.expr(self._require(node, "start"))
        end = self.expr(self._require(node, "end"))
        header = f"FOR {variable} {ASSIGNMENT_ARROW} {start} TO {end}"
        step = node.get("step")
        if step is not None:
            step_text = self.expr(step)
            if step_text != "1":
                header += f" STEP {step_text}"
        return [header] + self.body(self._child(node, 0)) + [f"NEXT {variable}"]

    def visit_switch_statement(self, node: IRNode) -> Lines:
        expression = self.expr(self._require(node, "expression"))
        lines = [f"CASE OF {expression}"]
        for case in node.children:
            lines += [self.indent_unit + line if line else line for line in self.statement(case)]
        lines.append("ENDCASE")
        return lines

    def visit_case_statement(self, node: IRNode) -> Lines:
        value = self._require(node, "value")
        label = self.expr(value) if isinstance(value, IRNode) else str(value)
        return [f"{label}:"] + self.body(self._child(node, 0))

    def visit_default_case(self, node: IRNode) -> Lines:
        return ["OTHERWISE:"] + self.body(self._child(node, 0))
