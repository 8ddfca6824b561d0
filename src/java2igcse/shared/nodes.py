"""
Concrete Syntax Tree (CST) Definitions

Both frontends produce these nodes: the hand-written Java parser directly, and
the lark-based TypeScript frontend through its tree transformer. Lowering
dispatches on ``CSTNode.kind``.

Node shape: ``{type, children, value, location, metadata}``. Nodes own their
children; there are no parent pointers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .source_location import SourceLocation


class CSTKind(str, Enum):
    """
    CST node tags.

    Child layout per kind (``value`` in brackets):

    - program / block: statements
    - variable_declaration: declarator nodes; ``metadata["type"]``
    - declarator [name]: initializer or nothing
    - assignment: target, value; ``metadata["operator"]``
    - increment: target; ``metadata["operator"]`` is ``++`` or ``--``
    - if_statement: condition, then-block, optional else (block or if_statement)
    - while_loop: condition, body; do_while_loop: body, condition
    - for_loop: init, condition, update, body (``empty`` for missing parts)
    - for_each_loop [variable]: iterable, body
    - switch_statement: discriminant, case_statement..., optional default_case
    - case_statement [label text]: label expression, statements...
    - default_case: statements
    - return_statement: optional expression
    - class_declaration [name]: members
    - method_declaration [name]: parameter_list, body
    - parameter [name]
    - expression_statement: expression
    - statement: parse-error placeholder (``metadata["parse_error"]``)
    - binary_expression / assignment_expression [operator]: left, right
    - unary_expression / update_expression [operator]: operand
    - conditional_expression: condition, when-true, when-false
    - member_access [member]: object
    - index_access: object, index
    - call_expression: callee, arguments...
    - new_expression [type]: arguments...
    - new_array: dimension expressions..., optional array_literal
    - cast_expression [type]: operand
    - literal [raw source text]; identifier [name]
    """

    PROGRAM = "program"
    BLOCK = "block"
    EMPTY = "empty"

    # Declarations
    VARIABLE_DECLARATION = "variable_declaration"
    DECLARATOR = "declarator"
    CLASS_DECLARATION = "class_declaration"
    METHOD_DECLARATION = "method_declaration"
    PARAMETER_LIST = "parameter_list"
    PARAMETER = "parameter"
    INTERFACE_DECLARATION = "interface_declaration"
    TYPE_ALIAS = "type_alias"
    IMPORT_DECLARATION = "import_declaration"
    DESTRUCTURING_DECLARATION = "destructuring_declaration"

    # Statements
    ASSIGNMENT = "assignment"
    INCREMENT = "increment"
    EXPRESSION_STATEMENT = "expression_statement"
    IF_STATEMENT = "if_statement"
    WHILE_LOOP = "while_loop"
    DO_WHILE_LOOP = "do_while_loop"
    FOR_LOOP = "for_loop"
    FOR_EACH_LOOP = "for_each_loop"
    SWITCH_STATEMENT = "switch_statement"
    CASE_STATEMENT = "case_statement"
    DEFAULT_CASE = "default_case"
    BREAK_STATEMENT = "break_statement"
    CONTINUE_STATEMENT = "continue_statement"
    RETURN_STATEMENT = "return_statement"
    STATEMENT = "statement"

    # Expressions
    BINARY_EXPRESSION = "binary_expression"
    UNARY_EXPRESSION = "unary_expression"
    UPDATE_EXPRESSION = "update_expression"
    ASSIGNMENT_EXPRESSION = "assignment_expression"
    CONDITIONAL_EXPRESSION = "conditional_expression"
    LITERAL = "literal"
    IDENTIFIER = "identifier"
    THIS = "this"
    MEMBER_ACCESS = "member_access"
    INDEX_ACCESS = "index_access"
    CALL_EXPRESSION = "call_expression"
    NEW_EXPRESSION = "new_expression"
    NEW_ARRAY = "new_array"
    ARRAY_LITERAL = "array_literal"
    CAST_EXPRESSION = "cast_expression"
    TEMPLATE_LITERAL = "template_literal"
    ARROW_FUNCTION = "arrow_function"
    AWAIT_EXPRESSION = "await_expression"
    OBJECT_LITERAL = "object_literal"

    # Escape hatch for constructs that are recognised but not converted
    UNSUPPORTED = "unsupported"


EXPRESSION_KINDS = frozenset({
    CSTKind.BINARY_EXPRESSION, CSTKind.UNARY_EXPRESSION, CSTKind.UPDATE_EXPRESSION,
    CSTKind.ASSIGNMENT_EXPRESSION, CSTKind.CONDITIONAL_EXPRESSION, CSTKind.LITERAL,
    CSTKind.IDENTIFIER, CSTKind.THIS, CSTKind.MEMBER_ACCESS, CSTKind.INDEX_ACCESS,
    CSTKind.CALL_EXPRESSION, CSTKind.NEW_EXPRESSION, CSTKind.NEW_ARRAY,
    CSTKind.ARRAY_LITERAL, CSTKind.CAST_EXPRESSION, CSTKind.TEMPLATE_LITERAL,
    CSTKind.ARROW_FUNCTION, CSTKind.AWAIT_EXPRESSION, CSTKind.OBJECT_LITERAL,
})

LOOP_KINDS = frozenset({
    CSTKind.WHILE_LOOP, CSTKind.DO_WHILE_LOOP, CSTKind.FOR_LOOP, CSTKind.FOR_EACH_LOOP,
})


@dataclass
class CSTNode:
    """One node of the concrete syntax tree."""
    kind: CSTKind
    children: List[CSTNode] = field(default_factory=list)
    value: Any = None
    location: Optional[SourceLocation] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        """Tag as a plain string (collaborator node shape)."""
        return self.kind.value

    @property
    def text(self) -> str:
        """Verbatim source text when the frontend recorded it."""
        text = self.metadata.get("text")
        if text is not None:
            return text
        return "" if self.value is None else str(self.value)

    @property
    def is_expression(self) -> bool:
        return self.kind in EXPRESSION_KINDS

    def get(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def child(self, index: int) -> Optional[CSTNode]:
        if 0 <= index < len(self.children):
            return self.children[index]
        return None

    def walk(self) -> Iterator[CSTNode]:
        """Pre-order traversal of this subtree."""
        yield self
        for c in self.children:
            yield from c.walk()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "children": [c.to_dict() for c in self.children],
        }
        if self.value is not None:
            out["value"] = self.value
        if self.location is not None:
            out["location"] = {"line": self.location.line, "column": self.location.column}
        if self.metadata:
            out["metadata"] = {
                k: (v.to_dict() if isinstance(v, CSTNode) else v)
                for k, v in self.metadata.items()
            }
        return out


def empty_node(location: Optional[SourceLocation] = None) -> CSTNode:
    return CSTNode(CSTKind.EMPTY, location=location)


VISIBILITY_MODIFIERS = ("public", "private", "protected")


def visibility_of(modifiers: List[str]) -> str:
    for m in VISIBILITY_MODIFIERS:
        if m in modifiers:
            return m
    return "package"


def statement_from_expression(expr: CSTNode, loc: Optional[SourceLocation]) -> CSTNode:
    """Assignment and ``++``/``--`` expressions become statement nodes."""
    text = expr.get("text")
    if expr.kind is CSTKind.ASSIGNMENT_EXPRESSION:
        return CSTNode(CSTKind.ASSIGNMENT, list(expr.children), None, loc,
                       {"operator": expr.value, "text": text})
    if expr.kind is CSTKind.UPDATE_EXPRESSION:
        return CSTNode(CSTKind.INCREMENT, list(expr.children), None, loc,
                       {"operator": expr.value, "prefix": expr.get("prefix", False), "text": text})
    return CSTNode(CSTKind.EXPRESSION_STATEMENT, [expr], None, loc, {"text": text})
