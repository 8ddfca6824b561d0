"""
TypeScript CST Transformer
Converts the lark parse tree into the CSTNode shapes produced by the Java parser
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from lark import Token, Transformer, v_args
from typing_extensions import TypeAlias

from ...shared.errors import ConversionSourceError, DiagnosticReporter, ErrorCode
from ...shared.nodes import CSTKind, CSTNode, empty_node, statement_from_expression, visibility_of
from ...shared.source_location import SourceLocation
from ..prechecks import report_fall_through
from .templates import TemplateLiteralParser

logger = logging.getLogger(__name__)

CASE_TERMINATORS = frozenset({CSTKind.BREAK_STATEMENT, CSTKind.RETURN_STATEMENT, CSTKind.CONTINUE_STATEMENT})

VOID_RETURN_TYPES = frozenset({"void", "Promise<void>", "never", "undefined"})

# A statement rule may yield nothing, one node, or several (split declarations)
StatementResult: TypeAlias = Union[None, CSTNode, List[CSTNode]]


@dataclass
class ObjectType:
    """Object type literal; renders as ``object`` inside type strings"""
    members: List[Dict[str, Any]] = field(default_factory=list)

    def __str__(self) -> str:
        return "object"


def _flatten(items: List[StatementResult]) -> List[CSTNode]:
    """Statements may come back as None (empty) or a list (split declarations)"""
    out: List[CSTNode] = []
    for item in items:
        if item is None:
            continue
        if isinstance(item, list):
            out.extend(i for i in item if i is not None)
        else:
            out.append(item)
    return out


def _as_block(node, location: Optional[SourceLocation]) -> CSTNode:
    if isinstance(node, CSTNode) and node.kind is CSTKind.BLOCK:
        return node
    return CSTNode(CSTKind.BLOCK, _flatten([node]), location=location)


def returns_value(body: CSTNode) -> bool:
    """True when a ``return expr`` is reachable without entering a nested function."""
    stack = [body]
    while stack:
        node = stack.pop()
        if node.kind is CSTKind.RETURN_STATEMENT and node.children:
            return True
        for child in node.children:
            if child.kind not in (CSTKind.METHOD_DECLARATION, CSTKind.ARROW_FUNCTION):
                stack.append(child)
    return False


@v_args(inline=True, meta=True)
class TypeScriptTransformer(Transformer):
    """
    lark tree → CSTNode.

    Locations are taken from ``meta``; ``origin`` shifts them when the tree
    comes from a template substitution parsed on its own.
    """

    def __init__(self, source: str, reporter: DiagnosticReporter,
                 parse_expression: Callable[[str, SourceLocation], CSTNode],
                 file_name: str = "<input>", origin: Optional[SourceLocation] = None) -> None:
        super().__init__()
        self.source = source
        self.reporter = reporter
        self.file_name = file_name
        self.origin = origin
        self.templates = TemplateLiteralParser(parse_expression, reporter)

    def __default__(self, data, children, meta):
        """Rules without a callback surface as conversion errors instead of raw Tree objects"""
        raise ConversionSourceError(
            message=f"Missing transformer method for grammar rule '{data}'",
            error_code=ErrorCode.PARSE_ERROR,
            category="syntax",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _loc(self, meta) -> SourceLocation:
        if meta is None or getattr(meta, "empty", True):
            return self.origin or SourceLocation(1, 1, self.file_name)
        line, column = meta.line, meta.column
        end_line, end_column = meta.end_line, meta.end_column
        if self.origin is not None:
            if line == 1:
                column += self.origin.column - 1
            line += self.origin.line - 1
            end_line += self.origin.line - 1
        return SourceLocation(line, column, self.file_name, end_line, end_column)

    def _text(self, meta) -> str:
        if meta is None or getattr(meta, "empty", True):
            return ""
        return self.source[meta.start_pos:meta.end_pos]

    def _node(self, kind: CSTKind, meta, children=None, value=None, **metadata) -> CSTNode:
        metadata["text"] = self._text(meta)
        return CSTNode(kind, list(children or []), value, self._loc(meta), metadata)

    # =========================================================================
    # Program and blocks
    # =========================================================================

    def program(self, meta, *statements):
        return CSTNode(CSTKind.PROGRAM, _flatten(statements), location=SourceLocation(1, 1, self.file_name))

    def block(self, meta, *statements):
        return CSTNode(CSTKind.BLOCK, _flatten(statements), location=self._loc(meta))

    def empty_statement(self, meta):
        return None

    def expression_statement(self, meta, expr):
        return statement_from_expression(expr, self._loc(meta))

    # =========================================================================
    # Declarations
    # =========================================================================

    def var_kind(self, meta, token):
        return str(token)

    def variable_statement(self, meta, kind, *declarators):
        return self._declaration(meta, kind, declarators)

    def _declaration(self, meta, kind: str, declarators) -> Any:
        plain = [d for d in declarators if d.kind is CSTKind.DECLARATOR]
        out: List[CSTNode] = []
        if plain:
            first_type = plain[0].get("type")
            dimensions = max((str(d.get("type") or "").count("[]") for d in plain), default=0)
            is_array = dimensions > 0 or any(
                d.children and d.children[0].kind in (CSTKind.ARRAY_LITERAL, CSTKind.NEW_ARRAY) for d in plain
            )
            out.append(self._node(CSTKind.VARIABLE_DECLARATION, meta, plain, plain[0].value,
                                  type=first_type,
                                  modifiers=[kind],
                                  var_kind=kind,
                                  is_static=False,
                                  is_final=kind == "const",
                                  visibility="package",
                                  is_array=is_array,
                                  array_dimensions=max(dimensions, 1 if is_array else 0)))
        for d in declarators:
            if d.kind is CSTKind.DESTRUCTURING_DECLARATION:
                d.metadata["var_kind"] = kind
                out.append(d)
        return out[0] if len(out) == 1 else out

    def variable_declarator(self, meta, name, type_annotation, init):
        return CSTNode(CSTKind.DECLARATOR, [init] if init is not None else [], str(name),
                       self._loc(meta), {"type": type_annotation, "text": self._text(meta)})

    def destructuring_declarator(self, meta, pattern, type_annotation, init):
        names = [target for target, _ in pattern["bindings"]]
        return self._node(CSTKind.DESTRUCTURING_DECLARATION, meta, [init], ", ".join(names),
                          pattern=pattern["kind"], bindings=pattern["bindings"], type=type_annotation)

    def array_pattern(self, meta, *elements):
        return {"kind": "array", "bindings": [(name, str(i)) for i, (name, _) in enumerate(elements)]}

    def object_pattern(self, meta, *properties):
        return {"kind": "object", "bindings": [(target, key) for key, target, _ in properties]}

    def pattern_element(self, meta, name, default):
        return str(name), default

    def pattern_property(self, meta, key, alias, default):
        return key, str(alias) if alias is not None else key, default

    def property_name(self, meta, token):
        text = str(token)
        if token.type == "STRING":
            return text[1:-1]
        return text

    # ---- functions ----------------------------------------------------------

    def async_flag(self, meta):
        return True

    def rest_flag(self, meta):
        return True

    def optional_flag(self, meta):
        return True

    def abstract_flag(self, meta):
        return True

    def default_flag(self, meta):
        return True

    def readonly_flag(self, meta):
        return True

    def member_modifier(self, meta, token):
        return str(token)

    def parameters(self, meta, *params):
        return CSTNode(CSTKind.PARAMETER_LIST, list(params), location=self._loc(meta))

    def parameter(self, meta, *args):
        modifiers = [str(m) for m in args[:-5]]
        rest, name, optional, type_annotation, default = args[-5:]
        return CSTNode(CSTKind.PARAMETER, [default] if default is not None else [], str(name),
                       self._loc(meta), {
                           "type": type_annotation,
                           "optional": bool(optional),
                           "rest": bool(rest),
                           "modifiers": modifiers,
                       })

    def _function(self, meta, name: str, params: CSTNode, return_type, body: CSTNode,
                  modifiers: List[str], is_async: bool = False, constructor: bool = False) -> CSTNode:
        return_type = str(return_type) if return_type is not None else None
        gives_value = returns_value(body)
        if constructor:
            is_procedure = True
        elif return_type is not None:
            is_procedure = return_type in VOID_RETURN_TYPES
        else:
            is_procedure = not gives_value
        if is_async and "async" not in modifiers:
            modifiers = ["async"] + modifiers
        return self._node(CSTKind.METHOD_DECLARATION, meta, [params, body], name,
                          name=name,
                          return_type=return_type,
                          parameters=[{"name": p.value, "type": p.get("type")} for p in params.children],
                          modifiers=modifiers,
                          is_static="static" in modifiers,
                          visibility=visibility_of(modifiers) if modifiers else "public",
                          is_constructor=constructor,
                          is_procedure=is_procedure,
                          is_async=is_async or "async" in modifiers,
                          returns_value=gives_value,
                          class_name=None)

    def function_declaration(self, meta, is_async, name, type_parameters, params, return_type, body):
        return self._function(meta, str(name), params, return_type, body, [], bool(is_async))

    def function_expression(self, meta, is_async, name, params, return_type, body):
        fn = self._arrow(meta, is_async, params, return_type, body)
        fn.metadata["function_expression"] = True
        fn.metadata["name"] = str(name) if name is not None else None
        return fn

    def arrow_function(self, meta, is_async, params, return_type, body):
        return self._arrow(meta, is_async, params, return_type, body)

    def _arrow(self, meta, is_async, params, return_type, body) -> CSTNode:
        return_type = str(return_type) if return_type is not None else None
        block_body = isinstance(body, CSTNode) and body.kind is CSTKind.BLOCK
        if return_type is not None:
            is_procedure = return_type in VOID_RETURN_TYPES
        else:
            is_procedure = block_body and not returns_value(body)
        return self._node(CSTKind.ARROW_FUNCTION, meta, [params, body],
                          return_type=return_type,
                          parameters=[{"name": p.value, "type": p.get("type")} for p in params.children],
                          is_async=bool(is_async),
                          expression_body=not block_body,
                          is_procedure=is_procedure)

    def single_parameter(self, meta, name):
        param = CSTNode(CSTKind.PARAMETER, value=str(name), location=self._loc(meta), metadata={"type": None})
        return CSTNode(CSTKind.PARAMETER_LIST, [param], location=self._loc(meta))

    # ---- classes -------------------------------------------------------------

    def class_declaration(self, meta, is_abstract, name, type_parameters, super_class, interfaces, *members):
        name = str(name)
        members = _flatten(members)
        for member in members:
            if member.kind is CSTKind.METHOD_DECLARATION:
                member.metadata["class_name"] = name
                if member.get("is_constructor"):
                    member.value = name
                    member.metadata["name"] = name
        logger.debug(f"[typescript] class {name} with {len(members)} member(s)")
        return self._node(CSTKind.CLASS_DECLARATION, meta, members, name,
                          class_name=name,
                          super_class=super_class,
                          interfaces=interfaces or [],
                          modifiers=["abstract"] if is_abstract else [],
                          is_static=False)

    def class_heritage(self, meta, type_text):
        return str(type_text)

    def class_implements(self, meta, *types):
        return [str(t) for t in types]

    def property_member(self, meta, *args):
        modifiers = [str(m) for m in args[:-4]]
        name, optional, type_annotation, init = args[-4:]
        declarator = CSTNode(CSTKind.DECLARATOR, [init] if init is not None else [], str(name),
                             self._loc(meta), {"type": type_annotation})
        type_text = str(type_annotation) if type_annotation is not None else None
        dimensions = type_text.count("[]") if type_text else 0
        return self._node(CSTKind.VARIABLE_DECLARATION, meta, [declarator], str(name),
                          type=type_annotation,
                          modifiers=modifiers,
                          is_static="static" in modifiers,
                          is_final="readonly" in modifiers,
                          visibility=visibility_of(modifiers) if modifiers else "public",
                          is_array=dimensions > 0,
                          array_dimensions=dimensions)

    def method_member(self, meta, *args):
        modifiers = [str(m) for m in args[:-5]]
        name, type_parameters, params, return_type, body = args[-5:]
        return self._function(meta, str(name), params, return_type, body, modifiers, "async" in modifiers)

    def constructor_member(self, meta, *args):
        modifiers = [str(m) for m in args[:-2]]
        params, body = args[-2:]
        return self._function(meta, "constructor", params, None, body, modifiers, constructor=True)

    def empty_member(self, meta):
        return None

    # ---- type-level declarations --------------------------------------------

    def interface_declaration(self, meta, name, type_parameters, *rest):
        body = rest[-1]
        extends = [str(t) for t in rest[:-1]]
        return self._node(CSTKind.INTERFACE_DECLARATION, meta, value=f"interface {name}",
                          name=str(name), members=body.members, extends=extends)

    def type_alias(self, meta, name, type_parameters, type_text):
        return self._node(CSTKind.TYPE_ALIAS, meta, value=str(name), name=str(name), type=str(type_text))

    def import_declaration(self, meta, *args):
        module = next((str(a)[1:-1] for a in reversed(args) if isinstance(a, Token) and a.type == "STRING"), "")
        return self._node(CSTKind.IMPORT_DECLARATION, meta, value=module, package=False)

    def import_clause(self, meta, *items):
        return [str(i) for i in items]

    def import_name(self, meta, *names):
        return str(names[-1])

    def export_statement(self, meta, is_default, statement):
        for node in _flatten([statement]):
            node.metadata["exported"] = True
        return statement

    # =========================================================================
    # Control flow
    # =========================================================================

    def if_statement(self, meta, condition, then, otherwise):
        loc = self._loc(meta)
        children = [condition, _as_block(then, loc)]
        if otherwise is not None:
            if isinstance(otherwise, CSTNode) and otherwise.kind is CSTKind.IF_STATEMENT:
                children.append(otherwise)
            else:
                children.append(_as_block(otherwise, loc))
        return CSTNode(CSTKind.IF_STATEMENT, children, location=loc)

    def while_statement(self, meta, condition, body):
        loc = self._loc(meta)
        return CSTNode(CSTKind.WHILE_LOOP, [condition, _as_block(body, loc)], location=loc)

    def do_while_statement(self, meta, body, condition):
        loc = self._loc(meta)
        return CSTNode(CSTKind.DO_WHILE_LOOP, [_as_block(body, loc), condition], location=loc)

    def for_statement(self, meta, init, condition, update, body):
        loc = self._loc(meta)
        return CSTNode(CSTKind.FOR_LOOP, [
            init if init is not None else empty_node(loc),
            condition if condition is not None else empty_node(loc),
            update if update is not None else empty_node(loc),
            _as_block(body, loc),
        ], location=loc)

    def for_var_init(self, meta, kind, *declarators):
        declaration = self._declaration(meta, kind, declarators)
        if isinstance(declaration, list):
            return CSTNode(CSTKind.BLOCK, declaration, location=self._loc(meta))
        return declaration

    def for_expression_init(self, meta, *exprs):
        loc = self._loc(meta)
        inits = [statement_from_expression(e, loc) for e in exprs]
        return inits[0] if len(inits) == 1 else CSTNode(CSTKind.BLOCK, inits, location=loc)

    def for_update(self, meta, *exprs):
        loc = self._loc(meta)
        update = statement_from_expression(exprs[0], loc)
        if len(exprs) > 1:
            update.metadata["extra_updates"] = [statement_from_expression(e, loc) for e in exprs[1:]]
        return update

    def for_of_statement(self, meta, kind, binding, iterable, body):
        loc = self._loc(meta)
        metadata: Dict[str, Any] = {"type": None, "var_kind": str(kind)}
        if isinstance(binding, dict):
            metadata["bindings"] = binding["bindings"]
            metadata["pattern"] = binding["kind"]
            name = "item"
        else:
            name = str(binding)
        return CSTNode(CSTKind.FOR_EACH_LOOP, [iterable, _as_block(body, loc)], name, loc, metadata)

    def for_in_statement(self, meta, kind, name, obj, body):
        loc = self._loc(meta)
        return CSTNode(CSTKind.FOR_EACH_LOOP, [obj, _as_block(body, loc)], str(name), loc,
                       {"type": None, "var_kind": str(kind), "for_in": True})

    def switch_statement(self, meta, discriminant, *clauses):
        clauses = list(clauses)
        report_fall_through(clauses, self.reporter)
        return CSTNode(CSTKind.SWITCH_STATEMENT, [discriminant] + clauses, location=self._loc(meta))

    def _case_body(self, statements) -> Tuple[List[CSTNode], bool]:
        body: List[CSTNode] = []
        has_break = False
        for stmt in _flatten(statements):
            if stmt.kind is CSTKind.BREAK_STATEMENT and stmt.value is None:
                has_break = True
                continue
            body.append(stmt)
        terminated = has_break or bool(body) and (
            body[-1].kind in CASE_TERMINATORS or body[-1].get("throws", False)
        )
        return body, terminated

    def case_clause(self, meta, label, *statements):
        body, terminated = self._case_body(statements)
        return CSTNode(CSTKind.CASE_STATEMENT, [label] + body, label.text, self._loc(meta),
                       {"arrow": False, "terminated": terminated})

    def default_clause(self, meta, *statements):
        body, terminated = self._case_body(statements)
        return CSTNode(CSTKind.DEFAULT_CASE, body, "default", self._loc(meta),
                       {"arrow": False, "terminated": terminated})

    def return_statement(self, meta, expr):
        return CSTNode(CSTKind.RETURN_STATEMENT, [expr] if expr is not None else [], location=self._loc(meta))

    def break_statement(self, meta, label):
        return CSTNode(CSTKind.BREAK_STATEMENT, value=str(label) if label else None, location=self._loc(meta))

    def continue_statement(self, meta, label):
        return CSTNode(CSTKind.CONTINUE_STATEMENT, value=str(label) if label else None, location=self._loc(meta))

    def throw_statement(self, meta, expr):
        return self._node(CSTKind.UNSUPPORTED, meta, value="throw statement", throws=True)

    def try_statement(self, meta, body, catch, finally_block):
        blocks = [body] + ([finally_block] if finally_block is not None else [])
        return self._node(CSTKind.UNSUPPORTED, meta, blocks, "try-catch block")

    def catch_clause(self, meta, *args):
        return None

    # =========================================================================
    # Types (kept as text)
    # =========================================================================

    def type_annotation(self, meta, type_text):
        return str(type_text)

    def type_name(self, meta, *names):
        return ".".join(str(n) for n in names)

    def generic_type(self, meta, name, arguments):
        return f"{name}<{arguments}>"

    def type_arguments(self, meta, *items):
        return ", ".join(str(t) for t in items[1:-1])

    def type_parameters(self, meta, *items):
        return [str(t) for t in items[1:-1]]

    def type_parameter(self, meta, name, *constraint):
        return str(name)

    def array_type(self, meta, inner):
        return f"{inner}[]"

    def union_type(self, meta, left, right):
        return f"{left} | {right}"

    def null_type(self, meta):
        return "null"

    def literal_type(self, meta, token):
        return str(token)

    def function_type(self, meta, params, result):
        return "Function"

    def object_type(self, meta, *members):
        return ObjectType(list(members))

    def property_signature(self, meta, readonly, name, optional, type_text):
        return {"name": name, "type": str(type_text), "optional": bool(optional), "readonly": bool(readonly)}

    def method_signature(self, meta, name, optional, params, return_type):
        return {"name": name, "type": str(return_type) if return_type is not None else None,
                "optional": bool(optional), "method": True,
                "parameters": [{"name": p.value, "type": p.get("type")} for p in params.children]}

    # =========================================================================
    # Expressions
    # =========================================================================

    def assign_expr(self, meta, target, *rest):
        operator = "=" if len(rest) == 1 else str(rest[0])
        return self._node(CSTKind.ASSIGNMENT_EXPRESSION, meta, [target, rest[-1]], operator)

    def conditional_expr(self, meta, condition, when_true, when_false):
        return self._node(CSTKind.CONDITIONAL_EXPRESSION, meta, [condition, when_true, when_false])

    def binary_expr(self, meta, left, operator, right):
        return self._node(CSTKind.BINARY_EXPRESSION, meta, [left, right], str(operator))

    def as_expr(self, meta, expr, type_text):
        return self._node(CSTKind.CAST_EXPRESSION, meta, [expr], str(type_text), assertion=True)

    def unary_expr(self, meta, operator, operand):
        return self._node(CSTKind.UNARY_EXPRESSION, meta, [operand], str(operator))

    def typeof_expr(self, meta, operand):
        return self._node(CSTKind.UNARY_EXPRESSION, meta, [operand], "typeof")

    def await_expr(self, meta, operand):
        return self._node(CSTKind.AWAIT_EXPRESSION, meta, [operand])

    def prefix_update(self, meta, operator, operand):
        return self._node(CSTKind.UPDATE_EXPRESSION, meta, [operand], str(operator), prefix=True)

    def postfix_update(self, meta, operand, operator):
        return self._node(CSTKind.UPDATE_EXPRESSION, meta, [operand], str(operator), prefix=False)

    def member_expr(self, meta, obj, name):
        return self._node(CSTKind.MEMBER_ACCESS, meta, [obj], name)

    def optional_member_expr(self, meta, obj, token, name):
        return self._node(CSTKind.MEMBER_ACCESS, meta, [obj], name, optional=True)

    def index_expr(self, meta, obj, index):
        return self._node(CSTKind.INDEX_ACCESS, meta, [obj, index])

    def call_expr(self, meta, callee, arguments):
        return self._node(CSTKind.CALL_EXPRESSION, meta, [callee] + arguments)

    def arguments(self, meta, *args):
        return list(args)

    def non_null_expr(self, meta, expr, token):
        return expr

    def spread_expr(self, meta, expr):
        return self._node(CSTKind.UNSUPPORTED, meta, [expr], "spread syntax")

    def paren_expr(self, meta, inner):
        inner.metadata["parenthesized"] = True
        inner.metadata["text"] = self._text(meta)
        return inner

    def new_expr(self, meta, type_name, type_arguments, arguments):
        return self._node(CSTKind.NEW_EXPRESSION, meta, arguments, str(type_name),
                          type_arguments=type_arguments)

    def array_literal(self, meta, *elements):
        return self._node(CSTKind.ARRAY_LITERAL, meta, elements)

    def object_literal(self, meta, *properties):
        return self._node(CSTKind.OBJECT_LITERAL, meta, [v for _, v in properties],
                          keys=[k for k, _ in properties])

    def keyed_property(self, meta, key, value):
        return key, value

    def shorthand_property(self, meta, name):
        return str(name), self._node(CSTKind.IDENTIFIER, meta, value=str(name))

    def spread_property(self, meta, expr):
        return "...", expr

    # ---- primaries -------------------------------------------------------------

    def identifier(self, meta, token):
        return self._node(CSTKind.IDENTIFIER, meta, value=str(token))

    def number(self, meta, token):
        raw = str(token).replace("_", "").rstrip("n")
        is_float = not raw.lower().startswith(("0x", "0b")) and any(ch in raw for ch in ".eE")
        return self._node(CSTKind.LITERAL, meta, value=raw, literal_type="float" if is_float else "int")

    def string(self, meta, token):
        return self._node(CSTKind.LITERAL, meta, value=str(token), literal_type="string")

    def template(self, meta, token):
        return self.templates.parse(str(token), self._loc(meta))

    def true(self, meta):
        return self._node(CSTKind.LITERAL, meta, value="true", literal_type="boolean")

    def false(self, meta):
        return self._node(CSTKind.LITERAL, meta, value="false", literal_type="boolean")

    def null(self, meta):
        return self._node(CSTKind.LITERAL, meta, value="null", literal_type="null")

    def this(self, meta):
        return self._node(CSTKind.THIS, meta, value="this")
