"""
AST to IR Lowering

CST (either frontend) → IR. One ``ASTToIRLowerer`` subclass per source
language supplies the language hooks (output and input calls, literal
spelling, library calls); everything else is shared.

Dispatch is by ``CSTKind``: a node of kind ``k`` is lowered by ``_lower_<k>``.
Every handler receives the node and its ``chain``, the tuple of ancestors from
the program root down to (excluding) the node; nodes carry no parent pointers.

Failures stay local: a statement whose lowering raises becomes a comment and a
``TRANSFORMATION_ERROR`` warning, and lowering carries on with the next one.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Dict, List, Optional, Sequence, Tuple, Type, Union

from typing_extensions import TypeAlias

from ..ir import nodes as ir
from ..ir.nodes import IRCategory, IRNode
from ..shared.errors import ConversionError, ConversionSourceError, ConversionWarning, ErrorCode
from ..shared.nodes import CSTKind, CSTNode, LOOP_KINDS
from ..shared.operators import COMPARISON_OPERATORS, negate_comparison, normalize_operator
from ..shared.scope import FunctionInfo, ScopeKind, VariableInfo
from ..shared.source_location import SourceLocation
from ..utils.config import (
    DEFAULT_FALLBACK_TYPE, MAX_LOWERING_DEPTH, PSEUDOCODE_FALSE, PSEUDOCODE_TRUE, STRING_CONCAT_OPERATOR,
)
from . import loop_bounds
from .base import BasePass, ConversionContext
from .string_methods import lower_math_call
from .type_mapping import (
    COLLECTION_TYPES, MATH_RESULT_TYPES, METHOD_RESULT_TYPES, NUMERIC_TYPES, TypeMapper, format_array_type,
    infer_literal_type, is_void, split_array_suffix,
)

logger = logging.getLogger(__name__)

# Ancestors of the node being lowered, outermost first
Chain: TypeAlias = Tuple[CSTNode, ...]

_LOGICAL_SOURCE_OPERATORS = frozenset({"&&", "||"})
_COMPARISON_SOURCE_OPERATORS = frozenset({"==", "!=", "===", "!==", "<", ">", "<=", ">="})
_ARITHMETIC_SOURCE_OPERATORS = frozenset({"+", "-", "*", "/", "%", "**"})
_FLIPPED = {"<": ">", ">": "<", "<=": ">=", ">=": "<=", "!=": "!="}
_COUNTING_OPERATORS = frozenset(_FLIPPED)
_COMPOUND_OPERATORS = {"+=": "+", "-=": "-", "*=": "*", "/=": "/", "%=": "%"}
_MATH_CONSTANTS = {"PI": "3.14159265", "E": "2.71828183"}
_INT_CASTS = frozenset({"int", "long", "short", "byte"})
_PAREN_KINDS = frozenset({"binary_operation", "unary_operation"})
_LITERAL_TYPES = {"int": "INTEGER", "float": "REAL", "string": "STRING", "char": "CHAR", "boolean": "BOOLEAN"}


@dataclass
class TransformResult:
    """IR program plus the diagnostics raised while lowering it."""
    result: Optional[IRNode]
    warnings: List[ConversionWarning] = field(default_factory=list)
    success: bool = True


@dataclass
class InputRead:
    """A read from standard input found in an initializer or assignment."""
    prompt: Optional[CSTNode] = None
    type: Optional[str] = None


@dataclass
class CountingLoop:
    """A classic for-loop that maps onto ``FOR v ← a TO b [STEP s]``."""
    variable: str
    start: CSTNode
    operator: str
    limit: CSTNode
    sign: int
    magnitude: Optional[CSTNode]


class ASTToIRLoweringPass(BasePass):
    """CST → IR for the context's source language."""
    requires = []

    def run(self, ast: Optional[CSTNode], ctx: ConversionContext) -> TransformResult:
        lowerer = ASTToIRLowerer.for_language(ctx.language)(ctx)
        return lowerer.transform(ast)


class ASTToIRLowerer:
    """
    Shared CST → IR lowering.

    Subclasses set ``language`` and override the hooks in the last section;
    they register themselves, and ``for_language`` picks the right one.
    """

    language: ClassVar[str] = ""
    _registry: ClassVar[Dict[str, Type['ASTToIRLowerer']]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.language:
            ASTToIRLowerer._registry[cls.language] = cls

    @classmethod
    def for_language(cls, language: str) -> Type['ASTToIRLowerer']:
        try:
            return cls._registry[language]
        except KeyError:
            raise ConversionError(f"No lowering registered for language '{language}'") from None

    def __init__(self, ctx: ConversionContext):
        self.ctx = ctx
        self.reporter = ctx.reporter

    # =========================================================================
    # Entry point
    # =========================================================================

    def transform(self, ast: Optional[CSTNode]) -> TransformResult:
        self.ctx.reset()
        first_warning = len(self.reporter.warnings)
        if ast is None or ast.kind is not CSTKind.PROGRAM:
            self.reporter.error("Expected a program node to transform", ErrorCode.TRANSFORMATION_ERROR,
                                ast.location if ast is not None else None)
            return TransformResult(None, self.reporter.warnings[first_warning:], success=False)

        logger.debug(f"[ast_to_ir] lowering {len(ast.children)} top-level statement(s) ({self.language})")
        self._predeclare(ast)
        statements = self.lower_statements(ast.children, ())
        program = ir.program(statements, source_language=self.language)
        logger.debug(f"[ast_to_ir] produced {len(statements)} top-level IR statement(s)")
        return TransformResult(program, self.reporter.warnings[first_warning:], success=True)

    def _predeclare(self, ast: CSTNode) -> None:
        """Classes and functions are visible before their declaration."""
        types = self.ctx.types
        for node in ast.walk():
            if node.kind is CSTKind.CLASS_DECLARATION:
                types.known_classes.add(str(node.value))
            elif node.kind is CSTKind.INTERFACE_DECLARATION and node.get("name"):
                types.known_classes.add(node.get("name"))
        quiet = TypeMapper(self.ctx.language)
        quiet.known_classes = set(types.known_classes)
        for node in ast.walk():
            if node.kind is CSTKind.METHOD_DECLARATION:
                info = self._function_info(node, quiet)
                self.ctx.scopes.declare_function(info)
            elif node.kind is CSTKind.VARIABLE_DECLARATION:
                for declarator in node.children:
                    init = declarator.child(0)
                    if init is not None and init.kind is CSTKind.ARROW_FUNCTION:
                        self.ctx.scopes.declare_function(
                            self._function_info(init, quiet, str(declarator.value)))

    def _function_info(self, node: CSTNode, mapper: TypeMapper, name: Optional[str] = None) -> FunctionInfo:
        if node.get("is_constructor"):
            name = node.get("class_name") or str(node.value)
        name = name or str(node.value)
        return_type = node.get("return_type")
        procedure = self._is_procedure(node)
        return FunctionInfo(
            name=name,
            parameters=[VariableInfo(p["name"], mapper.type_string(p.get("type"))) for p in node.get("parameters", [])],
            return_type=None if procedure or return_type is None else mapper.type_string(return_type),
            is_procedure=procedure,
            is_static=bool(node.get("is_static")),
            visibility=node.get("visibility", "public"),
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    def lower_statements(self, nodes: Sequence[CSTNode], chain: Chain) -> List[IRNode]:
        out: List[IRNode] = []
        for node in nodes:
            out.extend(self.lower_statement(node, chain))
        return out

    def lower_statement(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        loc = node.location
        if len(chain) > MAX_LOWERING_DEPTH:
            self.reporter.warn(f"Nesting deeper than {MAX_LOWERING_DEPTH} levels; construct skipped",
                               ErrorCode.TRANSFORMATION_ERROR, loc)
            return [ir.comment("Skipped: nesting too deep", loc)]

        if node.is_expression:
            handler = self._lower_bare_expression
        else:
            handler = getattr(self, f"_lower_{node.kind.value}", None)
        if handler is None:
            construct = node.type.replace("_", " ")
            self.reporter.warn(f"Unsupported construct '{construct}'", ErrorCode.UNSUPPORTED_FEATURE, loc)
            return [ir.statement("unsupported", [], loc, construct=construct, text=_first_line(node.text))]

        try:
            lowered = handler(node, chain)
        except Exception as exc:
            message = exc.message if isinstance(exc, ConversionError) else (str(exc) or type(exc).__name__)
            construct = node.type.replace("_", " ")
            logger.warning(f"[ast_to_ir] could not lower {construct} at {loc}: {message}")
            self.reporter.warn(f"Could not convert {construct}: {message}", ErrorCode.TRANSFORMATION_ERROR,
                               getattr(exc, "location", None) or loc)
            return [ir.comment(f"Error converting {construct}: {_first_line(node.text)}".rstrip(": "), loc)]

        if lowered is None:
            return []
        if isinstance(lowered, IRNode):
            lowered = [lowered]
        return [n if not n.is_expression else ir.statement("expression_statement", [n], loc) for n in lowered]

    def lower_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        if len(chain) > MAX_LOWERING_DEPTH:
            raise ConversionSourceError(f"Maximum nesting depth ({MAX_LOWERING_DEPTH}) exceeded", node.location,
                                        error_code=ErrorCode.TRANSFORMATION_ERROR)
        if node.kind is CSTKind.EMPTY:
            return ir.raw_expression("", node.location)
        if node.kind is CSTKind.UNSUPPORTED:
            construct = str(node.value or "construct")
            return self._opaque(node, construct[0].upper() + construct[1:])
        handler = getattr(self, f"_lower_{node.kind.value}", None) if node.is_expression else None
        if handler is None:
            return self._opaque(node, f"'{node.type.replace('_', ' ')}' used as a value")
        result = handler(node, chain)
        if node.get("parenthesized") and result.kind in _PAREN_KINDS and not result.get("parenthesized"):
            result = ir.parenthesize(result)
        return result

    def _lower_all(self, nodes: Sequence[CSTNode], chain: Chain) -> List[IRNode]:
        return [self.lower_expression(n, chain) for n in nodes]

    def _opaque(self, node: CSTNode, what: str) -> IRNode:
        """Expression kept verbatim, with an info diagnostic."""
        self.reporter.info(f"{what} is not supported in IGCSE pseudocode; kept as written",
                           ErrorCode.UNSUPPORTED_FEATURE, node.location)
        return ir.raw_expression(node.text, node.location)

    def _block(self, node: Optional[CSTNode], chain: Chain) -> IRNode:
        """Body statement(s) in a fresh block scope."""
        if node is None:
            return ir.block([])
        with self.ctx.scopes.scope(ScopeKind.BLOCK):
            if node.kind is CSTKind.BLOCK:
                return ir.block(self.lower_statements(node.children, chain + (node,)), node.location)
            return ir.block(self.lower_statement(node, chain), node.location)

    # =========================================================================
    # Blocks and placeholders
    # =========================================================================

    def _lower_block(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        if node.get("abstract"):
            return [ir.comment("Abstract method: no body", node.location)]
        with self.ctx.scopes.scope(ScopeKind.BLOCK):
            return self.lower_statements(node.children, chain + (node,))

    def _lower_empty(self, node: CSTNode, chain: Chain) -> None:
        return None

    def _lower_statement(self, node: CSTNode, chain: Chain) -> IRNode:
        """Parse-error placeholder: the source line survives as a comment."""
        text = node.get("text") or node.text
        return ir.comment(f"Could not parse: {text}" if text else "Could not parse statement", node.location)

    def _lower_import_declaration(self, node: CSTNode, chain: Chain) -> None:
        logger.debug(f"[ast_to_ir] dropping import of {node.value}")
        return None

    def _lower_unsupported(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        construct = str(node.value or "construct")
        out = [ir.statement("unsupported", [], node.location, construct=construct,
                            text=_first_line(node.text) or construct)]
        # try bodies still run; keep their statements after the marker
        if construct.startswith("try"):
            for block in node.children:
                out.extend(self.lower_statement(block, chain + (node,)))
        return out

    def _lower_bare_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        return ir.statement("expression_statement", [self.lower_expression(node, chain)], node.location)

    # =========================================================================
    # Declarations
    # =========================================================================

    def _lower_variable_declaration(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        inner = chain + (node,)
        out: List[IRNode] = []
        for declarator in node.children:
            init = declarator.child(0)
            if init is not None and self._is_scanner_creation(init):
                self.ctx.scanners.add(str(declarator.value))
                logger.debug(f"[ast_to_ir] scanner '{declarator.value}' dropped")
                continue
            if init is not None and init.kind is CSTKind.ARROW_FUNCTION:
                out.extend(self._arrow_declaration(str(declarator.value), init, inner))
                continue
            out.extend(self._declare(node, declarator, inner))
        return out

    def _declare(self, decl: CSTNode, declarator: CSTNode, chain: Chain) -> List[IRNode]:
        loc = declarator.location or decl.location
        name = str(declarator.value)
        init = declarator.child(0)
        type_text = declarator.get("type") or decl.get("type")
        if type_text in ("var", "let", "const"):
            type_text = None
        is_static = bool(decl.get("is_static"))
        is_constant = bool(decl.get("is_final")) and decl.get("var_kind") != "const"

        if self._is_array_declaration(type_text, init):
            return self._array_declaration(name, type_text, init, loc, chain, is_static, is_constant)

        read = self._input_read(init) if init is not None else None
        if read is not None:
            data_type = self._declared_type(type_text, None, loc) if type_text else (read.type or DEFAULT_FALLBACK_TYPE)
            self._declare_variable(name, data_type, is_constant=is_constant)
            return [
                ir.statement("variable_declaration", [], loc, IRCategory.VARIABLE_DECLARATION,
                             name=name, data_type=data_type, initial_value=None,
                             is_static=is_static, is_constant=is_constant),
                self._input_statement(ir.identifier(name, loc), read, loc, chain),
            ]

        data_type = self._declared_type(type_text, init, loc)
        self._declare_variable(name, data_type, is_constant=is_constant)
        if init is not None and init.kind is CSTKind.CONDITIONAL_EXPRESSION:
            declaration = ir.statement("variable_declaration", [], loc, IRCategory.VARIABLE_DECLARATION,
                                       name=name, data_type=data_type, initial_value=None,
                                       is_static=is_static, is_constant=is_constant)
            return [declaration, self._conditional_assignment(ir.identifier(name, loc), init, chain, loc)]

        initial = self._initial_value(init, chain) if init is not None else None
        return [ir.statement("variable_declaration", [], loc, IRCategory.VARIABLE_DECLARATION,
                             name=name, data_type=data_type, initial_value=initial,
                             is_static=is_static, is_constant=is_constant)]

    def _initial_value(self, init: CSTNode, chain: Chain) -> IRNode:
        if init.kind is CSTKind.NEW_EXPRESSION:
            base = str(init.value).split("<")[0].strip()
            if base == "String" and not init.children:
                return ir.literal('""', "string", init.location)
        return self.lower_expression(init, chain)

    def _declared_type(self, type_text: Optional[str], init: Optional[CSTNode], loc: Optional[SourceLocation]) -> str:
        if type_text:
            return self.ctx.types.type_string(type_text, loc)
        inferred = self._type_of(init)
        if inferred is not None:
            return inferred
        self.reporter.info(f"Could not infer a type; {DEFAULT_FALLBACK_TYPE} used",
                           ErrorCode.TYPE_CONVERSION_ERROR, loc)
        return DEFAULT_FALLBACK_TYPE

    def _declare_variable(self, name: str, data_type: str, is_array: bool = False, dimensions: int = 0,
                          is_constant: bool = False) -> None:
        self.ctx.scopes.declare_variable(VariableInfo(name, data_type, is_array, dimensions, is_constant))
        if is_array:
            self.ctx.renumberer.register_array(name)

    def _is_array_declaration(self, type_text: Optional[str], init: Optional[CSTNode]) -> bool:
        if type_text:
            text = type_text.strip()
            return text.endswith("[]") or "<" in text and text.split("<")[0].strip() in COLLECTION_TYPES
        if init is None:
            return False
        if init.kind in (CSTKind.ARRAY_LITERAL, CSTKind.NEW_ARRAY):
            return True
        return init.kind is CSTKind.NEW_EXPRESSION and str(init.value).split("<")[0].strip() in COLLECTION_TYPES

    def _array_declaration(self, name: str, type_text: Optional[str], init: Optional[CSTNode],
                           loc: Optional[SourceLocation], chain: Chain, is_static: bool,
                           is_constant: bool) -> List[IRNode]:
        if not type_text:
            type_text = infer_literal_type(init)
            if type_text is None and init is not None and init.kind is CSTKind.NEW_ARRAY:
                type_text = f"{init.value}{'[]' * max(int(init.get('dimensions', 1)), 1)}"
        if type_text is None:
            self.reporter.info(f"Could not infer the element type of array '{name}'; {DEFAULT_FALLBACK_TYPE} used",
                               ErrorCode.TYPE_CONVERSION_ERROR, loc)
            type_text = f"{DEFAULT_FALLBACK_TYPE.lower()}[]"
        mapped = self.ctx.types.map(type_text, loc)
        dimensions = max(mapped.dimensions, 1)

        elements: List[IRNode] = []
        sizes: List[str] = []
        initial: Optional[IRNode] = None
        literal = None
        if init is not None and init.kind is CSTKind.ARRAY_LITERAL:
            literal = init
        elif init is not None and init.kind is CSTKind.NEW_ARRAY:
            literal = next((c for c in init.children if c.kind is CSTKind.ARRAY_LITERAL), None)
            sizes = [loop_bounds.length_calls_to_igcse(c.text) for c in init.children
                     if c.kind is not CSTKind.ARRAY_LITERAL]
        elif init is not None and init.kind is CSTKind.NEW_EXPRESSION:
            if str(init.value).split("<")[0].strip() == "Array" and init.children:
                sizes = [loop_bounds.length_calls_to_igcse(init.children[0].text)]
        elif init is not None:
            initial = self.lower_expression(init, chain)
        if literal is not None:
            sizes = _literal_sizes(literal, dimensions)
            elements = [self._array_element(e, chain) for e in literal.children]

        data_type = format_array_type(mapped.base, (sizes + ["SIZE"] * dimensions)[:dimensions])
        self._declare_variable(name, mapped.base, True, dimensions, is_constant)
        return [ir.statement("array_declaration", elements, loc, IRCategory.ARRAY_DECLARATION,
                             name=name, data_type=data_type, element_type=mapped.base, dimensions=dimensions,
                             initial_value=initial, is_static=is_static, is_constant=is_constant)]

    def _array_element(self, node: CSTNode, chain: Chain) -> IRNode:
        if node.kind is CSTKind.ARRAY_LITERAL:
            return ir.array_literal([self._array_element(e, chain) for e in node.children], node.location)
        return self.lower_expression(node, chain)

    def _lower_destructuring_declaration(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        loc = node.location
        init = node.child(0)
        pattern = node.get("pattern", "array")
        self.reporter.info(f"Destructuring converted to {len(node.get('bindings', []))} separate assignment(s)",
                           ErrorCode.FEATURE_CONVERSION, loc)
        out: List[IRNode] = []
        inner = chain + (node,)
        elements = init.children if init is not None and init.kind is CSTKind.ARRAY_LITERAL else None
        source = None
        if elements is None:
            source = self.lower_expression(init, inner) if init is not None else ir.raw_expression("")
        for target, key in node.get("bindings", []):
            value_type = None
            if pattern != "array":
                value = ir.member_access(source, key, loc)
            elif elements is not None:
                position = int(key)
                element = elements[position] if position < len(elements) else None
                value = self.lower_expression(element, inner) if element is not None \
                    else ir.literal("NULL", "null", loc)
                value_type = self._type_of(element)
            else:
                value = ir.array_access(source, ir.integer(int(key) + 1), loc)
            self._declare_variable(target, value_type or DEFAULT_FALLBACK_TYPE)
            out.append(ir.statement("assignment", [ir.identifier(target, loc), value], loc, IRCategory.ASSIGNMENT))
        return out

    def _lower_class_declaration(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        loc = node.location
        name = str(node.value)
        self.reporter.info(f"Class '{name}' converted to procedural equivalents with comments",
                           ErrorCode.FEATURE_CONVERSION, loc)
        parts = []
        if node.get("super_class"):
            parts.append(f"inherits from {node.get('super_class')}")
        if node.get("interfaces"):
            parts.append(f"implements {', '.join(node.get('interfaces'))}")
        header = f"{name} {' '.join(parts)}" if parts else f"{name} class"
        out = [ir.comment(header, loc)]
        with self.ctx.scopes.scope(ScopeKind.CLASS):
            out.extend(self.lower_statements(node.children, chain + (node,)))
        return out

    def _lower_interface_declaration(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        loc = node.location
        name = node.get("name") or str(node.value).replace("interface", "").strip()
        self.reporter.info(f"Interface '{name}' converted to descriptive comments", ErrorCode.FEATURE_CONVERSION, loc)
        out = [ir.comment(f"Interface: {name}", loc)]
        if node.get("extends"):
            out.append(ir.comment(f"Extends: {', '.join(node.get('extends'))}", loc))
        members = node.get("members") or []
        properties = [m for m in members if not m.get("method")]
        methods = [m for m in members if m.get("method")]
        if properties:
            described = ", ".join(f"{m['name']} ({self.ctx.types.type_string(m.get('type'), loc)})"
                                  for m in properties)
            out.append(ir.comment(f"Properties: {described}", loc))
        if methods:
            out.append(ir.comment(f"Methods: {', '.join(m['name'] for m in methods)}", loc))
        return out

    def _lower_type_alias(self, node: CSTNode, chain: Chain) -> IRNode:
        self.reporter.info(f"Type alias '{node.get('name')}' converted to a comment", ErrorCode.FEATURE_CONVERSION,
                           node.location)
        return ir.comment(f"Type {node.get('name')} = {node.get('type')}", node.location)

    # =========================================================================
    # Procedures and functions
    # =========================================================================

    def _lower_method_declaration(self, node: CSTNode, chain: Chain) -> IRNode:
        name = str(node.value)
        if node.get("is_constructor"):
            name = node.get("class_name") or name
        params_node, body = node.children[0], node.children[1]
        return self._function(name, node, params_node, body, chain + (node,))

    def _arrow_declaration(self, name: str, arrow: CSTNode, chain: Chain) -> List[IRNode]:
        params_node, body = arrow.children[0], arrow.children[1]
        if arrow.get("expression_body"):
            body = CSTNode(CSTKind.BLOCK, [self._expression_body(arrow, body)], location=body.location)
        return [self._function(name, arrow, params_node, body, chain + (arrow,))]

    def _expression_body(self, arrow: CSTNode, expr: CSTNode) -> CSTNode:
        """``x => expr`` as a one-statement body: a RETURN, or the call itself for procedures."""
        if self._is_procedure(arrow):
            return CSTNode(CSTKind.EXPRESSION_STATEMENT, [expr], location=expr.location, metadata={"text": expr.text})
        return CSTNode(CSTKind.RETURN_STATEMENT, [expr], location=expr.location)

    def _is_procedure(self, node: CSTNode) -> bool:
        return bool(node.get("is_procedure"))

    def _function(self, name: str, node: CSTNode, params_node: CSTNode, body: CSTNode, chain: Chain) -> IRNode:
        loc = node.location
        procedure = self._is_procedure(node)
        kind_word = "procedure" if procedure else "function"
        if node.get("is_constructor"):
            self.reporter.info(f"Constructor '{name}' converted to procedure", ErrorCode.FEATURE_CONVERSION, loc)
        elif node.get("is_static"):
            self.reporter.info(f"Static method '{name}' converted to {kind_word}", ErrorCode.FEATURE_CONVERSION, loc)
        if node.get("is_async"):
            self.reporter.info(f"Async function '{name}' converted to regular {kind_word}",
                               ErrorCode.FEATURE_CONVERSION, loc)

        with self.ctx.scopes.scope(ScopeKind.FUNCTION):
            parameters = []
            for param in params_node.children:
                ptype = self._parameter_type(param)
                parameters.append({"name": str(param.value), "type": ptype})
                base, dims = split_array_suffix(param.get("type") or "")
                if dims:
                    self._declare_variable(str(param.value), self.ctx.types.map(base).base, True, dims)
                else:
                    self._declare_variable(str(param.value), ptype)
            statements = self.lower_statements(body.children, chain + (body,)) \
                if body.kind is CSTKind.BLOCK and not body.get("abstract") \
                else [ir.comment("Abstract method: no body", body.location)]
            return_type = None
            if not procedure:
                return_type = self._return_type(node, body, loc)

        info = self.ctx.scopes.lookup_function(name)
        if info is not None:
            info.return_type = return_type
        logger.debug(f"[ast_to_ir] {kind_word} {name} with {len(parameters)} parameter(s)")
        return ir.statement("function_declaration", [ir.block(statements, body.location)], loc,
                            IRCategory.FUNCTION_DECLARATION,
                            name=name, parameters=parameters, return_type=return_type,
                            is_procedure=procedure, is_static=bool(node.get("is_static")),
                            is_constructor=bool(node.get("is_constructor")))

    def _parameter_type(self, param: CSTNode) -> str:
        type_text = param.get("type")
        if not type_text:
            self.reporter.info(f"Parameter '{param.value}' has no type; {DEFAULT_FALLBACK_TYPE} used",
                               ErrorCode.TYPE_CONVERSION_ERROR, param.location)
            return DEFAULT_FALLBACK_TYPE
        return self.ctx.types.type_string(type_text, param.location)

    def _return_type(self, node: CSTNode, body: CSTNode, loc: Optional[SourceLocation]) -> str:
        declared = node.get("return_type")
        if declared and not is_void(declared):
            return self.ctx.types.type_string(declared, loc)
        for expr in _return_expressions(body):
            inferred = self._type_of(expr)
            if inferred is not None:
                return inferred
        self.reporter.info(f"Could not infer the return type; {DEFAULT_FALLBACK_TYPE} used",
                           ErrorCode.TYPE_CONVERSION_ERROR, loc)
        return DEFAULT_FALLBACK_TYPE

    def _lower_return_statement(self, node: CSTNode, chain: Chain) -> IRNode:
        loc = node.location
        value = node.child(0)
        if value is None:
            return ir.statement("return_statement", [], loc)
        if value.kind is CSTKind.CONDITIONAL_EXPRESSION:
            inner = chain + (node, value)
            cond, when_true, when_false = value.children
            return ir.statement(
                "if_statement",
                [ir.block([ir.statement("return_statement", [self.lower_expression(when_true, inner)], loc)]),
                 ir.block([ir.statement("return_statement", [self.lower_expression(when_false, inner)], loc)])],
                loc, IRCategory.CONTROL_STRUCTURE, condition=self.lower_expression(cond, inner))
        return ir.statement("return_statement", [self.lower_expression(value, chain + (node,))], loc)

    # =========================================================================
    # Assignments and calls
    # =========================================================================

    def _lower_assignment(self, node: CSTNode, chain: Chain) -> IRNode:
        loc = node.location
        inner = chain + (node,)
        target_cst, value_cst = node.children
        op = node.get("operator", "=")
        target = self.lower_expression(target_cst, inner)

        if op == "=":
            read = self._input_read(value_cst)
            if read is not None:
                return self._input_statement(target, read, loc, inner)
            if value_cst.kind is CSTKind.CONDITIONAL_EXPRESSION:
                return self._conditional_assignment(target, value_cst, inner, loc)
            value = self._initial_value(value_cst, inner)
        elif op in _COMPOUND_OPERATORS:
            source_op = _COMPOUND_OPERATORS[op]
            right = self.lower_expression(value_cst, inner)
            if source_op == "+" and (self._type_of(target_cst) == "STRING" or self._type_of(value_cst) == "STRING"):
                igcse_op = STRING_CONCAT_OPERATOR
            else:
                igcse_op = normalize_operator(source_op)
            if right.kind == "binary_operation":
                right = ir.parenthesize(right)
            value = ir.binary(igcse_op, target, right, loc)
        else:
            value = self._opaque(node, f"Compound assignment '{op}'")
        return ir.statement("assignment", [target, value], loc, IRCategory.ASSIGNMENT)

    def _conditional_assignment(self, target: IRNode, conditional: CSTNode, chain: Chain,
                                loc: Optional[SourceLocation]) -> IRNode:
        """``x = c ? a : b`` → IF c THEN x ← a ELSE x ← b ENDIF"""
        inner = chain + (conditional,)
        cond, when_true, when_false = conditional.children
        return ir.statement(
            "if_statement",
            [ir.block([ir.statement("assignment", [target, self.lower_expression(when_true, inner)], loc,
                                    IRCategory.ASSIGNMENT)]),
             ir.block([ir.statement("assignment", [target, self.lower_expression(when_false, inner)], loc,
                                    IRCategory.ASSIGNMENT)])],
            loc, IRCategory.CONTROL_STRUCTURE, condition=self.lower_expression(cond, inner))

    def _lower_increment(self, node: CSTNode, chain: Chain) -> IRNode:
        loc = node.location
        target = self.lower_expression(node.children[0], chain + (node,))
        op = "+" if node.get("operator") == "++" else "-"
        return ir.statement("assignment", [target, ir.binary(op, target, ir.integer(1), loc)], loc,
                            IRCategory.ASSIGNMENT)

    def _lower_expression_statement(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        expr = node.children[0]
        inner = chain + (node,)
        if expr.kind is CSTKind.AWAIT_EXPRESSION:
            self.reporter.info("await removed; the call is treated as synchronous", ErrorCode.FEATURE_CONVERSION,
                               expr.location)
            expr = expr.children[0]
        if expr.kind is CSTKind.ASSIGNMENT_EXPRESSION:
            return [self._lower_assignment(CSTNode(CSTKind.ASSIGNMENT, list(expr.children), None, node.location,
                                                   {"operator": expr.value, "text": expr.text}), inner)]
        if expr.kind is CSTKind.UPDATE_EXPRESSION:
            return [self._lower_increment(CSTNode(CSTKind.INCREMENT, list(expr.children), None, node.location,
                                                  {"operator": expr.value}), inner)]
        if expr.kind is CSTKind.CALL_EXPRESSION:
            return [self._call_statement(expr, inner)]
        return [ir.statement("expression_statement", [self.lower_expression(expr, inner)], node.location)]

    def _call_statement(self, call: CSTNode, chain: Chain) -> IRNode:
        loc = call.location
        output = self._output_arguments(call)
        if output is not None:
            return self._output_statement(output, chain, loc)
        if self._input_read(call) is not None:
            return ir.comment("Input read and discarded", loc)
        callee = call.children[0]
        name = self._procedure_name(callee)
        if name is not None and callee.text not in self.ctx.custom_mappings:
            info = self.ctx.scopes.lookup_function(name)
            if info is not None and info.is_procedure:
                args = self._lower_all(call.children[1:], chain + (call,))
                return ir.statement("call_statement", [ir.call(name, args, loc)], loc)
        return ir.statement("expression_statement", [self.lower_expression(call, chain)], loc)

    def _procedure_name(self, callee: CSTNode) -> Optional[str]:
        """Name of a user-defined routine when ``callee`` refers to one directly."""
        if callee.kind is CSTKind.IDENTIFIER:
            return str(callee.value)
        if callee.kind is CSTKind.MEMBER_ACCESS:
            receiver = callee.children[0]
            if receiver.kind is CSTKind.THIS:
                return str(callee.value)
            if receiver.kind is CSTKind.IDENTIFIER and receiver.value in self.ctx.types.known_classes:
                return str(callee.value)
        return None

    def _output_statement(self, args: Sequence[CSTNode], chain: Chain, loc: Optional[SourceLocation]) -> IRNode:
        items: List[CSTNode] = []
        for arg in args:
            items.extend(self._output_items(arg))
        lowered = self._lower_all(items, chain) or [ir.literal('""', "string", loc)]
        return ir.statement("output_statement", lowered, loc)

    def _output_items(self, node: CSTNode) -> List[CSTNode]:
        """A ``+`` chain that builds a string prints as separate OUTPUT items."""
        if node.kind is CSTKind.BINARY_EXPRESSION and node.value == "+" and not node.get("parenthesized") \
                and self._type_of(node) == "STRING":
            return self._output_items(node.children[0]) + self._output_items(node.children[1])
        if node.kind is CSTKind.TEMPLATE_LITERAL and not node.get("parenthesized"):
            return list(node.children)
        return [node]

    def _input_statement(self, target: IRNode, read: InputRead, loc: Optional[SourceLocation],
                         chain: Chain) -> IRNode:
        prompt = self.lower_expression(read.prompt, chain) if read.prompt is not None else None
        return ir.statement("input_statement", [target], loc, prompt=prompt)

    # =========================================================================
    # Control flow
    # =========================================================================

    def _lower_if_statement(self, node: CSTNode, chain: Chain) -> IRNode:
        inner = chain + (node,)
        cond = self.lower_expression(node.children[0], inner)
        children = [self._block(node.child(1), inner)]
        otherwise = node.child(2)
        if otherwise is not None:
            if otherwise.kind is CSTKind.IF_STATEMENT:
                children.append(self._lower_if_statement(otherwise, inner))
            else:
                children.append(self._block(otherwise, inner))
        return ir.statement("if_statement", children, node.location, IRCategory.CONTROL_STRUCTURE, condition=cond)

    def _lower_while_loop(self, node: CSTNode, chain: Chain) -> IRNode:
        inner = chain + (node,)
        cond = self.lower_expression(node.children[0], inner)
        return ir.statement("while_loop", [self._block(node.child(1), inner)], node.location,
                            IRCategory.CONTROL_STRUCTURE, condition=cond)

    def _lower_do_while_loop(self, node: CSTNode, chain: Chain) -> IRNode:
        inner = chain + (node,)
        body = self._block(node.children[0], inner)
        cond = self.lower_expression(node.children[1], inner)
        return ir.statement("repeat_until", [body], node.location, IRCategory.CONTROL_STRUCTURE,
                            condition=_negate(cond))

    def _lower_for_loop(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        loop = self._counting_loop(node)
        if loop is None:
            return self._for_as_while(node, chain)

        inner = chain + (node,)
        loc = node.location
        renumberer = self.ctx.renumberer
        array_names = renumberer.context.array_names
        is_array_loop = loop_bounds.mentions_array(loop.limit.text, array_names) or \
            loop_bounds.mentions_array(loop.start.text, array_names)
        start_ir = self.lower_expression(loop.start, inner)
        limit_ir = self.lower_expression(loop.limit, inner)
        offset = loop_bounds.end_offset(loop.operator)
        if loop.operator == "!=" and loop.sign < 0:
            offset = 1
        end = loop_bounds.add_offset(limit_ir, offset)
        if is_array_loop:
            end = loop_bounds.add_offset(end, 1)
        start = loop_bounds.loop_start(start_ir, is_array_loop)
        magnitude = self.lower_expression(loop.magnitude, inner) if loop.magnitude is not None else None
        step = loop_bounds.step_node(loop.sign, magnitude)

        with self.ctx.scopes.scope(ScopeKind.BLOCK):
            self._declare_variable(loop.variable, "INTEGER")
            renumberer.enter_for_loop(loop.variable, loop.start.text, loop.limit.text, is_array_loop)
            try:
                body = self._block(node.children[3], inner)
            finally:
                renumberer.exit_for_loop(loop.variable)
        logger.debug(f"[ast_to_ir] FOR {loop.variable} array_loop={is_array_loop}")
        return [ir.statement("for_loop", [body], loc, IRCategory.CONTROL_STRUCTURE,
                             variable=loop.variable, start=start, end=end, step=step)]

    def _counting_loop(self, node: CSTNode) -> Optional[CountingLoop]:
        init, cond, update, body = node.children
        if update.get("extra_updates"):
            return None
        variable, start = _loop_init(init)
        if variable is None or cond.kind is not CSTKind.BINARY_EXPRESSION or cond.value not in _COUNTING_OPERATORS:
            return None
        left, right = cond.children
        operator = cond.value
        if _is_name(left, variable):
            limit = right
        elif _is_name(right, variable):
            limit, operator = left, _FLIPPED[operator]
        else:
            return None
        step = _loop_step(update, variable)
        if step is None:
            return None
        sign, magnitude = step
        if magnitude is not None and magnitude.kind is CSTKind.LITERAL and magnitude.get("literal_type") != "int":
            return None
        if operator in ("<", "<=") and sign < 0 or operator in (">", ">=") and sign > 0:
            return None
        if _assigns(body, variable) or _assigns(limit, variable):
            return None
        return CountingLoop(variable, start, operator, limit, sign, magnitude)

    def _for_as_while(self, node: CSTNode, chain: Chain) -> List[IRNode]:
        """A for-loop that does not count becomes its initializer plus a WHILE loop."""
        inner = chain + (node,)
        init, cond, update, body = node.children
        self.reporter.info("For loop converted to a WHILE loop", ErrorCode.FEATURE_CONVERSION, node.location)
        out = self.lower_statement(init, inner) if init.kind is not CSTKind.EMPTY else []
        condition = self.lower_expression(cond, inner) if cond.kind is not CSTKind.EMPTY \
            else ir.literal(PSEUDOCODE_TRUE, "boolean")
        block = self._block(body, inner)
        updates: List[IRNode] = []
        if update.kind is not CSTKind.EMPTY:
            for step in [update] + list(update.get("extra_updates") or []):
                updates.extend(self.lower_statement(step, inner))
        out.append(ir.statement("while_loop", [ir.block(block.children + updates, block.location)],
                                node.location, IRCategory.CONTROL_STRUCTURE, condition=condition))
        return out

    def _lower_for_each_loop(self, node: CSTNode, chain: Chain) -> Union[IRNode, List[IRNode]]:
        inner = chain + (node,)
        loc = node.location
        variable = str(node.value)
        iterable_cst, body = node.children
        iterable = self.lower_expression(iterable_cst, inner)
        renumberer = self.ctx.renumberer

        if node.get("for_in"):
            self.reporter.info(f"for...in over '{iterable_cst.text}' converted to a counting FOR loop",
                               ErrorCode.FEATURE_CONVERSION, loc)
            with self.ctx.scopes.scope(ScopeKind.BLOCK):
                self._declare_variable(variable, "INTEGER")
                renumberer.enter_for_loop(variable, "0", "LENGTH", False)
                try:
                    block = self._block(body, inner)
                finally:
                    renumberer.exit_for_loop(variable)
            end = loop_bounds.add_offset(ir.call("LENGTH", [iterable], loc), -1)
            return ir.statement("for_loop", [block], loc, IRCategory.CONTROL_STRUCTURE,
                                variable=variable, start=ir.integer(0), end=end, step=None)

        index = f"{variable}Index"
        self.reporter.info(f"Enhanced for loop over '{iterable_cst.text}' converted to an indexed FOR loop",
                           ErrorCode.FEATURE_CONVERSION, loc)
        iterated_type = self._type_of(iterable_cst)
        if iterated_type == "STRING":
            element = ir.call("MID", [iterable, ir.identifier(index), ir.integer(1)], loc)
            element_type = "CHAR"
        else:
            element = ir.array_access(iterable, ir.identifier(index), loc)
            element_type = self._element_type(iterable_cst) or (
                self.ctx.types.type_string(node.get("type"), loc) if node.get("type") else DEFAULT_FALLBACK_TYPE)

        # element and binding variables are declared ahead of the FOR header
        declarations = [self._element_declaration(variable, element_type, loc)]
        with self.ctx.scopes.scope(ScopeKind.BLOCK):
            self._declare_variable(variable, element_type)
            renumberer.enter_for_loop(index, "1", "LENGTH", True)
            try:
                first = [ir.statement("assignment", [ir.identifier(variable, loc), element], loc,
                                      IRCategory.ASSIGNMENT)]
                for target, key in node.get("bindings") or []:
                    if node.get("pattern") == "array":
                        value = ir.array_access(ir.identifier(variable), ir.integer(int(key) + 1), loc)
                    else:
                        value = ir.member_access(ir.identifier(variable), key, loc)
                    self._declare_variable(target, DEFAULT_FALLBACK_TYPE)
                    declarations.append(self._element_declaration(target, DEFAULT_FALLBACK_TYPE, loc))
                    first.append(ir.statement("assignment", [ir.identifier(target, loc), value], loc,
                                              IRCategory.ASSIGNMENT))
                block = self._block(body, inner)
            finally:
                renumberer.exit_for_loop(index)
        loop = ir.statement("for_loop", [ir.block(first + block.children, block.location)], loc,
                            IRCategory.CONTROL_STRUCTURE, variable=index, start=ir.integer(1),
                            end=ir.call("LENGTH", [iterable], loc), step=None)
        return declarations + [loop]

    def _element_declaration(self, name: str, data_type: str, loc: Optional[SourceLocation]) -> IRNode:
        return ir.statement("variable_declaration", [], loc, IRCategory.VARIABLE_DECLARATION,
                            name=name, data_type=data_type, initial_value=None,
                            is_static=False, is_constant=False)

    def _lower_switch_statement(self, node: CSTNode, chain: Chain) -> IRNode:
        """
        ``switch`` → CASE OF. Cases stay independent; labels stacked over an
        empty body share the body of the next clause that has one.
        """
        inner = chain + (node,)
        loc = node.location
        discriminant = self.lower_expression(node.children[0], inner)
        clauses = node.children[1:]
        cases: List[IRNode] = []
        default: Optional[IRNode] = None
        pending: List[Optional[IRNode]] = []
        for position, clause in enumerate(clauses):
            is_case = clause.kind is CSTKind.CASE_STATEMENT
            body_nodes = clause.children[1:] if is_case else clause.children
            if is_case:
                labels = [clause.children[0]] + list(clause.get("extra_labels") or [])
                values: List[Optional[IRNode]] = self._lower_all(labels, inner + (clause,))
            else:
                values = [None]
            if not body_nodes and not clause.get("terminated") and position < len(clauses) - 1:
                pending.extend(values)
                continue
            with self.ctx.scopes.scope(ScopeKind.BLOCK):
                block = ir.block(self.lower_statements(body_nodes, inner + (clause,)), clause.location)
            for value in pending + values:
                if value is None:
                    default = ir.statement("default_case", [block], clause.location)
                else:
                    cases.append(ir.statement("case_statement", [block], clause.location, value=value))
            pending = []
        return ir.statement("switch_statement", cases + ([default] if default is not None else []), loc,
                            IRCategory.CONTROL_STRUCTURE, expression=discriminant)

    def _lower_break_statement(self, node: CSTNode, chain: Chain) -> IRNode:
        self.reporter.info("break inside a loop has no IGCSE equivalent; restructure the loop condition",
                           ErrorCode.UNSUPPORTED_FEATURE, node.location)
        return ir.comment("break: exit loop", node.location)

    def _lower_continue_statement(self, node: CSTNode, chain: Chain) -> IRNode:
        loop_variable = _enclosing_loop_variable(chain)
        self.reporter.info("continue has no IGCSE equivalent; restructure the loop body",
                           ErrorCode.UNSUPPORTED_FEATURE, node.location)
        if loop_variable:
            return ir.comment(f"continue: skip to next {loop_variable}", node.location)
        return ir.comment("continue: skip to next iteration", node.location)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _lower_literal(self, node: CSTNode, chain: Chain) -> IRNode:
        loc = node.location
        kind = node.get("literal_type")
        text = str(node.value)
        if kind == "boolean":
            return ir.literal(PSEUDOCODE_TRUE if text == "true" else PSEUDOCODE_FALSE, "boolean", loc)
        if kind == "null":
            return ir.literal("NULL", "null", loc)
        if kind == "int":
            return ir.literal(self.integer_text(text), "int", loc)
        if kind == "float":
            return ir.literal(self.real_text(text), "real", loc)
        if kind == "string":
            return ir.literal(self.string_text(text), "string", loc)
        return ir.literal(text, kind or "raw", loc)

    def _lower_identifier(self, node: CSTNode, chain: Chain) -> IRNode:
        name = str(node.value)
        if name == "undefined":
            return ir.literal("NULL", "null", node.location)
        return ir.identifier(self.ctx.custom_mappings.get(name, name), node.location)

    def _lower_this(self, node: CSTNode, chain: Chain) -> IRNode:
        return ir.identifier("this", node.location)

    def _lower_binary_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        inner = chain + (node,)
        op = str(node.value)
        left_cst, right_cst = node.children
        if op in ("&", "|") and self._type_of(left_cst) == "BOOLEAN" and self._type_of(right_cst) == "BOOLEAN":
            op = "&&" if op == "&" else "||"
        if op not in _LOGICAL_SOURCE_OPERATORS | _COMPARISON_SOURCE_OPERATORS | _ARITHMETIC_SOURCE_OPERATORS:
            return self._opaque(node, f"Operator '{op}'")
        left = self.lower_expression(left_cst, inner)
        right = self.lower_expression(right_cst, inner)
        if op == "+" and "STRING" in (self._type_of(left_cst), self._type_of(right_cst)):
            igcse = STRING_CONCAT_OPERATOR
        elif op == "**":
            igcse = "^"
        else:
            igcse = normalize_operator(op)
        return ir.binary(igcse, left, right, node.location)

    def _lower_unary_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        op = str(node.value)
        if op not in ("!", "-", "+"):
            return self._opaque(node, f"Operator '{op}'")
        operand = self.lower_expression(node.children[0], chain + (node,))
        if op == "+":
            return operand
        if op == "-" and loop_bounds.int_value(operand) is not None:
            return ir.integer(-loop_bounds.int_value(operand), node.location)
        return ir.unary(normalize_operator(op), operand, node.location)

    def _lower_update_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        return self._opaque(node, f"'{node.value}' inside an expression")

    def _lower_assignment_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        return self._opaque(node, "Assignment inside an expression")

    def _lower_conditional_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        return self._opaque(node, "Conditional (ternary) expression")

    def _lower_member_access(self, node: CSTNode, chain: Chain) -> IRNode:
        loc = node.location
        mapped = self.ctx.custom_mappings.get(node.text)
        if mapped is not None:
            return ir.identifier(mapped, loc)
        obj = node.children[0]
        member = str(node.value)
        if obj.kind is CSTKind.THIS:
            return ir.identifier(self.ctx.custom_mappings.get(member, member), loc)
        if obj.kind is CSTKind.IDENTIFIER and obj.value == "Math" and member in _MATH_CONSTANTS:
            return ir.literal(_MATH_CONSTANTS[member], "real", loc)
        target = self.lower_expression(obj, chain + (node,))
        if member == "length":
            return ir.call("LENGTH", [target], loc)
        return ir.member_access(target, member, loc)

    def _lower_index_access(self, node: CSTNode, chain: Chain) -> IRNode:
        inner = chain + (node,)
        base_cst, index_cst = node.children
        base = self.lower_expression(base_cst, inner)
        index = self.lower_expression(index_cst, inner)
        name = _root_name(base_cst)
        if base_cst.kind is CSTKind.IDENTIFIER and self._type_of(base_cst) == "STRING":
            return ir.call("MID", [base, self.ctx.renumberer.renumber_index(index), ir.integer(1)], node.location)
        return ir.array_access(base, self.ctx.renumberer.renumber_index(index, name, node.location),
                               node.location)

    def _lower_call_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        inner = chain + (node,)
        loc = node.location
        callee = node.children[0]
        args_cst = node.children[1:]
        mapped = self.ctx.custom_mappings.get(callee.text)
        if mapped is not None:
            return ir.call(mapped, self._lower_all(args_cst, inner), loc)

        if callee.kind is CSTKind.IDENTIFIER:
            library = self.lower_library_call(None, str(callee.value), args_cst, node, inner)
            if library is not None:
                return library
            return ir.call(str(callee.value), self._lower_all(args_cst, inner), loc)

        if callee.kind is not CSTKind.MEMBER_ACCESS:
            return self._opaque(node, "Calling the result of an expression")

        receiver = callee.children[0]
        method = str(callee.value)
        if receiver.kind is CSTKind.IDENTIFIER and receiver.value == "Math":
            return lower_math_call(method, self._lower_all(args_cst, inner), loc)
        if receiver.kind is CSTKind.THIS:
            return ir.call(method, self._lower_all(args_cst, inner), loc)
        library = self.lower_library_call(receiver, method, args_cst, node, inner)
        if library is not None:
            return library
        receiver_name = _root_name(receiver)
        is_array = receiver_name is not None and self.ctx.renumberer.is_array(receiver_name) \
            and receiver.kind is CSTKind.IDENTIFIER
        if self.ctx.strings.handles(method, is_array):
            lowered = self.ctx.strings.lower(self.lower_expression(receiver, inner), method,
                                             self._lower_all(args_cst, inner), loc)
            if lowered is not None:
                return lowered
        if receiver.kind is CSTKind.IDENTIFIER and receiver.value in self.ctx.types.known_classes:
            return ir.call(method, self._lower_all(args_cst, inner), loc)
        return ir.call(f"{receiver.text}.{method}", self._lower_all(args_cst, inner), loc)

    def _lower_new_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        base = str(node.value).split("<")[0].strip()
        if base in COLLECTION_TYPES:
            return ir.array_literal([], node.location)
        self.reporter.info(f"Object creation 'new {base}' is not supported in IGCSE pseudocode",
                           ErrorCode.UNSUPPORTED_FEATURE, node.location)
        return ir.call(base, self._lower_all(node.children, chain + (node,)), node.location)

    def _lower_new_array(self, node: CSTNode, chain: Chain) -> IRNode:
        literal = next((c for c in node.children if c.kind is CSTKind.ARRAY_LITERAL), None)
        if literal is not None:
            return self._array_element(literal, chain + (node,))
        return self._opaque(node, "Array creation outside a declaration")

    def _lower_array_literal(self, node: CSTNode, chain: Chain) -> IRNode:
        return self._array_element(node, chain)

    def _lower_cast_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        operand_cst = node.children[0]
        operand = self.lower_expression(operand_cst, chain + (node,))
        if node.get("assertion"):
            return operand
        target = str(node.value).strip()
        if target in _INT_CASTS:
            if self._type_of(operand_cst) == "CHAR":
                return ir.call("ASC", [operand], node.location)
            return ir.call("INT", [operand], node.location)
        if target == "char" and self._type_of(operand_cst) == "INTEGER":
            return ir.call("CHR", [operand], node.location)
        return operand

    def _lower_template_literal(self, node: CSTNode, chain: Chain) -> IRNode:
        parts = self._lower_all(node.children, chain + (node,))
        if not parts:
            return ir.literal('""', "string", node.location)
        result = parts[0]
        for part in parts[1:]:
            result = ir.binary(STRING_CONCAT_OPERATOR, result, part, node.location)
        return result

    def _lower_arrow_function(self, node: CSTNode, chain: Chain) -> IRNode:
        return self._opaque(node, "Function used as a value")

    def _lower_await_expression(self, node: CSTNode, chain: Chain) -> IRNode:
        self.reporter.info("await removed; the call is treated as synchronous", ErrorCode.FEATURE_CONVERSION,
                           node.location)
        return self.lower_expression(node.children[0], chain + (node,))

    def _lower_object_literal(self, node: CSTNode, chain: Chain) -> IRNode:
        return self._opaque(node, "Object literal")

    # =========================================================================
    # Type inference
    # =========================================================================

    def _type_of(self, node: Optional[CSTNode]) -> Optional[str]:
        """IGCSE type of an expression when it can be told without running it."""
        if node is None:
            return None
        kind = node.kind
        if kind is CSTKind.LITERAL:
            return _LITERAL_TYPES.get(node.get("literal_type"))
        if kind is CSTKind.TEMPLATE_LITERAL:
            return "STRING"
        if kind is CSTKind.IDENTIFIER:
            info = self.ctx.scopes.lookup_variable(str(node.value))
            return info.type if info is not None and not info.is_array else None
        if kind is CSTKind.MEMBER_ACCESS:
            obj = node.children[0]
            if node.value == "length":
                return "INTEGER"
            if obj.kind is CSTKind.THIS:
                info = self.ctx.scopes.lookup_variable(str(node.value))
                return info.type if info is not None and not info.is_array else None
            if obj.kind is CSTKind.IDENTIFIER and obj.value == "Math":
                return "REAL"
            return None
        if kind is CSTKind.INDEX_ACCESS:
            base = node.children[0]
            if base.kind is CSTKind.IDENTIFIER and self._type_of(base) == "STRING":
                return "CHAR"
            return self._element_type(base, depth=1)
        if kind is CSTKind.BINARY_EXPRESSION:
            return self._binary_type(node)
        if kind is CSTKind.UNARY_EXPRESSION:
            if node.value == "!":
                return "BOOLEAN"
            if node.value == "typeof":
                return "STRING"
            return self._type_of(node.children[0])
        if kind is CSTKind.CONDITIONAL_EXPRESSION:
            return self._type_of(node.children[1]) or self._type_of(node.children[2])
        if kind is CSTKind.CALL_EXPRESSION:
            return self._call_type(node)
        if kind is CSTKind.CAST_EXPRESSION:
            if node.get("assertion"):
                return self._type_of(node.children[0])
            return self.ctx.types.map(str(node.value)).base
        if kind is CSTKind.AWAIT_EXPRESSION:
            return self._type_of(node.children[0])
        if kind is CSTKind.NEW_EXPRESSION and str(node.value) == "String":
            return "STRING"
        return None

    def _binary_type(self, node: CSTNode) -> Optional[str]:
        op = str(node.value)
        if op in _LOGICAL_SOURCE_OPERATORS or op in _COMPARISON_SOURCE_OPERATORS or op == "instanceof":
            return "BOOLEAN"
        left, right = (self._type_of(c) for c in node.children)
        if op == "+" and "STRING" in (left, right):
            return "STRING"
        if op not in _ARITHMETIC_SOURCE_OPERATORS:
            return None
        if left == "CHAR" and right == "CHAR" or "CHAR" in (left, right) and "INTEGER" in (left, right):
            return "INTEGER"
        if left in NUMERIC_TYPES and right in NUMERIC_TYPES:
            if "REAL" in (left, right) or op == "/" and self.language != "java":
                return "REAL"
            return "INTEGER"
        if left in NUMERIC_TYPES and right is None or right in NUMERIC_TYPES and left is None:
            return "REAL" if op == "/" and self.language != "java" else (left or right)
        return None

    def _call_type(self, node: CSTNode) -> Optional[str]:
        callee = node.children[0]
        args = node.children[1:]
        if callee.kind is CSTKind.IDENTIFIER:
            library = self.library_result_type(str(callee.value))
            if library is not None:
                return library
            info = self.ctx.scopes.lookup_function(str(callee.value))
            return info.return_type if info is not None else None
        if callee.kind is not CSTKind.MEMBER_ACCESS:
            return None
        receiver = callee.children[0]
        method = str(callee.value)
        if receiver.kind is CSTKind.IDENTIFIER and receiver.value == "Math":
            if method in ("abs", "max", "min"):
                types = [self._type_of(a) for a in args]
                return "REAL" if "REAL" in types else (types[0] if types else None)
            return MATH_RESULT_TYPES.get(method)
        if method == "get":
            return self._element_type(receiver, depth=1)
        if receiver.kind is CSTKind.THIS or receiver.kind is CSTKind.IDENTIFIER \
                and receiver.value in self.ctx.types.known_classes:
            info = self.ctx.scopes.lookup_function(method)
            if info is not None:
                return info.return_type
        return METHOD_RESULT_TYPES.get(method)

    def _element_type(self, node: CSTNode, depth: int = 1) -> Optional[str]:
        """Element type after ``depth`` indexing steps into an array expression."""
        while node.kind is CSTKind.INDEX_ACCESS:
            node = node.children[0]
            depth += 1
        name = _root_name(node)
        if name is None:
            return None
        info = self.ctx.scopes.lookup_variable(name)
        if info is None or not info.is_array:
            return None
        if depth >= info.array_dimensions:
            return info.type
        return None

    # =========================================================================
    # Language hooks
    # =========================================================================

    def _is_scanner_creation(self, init: CSTNode) -> bool:
        return False

    def _output_arguments(self, call: CSTNode) -> Optional[List[CSTNode]]:
        """Arguments of an output call, or None when ``call`` does not print."""
        return None

    def _input_read(self, node: Optional[CSTNode]) -> Optional[InputRead]:
        return None

    def lower_library_call(self, receiver: Optional[CSTNode], method: str, args: Sequence[CSTNode],
                           node: CSTNode, chain: Chain) -> Optional[IRNode]:
        """Language runtime calls (``Integer.parseInt``, ``parseFloat``, ...)."""
        return None

    def library_result_type(self, function: str) -> Optional[str]:
        return None

    def integer_text(self, text: str) -> str:
        clean = text.replace("_", "").rstrip("lLnN")
        try:
            return str(int(clean, 0))
        except ValueError:
            return clean

    def real_text(self, text: str) -> str:
        return text.replace("_", "").rstrip("fFdD") if not text.lower().startswith("0x") else text

    def string_text(self, text: str) -> str:
        return text


# =============================================================================
# CST helpers
# =============================================================================

def _first_line(text: str) -> str:
    return text.strip().split("\n")[0].strip() if text else ""


def _is_name(node: Optional[CSTNode], name: str) -> bool:
    return node is not None and node.kind is CSTKind.IDENTIFIER and node.value == name


def _root_name(node: CSTNode) -> Optional[str]:
    """Variable an (indexed) expression is rooted at: ``grid[i][j]`` → ``grid``."""
    while node.kind is CSTKind.INDEX_ACCESS:
        node = node.children[0]
    if node.kind is CSTKind.IDENTIFIER:
        return str(node.value)
    if node.kind is CSTKind.MEMBER_ACCESS and node.children and node.children[0].kind is CSTKind.THIS:
        return str(node.value)
    return None


def _literal_sizes(literal: CSTNode, dimensions: int) -> List[str]:
    sizes = [str(len(literal.children))]
    if dimensions > 1 and literal.children and literal.children[0].kind is CSTKind.ARRAY_LITERAL:
        sizes.extend(_literal_sizes(literal.children[0], dimensions - 1))
    return sizes


def _loop_init(init: CSTNode) -> Tuple[Optional[str], Optional[CSTNode]]:
    if init.kind is CSTKind.VARIABLE_DECLARATION and len(init.children) == 1:
        declarator = init.children[0]
        if declarator.children:
            return str(declarator.value), declarator.children[0]
    if init.kind is CSTKind.ASSIGNMENT and init.get("operator") == "=" \
            and init.children[0].kind is CSTKind.IDENTIFIER:
        return str(init.children[0].value), init.children[1]
    return None, None


def _loop_step(update: CSTNode, variable: str) -> Optional[Tuple[int, Optional[CSTNode]]]:
    """(sign, magnitude) of the update clause; magnitude None means 1."""
    if not update.children or not _is_name(update.children[0], variable):
        return None
    op = update.get("operator")
    if update.kind is CSTKind.INCREMENT:
        return (1 if op == "++" else -1), None
    if update.kind is not CSTKind.ASSIGNMENT:
        return None
    value = update.children[1]
    if op in ("+=", "-="):
        sign = 1 if op == "+=" else -1
    elif op == "=" and value.kind is CSTKind.BINARY_EXPRESSION and value.value in ("+", "-") \
            and _is_name(value.children[0], variable):
        sign = 1 if value.value == "+" else -1
        value = value.children[1]
    else:
        return None
    if value.kind is CSTKind.LITERAL and value.get("literal_type") == "int" and str(value.value) == "1":
        return sign, None
    if value.kind is CSTKind.LITERAL and value.get("literal_type") == "int" and str(value.value) == "0":
        return None
    return sign, value


def _assigns(node: CSTNode, variable: str) -> bool:
    """True when ``variable`` is written anywhere inside ``node``."""
    for n in node.walk():
        if n.kind in (CSTKind.ASSIGNMENT, CSTKind.INCREMENT, CSTKind.ASSIGNMENT_EXPRESSION,
                      CSTKind.UPDATE_EXPRESSION) and n.children and _is_name(n.children[0], variable):
            return True
    return False


def _return_expressions(body: CSTNode) -> List[CSTNode]:
    found: List[CSTNode] = []
    stack = [body]
    while stack:
        node = stack.pop()
        if node.kind is CSTKind.RETURN_STATEMENT and node.children:
            found.append(node.children[0])
        for child in reversed(node.children):
            if child.kind not in (CSTKind.METHOD_DECLARATION, CSTKind.ARROW_FUNCTION):
                stack.append(child)
    return found


def _enclosing_loop_variable(chain: Chain) -> Optional[str]:
    """Loop variable of the innermost loop among the ancestors."""
    for ancestor in reversed(chain):
        if ancestor.kind not in LOOP_KINDS:
            continue
        if ancestor.kind is CSTKind.FOR_EACH_LOOP:
            return str(ancestor.value) if ancestor.get("for_in") else f"{ancestor.value}Index"
        if ancestor.kind is CSTKind.FOR_LOOP:
            variable, _ = _loop_init(ancestor.children[0])
            return variable
        return None
    return None


def _negate(cond: IRNode) -> IRNode:
    """Logical negation for ``UNTIL``: comparisons flip, ``NOT x`` unwraps."""
    op = cond.get("operator")
    if cond.kind == "binary_operation" and op in COMPARISON_OPERATORS:
        negated = ir.binary(negate_comparison(op), cond.children[0], cond.children[1], cond.location)
        return negated
    if cond.kind == "unary_operation" and op == "NOT":
        operand = cond.children[0]
        if operand.get("parenthesized"):
            return ir.IRNode(operand.type, operand.kind, operand.children,
                             {k: v for k, v in operand.metadata.items() if k != "parenthesized"}, operand.location)
        return operand
    if cond.kind == "literal" and cond.get("literal_type") == "boolean":
        flipped = PSEUDOCODE_FALSE if cond.get("value") == PSEUDOCODE_TRUE else PSEUDOCODE_TRUE
        return ir.literal(flipped, "boolean", cond.location)
    return ir.unary("NOT", cond, cond.location)


__all__ = [
    'TransformResult',
    'InputRead',
    'ASTToIRLoweringPass',
    'ASTToIRLowerer',
]
