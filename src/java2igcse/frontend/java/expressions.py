"""
Java Expression Parser

Precedence climbing over the source cursor. Every node records its verbatim
source text in ``metadata["text"]``; parenthesized sub-expressions carry
``metadata["parenthesized"]``.
"""

import logging
from typing import List, Optional, Set

from ...shared.errors import DiagnosticReporter, ErrorCode
from ...shared.nodes import CSTKind, CSTNode
from ...shared.source_location import SourceLocation
from ...utils.config import MAX_EXPRESSION_DEPTH
from .cursor import PRIMITIVE_TYPES, JavaSyntaxError, SourceCursor, _Backtrack

logger = logging.getLogger(__name__)

# Binary operator → binding power (higher binds tighter)
BINARY_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "|": 3,
    "^": 4,
    "&": 5,
    "==": 6, "!=": 6,
    "<": 7, ">": 7, "<=": 7, ">=": 7, "instanceof": 7,
    "<<": 8, ">>": 8, ">>>": 8,
    "+": 9, "-": 9,
    "*": 10, "/": 10, "%": 10,
}

ASSIGNMENT_OPERATORS = frozenset({
    "=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>=", ">>>=",
})

PREFIX_OPERATORS = frozenset({"!", "-", "+", "~"})

# Tokens that may follow ``(Type)`` when it is a cast of a reference type
_CAST_FOLLOWERS = frozenset({"(", "!", "~"})

_CLOSING_BRACKETS = {"(": ")", "[": "]", "{": "}"}


class ExpressionParser:
    """Dedicated parser for Java expressions, sharing the statement parser's cursor."""

    def __init__(self, cursor: SourceCursor, reporter: Optional[DiagnosticReporter] = None):
        self.cursor = cursor
        self.reporter = reporter
        self.depth = 0
        self._reported_too_deep: Set[int] = set()

    # =========================================================================
    # Entry points
    # =========================================================================

    def parse_expression(self) -> CSTNode:
        if self.depth >= MAX_EXPRESSION_DEPTH:
            return self._too_deep()
        self.depth += 1
        try:
            return self._assignment()
        finally:
            self.depth -= 1

    def parse_arguments(self) -> List[CSTNode]:
        """``( a, b, ... )`` with the opening paren still ahead."""
        c = self.cursor
        c.expect("(")
        args: List[CSTNode] = []
        if c.accept(")"):
            return args
        while True:
            args.append(self.parse_expression())
            if c.accept(")"):
                return args
            c.expect(",", "between arguments")

    def parse_array_initializer(self) -> CSTNode:
        """``{1, 2, {3}}`` as nested array_literal nodes."""
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        c.expect("{")
        elements: List[CSTNode] = []
        while not c.accept("}"):
            if c.at_end:
                raise JavaSyntaxError("Unterminated array initializer", loc)
            if c.looking_at("{"):
                elements.append(self.parse_array_initializer())
            else:
                elements.append(self.parse_expression())
            if not c.accept(","):
                c.expect("}", "to close array initializer")
                break
        return self._node(CSTKind.ARRAY_LITERAL, start, loc, children=elements)

    def read_type(self) -> str:
        """
        Type text: primitive or dotted name, optional generic arguments, ``[]``
        suffixes. Raises ``_Backtrack`` when no type is ahead.
        """
        c = self.cursor
        name = c.read_identifier(allow_types=True)
        if name is None:
            raise _Backtrack()
        parts = [name]
        while c.looking_at(".") and c.lookahead(lambda: c.accept(".") and c.read_identifier()):
            c.accept(".")
            parts.append(c.read_identifier())
        text = ".".join(parts)
        if c.looking_at("<") or c.looking_at("<<"):
            text += self._read_type_arguments()
        while c.looking_at("["):
            if not c.lookahead(lambda: c.accept("[") and c.accept("]")):
                break
            c.accept("[")
            c.accept("]")
            text += "[]"
        if c.accept("..."):
            text += "[]"
        return text

    def _read_type_arguments(self) -> str:
        c = self.cursor
        c.accept_char("<")
        args: List[str] = []
        while True:
            if c.accept("?"):
                arg = "?"
                if c.accept_keyword("extends") or c.accept_keyword("super"):
                    arg += " " + self.read_type()
            else:
                arg = self.read_type()
            args.append(arg)
            if c.accept(","):
                continue
            if c.accept_char(">"):
                return "<" + ", ".join(args) + ">"
            raise _Backtrack()

    # =========================================================================
    # Precedence levels
    # =========================================================================

    def _assignment(self) -> CSTNode:
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        left = self._ternary()
        op = c.peek_operator()
        if op in ASSIGNMENT_OPERATORS:
            c.accept(op)
            right = self._assignment()
            return self._node(CSTKind.ASSIGNMENT_EXPRESSION, start, loc, [left, right], value=op)
        if op == "->":
            return self._lambda(start, loc)
        return left

    def _ternary(self) -> CSTNode:
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        condition = self._binary(1)
        if not c.accept("?"):
            return condition
        when_true = self._assignment()
        c.expect(":", "in conditional expression")
        when_false = self._ternary()
        return self._node(CSTKind.CONDITIONAL_EXPRESSION, start, loc, [condition, when_true, when_false])

    def _binary(self, min_precedence: int) -> CSTNode:
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        left = self._unary()
        while True:
            op = self._peek_binary_operator()
            if op is None or BINARY_PRECEDENCE[op] < min_precedence:
                return left
            if op == "instanceof":
                c.accept_keyword("instanceof")
                type_loc = c.location()
                type_start = c.start_offset()
                type_text = self.read_type()
                right = self._node(CSTKind.IDENTIFIER, type_start, type_loc, value=type_text)
            else:
                c.accept(op)
                right = self._binary(BINARY_PRECEDENCE[op] + 1)
            left = self._node(CSTKind.BINARY_EXPRESSION, start, loc, [left, right], value=op)

    def _peek_binary_operator(self) -> Optional[str]:
        c = self.cursor
        if c.looking_at_keyword("instanceof"):
            return "instanceof"
        op = c.peek_operator()
        return op if op in BINARY_PRECEDENCE else None

    def _unary(self) -> CSTNode:
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        op = c.peek_operator()
        if op in ("++", "--"):
            c.accept(op)
            operand = self._unary()
            return self._node(CSTKind.UPDATE_EXPRESSION, start, loc, [operand], value=op, prefix=True)
        if op in PREFIX_OPERATORS:
            c.accept(op)
            operand = self._unary()
            return self._node(CSTKind.UNARY_EXPRESSION, start, loc, [operand], value=op)
        if op == "(":
            cast = c.try_parse(lambda: self._cast(start, loc))
            if cast is not None:
                return cast
        return self._postfix()

    def _cast(self, start: int, loc: SourceLocation) -> Optional[CSTNode]:
        c = self.cursor
        c.expect("(")
        type_text = self.read_type()
        if not c.accept(")"):
            raise _Backtrack()
        base = type_text.split("<")[0].rstrip("[]")
        if base not in PRIMITIVE_TYPES:
            # ``(name) + 1`` is a parenthesized expression, ``(Name) value`` a cast
            if not base[:1].isupper():
                raise _Backtrack()
            nxt = c.peek_operator()
            if nxt is not None:
                if nxt not in _CAST_FOLLOWERS:
                    raise _Backtrack()
            elif c.peek_word() is None and c.peek() not in ("\"", "'") and not c.peek().isdigit():
                raise _Backtrack()
        operand = self._unary()
        return self._node(CSTKind.CAST_EXPRESSION, start, loc, [operand], value=type_text)

    def _postfix(self) -> CSTNode:
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        expr = self._primary()
        while True:
            if c.looking_at("."):
                c.accept(".")
                member = c.peek_word()
                if member is None:
                    raise JavaSyntaxError(f"Expected member name after '.' but found {c.describe_next()}",
                                          c.location())
                c.advance(len(member))
                access = self._node(CSTKind.MEMBER_ACCESS, start, loc, [expr], value=member)
                if c.looking_at("("):
                    args = self.parse_arguments()
                    expr = self._node(CSTKind.CALL_EXPRESSION, start, loc, [access] + args)
                else:
                    expr = access
            elif c.looking_at("["):
                c.accept("[")
                index = self.parse_expression()
                c.expect("]", "to close index")
                expr = self._node(CSTKind.INDEX_ACCESS, start, loc, [expr, index])
            elif c.looking_at("(") and expr.kind is CSTKind.IDENTIFIER:
                args = self.parse_arguments()
                expr = self._node(CSTKind.CALL_EXPRESSION, start, loc, [expr] + args)
            elif c.looking_at("++") or c.looking_at("--"):
                op = c.peek_operator()
                c.accept(op)
                expr = self._node(CSTKind.UPDATE_EXPRESSION, start, loc, [expr], value=op, prefix=False)
            else:
                return expr

    def _primary(self) -> CSTNode:
        c = self.cursor
        start, loc = c.start_offset(), c.location()

        number = c.read_number()
        if number is not None:
            is_float = any(ch in number for ch in ".eE") or number[-1] in "fFdD"
            if number.lower().startswith(("0x", "0b")):
                is_float = False
            return self._node(CSTKind.LITERAL, start, loc, value=number,
                              literal_type="float" if is_float else "int")

        quoted = c.read_quoted()
        if quoted is not None:
            kind = "string" if quoted.startswith("\"") else "char"
            return self._node(CSTKind.LITERAL, start, loc, value=quoted, literal_type=kind)

        word = c.peek_word()
        if word in ("true", "false"):
            c.advance(len(word))
            return self._node(CSTKind.LITERAL, start, loc, value=word, literal_type="boolean")
        if word == "null":
            c.advance(len(word))
            return self._node(CSTKind.LITERAL, start, loc, value=word, literal_type="null")
        if word == "this":
            c.advance(len(word))
            return self._node(CSTKind.THIS, start, loc, value="this")
        if word == "super":
            c.advance(len(word))
            return self._node(CSTKind.IDENTIFIER, start, loc, value="super")
        if word == "new":
            return self._new(start, loc)

        if c.looking_at("("):
            lambda_node = c.try_parse(lambda: self._parenthesized_lambda(start, loc))
            if lambda_node is not None:
                return lambda_node
            c.accept("(")
            inner = self.parse_expression()
            c.expect(")", "to close parenthesized expression")
            inner.metadata["parenthesized"] = True
            inner.metadata["text"] = c.text_since(start)
            return inner
        if c.looking_at("{"):
            return self.parse_array_initializer()

        name = c.read_identifier(allow_types=True)
        if name is not None:
            return self._node(CSTKind.IDENTIFIER, start, loc, value=name)

        raise JavaSyntaxError(f"Expected expression but found {c.describe_next()}", loc)

    def _new(self, start: int, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("new")
        type_text = self.read_type_name()
        if c.looking_at("["):
            dims: List[CSTNode] = []
            count = 0
            while c.accept("["):
                count += 1
                if c.accept("]"):
                    continue
                dims.append(self.parse_expression())
                c.expect("]", "to close array dimension")
            children = list(dims)
            if c.looking_at("{"):
                children.append(self.parse_array_initializer())
            return self._node(CSTKind.NEW_ARRAY, start, loc, children, value=type_text,
                              dimensions=count, sized_dimensions=len(dims))
        args = self.parse_arguments() if c.looking_at("(") else []
        if c.looking_at("{"):
            c.skip_balanced("{", "}")
            return self._node(CSTKind.NEW_EXPRESSION, start, loc, args, value=type_text, anonymous_class=True)
        return self._node(CSTKind.NEW_EXPRESSION, start, loc, args, value=type_text)

    def read_type_name(self) -> str:
        """Type after ``new``: name and generic arguments, no array suffix."""
        c = self.cursor
        name = c.read_identifier(allow_types=True)
        if name is None:
            raise JavaSyntaxError(f"Expected type after 'new' but found {c.describe_next()}", c.location())
        while c.looking_at(".") and c.lookahead(lambda: c.accept(".") and c.read_identifier()):
            c.accept(".")
            name += "." + c.read_identifier()
        if c.looking_at("<") or c.looking_at("<<"):
            args = c.try_parse(self._type_arguments_or_diamond)
            if args is not None:
                name += args
        return name

    def _type_arguments_or_diamond(self) -> Optional[str]:
        c = self.cursor
        if c.lookahead(lambda: c.accept_char("<") and c.accept_char(">")):
            c.accept_char("<")
            c.accept_char(">")
            return "<>"
        return self._read_type_arguments()

    # =========================================================================
    # Lambdas (kept as opaque text)
    # =========================================================================

    def _parenthesized_lambda(self, start: int, loc: SourceLocation) -> Optional[CSTNode]:
        c = self.cursor
        c.skip_balanced("(", ")")
        if not c.looking_at("->"):
            raise _Backtrack()
        return self._lambda(start, loc)

    def _lambda(self, start: int, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect("->")
        if c.looking_at("{"):
            c.skip_balanced("{", "}")
        else:
            self._ternary()
        return self._node(CSTKind.UNSUPPORTED, start, loc, value="lambda expression")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _too_deep(self) -> CSTNode:
        """Skip the rest of an over-nested expression and keep its text."""
        c = self.cursor
        start, loc = c.start_offset(), c.location()
        while not c.at_end and c.peek() not in ")]},;":
            ch = c.peek()
            if ch in _CLOSING_BRACKETS:
                c.skip_balanced(ch, _CLOSING_BRACKETS[ch])
            elif ch in ("\"", "'"):
                c.read_quoted()
            else:
                c.advance()
        if self.reporter is not None and start not in self._reported_too_deep:
            self._reported_too_deep.add(start)
            self.reporter.warn(f"Expression nested deeper than {MAX_EXPRESSION_DEPTH} levels; kept as written",
                               ErrorCode.PARSE_ERROR, loc)
        logger.debug(f"[java] expression at {loc} exceeds nesting depth {MAX_EXPRESSION_DEPTH}")
        return self._node(CSTKind.UNSUPPORTED, start, loc, value="deeply nested expression")

    def _node(self, kind: CSTKind, start: int, loc: SourceLocation,
              children: Optional[List[CSTNode]] = None, value=None, **metadata) -> CSTNode:
        metadata["text"] = self.cursor.text_since(start)
        return CSTNode(kind, list(children or []), value, loc, metadata)
