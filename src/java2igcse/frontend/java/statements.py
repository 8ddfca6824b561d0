"""
Java Statement Parser

Statement classification runs in a fixed priority order: control keywords,
``class``, modifier sequences, bare typed declarations, ``return``, then
identifier-led statements and a generic expression statement. Ambiguous
prefixes are classified with ``cursor.lookahead`` and then parsed by the
resolved production.
"""

import logging
from typing import Dict, List, Optional, Tuple

from ...shared.errors import DiagnosticReporter, ErrorCode
from ...shared.nodes import CSTKind, CSTNode, empty_node, statement_from_expression, visibility_of
from ...shared.source_location import SourceLocation
from ...utils.config import MAX_CONSECUTIVE_PARSE_ERRORS
from ..prechecks import report_fall_through
from .cursor import JavaSyntaxError, SourceCursor, _Backtrack
from .expressions import ExpressionParser

logger = logging.getLogger(__name__)

MODIFIERS = frozenset({
    "public", "private", "protected", "static", "final", "abstract",
    "synchronized", "native", "transient", "volatile", "strictfp",
})

# Last statement kinds that end a case without falling through
CASE_TERMINATORS = frozenset({CSTKind.BREAK_STATEMENT, CSTKind.RETURN_STATEMENT, CSTKind.CONTINUE_STATEMENT})

# Keyword → handler; the keywords are distinct so lookup order does not matter
_KEYWORD_HANDLERS: Dict[str, str] = {
    "if": "_if",
    "while": "_while",
    "do": "_do_while",
    "for": "_for",
    "switch": "_switch",
    "break": "_break",
    "continue": "_continue",
    "class": "_class_without_modifiers",
    "interface": "_type_declaration",
    "enum": "_type_declaration",
    "return": "_return",
    "try": "_try",
    "throw": "_throw",
    "import": "_import",
    "package": "_import",
}


class StatementParser:
    """
    Statement-level productions.

    In recovery mode every statement is parsed through ``_next_statement``,
    which turns a failure into a ``statement`` placeholder and resynchronizes
    at the next ``;`` or line break.
    """

    def __init__(self, cursor: SourceCursor, reporter: DiagnosticReporter, recovering: bool = False):
        self.cursor = cursor
        self.expressions = ExpressionParser(cursor, reporter)
        self.reporter = reporter
        self.recovering = recovering
        self.current_class_name: Optional[str] = None
        self.consecutive_errors = 0
        self.abandoned = False

    # =========================================================================
    # Program and blocks
    # =========================================================================

    def parse_program(self) -> CSTNode:
        loc = SourceLocation(1, 1, self.cursor.file_name)
        statements = self._statement_list(closing=False)
        return CSTNode(CSTKind.PROGRAM, statements, location=loc)

    def _statement_list(self, closing: bool) -> List[CSTNode]:
        c = self.cursor
        out: List[CSTNode] = []
        while not self.abandoned and not c.at_end:
            if closing and c.looking_at("}"):
                break
            node = self._next_statement()
            if node is not None:
                out.append(node)
        return out

    def _next_statement(self) -> Optional[CSTNode]:
        if not self.recovering:
            return self.parse_statement()
        c = self.cursor
        loc = c.location()
        snap = c.snapshot()
        try:
            node = self.parse_statement()
        except (JavaSyntaxError, _Backtrack, RecursionError) as exc:
            return self._placeholder(exc, loc, snap)
        self.consecutive_errors = 0
        return node

    def _placeholder(self, exc: Exception, loc: SourceLocation, snap) -> CSTNode:
        c = self.cursor
        c.restore(snap)
        c.skip_to_statement_end()
        text = c.source[snap.position:c.position].strip()
        message = getattr(exc, "message", None) or exc.__class__.__name__
        self.consecutive_errors += 1
        self.reporter.warn(f"Parse error: {message}", ErrorCode.PARSE_ERROR, getattr(exc, "location", None) or loc)
        logger.debug(f"[java] recovered from parse error at {loc}: {message}")
        if self.consecutive_errors >= MAX_CONSECUTIVE_PARSE_ERRORS:
            self.reporter.warn(
                f"Too many consecutive parse errors ({MAX_CONSECUTIVE_PARSE_ERRORS}); "
                "the rest of the input was skipped",
                ErrorCode.PARSE_ERROR,
                loc,
            )
            self.abandoned = True
        return CSTNode(CSTKind.STATEMENT, value=text, location=loc,
                       metadata={"parse_error": True, "error_message": message, "text": text})

    def _block(self) -> CSTNode:
        c = self.cursor
        loc = c.location()
        c.expect("{")
        statements = self._statement_list(closing=True)
        self._close_brace(loc, "block")
        return CSTNode(CSTKind.BLOCK, statements, location=loc)

    def _close_brace(self, loc: SourceLocation, what: str) -> None:
        c = self.cursor
        if c.accept("}"):
            return
        if self.recovering or self.abandoned:
            self.reporter.warn(f"Missing closing '}}' for {what} opened on line {loc.line}",
                               ErrorCode.PARSE_ERROR, loc)
            return
        raise JavaSyntaxError(f"Expected '}}' to close {what} but found {c.describe_next()}", c.location())

    def _body(self) -> CSTNode:
        """Loop/branch body; a single statement is wrapped in a block."""
        c = self.cursor
        loc = c.location()
        if c.looking_at("{"):
            return self._block()
        stmt = self._next_statement()
        return CSTNode(CSTKind.BLOCK, [stmt] if stmt is not None else [], location=loc)

    def _end_statement(self) -> None:
        c = self.cursor
        if c.accept(";"):
            return
        end = c.token_end
        if c.at_end or c.looking_at("}") or "\n" in c.source[end:c.position]:
            self.reporter.warn("Missing ';' at end of statement", ErrorCode.SYNTAX_WARNING,
                               c.location())
            return
        raise JavaSyntaxError(f"Expected ';' but found {c.describe_next()}", c.location())

    # =========================================================================
    # Dispatch
    # =========================================================================

    def parse_statement(self) -> Optional[CSTNode]:
        c = self.cursor
        loc = c.location()
        if c.accept(";"):
            return None
        if c.looking_at("{"):
            return self._block()

        word = c.peek_word()
        handler = _KEYWORD_HANDLERS.get(word)
        if handler is not None:
            return getattr(self, handler)(loc)
        if word in MODIFIERS or c.looking_at("@"):
            return self._modified_declaration(loc)
        if self._constructor_ahead():
            return self._method(loc, [], constructor=True)

        kind = c.lookahead(self._classify_declaration)
        if kind == "method":
            return self._method(loc, [])
        if kind == "variable":
            node = self._variable_declaration(loc, [])
            self._end_statement()
            return node
        return self._expression_statement(loc)

    def _classify_declaration(self) -> Optional[str]:
        """``Type name (`` → method, ``Type name =|;|,|[`` → variable."""
        c = self.cursor
        self.expressions.read_type()
        if c.read_identifier() is None:
            return None
        if c.looking_at("("):
            return "method"
        if c.peek_operator() in ("=", ";", ",", "[", ":") or c.at_end:
            return "variable"
        return None

    def _constructor_ahead(self) -> bool:
        c = self.cursor
        name = self.current_class_name
        if name is None or c.peek_word() != name:
            return False

        def scan():
            c.advance(len(name))
            if not c.looking_at("("):
                return False
            c.skip_balanced("(", ")")
            return c.looking_at("{") or c.looking_at_keyword("throws")
        return bool(c.lookahead(scan))

    def _read_modifiers(self) -> List[str]:
        c = self.cursor
        modifiers: List[str] = []
        while True:
            if c.looking_at("@"):
                self._skip_annotation()
                continue
            word = c.peek_word()
            if word not in MODIFIERS:
                return modifiers
            c.advance(len(word))
            modifiers.append(word)

    def _skip_annotation(self) -> None:
        c = self.cursor
        c.expect("@")
        c.expect_identifier("annotation name")
        while c.accept("."):
            c.expect_identifier("annotation name")
        if c.looking_at("("):
            c.skip_balanced("(", ")")

    def _modified_declaration(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        modifiers = self._read_modifiers()
        word = c.peek_word()
        if word == "class":
            return self._class(loc, modifiers)
        if word in ("interface", "enum"):
            return self._type_declaration(loc)
        if c.looking_at("{"):
            block = self._block()
            block.metadata["modifiers"] = modifiers
            return block
        if c.looking_at("<"):
            c.skip_balanced("<", ">")
        if self._constructor_ahead():
            return self._method(loc, modifiers, constructor=True)
        kind = c.lookahead(self._classify_declaration)
        if kind == "method":
            return self._method(loc, modifiers)
        if kind == "variable":
            node = self._variable_declaration(loc, modifiers)
            self._end_statement()
            return node
        raise JavaSyntaxError(f"Expected declaration after '{' '.join(modifiers)}' but found "
                              f"{c.describe_next()}", c.location())

    # =========================================================================
    # Declarations
    # =========================================================================

    def _require_type(self, what: str) -> str:
        c = self.cursor
        try:
            return self.expressions.read_type()
        except _Backtrack:
            raise JavaSyntaxError(f"Expected {what} but found {c.describe_next()}", c.location())

    def _variable_declaration(self, loc: SourceLocation, modifiers: List[str]) -> CSTNode:
        c = self.cursor
        start = c.start_offset()
        type_text = self._require_type("type")
        declarators: List[CSTNode] = []
        while True:
            dloc = c.location()
            name = c.expect_identifier("variable name")
            extra = 0
            while c.accept("["):
                c.expect("]", "in array declarator")
                extra += 1
            children: List[CSTNode] = []
            if c.accept("="):
                if c.looking_at("{"):
                    children.append(self.expressions.parse_array_initializer())
                else:
                    children.append(self.expressions.parse_expression())
            declarators.append(CSTNode(CSTKind.DECLARATOR, children, name, dloc,
                                       {"type": type_text + "[]" * extra}))
            if not c.accept(","):
                break
        dimensions = max(d.get("type").count("[]") for d in declarators)
        return CSTNode(CSTKind.VARIABLE_DECLARATION, declarators, declarators[0].value, loc, {
            "type": type_text,
            "modifiers": modifiers,
            "is_static": "static" in modifiers,
            "is_final": "final" in modifiers,
            "visibility": visibility_of(modifiers),
            "is_array": dimensions > 0,
            "array_dimensions": dimensions,
            "text": c.text_since(start),
        })

    def _parameters(self) -> CSTNode:
        c = self.cursor
        loc = c.location()
        c.expect("(")
        params: List[CSTNode] = []
        if c.accept(")"):
            return CSTNode(CSTKind.PARAMETER_LIST, params, location=loc)
        while True:
            self._read_modifiers()
            ploc = c.location()
            ptype = self._require_type("parameter type")
            pname = c.expect_identifier("parameter name")
            while c.accept("["):
                c.expect("]", "in parameter declarator")
                ptype += "[]"
            params.append(CSTNode(CSTKind.PARAMETER, value=pname, location=ploc, metadata={"type": ptype}))
            if c.accept(")"):
                return CSTNode(CSTKind.PARAMETER_LIST, params, location=loc)
            c.expect(",", "between parameters")

    def _method(self, loc: SourceLocation, modifiers: List[str], constructor: bool = False) -> CSTNode:
        c = self.cursor
        if constructor:
            return_type = None
            name = c.expect_identifier("constructor name")
        else:
            return_type = self._require_type("return type")
            name = c.expect_identifier("method name")
        params = self._parameters()
        while c.accept("["):
            c.expect("]")
            return_type = (return_type or "") + "[]"
        if c.accept_keyword("throws"):
            self._require_type("exception type")
            while c.accept(","):
                self._require_type("exception type")
        if c.accept(";"):
            body = CSTNode(CSTKind.BLOCK, location=c.location(), metadata={"abstract": True})
        else:
            body = self._block()
        return CSTNode(CSTKind.METHOD_DECLARATION, [params, body], name, loc, {
            "name": name,
            "return_type": return_type,
            "parameters": [{"name": p.value, "type": p.get("type")} for p in params.children],
            "modifiers": modifiers,
            "is_static": "static" in modifiers,
            "visibility": visibility_of(modifiers),
            "is_constructor": constructor,
            "is_procedure": constructor or return_type == "void",
            "class_name": self.current_class_name,
        })

    def _class_without_modifiers(self, loc: SourceLocation) -> CSTNode:
        return self._class(loc, [])

    def _class(self, loc: SourceLocation, modifiers: List[str]) -> CSTNode:
        c = self.cursor
        c.expect_keyword("class")
        name = c.expect_identifier("class name")
        if c.looking_at("<"):
            c.skip_balanced("<", ">")
        super_class = None
        interfaces: List[str] = []
        if c.accept_keyword("extends"):
            super_class = self._require_type("superclass name")
        if c.accept_keyword("implements"):
            interfaces.append(self._require_type("interface name"))
            while c.accept(","):
                interfaces.append(self._require_type("interface name"))
        c.expect("{", "to open class body")
        outer = self.current_class_name
        self.current_class_name = name
        try:
            members = self._statement_list(closing=True)
        finally:
            self.current_class_name = outer
        self._close_brace(loc, f"class {name}")
        logger.debug(f"[java] class {name} with {len(members)} member(s)")
        return CSTNode(CSTKind.CLASS_DECLARATION, members, name, loc, {
            "class_name": name,
            "super_class": super_class,
            "interfaces": interfaces,
            "modifiers": modifiers,
            "is_static": "static" in modifiers,
        })

    def _type_declaration(self, loc: SourceLocation) -> CSTNode:
        """``interface``/``enum``: recognized and skipped."""
        c = self.cursor
        start = c.start_offset()
        keyword = c.peek_word()
        c.advance(len(keyword))
        name = c.read_identifier() or ""
        while not c.at_end and not c.looking_at("{"):
            c.advance()
        c.skip_balanced("{", "}")
        kind = CSTKind.INTERFACE_DECLARATION if keyword == "interface" else CSTKind.UNSUPPORTED
        return CSTNode(kind, value=f"{keyword} {name}".strip(), location=loc,
                       metadata={"name": name, "text": c.text_since(start)})

    # =========================================================================
    # Control flow
    # =========================================================================

    def _condition(self) -> CSTNode:
        c = self.cursor
        c.expect("(", "before condition")
        cond = self.expressions.parse_expression()
        c.expect(")", "after condition")
        return cond

    def _if(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("if")
        cond = self._condition()
        children = [cond, self._body()]
        if c.accept_keyword("else"):
            if c.looking_at_keyword("if"):
                children.append(self._if(c.location()))
            else:
                children.append(self._body())
        return CSTNode(CSTKind.IF_STATEMENT, children, location=loc)

    def _while(self, loc: SourceLocation) -> CSTNode:
        self.cursor.expect_keyword("while")
        cond = self._condition()
        return CSTNode(CSTKind.WHILE_LOOP, [cond, self._body()], location=loc)

    def _do_while(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("do")
        body = self._body()
        c.expect_keyword("while")
        cond = self._condition()
        self._end_statement()
        return CSTNode(CSTKind.DO_WHILE_LOOP, [body, cond], location=loc)

    def _for(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("for")
        c.expect("(", "after 'for'")
        if c.lookahead(self._for_each_header):
            self._read_modifiers()
            var_type = self._require_type("loop variable type")
            name = c.expect_identifier("loop variable")
            c.expect(":")
            iterable = self.expressions.parse_expression()
            c.expect(")", "after for-each header")
            return CSTNode(CSTKind.FOR_EACH_LOOP, [iterable, self._body()], name, loc, {"type": var_type})

        init = self._for_init()
        c.expect(";", "after for-loop initializer")
        cond = empty_node(c.location()) if c.looking_at(";") else self.expressions.parse_expression()
        c.expect(";", "after for-loop condition")
        update = empty_node(c.location())
        if not c.looking_at(")"):
            uloc = c.location()
            updates = [self.expressions.parse_expression()]
            while c.accept(","):
                updates.append(self.expressions.parse_expression())
            update = statement_from_expression(updates[0], uloc)
            if len(updates) > 1:
                update.metadata["extra_updates"] = [statement_from_expression(u, uloc) for u in updates[1:]]
        c.expect(")", "after for-loop header")
        return CSTNode(CSTKind.FOR_LOOP, [init, cond, update, self._body()], location=loc)

    def _for_each_header(self) -> bool:
        c = self.cursor
        self._read_modifiers()
        self.expressions.read_type()
        return c.read_identifier() is not None and c.looking_at(":")

    def _for_init(self) -> CSTNode:
        c = self.cursor
        loc = c.location()
        if c.looking_at(";"):
            return empty_node(loc)
        modifiers = self._read_modifiers()
        if c.lookahead(self._classify_declaration) == "variable":
            return self._variable_declaration(loc, modifiers)
        first = statement_from_expression(self.expressions.parse_expression(), loc)
        if not c.looking_at(","):
            return first
        inits = [first]
        while c.accept(","):
            inits.append(statement_from_expression(self.expressions.parse_expression(), c.location()))
        return CSTNode(CSTKind.BLOCK, inits, location=loc)

    def _switch(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("switch")
        discriminant = self._condition()
        c.expect("{", "to open switch body")
        clauses: List[CSTNode] = []
        while not c.accept("}"):
            if c.at_end:
                self._close_brace(loc, "switch")
                break
            cloc = c.location()
            if c.accept_keyword("case"):
                labels = [self.expressions.parse_expression()]
                while c.accept(","):
                    labels.append(self.expressions.parse_expression())
                arrow = self._case_separator()
                body, terminated = self._case_body(arrow)
                label_text = ", ".join(label.text for label in labels)
                clause = CSTNode(CSTKind.CASE_STATEMENT, [labels[0]] + body, label_text, cloc,
                                 {"arrow": arrow, "terminated": terminated})
                if len(labels) > 1:
                    clause.metadata["extra_labels"] = labels[1:]
            elif c.accept_keyword("default"):
                arrow = self._case_separator()
                body, terminated = self._case_body(arrow)
                clause = CSTNode(CSTKind.DEFAULT_CASE, body, "default", cloc,
                                 {"arrow": arrow, "terminated": terminated})
            else:
                raise JavaSyntaxError(f"Expected 'case' or 'default' in switch but found {c.describe_next()}",
                                      c.location())
            clauses.append(clause)

        report_fall_through(clauses, self.reporter)
        return CSTNode(CSTKind.SWITCH_STATEMENT, [discriminant] + clauses, location=loc)

    def _case_separator(self) -> bool:
        c = self.cursor
        if c.accept("->"):
            return True
        c.expect(":", "after case label")
        return False

    def _case_body(self, arrow: bool) -> Tuple[List[CSTNode], bool]:
        """Statements of one case; a ``break`` ends the case and is consumed."""
        c = self.cursor
        if arrow:
            stmt = self._next_statement()
            if stmt is None:
                return [], True
            return (stmt.children if stmt.kind is CSTKind.BLOCK else [stmt]), True
        body: List[CSTNode] = []
        has_break = False
        while not self.abandoned and not c.at_end and not c.looking_at("}") \
                and not c.looking_at_keyword("case") and not c.looking_at_keyword("default"):
            if c.accept_keyword("break"):
                self._end_statement()
                has_break = True
                continue
            stmt = self._next_statement()
            if stmt is not None:
                body.append(stmt)
        terminated = has_break or bool(body) and (
            body[-1].kind in CASE_TERMINATORS or body[-1].get("throws", False)
        )
        return body, terminated

    def _break(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("break")
        label = c.read_identifier()
        self._end_statement()
        return CSTNode(CSTKind.BREAK_STATEMENT, value=label, location=loc)

    def _continue(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("continue")
        label = c.read_identifier()
        self._end_statement()
        return CSTNode(CSTKind.CONTINUE_STATEMENT, value=label, location=loc)

    def _return(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("return")
        children: List[CSTNode] = []
        if not c.looking_at(";") and not c.looking_at("}") and not c.at_end:
            children.append(self.expressions.parse_expression())
        self._end_statement()
        return CSTNode(CSTKind.RETURN_STATEMENT, children, location=loc)

    # =========================================================================
    # Unsupported statements
    # =========================================================================

    def _try(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        c.expect_keyword("try")
        if c.looking_at("("):
            c.skip_balanced("(", ")")
        blocks = [self._block()]
        while c.accept_keyword("catch"):
            c.skip_balanced("(", ")")
            c.skip_balanced("{", "}")
        if c.accept_keyword("finally"):
            blocks.append(self._block())
        return CSTNode(CSTKind.UNSUPPORTED, blocks, "try-catch block", loc)

    def _throw(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        start = c.start_offset()
        c.expect_keyword("throw")
        self.expressions.parse_expression()
        text = c.text_since(start)
        self._end_statement()
        return CSTNode(CSTKind.UNSUPPORTED, value="throw statement", location=loc,
                       metadata={"text": text, "throws": True})

    def _import(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        keyword = c.peek_word()
        c.advance(len(keyword))
        start = c.start_offset()
        while not c.at_end and not c.looking_at(";") and not c.at_line_start():
            c.advance()
        path = c.source[start:c.position].strip()
        c.accept(";")
        return CSTNode(CSTKind.IMPORT_DECLARATION, value=path, location=loc,
                       metadata={"package": keyword == "package"})

    # =========================================================================
    # Expression statements
    # =========================================================================

    def _expression_statement(self, loc: SourceLocation) -> CSTNode:
        c = self.cursor
        if c.lookahead(lambda: c.read_identifier() is not None and c.looking_at(":")):
            c.read_identifier()
            c.accept(":")
            labelled = self.parse_statement()
            if labelled is not None:
                return labelled
            return CSTNode(CSTKind.BLOCK, location=loc)
        expr = self.expressions.parse_expression()
        self._end_statement()
        return statement_from_expression(expr, loc)
