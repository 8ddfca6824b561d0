"""
Tests for the TypeScript frontend (lark grammar + transformer) and its
lowering hooks.
"""

import pytest

from java2igcse.frontend.typescript.parser import TypeScriptParser, typescript_grammar
from java2igcse.shared.errors import ErrorCode
from java2igcse.shared.nodes import CSTKind
from tests.test_utils import assert_lines_in_order, convert_and_check, pseudocode_lines


@pytest.fixture(scope="module")
def parser():
    return TypeScriptParser("main.ts")


def _convert(source, converter, **options):
    return convert_and_check(source, "typescript", converter=converter, **options)


class TestGrammar:
    def test_grammar_is_cached(self):
        assert typescript_grammar() is typescript_grammar()


class TestTree:
    """CST shapes built by the transformer."""

    def test_typed_let(self, parser):
        decl = parser.parse("let x: number = 5;").ast.children[0]
        assert decl.kind is CSTKind.VARIABLE_DECLARATION
        assert decl.get("var_kind") == "let"
        assert decl.children[0].get("type") == "number"
        assert decl.children[0].children[0].get("literal_type") == "int"

    def test_const_is_final(self, parser):
        decl = parser.parse("const limit = 10;").ast.children[0]
        assert decl.get("is_final")

    def test_function_declaration(self, parser):
        fn = parser.parse("function add(a: number, b: number): number { return a + b; }").ast.children[0]
        assert fn.kind is CSTKind.METHOD_DECLARATION
        assert fn.value == "add"
        assert fn.get("parameters") == [{"name": "a", "type": "number"}, {"name": "b", "type": "number"}]
        assert not fn.get("is_procedure")

    def test_untyped_function_without_return_is_procedure(self, parser):
        fn = parser.parse("function hello() { console.log('hi'); }").ast.children[0]
        assert fn.get("is_procedure")

    def test_for_of(self, parser):
        loop = parser.parse("for (const v of values) { }").ast.children[0]
        assert loop.kind is CSTKind.FOR_EACH_LOOP
        assert loop.value == "v"
        assert not loop.get("for_in")

    def test_for_in(self, parser):
        loop = parser.parse("for (const k in values) { }").ast.children[0]
        assert loop.get("for_in")

    def test_template_literal_parts(self, parser):
        stmt = parser.parse("let s = `a${n}b`;").ast.children[0]
        template = stmt.children[0].children[0]
        assert template.kind is CSTKind.TEMPLATE_LITERAL
        assert [p.kind for p in template.children] == [CSTKind.LITERAL, CSTKind.IDENTIFIER, CSTKind.LITERAL]
        assert template.children[0].value == '"a"'

    def test_switch_break_consumed(self, parser):
        switch = parser.parse("switch (x) { case 1: y = 1; break; default: y = 0; }").ast.children[0]
        case = switch.children[1]
        assert case.get("terminated")
        assert all(c.kind is not CSTKind.BREAK_STATEMENT for c in case.children)

    def test_interface(self, parser):
        node = parser.parse("interface Point { x: number; y: number; }").ast.children[0]
        assert node.kind is CSTKind.INTERFACE_DECLARATION
        assert node.get("name") == "Point"
        assert [m["name"] for m in node.get("members")] == ["x", "y"]

    def test_call_and_index_are_not_split_from_their_operand(self, parser):
        source = (
            "let a: number[] = [1, 2];\n"
            "a[0] = 5;\n"
            "console.log(a[0]);\n"
            'greet("Bob");\n'
            "(a[1]) = 7;"
        )
        statements = parser.parse(source).ast.children
        assert [s.kind for s in statements] == [
            CSTKind.VARIABLE_DECLARATION,
            CSTKind.ASSIGNMENT,
            CSTKind.EXPRESSION_STATEMENT,
            CSTKind.EXPRESSION_STATEMENT,
            CSTKind.ASSIGNMENT,
        ]
        assert statements[1].children[0].kind is CSTKind.INDEX_ACCESS
        log_call, greet_call = statements[2].children[0], statements[3].children[0]
        assert log_call.kind is CSTKind.CALL_EXPRESSION
        assert log_call.children[0].kind is CSTKind.MEMBER_ACCESS
        assert greet_call.kind is CSTKind.CALL_EXPRESSION
        assert greet_call.children[0].value == "greet"
        assert statements[4].children[0].kind is CSTKind.INDEX_ACCESS

    def test_call_without_semicolon_after_statement(self, parser):
        statements = parser.parse("let x = 1\nconsole.log(x)").ast.children
        assert [s.kind for s in statements] == [CSTKind.VARIABLE_DECLARATION, CSTKind.EXPRESSION_STATEMENT]
        assert statements[1].children[0].kind is CSTKind.CALL_EXPRESSION

    def test_features(self, parser):
        features = parser.parse("let s = `${1}`;\nconsole.log(s);").features_used
        assert "template_literals" in features
        assert "output" in features


class TestRecovery:
    def test_non_string_input(self, parser):
        result = parser.parse(None)
        assert not result.success
        assert [w.code for w in result.errors] == [ErrorCode.INVALID_INPUT]

    def test_bad_line_is_blanked(self, parser):
        result = parser.parse("let x = 1;\nlet = ;\nlet y = 2;")
        assert result.success
        kinds = [c.kind for c in result.ast.children]
        assert kinds.count(CSTKind.VARIABLE_DECLARATION) == 2
        placeholder = next(c for c in result.ast.children if c.get("parse_error"))
        assert placeholder.location.line == 2
        assert ErrorCode.PARSE_ERROR in [w.code for w in result.errors]

    def test_unclosed_block_is_closed(self, parser):
        result = parser.parse("if (x > 0) {\n  console.log(x);")
        assert result.success
        messages = [w.message for w in result.errors]
        assert "Missing closing '}' for block opened on line 1" in messages
        assert ErrorCode.SYNTAX_WARNING in [w.code for w in result.errors]
        assert result.ast.children[0].kind is CSTKind.IF_STATEMENT


class TestConversion:
    """TypeScript programs through the whole pipeline."""

    def test_number_is_real(self, converter):
        assert _convert("let x: number = 5;", converter).pseudocode == "DECLARE x : REAL\nx ← 5"

    def test_untyped_integer_literal(self, converter):
        assert _convert("let count = 0;", converter).pseudocode == "DECLARE count : INTEGER\ncount ← 0"

    def test_single_quotes_become_double(self, converter):
        assert _convert("console.log('hi');", converter).pseudocode == 'OUTPUT "hi"'

    def test_prompt(self, converter):
        result = _convert('const name = prompt("Name?");', converter)
        assert pseudocode_lines(result) == ["DECLARE name : STRING", 'INPUT "Name?", name']

    def test_parse_int_of_prompt(self, converter):
        result = _convert('let n = parseInt(prompt("Enter n"));', converter)
        assert pseudocode_lines(result) == ["DECLARE n : INTEGER", 'INPUT "Enter n", n']

    def test_template_output(self, converter):
        result = _convert("let n = 3;\nconsole.log(`n is ${n}`);", converter)
        assert pseudocode_lines(result)[-1] == 'OUTPUT "n is ", n'

    def test_template_assignment(self, converter):
        result = _convert("let n = 3;\nlet s = `n is ${n}`;", converter)
        assert 's ← "n is " & n' in result.pseudocode

    def test_strict_equality(self, converter):
        result = _convert('let x = 1;\nif (x === 1) { console.log("one"); }', converter)
        assert "IF x = 1 THEN" in result.pseudocode

    def test_to_fixed(self, converter):
        result = _convert("let r: number = 2.5;\nlet t = r.toFixed(2);", converter)
        assert "t ← ROUND(r, 2)" in result.pseudocode

    def test_function(self, converter):
        result = _convert("function add(a: number, b: number): number {\n  return a + b;\n}", converter)
        assert pseudocode_lines(result) == [
            "FUNCTION add(a : REAL, b : REAL) RETURNS REAL",
            "   RETURN a + b",
            "ENDFUNCTION",
        ]

    def test_void_function_and_call(self, converter):
        source = 'function greet(name: string): void {\n  console.log("Hi " + name);\n}\ngreet("Bob");'
        result = _convert(source, converter)
        assert_lines_in_order(result, [
            "PROCEDURE greet(name : STRING)",
            'OUTPUT "Hi ", name',
            "ENDPROCEDURE",
            'CALL greet("Bob")',
        ])

    def test_statements_after_a_call_keep_their_shape(self, converter):
        source = (
            'function greet(name: string): void {\n  console.log("Hi " + name);\n}\n'
            "let a = [1, 2];\n"
            'greet("Bob");\n'
            "a[0] = 5;\n"
            "console.log(a[0])\n"
            "console.log(a[1])"
        )
        result = _convert(source, converter)
        assert_lines_in_order(result, [
            "ENDPROCEDURE",
            "DECLARE a : ARRAY[1:2] OF INTEGER",
            'CALL greet("Bob")',
            "a[1] ← 5",
            "OUTPUT a[1]",
            "OUTPUT a[2]",
        ])
        assert ErrorCode.PARSE_ERROR not in [w.code for w in result.warnings]

    def test_arrow_function(self, converter):
        result = _convert("const twice = (x: number): number => x * 2;", converter)
        assert pseudocode_lines(result) == [
            "FUNCTION twice(x : REAL) RETURNS REAL",
            "   RETURN x * 2",
            "ENDFUNCTION",
        ]

    def test_for_of_array(self, converter):
        result = _convert("let nums = [1, 2, 3];\nfor (const v of nums) { console.log(v); }", converter)
        assert_lines_in_order(result, [
            "DECLARE nums : ARRAY[1:3] OF INTEGER",
            "FOR vIndex ← 1 TO LENGTH(nums)",
            "v ← nums[vIndex]",
            "OUTPUT v",
            "NEXT vIndex",
        ])

    def test_for_of_string(self, converter):
        result = _convert('let word = "abc";\nfor (const ch of word) { console.log(ch); }', converter)
        assert "ch ← MID(word, chIndex, 1)" in result.pseudocode

    def test_for_in_is_zero_based(self, converter):
        result = _convert("let arr = [5, 6];\nfor (const k in arr) { console.log(arr[k]); }", converter)
        assert "FOR k ← 0 TO LENGTH(arr) - 1" in result.pseudocode
        assert "OUTPUT arr[k + 1]" in result.pseudocode

    def test_interface_comments(self, converter):
        result = _convert("interface Point { x: number; y: number; }", converter)
        assert pseudocode_lines(result) == ["// Interface: Point", "// Properties: x (REAL), y (REAL)"]
        assert ErrorCode.FEATURE_CONVERSION in [w.code for w in result.warnings]
