"""
Tests for the IR → pseudocode backend: output grammar, indentation,
parenthesization and recovery from malformed IR.
"""

from java2igcse.backends.pseudocode import PseudocodeGenerator
from java2igcse.compiler.driver import ConversionOptions
from java2igcse.ir import nodes as ir
from java2igcse.shared.errors import DiagnosticReporter, ErrorCode


def _generate(statements, **options):
    reporter = DiagnosticReporter()
    generator = PseudocodeGenerator(ConversionOptions(**options), reporter)
    return generator.generate(ir.program(statements)), reporter


def _declare(name, data_type, initial=None, **flags):
    return ir.statement("variable_declaration", [], None, name=name, data_type=data_type,
                        initial_value=initial, **flags)


class TestDeclarations:
    """DECLARE lines and their initial assignments."""

    def test_declaration_with_initial_value(self):
        text, _ = _generate([_declare("x", "INTEGER", ir.integer(5))])
        assert text == "DECLARE x : INTEGER\nx ← 5"

    def test_declaration_without_initial_value(self):
        text, _ = _generate([_declare("name", "STRING")])
        assert text == "DECLARE name : STRING"

    def test_static_and_constant_comments(self):
        text, _ = _generate([_declare("MAX", "INTEGER", ir.integer(10), is_static=True, is_constant=True)])
        assert text.split("\n") == [
            "// Static variable",
            "// Constant variable",
            "DECLARE MAX : INTEGER",
            "MAX ← 10",
        ]

    def test_comments_can_be_switched_off(self):
        text, _ = _generate([_declare("MAX", "INTEGER", ir.integer(10), is_constant=True)],
                            include_comments=False)
        assert text == "DECLARE MAX : INTEGER\nMAX ← 10"

    def test_array_elements_become_assignments(self):
        decl = ir.statement("array_declaration", [ir.integer(1), ir.integer(2)], None, name="arr",
                            data_type="ARRAY[1:2] OF INTEGER", element_type="INTEGER", dimensions=1,
                            initial_value=None)
        text, _ = _generate([decl])
        assert text == "DECLARE arr : ARRAY[1:2] OF INTEGER\narr[1] ← 1\narr[2] ← 2"

    def test_nested_array_elements(self):
        rows = [ir.array_literal([ir.integer(1), ir.integer(2)]), ir.array_literal([ir.integer(3), ir.integer(4)])]
        decl = ir.statement("array_declaration", rows, None, name="grid",
                            data_type="ARRAY[1:2] OF ARRAY[1:2] OF INTEGER", element_type="INTEGER",
                            dimensions=2, initial_value=None)
        text, _ = _generate([decl])
        assert "grid[1][2] ← 2" in text
        assert "grid[2][1] ← 3" in text


class TestRoutines:
    """PROCEDURE / FUNCTION blocks."""

    def test_procedure(self):
        body = ir.block([ir.statement("output_statement", [ir.identifier("msg")])])
        proc = ir.statement("function_declaration", [body], None, name="greet",
                            parameters=[{"name": "msg", "type": "STRING"}], return_type=None,
                            is_procedure=True, is_static=False)
        text, _ = _generate([proc])
        assert text == "PROCEDURE greet(msg : STRING)\n   OUTPUT msg\nENDPROCEDURE"

    def test_function_with_static_comment(self):
        body = ir.block([ir.statement("return_statement", [ir.binary("*", ir.identifier("n"), ir.integer(2))])])
        func = ir.statement("function_declaration", [body], None, name="double",
                            parameters=[{"name": "n", "type": "INTEGER"}], return_type="INTEGER",
                            is_procedure=False, is_static=True)
        text, _ = _generate([func])
        assert text.split("\n") == [
            "// Static method",
            "FUNCTION double(n : INTEGER) RETURNS INTEGER",
            "   RETURN n * 2",
            "ENDFUNCTION",
        ]

    def test_blank_lines_around_routines(self):
        proc = ir.statement("function_declaration", [ir.block([])], None, name="p", parameters=[],
                            is_procedure=True)
        text, _ = _generate([_declare("a", "INTEGER"), proc, _declare("b", "INTEGER")])
        assert text.split("\n") == [
            "DECLARE a : INTEGER",
            "",
            "PROCEDURE p()",
            "ENDPROCEDURE",
            "",
            "DECLARE b : INTEGER",
        ]


class TestControlStructures:
    """IF / WHILE / REPEAT / FOR / CASE rendering."""

    def test_if_else(self):
        stmt = ir.statement("if_statement", [
            ir.block([ir.statement("output_statement", [ir.literal('"pos"', "string")])]),
            ir.block([ir.statement("output_statement", [ir.literal('"neg"', "string")])]),
        ], None, condition=ir.binary(">", ir.identifier("x"), ir.integer(0)))
        text, _ = _generate([stmt])
        assert text == 'IF x > 0 THEN\n   OUTPUT "pos"\nELSE\n   OUTPUT "neg"\nENDIF'

    def test_else_if_nests(self):
        inner = ir.statement("if_statement", [ir.block([ir.statement("return_statement", [ir.integer(2)])])],
                             None, condition=ir.identifier("b"))
        outer = ir.statement("if_statement", [ir.block([ir.statement("return_statement", [ir.integer(1)])]),
                                              inner], None, condition=ir.identifier("a"))
        text, _ = _generate([outer])
        assert text.split("\n") == [
            "IF a THEN",
            "   RETURN 1",
            "ELSE",
            "   IF b THEN",
            "      RETURN 2",
            "   ENDIF",
            "ENDIF",
        ]

    def test_while_and_repeat(self):
        body = ir.block([ir.statement("assignment", [ir.identifier("i"),
                                                     ir.binary("+", ir.identifier("i"), ir.integer(1))])])
        loop = ir.statement("while_loop", [body], None, condition=ir.binary("<", ir.identifier("i"), ir.integer(3)))
        repeat = ir.statement("repeat_until", [body], None,
                              condition=ir.binary(">=", ir.identifier("i"), ir.integer(3)))
        text, _ = _generate([loop, repeat])
        assert text.split("\n") == [
            "WHILE i < 3 DO",
            "   i ← i + 1",
            "ENDWHILE",
            "REPEAT",
            "   i ← i + 1",
            "UNTIL i >= 3",
        ]

    def test_for_loop_step(self):
        body = ir.block([ir.statement("output_statement", [ir.identifier("i")])])
        up = ir.statement("for_loop", [body], None, variable="i", start=ir.integer(1), end=ir.integer(5),
                          step=None)
        down = ir.statement("for_loop", [body], None, variable="i", start=ir.integer(5), end=ir.integer(1),
                            step=ir.integer(-1))
        unit = ir.statement("for_loop", [body], None, variable="i", start=ir.integer(1), end=ir.integer(5),
                            step=ir.integer(1))
        text, _ = _generate([up, down, unit])
        lines = text.split("\n")
        assert lines[0] == "FOR i ← 1 TO 5"
        assert lines[2] == "NEXT i"
        assert lines[3] == "FOR i ← 5 TO 1 STEP -1"
        assert lines[6] == "FOR i ← 1 TO 5"

    def test_case_of(self):
        cases = [
            ir.statement("case_statement", [ir.block([ir.statement("output_statement",
                                                                   [ir.literal('"one"', "string")])])],
                         None, value=ir.integer(1)),
            ir.statement("default_case", [ir.block([ir.statement("output_statement",
                                                                 [ir.literal('"other"', "string")])])]),
        ]
        switch = ir.statement("switch_statement", cases, None, expression=ir.identifier("n"))
        text, _ = _generate([switch])
        assert text.split("\n") == [
            "CASE OF n",
            "   1:",
            '      OUTPUT "one"',
            "   OTHERWISE:",
            '      OUTPUT "other"',
            "ENDCASE",
        ]

    def test_indent_size_option(self):
        loop = ir.statement("while_loop", [ir.block([ir.statement("output_statement", [ir.identifier("x")])])],
                            None, condition=ir.identifier("go"))
        text, _ = _generate([loop], indent_size=2)
        assert text == "WHILE go DO\n  OUTPUT x\nENDWHILE"


class TestSimpleStatements:
    """CALL, INPUT, OUTPUT and RETURN."""

    def test_call_statement(self):
        text, _ = _generate([ir.statement("call_statement", [ir.call("show", [ir.integer(1), ir.identifier("y")])])])
        assert text == "CALL show(1, y)"

    def test_input_with_and_without_prompt(self):
        text, _ = _generate([
            ir.statement("input_statement", [ir.identifier("name")], prompt=ir.literal('"Name?"', "string")),
            ir.statement("input_statement", [ir.identifier("age")], prompt=None),
        ])
        assert text == 'INPUT "Name?", name\nINPUT age'

    def test_output_items_are_comma_separated(self):
        text, _ = _generate([ir.statement("output_statement", [ir.literal('"Total: "', "string"),
                                                                ir.identifier("total")])])
        assert text == 'OUTPUT "Total: ", total'

    def test_bare_return(self):
        text, _ = _generate([ir.statement("return_statement", [])])
        assert text == "RETURN"


class TestExpressions:
    """Parentheses are added only where precedence requires them."""

    def test_lower_precedence_operand(self):
        expr = ir.binary("*", ir.binary("+", ir.identifier("a"), ir.identifier("b")), ir.identifier("c"))
        text, _ = _generate([ir.statement("expression_statement", [expr])])
        assert text == "(a + b) * c"

    def test_right_operand_of_subtraction(self):
        expr = ir.binary("-", ir.identifier("a"), ir.binary("-", ir.identifier("b"), ir.identifier("c")))
        text, _ = _generate([ir.statement("expression_statement", [expr])])
        assert text == "a - (b - c)"

    def test_left_associative_chain_needs_none(self):
        expr = ir.binary("-", ir.binary("-", ir.identifier("a"), ir.identifier("b")), ir.identifier("c"))
        text, _ = _generate([ir.statement("expression_statement", [expr])])
        assert text == "a - b - c"

    def test_not_of_comparison(self):
        expr = ir.unary("NOT", ir.binary("=", ir.identifier("a"), ir.identifier("b")))
        text, _ = _generate([ir.statement("expression_statement", [expr])])
        assert text == "NOT (a = b)"

    def test_logical_mix(self):
        expr = ir.binary("AND", ir.binary("OR", ir.identifier("a"), ir.identifier("b")), ir.identifier("c"))
        text, _ = _generate([ir.statement("expression_statement", [expr])])
        assert text == "(a OR b) AND c"


class TestMalformedIR:
    """The generator never raises; broken nodes become comments and warnings."""

    def test_missing_name(self):
        text, reporter = _generate([ir.statement("variable_declaration", [], None, data_type="INTEGER")])
        assert text == "// Invalid variable declaration"
        assert reporter.codes() == [ErrorCode.GENERATION_ERROR]

    def test_missing_condition(self):
        text, reporter = _generate([ir.statement("while_loop", [ir.block([])], None)])
        assert text == "// Invalid while loop"
        assert ErrorCode.GENERATION_ERROR in reporter.codes()

    def test_unknown_kind(self):
        text, reporter = _generate([ir.statement("mystery", [])])
        assert text == "// Invalid mystery"
        assert reporter.warnings[0].code == ErrorCode.GENERATION_ERROR

    def test_broken_node_keeps_neighbours(self):
        text, _ = _generate([_declare("a", "INTEGER"), ir.statement("for_loop", [], None, variable="i"),
                             _declare("b", "INTEGER")])
        assert text.split("\n") == ["DECLARE a : INTEGER", "// Invalid for loop", "DECLARE b : INTEGER"]

    def test_unsupported_placeholder(self):
        text, _ = _generate([ir.statement("unsupported", [], None, construct="try-catch block",
                                          text="try {")])
        assert text == "// Unsupported: try {"
