"""
Tests for CST → IR lowering, checked through the generated pseudocode and
the IR dump.
"""

import pytest

from java2igcse.frontend.java.parser import JavaParser
from java2igcse.passes.ast_to_ir import ASTToIRLowerer, ASTToIRLoweringPass
from java2igcse.shared.errors import ConversionError, ErrorCode
from tests.test_utils import (
    assert_lines_in_order, convert_and_check, ir_sexpr, pseudocode_lines, warning_codes,
)


class TestLoweringPass:
    """The pass itself, driven without the conversion driver."""

    def test_program_node(self, java_context):
        parsed = JavaParser().parse("int x = 5;")
        lowered = ASTToIRLoweringPass().run(parsed.ast, java_context)
        assert lowered.success
        assert lowered.result.kind == "program"
        assert lowered.result.get("source_language") == "java"
        assert [n.kind for n in lowered.result.children] == ["variable_declaration"]

    def test_missing_program(self, java_context):
        lowered = ASTToIRLoweringPass().run(None, java_context)
        assert not lowered.success
        assert lowered.result is None
        assert [w.code for w in lowered.warnings] == [ErrorCode.TRANSFORMATION_ERROR]

    def test_unknown_language(self):
        with pytest.raises(ConversionError):
            ASTToIRLowerer.for_language("cobol")

    def test_context_is_reset_between_runs(self, java_context):
        parser = JavaParser()
        first = parser.parse("int[] arr = {1, 2};")
        ASTToIRLoweringPass().run(first.ast, java_context)
        assert java_context.renumberer.is_array("arr")
        second = parser.parse("int y = 1;")
        ASTToIRLoweringPass().run(second.ast, java_context)
        assert not java_context.renumberer.is_array("arr")


class TestDeclarations:
    def test_declaration_with_initializer(self, converter):
        result = convert_and_check("int x = 5;", converter=converter)
        assert result.pseudocode == "DECLARE x : INTEGER\nx ← 5"
        dump = ir_sexpr(result)
        assert '(variable_declaration :data_type "INTEGER"' in dump
        assert ':name "x"' in dump

    def test_static_final(self, converter):
        result = convert_and_check("static final int MAX = 10;", converter=converter)
        assert pseudocode_lines(result) == [
            "// Static variable",
            "// Constant variable",
            "DECLARE MAX : INTEGER",
            "MAX ← 10",
        ]

    def test_array_initializer(self, converter):
        result = convert_and_check("int[] arr = {1, 2, 3};\nint first = arr[0];", converter=converter)
        assert pseudocode_lines(result) == [
            "DECLARE arr : ARRAY[1:3] OF INTEGER",
            "arr[1] ← 1",
            "arr[2] ← 2",
            "arr[3] ← 3",
            "DECLARE first : INTEGER",
            "first ← arr[1]",
        ]

    def test_boolean_operators(self, converter):
        source = "int x = 1;\nboolean done = false;\nboolean ok = x >= 1 && !done;"
        result = convert_and_check(source, converter=converter)
        assert "done ← FALSE" in result.pseudocode
        assert "ok ← x >= 1 AND NOT done" in result.pseudocode

    def test_modulo_and_concatenation(self, converter):
        result = convert_and_check('int r = 7 % 3;\nString s = "a" + r;', converter=converter)
        assert "r ← 7 MOD 3" in result.pseudocode
        assert 's ← "a" & r' in result.pseudocode

    def test_ternary_becomes_if(self, converter):
        result = convert_and_check("int a = 3, b = 4;\nint max = a > b ? a : b;", converter=converter)
        assert_lines_in_order(result, [
            "DECLARE max : INTEGER",
            "IF a > b THEN",
            "max ← a",
            "ELSE",
            "max ← b",
            "ENDIF",
        ])


class TestInputOutput:
    """System.out and Scanner."""

    def test_scanner_read(self, converter):
        source = "Scanner sc = new Scanner(System.in);\nint n = sc.nextInt();"
        result = convert_and_check(source, converter=converter)
        assert result.pseudocode == "DECLARE n : INTEGER\nINPUT n"

    def test_parse_of_read_line(self, converter):
        source = "Scanner reader = new Scanner(System.in);\nint n = Integer.parseInt(reader.nextLine());"
        assert "INPUT n" in convert_and_check(source, converter=converter).pseudocode

    def test_output_items_split(self, converter):
        source = 'String name = "Ann";\nSystem.out.println("Hello " + name);'
        result = convert_and_check(source, converter=converter)
        assert pseudocode_lines(result)[-1] == 'OUTPUT "Hello ", name'

    def test_numeric_sum_not_split(self, converter):
        result = convert_and_check("int a = 1;\nSystem.out.println(a + 2);", converter=converter)
        assert pseudocode_lines(result)[-1] == "OUTPUT a + 2"

    def test_printf_reported(self, converter):
        result = convert_and_check('System.out.printf("%d", 3);', converter=converter)
        assert ErrorCode.UNSUPPORTED_FEATURE in warning_codes(result)


class TestLoops:
    def test_counting_loop(self, converter):
        source = "for (int i = 0; i < 5; i++) { System.out.println(i); }"
        result = convert_and_check(source, converter=converter)
        assert result.pseudocode == "FOR i ← 0 TO 4\n   OUTPUT i\nNEXT i"

    def test_array_loop_is_shifted(self, converter):
        source = (
            "int[] arr = {1, 2, 3};\n"
            "for (int i = 0; i < arr.length; i++) {\n"
            "    System.out.println(arr[i]);\n"
            "}"
        )
        result = convert_and_check(source, converter=converter)
        assert "FOR i ← 1 TO LENGTH(arr)" in result.pseudocode
        assert "   OUTPUT arr[i]" in result.pseudocode

    def test_descending_loop(self, converter):
        result = convert_and_check("for (int i = 10; i > 0; i--) { }", converter=converter)
        assert pseudocode_lines(result)[0] == "FOR i ← 10 TO 1 STEP -1"

    def test_step(self, converter):
        result = convert_and_check("for (int i = 0; i <= 10; i += 2) { }", converter=converter)
        assert pseudocode_lines(result)[0] == "FOR i ← 0 TO 10 STEP 2"

    def test_non_counting_loop_becomes_while(self, converter):
        result = convert_and_check("for (int i = 1; i < 100; i *= 2) { }", converter=converter)
        assert pseudocode_lines(result) == [
            "DECLARE i : INTEGER",
            "i ← 1",
            "WHILE i < 100 DO",
            "   i ← i * 2",
            "ENDWHILE",
        ]
        assert ErrorCode.FEATURE_CONVERSION in warning_codes(result)

    def test_while(self, converter):
        result = convert_and_check("int x = 1;\nwhile (x < 10) { x = x * 2; }", converter=converter)
        assert_lines_in_order(result, ["WHILE x < 10 DO", "x ← x * 2", "ENDWHILE"])

    def test_do_while_negates_condition(self, converter):
        result = convert_and_check("int n = 3;\ndo { n--; } while (n > 0);", converter=converter)
        assert pseudocode_lines(result)[-3:] == ["REPEAT", "   n ← n - 1", "UNTIL n <= 0"]

    def test_for_each_over_array(self, converter):
        source = "int[] nums = {4, 5};\nint total = 0;\nfor (int v : nums) { total += v; }"
        result = convert_and_check(source, converter=converter)
        assert_lines_in_order(result, [
            "FOR vIndex ← 1 TO LENGTH(nums)",
            "v ← nums[vIndex]",
            "total ← total + v",
            "NEXT vIndex",
        ])

    def test_for_each_declares_element_variable(self, converter):
        source = "int[] nums = {4, 5};\nfor (int v : nums) { System.out.println(v); }"
        result = convert_and_check(source, converter=converter)
        lines = pseudocode_lines(result)
        assert lines.index("DECLARE v : INTEGER") < lines.index("FOR vIndex ← 1 TO LENGTH(nums)")
        assert_lines_in_order(result, [
            "DECLARE v : INTEGER",
            "FOR vIndex ← 1 TO LENGTH(nums)",
            "v ← nums[vIndex]",
            "OUTPUT v",
            "NEXT vIndex",
        ])

    def test_for_each_over_string(self, converter):
        source = 'String word = "abc";\nfor (char ch : word.toCharArray()) { }'
        result = convert_and_check(source, converter=converter)
        assert "FOR chIndex ← 1 TO LENGTH(" in result.pseudocode

    def test_break_becomes_comment(self, converter):
        result = convert_and_check("while (true) { break; }", converter=converter)
        assert pseudocode_lines(result) == ["WHILE TRUE DO", "   // break: exit loop", "ENDWHILE"]
        assert ErrorCode.UNSUPPORTED_FEATURE in warning_codes(result)

    def test_continue_names_loop_variable(self, converter):
        result = convert_and_check("for (int i = 0; i < 3; i++) { continue; }", converter=converter)
        assert "// continue: skip to next i" in result.pseudocode


class TestSelection:
    def test_else_if_chain(self, converter):
        source = (
            "int x = 0;\n"
            'if (x > 0) { System.out.println("pos"); }\n'
            'else if (x < 0) { System.out.println("neg"); }\n'
            'else { System.out.println("zero"); }'
        )
        result = convert_and_check(source, converter=converter)
        assert pseudocode_lines(result)[2:] == [
            "IF x > 0 THEN",
            '   OUTPUT "pos"',
            "ELSE",
            "   IF x < 0 THEN",
            '      OUTPUT "neg"',
            "   ELSE",
            '      OUTPUT "zero"',
            "   ENDIF",
            "ENDIF",
        ]

    def test_switch(self, converter):
        source = (
            "int day = 2;\n"
            "switch (day) {\n"
            '    case 1: System.out.println("Mon"); break;\n'
            '    case 2: System.out.println("Tue"); break;\n'
            '    default: System.out.println("Other");\n'
            "}"
        )
        result = convert_and_check(source, converter=converter)
        assert pseudocode_lines(result)[2:] == [
            "CASE OF day",
            "   1:",
            '      OUTPUT "Mon"',
            "   2:",
            '      OUTPUT "Tue"',
            "   OTHERWISE:",
            '      OUTPUT "Other"',
            "ENDCASE",
        ]

    def test_stacked_labels_share_body(self, converter):
        source = "int d = 1;\nswitch (d) { case 1: case 2: d = 0; break; }"
        result = convert_and_check(source, converter=converter)
        assert_lines_in_order(result, ["1:", "d ← 0", "2:", "d ← 0"])


class TestRoutines:
    def test_function(self, converter):
        result = convert_and_check("public static int square(int n) { return n * n; }", converter=converter)
        assert pseudocode_lines(result) == [
            "// Static method",
            "FUNCTION square(n : INTEGER) RETURNS INTEGER",
            "   RETURN n * n",
            "ENDFUNCTION",
        ]
        assert ErrorCode.FEATURE_CONVERSION in warning_codes(result)

    def test_procedure_and_call(self, converter):
        source = 'void greet(String name) { System.out.println("Hi " + name); }\ngreet("Bob");'
        result = convert_and_check(source, converter=converter)
        assert_lines_in_order(result, [
            "PROCEDURE greet(name : STRING)",
            'OUTPUT "Hi ", name',
            "ENDPROCEDURE",
            'CALL greet("Bob")',
        ])

    def test_class_with_main(self, converter):
        source = (
            "public class Main {\n"
            "    public static void main(String[] args) {\n"
            '        System.out.println("Hi");\n'
            "    }\n"
            "}"
        )
        result = convert_and_check(source, converter=converter)
        assert pseudocode_lines(result) == [
            "// Main class",
            "// Static method",
            "PROCEDURE main(args : ARRAY[1:SIZE] OF STRING)",
            '   OUTPUT "Hi"',
            "ENDPROCEDURE",
        ]

    def test_inheritance_comment(self, converter):
        source = "class Dog extends Animal implements Pet, Friend { }"
        result = convert_and_check(source, converter=converter)
        assert result.pseudocode == "// Dog inherits from Animal implements Pet, Friend"

    def test_constructor_becomes_procedure(self, converter):
        source = "class Point {\n    int x;\n    Point(int px) { x = px; }\n}"
        result = convert_and_check(source, converter=converter)
        assert "PROCEDURE Point(px : INTEGER)" in result.pseudocode
        assert any("Constructor 'Point'" in w.message for w in result.warnings)


class TestLibraryCalls:
    """Java library calls with IGCSE counterparts."""

    def test_math(self, converter):
        source = "double r = 2.0;\ndouble area = Math.PI * r * r;\ndouble s = Math.sqrt(16);"
        result = convert_and_check(source, converter=converter)
        assert "area ← 3.14159265 * r * r" in result.pseudocode
        assert "s ← SQRT(16)" in result.pseudocode

    def test_casts(self, converter):
        result = convert_and_check("double d = 3.7;\nint n = (int) d;\nchar c = (char) 65;", converter=converter)
        assert "n ← INT(d)" in result.pseudocode
        assert "c ← CHR(65)" in result.pseudocode

    def test_string_methods(self, converter):
        source = 'String s = "hello";\nint n = s.length();\nchar c = s.charAt(0);'
        result = convert_and_check(source, converter=converter)
        assert "n ← LENGTH(s)" in result.pseudocode
        assert "c ← MID(s, 1, 1)" in result.pseudocode

    def test_number_conversion(self, converter):
        source = 'String t = "5";\nint v = Integer.parseInt(t);\nString u = String.valueOf(v);'
        result = convert_and_check(source, converter=converter)
        assert "v ← STR_TO_NUM(t)" in result.pseudocode
        assert "u ← NUM_TO_STR(v)" in result.pseudocode

    def test_custom_mapping(self, converter):
        result = convert_and_check("int n = helper(3);", converter=converter,
                                   customMappings={"helper": "COMPUTE"})
        assert "n ← COMPUTE(3)" in result.pseudocode
