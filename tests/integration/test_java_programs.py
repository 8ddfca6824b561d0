"""
End-to-end conversion of Java snippets and small programs.

Each test drives the full pipeline (parse, lower, generate) through the
shared converter and checks the pseudocode a student would see.
"""

import pytest

from java2igcse.shared.errors import ErrorCode
from tests.test_utils import assert_lines_in_order, convert_and_check, pseudocode_lines, warning_codes

pytestmark = pytest.mark.integration


class TestSnippets:
    """The short snippets every conversion must get exactly right."""

    def test_declaration(self, converter):
        assert convert_and_check("int x = 5;", converter=converter).pseudocode == "DECLARE x : INTEGER\nx ← 5"

    def test_if_statement(self, converter):
        result = convert_and_check('if (x > 0) { System.out.println("positive"); }', converter=converter)
        assert result.pseudocode == 'IF x > 0 THEN\n   OUTPUT "positive"\nENDIF'

    def test_array_access_is_shifted(self, converter):
        result = convert_and_check("int[] arr = {1,2,3}; int first = arr[0];", converter=converter)
        assert "first ← arr[1]" in result.pseudocode

    def test_array_loop_not_shifted_twice(self, converter):
        source = "for (int i = 0; i < arr.length; i++) { System.out.println(arr[i]); }"
        result = convert_and_check(source, converter=converter)
        assert "FOR i ← 1 TO LENGTH(arr)" in result.pseudocode
        assert "OUTPUT arr[i]" in result.pseudocode
        assert "arr[i + 1]" not in result.pseudocode

    def test_unbalanced_braces_still_convert(self, converter):
        result = convert_and_check("if (x > 0) {\n  System.out.println(x);", converter=converter)
        assert result.pseudocode
        assert ErrorCode.SYNTAX_WARNING in warning_codes(result)


class TestPrograms:
    """Whole classes with a main method."""

    def test_sum_of_inputs(self, converter):
        source = """
public class Main {
    public static void main(String[] args) {
        Scanner sc = new Scanner(System.in);
        int n = sc.nextInt();
        int total = 0;
        for (int i = 0; i < n; i++) {
            total += i;
        }
        System.out.println("Total: " + total);
    }
}
"""
        result = convert_and_check(source, converter=converter)
        assert_lines_in_order(result, [
            "// Main class",
            "PROCEDURE main(args : ARRAY[1:SIZE] OF STRING)",
            "DECLARE n : INTEGER",
            "INPUT n",
            "DECLARE total : INTEGER",
            "total ← 0",
            "FOR i ← 0 TO n - 1",
            "total ← total + i",
            "NEXT i",
            'OUTPUT "Total: ", total',
            "ENDPROCEDURE",
        ])
        assert "input" in result.metadata["features_used"]
        assert result.metadata["lines_processed"] == source.count("\n")

    def test_grades(self, converter):
        source = """
public class Grades {
    public static String grade(int mark) {
        if (mark >= 70) {
            return "A";
        } else if (mark >= 50) {
            return "B";
        } else {
            return "C";
        }
    }

    public static void main(String[] args) {
        int[] marks = {81, 64, 32};
        for (int i = 0; i < marks.length; i++) {
            System.out.println(grade(marks[i]));
        }
    }
}
"""
        result = convert_and_check(source, converter=converter)
        assert_lines_in_order(result, [
            "// Grades class",
            "FUNCTION grade(mark : INTEGER) RETURNS STRING",
            "IF mark >= 70 THEN",
            'RETURN "A"',
            "ELSE",
            "IF mark >= 50 THEN",
            'RETURN "B"',
            "ELSE",
            'RETURN "C"',
            "ENDFUNCTION",
            "PROCEDURE main(args : ARRAY[1:SIZE] OF STRING)",
            "DECLARE marks : ARRAY[1:3] OF INTEGER",
            "marks[1] ← 81",
            "FOR i ← 1 TO LENGTH(marks)",
            "OUTPUT grade(marks[i])",
            "NEXT i",
            "ENDPROCEDURE",
        ])

    def test_menu_with_switch_and_do_while(self, converter):
        source = """
int choice = 0;
do {
    choice = choice + 1;
    switch (choice) {
        case 1: System.out.println("Start"); break;
        case 2: System.out.println("Stop"); break;
        default: System.out.println("Unknown");
    }
} while (choice < 3);
"""
        result = convert_and_check(source, converter=converter)
        assert_lines_in_order(result, [
            "DECLARE choice : INTEGER",
            "choice ← 0",
            "REPEAT",
            "choice ← choice + 1",
            "CASE OF choice",
            "1:",
            'OUTPUT "Start"',
            "2:",
            'OUTPUT "Stop"',
            "OTHERWISE:",
            'OUTPUT "Unknown"',
            "ENDCASE",
            "UNTIL choice >= 3",
        ])
        assert ErrorCode.FALL_THROUGH_WARNING not in warning_codes(result)

    def test_nested_indentation(self, converter):
        source = "while (true) {\n  if (x > 0) {\n    x = x - 1;\n  }\n}"
        result = convert_and_check(source, converter=converter)
        assert pseudocode_lines(result) == [
            "WHILE TRUE DO",
            "   IF x > 0 THEN",
            "      x ← x - 1",
            "   ENDIF",
            "ENDWHILE",
        ]

    def test_strict_mode_rejects_break(self, converter):
        source = "for (int i = 0; i < 3; i++) { if (i == 1) { break; } }"
        lenient = convert_and_check(source, converter=converter)
        assert "// break: exit loop" in lenient.pseudocode
        convert_and_check(source, converter=converter, expect_success=False, strictMode=True)


class TestRecovery:
    """Broken programs still yield pseudocode for the parts that parse."""

    def test_bad_line_between_good_ones(self, converter):
        result = convert_and_check("int a = 1;\nint b = ;\nint c = 3;", converter=converter)
        assert "a ← 1" in result.pseudocode
        assert "c ← 3" in result.pseudocode
        assert ErrorCode.PARSE_ERROR in warning_codes(result)

    def test_try_catch_reported(self, converter):
        result = convert_and_check("try { a(); } catch (Exception e) { b(); }", converter=converter)
        assert ErrorCode.UNSUPPORTED_FEATURE in warning_codes(result)

    def test_deeply_nested_expression_is_kept_as_written(self, converter):
        nested = "(" * 400 + "1" + ")" * 400
        result = convert_and_check(f"int x = {nested};\nint y = 2;", converter=converter)
        assert "Could not parse" not in result.pseudocode
        assert f"x ← {nested}" in result.pseudocode
        assert "y ← 2" in result.pseudocode
        assert ErrorCode.PARSE_ERROR in warning_codes(result)
