"""
End-to-end conversion of TypeScript snippets and small programs.
"""

import pytest

from java2igcse.shared.errors import ErrorCode
from tests.test_utils import assert_lines_in_order, convert_and_check, pseudocode_lines, warning_codes

pytestmark = pytest.mark.integration


def _convert(source, converter, **options):
    return convert_and_check(source, "typescript", converter=converter, **options)


class TestPrograms:
    def test_greeting(self, converter):
        source = """
const name = prompt("What is your name?");
const age = parseInt(prompt("How old are you?"));
if (age >= 18) {
    console.log(`Welcome, ${name}`);
} else {
    console.log('Too young');
}
"""
        result = _convert(source, converter)
        assert pseudocode_lines(result) == [
            "DECLARE name : STRING",
            'INPUT "What is your name?", name',
            "DECLARE age : INTEGER",
            'INPUT "How old are you?", age',
            "IF age >= 18 THEN",
            '   OUTPUT "Welcome, ", name',
            "ELSE",
            '   OUTPUT "Too young"',
            "ENDIF",
        ]
        assert {"input", "output", "template_literals"} <= set(result.metadata["features_used"])

    def test_average(self, converter):
        source = """
function average(values: number[]): number {
    let total: number = 0;
    for (const v of values) {
        total += v;
    }
    return total / values.length;
}
let scores = [3, 4, 5];
let mean = average(scores);
console.log("Mean: " + mean.toFixed(1));
"""
        result = _convert(source, converter)
        assert_lines_in_order(result, [
            "FOR vIndex ← 1 TO LENGTH(values)",
            "v ← values[vIndex]",
            "total ← total + v",
            "NEXT vIndex",
            "RETURN total / LENGTH(values)",
            "ENDFUNCTION",
            "DECLARE scores : ARRAY[1:3] OF INTEGER",
            "scores[1] ← 3",
            "mean ← average(scores)",
            'OUTPUT "Mean: ", ROUND(mean, 1)',
        ])

    def test_arrow_function_and_counting_loop(self, converter):
        source = """
const square = (n: number): number => n * n;
for (let i = 1; i <= 3; i++) {
    console.log(square(i));
}
"""
        result = _convert(source, converter)
        assert_lines_in_order(result, [
            "FUNCTION square(n : REAL) RETURNS REAL",
            "RETURN n * n",
            "ENDFUNCTION",
            "FOR i ← 1 TO 3",
            "OUTPUT square(i)",
            "NEXT i",
        ])

    def test_interface_and_while(self, converter):
        source = """
interface Point { x: number; y: number; }
let count = 0;
while (count < 3) {
    count++;
}
"""
        result = _convert(source, converter)
        assert_lines_in_order(result, [
            "// Interface: Point",
            "// Properties: x (REAL), y (REAL)",
            "DECLARE count : INTEGER",
            "WHILE count < 3 DO",
            "count ← count + 1",
            "ENDWHILE",
        ])
        assert "interfaces" in result.metadata["features_used"]

    def test_comments_can_be_left_out(self, converter):
        result = _convert("interface Point { x: number; }\nlet n = 1;", converter, includeComments=False)
        assert pseudocode_lines(result) == ["DECLARE n : INTEGER", "n ← 1"]


class TestRecovery:
    def test_unclosed_function(self, converter):
        result = _convert("function f(): void {\n  console.log('x');", converter)
        assert "PROCEDURE f()" in result.pseudocode
        assert ErrorCode.SYNTAX_WARNING in warning_codes(result)

    def test_bad_line_is_skipped(self, converter):
        result = _convert("let a = 1;\nlet = ;\nlet b = 2;", converter)
        assert "a ← 1" in result.pseudocode
        assert "b ← 2" in result.pseudocode
        assert ErrorCode.PARSE_ERROR in warning_codes(result)

    def test_strict_mode_fails_on_parse_error(self, converter):
        _convert("let a = 1;\nlet = ;", converter, expect_success=False, strictMode=True)
