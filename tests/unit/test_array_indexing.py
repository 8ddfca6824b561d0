"""
Tests for the array-index renumbering engine (0-based → 1-based).
"""

import pytest

from java2igcse.backends.pseudocode import PseudocodeGenerator
from java2igcse.ir import nodes as ir
from java2igcse.passes.array_indexing import ArrayIndexContext, ArrayIndexRenumberer
from java2igcse.shared.errors import DiagnosticReporter, ErrorCode


def _text(node):
    return PseudocodeGenerator().expr(node)


@pytest.fixture
def renumberer():
    return ArrayIndexRenumberer(ArrayIndexContext(), DiagnosticReporter())


class TestTextConversion:
    """``convert_array_access`` on source snippets."""

    def test_literal_index(self, renumberer):
        result = renumberer.convert_array_access("arr[0]")
        assert result.converted_expression == "arr[1]"
        assert result.has_array_access

    def test_no_access(self, renumberer):
        result = renumberer.convert_array_access("x + y")
        assert result.converted_expression == "x + y"
        assert not result.has_array_access

    def test_zero_based_variable(self, renumberer):
        assert renumberer.convert_array_access("arr[i]").converted_expression == "arr[i + 1]"

    def test_minus_one_folds(self, renumberer):
        assert renumberer.convert_array_access("arr[n - 1]").converted_expression == "arr[n]"

    def test_every_dimension_converted(self, renumberer):
        result = renumberer.convert_array_access("grid[0][2]")
        assert result.converted_expression == "grid[1][3]"
        assert result.converted_expression.count("[") == 2

    def test_nested_access(self, renumberer):
        result = renumberer.convert_array_access("a[b[0]]")
        assert result.converted_expression == "a[b[1] + 1]"

    def test_strings_untouched(self, renumberer):
        result = renumberer.convert_array_access('msg = "arr[0]" + arr[0]')
        assert result.converted_expression == 'msg = "arr[0]" + arr[1]'

    def test_array_creation_size_untouched(self, renumberer):
        assert renumberer.convert_array_access("new int[5]").converted_expression == "new int[5]"

    def test_length_call_inside_index(self, renumberer):
        result = renumberer.convert_array_access("arr[arr.length - 1]")
        assert result.converted_expression == "arr[LENGTH(arr)]"

    def test_bracket_groups_preserved(self, renumberer):
        expression = "m[i][j] + m[0][k] * v[2]"
        result = renumberer.convert_array_access(expression)
        assert result.converted_expression.count("[") == expression.count("[")
        assert result.converted_expression.count("]") == expression.count("]")

    def test_converted_loop_variable_not_shifted(self, renumberer):
        renumberer.enter_for_loop("i", "1", "LENGTH(arr)", True)
        assert renumberer.convert_array_access("arr[i]").converted_expression == "arr[i]"
        assert renumberer.convert_array_access("arr[i - 1]").converted_expression == "arr[i - 1]"

    def test_one_based_variable(self, renumberer):
        renumberer.enter_for_loop("k", "1", "10", False)
        assert renumberer.convert_array_access("arr[k]").converted_expression == "arr[k]"
        assert renumberer.convert_array_access("arr[k - 1]").converted_expression == "arr[k]"
        result = renumberer.convert_array_access("arr[k * 2]")
        assert result.converted_expression == "arr[k * 2]"
        assert result.warnings

    def test_assignment(self, renumberer):
        result = renumberer.convert_array_assignment("arr[0]", "arr[1] + 2")
        assert result.converted_expression == "arr[1] ← arr[2] + 2"
        assert result.has_array_access

    def test_explicit_context(self, renumberer):
        other = ArrayIndexContext()
        other.converted_variables.add("j")
        assert renumberer.convert_array_access("a[j]", other).converted_expression == "a[j]"
        assert renumberer.convert_array_access("a[j]").converted_expression == "a[j + 1]"


class TestIdempotence:
    """Converting the same input twice gives the same answer."""

    @pytest.mark.parametrize("expression", ["arr[0]", "arr[i]", "grid[i][j + 1]", "a[b[c[0]]]"])
    def test_text_conversion_is_repeatable(self, renumberer, expression):
        first = renumberer.convert_array_access(expression).converted_expression
        second = renumberer.convert_array_access(expression).converted_expression
        assert first == second

    def test_ir_input_is_not_modified(self, renumberer):
        index = ir.binary("+", ir.identifier("i"), ir.integer(2))
        before = _text(index)
        first = renumberer.renumber_index(index, "arr")
        second = renumberer.renumber_index(index, "arr")
        assert _text(index) == before
        assert first == second
        assert _text(first) == "i + 3"


class TestIRRenumbering:
    """``renumber_index`` as used by the lowering."""

    def test_literal(self, renumberer):
        assert _text(renumberer.renumber_index(ir.integer(0), "arr")) == "1"

    def test_zero_based_identifier(self, renumberer):
        assert _text(renumberer.renumber_index(ir.identifier("i"), "arr")) == "i + 1"

    def test_trailing_constant_folds(self, renumberer):
        index = ir.binary("-", ir.call("LENGTH", [ir.identifier("arr")]), ir.integer(1))
        assert _text(renumberer.renumber_index(index, "arr")) == "LENGTH(arr)"

    def test_array_loop_variable(self, renumberer):
        renumberer.enter_for_loop("i", "0", "arr.length", True)
        assert _text(renumberer.renumber_index(ir.identifier("i"), "arr")) == "i"
        renumberer.exit_for_loop("i")
        assert _text(renumberer.renumber_index(ir.identifier("i"), "arr")) == "i + 1"

    def test_one_based_minus_one(self, renumberer):
        renumberer.enter_for_loop("k", "1", "n", False)
        index = ir.binary("-", ir.identifier("k"), ir.integer(1))
        assert _text(renumberer.renumber_index(index, "arr")) == "k"

    def test_one_based_arithmetic_warns(self, renumberer):
        renumberer.enter_for_loop("k", "1", "n", False)
        index = ir.binary("*", ir.identifier("k"), ir.integer(2))
        assert _text(renumberer.renumber_index(index, "arr")) == "k * 2"
        assert renumberer.reporter.codes() == [ErrorCode.ARRAY_INDEX_WARNING]

    def test_nested_loops_restore_state(self, renumberer):
        renumberer.enter_for_loop("i", "0", "arr.length", True)
        renumberer.enter_for_loop("i", "0", "10", False)
        assert _text(renumberer.renumber_index(ir.identifier("i"), "arr")) == "i + 1"
        renumberer.exit_for_loop("i")
        assert _text(renumberer.renumber_index(ir.identifier("i"), "arr")) == "i"

    def test_reset_forgets_everything(self, renumberer):
        renumberer.register_array("arr")
        renumberer.enter_for_loop("i", "0", "arr.length", True)
        renumberer.reset()
        assert not renumberer.is_array("arr")
        assert not renumberer.context.converted_variables
