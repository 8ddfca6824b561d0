"""
Tests for the source type → IGCSE type table.
"""

import pytest

from java2igcse.passes.type_mapping import (
    TypeMapper, format_array_type, infer_literal_type, is_void, split_array_suffix,
)
from java2igcse.shared.errors import DiagnosticReporter, ErrorCode
from java2igcse.shared.nodes import CSTKind, CSTNode


def _literal(kind, value):
    return CSTNode(CSTKind.LITERAL, value=value, metadata={"literal_type": kind})


class TestJavaTypes:
    """Java primitive and wrapper names."""

    @pytest.mark.parametrize("source,expected", [
        ("int", "INTEGER"),
        ("long", "INTEGER"),
        ("short", "INTEGER"),
        ("byte", "INTEGER"),
        ("Integer", "INTEGER"),
        ("double", "REAL"),
        ("float", "REAL"),
        ("String", "STRING"),
        ("boolean", "BOOLEAN"),
        ("char", "CHAR"),
    ])
    def test_table(self, source, expected):
        assert TypeMapper("java").type_string(source) == expected

    def test_unknown_type_falls_back_with_info(self):
        reporter = DiagnosticReporter()
        assert TypeMapper("java", reporter).type_string("Widget") == "STRING"
        assert reporter.codes() == [ErrorCode.TYPE_CONVERSION_ERROR]
        assert reporter.warnings[0].severity.value == "info"

    def test_known_class_keeps_its_name(self):
        mapper = TypeMapper("java")
        mapper.known_classes.add("Point")
        assert mapper.type_string("Point") == "Point"

    def test_number_is_not_a_java_type(self):
        assert TypeMapper("java").type_string("number") == "STRING"


class TestTypeScriptTypes:
    """TypeScript names layered on the Java table."""

    @pytest.mark.parametrize("source,expected", [
        ("number", "REAL"),
        ("string", "STRING"),
        ("boolean", "BOOLEAN"),
        ("any", "STRING"),
        ("unknown", "STRING"),
        ("void", "STRING"),
        ("object", "STRING"),
    ])
    def test_table(self, source, expected):
        assert TypeMapper("typescript").type_string(source) == expected

    def test_promise_unwrapped(self):
        reporter = DiagnosticReporter()
        assert TypeMapper("typescript", reporter).type_string("Promise<number>") == "REAL"
        assert ErrorCode.TYPE_CONVERSION_ERROR in reporter.codes()

    def test_union_falls_back(self):
        assert TypeMapper("typescript").type_string("string | number") == "STRING"


class TestArrays:
    """ARRAY[1:n] OF T wrapping."""

    def test_one_dimension(self):
        assert TypeMapper("java").type_string("int[]", sizes=["5"]) == "ARRAY[1:5] OF INTEGER"

    def test_unknown_size(self):
        assert TypeMapper("java").type_string("String[]") == "ARRAY[1:SIZE] OF STRING"

    def test_two_dimensions(self):
        assert TypeMapper("java").type_string("double[][]", sizes=["3", "4"]) == \
            "ARRAY[1:3] OF ARRAY[1:4] OF REAL"

    def test_collection_is_an_array(self):
        mapped = TypeMapper("java").map("ArrayList<Integer>")
        assert (mapped.base, mapped.dimensions) == ("INTEGER", 1)

    def test_typescript_array_generic(self):
        assert TypeMapper("typescript").type_string("Array<string>") == "ARRAY[1:SIZE] OF STRING"

    def test_format_array_type(self):
        assert format_array_type("CHAR", ["2"]) == "ARRAY[1:2] OF CHAR"

    def test_split_array_suffix(self):
        assert split_array_suffix("int[][]") == ("int", 2)
        assert split_array_suffix("String") == ("String", 0)


class TestHelpers:
    def test_is_void(self):
        assert is_void("void")
        assert is_void(None)
        assert not is_void("int")

    def test_infer_literal_type(self):
        assert infer_literal_type(_literal("int", "3")) == "int"
        assert infer_literal_type(_literal("float", "2.5")) == "double"
        assert infer_literal_type(_literal("string", '"hi"')) == "String"
        array = CSTNode(CSTKind.ARRAY_LITERAL, [_literal("boolean", "true")])
        assert infer_literal_type(array) == "boolean[]"
        assert infer_literal_type(CSTNode(CSTKind.IDENTIFIER, value="x")) is None
