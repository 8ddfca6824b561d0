"""
Feature detection

Names of the language features a snippet uses, reported in the conversion
metadata (``featuresUsed``).
"""

from typing import List, Set

from ..shared.nodes import CSTKind, CSTNode

_KIND_FEATURES = {
    CSTKind.CLASS_DECLARATION: "classes",
    CSTKind.METHOD_DECLARATION: "methods",
    CSTKind.ARROW_FUNCTION: "methods",
    CSTKind.IF_STATEMENT: "conditionals",
    CSTKind.CONDITIONAL_EXPRESSION: "conditionals",
    CSTKind.FOR_LOOP: "for_loops",
    CSTKind.FOR_EACH_LOOP: "for_each_loops",
    CSTKind.WHILE_LOOP: "while_loops",
    CSTKind.DO_WHILE_LOOP: "do_while_loops",
    CSTKind.SWITCH_STATEMENT: "switch",
    CSTKind.INDEX_ACCESS: "arrays",
    CSTKind.NEW_ARRAY: "arrays",
    CSTKind.ARRAY_LITERAL: "arrays",
    CSTKind.TEMPLATE_LITERAL: "template_literals",
    CSTKind.INTERFACE_DECLARATION: "interfaces",
    CSTKind.DESTRUCTURING_DECLARATION: "destructuring",
    CSTKind.AWAIT_EXPRESSION: "async",
}

_STRING_METHOD_NAMES = frozenset({
    "length", "charAt", "substring", "substr", "slice", "indexOf", "lastIndexOf",
    "toLowerCase", "toUpperCase", "equals", "equalsIgnoreCase", "contains", "includes",
    "startsWith", "endsWith", "trim", "split", "concat", "replace", "isEmpty",
})

_OUTPUT_CALLEES = frozenset({"System.out.println", "System.out.print", "System.out.printf",
                             "console.log", "console.error", "console.warn"})


def collect_features(ast: CSTNode) -> List[str]:
    found: Set[str] = set()
    for node in ast.walk():
        feature = _KIND_FEATURES.get(node.kind)
        if feature is not None:
            found.add(feature)
        if node.kind is CSTKind.VARIABLE_DECLARATION:
            found.add("variables")
            if node.get("is_array"):
                found.add("arrays")
        elif node.kind is CSTKind.NEW_EXPRESSION and str(node.value).startswith("Scanner"):
            found.add("input")
        elif node.kind is CSTKind.CALL_EXPRESSION and node.children:
            callee = node.children[0]
            callee_text = callee.text
            if callee_text in _OUTPUT_CALLEES:
                found.add("output")
            elif callee_text == "prompt":
                found.add("input")
            elif callee.kind is CSTKind.MEMBER_ACCESS:
                if callee_text.startswith("Math."):
                    found.add("math")
                elif str(callee.value).startswith("next"):
                    found.add("input")
                elif callee.value in _STRING_METHOD_NAMES:
                    found.add("string_methods")
    return sorted(found)
