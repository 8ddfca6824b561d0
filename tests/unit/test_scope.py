"""
Tests for the scope stack used during lowering.
"""

import pytest

from java2igcse.shared.scope import FunctionInfo, ScopeKind, ScopeManager, VariableInfo


class TestScopeManager:
    """Declaration and innermost-first lookup."""

    def test_starts_in_global_scope(self):
        scopes = ScopeManager()
        assert scopes.depth == 1
        assert scopes.current.kind is ScopeKind.GLOBAL

    def test_lookup_walks_outwards(self):
        scopes = ScopeManager()
        scopes.declare_variable(VariableInfo("x", "INTEGER"))
        with scopes.scope(ScopeKind.FUNCTION):
            with scopes.scope(ScopeKind.BLOCK):
                assert scopes.lookup_variable("x").type == "INTEGER"

    def test_inner_declaration_shadows(self):
        scopes = ScopeManager()
        scopes.declare_variable(VariableInfo("x", "INTEGER"))
        with scopes.scope(ScopeKind.BLOCK):
            scopes.declare_variable(VariableInfo("x", "STRING"))
            assert scopes.lookup_variable("x").type == "STRING"
        assert scopes.lookup_variable("x").type == "INTEGER"

    def test_block_variables_disappear(self):
        scopes = ScopeManager()
        with scopes.scope(ScopeKind.BLOCK):
            scopes.declare_variable(VariableInfo("tmp", "REAL"))
        assert scopes.lookup_variable("tmp") is None

    def test_functions_are_hoisted_out_of_blocks(self):
        scopes = ScopeManager()
        with scopes.scope(ScopeKind.CLASS):
            with scopes.scope(ScopeKind.FUNCTION):
                scopes.declare_function(FunctionInfo("helper", return_type="INTEGER", is_procedure=False))
            assert scopes.lookup_function("helper").return_type == "INTEGER"
            assert "helper" in scopes.current.functions

    def test_global_scope_cannot_be_exited(self):
        scopes = ScopeManager()
        with pytest.raises(RuntimeError):
            scopes.exit_scope()

    def test_in_kind(self):
        scopes = ScopeManager()
        with scopes.scope(ScopeKind.FUNCTION):
            with scopes.scope(ScopeKind.BLOCK):
                assert scopes.in_kind(ScopeKind.FUNCTION)
                assert not scopes.in_kind(ScopeKind.CLASS)

    def test_scope_exits_on_exception(self):
        scopes = ScopeManager()
        with pytest.raises(ValueError):
            with scopes.scope(ScopeKind.BLOCK):
                raise ValueError("boom")
        assert scopes.depth == 1
