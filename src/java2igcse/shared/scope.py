"""
Scope resolution for the conversion context.

Stack of scopes, each holding variables and functions by name. Lookups walk
from the innermost scope outwards and return the nearest match or None.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generator, List, Optional


# -----------------------------------------------------------------------------
# Scope kind
# -----------------------------------------------------------------------------


class ScopeKind(Enum):
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"
    CLASS = "class"


# -----------------------------------------------------------------------------
# Symbol records
# -----------------------------------------------------------------------------


@dataclass
class VariableInfo:
    """What the lowering knows about a declared variable."""
    name: str
    type: str
    is_array: bool = False
    array_dimensions: int = 0
    is_constant: bool = False
    initial_value: Optional[Any] = None


@dataclass
class FunctionInfo:
    """Signature facts for a declared method or function."""
    name: str
    parameters: List[VariableInfo] = field(default_factory=list)
    return_type: Optional[str] = None
    is_procedure: bool = True
    is_static: bool = False
    visibility: str = "public"


# -----------------------------------------------------------------------------
# Scope
# -----------------------------------------------------------------------------


@dataclass
class Scope:
    """
    One scope level. define() overwrites (shadow); lookup() inner→outer.
    """

    kind: ScopeKind
    parent: Optional[Scope] = None
    variables: Dict[str, VariableInfo] = field(default_factory=dict)
    functions: Dict[str, FunctionInfo] = field(default_factory=dict)

    def lookup_variable(self, name: str) -> Optional[VariableInfo]:
        if name in self.variables:
            return self.variables[name]
        if self.parent is not None:
            return self.parent.lookup_variable(name)
        return None

    def lookup_function(self, name: str) -> Optional[FunctionInfo]:
        if name in self.functions:
            return self.functions[name]
        if self.parent is not None:
            return self.parent.lookup_function(name)
        return None

    def defined_in_this_scope(self, name: str) -> bool:
        return name in self.variables or name in self.functions


# -----------------------------------------------------------------------------
# Scope manager (push/pop, scope() context manager)
# -----------------------------------------------------------------------------


class ScopeManager:
    """
    Scope stack. enter_scope = push, exit_scope = pop.
    declare/lookup operate on the current (innermost) scope.
    """

    def __init__(self) -> None:
        self._stack: List[Scope] = []
        self.enter_scope(ScopeKind.GLOBAL)

    @property
    def current(self) -> Scope:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        return len(self._stack)

    def enter_scope(self, kind: ScopeKind) -> Scope:
        parent = self._stack[-1] if self._stack else None
        scope = Scope(kind=kind, parent=parent)
        self._stack.append(scope)
        return scope

    def exit_scope(self) -> None:
        if len(self._stack) <= 1:
            raise RuntimeError("Cannot exit scope: global scope is not removable")
        self._stack.pop()

    @contextmanager
    def scope(self, kind: ScopeKind) -> Generator[Scope, None, None]:
        """Context manager: enter scope on entry, exit on leave."""
        s = self.enter_scope(kind)
        try:
            yield s
        finally:
            self.exit_scope()

    def declare_variable(self, info: VariableInfo) -> None:
        self.current.variables[info.name] = info

    def declare_function(self, info: FunctionInfo) -> None:
        # Functions are visible from the whole program once declared
        target = self.current
        while target.kind in (ScopeKind.BLOCK, ScopeKind.FUNCTION) and target.parent is not None:
            target = target.parent
        target.functions[info.name] = info

    def lookup_variable(self, name: str) -> Optional[VariableInfo]:
        return self.current.lookup_variable(name)

    def lookup_function(self, name: str) -> Optional[FunctionInfo]:
        return self.current.lookup_function(name)

    def in_kind(self, kind: ScopeKind) -> bool:
        """True if any enclosing scope has the given kind."""
        return any(s.kind is kind for s in self._stack)
