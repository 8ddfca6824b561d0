"""
Base Pass System

A pass takes the tree of one stage and returns the tree of the next. All
per-conversion state lives on ``ConversionContext``; passes themselves hold
nothing between calls.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Set, Type

from ..shared.errors import DiagnosticReporter
from ..shared.scope import ScopeManager
from ..utils.config import JAVA_LANGUAGE
from .array_indexing import ArrayIndexContext, ArrayIndexRenumberer
from .string_methods import StringMethodLowering
from .type_mapping import TypeMapper


class ConversionContext:
    """
    Conversion context - single source of truth for the state of one call.

    Holds the scope chain, the array-index renumbering state, the type table
    and the diagnostics sink. ``reset()`` restores a fresh state so the same
    context object can never leak facts from one program into the next.
    """

    def __init__(self, language: str = JAVA_LANGUAGE, reporter: Optional[DiagnosticReporter] = None,
                 custom_mappings: Optional[Mapping[str, str]] = None):
        self.language = language
        self.reporter: DiagnosticReporter = reporter if reporter is not None else DiagnosticReporter()
        self.custom_mappings: Dict[str, str] = dict(custom_mappings or {})
        self.scopes = ScopeManager()
        self.renumberer = ArrayIndexRenumberer(ArrayIndexContext(), self.reporter)
        self.types = TypeMapper(language, self.reporter)
        self.strings = StringMethodLowering(language, self._renumber_argument, self.reporter)
        # Names bound to java.util.Scanner objects
        self.scanners: Set[str] = set()
        self.features_used: Set[str] = set()
        self._analysis_results: Dict[Type['BasePass'], Any] = {}

    def reset(self) -> None:
        self.scopes = ScopeManager()
        self.renumberer.reset()
        self.types.known_classes.clear()
        self.scanners.clear()
        self.features_used.clear()
        self._analysis_results.clear()

    def _renumber_argument(self, index):
        return self.renumberer.renumber_index(index)

    def get_analysis(self, pass_class: Type['BasePass']) -> Any:
        """Get results stored by an earlier pass"""
        if pass_class not in self._analysis_results:
            raise RuntimeError(f"Analysis {pass_class.__name__} not available")
        return self._analysis_results[pass_class]

    def set_analysis(self, pass_class: Type['BasePass'], results: Any) -> None:
        self._analysis_results[pass_class] = results


class BasePass(ABC):
    """
    Base class for all passes.

    ``requires`` lists passes whose results must be stored on the context
    before this one runs.
    """
    requires: List[Type['BasePass']] = []

    @abstractmethod
    def run(self, tree: Any, ctx: ConversionContext) -> Any:
        """Run the pass; returns the new tree (inputs are never modified)."""
        raise NotImplementedError
