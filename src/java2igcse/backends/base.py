"""
Backend Interface

A backend turns the lowered IR program into target text.
"""

from abc import ABC, abstractmethod

from ..ir.nodes import IRNode


class Backend(ABC):
    """
    Backend interface.

    Backends trust the IR: operators are already in target spelling and
    indices already renumbered, so nothing is re-analysed here.
    """

    @abstractmethod
    def generate(self, program: IRNode) -> str:
        """Render an IR program; never raises for malformed nodes."""
        raise NotImplementedError
