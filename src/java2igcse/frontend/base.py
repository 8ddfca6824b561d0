"""
Frontend interface shared by the Java and TypeScript parsers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..shared.errors import ConversionWarning, DiagnosticReporter
from ..shared.nodes import CSTNode


@dataclass
class ParseResult:
    """CST plus the diagnostics produced while building it."""
    ast: Optional[CSTNode]
    errors: List[ConversionWarning] = field(default_factory=list)
    success: bool = True
    features_used: List[str] = field(default_factory=list)


class SourceParser(ABC):
    """Source text → CST. Never raises for bad input; problems become diagnostics."""

    language: str = ""

    def __init__(self, file_name: str = "<input>"):
        self.file_name = file_name

    @abstractmethod
    def parse(self, source: str, reporter: Optional[DiagnosticReporter] = None) -> ParseResult:
        """Parse one snippet."""
