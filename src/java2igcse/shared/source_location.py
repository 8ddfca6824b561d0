"""
Source Location (Span)

Every CST node, IR node and diagnostic carries one of these.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Position of a construct in the converted snippet.

    - 1-based line and column, like the editors students paste from
    - Optional end position for multi-line spans (0 means unknown)
    - Immutable (frozen) for hashability
    """
    line: int
    column: int
    file: str = "<input>"
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column"""
        return f"{self.file}:{self.line}:{self.column}"
