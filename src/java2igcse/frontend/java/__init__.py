"""
Java frontend: hand-written backtracking recursive-descent parser.
"""

from .cursor import SourceCursor, JavaSyntaxError
from .expressions import ExpressionParser
from .statements import StatementParser
from .parser import JavaParser, ParseResult, validate_ast

__all__ = [
    'SourceCursor',
    'JavaSyntaxError',
    'ExpressionParser',
    'StatementParser',
    'JavaParser',
    'ParseResult',
    'validate_ast',
]
