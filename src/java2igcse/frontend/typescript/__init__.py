"""
TypeScript frontend: lark Earley grammar and a transformer into the shared CST.
"""

from .parser import TypeScriptParser, ParseError, typescript_grammar
from .transformer import TypeScriptTransformer
from .templates import TemplateLiteralParser

__all__ = [
    'TypeScriptParser',
    'ParseError',
    'typescript_grammar',
    'TypeScriptTransformer',
    'TemplateLiteralParser',
]
