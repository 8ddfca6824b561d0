"""
Frontends: source text → CST (see shared.nodes).
"""

from .base import ParseResult, SourceParser
from .java import JavaParser
from .typescript import TypeScriptParser
from ..utils.config import JAVA_LANGUAGE, TYPESCRIPT_LANGUAGE

PARSERS = {
    JAVA_LANGUAGE: JavaParser,
    TYPESCRIPT_LANGUAGE: TypeScriptParser,
}


def parser_for(language: str, file_name: str = "<input>") -> SourceParser:
    return PARSERS[language](file_name)


__all__ = [
    'ParseResult',
    'SourceParser',
    'JavaParser',
    'TypeScriptParser',
    'PARSERS',
    'parser_for',
]
