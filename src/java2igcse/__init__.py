"""
java2igcse: convert Java and TypeScript snippets into IGCSE pseudocode.

    >>> from java2igcse import convert_java
    >>> print(convert_java("int x = 5;").pseudocode)
    DECLARE x : INTEGER
    x ← 5
"""

from typing import Any, Optional

from .compiler.driver import ConversionDriver, ConversionOptions, ConversionResult
from .shared.errors import ConversionWarning, ErrorCode, Severity
from .utils.config import JAVA_LANGUAGE, TYPESCRIPT_LANGUAGE

__version__ = "0.1.0"


def convert(source: Any, language: str = JAVA_LANGUAGE, options: Any = None) -> ConversionResult:
    """Convert one snippet. ``options`` may be a ConversionOptions or a plain dict."""
    if options is not None and not isinstance(options, ConversionOptions):
        options = ConversionOptions.from_dict(options)
    return ConversionDriver(options).convert(source, language)


def convert_java(source: Any, options: Optional[Any] = None) -> ConversionResult:
    return convert(source, JAVA_LANGUAGE, options)


def convert_typescript(source: Any, options: Optional[Any] = None) -> ConversionResult:
    return convert(source, TYPESCRIPT_LANGUAGE, options)


__all__ = [
    'convert',
    'convert_java',
    'convert_typescript',
    'ConversionDriver',
    'ConversionOptions',
    'ConversionResult',
    'ConversionWarning',
    'ErrorCode',
    'Severity',
]
