"""
Centralized file I/O utilities.

- Single place for encoding and language-by-extension handling
- Use Path.read_text() consistently (no raw open/read)
"""

from pathlib import Path
from typing import Union

from .config import (
    DEFAULT_FILE_ENCODING,
    JAVA_LANGUAGE,
    TYPESCRIPT_FILE_EXTENSIONS,
    TYPESCRIPT_LANGUAGE,
)


def read_source_file(path: Union[Path, str]) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=DEFAULT_FILE_ENCODING)


def language_for_path(path: Union[Path, str]) -> str:
    """Source language implied by a file extension (java unless it looks like TypeScript)."""
    suffix = Path(path).suffix.lower()
    if suffix in TYPESCRIPT_FILE_EXTENSIONS:
        return TYPESCRIPT_LANGUAGE
    return JAVA_LANGUAGE
