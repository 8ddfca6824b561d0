"""
java2igcse utilities package
"""

from .io_utils import read_source_file, language_for_path

__all__ = ["read_source_file", "language_for_path"]
