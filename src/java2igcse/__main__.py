"""CLI entry point: run `java2igcse File.java` or `python -m java2igcse File.java`."""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    from .compiler.driver import ConversionDriver, ConversionOptions
    from .ir.serialization import serialize_ir
    from .shared.errors import DiagnosticReporter
    from .utils.config import DEFAULT_INDENT_SIZE, SUPPORTED_LANGUAGES
    from .utils.io_utils import language_for_path, read_source_file

    parser = argparse.ArgumentParser(prog="java2igcse",
                                     description="Convert a Java or TypeScript file to IGCSE pseudocode.")
    parser.add_argument("file", type=Path, help="Path to .java or .ts source file")
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES,
                        help="Source language (default: inferred from the file extension)")
    parser.add_argument("--indent-size", type=int, default=DEFAULT_INDENT_SIZE,
                        help=f"Spaces per indentation level (default: {DEFAULT_INDENT_SIZE})")
    parser.add_argument("--no-comments", action="store_true", help="Leave explanatory comments out")
    parser.add_argument("--strict", action="store_true", help="Fail on unsupported or unconvertible code")
    parser.add_argument("--dump-ir", action="store_true", help="Print the lowered IR as an s-expression")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print warnings")
    args = parser.parse_args(argv)

    level = os.environ.get("JAVA2IGCSE_LOG")
    if level:
        logging.basicConfig(level=getattr(logging, level.upper(), logging.DEBUG),
                            format="%(levelname)s %(name)s: %(message)s")

    if args.indent_size < 0:
        sys.stderr.write("java2igcse: error: --indent-size must not be negative\n")
        return 1

    path = args.file.resolve()
    if not path.exists():
        sys.stderr.write(f"java2igcse: error: file not found: {path}\n")
        return 1
    if not path.is_file():
        sys.stderr.write(f"java2igcse: error: not a file: {path}\n")
        return 1

    try:
        source = read_source_file(path)
    except Exception as e:
        sys.stderr.write(f"java2igcse: error: could not read file: {e}\n")
        return 1

    language = args.language or language_for_path(path)
    options = ConversionOptions(
        indent_size=args.indent_size,
        include_comments=not args.no_comments,
        strict_mode=args.strict,
    )
    result = ConversionDriver(options).convert(source, language, file_name=str(path))

    if not args.quiet and result.warnings:
        reporter = DiagnosticReporter(source, str(path))
        for warning in result.warnings:
            sys.stderr.write(reporter.format_warning(warning) + "\n\n")

    if args.dump_ir and result.ir is not None:
        sys.stdout.write(serialize_ir(result.ir) + "\n")
    if result.pseudocode:
        sys.stdout.write(result.pseudocode + "\n")

    if not result.success:
        sys.stderr.write("java2igcse: conversion failed\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
