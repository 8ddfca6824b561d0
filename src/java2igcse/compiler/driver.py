"""
Conversion Driver

Orchestrates one conversion: parse → lower → generate. Every stateful object
(reporter, context, renumberer) is built per call; the driver itself only
holds its options.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..backends.pseudocode import PseudocodeGenerator
from ..frontend import PARSERS, parser_for
from ..ir.nodes import IRNode
from ..ir.serialization import serialize_ir
from ..passes.ast_to_ir import ASTToIRLoweringPass
from ..passes.base import ConversionContext
from ..shared.errors import (
    ConversionWarning, DiagnosticReporter, ErrorCode, STRICT_MODE_FAILURE_CODES,
)
from ..utils.config import DEFAULT_INDENT_SIZE, IR_DUMP_DIR, IR_DUMP_FILE, JAVA_LANGUAGE

logger = logging.getLogger(__name__)

_OPTION_ALIASES = {
    "indentSize": "indent_size",
    "includeComments": "include_comments",
    "strictMode": "strict_mode",
    "customMappings": "custom_mappings",
}


@dataclass
class ConversionOptions:
    indent_size: int = DEFAULT_INDENT_SIZE
    include_comments: bool = True
    strict_mode: bool = False
    custom_mappings: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> 'ConversionOptions':
        """Accepts snake_case keys and their camelCase aliases; unknown keys are ignored."""
        kwargs: Dict[str, Any] = {}
        for key, value in (values or {}).items():
            name = _OPTION_ALIASES.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                kwargs[name] = value
        if "custom_mappings" in kwargs:
            kwargs["custom_mappings"] = dict(kwargs["custom_mappings"])
        return cls(**kwargs)


@dataclass
class ConversionResult:
    """Conversion result"""
    pseudocode: str
    warnings: List[ConversionWarning] = field(default_factory=list)
    success: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)
    ir: Optional[IRNode] = None

    def warning_codes(self) -> List[str]:
        return [w.code for w in self.warnings]

    def to_dict(self) -> Dict[str, Any]:
        meta = self.metadata
        return {
            "pseudocode": self.pseudocode,
            "warnings": [w.to_dict() for w in self.warnings],
            "success": self.success,
            "metadata": {
                "sourceLanguage": meta.get("source_language"),
                "conversionTimeMs": meta.get("conversion_time_ms"),
                "linesProcessed": meta.get("lines_processed"),
                "featuresUsed": list(meta.get("features_used", [])),
            },
        }


class ConversionDriver:
    """
    Conversion driver.

    Phases:
    1. Parsing (source → CST), including the regex pre-checks
    2. Lowering (CST → IR), consulting the array-index renumberer
    3. Generation (IR → pseudocode text)

    Warnings from all phases go into one reporter, in the order found.
    """

    def __init__(self, options: Optional[ConversionOptions] = None):
        self.options = options if options is not None else ConversionOptions()

    def convert(self, source: Any, language: str = JAVA_LANGUAGE,
                options: Optional[ConversionOptions] = None, file_name: str = "<input>") -> ConversionResult:
        options = _coerce_options(options) if options is not None else self.options
        started = time.perf_counter()
        reporter = DiagnosticReporter(source if isinstance(source, str) else None, file_name)

        if language not in PARSERS:
            reporter.error(f"Unsupported source language '{language}'", ErrorCode.INVALID_INPUT)
            return self._result("", reporter, False, language, started, source)
        if not isinstance(source, str):
            reporter.error("Input must be a string of source code", ErrorCode.INVALID_INPUT)
            return self._result("", reporter, False, language, started, source)

        # Phase 1: Parsing
        parsed = parser_for(language, file_name).parse(source, reporter)
        if parsed.ast is None:
            return self._result("", reporter, False, language, started, source)
        if not parsed.ast.children:
            return self._result("", reporter, parsed.success, language, started, source, parsed.features_used)

        # Phase 2: Lowering
        ctx = ConversionContext(language, reporter, options.custom_mappings)
        lowered = ASTToIRLoweringPass().run(parsed.ast, ctx)
        if lowered.result is None:
            return self._result("", reporter, False, language, started, source, parsed.features_used)
        if os.environ.get("JAVA2IGCSE_DUMP_IR"):
            _dump_ir(lowered.result)

        # Phase 3: Generation
        generator = PseudocodeGenerator(options, reporter)
        pseudocode = generator.generate(lowered.result)

        success = parsed.success and lowered.success
        if options.strict_mode and any(code in STRICT_MODE_FAILURE_CODES for code in reporter.codes()):
            logger.debug("[driver] strict mode: conversion raised a failing diagnostic")
            success = False
        return self._result(pseudocode, reporter, success, language, started, source,
                            parsed.features_used, lowered.result)

    def _result(self, pseudocode: str, reporter: DiagnosticReporter, success: bool, language: str,
                started: float, source: Any, features: Optional[List[str]] = None,
                ir: Optional[IRNode] = None) -> ConversionResult:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        lines = len(source.splitlines()) if isinstance(source, str) else 0
        logger.debug(f"[driver] {language}: {lines} line(s), {len(reporter.warnings)} warning(s), "
                     f"success={success}, {elapsed_ms:.1f} ms")
        return ConversionResult(
            pseudocode=pseudocode,
            warnings=list(reporter.warnings),
            success=success,
            metadata={
                "source_language": language,
                "conversion_time_ms": elapsed_ms,
                "lines_processed": lines,
                "features_used": list(features or []),
            },
            ir=ir,
        )


def _coerce_options(options: Any) -> ConversionOptions:
    if isinstance(options, ConversionOptions):
        return options
    return ConversionOptions.from_dict(options)


def _dump_ir(program: IRNode) -> None:
    ir_dump_dir = Path(IR_DUMP_DIR)
    ir_dump_dir.mkdir(parents=True, exist_ok=True)
    try:
        (ir_dump_dir / IR_DUMP_FILE).write_text(serialize_ir(program), encoding="utf-8")
    except OSError as e:
        logger.warning(f"[driver] could not write IR dump: {e}")
