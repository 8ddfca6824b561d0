"""
Passes: CST → IR lowering and the services it relies on (array-index
renumbering, loop bounds, type mapping, string and Math methods).
"""

from .base import BasePass, ConversionContext
from .ast_to_ir import ASTToIRLowerer, ASTToIRLoweringPass, TransformResult
# Language lowerers register themselves on import
from .java_to_ir import JavaToIRLowerer
from .typescript_to_ir import TypeScriptToIRLowerer
from .array_indexing import ArrayConversion, ArrayIndexContext, ArrayIndexRenumberer
from .loop_bounds import LoopBounds, convert_for_loop_bounds

__all__ = [
    'BasePass',
    'ConversionContext',
    'ASTToIRLowerer',
    'ASTToIRLoweringPass',
    'TransformResult',
    'JavaToIRLowerer',
    'TypeScriptToIRLowerer',
    'ArrayConversion',
    'ArrayIndexContext',
    'ArrayIndexRenumberer',
    'LoopBounds',
    'convert_for_loop_bounds',
]
