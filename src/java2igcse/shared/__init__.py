"""
Shared components used by every stage of the converter.
"""

from .source_location import SourceLocation
from .errors import (
    ConversionWarning, DiagnosticReporter, ErrorCode, Severity,
    ConversionError, ConversionSourceError, ConversionImplementationError,
)
from .nodes import (
    CSTNode, CSTKind, EXPRESSION_KINDS, LOOP_KINDS, empty_node, statement_from_expression, visibility_of,
)
from .scope import Scope, ScopeKind, ScopeManager, VariableInfo, FunctionInfo
from .operators import normalize_operator, negate_comparison
