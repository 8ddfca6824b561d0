"""
Intermediate representation shared by the lowering and the pseudocode backend.
"""

from .nodes import IRCategory, IRNode
from .visitor import IRVisitor
from .serialization import serialize_ir
