"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.

Import patterns:
    from trellis.contracts import Visibility, NodeExecutionError
"""

from trellis.contracts.enums import ComputationKind, ErrorMode, NodeKind, Visibility
from trellis.contracts.errors import (
    BuilderNameRequiredError,
    CompileError,
    DebugContext,
    DuplicateNodeError,
    GraphCycleError,
    GraphDefinitionError,
    InjectorError,
    InvalidNodeNameError,
    NodeDefinitionError,
    NodeExecutionError,
    NodeNotFoundError,
    TrellisError,
)
from trellis.contracts.types import NodeKey, Signature

__all__ = [
    "BuilderNameRequiredError",
    "CompileError",
    "ComputationKind",
    "DebugContext",
    "DuplicateNodeError",
    "ErrorMode",
    "GraphCycleError",
    "GraphDefinitionError",
    "InjectorError",
    "InvalidNodeNameError",
    "NodeDefinitionError",
    "NodeExecutionError",
    "NodeKey",
    "NodeKind",
    "NodeNotFoundError",
    "Signature",
    "TrellisError",
    "Visibility",
]
