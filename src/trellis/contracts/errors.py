"""Exception hierarchy and failure context.

Compile-time errors are raised synchronously, before any node executes.
Run-time failures are wrapped in NodeExecutionError and propagated through
the plan to every dependent of the failing node.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


class TrellisError(Exception):
    """Base class for all errors raised by the engine."""


# =============================================================================
# Compile-time errors
# =============================================================================


class GraphDefinitionError(TrellisError):
    """Raised when a graph or node definition is malformed."""


class InvalidNodeNameError(GraphDefinitionError):
    """Raised when a node name or prefix combination is not allowed at its site."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"invalid node name '{name}': {reason}")


class DuplicateNodeError(GraphDefinitionError):
    """Raised when a node name is registered twice on one graph."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Node '{name}' is already defined")


class NodeDefinitionError(GraphDefinitionError):
    """Raised when a fluent definition call is out of order or mutates a frozen node."""


class InjectorError(GraphDefinitionError):
    """Raised when a callback parameter has no built output to bind to."""

    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"No injector found for parameter: {parameter}")


class BuilderNameRequiredError(TrellisError):
    """Raised when a registry enforces builder names and none was given."""

    def __init__(self) -> None:
        super().__init__("A builder name is required")


class CompileError(TrellisError):
    """Raised when a build request cannot be resolved into a plan."""


class NodeNotFoundError(CompileError):
    """Raised when a referenced name has no binding, input or registry entry.

    Attributes:
        name: The unresolved reference
        builder_name: Name of the requesting builder (may be None)
        chain: Definition names being compiled when the lookup failed
    """

    def __init__(self, name: str, *, builder_name: str | None, chain: Sequence[str] = ()) -> None:
        self.name = name
        self.builder_name = builder_name
        self.chain = tuple(chain)
        message = f"Node '{name}' was not found (builder: {builder_name or '<unnamed>'})"
        if self.chain:
            message += f" while compiling {' -> '.join(self.chain)}"
        super().__init__(message)


class GraphCycleError(CompileError):
    """Raised when a node depends on itself, directly or transitively."""

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.chain)}")


# =============================================================================
# Run-time errors
# =============================================================================


@dataclass(frozen=True, slots=True)
class DebugContext:
    """Where a node failure happened.

    Attributes:
        builder_name: Builder whose run hit the failure
        node_key: Plan key of the node whose computation failed
        callers: Keys of plan nodes that consume the failing node
        failure_chain: Definition names leading from the requested output to the failing node
        failure_inputs: Values of the failing node's direct dependencies, by argument name
    """

    builder_name: str | None
    node_key: str
    callers: tuple[str, ...] = ()
    failure_chain: tuple[str, ...] = ()
    failure_inputs: Mapping[str, Any] = field(default_factory=dict)


class NodeExecutionError(TrellisError):
    """Raised when a node's computation raises or its awaitable fails.

    The same instance is recorded for every node that depends on the failing
    one, so the error surfacing from a run always names the originating node.
    The original exception is chained as ``__cause__`` and kept as ``original``.
    """

    def __init__(self, node_key: str, original: BaseException, debug_context: DebugContext) -> None:
        self.node_key = node_key
        self.original = original
        self.debug_context = debug_context
        super().__init__(f"Node '{node_key}' failed: {type(original).__name__}: {original}")
        self.__cause__ = original
