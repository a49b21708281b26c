# src/trellis/core/dag/models.py
"""Types for node definitions and compiled plans.

Leaf module within the dag package: no imports of definition, graph,
compiler or plan (prevents import cycles).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from trellis.contracts.enums import ComputationKind, NodeKind, Visibility
from trellis.contracts.types import NodeKey, Signature
from trellis.core.canonical import callable_identity, literal_identity
from trellis.core.injection import InjectionPlan, bind_arguments
from trellis.core.names import NodeName


def subgraph(*args: Any) -> Any:
    """Stock computation: the value of the last passed argument, or None."""
    return args[-1] if args else None


@dataclass(frozen=True, slots=True)
class Literal:
    """A value that must never be read as a node reference or a callable."""

    value: Any


@dataclass(frozen=True, slots=True)
class Computation:
    """What a node definition does with its inputs (tagged by kind)."""

    kind: ComputationKind
    target: Any

    @classmethod
    def from_value(cls, value: Any) -> Computation:
        """Classify a value given to Graph.add()."""
        if isinstance(value, Literal):
            return cls(ComputationKind.CONSTANT, value.value)
        if isinstance(value, type):
            return cls(ComputationKind.CONSTRUCTOR, value)
        if callable(value):
            return cls(ComputationKind.FUNCTION, value)
        return cls(ComputationKind.CONSTANT, value)

    @property
    def is_callable(self) -> bool:
        return self.kind is not ComputationKind.CONSTANT

    @property
    def matches_by_name(self) -> bool:
        return self.kind in (ComputationKind.INJECTED, ComputationKind.CONSTRUCTOR)

    @property
    def identity(self) -> str:
        if self.kind is ComputationKind.CONSTANT:
            return f"constant:{literal_identity(self.target)}"
        return callable_identity(self.kind.value, self.target)


DEFAULT_COMPUTATION = Computation(ComputationKind.FUNCTION, subgraph)


@dataclass(frozen=True, slots=True)
class Binding:
    """Static input for one argument of a build step.

    ``source`` is either a reference resolved in the build site's scope or a
    Literal.
    """

    arg: str
    source: str | Literal


@dataclass(slots=True)
class BuildStep:
    """One ``builds()``/``configure()`` entry of a definition or builder."""

    alias: NodeName
    target: NodeName | Literal
    bindings: dict[str, Binding] = field(default_factory=dict)
    configured: bool = False

    @property
    def visibility(self) -> Visibility:
        return self.alias.visibility

    def bind(self, binding: Binding) -> None:
        self.bindings[binding.arg] = binding


@dataclass(frozen=True, slots=True)
class Dependency:
    """Edge from a compiled node to one of its inputs."""

    arg_name: str
    visibility: Visibility
    node: CompiledNode


@dataclass(eq=False, slots=True)
class CompiledNode:
    """One entry of a Plan.

    Attributes:
        key: Plan-unique key ('alias' at top level, 'parent/alias' nested)
        alias: Name the value is exposed under at its build site
        kind: What produces the value
        signature: Structural signature; equal signatures share one execution
        label: Definition name, input name or member name, for debug output
        computation: Set for COMPUTATION nodes
        value: Set for LITERAL and INPUT nodes
        member: Set for PROJECTION nodes
        dependencies: Inputs in argument order
        chain: Definition names leading from the requested output to this node
        injection: Name-matching plan for INJECTED and CONSTRUCTOR computations
    """

    key: NodeKey
    alias: str
    kind: NodeKind
    signature: Signature
    label: str
    computation: Computation | None = None
    value: Any = None
    member: str | None = None
    dependencies: tuple[Dependency, ...] = ()
    chain: tuple[str, ...] = ()
    injection: InjectionPlan | None = None

    @property
    def passed_dependencies(self) -> tuple[Dependency, ...]:
        return tuple(dep for dep in self.dependencies if dep.visibility.is_passed)

    def invoke(self, values: Sequence[tuple[str, Any]]) -> Any:
        """Produce this node's value from its passed dependency values.

        Args:
            values: (argument name, value) pairs for passed dependencies, in order

        Returns:
            The raw result, possibly an awaitable or a Tracer
        """
        match self.kind:
            case NodeKind.LITERAL | NodeKind.INPUT:
                return self.value
            case NodeKind.PROJECTION:
                _, base = values[0]
                return project_member(base, self.member or "")
            case NodeKind.JOIN:
                return dict(values)
            case NodeKind.COMPUTATION:
                return self._call(values)

    def _call(self, values: Sequence[tuple[str, Any]]) -> Any:
        computation = self.computation or DEFAULT_COMPUTATION
        if computation.kind is ComputationKind.CONSTANT:
            return computation.target
        target: Callable[..., Any] = computation.target
        if computation.matches_by_name and self.injection is not None:
            return target(*bind_arguments(self.injection, values))
        return target(*(value for _, value in values))


def project_member(value: Any, member: str) -> Any:
    """Read ``member`` from a mapping by key, from anything else by attribute."""
    if isinstance(value, Mapping):
        return value[member]
    return getattr(value, member)
