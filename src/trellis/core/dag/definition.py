# src/trellis/core/dag/definition.py
"""Node definitions and the fluent build-step API shared with builders."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Self

from trellis.contracts.enums import ComputationKind, Visibility
from trellis.contracts.errors import InvalidNodeNameError, NodeDefinitionError
from trellis.core.dag.models import DEFAULT_COMPUTATION, Binding, BuildStep, Computation, Literal
from trellis.core.injection import has_signature, inspect_parameters, plan_injection
from trellis.core.names import NodeName, arg_name_of, plain_name

if TYPE_CHECKING:
    from trellis.core.dag.graph import Graph


class BuildSteps:
    """Accumulates ``builds``/``configure``/``using`` calls.

    ``using`` applies to every step added by the most recent ``builds`` or
    ``configure`` call.
    """

    def __init__(self) -> None:
        self._steps: list[BuildStep] = []
        self._last_steps: list[BuildStep] = []

    @property
    def steps(self) -> tuple[BuildStep, ...]:
        return tuple(self._steps)

    def _check_mutable(self) -> None:
        """Hook for subclasses that freeze after compilation."""

    def builds(self, spec: str | Mapping[str, Any]) -> Self:
        """Add build steps: ``"name"``, ``"?name"``, ``"!name"``, ``"a.b"`` or ``{alias: target}``."""
        self._check_mutable()
        self._last_steps = [self._make_step(alias, target) for alias, target in _spec_items(spec)]
        self._steps.extend(self._last_steps)
        return self

    def configure(self, spec: str | Mapping[str, Any]) -> Self:
        """Add steps that are compiled only when another step references them."""
        self._check_mutable()
        steps = []
        for alias, target in _spec_items(spec):
            plain_name(alias, site="configure")
            step = self._make_step(alias, target)
            step.configured = True
            steps.append(step)
        self._last_steps = steps
        self._steps.extend(steps)
        return self

    def using(self, *bindings: str | Mapping[str, Any]) -> Self:
        """Bind inputs of the steps added by the last ``builds``/``configure`` call.

        A string binds the argument it names (``"x-fromY"`` binds ``x``) to that
        reference. A mapping binds argument names to references (strings),
        Literals, or plain values (treated as literals).
        """
        self._check_mutable()
        if not self._last_steps:
            raise NodeDefinitionError("using() must follow builds() or configure()")
        parsed = [_parse_binding(arg, source) for arg, source in _binding_items(bindings)]
        for step in self._last_steps:
            for binding in parsed:
                step.bind(binding)
        return self

    @staticmethod
    def _make_step(alias: str, target: Any) -> BuildStep:
        parsed_alias = NodeName.parse(alias)
        if parsed_alias.members and not isinstance(target, str):
            raise InvalidNodeNameError(alias, "member access needs a node target")
        if isinstance(target, str):
            parsed_target = NodeName.parse(target)
            if parsed_target.visibility is not Visibility.NORMAL:
                raise InvalidNodeNameError(target, "build targets take no visibility prefix; prefix the alias")
            return BuildStep(alias=parsed_alias, target=parsed_target)
        literal = target if isinstance(target, Literal) else Literal(target)
        return BuildStep(alias=parsed_alias, target=literal)


def _spec_items(spec: str | Mapping[str, Any]) -> list[tuple[str, Any]]:
    if isinstance(spec, str):
        return [(spec, NodeName.parse(spec).name)]
    if isinstance(spec, Mapping):
        if not spec:
            raise NodeDefinitionError("builds() needs at least one alias")
        return list(spec.items())
    raise NodeDefinitionError(f"Unsupported build spec: {spec!r}")


def _binding_items(bindings: tuple[str | Mapping[str, Any], ...]) -> list[tuple[str, Any]]:
    items: list[tuple[str, Any]] = []
    for binding in bindings:
        if isinstance(binding, str):
            items.append((arg_name_of(binding), binding))
        elif isinstance(binding, Mapping):
            items.extend(binding.items())
        else:
            raise NodeDefinitionError(f"Unsupported binding: {binding!r}")
    return items


def _parse_binding(arg: str, source: Any) -> Binding:
    if isinstance(source, str):
        NodeName.parse(source)
        return Binding(arg=arg, source=source)
    if isinstance(source, Literal):
        return Binding(arg=arg, source=source)
    return Binding(arg=arg, source=Literal(source))


class NodeDefinition(BuildSteps):
    """A named computation registered on a Graph.

    Arguments come from ``args()`` (or the ``deps`` list given to
    ``Graph.add``); without either they are inferred from the computation's
    required parameters, provided the node has no build steps of its own.
    Passed values reach the computation in order: declared arguments first,
    then build steps. Void and silent entries are built but not passed.
    """

    def __init__(self, graph: Graph, name: str, computation: Computation | None = None) -> None:
        super().__init__()
        self.graph = graph
        self.name = name
        self._computation = computation
        self._args: list[NodeName] | None = None
        self._frozen = False

    def __repr__(self) -> str:
        return f"NodeDefinition({self.name!r})"

    @property
    def computation(self) -> Computation:
        return self._computation or DEFAULT_COMPUTATION

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Called by the compiler; the definition is read-only afterwards."""
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise NodeDefinitionError(f"Node '{self.name}' has been compiled and can no longer be modified")

    def args(self, *names: str) -> Self:
        """Declare arguments satisfied by the build site (prefixes allowed)."""
        self._check_mutable()
        parsed = [NodeName.parse(name) for name in names]
        for name in parsed:
            if name.members:
                raise InvalidNodeNameError(name.spelled, "arguments cannot use member access")
        self._args = [*(self._args or []), *parsed]
        return self

    def fn(self, function: Callable[..., Any]) -> Self:
        """Call ``function`` with passed arguments positionally."""
        self._check_mutable()
        self._computation = Computation(ComputationKind.FUNCTION, function)
        return self

    def ctor(self, cls: type) -> Self:
        """Construct ``cls`` with passed arguments matched by parameter name."""
        self._check_mutable()
        self._computation = Computation(ComputationKind.CONSTRUCTOR, cls)
        return self

    def inject(self, function: Callable[..., Any]) -> Self:
        """Call ``function`` with passed arguments matched by parameter name.

        Raises:
            InjectorError: A parameter matches no passed argument or build step
        """
        self._check_mutable()
        plan_injection(function, self.passed_names())
        self._computation = Computation(ComputationKind.INJECTED, function)
        return self

    def argument_names(self) -> tuple[NodeName, ...]:
        if self._args is not None:
            return tuple(self._args)
        computation = self.computation
        if self._computation is None or not computation.is_callable:
            return ()
        if any(not step.configured for step in self._steps) or not has_signature(computation.target):
            return ()
        names, _, defaults = inspect_parameters(computation.target)
        return tuple(NodeName(name) for name in names if name not in defaults)

    def passed_names(self) -> list[str]:
        """Argument names of the values handed to the computation, in order."""
        names = [arg.arg_name for arg in self.argument_names() if arg.visibility.is_passed]
        names.extend(step.alias.arg_name for step in self._steps if not step.configured and step.visibility.is_passed)
        return names
