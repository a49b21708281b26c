# src/trellis/engine/builder.py
"""Builder: the caller-facing facade over compile and execute.

A Builder accumulates requested outputs with the same fluent
``builds``/``using``/``configure`` API node definitions use. Each ``run()``
compiles a fresh Plan, executes it in its own ExecutionContext and projects
the requested values into a BuildResult.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from trellis.contracts.enums import Visibility
from trellis.contracts.errors import NodeExecutionError
from trellis.core.dag.compiler import PlanCompiler
from trellis.core.dag.definition import BuildSteps
from trellis.core.dag.plan import Plan
from trellis.core.injection import bind_arguments, plan_injection
from trellis.core.logging import get_logger
from trellis.engine.context import ExecutionContext
from trellis.engine.executor import PlanExecutor

if TYPE_CHECKING:
    from trellis.core.dag.graph import Graph

logger = get_logger(__name__)


class BuildResult(Mapping[str, Any]):
    """Read-only mapping of each normal requested alias to its value.

    Void (``?``) outputs are kept aside for injectors and never appear as
    keys. Silent (``!``) outputs are not kept at all.
    """

    def __init__(self, values: Mapping[str, Any], hidden: Mapping[str, Any] | None = None) -> None:
        self._values = MappingProxyType(dict(values))
        self._hidden = MappingProxyType(dict(hidden or {}))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"BuildResult({dict(self._values)!r})"

    def value_of(self, alias: str) -> Any:
        """Value of a normal or void output.

        Raises:
            KeyError: ``alias`` was not requested as a normal or void output
        """
        if alias in self._values:
            return self._values[alias]
        return self._hidden[alias]


class Builder(BuildSteps):
    """Requests outputs from a Graph.

    Example:
        builder = graph.new_builder("profile-page")
        builder.builds("user").builds({"?token": "auth"}).using({"scope": "read"})
        result = await builder.run({"user_id": 42})
    """

    def __init__(self, graph: Graph, name: str | None = None) -> None:
        super().__init__()
        self.graph = graph
        self.name = name

    def __repr__(self) -> str:
        return f"Builder({self.name!r}, outputs={[step.alias.spelled for step in self._steps]!r})"

    def compile(self, input_names: Iterable[str] = ()) -> Plan:
        """Compile the requested outputs without executing them.

        Inputs named here resolve to input nodes holding None.

        Raises:
            NodeNotFoundError: A reference cannot be resolved
            GraphCycleError: A node depends on itself
            InjectorError: A constructor parameter matches no passed argument
        """
        return self._compile(dict.fromkeys(input_names))

    async def run(self, inputs: Mapping[str, Any] | None = None) -> BuildResult:
        """Compile and execute the requested outputs.

        Args:
            inputs: Values for names the graph does not define; never mutated

        Returns:
            BuildResult of the normal requested aliases

        Raises:
            NodeExecutionError: First failure on the path of a required output
        """
        provided = dict(inputs or {})
        plan = self._compile(provided)
        context = ExecutionContext(plan, self.graph.settings)
        try:
            values = await PlanExecutor(plan, context).execute()
        except NodeExecutionError as error:
            logger.debug("Build failed", builder=self.name, node=error.node_key)
            raise

        hidden = {
            dep.arg_name: context.get_result(dep.node.key, plan.join)
            for dep in plan.join.dependencies
            if dep.visibility is Visibility.VOID
        }
        logger.debug("Build completed", builder=self.name, outputs=sorted(values))
        return BuildResult(values, hidden)

    def run_sync(self, inputs: Mapping[str, Any] | None = None) -> BuildResult:
        """Run on a fresh event loop; not callable from inside a running loop."""
        return asyncio.run(self.run(inputs))

    def create_injector(self, function: Callable[..., Any]) -> Callable[..., Any]:
        """Alias of map_output_keys_to_args() without fallback parameters."""
        return self.map_output_keys_to_args(function)

    def map_output_keys_to_args(
        self,
        function: Callable[..., Any],
        fallback_names: Iterable[str] = (),
    ) -> Callable[..., Any]:
        """Return a callback that calls ``function`` with outputs matched by parameter name.

        Parameters match the argument names of requested normal and void
        outputs (``?user.name`` matches ``name``). The callback takes a
        BuildResult followed by values for ``fallback_names`` parameters,
        in parameter order.

        Raises:
            InjectorError: A parameter without a default matches no output and is not a fallback
        """
        aliases: dict[str, str] = {}
        for step in self._steps:
            if step.configured or step.visibility is Visibility.SILENT:
                continue
            aliases.setdefault(step.alias.arg_name, step.alias.name)
        plan = plan_injection(function, aliases, fallback_names)

        def injector(result: BuildResult, *extras: Any) -> Any:
            values = [(arg, result.value_of(alias)) for arg, alias in aliases.items()]
            return function(*bind_arguments(plan, values, extras))

        return injector

    def _compile(self, inputs: Mapping[str, Any]) -> Plan:
        compiler = PlanCompiler(self.graph, builder_name=self.name, inputs=inputs)
        return compiler.compile(self._steps)
