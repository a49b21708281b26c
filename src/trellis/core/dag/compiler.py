# src/trellis/core/dag/compiler.py
"""Resolve a build request into a Plan.

Resolution order for an argument at a build site:
1. Static bindings declared with ``using()`` at that site
2. The enclosing scope: sibling build/configure steps and the enclosing
   node's own arguments
3. Inputs supplied to the run
4. The registry entry of the same name

Every compiled node receives a structural signature computed from its
computation identity and the ordered signatures of its dependencies, so
differently aliased nodes doing the same work share one execution.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from trellis.contracts.enums import NodeKind, Visibility
from trellis.contracts.errors import GraphCycleError, NodeDefinitionError, NodeNotFoundError
from trellis.contracts.types import NodeKey, Signature
from trellis.core.canonical import compute_signature, literal_identity
from trellis.core.dag.definition import NodeDefinition
from trellis.core.dag.graph import Graph
from trellis.core.dag.models import Binding, BuildStep, CompiledNode, Dependency, Literal
from trellis.core.dag.plan import Plan
from trellis.core.injection import plan_injection
from trellis.core.logging import get_logger
from trellis.core.names import NodeName

logger = get_logger(__name__)

JOIN_KEY = NodeKey("<join>")


def _dependency_triples(dependencies: Iterable[Dependency]) -> list[tuple[str, str, str]]:
    return [(dep.visibility.value, dep.arg_name, dep.node.signature) for dep in dependencies]


def _value_signature(value: Any) -> Signature:
    return compute_signature(f"value:{literal_identity(value)}", [])


def _bound_references(bindings: Mapping[str, Binding]) -> tuple[tuple[str, str | None], ...]:
    """Hashable view of static bindings; literal values never lead back into the graph."""
    return tuple(sorted((arg, binding.source if isinstance(binding.source, str) else None) for arg, binding in bindings.items()))


class _Scope:
    """Names visible at one build site.

    Steps compile lazily on first reference, so a step may refer to a
    sibling declared after it, and configured steps compile only if used.
    ``owner`` names the definition whose steps these are; None for the
    builder's own scope.
    """

    def __init__(
        self,
        compiler: PlanCompiler,
        *,
        steps: Sequence[BuildStep],
        arguments: Mapping[str, CompiledNode],
        prefix: str,
        chain: tuple[str, ...],
        owner: str | None = None,
    ) -> None:
        self._compiler = compiler
        self._steps: dict[str, BuildStep] = {}
        for step in steps:
            if step.alias.name in self._steps:
                raise NodeDefinitionError(f"Alias '{step.alias.name}' is built twice in {'/'.join(chain) or 'the builder'}")
            self._steps[step.alias.name] = step
        self._compiled: dict[str, CompiledNode] = dict(arguments)
        self._in_progress: set[str] = set()
        self.prefix = prefix
        self.chain = chain
        self.owner = owner

    def lookup(self, name: str) -> CompiledNode | None:
        if name in self._compiled:
            return self._compiled[name]
        step = self._steps.get(name)
        if step is None:
            return None
        return self.resolve_step(step)

    def resolve_step(self, step: BuildStep) -> CompiledNode:
        name = step.alias.name
        if name in self._compiled:
            return self._compiled[name]
        if name in self._in_progress:
            raise GraphCycleError([*self.chain, name, name])
        self._in_progress.add(name)
        try:
            node = self._compiler.compile_step(step, self)
        finally:
            self._in_progress.discard(name)
        self._compiled[name] = node
        return node


class PlanCompiler:
    """Compiles one build request against a Graph.

    A compiler is single-use: it accumulates the nodes of one Plan.
    """

    def __init__(self, graph: Graph, *, builder_name: str | None, inputs: Mapping[str, Any]) -> None:
        self._graph = graph
        self._builder_name = builder_name
        self._inputs = inputs
        self._nodes: dict[NodeKey, CompiledNode] = {}
        self._input_nodes: dict[str, CompiledNode] = {}
        self._projections: dict[tuple[NodeKey, str], CompiledNode] = {}
        self._reserved: set[str] = {JOIN_KEY}
        self._compiling: set[tuple[str, str | None, tuple[tuple[str, str | None], ...]]] = set()

    def compile(self, steps: Sequence[BuildStep]) -> Plan:
        """Compile top-level build steps into a Plan whose join depends on every requested output.

        Raises:
            NodeNotFoundError: A reference cannot be resolved
            GraphCycleError: A node depends on itself
            InjectorError: A constructor parameter matches no passed argument
        """
        scope = _Scope(self, steps=steps, arguments={}, prefix="", chain=())
        outputs = [
            Dependency(step.alias.name, step.visibility, scope.resolve_step(step))
            for step in steps
            if not step.configured
        ]
        join = CompiledNode(
            key=JOIN_KEY,
            alias=JOIN_KEY,
            kind=NodeKind.JOIN,
            signature=compute_signature("join", _dependency_triples(outputs)),
            label=self._builder_name or "<builder>",
            dependencies=tuple(outputs),
        )
        self._register(join)
        plan = Plan(self._nodes, join, self._builder_name)
        logger.debug(
            "Plan compiled",
            builder=self._builder_name,
            nodes=plan.node_count,
            executions=plan.execution_count,
        )
        return plan

    def compile_step(self, step: BuildStep, scope: _Scope) -> CompiledNode:
        key = self._unique_key(f"{scope.prefix}{step.alias.name}")
        target = step.target
        if isinstance(target, Literal):
            return self._literal(key, step.alias.name, target.value)

        definition = self._definition(target.head, scope.chain)
        if not target.members:
            return self._compile_definition(definition, key, step.alias.name, step.bindings, scope, scope.chain)

        base = self._compile_definition(
            definition,
            self._unique_key(f"{scope.prefix}{target.head}"),
            target.head,
            step.bindings,
            scope,
            scope.chain,
        )
        return self._project(base, target.members, final_key=key, alias=step.alias.name)

    def _compile_definition(
        self,
        definition: NodeDefinition,
        key: NodeKey,
        alias: str,
        bindings: Mapping[str, Binding],
        site: _Scope,
        parent_chain: tuple[str, ...],
    ) -> CompiledNode:
        chain = (*parent_chain, definition.name)
        # Scopes owned by the same definition resolve names identically, so
        # what gets compiled depends only on (definition, site owner, bound
        # references). Meeting that state again while it is still compiling
        # would recurse forever. Re-using a name under other bindings is
        # ordinary nesting.
        state = (definition.name, site.owner, _bound_references(bindings))
        if state in self._compiling:
            raise GraphCycleError(chain)
        self._compiling.add(state)
        try:
            return self._compile_body(definition, key, alias, bindings, site, chain)
        finally:
            self._compiling.discard(state)

    def _compile_body(
        self,
        definition: NodeDefinition,
        key: NodeKey,
        alias: str,
        bindings: Mapping[str, Binding],
        site: _Scope,
        chain: tuple[str, ...],
    ) -> CompiledNode:
        definition.freeze()

        dependencies: list[Dependency] = []
        arguments: dict[str, CompiledNode] = {}
        for arg in definition.argument_names():
            node = self._resolve_argument(arg, bindings.get(arg.name), site, key, chain)
            arguments[arg.name] = node
            dependencies.append(Dependency(arg.arg_name, arg.visibility, node))

        inner = _Scope(self, steps=definition.steps, arguments=arguments, prefix=f"{key}/", chain=chain, owner=definition.name)
        for step in definition.steps:
            if step.configured:
                continue
            dependencies.append(Dependency(step.alias.arg_name, step.visibility, inner.resolve_step(step)))

        computation = definition.computation
        injection = None
        if computation.matches_by_name:
            passed = [dep.arg_name for dep in dependencies if dep.visibility.is_passed]
            injection = plan_injection(computation.target, passed)

        return self._register(
            CompiledNode(
                key=key,
                alias=alias,
                kind=NodeKind.COMPUTATION,
                signature=compute_signature(computation.identity, _dependency_triples(dependencies)),
                label=definition.name,
                computation=computation,
                dependencies=tuple(dependencies),
                chain=chain,
                injection=injection,
            )
        )

    def _resolve_argument(
        self,
        arg: NodeName,
        binding: Binding | None,
        site: _Scope,
        owner_key: NodeKey,
        chain: tuple[str, ...],
    ) -> CompiledNode:
        if binding is None:
            return self._resolve_reference(arg.name, site, owner_key, chain)
        if isinstance(binding.source, Literal):
            return self._literal(self._unique_key(f"{owner_key}/{arg.name}"), arg.name, binding.source.value)
        return self._resolve_reference(binding.source, site, owner_key, chain)

    def _resolve_reference(self, reference: str, site: _Scope, owner_key: NodeKey, chain: tuple[str, ...]) -> CompiledNode:
        name = NodeName.parse(reference)
        base = site.lookup(name.head)
        if base is None and name.head in self._inputs:
            base = self._input(name.head)
        if base is None:
            definition = self._definition(name.head, chain)
            base = self._compile_definition(
                definition,
                self._unique_key(f"{owner_key}/{name.head}"),
                name.head,
                {},
                site,
                chain,
            )
        if not name.members:
            return base
        return self._project(base, name.members)

    def _definition(self, name: str, chain: Sequence[str]) -> NodeDefinition:
        definition = self._graph.get(name)
        if definition is None:
            raise NodeNotFoundError(name, builder_name=self._builder_name, chain=chain)
        return definition

    def _project(
        self,
        base: CompiledNode,
        members: Sequence[str],
        *,
        final_key: NodeKey | None = None,
        alias: str | None = None,
    ) -> CompiledNode:
        node = base
        for index, member in enumerate(members):
            last = index == len(members) - 1
            cache_key = (node.key, member)
            if cache_key in self._projections and not (last and final_key is not None):
                node = self._projections[cache_key]
                continue
            key = final_key if last and final_key is not None else self._unique_key(f"{node.key}.{member}")
            edge = Dependency("value", Visibility.NORMAL, node)
            projected = self._register(
                CompiledNode(
                    key=key,
                    alias=alias if last and alias is not None else f"{node.alias}.{member}",
                    kind=NodeKind.PROJECTION,
                    signature=compute_signature(f"member:{member}", _dependency_triples([edge])),
                    label=member,
                    member=member,
                    dependencies=(edge,),
                    chain=node.chain,
                )
            )
            self._projections.setdefault(cache_key, projected)
            node = projected
        return node

    def _literal(self, key: NodeKey, alias: str, value: Any) -> CompiledNode:
        return self._register(
            CompiledNode(
                key=key,
                alias=alias,
                kind=NodeKind.LITERAL,
                signature=_value_signature(value),
                label=alias,
                value=value,
            )
        )

    def _input(self, name: str) -> CompiledNode:
        if name not in self._input_nodes:
            value = self._inputs[name]
            self._input_nodes[name] = self._register(
                CompiledNode(
                    key=self._unique_key(f"<input>/{name}"),
                    alias=name,
                    kind=NodeKind.INPUT,
                    signature=_value_signature(value),
                    label=name,
                    value=value,
                )
            )
        return self._input_nodes[name]

    def _unique_key(self, candidate: str) -> NodeKey:
        key = candidate
        counter = 1
        while key in self._reserved:
            counter += 1
            key = f"{candidate}#{counter}"
        self._reserved.add(key)
        return NodeKey(key)

    def _register(self, node: CompiledNode) -> CompiledNode:
        self._nodes[node.key] = node
        return node

