# src/trellis/core/dag/plan.py
"""Plan: the compiled, acyclic set of nodes for one run.

Wraps a NetworkX DiGraph whose edges run from a dependency to its
consumer, so graph.succ[x] are the callers of x and graph.pred[x] its
inputs.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import networkx as nx

from trellis.contracts.errors import GraphCycleError
from trellis.contracts.types import NodeKey
from trellis.core.dag.models import CompiledNode


class Plan:
    """Compiled nodes, their edges, and the synthetic join over requested outputs."""

    def __init__(self, nodes: Mapping[NodeKey, CompiledNode], join: CompiledNode, builder_name: str | None = None) -> None:
        self._nodes: Mapping[NodeKey, CompiledNode] = MappingProxyType(dict(nodes))
        self.join = join
        self.builder_name = builder_name
        self._graph: nx.DiGraph[NodeKey] = nx.DiGraph()
        for key, node in self._nodes.items():
            self._graph.add_node(key, kind=node.kind, signature=node.signature)
            for dep in node.dependencies:
                self._graph.add_edge(dep.node.key, key, arg=dep.arg_name, visibility=dep.visibility)
        if not nx.is_directed_acyclic_graph(self._graph):
            cycle = nx.find_cycle(self._graph)
            raise GraphCycleError([str(edge[0]) for edge in cycle] + [str(cycle[0][0])])

    @property
    def nodes(self) -> Mapping[NodeKey, CompiledNode]:
        return self._nodes

    @property
    def node_count(self) -> int:
        """Number of compiled nodes, including the join."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    @property
    def execution_count(self) -> int:
        """Number of distinct signatures, i.e. computations actually run."""
        return len({node.signature for node in self._nodes.values()})

    def get_node(self, key: str) -> CompiledNode:
        return self._nodes[NodeKey(key)]

    def callers_of(self, key: str) -> tuple[str, ...]:
        """Keys of the nodes consuming ``key`` directly."""
        return tuple(self._graph.successors(NodeKey(key)))

    def topological_order(self) -> list[NodeKey]:
        return list(nx.topological_sort(self._graph))

    def generations(self) -> list[list[NodeKey]]:
        """Layers of nodes whose dependencies all sit in earlier layers."""
        return [sorted(generation) for generation in nx.topological_generations(self._graph)]

    def get_nx_graph(self) -> nx.DiGraph[Any]:
        """Return a frozen copy of the underlying NetworkX graph."""
        return nx.freeze(self._graph.copy())  # type: ignore[no-any-return]
