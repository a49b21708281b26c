# src/trellis/core/dag/graph.py
"""Graph registry: the mapping from node name to NodeDefinition.

Builders are created from a Graph and compile against it. The registry is
read-only while a run executes; definitions freeze once compiled.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from trellis.contracts.enums import ErrorMode
from trellis.contracts.errors import BuilderNameRequiredError, DuplicateNodeError, InvalidNodeNameError
from trellis.core.config import EngineSettings
from trellis.core.dag.definition import NodeDefinition
from trellis.core.dag.models import Computation, Literal, subgraph
from trellis.core.logging import get_logger
from trellis.core.names import plain_name

if TYPE_CHECKING:
    from trellis.engine.builder import Builder

logger = get_logger(__name__)


class Graph:
    """Registry of node definitions.

    Example:
        graph = Graph()
        graph.add("num", lambda n: n)
        graph.add("pair", lambda a, b: (a, b)).builds({"a": "num"}).using({"n": 1})
    """

    subgraph = staticmethod(subgraph)

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()
        self._nodes: dict[str, NodeDefinition] = {}
        self._builder_names = self.settings.builder_names

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @staticmethod
    def literal(value: Any) -> Literal:
        """Wrap a value so it is bound as-is rather than read as a reference or callable."""
        return Literal(value)

    def add(self, name: str, computation: Any = None, deps: Sequence[str] | None = None) -> NodeDefinition:
        """Register a node.

        Args:
            name: Plain node name, unique within this graph
            computation: Function, class (constructor), Literal or constant value;
                None leaves the node returning its last passed argument
            deps: Declared argument names; inferred from the computation when omitted

        Raises:
            InvalidNodeNameError: ``name`` is prefixed or uses member access
            DuplicateNodeError: ``name`` is already registered
        """
        parsed = plain_name(name, site="graph node")
        if parsed.members:
            raise InvalidNodeNameError(name, "graph node names cannot use member access")
        if name in self._nodes:
            raise DuplicateNodeError(name)
        definition = NodeDefinition(
            self,
            name,
            Computation.from_value(computation) if computation is not None else None,
        )
        if deps is not None:
            definition.args(*deps)
        self._nodes[name] = definition
        logger.debug("Node registered", node=name)
        return definition

    def get(self, name: str) -> NodeDefinition | None:
        return self._nodes.get(name)

    def enforce_builder_names(self, mode: ErrorMode = ErrorMode.ERROR) -> None:
        """Require (ERROR) or recommend (WARN) a debug name on every new builder."""
        self._builder_names = ErrorMode(mode)

    def new_builder(self, name: str | None = None) -> Builder:
        """Create a builder compiling against this graph.

        Raises:
            BuilderNameRequiredError: Builder names are enforced and ``name`` is empty
        """
        if not name:
            if self._builder_names is ErrorMode.ERROR:
                raise BuilderNameRequiredError()
            if self._builder_names is ErrorMode.WARN:
                logger.warning("Builder created without a name", graph_size=len(self._nodes))

        # Lazy import: engine depends on core, not the reverse
        from trellis.engine.builder import Builder

        return Builder(self, name)
