"""
Trellis: an in-process dependency-graph execution engine.

Declare named computation nodes and their dependencies on a Graph, then ask a
Builder for the outputs you need. The builder compiles the request into an
acyclic plan, runs it concurrently on an asyncio event loop, and deduplicates
structurally identical work.

Example:
    from trellis import Graph

    graph = Graph()
    graph.add("user", {"name": "Jeremy"})
    graph.add("greeting", lambda name: f"Hello {name}").builds("user.name")

    result = graph.new_builder("example").builds("greeting").run_sync()
    assert result["greeting"] == "Hello Jeremy"
"""

from trellis.contracts import (
    BuilderNameRequiredError,
    DebugContext,
    DuplicateNodeError,
    ErrorMode,
    GraphCycleError,
    InjectorError,
    InvalidNodeNameError,
    NodeDefinitionError,
    NodeExecutionError,
    NodeNotFoundError,
    TrellisError,
    Visibility,
)
from trellis.core.config import EngineSettings, load_settings
from trellis.core.dag import Graph, Literal, NodeDefinition, Plan, subgraph
from trellis.engine import Builder, BuildResult, Tracer

__version__ = "0.1.0"

__all__ = [
    "BuildResult",
    "Builder",
    "BuilderNameRequiredError",
    "DebugContext",
    "DuplicateNodeError",
    "EngineSettings",
    "ErrorMode",
    "Graph",
    "GraphCycleError",
    "InjectorError",
    "InvalidNodeNameError",
    "Literal",
    "NodeDefinition",
    "NodeDefinitionError",
    "NodeExecutionError",
    "NodeNotFoundError",
    "Plan",
    "Tracer",
    "TrellisError",
    "Visibility",
    "load_settings",
    "subgraph",
]
