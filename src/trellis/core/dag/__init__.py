# src/trellis/core/dag/__init__.py
"""Node definitions, the graph registry, and compilation into plans."""

from trellis.core.dag.compiler import PlanCompiler
from trellis.core.dag.definition import BuildSteps, NodeDefinition
from trellis.core.dag.graph import Graph
from trellis.core.dag.models import (
    Binding,
    BuildStep,
    CompiledNode,
    Computation,
    Dependency,
    Literal,
    subgraph,
)
from trellis.core.dag.plan import Plan

__all__ = [
    "Binding",
    "BuildStep",
    "BuildSteps",
    "CompiledNode",
    "Computation",
    "Dependency",
    "Graph",
    "Literal",
    "NodeDefinition",
    "Plan",
    "PlanCompiler",
    "subgraph",
]
