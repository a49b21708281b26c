# src/trellis/engine/__init__.py
"""Run-time half of Trellis: builders, execution context and executor."""

from trellis.engine.builder import Builder, BuildResult
from trellis.engine.context import NO_VALUE, ExecutionContext, Tracer
from trellis.engine.executor import PlanExecutor

__all__ = [
    "NO_VALUE",
    "BuildResult",
    "Builder",
    "ExecutionContext",
    "PlanExecutor",
    "Tracer",
]
