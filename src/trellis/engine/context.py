# src/trellis/engine/context.py
"""Per-run execution state.

ExecutionContext records what each compiled node resolved to, by plan key
and by structural signature, plus per-node errors and the trace ledger.
Its recording methods are the only mutation points; the executor calls them
as nodes settle.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Final

from trellis.contracts.errors import DebugContext, NodeExecutionError
from trellis.contracts.types import NodeKey, Signature
from trellis.core.config import EngineSettings
from trellis.core.dag.models import CompiledNode
from trellis.core.dag.plan import Plan
from trellis.core.logging import get_logger

logger = get_logger(__name__)


class _NoValue:
    """Sentinel type: no value recorded (None is a legitimate node value)."""

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE: Final = _NoValue()


class Tracer:
    """Wrap a node's return value to log how it travels back to its callers.

    Args:
        value: The node's real value
        depth: Caller levels to surface. 0 logs only this node's resolution,
            1 also its direct callers, and so on. None uses the engine's
            default trace depth.
    """

    __slots__ = ("depth", "value")

    def __init__(self, value: Any, depth: int | None = None) -> None:
        self.value = value
        self.depth = depth

    def __repr__(self) -> str:
        return f"Tracer({self.value!r}, depth={self.depth!r})"


class ExecutionContext:
    """Values, errors and traces of one run.

    Created inside the running event loop; owns the run's completion future.
    """

    def __init__(self, plan: Plan, settings: EngineSettings) -> None:
        self._plan = plan
        self._settings = settings
        self._builder_name = plan.builder_name
        self._values: dict[NodeKey, Any] = {}
        self._hashed_values: dict[Signature, Any] = {}
        self._errors: dict[NodeKey, NodeExecutionError] = {}
        self._traces: dict[NodeKey, int] = {}
        self._start_times: dict[NodeKey, float] = {}
        self._completion: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._should_profile = settings.enable_profiling and random.random() < settings.profiling_frequency

    @property
    def completion(self) -> asyncio.Future[Any]:
        """Settles with the join node's value, or its error, once."""
        return self._completion

    @property
    def should_profile(self) -> bool:
        return self._should_profile

    def get_debug_context(self, node: CompiledNode) -> DebugContext:
        """Where ``node`` sits in the run, for a failure report."""
        inputs: dict[str, Any] = {}
        for dep in node.dependencies:
            value = self._values.get(dep.node.key, NO_VALUE)
            if value is not NO_VALUE:
                inputs.setdefault(dep.arg_name, value)
        return DebugContext(
            builder_name=self._builder_name,
            node_key=node.key,
            callers=self._plan.callers_of(node.key),
            failure_chain=node.chain,
            failure_inputs=inputs,
        )

    def mark_started(self, node: CompiledNode) -> None:
        if self._should_profile:
            self._start_times[node.key] = time.perf_counter()

    def set_result(self, node: CompiledNode, result: Any) -> None:
        """Record ``result`` under the node's key and signature, unwrapping Tracers."""
        key = node.key
        if isinstance(result, Tracer):
            depth = result.depth if result.depth is not None else self._settings.default_trace_depth
            self._traces[key] = max(self._traces.get(key, -1), depth)
            value = result.value
        else:
            value = result

        # Trace before storing so a failing repr() leaves no half-recorded value
        if self._traces.get(key, -1) >= 0:
            logger.info("Trace: resolved node", builder=self._builder_name, node=key, value=repr(value))
        self._values[key] = value
        self._hashed_values[node.signature] = value
        self._record_profile(node)

    def set_error(self, node: CompiledNode, error: NodeExecutionError) -> None:
        self._errors[node.key] = error
        self._record_profile(node)

    def has_result(self, key: str) -> bool:
        return key in self._values

    def get_error(self, key: str) -> NodeExecutionError | None:
        return self._errors.get(NodeKey(key))

    def get_result(self, key: str, requester: CompiledNode) -> Any:
        """Value recorded for ``key``, or NO_VALUE."""
        self._record_injection(NodeKey(key), requester)
        return self._values.get(NodeKey(key), NO_VALUE)

    def get_hashed_result(self, node: CompiledNode, requester: CompiledNode) -> Any:
        """Value recorded for any node sharing ``node``'s signature, or NO_VALUE."""
        if node.signature not in self._hashed_values:
            return NO_VALUE
        self._record_injection(node.key, requester)
        return self._hashed_values[node.signature]

    def resolve_output_node(self, key: str) -> None:
        """Settle the completion future from ``key``'s outcome; later calls are no-ops."""
        if self._completion.done():
            return
        error = self._errors.get(NodeKey(key))
        if error is not None:
            self._completion.set_exception(error)
        else:
            self._completion.set_result(self._values.get(NodeKey(key)))

    def _record_injection(self, key: NodeKey, requester: CompiledNode) -> None:
        depth = self._traces.get(key, -1)
        if depth >= 0:
            logger.info("Trace: injecting node", builder=self._builder_name, node=key, requester=requester.key)
            self._traces[requester.key] = depth - 1

    def _record_profile(self, node: CompiledNode) -> None:
        started = self._start_times.pop(node.key, None)
        if started is None:
            return
        logger.info(
            "Node profile",
            builder=self._builder_name,
            node=node.key,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )
