# src/trellis/engine/executor.py
"""Concurrent plan execution on the running asyncio event loop.

Every compiled node gets a settlement task. A node's task waits for its
dependencies' tasks, then either records the propagated error of a failed
dependency or evaluates the node. Nodes sharing a structural signature
share one evaluation task, so identical work runs once per run.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

from trellis.contracts.errors import NodeExecutionError
from trellis.contracts.types import NodeKey, Signature
from trellis.core.dag.models import CompiledNode, Dependency
from trellis.core.dag.plan import Plan
from trellis.core.logging import get_logger
from trellis.engine.context import NO_VALUE, ExecutionContext

logger = get_logger(__name__)

# The event loop only keeps weak references to tasks. Settlements may outlive
# the run that created them when the run fails early.
_live_tasks: set[asyncio.Task[Any]] = set()


def _keep_alive(task: asyncio.Task[Any]) -> asyncio.Task[Any]:
    _live_tasks.add(task)
    task.add_done_callback(_live_tasks.discard)
    return task


class PlanExecutor:
    """Drives one Plan to completion through one ExecutionContext."""

    def __init__(self, plan: Plan, context: ExecutionContext) -> None:
        self._plan = plan
        self._context = context
        self._settlements: dict[NodeKey, asyncio.Task[None]] = {}
        self._evaluations: dict[Signature, asyncio.Task[Any]] = {}

    async def execute(self) -> Any:
        """Start every node and wait for the join over the requested outputs.

        Returns:
            The join node's value (normal outputs by alias)

        Raises:
            NodeExecutionError: First failure on the path of a required output
        """
        loop = asyncio.get_running_loop()
        logger.debug(
            "Executing plan",
            builder=self._plan.builder_name,
            nodes=self._plan.node_count,
            executions=self._plan.execution_count,
        )
        for key in self._plan.topological_order():
            node = self._plan.get_node(key)
            self._settlements[key] = _keep_alive(loop.create_task(self._settle(node), name=f"trellis:{key}"))
        return await self._context.completion

    async def _settle(self, node: CompiledNode) -> None:
        """Record exactly one outcome for ``node``; never raises."""
        try:
            value = await self._resolve(node)
            self._context.set_result(node, value)
        except NodeExecutionError as error:
            self._context.set_error(node, error)
        except (Exception, asyncio.CancelledError) as exc:
            self._context.set_error(node, self._wrap(node, exc))
        if node is self._plan.join:
            self._context.resolve_output_node(node.key)

    async def _resolve(self, node: CompiledNode) -> Any:
        cached = self._context.get_hashed_result(node, node)
        if cached is not NO_VALUE:
            logger.debug("Reusing value by signature", node=node.key, signature=node.signature[:12])
            return cached
        evaluation = self._evaluations.get(node.signature)
        if evaluation is None:
            evaluation = _keep_alive(asyncio.ensure_future(self._evaluate(node)))
            self._evaluations[node.signature] = evaluation
        else:
            logger.debug("Joining in-flight evaluation", node=node.key, signature=node.signature[:12])
        return await evaluation

    async def _evaluate(self, node: CompiledNode) -> Any:
        values = await self._gather(node)
        self._context.mark_started(node)
        try:
            result = node.invoke(values)
            if inspect.isawaitable(result):
                result = await result
        # CancelledError is a BaseException; a computation raising it still failed
        except (Exception, asyncio.CancelledError) as exc:
            raise self._wrap(node, exc) from exc
        return result

    def _wrap(self, node: CompiledNode, exc: BaseException) -> NodeExecutionError:
        return NodeExecutionError(node.key, exc, self._context.get_debug_context(node))

    async def _gather(self, node: CompiledNode) -> list[tuple[str, Any]]:
        """Wait for every dependency; fail as soon as a non-silent one fails."""
        waiting: dict[asyncio.Task[None], list[Dependency]] = {}
        for dep in node.dependencies:
            waiting.setdefault(self._settlements[dep.node.key], []).append(dep)

        pending = set(waiting)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                for dep in waiting[task]:
                    self._record_settlement_failure(task, dep)
                    self._check_dependency(node, dep)

        return [(dep.arg_name, self._context.get_result(dep.node.key, node)) for dep in node.passed_dependencies]

    def _record_settlement_failure(self, task: asyncio.Task[None], dep: Dependency) -> None:
        """A settlement task that died without recording an outcome counts as failed."""
        if self._context.get_error(dep.node.key) is not None:
            return
        if task.cancelled():
            cause: BaseException | None = asyncio.CancelledError()
        else:
            cause = task.exception()
        if cause is None:
            return
        self._context.set_error(dep.node, self._wrap(dep.node, cause))

    def _check_dependency(self, node: CompiledNode, dep: Dependency) -> None:
        error = self._context.get_error(dep.node.key)
        if error is None:
            return
        if dep.visibility.tolerates_errors:
            logger.warning(
                "Silent dependency failed",
                builder=self._plan.builder_name,
                node=node.key,
                dependency=dep.node.key,
                error=str(error),
            )
            return
        raise error
