from typing import Any, Callable, Iterable, List, Optional
from collections import deque
from datetime import datetime
from enum import Enum
import logging
import time

from .errors import HandlerNotFoundError
from .graph import WorkflowGraph, NodeLike, EdgeLike
from .handlers import HandlerRegistry, HandlerLike
from .models import (
    Edge, ExecutionContext, ExecutionHistoryItem, HistoryStatus, NodeStatus,
    Outcome, SOURCE_SUCCESS, SOURCE_FAILURE
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[..., None]  # (node_id, status, result=None)
SkipCallback = Callable[[str, str], None]  # (node_id, reason)


class MissingHandlerPolicy(str, Enum):
    RAISE = "raise"  # dispatch fails with HandlerNotFoundError
    DEGRADE = "degrade"  # node is recorded as failed, run keeps going


class SkipReason(str, Enum):
    VISITED = "visited"
    MISSING = "missing"


class WorkflowEngine:
    """
    Runs a workflow graph from a start node.

    Traversal is breadth-first over a FIFO worklist and strictly serial: one
    handler runs at a time. Every node is dispatched at most once per run,
    which also cuts cycles. Progress is reported through `on_progress` as
    (node_id, "running" | "completed" | "failed", result).
    """

    def __init__(
        self,
        nodes: Iterable[NodeLike],
        edges: Iterable[EdgeLike],
        on_progress: Optional[ProgressCallback] = None,
        on_skip: Optional[SkipCallback] = None,
        missing_handler: MissingHandlerPolicy = MissingHandlerPolicy.RAISE,
        handlers: Optional[HandlerRegistry] = None,
    ):
        self.graph = WorkflowGraph(nodes, edges)
        self.handlers = HandlerRegistry()
        if handlers is not None:
            self.handlers.update(handlers)
        self.on_progress = on_progress
        self.on_skip = on_skip
        self.missing_handler = MissingHandlerPolicy(missing_handler)

    def register_handler(self, node_type: str, handler: HandlerLike) -> None:
        """Register the handler for a node type; the last registration wins."""
        self.handlers.register(node_type, handler)

    async def run(self, start_node_id: str) -> ExecutionContext:
        """
        Execute the graph starting at `start_node_id`.

        Returns the run's ExecutionContext once the worklist drains. The first
        failure that is not routed to a failure branch is re-raised as-is and
        nothing left in the queue is executed.
        """
        context = ExecutionContext()
        queue = deque([start_node_id])
        visited = set()

        while queue:
            node_id = queue.popleft()
            if node_id in visited:
                self._skip(node_id, SkipReason.VISITED)
                continue
            visited.add(node_id)

            node = self.graph.get_node(node_id)
            if node is None:
                self._skip(node_id, SkipReason.MISSING)
                continue

            self._emit(node_id, NodeStatus.RUNNING)
            handler = self.handlers.get(node.type)
            started = time.perf_counter()

            if handler is None and self.missing_handler == MissingHandlerPolicy.DEGRADE:
                logger.warning(f"No handler found for node type: {node.type}")
                result = {"error": f"No handler found for node type: {node.type}"}
                self._record(context, node_id, HistoryStatus.FAILED, result, started)
                self._emit(node_id, NodeStatus.FAILED, result)
                queue.extend(self.find_next_nodes(node_id, Outcome.FAILURE))
                continue

            try:
                if handler is None:
                    raise HandlerNotFoundError(node_id, node.type)
                output = await handler.execute(node.data, context)
            except Exception as e:
                self._record(context, node_id, HistoryStatus.FAILED, e, started)
                logger.error(f"Node {node_id} failed: {e}")
                self._emit(node_id, NodeStatus.FAILED, e)

                next_nodes = self.find_next_nodes(node_id, Outcome.FAILURE)
                if node.enable_error_handling and next_nodes:
                    logger.info(f"Node {node_id} failure routed to {next_nodes}")
                    queue.extend(next_nodes)
                    continue
                raise

            self._record(context, node_id, HistoryStatus.SUCCESS, output, started)
            self._emit(node_id, NodeStatus.COMPLETED, output)
            queue.extend(self.find_next_nodes(node_id, Outcome.SUCCESS))

        return context

    def find_next_nodes(self, node_id: str, outcome: Outcome) -> List[str]:
        """Target ids of the edges to follow after `node_id` finished with `outcome`."""
        return [edge.target for edge in self.select_edges(node_id, outcome)]

    def select_edges(self, node_id: str, outcome: Outcome) -> List[Edge]:
        """
        Outgoing edges of `node_id` that are followed for `outcome`.

        With error handling enabled the node's edges act as a success/failure
        switch: unlabelled edges count as success. Without it every edge is
        followed on success and none on failure.
        """
        node = self.graph.get_node(node_id)
        edges = self.graph.outgoing_edges(node_id)
        outcome = Outcome(outcome)

        if node is not None and node.enable_error_handling:
            if outcome == Outcome.SUCCESS:
                return [
                    e for e in edges
                    if e.source_handle is None or e.source_handle == SOURCE_SUCCESS
                ]
            return [e for e in edges if e.source_handle == SOURCE_FAILURE]

        if outcome == Outcome.SUCCESS:
            return list(edges)
        return []

    def _record(
        self,
        context: ExecutionContext,
        node_id: str,
        status: HistoryStatus,
        output: Any,
        started: float,
    ) -> None:
        context.record(ExecutionHistoryItem(
            node_id=node_id,
            status=status,
            output=output,
            timestamp=datetime.now(),
            duration=(time.perf_counter() - started) * 1000,
        ))

    def _emit(self, node_id: str, status: NodeStatus, result: Any = None) -> None:
        logger.info(f"Node {node_id}: {status.value}")
        if self.on_progress is None:
            return
        # Observer errors are reported but never change the outcome of the node
        try:
            if status == NodeStatus.RUNNING:
                self.on_progress(node_id, status.value)
            else:
                self.on_progress(node_id, status.value, result)
        except Exception:
            logger.exception(f"Progress observer failed on node {node_id} ({status.value})")

    def _skip(self, node_id: str, reason: SkipReason) -> None:
        if reason == SkipReason.MISSING:
            logger.warning(f"Node {node_id} not found in graph, skipping")
        else:
            logger.debug(f"Node {node_id} already visited, skipping")
        if self.on_skip is not None:
            self.on_skip(node_id, reason.value)
