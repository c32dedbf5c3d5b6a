from typing import Dict, Any, List, Optional
from datetime import datetime
import asyncio
import json
import logging

from fastapi.encoders import jsonable_encoder

from nodeflow.config import Settings
from nodeflow.engine import (
    WorkflowEngine, HandlerRegistry, MissingHandlerPolicy, NodeStatus, Outcome,
    ExecutionContext, NoTriggerNodeError, RunNotFoundError
)
from nodeflow.handlers import default_registry
from nodeflow.models import Workflow, WorkflowRun, ExecutionLog, LogStatus, BadgeStatus

logger = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    """Convert a handler output or error into something JSON can carry."""
    encoders = {BaseException: lambda e: {"error": str(e), "type": type(e).__name__}}
    try:
        return jsonable_encoder(value, custom_encoder=encoders)
    except (TypeError, ValueError):
        return repr(value)


def _error_message(result: Any) -> str:
    if isinstance(result, BaseException):
        return str(result) or type(result).__name__
    if isinstance(result, dict) and result.get("error"):
        return str(result["error"])
    return "Execution failed"


class WorkflowExecutionService:
    """
    Runs stored workflows and keeps a record of every run.

    Progress events of the engine are turned into an execution log, node
    badge statuses and the set of edges that were taken. Log entries are
    pushed to WebSocket subscribers of the run as they happen.
    """

    def __init__(self, settings: Optional[Settings] = None, handlers: Optional[HandlerRegistry] = None):
        self.settings = settings or Settings()
        self.handlers = handlers if handlers is not None else default_registry(self.settings)
        self.runs: Dict[str, WorkflowRun] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self.websocket_connections: Dict[str, List] = {}

    async def run_workflow(self, workflow: Workflow) -> WorkflowRun:
        """Execute a workflow from its trigger node and wait for the result."""
        run = WorkflowRun.create(workflow)
        self.runs[run.run_id] = run
        await self._execute(run, workflow)
        return run

    def start_run(self, workflow: Workflow) -> WorkflowRun:
        """Start executing a workflow in the background and return its run record."""
        run = WorkflowRun.create(workflow)
        run.status = NodeStatus.RUNNING
        self.runs[run.run_id] = run
        task = asyncio.create_task(self._execute(run, workflow))
        self.tasks[run.run_id] = task
        task.add_done_callback(lambda _: self.tasks.pop(run.run_id, None))
        return run

    async def wait(self, run_id: str) -> WorkflowRun:
        """Wait for a background run to finish."""
        run = self.require_run(run_id)
        task = self.tasks.get(run_id)
        if task is not None:
            await task
        return run

    def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        return self.runs.get(run_id)

    def require_run(self, run_id: str) -> WorkflowRun:
        run = self.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    async def _execute(self, run: WorkflowRun, workflow: Workflow) -> None:
        run.status = NodeStatus.RUNNING

        try:
            engine = WorkflowEngine(
                workflow.nodes,
                workflow.edges,
                missing_handler=MissingHandlerPolicy(self.settings.missing_handler),
                handlers=self.handlers,
            )
            engine.on_progress = lambda node_id, status, result=None: self._on_progress(
                run, engine, node_id, status, result
            )

            trigger = engine.graph.find_trigger()
            if trigger is None:
                raise NoTriggerNodeError(workflow.id)
            for edge in engine.graph.dangling_edges():
                logger.warning(f"[{run.run_id}] Edge {edge.source} -> {edge.target} points outside the graph")

            context = await engine.run(trigger.id)
            self._store_context(run, context)
            run.status = NodeStatus.COMPLETED
        except Exception as e:
            # The partial history was already captured from progress events
            run.status = NodeStatus.FAILED
            run.error = str(e)
            logger.error(f"Workflow run {run.run_id} failed: {e}")
        finally:
            run.completed_at = datetime.now()
            self._publish(run.run_id, {
                "type": "status",
                "run_id": run.run_id,
                "status": run.status.value,
                "error": run.error
            })

    def _on_progress(
        self,
        run: WorkflowRun,
        engine: WorkflowEngine,
        node_id: str,
        status: str,
        result: Any = None,
    ) -> None:
        node = engine.graph.get_node(node_id)
        node_name = node.label if node is not None else node_id

        if status == NodeStatus.RUNNING:
            run.node_statuses[node_id] = BadgeStatus.RUNNING
            self._add_log(run, node_id, node_name, LogStatus.RUNNING, "Running...")

        elif status == NodeStatus.COMPLETED:
            run.node_statuses[node_id] = BadgeStatus.SUCCESS
            run.history.append({"node_id": node_id, "status": "success", "output": to_jsonable(result)})
            run.variables[node_id] = to_jsonable(result)
            run.active_edges.extend(engine.select_edges(node_id, Outcome.SUCCESS))
            self._add_log(run, node_id, node_name, LogStatus.SUCCESS, "Completed")

        elif status == NodeStatus.FAILED:
            run.node_statuses[node_id] = BadgeStatus.ERROR
            run.history.append({"node_id": node_id, "status": "failed", "output": to_jsonable(result)})
            message = _error_message(result)
            if node is not None and node.enable_error_handling:
                message = f"{message} (handled)"
                run.active_edges.extend(engine.select_edges(node_id, Outcome.FAILURE))
            self._add_log(run, node_id, node_name, LogStatus.ERROR, message)

    def _store_context(self, run: WorkflowRun, context: ExecutionContext) -> None:
        run.history = [
            {
                "node_id": item.node_id,
                "status": item.status.value,
                "output": to_jsonable(item.output),
                "timestamp": item.timestamp.isoformat(),
                "duration": item.duration
            }
            for item in context.history
        ]
        run.variables = {node_id: to_jsonable(value) for node_id, value in context.variables.items()}

    def _add_log(
        self,
        run: WorkflowRun,
        node_id: str,
        node_name: str,
        status: LogStatus,
        message: str,
    ) -> None:
        """Append a log entry to the run and push it to the run's subscribers."""
        log_entry = ExecutionLog(node_id=node_id, node_name=node_name, status=status, message=message)
        run.logs.append(log_entry)
        logger.info(f"[{run.run_id}] {node_name}: {message}")
        self._publish(run.run_id, {"type": "log", **log_entry.model_dump(mode="json")})

    def _publish(self, run_id: str, payload: Dict[str, Any]) -> None:
        if not self.websocket_connections.get(run_id):
            return
        asyncio.create_task(self._broadcast(run_id, payload))

    async def _broadcast(self, run_id: str, payload: Dict[str, Any]) -> None:
        """Send a message to every WebSocket watching a run, dropping dead ones."""
        connections = self.websocket_connections.get(run_id, []).copy()
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(payload))
            except Exception as e:
                logger.warning(f"WebSocket disconnected for run {run_id}: {e}")
                self.remove_websocket_connection(run_id, websocket)

    def add_websocket_connection(self, run_id: str, websocket) -> None:
        self.websocket_connections.setdefault(run_id, []).append(websocket)
        logger.info(f"WebSocket connected for run {run_id}")

    def remove_websocket_connection(self, run_id: str, websocket) -> None:
        if run_id in self.websocket_connections and websocket in self.websocket_connections[run_id]:
            self.websocket_connections[run_id].remove(websocket)
            logger.info(f"WebSocket disconnected for run {run_id}")

            if not self.websocket_connections[run_id]:
                del self.websocket_connections[run_id]

    def get_stats(self) -> Dict[str, Any]:
        """Counts of runs, handlers and live subscriptions."""
        return {
            "runs": len(self.runs),
            "active_runs": len(self.tasks),
            "handlers": len(self.handlers),
            "total_logs": sum(len(run.logs) for run in self.runs.values()),
            "active_websockets": sum(len(conns) for conns in self.websocket_connections.values())
        }
