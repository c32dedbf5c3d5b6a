from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from typing import List, Optional
from pydantic import BaseModel
import json
import logging

from nodeflow import config
from nodeflow.engine import Node, Edge, WorkflowNotFoundError, RunNotFoundError
from nodeflow.execution import WorkflowExecutionService
from nodeflow.models import Workflow, WorkflowCard, WorkflowRun
from nodeflow.storage import WorkflowStore
from nodeflow.workflows import create_blank_workflow, create_demo_workflow, DEMO_WORKFLOW_ID

logger = logging.getLogger(__name__)

router = APIRouter()

# Global instances - initialized once when module loads
store = WorkflowStore(config.STORE_PATH or None)
service = WorkflowExecutionService(config.get_settings())

# Seed the demo workflow so a fresh install has something to run
if store.get(DEMO_WORKFLOW_ID) is None:
    store.save(create_demo_workflow())


# Request/Response models
class WorkflowRequest(BaseModel):
    name: str
    description: str = ""
    group: Optional[str] = None
    nodes: List[Node] = []
    edges: List[Edge] = []
    trigger_type: str = "manual"  # used when nodes is empty


class WorkflowListResponse(BaseModel):
    workflows: List[WorkflowCard]


def _get_workflow(workflow_id: str) -> Workflow:
    try:
        return store.require(workflow_id)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/workflows", response_model=WorkflowListResponse)
async def list_workflows():
    """List stored workflows, most recently updated first."""
    workflows = sorted(store.list(), key=lambda w: w.updated_at, reverse=True)
    return WorkflowListResponse(workflows=[WorkflowCard.from_workflow(w) for w in workflows])


@router.post("/workflows", response_model=Workflow, status_code=201)
async def create_workflow(request: WorkflowRequest):
    """Store a new workflow definition; without nodes it starts with a single trigger."""
    if request.nodes:
        workflow = Workflow(
            name=request.name,
            description=request.description,
            group=request.group,
            nodes=request.nodes,
            edges=request.edges
        )
    else:
        try:
            workflow = create_blank_workflow(request.name, request.description, request.trigger_type)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        workflow.group = request.group
    workflow = store.save(workflow)
    logger.info(f"Workflow '{workflow.name}' created as {workflow.id}")
    return workflow


@router.get("/workflows/{workflow_id}", response_model=Workflow)
async def get_workflow(workflow_id: str):
    return _get_workflow(workflow_id)


@router.put("/workflows/{workflow_id}", response_model=Workflow)
async def update_workflow(workflow_id: str, request: WorkflowRequest):
    """Replace the definition of an existing workflow."""
    existing = _get_workflow(workflow_id)
    updated = existing.model_copy(update={
        "name": request.name,
        "description": request.description,
        "group": request.group,
        "nodes": request.nodes,
        "edges": request.edges
    })
    return store.save(updated)


@router.delete("/workflows/{workflow_id}", status_code=204)
async def delete_workflow(workflow_id: str):
    try:
        store.delete(workflow_id)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/workflows/{workflow_id}/run", response_model=WorkflowRun)
async def run_workflow(workflow_id: str, background: bool = False):
    """
    Run a workflow from its trigger node.

    By default the request waits for the run to finish. With `background=true`
    it returns the run record right away so the caller can follow the run
    over the WebSocket endpoint. A failed run is reported in the record.
    """
    workflow = _get_workflow(workflow_id)
    if background:
        return service.start_run(workflow)
    return await service.run_workflow(workflow)


@router.get("/runs/{run_id}", response_model=WorkflowRun)
async def get_run(run_id: str):
    try:
        return service.require_run(run_id)
    except RunNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/handlers")
async def list_handlers():
    """List the node types that have a registered handler."""
    return {"handlers": service.handlers.types()}


@router.get("/stats")
async def get_stats():
    return {"workflows": len(store.list()), **service.get_stats()}


@router.websocket("/ws/runs/{run_id}")
async def websocket_run_logs(websocket: WebSocket, run_id: str):
    """Stream the execution log of a run as it happens"""
    await websocket.accept()

    try:
        await websocket.send_text(json.dumps({
            "type": "connected",
            "message": f"Connected to run {run_id}",
            "run_id": run_id
        }))

        # Snapshot and subscribe together: earlier entries are replayed,
        # later ones arrive through the live broadcast
        run = service.get_run(run_id)
        if run:
            replay = list(run.logs)
            status = {
                "type": "status",
                "run_id": run_id,
                "status": run.status.value,
                "error": run.error
            }
        service.add_websocket_connection(run_id, websocket)

        if run:
            for log in replay:
                await websocket.send_text(json.dumps({"type": "log", **log.model_dump(mode="json")}))
            await websocket.send_text(json.dumps(status))
        else:
            await websocket.send_text(json.dumps({
                "type": "waiting",
                "message": f"Waiting for run {run_id} to start..."
            }))

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"type": "error", "message": "Invalid JSON"}))
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))

    except WebSocketDisconnect:
        pass
    finally:
        service.remove_websocket_connection(run_id, websocket)
