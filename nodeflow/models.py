from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
from enum import Enum
import uuid
from datetime import datetime

from nodeflow.engine.models import Node, Edge, NodeStatus


class LogStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class BadgeStatus(str, Enum):
    """Status shown on a node while a workflow runs"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class Workflow(BaseModel):
    """A stored, user-authored workflow definition"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    group: Optional[str] = None
    nodes: List[Node] = []
    edges: List[Edge] = []
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class WorkflowCard(BaseModel):
    """Summary of a workflow for listings"""
    id: str
    name: str
    description: str
    updated_at: datetime

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> "WorkflowCard":
        return cls(
            id=workflow.id,
            name=workflow.name,
            description=workflow.description,
            updated_at=workflow.updated_at
        )


class ExecutionLog(BaseModel):
    """One line of a run's execution log"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = Field(default_factory=datetime.now)
    node_id: str
    node_name: str
    status: LogStatus
    message: Optional[str] = None


class WorkflowRun(BaseModel):
    """Runtime record of one workflow execution"""
    run_id: str
    workflow_id: str
    status: NodeStatus
    logs: List[ExecutionLog] = []
    node_statuses: Dict[str, BadgeStatus] = {}
    active_edges: List[Edge] = []
    history: List[Dict[str, Any]] = []
    variables: Dict[str, Any] = {}
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def create(cls, workflow: Workflow) -> "WorkflowRun":
        return cls(
            run_id=str(uuid.uuid4()),
            workflow_id=workflow.id,
            status=NodeStatus.PENDING,
            node_statuses={node.id: BadgeStatus.IDLE for node in workflow.nodes},
            created_at=datetime.now()
        )
