from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum
from datetime import datetime


DEFAULT_NODE_TYPE = "default"

# Named outputs of a node with error handling enabled
SOURCE_SUCCESS = "source-success"
SOURCE_FAILURE = "source-failure"


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class HistoryStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class Outcome(str, Enum):
    """Result of a node execution, used to pick outgoing edges"""
    SUCCESS = "success"
    FAILURE = "failure"


class Node(BaseModel):
    """A typed workflow node; `data` is the handler configuration"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    type: str = DEFAULT_NODE_TYPE
    data: Dict[str, Any] = {}

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> Any:
        return value or DEFAULT_NODE_TYPE

    @field_validator("data", mode="before")
    @classmethod
    def _default_data(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def enable_error_handling(self) -> bool:
        return bool(self.data.get("enableErrorHandling"))

    @property
    def label(self) -> str:
        label = self.data.get("label")
        if label is None or label == "":
            return self.id
        return str(label)


class Edge(BaseModel):
    """Directed edge; `source_handle` names the source output it leaves from"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")


class ExecutionHistoryItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_id: str
    status: HistoryStatus
    output: Any = None
    timestamp: datetime
    duration: float  # milliseconds


class ExecutionContext(BaseModel):
    """Run-scoped state shared with every handler of a single run"""
    variables: Dict[str, Any] = {}
    history: List[ExecutionHistoryItem] = []

    def get(self, node_id: str, default: Any = None) -> Any:
        return self.variables.get(node_id, default)

    def record(self, item: ExecutionHistoryItem) -> None:
        self.history.append(item)
        if item.status == HistoryStatus.SUCCESS:
            self.variables[item.node_id] = item.output

    def executed_node_ids(self) -> List[str]:
        return [item.node_id for item in self.history]
