"""
Core workflow engine components

Graph model, execution context, handler registry and the engine that
traverses a workflow graph.
"""

from .engine import WorkflowEngine, MissingHandlerPolicy, SkipReason
from .errors import (
    NodeflowError,
    HandlerNotFoundError,
    NoTriggerNodeError,
    WorkflowNotFoundError,
    RunNotFoundError
)
from .graph import WorkflowGraph
from .handlers import HandlerRegistry, NodeHandler, FunctionHandler
from .models import (
    Node,
    Edge,
    ExecutionContext,
    ExecutionHistoryItem,
    HistoryStatus,
    NodeStatus,
    Outcome,
    SOURCE_SUCCESS,
    SOURCE_FAILURE
)

__all__ = [
    "WorkflowEngine",
    "MissingHandlerPolicy",
    "SkipReason",
    "NodeflowError",
    "HandlerNotFoundError",
    "NoTriggerNodeError",
    "WorkflowNotFoundError",
    "RunNotFoundError",
    "WorkflowGraph",
    "HandlerRegistry",
    "NodeHandler",
    "FunctionHandler",
    "Node",
    "Edge",
    "ExecutionContext",
    "ExecutionHistoryItem",
    "HistoryStatus",
    "NodeStatus",
    "Outcome",
    "SOURCE_SUCCESS",
    "SOURCE_FAILURE"
]
