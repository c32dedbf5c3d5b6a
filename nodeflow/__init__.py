"""
Nodeflow

Runs user-authored workflows: a directed graph of typed nodes starting at a
trigger, with optional success/failure branching and per-node progress
reporting.
"""

__version__ = "1.0.0"

from .engine import WorkflowEngine, HandlerRegistry, ExecutionContext, Node, Edge
from .execution import WorkflowExecutionService
from .storage import WorkflowStore

__all__ = [
    "WorkflowEngine",
    "HandlerRegistry",
    "ExecutionContext",
    "Node",
    "Edge",
    "WorkflowExecutionService",
    "WorkflowStore"
]
