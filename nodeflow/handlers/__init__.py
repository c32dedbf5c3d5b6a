"""
Built-in node handlers

Handlers for the node types the workflow editor offers out of the box.
"""

from .builtin import (
    TriggerHandler,
    DefaultHandler,
    SwitchHandler,
    SimulatedNodeFailure,
    default_registry
)

__all__ = [
    "TriggerHandler",
    "DefaultHandler",
    "SwitchHandler",
    "SimulatedNodeFailure",
    "default_registry"
]
