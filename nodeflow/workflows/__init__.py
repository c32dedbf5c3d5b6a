"""
Workflow definitions

Ready-made workflows used to seed the store.
"""

from .samples import create_blank_workflow, create_demo_workflow, DEMO_WORKFLOW_ID, TRIGGER_TYPES

__all__ = [
    "create_blank_workflow",
    "create_demo_workflow",
    "DEMO_WORKFLOW_ID",
    "TRIGGER_TYPES"
]
