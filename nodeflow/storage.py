from typing import Dict, List, Optional
from datetime import datetime
from pathlib import Path
import json
import logging

from pydantic import TypeAdapter

from nodeflow.engine.errors import WorkflowNotFoundError
from nodeflow.models import Workflow

logger = logging.getLogger(__name__)

_workflow_list = TypeAdapter(List[Workflow])


class WorkflowStore:
    """
    Workflow definitions keyed by id.

    Kept in memory; when `path` is given the whole collection is loaded from
    that JSON file on construction and written back after every change.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self.workflows: Dict[str, Workflow] = {}
        if self.path is not None and self.path.exists():
            self._load()

    def list(self) -> List[Workflow]:
        return list(self.workflows.values())

    def get(self, workflow_id: str) -> Optional[Workflow]:
        return self.workflows.get(workflow_id)

    def require(self, workflow_id: str) -> Workflow:
        workflow = self.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    def save(self, workflow: Workflow) -> Workflow:
        """Insert a workflow, or replace it and refresh `updated_at` if it exists."""
        existing = self.workflows.get(workflow.id)
        if existing is not None:
            workflow = workflow.model_copy(update={
                "created_at": existing.created_at,
                "updated_at": datetime.now()
            })
        self.workflows[workflow.id] = workflow
        self._flush()
        return workflow

    def delete(self, workflow_id: str) -> None:
        if self.workflows.pop(workflow_id, None) is None:
            raise WorkflowNotFoundError(workflow_id)
        self._flush()

    def _load(self) -> None:
        raw = self.path.read_text(encoding="utf-8")
        for workflow in _workflow_list.validate_json(raw or "[]"):
            self.workflows[workflow.id] = workflow
        logger.info(f"Loaded {len(self.workflows)} workflows from {self.path}")

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = _workflow_list.dump_python(self.list(), mode="json", by_alias=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
