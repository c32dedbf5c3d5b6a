class NodeflowError(Exception):
    """Base class for errors raised by nodeflow"""


class HandlerNotFoundError(NodeflowError):
    """No handler is registered for a node's type"""

    def __init__(self, node_id: str, node_type: str):
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(f"No handler found for node type: {node_type} (node {node_id})")


class NoTriggerNodeError(NodeflowError):
    """A workflow has no trigger node to start from"""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} has no trigger node")


class WorkflowNotFoundError(NodeflowError):
    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} not found")


class RunNotFoundError(NodeflowError):
    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} not found")
