from nodeflow.engine.models import Node, Edge, SOURCE_SUCCESS, SOURCE_FAILURE
from nodeflow.models import Workflow

DEMO_WORKFLOW_ID = "demo"

TRIGGER_TYPES = ("manual", "schedule", "webhook", "email")


def create_blank_workflow(name: str, description: str = "", trigger_type: str = "manual") -> Workflow:
    """A new workflow holds just a trigger node"""
    if trigger_type not in TRIGGER_TYPES:
        raise ValueError(f"Unknown trigger type: {trigger_type}")
    return Workflow(
        name=name,
        description=description,
        nodes=[Node(id="trigger-1", type="trigger", data={"label": "Trigger", "triggerType": trigger_type})],
        edges=[]
    )


def create_demo_workflow() -> Workflow:
    """Trigger -> fetch (with error handling) -> publish, or notify on failure, then fan out"""

    nodes = [
        Node(id="trigger-1", type="trigger", data={"label": "Manual trigger", "triggerType": "manual"}),
        Node(id="fetch", data={"label": "Fetch articles", "enableErrorHandling": True}),
        Node(id="publish", data={"label": "Publish digest"}),
        Node(id="notify", data={"label": "Notify on failure"}),
        Node(id="route", type="switch", data={"label": "Route by channel"}),
        Node(id="blog", data={"label": "Post to blog"}),
        Node(id="newsletter", data={"label": "Send newsletter"}),
    ]

    edges = [
        Edge(source="trigger-1", target="fetch"),
        Edge(source="fetch", target="publish", source_handle=SOURCE_SUCCESS),
        Edge(source="fetch", target="notify", source_handle=SOURCE_FAILURE),
        Edge(source="publish", target="route", source_handle="source-default"),
        # Every case of a switch is followed
        Edge(source="route", target="blog", source_handle="case-1"),
        Edge(source="route", target="newsletter", source_handle="case-2"),
    ]

    return Workflow(
        id=DEMO_WORKFLOW_ID,
        name="Daily digest",
        description="Fetches articles and publishes them, with a failure branch",
        nodes=nodes,
        edges=edges
    )
