from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .models import Node, Edge


NodeLike = Union[Node, Dict[str, Any]]
EdgeLike = Union[Edge, Dict[str, Any]]


def _as_node(value: NodeLike) -> Node:
    return value if isinstance(value, Node) else Node.model_validate(value)


def _as_edge(value: EdgeLike) -> Edge:
    return value if isinstance(value, Edge) else Edge.model_validate(value)


class WorkflowGraph:
    """
    Read-only index over a workflow's nodes and edges.

    Nodes are indexed by id (a later duplicate replaces an earlier one) and
    edges by source id, keeping declaration order. There is no mutation API;
    a changed workflow needs a new graph.
    """

    def __init__(self, nodes: Iterable[NodeLike], edges: Iterable[EdgeLike]):
        self._nodes: Dict[str, Node] = {}
        for node in nodes:
            node = _as_node(node)
            self._nodes[node.id] = node

        self._edges: Tuple[Edge, ...] = tuple(_as_edge(e) for e in edges)
        self._outgoing: Dict[str, List[Edge]] = {}
        for edge in self._edges:
            self._outgoing.setdefault(edge.source, []).append(edge)

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def outgoing_edges(self, node_id: str) -> Tuple[Edge, ...]:
        return tuple(self._outgoing.get(node_id, ()))

    def find_trigger(self) -> Optional[Node]:
        """Return the first node of type "trigger", if any."""
        return next((n for n in self._nodes.values() if n.type == "trigger"), None)

    def dangling_edges(self) -> List[Edge]:
        """Edges whose source or target is not a node of this graph."""
        return [
            e for e in self._edges
            if e.source not in self._nodes or e.target not in self._nodes
        ]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
