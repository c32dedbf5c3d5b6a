from typing import Any, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable
import inspect

from .models import ExecutionContext


@runtime_checkable
class NodeHandler(Protocol):
    """Capability to execute one node type"""

    async def execute(self, data: Dict[str, Any], context: ExecutionContext) -> Any:
        ...


class FunctionHandler:
    """Adapts a plain `(data, context)` callable to the NodeHandler interface."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func

    async def execute(self, data: Dict[str, Any], context: ExecutionContext) -> Any:
        # Handle both synchronous and asynchronous callables
        result = self.func(data, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__name__', self.func)!r})"


HandlerLike = Union[NodeHandler, Callable[..., Any]]


class HandlerRegistry:
    """Maps node type tags to handlers"""

    def __init__(self):
        self.handlers: Dict[str, NodeHandler] = {}

    def register(self, node_type: str, handler: HandlerLike) -> None:
        """
        Register a handler for a node type, replacing any previous one.

        Objects with an async `execute` method are used as-is. Bare
        callables and objects with a synchronous `execute` are wrapped in
        a FunctionHandler.
        """
        execute = getattr(handler, "execute", None)
        if callable(execute):
            if not inspect.iscoroutinefunction(execute):
                handler = FunctionHandler(execute)
        elif callable(handler):
            handler = FunctionHandler(handler)
        else:
            raise TypeError(f"Handler for '{node_type}' must define execute() or be callable")
        self.handlers[node_type] = handler

    def get(self, node_type: str) -> Optional[NodeHandler]:
        return self.handlers.get(node_type)

    def types(self) -> List[str]:
        return list(self.handlers.keys())

    def update(self, other: "HandlerRegistry") -> None:
        """Copy every registration of another registry into this one."""
        self.handlers.update(other.handlers)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self.handlers

    def __len__(self) -> int:
        return len(self.handlers)
