"""HTTP and WebSocket API"""

from .routes import router

__all__ = ["router"]
