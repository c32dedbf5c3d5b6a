"""Shared fixtures.

Provides:
- Settings with no simulated delay or random failure
- An execution service built on those settings
- An httpx AsyncClient bound to the FastAPI app with a fresh store/service
"""

from typing import AsyncGenerator, List, Tuple, Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from nodeflow.config import Settings
from nodeflow.execution import WorkflowExecutionService
from nodeflow.handlers import default_registry
from nodeflow.storage import WorkflowStore


class ProgressRecorder:
    """Collects (node_id, status, result) progress events."""

    def __init__(self):
        self.events: List[Tuple[str, str, Any]] = []

    def __call__(self, node_id: str, status: str, result: Any = None) -> None:
        self.events.append((node_id, status, result))

    def statuses(self) -> List[Tuple[str, str]]:
        return [(node_id, status) for node_id, status, _ in self.events]


@pytest.fixture
def progress() -> ProgressRecorder:
    return ProgressRecorder()


@pytest.fixture
def settings() -> Settings:
    return Settings(trigger_delay=0, node_delay=0, simulated_failure_rate=0.0, store_path=None)


@pytest.fixture
def service(settings: Settings) -> WorkflowExecutionService:
    return WorkflowExecutionService(settings, default_registry(settings))


@pytest.fixture
def store() -> WorkflowStore:
    return WorkflowStore()


@pytest_asyncio.fixture
async def client(monkeypatch, store, service) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the API, isolated from the module-level store and service."""
    from nodeflow.api import routes
    from nodeflow.main import app

    monkeypatch.setattr(routes, "store", store)
    monkeypatch.setattr(routes, "service", service)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
