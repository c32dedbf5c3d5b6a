"""API tests for workflow CRUD, runs and the log WebSocket"""

import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from httpx import AsyncClient

from nodeflow.engine import NodeStatus
from nodeflow.models import WorkflowRun, LogStatus
from nodeflow.workflows import create_demo_workflow


CHAIN = {
    "name": "Chain",
    "description": "trigger then two steps",
    "nodes": [
        {"id": "t", "type": "trigger", "position": {"x": 0, "y": 0}, "data": {"label": "Start"}},
        {"id": "a", "type": "default", "data": {"label": "Step A"}},
        {"id": "b", "type": "default", "data": {"label": "Step B"}},
    ],
    "edges": [
        {"id": "edge-t-a", "source": "t", "target": "a", "sourceHandle": None},
        {"id": "edge-a-b", "source": "a", "target": "b", "sourceHandle": "source-default"},
    ],
}


async def _create(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/v1/workflows", json={**CHAIN, **overrides})
    assert response.status_code == 201
    return response.json()


class TestWorkflowCrud:
    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        created = await _create(client)

        response = await client.get(f"/api/v1/workflows/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Chain"
        assert [n["id"] for n in body["nodes"]] == ["t", "a", "b"]
        assert body["edges"][1]["sourceHandle"] == "source-default"

    @pytest.mark.asyncio
    async def test_create_without_nodes_adds_trigger(self, client):
        created = await _create(client, nodes=[], edges=[], trigger_type="webhook")

        assert [n["type"] for n in created["nodes"]] == ["trigger"]
        assert created["nodes"][0]["data"]["triggerType"] == "webhook"

    @pytest.mark.asyncio
    async def test_create_with_unknown_trigger_type(self, client):
        response = await client.post(
            "/api/v1/workflows", json={"name": "x", "trigger_type": "carrier-pigeon"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_payload(self, client):
        response = await client.post("/api/v1/workflows", json={"nodes": "nope"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list(self, client):
        await _create(client, name="One")
        await _create(client, name="Two")

        response = await client.get("/api/v1/workflows")

        names = [w["name"] for w in response.json()["workflows"]]
        assert sorted(names) == ["One", "Two"]

    @pytest.mark.asyncio
    async def test_update(self, client):
        created = await _create(client)

        response = await client.put(
            f"/api/v1/workflows/{created['id']}", json={**CHAIN, "name": "Renamed", "edges": []}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Renamed"
        assert body["edges"] == []
        assert body["created_at"] == created["created_at"]

    @pytest.mark.asyncio
    async def test_delete(self, client):
        created = await _create(client)

        response = await client.delete(f"/api/v1/workflows/{created['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/workflows/{created['id']}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_ids(self, client):
        assert (await client.get("/api/v1/workflows/nope")).status_code == 404
        assert (await client.put("/api/v1/workflows/nope", json=CHAIN)).status_code == 404
        assert (await client.delete("/api/v1/workflows/nope")).status_code == 404
        assert (await client.post("/api/v1/workflows/nope/run")).status_code == 404
        assert (await client.get("/api/v1/runs/nope")).status_code == 404


class TestRuns:
    @pytest.mark.asyncio
    async def test_run_and_fetch(self, client):
        created = await _create(client)

        response = await client.post(f"/api/v1/workflows/{created['id']}/run")

        assert response.status_code == 200
        run = response.json()
        assert run["status"] == "completed"
        assert [h["node_id"] for h in run["history"]] == ["t", "a", "b"]
        assert run["node_statuses"] == {"t": "success", "a": "success", "b": "success"}

        fetched = await client.get(f"/api/v1/runs/{run['run_id']}")
        assert fetched.json()["run_id"] == run["run_id"]

    @pytest.mark.asyncio
    async def test_failed_run_is_reported_not_raised(self, client):
        nodes = [dict(n) for n in CHAIN["nodes"]]
        nodes[1] = {"id": "a", "data": {"label": "Step A", "simulateFailure": True}}
        created = await _create(client, nodes=nodes)

        response = await client.post(f"/api/v1/workflows/{created['id']}/run")

        assert response.status_code == 200
        run = response.json()
        assert run["status"] == "failed"
        assert run["error"] == "Simulated node failure"
        assert run["node_statuses"]["b"] == "idle"

    @pytest.mark.asyncio
    async def test_background_run(self, client, service):
        created = await _create(client)

        response = await client.post(f"/api/v1/workflows/{created['id']}/run", params={"background": True})

        assert response.status_code == 200
        assert response.json()["status"] == "running"
        run_id = response.json()["run_id"]
        await service.wait(run_id)
        fetched = await client.get(f"/api/v1/runs/{run_id}")
        assert fetched.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_handlers_and_stats(self, client):
        handlers = (await client.get("/api/v1/handlers")).json()["handlers"]
        assert sorted(handlers) == ["default", "switch", "trigger"]

        await _create(client)
        stats = (await client.get("/api/v1/stats")).json()
        assert stats["workflows"] == 1
        assert stats["runs"] == 0


class TestApp:
    @pytest.mark.asyncio
    async def test_root_and_health(self, client):
        assert (await client.get("/health")).json() == {"status": "healthy"}
        assert "endpoints" in (await client.get("/")).json()


class TestWebSocket:
    @pytest.fixture
    def sync_client(self, monkeypatch, store, service):
        from nodeflow.api import routes
        from nodeflow.main import app

        monkeypatch.setattr(routes, "store", store)
        monkeypatch.setattr(routes, "service", service)
        store.save(create_demo_workflow())
        with TestClient(app) as test_client:
            yield test_client

    def test_replays_finished_run(self, sync_client):
        run = sync_client.post("/api/v1/workflows/demo/run").json()

        with sync_client.websocket_connect(f"/api/v1/ws/runs/{run['run_id']}") as ws:
            assert ws.receive_json()["type"] == "connected"
            logs = [ws.receive_json() for _ in run["logs"]]
            status = ws.receive_json()

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

        assert [log["type"] for log in logs] == ["log"] * len(run["logs"])
        assert logs[0]["node_id"] == "trigger-1"
        assert status["status"] == "completed"

    def test_unknown_run_waits(self, sync_client):
        with sync_client.websocket_connect("/api/v1/ws/runs/later") as ws:
            ws.receive_json()
            assert ws.receive_json()["type"] == "waiting"

            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}


class ScriptedWebSocket:
    """Stands in for a client socket; runs a hook when the first log is sent."""

    def __init__(self, on_first_log):
        self.on_first_log = on_first_log
        self.messages = []

    async def accept(self):
        pass

    async def send_text(self, text):
        message = json.loads(text)
        self.messages.append(message)
        if message["type"] == "log" and self.on_first_log is not None:
            hook, self.on_first_log = self.on_first_log, None
            hook()

    async def receive_text(self):
        for _ in range(10):
            await asyncio.sleep(0)
        raise WebSocketDisconnect(code=1000)


class TestWebSocketReplay:
    @pytest.mark.asyncio
    async def test_entry_added_during_replay_is_sent_once(self, monkeypatch, service):
        from nodeflow.api import routes

        monkeypatch.setattr(routes, "service", service)
        run = WorkflowRun.create(create_demo_workflow())
        run.status = NodeStatus.RUNNING
        service.runs[run.run_id] = run
        service._add_log(run, "trigger-1", "Manual trigger", LogStatus.RUNNING, "Running...")

        socket = ScriptedWebSocket(
            lambda: service._add_log(run, "trigger-1", "Manual trigger", LogStatus.SUCCESS, "Completed")
        )
        await routes.websocket_run_logs(socket, run.run_id)

        log_ids = [m["id"] for m in socket.messages if m["type"] == "log"]
        assert len(log_ids) == 2
        assert set(log_ids) == {log.id for log in run.logs}
        assert run.run_id not in service.websocket_connections
