"""Unit tests for the handler registry and built-in handlers"""

import random

import pytest

from nodeflow.config import Settings
from nodeflow.engine import ExecutionContext, HandlerRegistry, FunctionHandler
from nodeflow.handlers import (
    TriggerHandler,
    DefaultHandler,
    SwitchHandler,
    SimulatedNodeFailure,
    default_registry,
)


class TestHandlerRegistry:
    def test_register_and_get(self):
        registry = HandlerRegistry()
        handler = SwitchHandler()
        registry.register("switch", handler)

        assert registry.get("switch") is handler
        assert registry.get("missing") is None
        assert "switch" in registry
        assert registry.types() == ["switch"]

    def test_callables_are_wrapped(self):
        registry = HandlerRegistry()
        registry.register("fn", lambda data, context: data)

        assert isinstance(registry.get("fn"), FunctionHandler)

    def test_rejects_non_handlers(self):
        with pytest.raises(TypeError):
            HandlerRegistry().register("bad", 42)

    @pytest.mark.asyncio
    async def test_async_function_handler(self):
        async def handler(data, context):
            return data["x"] * 2

        result = await FunctionHandler(handler).execute({"x": 21}, ExecutionContext())

        assert result == 42

    @pytest.mark.asyncio
    async def test_async_callable_object(self):
        class Doubler:
            async def __call__(self, data, context):
                return data["x"] * 2

        registry = HandlerRegistry()
        registry.register("double", Doubler())

        result = await registry.get("double").execute({"x": 21}, ExecutionContext())

        assert result == 42

    @pytest.mark.asyncio
    async def test_sync_execute_method_is_wrapped(self):
        class Upper:
            def execute(self, data, context):
                return data["text"].upper()

        registry = HandlerRegistry()
        registry.register("upper", Upper())

        assert isinstance(registry.get("upper"), FunctionHandler)
        assert await registry.get("upper").execute({"text": "hi"}, ExecutionContext()) == "HI"


class TestBuiltinHandlers:
    @pytest.mark.asyncio
    async def test_trigger(self):
        result = await TriggerHandler(delay=0).execute({"triggerType": "webhook"}, ExecutionContext())

        assert result == {"message": "Triggered!", "triggerType": "webhook"}

    @pytest.mark.asyncio
    async def test_default_echoes_input(self):
        data = {"label": "Step"}
        result = await DefaultHandler(delay=0).execute(data, ExecutionContext())

        assert result == {"processed": True, "input": data}

    @pytest.mark.asyncio
    async def test_default_fails_on_request(self):
        with pytest.raises(SimulatedNodeFailure):
            await DefaultHandler(delay=0).execute({"simulateFailure": True}, ExecutionContext())

    @pytest.mark.asyncio
    async def test_default_random_failure(self):
        always = DefaultHandler(delay=0, failure_rate=1.0, rng=random.Random(7))

        with pytest.raises(SimulatedNodeFailure, match="Simulated node failure"):
            await always.execute({}, ExecutionContext())

    def test_default_rejects_bad_rate(self):
        with pytest.raises(ValueError):
            DefaultHandler(failure_rate=1.5)

    @pytest.mark.asyncio
    async def test_switch(self):
        result = await SwitchHandler().execute({"label": "Route"}, ExecutionContext())

        assert result == {"switched": True, "input": {"label": "Route"}}

    def test_default_registry(self):
        registry = default_registry(Settings(trigger_delay=0, node_delay=0, simulated_failure_rate=0.25))

        assert sorted(registry.types()) == ["default", "switch", "trigger"]
        assert registry.get("default").failure_rate == 0.25
