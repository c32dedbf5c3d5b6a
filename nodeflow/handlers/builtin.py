from typing import Dict, Any, Optional
import asyncio
import logging
import random

from nodeflow.config import Settings
from nodeflow.engine.handlers import HandlerRegistry
from nodeflow.engine.models import ExecutionContext
from nodeflow.engine.errors import NodeflowError

logger = logging.getLogger(__name__)


class SimulatedNodeFailure(NodeflowError):
    """Raised by the default handler to simulate a failing node"""


class TriggerHandler:
    """Starts a run; reports which trigger type fired."""

    def __init__(self, delay: float = 0.5):
        self.delay = delay

    async def execute(self, data: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        logger.info(f"Executing trigger: {data}")
        if self.delay:
            await asyncio.sleep(self.delay)
        return {"message": "Triggered!", "triggerType": data.get("triggerType")}


class DefaultHandler:
    """
    Generic processing step.

    Simulates work with a delay and fails either when the node asks for it
    (`simulateFailure` in its data) or at random with `failure_rate`.
    """

    def __init__(
        self,
        delay: float = 1.0,
        failure_rate: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self.delay = delay
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()

    async def execute(self, data: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        logger.info(f"Executing node: {data}")
        if self.delay:
            await asyncio.sleep(self.delay)

        if data.get("simulateFailure") or self.rng.random() < self.failure_rate:
            raise SimulatedNodeFailure("Simulated node failure")

        return {"processed": True, "input": data}


class SwitchHandler:
    """Multi-way branch node; every case edge is followed after it."""

    async def execute(self, data: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        return {"switched": True, "input": data}


def default_registry(settings: Optional[Settings] = None) -> HandlerRegistry:
    """Build a registry holding the trigger, default and switch handlers."""
    settings = settings or Settings()
    registry = HandlerRegistry()
    registry.register("trigger", TriggerHandler(delay=settings.trigger_delay))
    registry.register("default", DefaultHandler(
        delay=settings.node_delay,
        failure_rate=settings.simulated_failure_rate,
    ))
    registry.register("switch", SwitchHandler())
    return registry
