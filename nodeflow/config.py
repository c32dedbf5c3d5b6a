"""Runtime configuration, read once from environment variables."""

import os
from typing import Optional

from pydantic import BaseModel

# Server binding, used by the uvicorn entry point
API_HOST = os.getenv("NODEFLOW_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("NODEFLOW_API_PORT", "8000"))

LOG_LEVEL = os.getenv("NODEFLOW_LOG_LEVEL", "INFO").upper()

# Simulated work of the built-in handlers, in seconds
TRIGGER_DELAY = float(os.getenv("NODEFLOW_TRIGGER_DELAY", "0.5"))
NODE_DELAY = float(os.getenv("NODEFLOW_NODE_DELAY", "1.0"))

# Probability that the built-in "default" handler fails a node
SIMULATED_FAILURE_RATE = float(os.getenv("NODEFLOW_SIMULATED_FAILURE_RATE", "0.3"))

# "raise" or "degrade", see MissingHandlerPolicy
MISSING_HANDLER_POLICY = os.getenv("NODEFLOW_MISSING_HANDLER", "raise")

# JSON file backing the workflow store; empty keeps workflows in memory only
STORE_PATH = os.getenv("NODEFLOW_STORE_PATH", "")


class Settings(BaseModel):
    trigger_delay: float = TRIGGER_DELAY
    node_delay: float = NODE_DELAY
    simulated_failure_rate: float = SIMULATED_FAILURE_RATE
    missing_handler: str = MISSING_HANDLER_POLICY
    store_path: Optional[str] = STORE_PATH or None


def get_settings() -> Settings:
    return Settings()
