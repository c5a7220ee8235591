"""
TODOSYNC - Client Configuration
===============================
Settings come from the environment; CLI flags override them.

    TODOSYNC_URL        tRPC endpoint of the todo server
    TODOSYNC_TIMEOUT    per-request timeout in seconds
    TODOSYNC_LOG_LEVEL  logging level name
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_URL = "http://localhost:3000/api/trpc"
DEFAULT_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "INFO"


class ClientConfig(BaseModel):
    base_url: str = DEFAULT_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level: {value}")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ClientConfig":
        env = os.environ if environ is None else environ
        values = {
            "base_url": env.get("TODOSYNC_URL", DEFAULT_URL),
            "timeout": env.get("TODOSYNC_TIMEOUT", DEFAULT_TIMEOUT),
            "log_level": env.get("TODOSYNC_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
