"""Client configuration via environment variables (SSEKIT_ prefix) or defaults."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class SSEConfig(BaseSettings):
    reconnect: Literal["never", "immediate", "exponential"] = "exponential"
    backoff_base: float = 1.0  # seconds
    backoff_max: float = 30.0
    connect_timeout: float = 10.0
    read_timeout: float | None = None  # streams may idle indefinitely
    queue_size: int = 64
    log_dir: str = "logs"
    log_level: str = "INFO"
    json_logs: bool = True

    model_config = {"env_prefix": "SSEKIT_"}
