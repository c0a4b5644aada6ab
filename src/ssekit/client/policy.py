"""Reconnect policies: how long to wait before the next connection attempt.

A server-sent ``retry:`` interval always overrides the policy's own delay.
Durations are in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ssekit.config import SSEConfig


class ReconnectPolicy(Protocol):
    @property
    def reconnects(self) -> bool: ...

    def delay(self, attempt: int, server_retry: float | None = None) -> float: ...


def _check_attempt(attempt: int) -> None:
    if attempt < 0:
        raise ValueError(f"attempt must be non-negative, got {attempt}")


@dataclass(frozen=True)
class Never:
    """Do not reconnect; the session ends with its first connection."""

    @property
    def reconnects(self) -> bool:
        return False

    def delay(self, attempt: int, server_retry: float | None = None) -> float:
        _check_attempt(attempt)
        return server_retry if server_retry is not None else 0.0


@dataclass(frozen=True)
class Immediate:
    """Reconnect without waiting."""

    @property
    def reconnects(self) -> bool:
        return True

    def delay(self, attempt: int, server_retry: float | None = None) -> float:
        _check_attempt(attempt)
        return server_retry if server_retry is not None else 0.0


@dataclass(frozen=True)
class ExponentialBackoff:
    """Wait ``base * 2**attempt`` seconds, capped at ``max``."""

    base: float = 1.0
    max: float = 30.0

    def __post_init__(self) -> None:
        if self.base < 0 or self.max < 0:
            raise ValueError("base and max must be non-negative")

    @property
    def reconnects(self) -> bool:
        return True

    def delay(self, attempt: int, server_retry: float | None = None) -> float:
        _check_attempt(attempt)
        if server_retry is not None:
            return server_retry
        # Past this exponent the product overflows float; the cap applies anyway.
        if attempt >= 1024:
            return self.max
        return min(self.base * 2**attempt, self.max)


def policy_from_config(config: SSEConfig) -> ReconnectPolicy:
    """Build the reconnect policy selected by the configuration."""
    if config.reconnect == "never":
        return Never()
    if config.reconnect == "immediate":
        return Immediate()
    return ExponentialBackoff(base=config.backoff_base, max=config.backoff_max)
