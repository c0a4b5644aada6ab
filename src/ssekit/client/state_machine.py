"""Stream session phase state machine.

IDLE ──→ CONNECTING ──[opened]──→ STREAMING ──[clean end]──→ COMPLETED
              │                       │                         │
        [open failed]            [read error]                   │
              │                       │                         │
              └────────→ FAILED ←─────┘                         │
                           │                                    │
              ┌────────────┴──────────┬─────────────────────────┘
              │                       │
       [policy never]         [policy reconnects]
              v                       v
           CLOSED                  BACKOFF ──[sleep done]──→ CONNECTING

Any non-terminal phase ──[consumer closed]──→ CANCELLED
"""

from __future__ import annotations

import enum

import structlog

from ssekit.errors import SSEError

log = structlog.get_logger()


class SessionPhase(enum.Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    BACKOFF = "BACKOFF"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


TERMINAL_PHASES = frozenset({SessionPhase.CLOSED, SessionPhase.CANCELLED})

# Valid transitions: (from_phase, to_phase)
VALID_TRANSITIONS: set[tuple[SessionPhase, SessionPhase]] = {
    (SessionPhase.IDLE, SessionPhase.CONNECTING),
    (SessionPhase.CONNECTING, SessionPhase.STREAMING),
    (SessionPhase.CONNECTING, SessionPhase.FAILED),  # open failed or non-2xx
    (SessionPhase.STREAMING, SessionPhase.COMPLETED),
    (SessionPhase.STREAMING, SessionPhase.FAILED),
    (SessionPhase.COMPLETED, SessionPhase.BACKOFF),
    (SessionPhase.FAILED, SessionPhase.BACKOFF),
    (SessionPhase.BACKOFF, SessionPhase.CONNECTING),
    # Policy does not reconnect
    (SessionPhase.COMPLETED, SessionPhase.CLOSED),
    (SessionPhase.FAILED, SessionPhase.CLOSED),
} | {
    (phase, SessionPhase.CANCELLED)
    for phase in SessionPhase
    if phase not in TERMINAL_PHASES
}


class InvalidTransition(SSEError):
    """Raised when an invalid phase transition is attempted."""

    def __init__(self, from_phase: SessionPhase, to_phase: SessionPhase) -> None:
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(f"Invalid transition: {from_phase.value} → {to_phase.value}")


def validate_transition(from_phase: SessionPhase, to_phase: SessionPhase) -> None:
    """Validate a phase transition, raising InvalidTransition if not allowed."""
    if (from_phase, to_phase) not in VALID_TRANSITIONS:
        raise InvalidTransition(from_phase, to_phase)


def transition(
    current: SessionPhase,
    target: SessionPhase,
    url: str,
    trigger: str = "",
) -> SessionPhase:
    """Execute a validated phase transition, logging the change."""
    validate_transition(current, target)
    log.debug(
        "phase_transition",
        url=url,
        from_phase=current.value,
        to_phase=target.value,
        trigger=trigger,
    )
    return target
