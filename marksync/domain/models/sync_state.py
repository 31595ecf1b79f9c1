"""Sync cycle state machine.

Every state change of the orchestrator goes through ``SyncStateMachine`` so
that an unexpected edge fails loudly instead of leaving the cycle in an
undefined state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from marksync.domain.exceptions import InvalidStateTransitionError

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """States of a sync cycle."""

    IDLE = "idle"
    READING = "reading"
    MERGING = "merging"
    WRITING = "writing"
    RETRYING = "retrying"
    CONFLICT = "conflict"
    APPLYING = "applying"
    PERSISTING = "persisting"
    DONE = "done"
    ERROR = "error"


class SyncDirection(str, Enum):
    """Which side is authoritative for a cycle."""

    BIDIRECTIONAL = "bidirectional"
    PULL = "pull"
    PUSH = "push"

    @classmethod
    def parse(cls, value: str | SyncDirection) -> SyncDirection:
        if isinstance(value, SyncDirection):
            return value
        raw = str(value).strip().lower()
        raw = _DIRECTION_ALIASES.get(raw, raw)
        try:
            return cls(raw)
        except ValueError as exc:
            valid = ", ".join(d.value for d in cls)
            msg = f"Unknown sync direction: {value!r}. Must be one of: {valid}"
            raise ValueError(msg) from exc


_DIRECTION_ALIASES = {
    "from-github": SyncDirection.PULL.value,
    "to-github": SyncDirection.PUSH.value,
}


ALLOWED_TRANSITIONS: dict[SyncState, frozenset[SyncState]] = {
    SyncState.IDLE: frozenset({SyncState.READING}),
    SyncState.READING: frozenset({SyncState.MERGING, SyncState.ERROR}),
    SyncState.MERGING: frozenset({SyncState.CONFLICT, SyncState.WRITING, SyncState.ERROR}),
    SyncState.WRITING: frozenset({SyncState.APPLYING, SyncState.RETRYING, SyncState.ERROR}),
    SyncState.RETRYING: frozenset({SyncState.WRITING, SyncState.CONFLICT, SyncState.ERROR}),
    SyncState.CONFLICT: frozenset({SyncState.IDLE}),
    SyncState.APPLYING: frozenset({SyncState.PERSISTING, SyncState.ERROR}),
    SyncState.PERSISTING: frozenset({SyncState.DONE, SyncState.ERROR}),
    SyncState.DONE: frozenset({SyncState.IDLE}),
    SyncState.ERROR: frozenset({SyncState.IDLE}),
}

TERMINAL_STATES = frozenset({SyncState.DONE, SyncState.ERROR, SyncState.CONFLICT})


@dataclass
class SyncStateMachine:
    """Tracks the current state and validates every transition."""

    state: SyncState = SyncState.IDLE
    history: list[SyncState] = field(default_factory=list)

    def can_transition(self, target: SyncState) -> bool:
        return target in ALLOWED_TRANSITIONS[self.state]

    def transition(self, target: SyncState, *, correlation_id: str | None = None) -> None:
        """Move to ``target``.

        Raises:
            InvalidStateTransitionError: If ``target`` is not reachable from the current state.
        """
        if not self.can_transition(target):
            msg = f"Cannot transition sync state from {self.state.value} to {target.value}"
            raise InvalidStateTransitionError(
                msg, {"from_state": self.state.value, "to_state": target.value}
            )
        logger.debug(
            "sync_state_transition",
            extra={
                "correlation_id": correlation_id,
                "from_state": self.state.value,
                "to_state": target.value,
            },
        )
        self.history.append(self.state)
        self.state = target

    def reset_history(self) -> None:
        self.history.clear()

    def is_idle(self) -> bool:
        return self.state == SyncState.IDLE

    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
