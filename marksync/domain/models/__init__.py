from marksync.domain.models.record import (
    SCHEMA_VERSION,
    Conflict,
    Document,
    MergeStats,
    Record,
    id_pattern,
)
from marksync.domain.models.sync_state import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    SyncDirection,
    SyncState,
    SyncStateMachine,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "SCHEMA_VERSION",
    "TERMINAL_STATES",
    "Conflict",
    "Document",
    "MergeStats",
    "Record",
    "SyncDirection",
    "SyncState",
    "SyncStateMachine",
    "id_pattern",
]
