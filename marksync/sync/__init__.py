from marksync.sync.orchestrator import SyncOrchestrator
from marksync.sync.protocols import (
    InMemorySnapshotStore,
    LocalStore,
    RemoteSnapshot,
    RemoteStore,
    Scheduler,
    SnapshotStore,
    SyncSnapshot,
)
from marksync.sync.results import SyncResult, SyncStatus

__all__ = [
    "InMemorySnapshotStore",
    "LocalStore",
    "RemoteSnapshot",
    "RemoteStore",
    "Scheduler",
    "SnapshotStore",
    "SyncOrchestrator",
    "SyncResult",
    "SyncSnapshot",
    "SyncStatus",
]
