"""Protocol definitions (ports) for the sync engine.

The orchestrator only talks to these; concrete stores live in
``marksync.adapters`` and ``marksync.infrastructure``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from marksync.domain.models.record import Document, Record


@dataclass(frozen=True)
class RemoteSnapshot:
    """Raw remote document plus the opaque version token it was read at.

    ``payload is None`` means the document does not exist yet.
    """

    payload: dict[str, Any] | None
    version_token: str | None

    @property
    def exists(self) -> bool:
        return self.payload is not None


@dataclass(frozen=True)
class SyncSnapshot:
    """Base snapshot of the last successful cycle, replaced as a unit."""

    records: tuple[Record, ...] = field(default_factory=tuple)
    version_token: str | None = None
    last_synced_at: int | None = None

    @property
    def record_ids(self) -> set[str]:
        return {record.id for record in self.records}


@runtime_checkable
class RemoteStore(Protocol):
    async def read(self) -> RemoteSnapshot: ...

    async def write(self, document: Document, expected_version_token: str | None) -> str:
        """Replace the whole document if the remote is still at ``expected_version_token``.

        Raises ``VersionConflictError`` on mismatch; ``None`` means create-if-missing.
        Returns the new version token.
        """
        ...


@runtime_checkable
class LocalStore(Protocol):
    async def enumerate(self) -> list[Record]: ...

    async def apply_delta(
        self,
        added: Sequence[Record],
        modified: Sequence[Record],
        deleted_ids: Sequence[str],
    ) -> None: ...


@runtime_checkable
class SnapshotStore(Protocol):
    async def load(self) -> SyncSnapshot | None: ...

    async def save(self, snapshot: SyncSnapshot) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    def schedule(self, interval_seconds: float, job: Callable[[], Awaitable[Any]]) -> None: ...

    def cancel(self) -> None: ...

    @property
    def is_scheduled(self) -> bool: ...

    @property
    def interval_seconds(self) -> float | None: ...


class InMemorySnapshotStore:
    """Snapshot store used when no persistence is configured."""

    def __init__(self, snapshot: SyncSnapshot | None = None) -> None:
        self._snapshot = snapshot
        self.save_count = 0

    async def load(self) -> SyncSnapshot | None:
        return self._snapshot

    async def save(self, snapshot: SyncSnapshot) -> None:
        self._snapshot = snapshot
        self.save_count += 1
