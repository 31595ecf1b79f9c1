"""In-memory stores for tests, demos and embedding."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from marksync.domain.exceptions import VersionConflictError
from marksync.sync.protocols import RemoteSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from marksync.domain.models.record import Document, Record

logger = logging.getLogger(__name__)

ConcurrentEdit = Callable[[dict[str, Any] | None], dict[str, Any] | None]


class InMemoryRemoteStore:
    """Remote store holding the wire payload in memory.

    The version token is a monotonically increasing counter. Conflicts can be
    injected to simulate a concurrent writer racing the next writes.
    """

    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self._payload = copy.deepcopy(payload)
        self._version = 1 if payload is not None else 0
        self._pending_conflicts: list[ConcurrentEdit | None] = []
        self.read_calls = 0
        self.write_calls = 0
        self.written: list[dict[str, Any]] = []

    @property
    def version_token(self) -> str | None:
        return str(self._version) if self._payload is not None else None

    @property
    def payload(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._payload)

    def inject_conflicts(self, count: int = 1, edit: ConcurrentEdit | None = None) -> None:
        """Make the next ``count`` writes fail as if another writer got there first.

        ``edit`` receives the current payload and returns what the other
        writer stored; without it only the version moves.
        """
        self._pending_conflicts.extend([edit] * count)

    async def read(self) -> RemoteSnapshot:
        self.read_calls += 1
        return RemoteSnapshot(
            payload=copy.deepcopy(self._payload), version_token=self.version_token
        )

    async def write(self, document: Document, expected_version_token: str | None) -> str:
        self.write_calls += 1
        if self._pending_conflicts:
            edit = self._pending_conflicts.pop(0)
            if edit is not None:
                self._payload = edit(copy.deepcopy(self._payload))
            self._version += 1
            raise VersionConflictError(
                expected_token=expected_version_token, current_token=self.version_token
            )

        current = self.version_token
        if expected_version_token != current:
            logger.debug(
                "memory_remote_version_conflict",
                extra={"expected_token": expected_version_token, "current_token": current},
            )
            raise VersionConflictError(
                expected_token=expected_version_token, current_token=current
            )

        self._payload = document.to_wire()
        self._version += 1
        self.written.append(copy.deepcopy(self._payload))
        return str(self._version)


class InMemoryLocalStore:
    """Local store over an id-keyed dict; keeps insertion order."""

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: dict[str, Record] = {record.id: record for record in records}
        self.deltas: list[tuple[list[Record], list[Record], list[str]]] = []

    @property
    def records(self) -> dict[str, Record]:
        return dict(self._records)

    def put(self, record: Record) -> None:
        self._records[record.id] = record

    def remove(self, record_id: str) -> None:
        self._records.pop(record_id, None)

    async def enumerate(self) -> list[Record]:
        return list(self._records.values())

    async def apply_delta(
        self,
        added: Sequence[Record],
        modified: Sequence[Record],
        deleted_ids: Sequence[str],
    ) -> None:
        self.deltas.append((list(added), list(modified), list(deleted_ids)))
        for record in [*added, *modified]:
            self._records[record.id] = record
        for record_id in deleted_ids:
            self._records.pop(record_id, None)
