"""SQLite implementation of the base snapshot store."""

from __future__ import annotations

import logging

from marksync.core.time_utils import utc_now
from marksync.db.models import DEFAULT_SNAPSHOT_KEY, SyncSnapshotRow
from marksync.db.session import DatabaseSessionManager
from marksync.domain.models.record import Record
from marksync.infrastructure.persistence.sqlite.base import SqliteBaseRepository
from marksync.sync.protocols import SyncSnapshot

logger = logging.getLogger(__name__)


class SqliteSnapshotStore(SqliteBaseRepository):
    """``SnapshotStore`` persisting one snapshot row per ``key``.

    Records, version token and sync time are written in a single transaction
    so the snapshot is always replaced as a unit.
    """

    def __init__(
        self, session_manager: DatabaseSessionManager, key: str = DEFAULT_SNAPSHOT_KEY
    ) -> None:
        super().__init__(session_manager)
        self.key = key

    async def load(self) -> SyncSnapshot | None:
        def _query() -> SyncSnapshotRow | None:
            return SyncSnapshotRow.get_or_none(SyncSnapshotRow.key == self.key)

        row = await self._execute(_query)
        if row is None:
            return None
        records = tuple(Record.model_validate(item) for item in row.records_json or [])
        return SyncSnapshot(
            records=records,
            version_token=row.version_token,
            last_synced_at=row.last_synced_at,
        )

    async def save(self, snapshot: SyncSnapshot) -> None:
        payload = [record.to_wire() for record in snapshot.records]

        def _upsert() -> None:
            with self._session.atomic():
                (
                    SyncSnapshotRow.insert(
                        key=self.key,
                        records_json=payload,
                        record_count=len(payload),
                        version_token=snapshot.version_token,
                        last_synced_at=snapshot.last_synced_at,
                        updated_at=utc_now(),
                    )
                    .on_conflict_replace()
                    .execute()
                )

        await self._execute(_upsert)
        logger.debug(
            "snapshot_saved",
            extra={
                "key": self.key,
                "records": len(payload),
                "version_token": snapshot.version_token,
            },
        )
