from __future__ import annotations

from pydantic import BaseModel, Field

from marksync.domain.models.record import Conflict, MergeStats
from marksync.domain.models.sync_state import SyncDirection, SyncState
from marksync.domain.services.merge import ConflictStrategy


class SyncResult(BaseModel):
    """Result of one sync cycle."""

    success: bool = False
    final_state: SyncState = SyncState.IDLE
    direction: SyncDirection = SyncDirection.BIDIRECTIONAL
    strategy: ConflictStrategy = ConflictStrategy.LATEST_WINS
    conflicts: list[Conflict] = Field(default_factory=list)
    stats: MergeStats = Field(default_factory=MergeStats)
    errors: list[str] = Field(default_factory=list)
    error_type: str | None = None
    write_attempts: int = 0
    write_skipped: bool = False
    version_token: str | None = None
    correlation_id: str | None = None
    duration_seconds: float = 0.0

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class ScheduleInfo(BaseModel):
    enabled: bool = False
    interval_seconds: float | None = None


class SyncStatus(BaseModel):
    """Snapshot of the orchestrator for status queries."""

    state: SyncState
    in_flight: bool = False
    last_synced_at: int | None = None
    version_token: str | None = None
    base_size: int = 0
    pending_conflicts: list[Conflict] = Field(default_factory=list)
    last_result: SyncResult | None = None
    schedule: ScheduleInfo = Field(default_factory=ScheduleInfo)
