"""Sync orchestrator: one read / merge / write / apply / persist cycle at a time.

All I/O goes through the injected stores. Writes are conditioned on the
version token read in the same cycle; a rejected write re-reads the remote,
re-merges against it and tries again until the attempt budget is spent.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from marksync.config.sync import SyncConfig
from marksync.core.backoff import compute_backoff_delay
from marksync.core.logging_utils import generate_correlation_id
from marksync.core.time_utils import now_ms
from marksync.domain.exceptions import (
    DomainException,
    ManualConflict,
    VersionConflictError,
    WriteRetryExhaustedError,
)
from marksync.domain.models.sync_state import SyncDirection, SyncState, SyncStateMachine
from marksync.domain.services.fingerprint import differs
from marksync.domain.services.merge import (
    ConflictStrategy,
    MergeResult,
    compute_merge_stats,
    index_records,
    merge_records,
)
from marksync.domain.services.schema import build_document, parse_document, validate_document
from marksync.sync.delta import compute_local_delta
from marksync.sync.protocols import InMemorySnapshotStore, SyncSnapshot
from marksync.sync.results import ScheduleInfo, SyncResult, SyncStatus
from marksync.sync.scheduler import NoopScheduler

if TYPE_CHECKING:
    import random
    from collections.abc import Awaitable, Callable, Sequence

    from marksync.domain.models.record import Conflict, Document, Record
    from marksync.domain.services.identity import IdentityResolver
    from marksync.sync.protocols import (
        LocalStore,
        RemoteSnapshot,
        RemoteStore,
        Scheduler,
        SnapshotStore,
    )

logger = logging.getLogger(__name__)

__all__ = ["SyncDirection", "SyncOrchestrator"]


@dataclass
class _WriteOutcome:
    merged: list[Record]
    stats_base: Sequence[Record]
    version_token: str | None
    attempts: int
    skipped: bool


def _same_content(merged: Sequence[Record], remote: Sequence[Record]) -> bool:
    if len(merged) != len(remote):
        return False
    remote_idx = index_records(remote)
    for record in merged:
        other = remote_idx.get(record.id)
        if other is None or differs(record, other):
            return False
    return True


class SyncOrchestrator:
    """Drives sync cycles through the ``SyncState`` machine.

    Overlapping ``trigger`` calls attach to the cycle already in flight and
    receive the same ``SyncResult``.
    """

    def __init__(
        self,
        remote_store: RemoteStore,
        local_store: LocalStore,
        *,
        identity: IdentityResolver,
        config: SyncConfig | None = None,
        snapshot_store: SnapshotStore | None = None,
        scheduler: Scheduler | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._remote = remote_store
        self._local = local_store
        self._identity = identity
        self._config = config or SyncConfig()
        self._snapshots: SnapshotStore = snapshot_store or InMemorySnapshotStore()
        self._scheduler: Scheduler = scheduler or NoopScheduler()
        self._sleep = sleep
        self._rng = rng

        self._machine = SyncStateMachine()
        self._base: SyncSnapshot | None = None
        self._base_loaded = False
        self._current: asyncio.Task[SyncResult] | None = None
        self._pending_conflicts: list[Conflict] = []
        self._last_result: SyncResult | None = None
        self._write_attempts = 0

    @property
    def state(self) -> SyncState:
        return self._machine.state

    @property
    def state_history(self) -> list[SyncState]:
        return list(self._machine.history)

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    async def trigger(
        self,
        direction: SyncDirection | str | None = None,
        strategy: ConflictStrategy | str | None = None,
    ) -> SyncResult:
        """Run one sync cycle, or join the one already running.

        The cycle itself is shielded: cancelling the caller does not abort it.
        """
        if self._current is None or self._current.done():
            resolved_direction = SyncDirection.parse(direction or self._config.direction)
            resolved_strategy = ConflictStrategy.parse(strategy or self._config.strategy)
            task = asyncio.create_task(self._run_cycle(resolved_direction, resolved_strategy))
            task.add_done_callback(self._release_task)
            self._current = task
        else:
            logger.debug(
                "sync_trigger_joined_in_flight",
                extra={"requested_direction": str(direction) if direction else None},
            )
        return await asyncio.shield(self._current)

    async def resolve_conflicts(self, strategy: ConflictStrategy | str) -> SyncResult:
        """Leave the ``conflict`` state by re-running the cycle with ``strategy``."""
        resolved = ConflictStrategy.parse(strategy)
        if resolved == ConflictStrategy.MANUAL:
            msg = "Conflicts cannot be resolved with the manual strategy"
            raise ValueError(msg)
        logger.info(
            "sync_conflicts_resolving",
            extra={"strategy": resolved.value, "pending": len(self._pending_conflicts)},
        )
        return await self.trigger(strategy=resolved)

    def status(self) -> SyncStatus:
        base = self._base
        return SyncStatus(
            state=self._machine.state,
            in_flight=self.in_flight,
            last_synced_at=base.last_synced_at if base else None,
            version_token=base.version_token if base else None,
            base_size=len(base.records) if base else 0,
            pending_conflicts=list(self._pending_conflicts),
            last_result=self._last_result,
            schedule=ScheduleInfo(
                enabled=self._scheduler.is_scheduled,
                interval_seconds=self._scheduler.interval_seconds,
            ),
        )

    def start_schedule(self, interval_seconds: float | None = None) -> None:
        interval = interval_seconds or self._config.interval_seconds
        if interval <= 0:
            msg = "Sync interval must be positive"
            raise ValueError(msg)
        self._scheduler.schedule(interval, self._scheduled_trigger)
        logger.info("sync_schedule_started", extra={"interval_seconds": interval})

    def stop_schedule(self) -> None:
        self._scheduler.cancel()
        logger.info("sync_schedule_stopped")

    async def _scheduled_trigger(self) -> None:
        result = await self.trigger()
        logger.info(
            "scheduled_sync_complete",
            extra={
                "correlation_id": result.correlation_id,
                "success": result.success,
                "state": result.final_state.value,
                "errors": len(result.errors),
            },
        )

    def _release_task(self, task: asyncio.Task[SyncResult]) -> None:
        if self._current is task:
            self._current = None

    async def _load_base(self) -> SyncSnapshot:
        if not self._base_loaded:
            self._base = await self._snapshots.load()
            self._base_loaded = True
        return self._base or SyncSnapshot()

    @staticmethod
    def _effective_base(base: SyncSnapshot, remote: RemoteSnapshot) -> Sequence[Record]:
        """Base records to merge against; none when the remote document is absent.

        A missing document is a new remote: nothing is inferred as deleted
        from it and every local record is uploaded again.
        """
        if remote.exists:
            return base.records
        return ()

    def _parse_remote(self, snapshot: RemoteSnapshot) -> list[Record]:
        if snapshot.payload is None:
            return []
        document = parse_document(snapshot.payload, id_prefix=self._identity.prefix)
        return list(document.records)

    def _merge_for_direction(
        self,
        direction: SyncDirection,
        strategy: ConflictStrategy,
        base: Sequence[Record],
        local: Sequence[Record],
        remote: Sequence[Record],
    ) -> MergeResult:
        if direction == SyncDirection.PULL:
            return merge_records(base, [], remote, (), ConflictStrategy.REMOTE_WINS)
        if direction == SyncDirection.PUSH:
            local_ids = {record.id for record in local}
            deletions = [record.id for record in remote if record.id not in local_ids]
            return merge_records(remote, local, remote, deletions, ConflictStrategy.LOCAL_WINS)
        local_ids = {record.id for record in local}
        deletions = [record.id for record in base if record.id not in local_ids]
        return merge_records(base, local, remote, deletions, strategy)

    @staticmethod
    def _effective_strategy(
        direction: SyncDirection, strategy: ConflictStrategy
    ) -> ConflictStrategy:
        if direction == SyncDirection.PULL:
            return ConflictStrategy.REMOTE_WINS
        if direction == SyncDirection.PUSH:
            return ConflictStrategy.LOCAL_WINS
        return strategy

    def _remerge(
        self,
        direction: SyncDirection,
        strategy: ConflictStrategy,
        *,
        previous_remote: Sequence[Record],
        previous_merged: Sequence[Record],
        local_records: Sequence[Record],
        fresh: RemoteSnapshot,
        fresh_records: Sequence[Record],
    ) -> MergeResult:
        """Merge again after a rejected write, against the freshly read remote.

        Bidirectional cycles merge their previous output into the fresh remote
        with the remote they last merged against as base (no base when the
        document has disappeared). One-way cycles rerun their own merge so the
        authoritative side still wins.
        """
        if direction != SyncDirection.BIDIRECTIONAL:
            return self._merge_for_direction(
                direction, strategy, fresh_records, local_records, fresh_records
            )
        retry_base = previous_remote if fresh.exists else ()
        merged_ids = {record.id for record in previous_merged}
        deletions = [record.id for record in retry_base if record.id not in merged_ids]
        return merge_records(retry_base, previous_merged, fresh_records, deletions, strategy)

    def _build_outgoing(self, merged: Sequence[Record], meta: dict[str, Any]) -> Document:
        document = build_document(merged, meta=meta)
        return validate_document(document, id_prefix=self._identity.prefix)

    async def _write_with_retry(
        self,
        *,
        merged: list[Record],
        base: SyncSnapshot,
        local_records: list[Record],
        remote_records: list[Record],
        remote: RemoteSnapshot,
        direction: SyncDirection,
        strategy: ConflictStrategy,
        correlation_id: str,
    ) -> _WriteOutcome:
        """Write ``merged`` conditioned on the token; re-merge on version conflicts.

        Entered in ``writing``; returns in ``writing``. Exhausting the budget
        raises ``WriteRetryExhaustedError`` from ``retrying``.
        """
        max_attempts = self._config.max_write_attempts
        token = remote.version_token
        remote_exists = remote.exists
        stats_base = self._effective_base(base, remote)
        meta = dict((remote.payload or {}).get("meta") or {})

        while True:
            if direction == SyncDirection.PULL or (
                remote_exists and _same_content(merged, remote_records)
            ):
                logger.info(
                    "sync_write_skipped",
                    extra={"correlation_id": correlation_id, "records": len(merged)},
                )
                return _WriteOutcome(
                    merged, stats_base, token, self._write_attempts, skipped=True
                )

            document = self._build_outgoing(merged, meta)
            self._write_attempts += 1
            attempts = self._write_attempts
            try:
                new_token = await self._remote.write(
                    document, token if remote_exists else None
                )
            except VersionConflictError as exc:
                self._machine.transition(SyncState.RETRYING, correlation_id=correlation_id)
                logger.warning(
                    "sync_write_version_conflict",
                    extra={
                        "correlation_id": correlation_id,
                        "attempt": attempts,
                        "max_attempts": max_attempts,
                        "expected_token": exc.expected_token,
                        "current_token": exc.current_token,
                    },
                )
                if attempts >= max_attempts:
                    raise WriteRetryExhaustedError(attempts) from exc

                delay = compute_backoff_delay(
                    attempts - 1,
                    base_delay=self._config.retry_base_delay_sec,
                    max_delay=self._config.retry_max_delay_sec,
                    factor=self._config.retry_backoff_factor,
                    jitter=self._config.retry_jitter,
                    rng=self._rng,
                )
                logger.debug(
                    "sync_write_backoff",
                    extra={"correlation_id": correlation_id, "delay_seconds": delay},
                )
                await self._sleep(delay)

                fresh = await self._remote.read()
                fresh_records = self._parse_remote(fresh)
                stats_base = self._effective_base(base, fresh)
                remerge = self._remerge(
                    direction,
                    strategy,
                    previous_remote=remote_records,
                    previous_merged=merged,
                    local_records=local_records,
                    fresh=fresh,
                    fresh_records=fresh_records,
                )
                if remerge.has_conflicts:
                    raise ManualConflict(remerge.conflicts) from exc

                merged = remerge.merged
                remote_records = fresh_records
                token = fresh.version_token
                remote_exists = fresh.exists
                meta = dict((fresh.payload or {}).get("meta") or {})
                self._machine.transition(SyncState.WRITING, correlation_id=correlation_id)
                continue

            logger.info(
                "sync_write_succeeded",
                extra={
                    "correlation_id": correlation_id,
                    "attempt": attempts,
                    "records": len(merged),
                    "version_token": new_token,
                },
            )
            return _WriteOutcome(merged, stats_base, new_token, attempts, skipped=False)

    async def _run_cycle(
        self, direction: SyncDirection, strategy: ConflictStrategy
    ) -> SyncResult:
        correlation_id = generate_correlation_id()
        started = time.perf_counter()
        effective = self._effective_strategy(direction, strategy)
        result = SyncResult(
            direction=direction, strategy=effective, correlation_id=correlation_id
        )
        machine = self._machine
        if machine.state != SyncState.IDLE:
            machine.transition(SyncState.IDLE, correlation_id=correlation_id)
        machine.reset_history()

        logger.info(
            "sync_cycle_started",
            extra={
                "correlation_id": correlation_id,
                "direction": direction.value,
                "strategy": effective.value,
            },
        )

        self._write_attempts = 0
        try:
            machine.transition(SyncState.READING, correlation_id=correlation_id)
            base = await self._load_base()
            remote = await self._remote.read()
            remote_records = self._parse_remote(remote)
            local_records = await self._local.enumerate()

            machine.transition(SyncState.MERGING, correlation_id=correlation_id)
            if not remote.exists and base.records:
                logger.warning(
                    "sync_remote_missing_base_ignored",
                    extra={"correlation_id": correlation_id, "base_records": len(base.records)},
                )
            merge = self._merge_for_direction(
                direction,
                effective,
                self._effective_base(base, remote),
                local_records,
                remote_records,
            )
            if merge.has_conflicts:
                result.stats = merge.stats
                raise ManualConflict(merge.conflicts)

            machine.transition(SyncState.WRITING, correlation_id=correlation_id)
            outcome = await self._write_with_retry(
                merged=merge.merged,
                base=base,
                local_records=local_records,
                remote_records=remote_records,
                remote=remote,
                direction=direction,
                strategy=effective,
                correlation_id=correlation_id,
            )
            machine.transition(SyncState.APPLYING, correlation_id=correlation_id)
            if direction == SyncDirection.PULL and not remote.exists:
                logger.info(
                    "sync_pull_remote_missing", extra={"correlation_id": correlation_id}
                )
            else:
                delta = compute_local_delta(local_records, outcome.merged)
                if not delta.is_empty:
                    await self._local.apply_delta(delta.added, delta.modified, delta.deleted_ids)
                logger.debug(
                    "sync_local_delta",
                    extra={
                        "correlation_id": correlation_id,
                        "added": len(delta.added),
                        "modified": len(delta.modified),
                        "deleted": len(delta.deleted_ids),
                    },
                )

            machine.transition(SyncState.PERSISTING, correlation_id=correlation_id)
            snapshot = SyncSnapshot(
                records=tuple(outcome.merged),
                version_token=outcome.version_token,
                last_synced_at=now_ms(),
            )
            await self._snapshots.save(snapshot)
            self._base = snapshot
            self._base_loaded = True
            self._pending_conflicts = []

            result.stats = compute_merge_stats(
                index_records(outcome.stats_base), index_records(outcome.merged)
            )
            result.write_attempts = outcome.attempts
            result.write_skipped = outcome.skipped
            result.version_token = outcome.version_token
            machine.transition(SyncState.DONE, correlation_id=correlation_id)
            result.success = True
            result.final_state = SyncState.DONE
        except ManualConflict as conflict:
            machine.transition(SyncState.CONFLICT, correlation_id=correlation_id)
            self._pending_conflicts = list(conflict.conflicts)
            result.final_state = SyncState.CONFLICT
            result.conflicts = list(conflict.conflicts)
            result.write_attempts = self._write_attempts
            result.version_token = self._base.version_token if self._base else None
            logger.warning(
                "sync_conflicts_pending",
                extra={
                    "correlation_id": correlation_id,
                    "conflicts": len(conflict.conflicts),
                    "conflict_ids": [c.id for c in conflict.conflicts][:20],
                },
            )
        except Exception as exc:
            machine.transition(SyncState.ERROR, correlation_id=correlation_id)
            result.final_state = SyncState.ERROR
            result.errors.append(str(exc))
            result.error_type = type(exc).__name__
            result.version_token = self._base.version_token if self._base else None
            result.write_attempts = self._write_attempts
            if isinstance(exc, DomainException):
                logger.error(
                    "sync_cycle_failed",
                    extra={
                        "correlation_id": correlation_id,
                        "error_type": type(exc).__name__,
                        "error": exc.message,
                        "details": exc.details,
                    },
                )
            else:
                logger.exception(
                    "sync_cycle_failed",
                    extra={"correlation_id": correlation_id, "error_type": type(exc).__name__},
                )

        result.duration_seconds = round(time.perf_counter() - started, 4)
        self._last_result = result
        logger.info(
            "sync_cycle_finished",
            extra={
                "correlation_id": correlation_id,
                "state": result.final_state.value,
                "success": result.success,
                "write_attempts": result.write_attempts,
                "added": result.stats.added,
                "modified": result.stats.modified,
                "deleted": result.stats.deleted,
                "duration_seconds": result.duration_seconds,
            },
        )
        return result
