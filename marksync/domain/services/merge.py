"""Three-way merge of bookmark record sets.

``base`` is the record set of the last successful sync and serves as the
common ancestor. Deletions are an explicit input: an id listed there is
removed from the result no matter what the remote side did with it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from marksync.domain.models.record import Conflict, MergeStats, Record
from marksync.domain.services.fingerprint import differs

logger = logging.getLogger(__name__)

RecordSet = Iterable[Record] | Mapping[str, Record]


class ConflictStrategy(str, Enum):
    """How a genuine conflict turns into a single winning value."""

    LATEST_WINS = "latest-wins"
    LOCAL_WINS = "local-wins"
    REMOTE_WINS = "remote-wins"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: str | ConflictStrategy) -> ConflictStrategy:
        if isinstance(value, ConflictStrategy):
            return value
        raw = str(value).strip().lower()
        raw = _STRATEGY_ALIASES.get(raw, raw)
        try:
            return cls(raw)
        except ValueError as exc:
            valid = ", ".join(s.value for s in cls)
            msg = f"Unknown conflict strategy: {value!r}. Must be one of: {valid}"
            raise ValueError(msg) from exc


_STRATEGY_ALIASES = {
    "browser-wins": ConflictStrategy.LOCAL_WINS.value,
    "github-wins": ConflictStrategy.REMOTE_WINS.value,
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of a strategy applied to one conflict.

    ``winner is None`` with ``deferred=False`` means the record ends up deleted.
    """

    winner: Record | None
    deferred: bool = False


@dataclass
class MergeResult:
    merged: list[Record] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    stats: MergeStats = field(default_factory=MergeStats)

    @property
    def merged_by_id(self) -> dict[str, Record]:
        return {record.id: record for record in self.merged}

    @property
    def conflict_ids(self) -> set[str]:
        return {conflict.id for conflict in self.conflicts}

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def index_records(records: RecordSet) -> dict[str, Record]:
    """Index a record set by id (later duplicates replace earlier ones)."""
    if isinstance(records, Mapping):
        return dict(records)
    return {record.id: record for record in records}


def resolve_conflict(
    local: Record,
    remote: Record | None,
    strategy: ConflictStrategy,
) -> Resolution:
    """Apply ``strategy`` to a conflict between ``local`` and ``remote``.

    ``remote is None`` describes a remote deletion raced by a local edit. A
    deletion carries no timestamp, so ``latest-wins`` keeps the local edit.
    Under ``latest-wins`` equal ``modified_at`` values resolve to remote.
    """
    if strategy == ConflictStrategy.MANUAL:
        return Resolution(winner=None, deferred=True)
    if strategy == ConflictStrategy.LOCAL_WINS:
        return Resolution(winner=local)
    if strategy == ConflictStrategy.REMOTE_WINS:
        return Resolution(winner=remote)
    if remote is None:
        return Resolution(winner=local)
    if local.modified_at > remote.modified_at:
        return Resolution(winner=local)
    return Resolution(winner=remote)


def compute_merge_stats(
    base: Mapping[str, Record],
    merged: Mapping[str, Record],
    conflict_ids: Iterable[str] = (),
) -> MergeStats:
    """Count added/modified/deleted records of ``merged`` relative to ``base``.

    Deferred conflicts hold the remote value in ``merged`` and are left out of
    every count.
    """
    skipped = set(conflict_ids)
    added = sum(1 for record_id in merged if record_id not in base)
    deleted = sum(
        1 for record_id in base if record_id not in merged and record_id not in skipped
    )
    modified = sum(
        1
        for record_id, record in merged.items()
        if record_id in base and record_id not in skipped and differs(base[record_id], record)
    )
    return MergeStats(added=added, modified=modified, deleted=deleted)


def merge_records(
    base: RecordSet,
    local: RecordSet,
    remote: RecordSet,
    deletions: Iterable[str] = (),
    strategy: ConflictStrategy | str = ConflictStrategy.LATEST_WINS,
) -> MergeResult:
    """Reconcile ``local`` and ``remote`` against their common ancestor ``base``.

    Args:
        base: Record set of the last successful sync
        local: Current local record set
        remote: Current remote record set
        deletions: Ids removed locally since base; always removed from the result
        strategy: Conflict resolution strategy

    Returns:
        MergeResult with the merged set (remote order first, then new local
        records), deferred conflicts and stats relative to base.
    """
    strategy = ConflictStrategy.parse(strategy)
    base_idx = index_records(base)
    local_idx = index_records(local)
    remote_idx = index_records(remote)
    deleted_ids = set(deletions)

    merged = dict(remote_idx)
    for record_id in deleted_ids:
        merged.pop(record_id, None)

    conflicts: list[Conflict] = []

    for record_id, local_record in local_idx.items():
        if record_id in deleted_ids:
            continue

        remote_record = remote_idx.get(record_id)
        base_record = base_idx.get(record_id)

        if remote_record is None:
            if base_record is None:
                merged[record_id] = local_record
                continue
            if not differs(local_record, base_record):
                # Remote deleted it and the local copy is untouched.
                continue
            resolution = resolve_conflict(local_record, None, strategy)
            if resolution.deferred:
                conflicts.append(
                    Conflict(
                        id=record_id,
                        local=local_record,
                        remote=None,
                        base=base_record,
                        kind="deleted-remote",
                    )
                )
            elif resolution.winner is not None:
                merged[record_id] = resolution.winner
            continue

        if not differs(local_record, remote_record):
            continue

        if base_record is not None and not differs(remote_record, base_record):
            merged[record_id] = local_record
            continue
        if base_record is not None and not differs(local_record, base_record):
            continue

        resolution = resolve_conflict(local_record, remote_record, strategy)
        if resolution.deferred:
            conflicts.append(
                Conflict(
                    id=record_id,
                    local=local_record,
                    remote=remote_record,
                    base=base_record,
                    kind="modified",
                )
            )
        elif resolution.winner is not None:
            merged[record_id] = resolution.winner

    result = MergeResult(
        merged=list(merged.values()),
        conflicts=conflicts,
        stats=compute_merge_stats(base_idx, merged, (c.id for c in conflicts)),
    )
    logger.debug(
        "merge_completed",
        extra={
            "strategy": strategy.value,
            "base_count": len(base_idx),
            "local_count": len(local_idx),
            "remote_count": len(remote_idx),
            "deletions": len(deleted_ids),
            "merged_count": len(result.merged),
            "conflicts": len(conflicts),
            "added": result.stats.added,
            "modified": result.stats.modified,
            "deleted": result.stats.deleted,
        },
    )
    return result
