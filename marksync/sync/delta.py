"""Local delta between the enumerated local set and a merged result."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from marksync.domain.services.fingerprint import differs

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marksync.domain.models.record import Record


@dataclass(frozen=True)
class LocalDelta:
    added: list[Record] = field(default_factory=list)
    modified: list[Record] = field(default_factory=list)
    deleted_ids: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted_ids)

    @property
    def size(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted_ids)


def compute_local_delta(local: Iterable[Record], merged: Iterable[Record]) -> LocalDelta:
    """Changes the local store needs so that it mirrors ``merged``.

    A record whose content is unchanged is left alone even when its
    timestamps differ.
    """
    local_idx = {record.id: record for record in local}
    merged_idx = {record.id: record for record in merged}

    added = [record for record_id, record in merged_idx.items() if record_id not in local_idx]
    modified = [
        record
        for record_id, record in merged_idx.items()
        if record_id in local_idx and differs(local_idx[record_id], record)
    ]
    deleted_ids = [record_id for record_id in local_idx if record_id not in merged_idx]
    return LocalDelta(added=added, modified=modified, deleted_ids=deleted_ids)
