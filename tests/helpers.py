"""Helpers shared by test modules."""

from __future__ import annotations

from typing import Any

from marksync.domain.models.record import Record


def edit(record: Record, **changes: Any) -> Record:
    """Copy ``record`` with ``changes`` and a bumped ``modified_at``."""
    changes.setdefault("modified_at", record.modified_at + 1)
    return record.model_copy(update=changes)


def document_payload(*records: Record, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "schemaVersion": 1,
        "generatedAt": "2024-05-01T10:00:00.000Z",
        "bookmarks": [record.to_wire() for record in records],
        "meta": {},
    }
    payload.update(extra)
    return payload
