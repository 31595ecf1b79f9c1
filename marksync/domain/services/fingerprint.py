"""Content fingerprints for cheap change detection.

Only comparison-relevant fields take part; ``created_at`` and ``modified_at``
are excluded so a touched-but-unchanged record is not a change.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marksync.domain.models.record import Record

FINGERPRINT_LENGTH = 16


def _comparable(record: Record) -> dict[str, Any]:
    return {
        "title": record.title,
        "url": record.url,
        "folderPath": record.folder_path or "",
        "tags": sorted(set(record.tags)),
        "notes": record.notes or "",
        "archived": bool(record.archived),
        "favorite": bool(record.favorite),
    }


def fingerprint(record: Record) -> str:
    """Short SHA-256 digest of the record's comparison-relevant fields."""
    payload = json.dumps(_comparable(record), sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def differs(a: Record, b: Record) -> bool:
    """Field-wise content comparison, ignoring timestamps and tag order."""
    return _comparable(a) != _comparable(b)


def index_fingerprints(records: Iterable[Record]) -> dict[str, str]:
    return {record.id: fingerprint(record) for record in records}
