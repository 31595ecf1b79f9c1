"""Local bookmark collection held in a JSON file."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from marksync.core.time_utils import now_ms
from marksync.domain.exceptions import AdapterError, ValidationError
from marksync.domain.models.record import Record

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marksync.domain.services.identity import IdentityResolver

logger = logging.getLogger(__name__)


class JsonFileLocalStore:
    """``LocalStore`` over ``{"bookmarks": [...]}`` (or a bare list) on disk.

    Entries without an ``id`` get the one derived from their URL and title;
    missing timestamps default to now. Writes replace the file atomically.
    """

    def __init__(self, path: str | os.PathLike[str], identity: IdentityResolver) -> None:
        self.path = Path(path)
        self._identity = identity
        self._lock = asyncio.Lock()

    async def enumerate(self) -> list[Record]:
        async with self._lock:
            return await asyncio.to_thread(self._load)

    async def apply_delta(
        self,
        added: Sequence[Record],
        modified: Sequence[Record],
        deleted_ids: Sequence[str],
    ) -> None:
        async with self._lock:
            records = {record.id: record for record in await asyncio.to_thread(self._load)}
            for record in [*added, *modified]:
                records[record.id] = record
            for record_id in deleted_ids:
                records.pop(record_id, None)
            await asyncio.to_thread(self._save, list(records.values()))
        logger.info(
            "local_file_delta_applied",
            extra={
                "path": str(self.path),
                "added": len(added),
                "modified": len(modified),
                "deleted": len(deleted_ids),
            },
        )

    def _load(self) -> list[Record]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            msg = f"Local bookmarks file {self.path} is not valid JSON: {exc.msg}"
            raise ValidationError(msg, errors=[f"root: {exc.msg}"]) from exc
        except OSError as exc:
            raise AdapterError(
                f"Failed to read {self.path}: {exc}", adapter="json_file", operation="enumerate"
            ) from exc

        entries = raw.get("bookmarks", []) if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            msg = f"Local bookmarks file {self.path} must hold a list of bookmarks"
            raise ValidationError(msg, errors=["bookmarks: expected list"])

        records: list[Record] = []
        errors: list[str] = []
        for index, entry in enumerate(entries):
            try:
                records.append(self._to_record(entry))
            except PydanticValidationError as exc:
                errors.extend(
                    f"bookmarks/{index}/{'/'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in exc.errors()
                )
            except (TypeError, KeyError) as exc:
                errors.append(f"bookmarks/{index}: {exc}")
        if errors:
            msg = f"Local bookmarks file {self.path} has {len(errors)} invalid field(s)"
            raise ValidationError(msg, errors=errors)
        return records

    def _to_record(self, entry: Any) -> Record:
        if not isinstance(entry, dict):
            msg = f"expected object, got {type(entry).__name__}"
            raise TypeError(msg)
        data = dict(entry)
        if not data.get("id"):
            data["id"] = self._identity.record_id(data["url"], data["title"])
        timestamp = now_ms()
        if not any(key in data for key in ("createdAt", "dateAdded", "created_at")):
            data["createdAt"] = timestamp
        if not any(key in data for key in ("modifiedAt", "dateModified", "modified_at")):
            data["modifiedAt"] = timestamp
        return Record.model_validate(data, context={"id_prefix": self._identity.prefix})

    def _save(self, records: list[Record]) -> None:
        payload = {"bookmarks": [record.to_wire() for record in records]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise AdapterError(
                f"Failed to write {self.path}: {exc}", adapter="json_file", operation="apply_delta"
            ) from exc
