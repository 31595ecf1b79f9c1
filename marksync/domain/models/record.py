"""Bookmark record and document models.

These pydantic models are the wire shape of the shared remote document.
They run in strict mode: values are never coerced, unknown keys are rejected.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)

SCHEMA_VERSION = 1

Tag = Annotated[str, StringConstraints(min_length=1)]


def id_pattern(prefix: str) -> re.Pattern[str]:
    """Compile the ``^<prefix>[0-9a-f]{32}$`` record id pattern."""
    return re.compile(rf"^{re.escape(prefix)}[0-9a-f]{{32}}$")


class Record(BaseModel):
    """A single bookmark.

    ``id`` is derived from the canonical URL and normalized title and never
    changes for the life of the logical bookmark. Timestamps are epoch
    milliseconds.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    id: str
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    folder_path: str = Field(
        default="",
        validation_alias=AliasChoices("folderPath", "folder", "folder_path"),
        serialization_alias="folderPath",
    )
    tags: list[Tag] = Field(default_factory=list)
    notes: str = ""
    created_at: int = Field(
        ge=0,
        validation_alias=AliasChoices("createdAt", "dateAdded", "created_at"),
        serialization_alias="createdAt",
    )
    modified_at: int = Field(
        ge=0,
        validation_alias=AliasChoices("modifiedAt", "dateModified", "modified_at"),
        serialization_alias="modifiedAt",
    )
    archived: bool = False
    favorite: bool = False

    @field_validator("id")
    @classmethod
    def _validate_id(cls, value: str, info: ValidationInfo) -> str:
        prefix = (info.context or {}).get("id_prefix")
        if prefix is not None and not id_pattern(prefix).match(value):
            msg = f"id must match ^{prefix}[0-9a-f]{{32}}$"
            raise ValueError(msg)
        return value

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Document(BaseModel):
    """The full persisted state at the remote store."""

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    schema_version: Literal[1] = Field(
        validation_alias=AliasChoices("schemaVersion", "schema_version"),
        serialization_alias="schemaVersion",
    )
    generated_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("generatedAt", "generated_at"),
        serialization_alias="generatedAt",
    )
    records: list[Record] = Field(
        validation_alias=AliasChoices("bookmarks", "records"),
        serialization_alias="bookmarks",
    )
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("generated_at")
    @classmethod
    def _validate_generated_at(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            msg = "generatedAt must be an ISO-8601 date-time"
            raise ValueError(msg) from exc
        return value

    @model_validator(mode="after")
    def _ensure_unique_ids(self) -> Document:
        seen: set[str] = set()
        duplicates: list[str] = []
        for record in self.records:
            if record.id in seen:
                duplicates.append(record.id)
            seen.add(record.id)
        if duplicates:
            msg = f"duplicate record ids: {', '.join(sorted(set(duplicates)))}"
            raise ValueError(msg)
        return self

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Conflict(BaseModel):
    """Both sides changed the same record incompatibly since base."""

    id: str
    local: Record
    remote: Record | None = None
    base: Record | None = None
    kind: Literal["modified", "deleted-remote"] = "modified"


class MergeStats(BaseModel):
    """Counts relative to the base snapshot."""

    added: int = 0
    modified: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.added + self.modified + self.deleted
