"""Human-readable markdown projection of a bookmark document."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marksync.domain.models.record import Document, Record

UNCATEGORIZED = "Uncategorized"
UNTAGGED = "Untagged"


def _generated_date(value: str | None) -> str:
    if not value:
        return "Unknown"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return "Unknown"


def _escape_label(text: str) -> str:
    return text.replace("[", "\\[").replace("]", "\\]")


def _sort_key(record: Record) -> tuple[str, str]:
    return (record.title.casefold(), record.id)


def _render_record(record: Record) -> str:
    favorite = " ⭐" if record.favorite else ""
    tags = " " + " ".join(f"`{tag}`" for tag in sorted(record.tags)) if record.tags else ""
    line = f"- [{_escape_label(record.title)}]({record.url}){favorite}{tags}"
    if record.notes:
        notes = " ".join(record.notes.split())
        line += f"\n  > {notes}"
    return line


def _group(
    records: Iterable[Record], group_by: Literal["folder", "tag"]
) -> dict[str, list[Record]]:
    groups: dict[str, list[Record]] = {}
    for record in records:
        if group_by == "tag":
            keys = sorted(set(record.tags)) or [UNTAGGED]
        else:
            keys = [record.folder_path or UNCATEGORIZED]
        for key in keys:
            groups.setdefault(key, []).append(record)
    return groups


def render_markdown(
    document: Document,
    *,
    group_by: Literal["folder", "tag"] = "folder",
    title: str = "My Bookmarks",
    data_file: str = "data.json",
) -> str:
    """Render ``document`` as a README-style markdown page.

    Archived records go into a collapsed section at the end; everything else
    is grouped by folder (or by tag) and sorted by title.
    """
    records = list(document.records)
    parts = [
        f"# {title}\n",
        f"*Generated by marksync on {_generated_date(document.generated_at)}*\n",
        f"Total bookmarks: {len(records)}\n",
    ]

    if not records:
        parts.append("No bookmarks yet. Start adding some to see them here!\n")
        return "\n".join(parts)

    active = [record for record in records if not record.archived]
    groups = _group(active, group_by)
    for name in sorted(groups, key=str.casefold):
        lines = [_render_record(record) for record in sorted(groups[name], key=_sort_key)]
        parts.append(f"## {name}\n\n" + "\n".join(lines) + "\n")

    archived = sorted((record for record in records if record.archived), key=_sort_key)
    if archived:
        lines = [f"- [{_escape_label(r.title)}]({r.url})" for r in archived]
        parts.append(
            f"## Archived ({len(archived)})\n\n"
            "<details>\n<summary>Show archived bookmarks</summary>\n\n"
            + "\n".join(lines)
            + "\n\n</details>\n"
        )

    parts.append("---\n")
    parts.append(
        f"*This file is automatically generated from [{data_file}](./{data_file}). "
        "Do not edit directly.*\n"
    )
    return "\n".join(parts)
