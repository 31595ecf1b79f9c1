from __future__ import annotations

import re
from typing import Any

_ID_PREFIX_RE = re.compile(r"^[a-z][a-z0-9]*_$")
_REPO_PART_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _ensure_token(value: Any, *, name: str) -> str:
    if value in (None, ""):
        return ""
    token = str(value).strip()
    if len(token) > 500:
        msg = f"{name} token appears to be too long"
        raise ValueError(msg)
    if any(char in token for char in [" ", "\n", "\t"]):
        msg = f"{name} token contains invalid characters"
        raise ValueError(msg)
    return token


def _parse_bounded_int(value: Any, *, default: int, low: int, high: int, label: str) -> int:
    try:
        parsed = int(str(value if value not in (None, "") else default))
    except ValueError as exc:
        msg = f"{label} must be a valid integer"
        raise ValueError(msg) from exc
    if parsed < low or parsed > high:
        msg = f"{label} must be between {low} and {high}"
        raise ValueError(msg)
    return parsed


def _parse_bounded_float(
    value: Any, *, default: float, low: float, high: float, label: str
) -> float:
    try:
        parsed = float(str(value if value not in (None, "") else default))
    except ValueError as exc:
        msg = f"{label} must be a valid number"
        raise ValueError(msg) from exc
    if parsed < low or parsed > high:
        msg = f"{label} must be between {low} and {high}"
        raise ValueError(msg)
    return parsed


def validate_id_prefix(value: Any) -> str:
    prefix = str(value or "").strip()
    if not _ID_PREFIX_RE.match(prefix):
        msg = f"Invalid id prefix: {value!r}. Expected lowercase letters/digits ending with '_'"
        raise ValueError(msg)
    if len(prefix) > 16:
        msg = "Id prefix is too long (max 16 characters)"
        raise ValueError(msg)
    return prefix


def validate_repo_part(value: Any, *, name: str) -> str:
    if value in (None, ""):
        return ""
    part = str(value).strip()
    if not _REPO_PART_RE.match(part) or part in {".", ".."}:
        msg = f"{name} contains invalid characters"
        raise ValueError(msg)
    if len(part) > 100:
        msg = f"{name} is too long"
        raise ValueError(msg)
    return part


def validate_repo_path(value: Any, *, default: str, name: str) -> str:
    path = str(value or default).strip().strip("/")
    if not path:
        return default
    if ".." in path.split("/") or "\x00" in path or "\\" in path:
        msg = f"{name} contains invalid path segments"
        raise ValueError(msg)
    return path
