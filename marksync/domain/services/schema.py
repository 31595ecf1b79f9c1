"""Validation of the remote document wire shape.

Documents failing validation are rejected before any merge runs (fail
closed); they are never coerced into shape.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from marksync import __version__
from marksync.core.time_utils import now_ms, utc_now_iso
from marksync.domain.exceptions import ValidationError
from marksync.domain.models.record import SCHEMA_VERSION, Document, Record

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

GENERATOR_NAME = "marksync"


def _format_errors(exc: PydanticValidationError) -> list[str]:
    errors: list[str] = []
    for error in exc.errors():
        path = "/".join(str(part) for part in error.get("loc", ())) or "root"
        errors.append(f"{path}: {error.get('msg', 'invalid value')}")
    return errors


def parse_document(payload: Any, *, id_prefix: str) -> Document:
    """Validate an untyped payload into a ``Document``.

    Args:
        payload: Decoded JSON (expected to be an object)
        id_prefix: Record id prefix every ``id`` must carry

    Raises:
        ValidationError: If the payload does not match the document schema
    """
    if not isinstance(payload, dict):
        raise ValidationError(
            "Schema validation failed: document must be a JSON object",
            errors=[f"root: expected object, got {type(payload).__name__}"],
        )
    try:
        return Document.model_validate(payload, context={"id_prefix": id_prefix})
    except PydanticValidationError as exc:
        errors = _format_errors(exc)
        logger.warning(
            "document_validation_failed",
            extra={"error_count": len(errors), "errors": errors[:10]},
        )
        raise ValidationError(
            "Schema validation failed:\n" + "\n".join(errors), errors=errors
        ) from exc


def validate_document(document: Document, *, id_prefix: str) -> Document:
    """Re-validate an outgoing document against the wire schema."""
    return parse_document(document.to_wire(), id_prefix=id_prefix)


def build_document(
    records: Iterable[Record],
    *,
    meta: Mapping[str, Any] | None = None,
) -> Document:
    """Assemble the full document written on every sync."""
    merged_meta: dict[str, Any] = dict(meta or {})
    merged_meta.update(
        {
            "generator": GENERATOR_NAME,
            "generatorVersion": __version__,
            "lastSync": now_ms(),
        }
    )
    return Document(
        schema_version=SCHEMA_VERSION,
        generated_at=utc_now_iso(),
        records=list(records),
        meta=merged_meta,
    )


def empty_document() -> Document:
    return build_document([], meta={"lastSync": 0})
