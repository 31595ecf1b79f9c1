from marksync.domain.services.fingerprint import differs, fingerprint, index_fingerprints
from marksync.domain.services.identity import (
    DEFAULT_ID_PREFIX,
    IdentityResolver,
    generate_record_id,
)
from marksync.domain.services.merge import (
    ConflictStrategy,
    MergeResult,
    Resolution,
    compute_merge_stats,
    merge_records,
    resolve_conflict,
)
from marksync.domain.services.schema import build_document, parse_document, validate_document

__all__ = [
    "DEFAULT_ID_PREFIX",
    "ConflictStrategy",
    "IdentityResolver",
    "MergeResult",
    "Resolution",
    "build_document",
    "compute_merge_stats",
    "differs",
    "fingerprint",
    "generate_record_id",
    "index_fingerprints",
    "merge_records",
    "parse_document",
    "resolve_conflict",
    "validate_document",
]
