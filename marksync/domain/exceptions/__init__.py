from marksync.domain.exceptions.domain_exceptions import (
    AdapterError,
    DomainException,
    InvalidStateTransitionError,
    ManualConflict,
    SchedulingUnavailableError,
    ValidationError,
    VersionConflictError,
    WriteRetryExhaustedError,
)

__all__ = [
    "AdapterError",
    "DomainException",
    "InvalidStateTransitionError",
    "ManualConflict",
    "SchedulingUnavailableError",
    "ValidationError",
    "VersionConflictError",
    "WriteRetryExhaustedError",
]
