"""Domain-specific exceptions.

These exceptions represent sync rule violations and adapter failures.
The orchestrator catches them at the cycle boundary and reports them in the
structured ``SyncResult``; nothing is swallowed silently.
"""

from __future__ import annotations

from typing import Any


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainException):
    """Raised when a document or record fails schema validation.

    Fatal for the cycle: nothing is written.
    """

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.errors = list(errors or [])


class VersionConflictError(DomainException):
    """Raised by a remote store when the expected version token is stale."""

    def __init__(
        self,
        message: str = "Remote document changed since it was read",
        *,
        expected_token: str | None = None,
        current_token: str | None = None,
    ) -> None:
        super().__init__(
            message,
            {"expected_token": expected_token, "current_token": current_token},
        )
        self.expected_token = expected_token
        self.current_token = current_token


class WriteRetryExhaustedError(DomainException):
    """Raised when every write attempt of a cycle was rejected with a version conflict."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Remote write rejected after {attempts} attempts due to version conflicts",
            {"attempts": attempts},
        )
        self.attempts = attempts


class AdapterError(DomainException):
    """Raised when a store adapter fails with an I/O error.

    The core does not retry these; adapters own their transient retries.
    """

    def __init__(
        self,
        message: str,
        *,
        adapter: str,
        operation: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, {"adapter": adapter, "operation": operation, **(details or {})})
        self.adapter = adapter
        self.operation = operation


class ManualConflict(DomainException):
    """Signals unresolved conflicts under the ``manual`` strategy.

    Not an error: the cycle stops in the recoverable ``conflict`` state and the
    conflicts are returned to the caller for an external resolution.
    """

    def __init__(self, conflicts: list[Any]) -> None:
        super().__init__(
            f"{len(conflicts)} conflict(s) require manual resolution",
            {"conflict_ids": [getattr(c, "id", None) for c in conflicts]},
        )
        self.conflicts = list(conflicts)


class InvalidStateTransitionError(DomainException):
    """Raised when an invalid state transition is attempted."""

    pass


class SchedulingUnavailableError(DomainException):
    """Raised when periodic sync is requested but no scheduler is wired in."""

    pass
