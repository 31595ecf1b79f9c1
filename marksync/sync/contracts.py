"""Typed request/response contract for driving the orchestrator.

Callers (a CLI, a UI process, a message bus consumer) send a request keyed
by ``method`` and receive a ``SyncResponse`` envelope.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from marksync.domain.exceptions import DomainException, SchedulingUnavailableError, ValidationError
from marksync.domain.models.sync_state import SyncDirection
from marksync.domain.services.merge import ConflictStrategy
from marksync.sync.results import SyncResult, SyncStatus

if TYPE_CHECKING:
    from marksync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Structured error codes for programmatic handling."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    SYNC_FAILED = "SYNC_FAILED"
    SCHEDULE_UNAVAILABLE = "SCHEDULE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class _Request(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TriggerSyncRequest(_Request):
    method: Literal["sync.trigger"] = "sync.trigger"
    direction: SyncDirection | None = None
    strategy: ConflictStrategy | None = None


class SyncStatusRequest(_Request):
    method: Literal["sync.status"] = "sync.status"


class ResolveConflictsRequest(_Request):
    method: Literal["sync.resolve_conflicts"] = "sync.resolve_conflicts"
    strategy: ConflictStrategy


class UpdateScheduleRequest(_Request):
    method: Literal["sync.update_schedule"] = "sync.update_schedule"
    enabled: bool
    interval_minutes: int | None = Field(default=None, ge=1, le=1440)


SyncRequest = Annotated[
    TriggerSyncRequest | SyncStatusRequest | ResolveConflictsRequest | UpdateScheduleRequest,
    Field(discriminator="method"),
]

_REQUEST_ADAPTER: TypeAdapter[Any] = TypeAdapter(SyncRequest)


class ErrorDetail(BaseModel):
    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] | None = None


class SyncResponse(BaseModel):
    """Response envelope: ``ok`` with a typed ``result`` or an ``error``."""

    ok: bool
    method: str
    result: SyncResult | SyncStatus | None = None
    error: ErrorDetail | None = None


def parse_request(payload: Any) -> SyncRequest:
    """Validate an untyped request payload.

    Raises:
        ValidationError: If the payload is not one of the known requests
    """
    try:
        return _REQUEST_ADAPTER.validate_python(payload)
    except PydanticValidationError as exc:
        errors = [
            f"{'/'.join(str(p) for p in err.get('loc', ())) or 'root'}: {err.get('msg')}"
            for err in exc.errors()
        ]
        raise ValidationError("Invalid sync request", errors=errors) from exc


class SyncRequestHandler:
    """Dispatches contract requests to a ``SyncOrchestrator``."""

    def __init__(self, orchestrator: SyncOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def handle(self, request: SyncRequest | dict[str, Any]) -> SyncResponse:
        method = request.get("method", "unknown") if isinstance(request, dict) else request.method
        try:
            parsed = parse_request(request) if isinstance(request, dict) else request
            return await self._dispatch(parsed)
        except ValidationError as exc:
            return self._error(
                str(method),
                ErrorCode.VALIDATION_FAILED,
                exc.message,
                details={"errors": exc.errors},
            )
        except ValueError as exc:
            return self._error(str(method), ErrorCode.INVALID_ARGUMENT, str(exc))
        except SchedulingUnavailableError as exc:
            return self._error(
                str(method), ErrorCode.SCHEDULE_UNAVAILABLE, exc.message, details=exc.details
            )
        except DomainException as exc:
            logger.warning(
                "sync_request_failed",
                extra={"method": method, "error_type": type(exc).__name__},
            )
            return self._error(str(method), ErrorCode.SYNC_FAILED, exc.message, details=exc.details)

    async def _dispatch(self, request: SyncRequest) -> SyncResponse:
        orchestrator = self._orchestrator
        if isinstance(request, TriggerSyncRequest):
            result = await orchestrator.trigger(request.direction, request.strategy)
            return SyncResponse(ok=result.success, method=request.method, result=result)
        if isinstance(request, ResolveConflictsRequest):
            result = await orchestrator.resolve_conflicts(request.strategy)
            return SyncResponse(ok=result.success, method=request.method, result=result)
        if isinstance(request, UpdateScheduleRequest):
            if request.enabled:
                interval = request.interval_minutes * 60 if request.interval_minutes else None
                orchestrator.start_schedule(interval)
            else:
                orchestrator.stop_schedule()
            return SyncResponse(ok=True, method=request.method, result=orchestrator.status())
        return SyncResponse(ok=True, method=request.method, result=orchestrator.status())

    @staticmethod
    def _error(
        method: str,
        code: ErrorCode,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> SyncResponse:
        return SyncResponse(
            ok=False,
            method=method,
            error=ErrorDetail(code=code, message=message, details=details),
        )
