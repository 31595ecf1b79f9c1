from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from marksync.domain.models.sync_state import SyncDirection
from marksync.domain.services.merge import ConflictStrategy

from ._validators import _parse_bounded_float, _parse_bounded_int


class SyncConfig(BaseModel):
    """Sync cycle configuration (direction, conflict policy, write retry budget)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    direction: SyncDirection = Field(
        default=SyncDirection.BIDIRECTIONAL, validation_alias="SYNC_DIRECTION"
    )
    strategy: ConflictStrategy = Field(
        default=ConflictStrategy.LATEST_WINS, validation_alias="SYNC_STRATEGY"
    )
    max_write_attempts: int = Field(default=3, validation_alias="SYNC_MAX_WRITE_ATTEMPTS")
    retry_base_delay_sec: float = Field(default=0.25, validation_alias="SYNC_RETRY_BASE_DELAY_SEC")
    retry_max_delay_sec: float = Field(default=5.0, validation_alias="SYNC_RETRY_MAX_DELAY_SEC")
    retry_backoff_factor: float = Field(default=3.0, validation_alias="SYNC_RETRY_BACKOFF_FACTOR")
    retry_jitter: float = Field(default=0.25, validation_alias="SYNC_RETRY_JITTER")
    interval_minutes: int = Field(default=15, validation_alias="SYNC_INTERVAL_MINUTES")
    auto_enabled: bool = Field(default=False, validation_alias="SYNC_AUTO_ENABLED")

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: Any) -> SyncDirection:
        if value in (None, ""):
            return SyncDirection.BIDIRECTIONAL
        return SyncDirection.parse(value)

    @field_validator("strategy", mode="before")
    @classmethod
    def _parse_strategy(cls, value: Any) -> ConflictStrategy:
        if value in (None, ""):
            return ConflictStrategy.LATEST_WINS
        return ConflictStrategy.parse(value)

    @field_validator("max_write_attempts", mode="before")
    @classmethod
    def _validate_attempts(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=3, low=1, high=10, label="Sync max write attempts"
        )

    @field_validator("interval_minutes", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=15, low=1, high=1440, label="Sync interval (minutes)"
        )

    @field_validator(
        "retry_base_delay_sec",
        "retry_max_delay_sec",
        "retry_backoff_factor",
        "retry_jitter",
        mode="before",
    )
    @classmethod
    def _validate_retry_floats(cls, value: Any, info: ValidationInfo) -> float:
        bounds = {
            "retry_base_delay_sec": (0.0, 60.0),
            "retry_max_delay_sec": (0.0, 300.0),
            "retry_backoff_factor": (1.0, 10.0),
            "retry_jitter": (0.0, 1.0),
        }
        low, high = bounds[info.field_name]
        default = cls.model_fields[info.field_name].default
        label = info.field_name.replace("_", " ").capitalize()
        return _parse_bounded_float(value, default=default, low=low, high=high, label=label)

    @model_validator(mode="after")
    def _validate_delay_range(self) -> SyncConfig:
        if self.retry_base_delay_sec > self.retry_max_delay_sec:
            raise ValueError("sync retry base delay cannot exceed max delay")
        return self

    @property
    def interval_seconds(self) -> int:
        return self.interval_minutes * 60
