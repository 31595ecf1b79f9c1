from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from ._validators import validate_id_prefix


class IdentityConfig(BaseModel):
    """Record identity rules shared by every device of an installation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id_prefix: str = Field(default="bm_", validation_alias="MARKSYNC_ID_PREFIX")
    promote_https: bool = Field(default=True, validation_alias="MARKSYNC_PROMOTE_HTTPS")
    hmac_enabled: bool = Field(default=False, validation_alias="MARKSYNC_HMAC_IDS")
    hmac_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="MARKSYNC_HMAC_SECRET",
        description="Per-installation key; identical on every device that shares a remote",
    )

    @field_validator("id_prefix", mode="before")
    @classmethod
    def _validate_prefix(cls, value: Any) -> str:
        return validate_id_prefix(value if value not in (None, "") else "bm_")

    @model_validator(mode="after")
    def _ensure_secret_when_enabled(self) -> IdentityConfig:
        if self.hmac_enabled and len(self.hmac_secret.get_secret_value().strip()) < 16:
            msg = "MARKSYNC_HMAC_SECRET must be at least 16 characters when MARKSYNC_HMAC_IDS is on"
            raise ValueError(msg)
        return self
