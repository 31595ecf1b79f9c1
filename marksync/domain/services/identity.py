"""Deterministic record identity.

A record id is a pure function of the canonical URL and the normalized title:
``prefix + first 32 hex chars of SHA-256(canonical_url + "\\n" + title)``.
With a per-installation secret configured, HMAC-SHA-256 replaces the bare
hash so ids cannot be reversed into URLs by dictionary lookups.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from typing import TYPE_CHECKING, Any

from marksync.core.time_utils import now_ms
from marksync.core.url_utils import canonicalize_url, normalize_title
from marksync.domain.models.record import Record, id_pattern

if TYPE_CHECKING:
    from marksync.config import IdentityConfig

logger = logging.getLogger(__name__)

DEFAULT_ID_PREFIX = "bm_"
ID_HEX_LENGTH = 32


def _identity_key(url: str, title: str, *, promote_https: bool) -> bytes:
    canonical = canonicalize_url(url, promote_https=promote_https)
    return f"{canonical}\n{normalize_title(title)}".encode()


def generate_record_id(
    url: str,
    title: str,
    *,
    prefix: str = DEFAULT_ID_PREFIX,
    promote_https: bool = True,
    secret: bytes | None = None,
) -> str:
    """Derive the stable id of a bookmark.

    Args:
        url: Raw bookmark URL (canonicalized here)
        title: Raw bookmark title (normalized here)
        prefix: Id prefix
        promote_https: Canonicalize ``http`` as ``https``
        secret: Optional HMAC key; when set the digest is HMAC-SHA-256

    Returns:
        ``prefix`` followed by 32 lowercase hex characters
    """
    key = _identity_key(url, title, promote_https=promote_https)
    if secret:
        digest = hmac.new(secret, key, hashlib.sha256).hexdigest()
    else:
        digest = hashlib.sha256(key).hexdigest()
    return f"{prefix}{digest[:ID_HEX_LENGTH]}"


class IdentityResolver:
    """Identity rules of one installation (prefix, https promotion, optional HMAC key)."""

    def __init__(
        self,
        prefix: str = DEFAULT_ID_PREFIX,
        *,
        promote_https: bool = True,
        secret: bytes | str | None = None,
    ) -> None:
        self.prefix = prefix
        self.promote_https = promote_https
        self._secret = secret.encode() if isinstance(secret, str) else secret
        self._pattern = id_pattern(prefix)

    @classmethod
    def from_config(cls, config: IdentityConfig) -> IdentityResolver:
        secret = config.hmac_secret.get_secret_value() if config.hmac_enabled else None
        return cls(config.id_prefix, promote_https=config.promote_https, secret=secret)

    @property
    def uses_hmac(self) -> bool:
        return bool(self._secret)

    @property
    def id_pattern(self) -> re.Pattern[str]:
        return self._pattern

    def canonicalize(self, url: str) -> str:
        return canonicalize_url(url, promote_https=self.promote_https)

    @staticmethod
    def normalize_title(title: str) -> str:
        return normalize_title(title)

    def record_id(self, url: str, title: str) -> str:
        return generate_record_id(
            url,
            title,
            prefix=self.prefix,
            promote_https=self.promote_https,
            secret=self._secret,
        )

    def is_valid_id(self, value: str) -> bool:
        return bool(self._pattern.match(value))

    def new_record(self, url: str, title: str, **fields: Any) -> Record:
        """Build a record whose id is derived from ``url`` and ``title``.

        ``created_at`` and ``modified_at`` default to now.
        """
        timestamp = now_ms()
        fields.setdefault("created_at", timestamp)
        fields.setdefault("modified_at", fields["created_at"])
        return Record(id=self.record_id(url, title), url=url, title=title, **fields)
