from __future__ import annotations

import logging
import re
from urllib.parse import unquote_plus, urlsplit, urlunsplit

logger = logging.getLogger(__name__)


TRACKING_PARAMS = frozenset(
    {
        "gclid",
        "fbclid",
        "ref",
        "referrer",
        "source",
        "_ga",
        "_gl",
        "mc_cid",
        "mc_eid",
    }
)
TRACKING_PARAM_PREFIXES: tuple[str, ...] = ("utm_",)

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}
_WWW_PREFIX = re.compile(r"^(?:www\.)+")


def _is_tracking_param(piece: str) -> bool:
    key = unquote_plus(piece.split("=", 1)[0]).lower()
    if key in TRACKING_PARAMS:
        return True
    return any(key.startswith(prefix) for prefix in TRACKING_PARAM_PREFIXES)


def _fallback(url: str) -> str:
    return url.strip().lower()


def canonicalize_url(url: str, *, promote_https: bool = True) -> str:
    """Rewrite a URL so that equivalent addresses compare equal.

    - Lowercase scheme & host, strip leading ``www.``
    - Optionally promote ``http`` to ``https``; drop the scheme's default port
    - Remove tracking params (``utm_*``, ``gclid``, ``fbclid``, ...), keeping the
      order and encoding of everything else
    - Strip fragment
    - Collapse trailing slashes (root path stays ``/``)

    Never raises. Input without a scheme and host, or input that cannot be
    parsed, falls back to a trimmed, lowercased copy of the raw string.

    Args:
        url: URL to canonicalize
        promote_https: Rewrite ``http://`` to ``https://``

    Returns:
        Canonical URL string

    """
    if not isinstance(url, str):
        url = "" if url is None else str(url)

    try:
        parts = urlsplit(url.strip())
        scheme = parts.scheme.lower()
        hostname = parts.hostname
        if not scheme or not parts.netloc or not hostname:
            return _fallback(url)
        port = parts.port
    except ValueError as exc:
        logger.debug("canonicalize_url_unparseable", extra={"url": url[:100], "error": str(exc)})
        return _fallback(url)

    default_ports = {_DEFAULT_PORTS.get(scheme)}
    if promote_https and scheme == "http":
        scheme = "https"
    default_ports.add(_DEFAULT_PORTS.get(scheme))

    host = _WWW_PREFIX.sub("", hostname) or hostname
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port not in default_ports:
        host = f"{host}:{port}"

    userinfo, sep, _ = parts.netloc.rpartition("@")
    netloc = f"{userinfo}@{host}" if sep else host

    path = parts.path.rstrip("/") or "/"

    query = "&".join(
        piece for piece in parts.query.split("&") if piece and not _is_tracking_param(piece)
    )

    return urlunsplit((scheme, netloc, path, query, ""))


def normalize_title(title: str | None) -> str:
    """Trim a title and collapse runs of whitespace to a single space."""
    if not title:
        return ""
    return " ".join(title.split())
