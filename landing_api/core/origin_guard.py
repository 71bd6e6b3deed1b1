"""CSRF-style origin check for state-changing requests.

Browsers attach ``Origin`` to cross-site POSTs, and ``Referer`` when they
omit it. A request is legitimate only if one of them points at an
allow-listed origin; nothing is read from the body before this passes.
"""
from typing import Iterable, Optional
from urllib.parse import urlsplit

from landing_api.core.errors import SecurityError
from landing_api.core.result import Err, Ok, Result

MISSING_HEADERS = "Origin or Referer header required"
INVALID_ORIGIN = "Invalid origin"
INVALID_REFERER = "Invalid referer"


def origin_from_url(url: str) -> Optional[str]:
    """Return ``scheme://host[:port]`` for an absolute URL, or ``None``.

    Userinfo is dropped and the host lower-cased, so
    ``https://allowed.com@evil.com/`` resolves to ``https://evil.com``.
    """
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if parts.scheme not in ("http", "https") or not hostname:
        return None

    origin = f"{parts.scheme}://{hostname}"
    if port is not None:
        origin = f"{origin}:{port}"
    return origin


def is_allowed_origin(origin: Optional[str], allowed_origins: Iterable[str]) -> bool:
    # Exact match only: no prefix, suffix or substring comparisons
    if not origin:
        return False
    return origin in set(allowed_origins)


def is_allowed_referer(referer: Optional[str], allowed_origins: Iterable[str]) -> bool:
    if not referer:
        return False
    referer_origin = origin_from_url(referer)
    if referer_origin is None:
        return False
    allowed = {origin_from_url(o) for o in allowed_origins}
    allowed.discard(None)
    return referer_origin in allowed


def validate_request_origin(
    origin: Optional[str],
    referer: Optional[str],
    allowed_origins: Iterable[str],
) -> Result[str, SecurityError]:
    """Decide whether a request comes from an allowed site.

    Returns ``Ok`` with the origin that matched, or ``Err(SecurityError)``
    with one of the fixed reasons above.
    """
    allowed_origins = list(allowed_origins)

    if not origin and not referer:
        return Err(SecurityError(MISSING_HEADERS))

    if origin:
        if is_allowed_origin(origin, allowed_origins):
            return Ok(origin)
        if is_allowed_referer(referer, allowed_origins):
            return Ok(origin_from_url(referer))
        return Err(SecurityError(INVALID_ORIGIN))

    if is_allowed_referer(referer, allowed_origins):
        return Ok(origin_from_url(referer))
    return Err(SecurityError(INVALID_REFERER))
