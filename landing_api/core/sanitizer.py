import hashlib
import re
from dataclasses import dataclass
from typing import Optional

from landing_api.core.result import Err, Ok, Result

# Hard cap checked before any regex runs on untrusted text
MAX_INPUT_LENGTH = 10_000

_TAG_RE = re.compile(r"<[^>]*>")
_SCHEME_RE = re.compile(r"(?:javascript|vbscript)\s*:", re.IGNORECASE)
# data: only as a URI with a media type, so prose like "metadata:" survives
_DATA_URI_RE = re.compile(r"\bdata:[\w/+.-]+[;,]", re.IGNORECASE)
# on<event>= only with a quoted value or a call
_EVENT_HANDLER_RE = re.compile(r"\bon[a-z]+\s*=\s*(?=[\"'`]|[\w.$]+\s*\()", re.IGNORECASE)
_ANGLE_RE = re.compile(r"[<>]")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class SanitizationFailure:
    """Why a value could not be sanitized. Never carries the raw input."""

    reason: str
    length: int


def _sanitize_pass(text: str) -> str:
    text = _TAG_RE.sub("", text)
    text = _SCHEME_RE.sub("", text)
    text = _DATA_URI_RE.sub("", text)
    text = _EVENT_HANDLER_RE.sub("", text)
    text = _ANGLE_RE.sub("", text)
    text = _CONTROL_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def sanitize_input(value: Optional[str]) -> Result[str, SanitizationFailure]:
    """Strip markup and script vectors from a free-text form field.

    Passes are repeated until the text stops changing, so removing one
    pattern cannot leave a freshly assembled one behind
    (``javajavascript:script:``). A pass either removes characters or only
    normalizes whitespace, so the loop always reaches a fixed point.
    """
    if not value:
        return Ok("")

    if len(value) > MAX_INPUT_LENGTH:
        return Err(SanitizationFailure(reason="Input too large", length=len(value)))

    current = value
    while True:
        cleaned = _sanitize_pass(current)
        if cleaned == current:
            return Ok(cleaned)
        current = cleaned


def hash_identifier(value: str) -> str:
    """Short, stable digest for logging client identifiers without storing them."""
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"sha256:{digest}"


def redact_pii(message: str) -> str:
    """Redact personally identifiable information from log messages.

    Masks emails, phone and card numbers, IPs, JWT tokens, API keys and
    passwords before anything reaches a log handler.
    """
    if not isinstance(message, str):
        return str(message)

    # Emails: user@example.com -> u***@example.com
    message = re.sub(
        r"[\w.+-]+@[\w.-]+\.\w+",
        lambda m: m.group()[0] + "***@" + m.group().split("@")[1],
        message,
    )

    # JWT tokens: eyJ... -> [JWT_REDACTED]
    message = re.sub(
        r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
        "[JWT_REDACTED]",
        message,
    )

    # API Keys: long hex strings (32+ chars)
    message = re.sub(r"\b[a-fA-F0-9]{32,}\b", "[API_KEY_REDACTED]", message)

    # Card numbers before phones, both are digit runs
    message = re.sub(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b", "[CC_REDACTED]", message)

    # IPs (IPv4): 192.168.1.100 -> 192.168.1.***
    message = re.sub(
        r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b", r"\1***", message
    )

    # Phones: +1 (555) 123-4567, 555-123-4567, +441234567890
    message = re.sub(
        r"(?<![\w.])\+?\d[\d\s().-]{8,}\d\b",
        "[PHONE_REDACTED]",
        message,
    )

    # Password values in common patterns
    message = re.sub(
        r'(password|passwd|pwd|secret)["\']?\s*[:=]\s*["\']?[^"\'&\s]+',
        r"\1=[REDACTED]",
        message,
        flags=re.IGNORECASE,
    )

    return message
