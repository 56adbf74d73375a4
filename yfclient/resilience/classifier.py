"""Failure classification for retry and proxy-health decisions.

The session layer raises a closed set of transport errors (see
``yfclient.errors``), so classification is primarily a match on those types.
Foreign exceptions are still accepted and fall back to message inspection.

Categories:
- rate limited: HTTP 429 or a "too many requests" signal
- transient: rate limited, 5xx/408, connection-level codes, transient phrases
- invalid token: the crumb was rejected (handled by refreshing, not blind retry)
- proxy error: the failure is attributable to the upstream proxy
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from yfclient.errors import FinanceError, HttpError, NetworkError, provider_error

RATE_LIMIT_CODE = "ERR_TOO_MANY_REQUESTS"

TRANSIENT_CODES = frozenset({
    "ECONNRESET",
    "ECONNREFUSED",
    "ETIMEDOUT",
    "ENOTFOUND",
    "ENETUNREACH",
    "EAI_AGAIN",
    "EPIPE",
    "ERR_NETWORK",
    "EPROXY",
})

PROXY_CODES = frozenset({
    "ECONNREFUSED",
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
    "EPROXY",
})

_RATE_LIMIT_PHRASES = ("429", "too many requests", "rate limit")
_TRANSIENT_PHRASES = ("network error", "timeout", "socket hang up", "econnreset", "econnrefused")
_INVALID_TOKEN_PHRASES = ("invalid crumb", "unauthorized")
_PROXY_PHRASES = ("proxy", "tunnel", "socket hang up")


def _message(error: object) -> str:
    if isinstance(error, FinanceError):
        return error.message.lower()
    if isinstance(error, BaseException):
        return str(error).lower()
    return ""


def is_rate_limited(error: object) -> bool:
    """True if *error* signals upstream throttling."""
    if error is None:
        return False
    if isinstance(error, HttpError) and error.status == 429:
        return True
    if isinstance(error, NetworkError) and error.code == RATE_LIMIT_CODE:
        return True
    message = _message(error)
    return any(phrase in message for phrase in _RATE_LIMIT_PHRASES)


def is_transient(error: object) -> bool:
    """True if *error* is worth retrying unchanged."""
    if error is None:
        return False
    if is_rate_limited(error):
        return True
    if isinstance(error, HttpError):
        if 500 <= error.status < 600 or error.status == 408:
            return True
    if isinstance(error, NetworkError) and error.code in TRANSIENT_CODES:
        return True
    message = _message(error)
    return any(phrase in message for phrase in _TRANSIENT_PHRASES)


def is_invalid_token(error: object) -> bool:
    """True if the upstream rejected the crumb."""
    if error is None:
        return False
    message = _message(error)
    if any(phrase in message for phrase in _INVALID_TOKEN_PHRASES):
        return True

    if isinstance(error, HttpError):
        envelope = provider_error(error.body)
        if envelope is not None:
            if envelope.get("code") == "Unauthorized":
                return True
            if "crumb" in str(envelope.get("description", "")).lower():
                return True
    return False


def is_retryable(error: object) -> bool:
    """Default retry predicate: rate limited or transient."""
    return is_rate_limited(error) or is_transient(error)


def is_proxy_error(error: object) -> bool:
    """True if the failure should count against the proxy that carried it."""
    if error is None:
        return False
    if isinstance(error, NetworkError) and error.code in PROXY_CODES:
        return True
    if isinstance(error, HttpError) and error.status == 407:
        return True
    message = _message(error)
    return any(phrase in message for phrase in _PROXY_PHRASES)


# ---------------------------------------------------------------------------
# Retry-After
# ---------------------------------------------------------------------------


def _header(headers: Mapping[str, Any], name: str) -> Any:
    wanted = name.lower()
    for key, value in headers.items():
        if str(key).lower() == wanted:
            return value
    return None


def retry_after_ms(headers: Mapping[str, Any] | None, *, now: datetime | None = None) -> int | None:
    """Convert a ``Retry-After`` header into a delay in milliseconds.

    Accepts delta-seconds or an HTTP-date. List-valued headers use their first
    element. Returns None when the header is absent or malformed; a date in
    the past yields 0.
    """
    if not headers:
        return None

    value = _header(headers, "retry-after")
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return int(text) * 1000

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max(0, round((when - now).total_seconds() * 1000))


def get_retry_after_ms(error: object) -> int | None:
    """Retry-After hint carried by an HttpError, else None."""
    if isinstance(error, HttpError):
        return retry_after_ms(error.headers)
    return None
