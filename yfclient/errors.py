"""Error hierarchy for the finance client.

All library errors extend FinanceError. The session layer never lets raw
httpx exceptions escape: every failed attempt surfaces as one of the
TransportError variants below, which the resilience classifier matches on.

- NetworkError: connection-level failure, identified by a short ``code``
- HttpError: the server answered with a status >= 400
- ParseError: the body claimed to be JSON but did not decode
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class FinanceError(Exception):
    """Base error for all finance-client errors."""

    message: str = "Finance client error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class TransportError(FinanceError):
    """A single request attempt failed."""

    message = "Request failed"


class NetworkError(TransportError):
    """Connection-level failure (reset, refused, timeout, DNS, proxy)."""

    message = "Network error"

    def __init__(self, code: str, message: str | None = None, **kwargs: object) -> None:
        self.code = code
        super().__init__(message or f"Network error ({code})", **kwargs)


class HttpError(TransportError):
    """Upstream returned an error status."""

    message = "HTTP error"

    def __init__(
        self,
        status: int,
        headers: Mapping[str, Any] | None = None,
        body: Any = None,
        message: str | None = None,
        **kwargs: object,
    ) -> None:
        self.status = status
        self.headers = headers if headers is not None else {}
        self.body = body
        super().__init__(message or _status_message(status, body), **kwargs)


class ParseError(TransportError):
    """Response body could not be decoded."""

    message = "Failed to parse response body"

    def __init__(self, body: str = "", message: str | None = None, **kwargs: object) -> None:
        self.body = body
        super().__init__(message, **kwargs)


# ---------------------------------------------------------------------------
# Request construction errors
# ---------------------------------------------------------------------------


class UnknownEndpointError(FinanceError):
    """No endpoint with the requested key in the catalog."""

    message = "Unknown endpoint key"


class InvalidModulesError(FinanceError):
    """One or more quote-summary modules are not recognised."""

    message = "Invalid modules"


def provider_error(body: Any) -> dict | None:
    """Return the ``finance.error`` envelope from a decoded body, if present."""
    if not isinstance(body, dict):
        return None
    finance = body.get("finance")
    if not isinstance(finance, dict):
        return None
    error = finance.get("error")
    return error if isinstance(error, dict) else None


def _status_message(status: int, body: Any) -> str:
    text = f"Request failed with status code {status}"
    envelope = provider_error(body)
    if envelope and envelope.get("description"):
        text = f"{text}: {envelope['description']}"
    return text
