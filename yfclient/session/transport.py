"""Translation between httpx and the client's transport error types.

Every failed attempt leaves the session as a NetworkError, HttpError or
ParseError so that classification never has to inspect httpx internals.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from yfclient.errors import HttpError, NetworkError, ParseError

_DNS_PHRASES = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "no address associated",
)


def translate_error(exc: httpx.RequestError) -> NetworkError:
    """Map an httpx request exception onto a NetworkError code."""
    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if isinstance(exc, httpx.ProxyError):
        code = "EPROXY"
    elif isinstance(exc, httpx.TimeoutException):
        code = "ETIMEDOUT"
    elif isinstance(exc, httpx.ConnectError):
        if "temporary failure in name resolution" in lowered:
            code = "EAI_AGAIN"
        elif any(phrase in lowered for phrase in _DNS_PHRASES):
            code = "ENOTFOUND"
        elif "unreachable" in lowered:
            code = "ENETUNREACH"
        elif "reset" in lowered:
            code = "ECONNRESET"
        else:
            code = "ECONNREFUSED"
    elif isinstance(exc, httpx.WriteError):
        code = "EPIPE"
    elif isinstance(exc, (httpx.ReadError, httpx.RemoteProtocolError)):
        code = "ECONNRESET"
    else:
        code = "ERR_NETWORK"

    return NetworkError(code, f"{message} ({code})")


def _is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "json" in content_type.lower()


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body: JSON when declared, text otherwise.

    Raises ParseError if the body is declared JSON but does not decode.
    """
    if _is_json(response):
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ParseError(response.text[:200], f"Invalid JSON body: {exc}") from exc
    return response.text


def http_error_from_response(response: httpx.Response) -> HttpError:
    """Build an HttpError carrying status, headers and (best-effort) decoded body."""
    try:
        body = decode_body(response)
    except ParseError:
        body = response.text
    return HttpError(response.status_code, headers=response.headers, body=body)
