"""Premium authentication collaborator interface.

Logging in to a premium account happens outside this library (typically a
headless browser). The session only needs something that, given a username
and password, returns either a cookie set or a failure reason. Cookies are
injected into the session's jar verbatim.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class AuthCookie(BaseModel):
    """A cookie captured from a successful login."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float | None = None
    http_only: bool | None = Field(default=None, alias="httpOnly")
    secure: bool | None = None


class AuthResult(BaseModel):
    """Outcome of a login attempt."""

    success: bool
    cookies: list[AuthCookie] = Field(default_factory=list)
    error: str | None = None


@runtime_checkable
class Authenticator(Protocol):
    """Anything that can trade credentials for session cookies."""

    async def login(self, username: str, password: str) -> AuthResult: ...
