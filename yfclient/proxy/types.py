"""Proxy data models for the proxy pool."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

PROXY_PROTOCOLS = ("http", "https", "socks5")


@dataclass(frozen=True)
class ProxyDescriptor:
    """A single upstream proxy, immutable once parsed."""

    protocol: str  # http, https, socks5
    host: str
    port: int
    username: str | None = None
    password: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        """Identity used by the pool's health bookkeeping."""
        return (self.host, self.port)

    @property
    def url(self) -> str:
        """Proxy URL with percent-encoded credentials, suitable for httpx."""
        auth = ""
        if self.username:
            auth = f"{quote(self.username, safe='')}:{quote(self.password or '', safe='')}@"
        return f"{self.protocol}://{auth}{self.host}:{self.port}"

    @property
    def label(self) -> str:
        """Credential-free form for logs and stats."""
        return f"{self.protocol}://{self.host}:{self.port}"


@dataclass
class ProxyHealth:
    """Per-proxy counters tracking consecutive failures and successes."""

    descriptor: ProxyDescriptor
    failures: int = 0
    last_failure_ms: float | None = None
    success_count: int = 0
