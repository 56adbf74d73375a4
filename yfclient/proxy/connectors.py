"""Outbound connectors: how a request leaves the process.

Each connector knows how to build an httpx transport for one route: direct,
through an HTTP(S) proxy, or through a SOCKS5 proxy. The session keeps one
client per connector key so that connections are reused per route.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from yfclient.proxy.types import ProxyDescriptor


class OutboundConnector(ABC):
    """Builds the transport for one outbound route."""

    @property
    @abstractmethod
    def key(self) -> str:
        """Stable identifier used to cache the client for this route."""

    @property
    def proxy_url(self) -> str | None:
        return None

    def build_transport(self, *, verify: bool = True) -> httpx.AsyncBaseTransport:
        return httpx.AsyncHTTPTransport(verify=verify)


class DirectConnector(OutboundConnector):
    """No proxy."""

    @property
    def key(self) -> str:
        return "direct"


class _ProxyConnector(OutboundConnector):
    def __init__(self, descriptor: ProxyDescriptor) -> None:
        self.descriptor = descriptor

    @property
    def key(self) -> str:
        return self.descriptor.url

    @property
    def proxy_url(self) -> str:
        return self.descriptor.url

    def build_transport(self, *, verify: bool = True) -> httpx.AsyncBaseTransport:
        return httpx.AsyncHTTPTransport(proxy=httpx.Proxy(self.descriptor.url), verify=verify)


class HttpProxyConnector(_ProxyConnector):
    """HTTP or HTTPS forward proxy (CONNECT tunnelling for https targets)."""


class Socks5Connector(_ProxyConnector):
    """SOCKS5 proxy. Requires the ``socksio`` package (``httpx[socks]``)."""


def connector_for(descriptor: ProxyDescriptor | None) -> OutboundConnector:
    """Select the connector for *descriptor*'s protocol; None means direct."""
    if descriptor is None:
        return DirectConnector()
    if descriptor.protocol == "socks5":
        return Socks5Connector(descriptor)
    if descriptor.protocol in ("http", "https"):
        return HttpProxyConnector(descriptor)
    raise ValueError(f"Unsupported proxy protocol: {descriptor.protocol}")
