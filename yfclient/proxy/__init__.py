"""Proxy management package: parsing, rotation, health tracking and connectors."""

from yfclient.proxy.connectors import (
    DirectConnector,
    HttpProxyConnector,
    OutboundConnector,
    Socks5Connector,
    connector_for,
)
from yfclient.proxy.pool import ProxyPool, parse_proxy
from yfclient.proxy.types import ProxyDescriptor, ProxyHealth

__all__ = [
    "DirectConnector",
    "HttpProxyConnector",
    "OutboundConnector",
    "ProxyDescriptor",
    "ProxyHealth",
    "ProxyPool",
    "Socks5Connector",
    "connector_for",
    "parse_proxy",
]
