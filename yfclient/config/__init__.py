"""Configuration module: settings and endpoint catalog."""

from yfclient.config.endpoints import (
    EndpointCatalog,
    EndpointConfig,
    ModuleConfig,
    QueryParam,
    load_endpoint_catalog,
)
from yfclient.config.settings import FinanceSettings

__all__ = [
    "EndpointCatalog",
    "EndpointConfig",
    "FinanceSettings",
    "ModuleConfig",
    "QueryParam",
    "load_endpoint_catalog",
]
