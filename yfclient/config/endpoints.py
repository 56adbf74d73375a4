"""Endpoint catalog models and YAML loader.

Provides typed Pydantic models for endpoint definitions (path template,
response envelope field, query parameter defaults) and quote-summary module
metadata, plus a loader that parses the YAML catalog into those models.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).with_name("endpoints.yaml")


class QueryParam(BaseModel):
    """One query parameter accepted by an endpoint."""

    required: bool = False
    default: Any = None
    options: list[str] | None = None


class EndpointConfig(BaseModel):
    """A single upstream endpoint."""

    path: str
    response_field: str
    premium: bool = False
    query: dict[str, QueryParam] = Field(default_factory=dict)

    @property
    def per_symbol(self) -> bool:
        """True if the endpoint takes one symbol per request."""
        return "{symbol}" in self.path or "symbol" in self.query


class ModuleConfig(BaseModel):
    """Quote-summary module metadata."""

    convert_dates: list[str] = Field(default_factory=list)


class EndpointCatalog(BaseModel):
    """All endpoints and quote-summary modules known to the client."""

    endpoints: dict[str, EndpointConfig] = Field(default_factory=dict)
    modules: dict[str, ModuleConfig] = Field(default_factory=dict)


def load_endpoint_catalog(yaml_path: str | Path | None = None) -> EndpointCatalog:
    """Parse an endpoint catalog YAML file into an EndpointCatalog.

    Args:
        yaml_path: Path to the YAML file. Defaults to the packaged catalog.

    Returns:
        The parsed catalog. Missing or malformed files yield an empty catalog;
        individual invalid endpoint entries are skipped.
    """
    path = Path(yaml_path) if yaml_path is not None else DEFAULT_CATALOG_PATH

    if not path.exists():
        logger.warning("Endpoint catalog not found at %s, using empty catalog", path)
        return EndpointCatalog()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse endpoint catalog YAML at %s: %s", path, exc)
        return EndpointCatalog()

    if not isinstance(raw, dict) or "endpoints" not in raw:
        logger.warning("Endpoint catalog YAML missing 'endpoints' key, using empty catalog")
        return EndpointCatalog()

    endpoints: dict[str, EndpointConfig] = {}
    for key, config in (raw.get("endpoints") or {}).items():
        try:
            endpoints[key] = EndpointConfig.model_validate(config)
        except Exception as exc:
            logger.error("Invalid endpoint '%s': %s, skipping", key, exc)

    modules: dict[str, ModuleConfig] = {}
    for name, config in (raw.get("modules") or {}).items():
        modules[name] = ModuleConfig.model_validate(config or {})

    return EndpointCatalog(endpoints=endpoints, modules=modules)
