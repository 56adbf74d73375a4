"""Response reshaping for quote-summary payloads.

Upstream wraps numeric values as ``{"raw": 1.5, "fmt": "1.50"}`` and encodes
dates as epoch seconds (or the same envelope). Unformatted output unwraps the
envelopes to their raw value and renders configured date fields as
``YYYY-MM-DD HH:MM:SS`` UTC strings, preferring the upstream ``fmt`` text
where one is given.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from yfclient.finance.helpers import format_timestamp


def format_data(obj: Mapping[str, Any], dates: Collection[str]) -> dict[str, Any]:
    """Return a reshaped copy of *obj*, recursing into nested objects and lists of objects."""
    result: dict[str, Any] = {}
    for key, value in obj.items():
        if key in dates:
            result[key] = _format_date_value(value)
        elif isinstance(value, Mapping):
            result[key] = value["raw"] if "raw" in value else format_data(value, dates)
        elif isinstance(value, list) and value and isinstance(value[0], Mapping):
            result[key] = [
                format_data(item, dates) if isinstance(item, Mapping) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def format_all(data: Mapping[str, Any], dates: Collection[str]) -> dict[str, Any]:
    """Apply format_data to each per-symbol entry; error strings pass through."""
    return {
        symbol: format_data(value, dates) if isinstance(value, Mapping) else value
        for symbol, value in data.items()
    }


def _format_date_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        fmt = value.get("fmt")
        return fmt if fmt is not None else value
    if isinstance(value, list):
        return [_format_date_item(item) for item in value]
    if _is_number(value):
        return format_timestamp(value)
    return value


def _format_date_item(item: Any) -> Any:
    if isinstance(item, Mapping) and "fmt" in item:
        return item["fmt"]
    if _is_number(item):
        return format_timestamp(item)
    return item


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
