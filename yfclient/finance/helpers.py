"""Small conversion helpers shared by request construction and reshaping."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timezone
from typing import Any, TypeVar

T = TypeVar("T")

# Ticker characters: word chars plus . - = ^ &
_SYMBOL_RE = re.compile(r"[\w\-.=^&]+")

_DEFAULT_START = datetime(1942, 1, 1, tzinfo=timezone.utc)


def convert_to_list(symbols: str | Iterable[str] | None, comma_split: bool = False) -> list[str]:
    """Normalize a symbol argument into a list.

    Strings are split on anything that is not a ticker character, or on
    commas when *comma_split* is set. Other iterables are returned as lists.
    """
    if symbols is None:
        return []
    if isinstance(symbols, str):
        if comma_split:
            return [part.strip() for part in symbols.split(",") if part.strip()]
        return _SYMBOL_RE.findall(symbols)
    return list(symbols)


def convert_to_timestamp(value: str | date | datetime | None = None, start: bool = True) -> int:
    """Convert a date to Unix seconds.

    Without a value, returns 1942-01-01 when *start* is set and now otherwise.
    Naive dates and datetimes are taken as UTC.
    """
    if value:
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        elif not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())

    if start:
        return int(_DEFAULT_START.timestamp())
    return int(datetime.now(timezone.utc).timestamp())


def format_timestamp(timestamp: float) -> str:
    """Render Unix seconds as ``YYYY-MM-DD HH:MM:SS`` in UTC."""
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


def format_date(timestamp: float) -> str:
    """Render Unix seconds as ``YYYY-MM-DD`` in UTC."""
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split *items* into consecutive lists of at most *size* elements."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def stringify_booleans(params: Mapping[str, Any]) -> dict[str, Any]:
    """Render booleans as ``"true"``/``"false"`` the way the upstream expects."""
    return {
        key: ("true" if value else "false") if isinstance(value, bool) else value
        for key, value in params.items()
    }


def remove_nullish(params: Mapping[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in params.items() if value is not None}
