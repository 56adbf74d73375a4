"""Proxy rotation pool with round-robin selection and failure tracking.

Proxies are parsed from ``scheme://[user:pass@]host:port`` strings (one per
line when loaded from a list). Selection walks the pool round-robin from a
cursor, skipping proxies that have hit ``max_failures`` consecutive failures
until ``cooldown_ms`` has passed since their last failure. When every proxy is
unhealthy the pool resets all counters and falls back to the first proxy
rather than refusing to hand one out.

Health records live in an index-addressed list with a side table from
``(host, port)`` to index; reports are matched by ``(host, port)`` only.
"""

from __future__ import annotations

import logging
import re
import time

from yfclient.logging_config import redact
from yfclient.proxy.types import ProxyDescriptor, ProxyHealth

logger = logging.getLogger(__name__)

# protocol://[user:pass@]host:port
_PROXY_RE = re.compile(
    r"^(https?|socks5)://(?:([^:@/]+):([^@]+)@)?([^:@/]+):(\d+)$",
    re.IGNORECASE,
)


def _now_ms() -> float:
    return time.monotonic() * 1000


def parse_proxy(proxy_uri: str) -> ProxyDescriptor | None:
    """Parse a proxy URI string, returning None if it does not match the grammar."""
    if not isinstance(proxy_uri, str):
        return None

    match = _PROXY_RE.match(proxy_uri.strip())
    if match is None:
        logger.warning("Invalid proxy format: %s", redact(proxy_uri))
        return None

    protocol, username, password, host, port = match.groups()
    return ProxyDescriptor(
        protocol=protocol.lower(),
        host=host,
        port=int(port),
        username=username,
        password=password,
    )


class ProxyPool:
    """Manages a pool of proxy descriptors with round-robin rotation and health tracking."""

    def __init__(self, max_failures: int = 3, cooldown_ms: int = 300_000) -> None:
        self._records: list[ProxyHealth] = []
        self._index_by_key: dict[tuple[str, int], int] = {}
        self._cursor: int = 0
        self._max_failures = max_failures
        self._cooldown_ms = cooldown_ms

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    parse = staticmethod(parse_proxy)

    def add(self, descriptor: ProxyDescriptor) -> bool:
        """Add a descriptor. Returns False if its ``(host, port)`` is already pooled."""
        if descriptor.key in self._index_by_key:
            logger.debug("Proxy %s already in pool, skipping", descriptor.label)
            return False

        self._index_by_key[descriptor.key] = len(self._records)
        self._records.append(ProxyHealth(descriptor=descriptor))
        return True

    def add_from_list(self, text: str) -> int:
        """Add proxies from newline-separated text, skipping blanks, comments and bad lines.

        Returns the number of proxies added.
        """
        added = 0
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            descriptor = parse_proxy(line)
            if descriptor is not None and self.add(descriptor):
                added += 1

        logger.info("Proxy pool loaded %d endpoints (%d total)", added, len(self._records))
        return added

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def next(self) -> ProxyDescriptor | None:
        """Return the next healthy proxy in round-robin order, or None if the pool is empty."""
        if not self._records:
            return None

        pool_size = len(self._records)
        now = _now_ms()

        for _ in range(pool_size):
            record = self._records[self._cursor]
            self._cursor = (self._cursor + 1) % pool_size

            if record.failures < self._max_failures:
                return record.descriptor

            if self._cooled_down(record, now):
                record.failures = 0
                return record.descriptor

        logger.warning("All %d proxies unhealthy, resetting failure counts", pool_size)
        self._reset_all()
        return self._records[0].descriptor

    # ------------------------------------------------------------------
    # Health tracking
    # ------------------------------------------------------------------

    def report_success(self, descriptor: ProxyDescriptor) -> None:
        """Record a successful request through the proxy."""
        record = self._find(descriptor)
        if record is None:
            return
        record.failures = 0
        record.success_count += 1

    def report_failure(self, descriptor: ProxyDescriptor) -> None:
        """Record a proxy-attributable failure."""
        record = self._find(descriptor)
        if record is None:
            return
        record.failures += 1
        record.last_failure_ms = _now_ms()

        if record.failures >= self._max_failures:
            logger.warning(
                "Proxy %s marked unhealthy after %d failures",
                descriptor.label,
                record.failures,
            )

    def healthy_count(self) -> int:
        """Number of proxies currently eligible for selection."""
        now = _now_ms()
        return sum(1 for record in self._records if self._is_healthy(record, now))

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def remove(self, descriptor: ProxyDescriptor) -> bool:
        """Remove the proxy matching *descriptor*'s ``(host, port)``."""
        index = self._index_by_key.get(descriptor.key)
        if index is None:
            return False

        del self._records[index]
        self._index_by_key = {
            record.descriptor.key: i for i, record in enumerate(self._records)
        }
        if self._cursor >= len(self._records):
            self._cursor = 0
        return True

    def clear(self) -> None:
        """Remove all proxies."""
        self._records = []
        self._index_by_key = {}
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def stats(self) -> dict:
        """Return a snapshot of pool health."""
        now = _now_ms()
        per_proxy = [
            {
                "host": r.descriptor.host,
                "port": r.descriptor.port,
                "protocol": r.descriptor.protocol,
                "failures": r.failures,
                "success_count": r.success_count,
                "is_healthy": self._is_healthy(r, now),
            }
            for r in self._records
        ]
        healthy = sum(1 for p in per_proxy if p["is_healthy"])

        return {
            "total": len(per_proxy),
            "healthy": healthy,
            "unhealthy": len(per_proxy) - healthy,
            "proxies": per_proxy,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find(self, descriptor: ProxyDescriptor) -> ProxyHealth | None:
        index = self._index_by_key.get(descriptor.key)
        return self._records[index] if index is not None else None

    def _cooled_down(self, record: ProxyHealth, now: float) -> bool:
        if record.last_failure_ms is None:
            return True
        return now - record.last_failure_ms > self._cooldown_ms

    def _is_healthy(self, record: ProxyHealth, now: float) -> bool:
        return record.failures < self._max_failures or self._cooled_down(record, now)

    def _reset_all(self) -> None:
        for record in self._records:
            record.failures = 0
            record.last_failure_ms = None
