"""Shared test fixtures for the client test suite."""

from __future__ import annotations

import os
import random

import httpx
import pytest

from yfclient.config.settings import FinanceSettings
from yfclient.proxy.pool import ProxyPool


# ---------------------------------------------------------------------------
# Keep the environment from leaking into FinanceSettings
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_finance_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove YFINANCE_* variables so settings start from their defaults."""
    for key in list(os.environ):
        if key.startswith("YFINANCE_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Settings fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> FinanceSettings:
    """Settings with retries that never actually wait."""
    return FinanceSettings(
        retry_initial_delay=0,
        retry_max_delay=0,
        retry_jitter=False,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def proxy_pool() -> ProxyPool:
    pool = ProxyPool(max_failures=1, cooldown_ms=60_000)
    pool.add_from_list("http://a:8080\nhttp://b:8080\nhttp://c:8080")
    return pool


# ---------------------------------------------------------------------------
# Simulated upstream
# ---------------------------------------------------------------------------

class MockUpstream:
    """MockTransport handler serving the landing page and crumb endpoint.

    Other requests are answered from ``routes[(method, path)]`` (a Response or
    a callable taking the request), else a 404 with a finance error envelope.
    Every request is recorded in ``calls``.
    """

    def __init__(self, crumb: str = "crumb-abc") -> None:
        self.crumb = crumb
        self.routes: dict = {}
        self.calls: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, request.url.path)
        if key in self.routes:
            route = self.routes[key]
            if callable(route):
                return route(request)
            # Responses are single-use once sent, serve a copy
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        if request.url.host == "finance.yahoo.com" and request.url.path in ("", "/"):
            return httpx.Response(
                200,
                text="<html>landing</html>",
                headers={"set-cookie": "A3=d=session; Domain=.yahoo.com; Path=/"},
            )
        if request.url.path == "/v1/test/getcrumb":
            return httpx.Response(200, text=self.crumb)
        return httpx.Response(
            404,
            json={"finance": {"error": {"code": "Not Found", "description": "missing"}}},
        )

    def factory(self, connector) -> httpx.AsyncBaseTransport:
        return self.transport

    def paths(self) -> list[str]:
        return [request.url.path for request in self.calls]


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream()
