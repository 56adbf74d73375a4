"""Synthetic browser identities.

A session picks one identity at construction and sends its header bundle on
every request, so the upstream sees a consistent desktop browser for the
whole life of the session.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

_ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"


@dataclass(frozen=True)
class BrowserIdentity:
    """A named browser and the headers it sends."""

    name: str
    headers: dict[str, str] = field(hash=False)


def _chrome(version: int, platform: str, ua_platform: str) -> BrowserIdentity:
    return BrowserIdentity(
        name=f"chrome{version}",
        headers={
            "User-Agent": (
                f"Mozilla/5.0 ({platform}) AppleWebKit/537.36 "
                f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36"
            ),
            "Accept": _ACCEPT_HTML,
            "Accept-Language": "en-US,en;q=0.9",
            "Sec-Ch-Ua": f'"Chromium";v="{version}", "Google Chrome";v="{version}", "Not-A.Brand";v="99"',
            "Sec-Ch-Ua-Mobile": "?0",
            "Sec-Ch-Ua-Platform": f'"{ua_platform}"',
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Upgrade-Insecure-Requests": "1",
        },
    )


def _edge(version: int) -> BrowserIdentity:
    chrome = _chrome(version, "Windows NT 10.0; Win64; x64", "Windows")
    headers = dict(chrome.headers)
    headers["User-Agent"] = f"{headers['User-Agent']} Edg/{version}.0.0.0"
    headers["Sec-Ch-Ua"] = (
        f'"Chromium";v="{version}", "Microsoft Edge";v="{version}", "Not-A.Brand";v="99"'
    )
    return BrowserIdentity(name=f"edge{version}", headers=headers)


def _firefox(version: int, platform: str) -> BrowserIdentity:
    return BrowserIdentity(
        name=f"firefox{version}",
        headers={
            "User-Agent": f"Mozilla/5.0 ({platform}; rv:{version}.0) Gecko/20100101 Firefox/{version}.0",
            "Accept": _ACCEPT_HTML,
            "Accept-Language": "en-US,en;q=0.5",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
        },
    )


def _safari(version: str) -> BrowserIdentity:
    return BrowserIdentity(
        name=f"safari{version.replace('.', '_')}",
        headers={
            "User-Agent": (
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
                f"(KHTML, like Gecko) Version/{version} Safari/605.1.15"
            ),
            "Accept": _ACCEPT_HTML,
            "Accept-Language": "en-US,en;q=0.9",
        },
    )


# ---------------------------------------------------------------------------
# Curated identities: recent desktop browsers only
# ---------------------------------------------------------------------------

BROWSER_IDENTITIES: list[BrowserIdentity] = [
    _chrome(120, "Windows NT 10.0; Win64; x64", "Windows"),
    _chrome(120, "Macintosh; Intel Mac OS X 10_15_7", "macOS"),
    _chrome(119, "X11; Linux x86_64", "Linux"),
    _chrome(119, "Windows NT 10.0; Win64; x64", "Windows"),
    _chrome(118, "Macintosh; Intel Mac OS X 10_15_7", "macOS"),
    _edge(120),
    _edge(119),
    _firefox(121, "Windows NT 10.0; Win64; x64"),
    _firefox(120, "Macintosh; Intel Mac OS X 10.15"),
    _firefox(120, "X11; Linux x86_64"),
    _safari("17.1"),
    _safari("16.6"),
]


def pick_browser_identity(rng: random.Random | None = None) -> BrowserIdentity:
    """Return a random identity from the curated list."""
    return (rng or random).choice(BROWSER_IDENTITIES)
