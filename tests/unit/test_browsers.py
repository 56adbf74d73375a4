"""Unit tests for synthetic browser identities."""

import random

from yfclient.session.browsers import BROWSER_IDENTITIES, BrowserIdentity, pick_browser_identity


class TestBrowserIdentities:
    def test_every_identity_has_user_agent(self):
        for identity in BROWSER_IDENTITIES:
            assert identity.headers["User-Agent"].startswith("Mozilla/5.0")
            assert "Accept" in identity.headers

    def test_pick_is_deterministic_with_seed(self):
        assert pick_browser_identity(random.Random(5)) == pick_browser_identity(random.Random(5))

    def test_pick_returns_known_identity(self):
        identity = pick_browser_identity()
        assert isinstance(identity, BrowserIdentity)
        assert identity in BROWSER_IDENTITIES

    def test_variety(self):
        rng = random.Random(0)
        names = {pick_browser_identity(rng).name for _ in range(200)}
        assert len(names) > 1
