"""Session package: browser identity, transport translation, session manager."""

from yfclient.session.browsers import BROWSER_IDENTITIES, BrowserIdentity, pick_browser_identity
from yfclient.session.manager import (
    CONSENT_URL,
    CRUMB_URL,
    SESSION_URL,
    SessionManager,
    SessionState,
    create_session,
)

__all__ = [
    "BROWSER_IDENTITIES",
    "CONSENT_URL",
    "CRUMB_URL",
    "SESSION_URL",
    "BrowserIdentity",
    "SessionManager",
    "SessionState",
    "create_session",
    "pick_browser_identity",
]
