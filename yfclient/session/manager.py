"""Session manager: cookies, crumb, consent, retries and proxy routing.

Lifecycle::

    UNINITIALIZED -> BOOTSTRAPPING -> READY

Bootstrapping optionally logs in to a premium account through an external
authenticator, visits the landing page (submitting the consent form when the
upstream redirects to it), then fetches the crumb. Every bootstrap step is
best-effort: failures are logged and the session still becomes READY, with a
None crumb if none could be obtained.

The package logger level follows ``settings.log_level``.

Requests carry the crumb as a query parameter, are routed through the next
proxy from the pool when one is configured, and are wrapped in the retry
engine. A rejected crumb is refreshed in-band before the retry; concurrent
callers that hit the same rejection share one refresh.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

import httpx
from bs4 import BeautifulSoup

from yfclient.auth import AuthCookie, Authenticator
from yfclient.config.settings import FinanceSettings
from yfclient.errors import TransportError
from yfclient.proxy.connectors import OutboundConnector, connector_for
from yfclient.proxy.pool import ProxyPool
from yfclient.proxy.types import ProxyDescriptor
from yfclient.resilience.classifier import (
    get_retry_after_ms,
    is_invalid_token,
    is_proxy_error,
    is_rate_limited,
)
from yfclient.resilience.retry import RetryPolicy, run_with_retry
from yfclient.session.browsers import BrowserIdentity, pick_browser_identity
from yfclient.session.transport import decode_body, http_error_from_response, translate_error

logger = logging.getLogger(__name__)

SESSION_URL = "https://finance.yahoo.com"
CRUMB_URL = "https://query2.finance.yahoo.com/v1/test/getcrumb"
CONSENT_URL = "https://consent.yahoo.com/v2/collectConsent"

TransportFactory = Callable[[OutboundConnector], httpx.AsyncBaseTransport]


class SessionState(str, Enum):
    """Session bootstrap states."""

    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    READY = "ready"


class SessionManager:
    """Owns the cookie jar and crumb and performs all upstream requests.

    Args:
        settings: Client configuration. Defaults to ``FinanceSettings()``.
        authenticator: Premium login collaborator, used only when the
            settings carry a username and password.
        proxy_pool: Pool to rotate through. Defaults to the pool built from
            ``settings.proxy_list`` (None when the list is empty).
        transport_factory: Builds the httpx transport for a connector.
            Defaults to the connector's own transport.
        rng: Random source for the browser identity and retry jitter.
    """

    def __init__(
        self,
        settings: FinanceSettings | None = None,
        *,
        authenticator: Authenticator | None = None,
        proxy_pool: ProxyPool | None = None,
        transport_factory: TransportFactory | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings or FinanceSettings()
        logging.getLogger("yfclient").setLevel(self._settings.log_level)
        self._authenticator = authenticator
        self._rng = rng
        self._browser = pick_browser_identity(rng)
        self._proxy_pool = proxy_pool if proxy_pool is not None else self._settings.proxy_pool()
        self._retry_policy = self._settings.retry_policy()
        self._transport_factory = transport_factory or self._default_transport

        self._cookies = httpx.Cookies()
        self._clients: dict[str, httpx.AsyncClient] = {}
        self._crumb: str | None = None
        self._premium = False
        self._state = SessionState.UNINITIALIZED
        self._init_lock = asyncio.Lock()
        self._refresh_task: asyncio.Future[str | None] | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def settings(self) -> FinanceSettings:
        return self._settings

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is SessionState.READY

    @property
    def crumb(self) -> str | None:
        return self._crumb

    @property
    def is_premium(self) -> bool:
        return self._premium

    @property
    def browser(self) -> BrowserIdentity:
        return self._browser

    @property
    def cookies(self) -> httpx.Cookies:
        return self._cookies

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def proxy_pool(self) -> ProxyPool | None:
        return self._proxy_pool

    @property
    def has_proxy_rotation(self) -> bool:
        return self._proxy_pool is not None and len(self._proxy_pool) > 0

    def proxy_stats(self) -> dict | None:
        """Proxy pool statistics, or None without proxy rotation."""
        if self._proxy_pool is None:
            return None
        return self._proxy_pool.stats()

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Bootstrap the session once; later calls are no-ops."""
        async with self._init_lock:
            if self._state is SessionState.READY:
                return

            self._state = SessionState.BOOTSTRAPPING
            try:
                if self._settings.username and self._settings.password:
                    await self._login_premium(self._settings.username, self._settings.password)

                await self._setup_session()
                self._crumb = await self._fetch_crumb()
            except BaseException:
                self._state = SessionState.UNINITIALIZED
                raise

            self._state = SessionState.READY
            logger.info(
                "Session ready (browser=%s, crumb=%s, premium=%s)",
                self._browser.name,
                "yes" if self._crumb else "no",
                self._premium,
            )

    async def _login_premium(self, username: str, password: str) -> bool:
        if self._authenticator is None:
            logger.warning("Premium credentials configured but no authenticator supplied")
            return False

        try:
            result = await self._authenticator.login(username, password)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Premium login error: %s", exc)
            return False

        if result.success and result.cookies:
            self.set_cookies(result.cookies)
            self._premium = True
            logger.info("Premium login succeeded with %d cookies", len(result.cookies))
            return True

        logger.warning("Premium login failed: %s", result.error)
        return False

    def set_cookies(self, cookies: Iterable[AuthCookie]) -> None:
        """Inject cookies into the session's jar verbatim."""
        for cookie in cookies:
            self._cookies.set(cookie.name, cookie.value, domain=cookie.domain, path=cookie.path)

    async def _setup_session(self, url: str = SESSION_URL) -> None:
        """Visit the landing page and satisfy the consent interstitial if redirected to it."""
        try:
            response = await self._send("GET", url, error_status=500)
        except TransportError as exc:
            logger.warning("Session setup warning: %s", exc, extra={"url": url})
            return

        if "consent" in str(response.url):
            await self._handle_consent(response.text, url)

    async def _handle_consent(self, html: str, original_url: str) -> None:
        soup = BeautifulSoup(html, "html.parser")
        csrf_token = _input_value(soup, "csrfToken")
        session_id = _input_value(soup, "sessionId")

        if not csrf_token or not session_id:
            logger.warning("Failed to extract consent page tokens")
            return

        form = {
            "agree": "agree",
            "consentUUID": "default",
            "sessionId": session_id,
            "csrfToken": csrf_token,
            "originalDoneUrl": original_url,
            "namespace": "yahoo",
        }
        try:
            await self._send("POST", CONSENT_URL, data=form)
        except TransportError as exc:
            logger.warning("Consent handling warning: %s", exc, extra={"url": CONSENT_URL})

    async def _fetch_crumb(self) -> str | None:
        try:
            response = await self._send("GET", CRUMB_URL)
        except TransportError as exc:
            logger.warning("Crumb retrieval warning: %s", exc, extra={"url": CRUMB_URL})
            return None

        crumb = response.text.strip()
        if not crumb or "<html" in crumb.lower():
            logger.warning("Failed to obtain valid crumb")
            return None
        return crumb

    async def refresh_token(self) -> str | None:
        """Fetch a fresh crumb; concurrent callers share the in-flight fetch."""
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh())
            self._refresh_task = task
        return await asyncio.shield(task)

    async def _refresh(self) -> str | None:
        crumb = await self._fetch_crumb()
        self._crumb = crumb
        logger.info("Crumb refreshed (%s)", "obtained" if crumb else "missing")
        return crumb

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        retry: RetryPolicy | None = None,
    ) -> Any:
        """GET *url* with crumb injection and retries; returns the decoded body."""
        return await self.request("GET", url, params=params, headers=headers, retry=retry)

    async def post(
        self,
        url: str,
        data: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        retry: RetryPolicy | None = None,
    ) -> Any:
        """POST *data* (JSON for mappings and lists, raw for str/bytes) to *url*."""
        return await self.request("POST", url, params=params, headers=headers, data=data, retry=retry)

    async def get_all(self, requests: Iterable[Mapping[str, Any]]) -> list[Any]:
        """Issue several GETs concurrently. Each request is ``{"url": ..., "params": ...}``."""
        if self._state is not SessionState.READY:
            await self.initialize()

        return list(
            await asyncio.gather(
                *(self.get(req["url"], params=req.get("params")) for req in requests)
            )
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        data: Any = None,
        retry: RetryPolicy | None = None,
    ) -> Any:
        if self._state is not SessionState.READY:
            await self.initialize()

        policy = retry or self._retry_policy
        body = _body_kwargs(data)

        async def attempt() -> Any:
            response = await self._send(
                method,
                url,
                params=self._with_crumb(params),
                headers=headers,
                **body,
            )
            return decode_body(response)

        if not policy.enabled:
            return await attempt()
        return await run_with_retry(attempt, self._compose_policy(policy, url), rng=self._rng)

    def _with_crumb(self, params: Mapping[str, Any] | None) -> dict[str, Any]:
        merged = dict(params or {})
        if self._crumb:
            merged["crumb"] = self._crumb
        return merged

    def _compose_policy(self, policy: RetryPolicy, url: str) -> RetryPolicy:
        """Layer crumb refresh and retry logging over the caller's policy."""
        caller_on_retry = policy.on_retry
        caller_is_retryable = policy.is_retryable

        async def on_retry(error: BaseException, attempt: int, delay_ms: int) -> None:
            if caller_on_retry is not None:
                result = caller_on_retry(error, attempt, delay_ms)
                if inspect.isawaitable(result):
                    await result

            extra = {"url": url, "attempt": attempt, "delay_ms": delay_ms}
            if is_invalid_token(error):
                logger.info("Crumb rejected, refreshing before retry %d", attempt, extra=extra)
                await self.refresh_token()
            elif is_rate_limited(error):
                retry_after = get_retry_after_ms(error)
                logger.warning(
                    "Rate limited, retry %d in %dms (retry-after: %s)",
                    attempt,
                    delay_ms,
                    f"{retry_after}ms" if retry_after is not None else "none",
                    extra={**extra, "retry_after_ms": retry_after},
                )
            else:
                logger.warning(
                    "Request failed, retry %d in %dms: %s",
                    attempt,
                    delay_ms,
                    error,
                    extra={**extra, "error_reason": str(error)},
                )

        return policy.replace(
            is_retryable=lambda error: caller_is_retryable(error) or is_invalid_token(error),
            get_delay_override=policy.get_delay_override or get_retry_after_ms,
            on_retry=on_retry,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        data: Mapping[str, Any] | None = None,
        json: Any = None,
        content: str | bytes | None = None,
        error_status: int = 400,
    ) -> httpx.Response:
        """Perform one attempt, routed through the next proxy if any.

        Raises NetworkError on connection failures and HttpError for
        statuses at or above *error_status*.
        """
        descriptor = self._proxy_pool.next() if self._proxy_pool is not None else None
        client = self._client_for(connector_for(descriptor))

        try:
            response = await client.request(
                method,
                url,
                params=params,
                headers=headers,
                data=data,
                json=json,
                content=content,
            )
        except httpx.RequestError as exc:
            error = translate_error(exc)
            self._record_proxy_outcome(descriptor, error)
            raise error from exc

        if response.status_code >= error_status:
            error = http_error_from_response(response)
            self._record_proxy_outcome(descriptor, error)
            raise error

        self._record_proxy_outcome(descriptor, None)
        return response

    def _record_proxy_outcome(
        self,
        descriptor: ProxyDescriptor | None,
        error: TransportError | None,
    ) -> None:
        if descriptor is None or self._proxy_pool is None:
            return
        if error is None:
            self._proxy_pool.report_success(descriptor)
        elif is_proxy_error(error):
            logger.warning(
                "Proxy failure via %s: %s",
                descriptor.label,
                error,
                extra={"proxy_used": descriptor.label, "error_reason": str(error)},
            )
            self._proxy_pool.report_failure(descriptor)

    def _default_transport(self, connector: OutboundConnector) -> httpx.AsyncBaseTransport:
        return connector.build_transport(verify=self._settings.verify)

    def _client_for(self, connector: OutboundConnector) -> httpx.AsyncClient:
        client = self._clients.get(connector.key)
        if client is None:
            client = httpx.AsyncClient(
                transport=self._transport_factory(connector),
                headers=self._browser.headers,
                timeout=self._settings.timeout / 1000,
                follow_redirects=True,
                max_redirects=5,
                trust_env=False,
            )
            # All routes share the session's cookie jar
            client.cookies.jar = self._cookies.jar
            self._clients[connector.key] = client
        return client

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close every pooled HTTP client."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def create_session(settings: FinanceSettings | None = None, **kwargs: Any) -> SessionManager:
    """Create a SessionManager and run its bootstrap."""
    session = SessionManager(settings, **kwargs)
    await session.initialize()
    return session


def _input_value(soup: BeautifulSoup, name: str) -> str | None:
    tag = soup.find("input", attrs={"name": name})
    if tag is None:
        return None
    value = tag.get("value")
    return value if isinstance(value, str) and value else None


def _body_kwargs(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, (str, bytes)):
        return {"content": data}
    return {"json": data}
