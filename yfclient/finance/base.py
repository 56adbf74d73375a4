"""Request construction and response reshaping on top of the session.

BaseFinance maps a logical endpoint key from the catalog to one request (for
endpoints that take a joined ``symbols`` list or no symbol at all) or to one
request per symbol, issued concurrently in chunks. Per-symbol failures do not
fail the batch: the symbol maps to the error message instead of data.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from yfclient.config.endpoints import EndpointCatalog, EndpointConfig, load_endpoint_catalog
from yfclient.config.settings import FinanceSettings
from yfclient.errors import FinanceError, InvalidModulesError, UnknownEndpointError, provider_error
from yfclient.finance.helpers import chunk, convert_to_list, stringify_booleans
from yfclient.finance.normalizer import format_all, format_data
from yfclient.session.manager import SessionManager

logger = logging.getLogger(__name__)

# Maximum symbols issued concurrently per batch
CHUNK_SIZE = 1500

_MODULE_NAME_RE = re.compile(r"[a-zA-Z]+")

QueryParams = dict[str, Any]


class BaseFinance:
    """Shared request orchestration for symbol-oriented finance operations.

    Args:
        symbols: Ticker symbols, as a list or a string separated by spaces
            or commas.
        session: Session to issue requests through. One is created from
            *settings* when omitted, and closed by ``aclose``.
        settings: Client configuration. Defaults to the session's settings.
        formatted: Keep upstream ``{"raw", "fmt"}`` envelopes instead of
            unwrapping them.
        catalog: Endpoint catalog. Defaults to the packaged catalog, or the
            file at ``settings.endpoints_path``.
    """

    def __init__(
        self,
        symbols: str | Iterable[str] | None = None,
        *,
        session: SessionManager | None = None,
        settings: FinanceSettings | None = None,
        formatted: bool = False,
        catalog: EndpointCatalog | None = None,
    ) -> None:
        if settings is None:
            settings = session.settings if session is not None else FinanceSettings()
        self._settings = settings
        self._owns_session = session is None
        self.session = session or SessionManager(settings)
        self.formatted = formatted
        self._catalog = catalog or load_endpoint_catalog(settings.endpoints_path)
        self._symbols: list[str] = []
        self.symbols = symbols

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def symbols(self) -> list[str]:
        return self._symbols

    @symbols.setter
    def symbols(self, value: str | Iterable[str] | None) -> None:
        self._symbols = convert_to_list(value)

    @property
    def catalog(self) -> EndpointCatalog:
        return self._catalog

    @property
    def default_query_params(self) -> QueryParams:
        """Locale parameters sent with every request. The session adds the crumb."""
        return self._settings.query_defaults()

    # ------------------------------------------------------------------
    # Request construction
    # ------------------------------------------------------------------

    def construct_params(
        self,
        config: EndpointConfig,
        params: Mapping[str, Any] | None = None,
    ) -> QueryParams | list[QueryParams]:
        """Build query parameters for *config*.

        Caller params win. Missing required (non-symbol) params and optional
        params with a default are filled from a same-named attribute on this
        object, falling back to the catalog default. Booleans are rendered as
        ``"true"``/``"false"``.

        Returns one dict per symbol for per-symbol endpoints, otherwise a
        single dict (with ``symbols`` joined by commas when the endpoint
        takes a symbol list).
        """
        result: QueryParams = dict(params or {})

        for key, param in config.query.items():
            if key in result:
                continue
            if param.required and "symbol" in key:
                continue
            if not param.required and param.default is None:
                continue

            value = self._instance_param(key)
            if value is None:
                value = param.default
            if value is not None:
                result[key] = value

        result.update(self.default_query_params)
        result = stringify_booleans(result)

        if config.per_symbol:
            return [{**result, "symbol": symbol} for symbol in self._symbols]
        if "symbols" in config.query:
            return {**result, "symbols": ",".join(self._symbols)}
        return result

    def _instance_param(self, key: str) -> Any:
        value = getattr(self, key, None)
        return None if callable(value) else value

    # ------------------------------------------------------------------
    # Data retrieval
    # ------------------------------------------------------------------

    async def get_data(
        self,
        key: str,
        params: Mapping[str, Any] | None = None,
        *,
        addl_key: str | None = None,
        list_result: bool = False,
        method: str = "get",
        payload: Any = None,
    ) -> Any:
        """Fetch endpoint *key* and reshape the payload.

        Raises:
            UnknownEndpointError: If *key* is not in the catalog.
            TransportError: For single-request endpoints whose request fails
                after retries. Per-symbol endpoints never raise for a single
                symbol's failure.
        """
        config = self._catalog.endpoints.get(key)
        if config is None:
            raise UnknownEndpointError(f"Unknown endpoint key: {key}", key=key)

        await self.session.initialize()
        if config.premium and not self.session.is_premium:
            logger.warning(
                "Endpoint %s requires a premium session; upstream may reject the request",
                key,
                extra={"url": config.path},
            )

        constructed = self.construct_params(config, params)

        if isinstance(constructed, list):
            return await self._get_per_symbol(config, constructed, addl_key, list_result)

        if method.lower() == "post":
            response = await self.session.post(config.path, payload, params=constructed)
        else:
            response = await self.session.get(config.path, params=constructed)

        validated = self.validate_response(response, config.response_field)
        return self.construct_data(
            validated,
            config.response_field,
            addl_key=addl_key,
            list_result=list_result,
        )

    async def _get_per_symbol(
        self,
        config: EndpointConfig,
        params_list: list[QueryParams],
        addl_key: str | None,
        list_result: bool,
    ) -> dict[str, Any]:
        results: dict[str, Any] = {}

        for batch in chunk(params_list, CHUNK_SIZE):
            outcomes = await asyncio.gather(
                *(self._get_symbol(config, params, addl_key, list_result) for params in batch)
            )
            for symbol, data in outcomes:
                if data is not None:
                    results[symbol] = data

        return results

    async def _get_symbol(
        self,
        config: EndpointConfig,
        params: QueryParams,
        addl_key: str | None,
        list_result: bool,
    ) -> tuple[str, Any]:
        symbol = params["symbol"]
        url = config.path.replace("{symbol}", symbol)

        try:
            response = await self.session.get(url, params=params)
        except FinanceError as exc:
            logger.warning("Request for %s failed: %s", symbol, exc, extra={"url": url})
            return symbol, exc.message

        validated = self.validate_response(response, config.response_field)
        data = self.construct_data(
            validated,
            config.response_field,
            addl_key=addl_key,
            list_result=list_result,
        )
        return symbol, data

    # ------------------------------------------------------------------
    # Response reshaping
    # ------------------------------------------------------------------

    @staticmethod
    def validate_response(response: Any, response_field: str) -> Any:
        """Return *response* if it carries a result, otherwise an error message string."""
        if not isinstance(response, Mapping):
            return "No data found"

        field = response.get(response_field)
        if isinstance(field, Mapping):
            error = field.get("error")
            if error:
                if isinstance(error, Mapping):
                    return error.get("description") or "Unknown error"
                return str(error)
            if "result" not in field:
                return "No data found"
            return response

        envelope = provider_error(response)
        if envelope is not None:
            return envelope.get("description") or "Unknown error"
        return "No data found"

    @staticmethod
    def construct_data(
        json: Any,
        response_field: str,
        *,
        addl_key: str | None = None,
        list_result: bool = False,
    ) -> Any:
        """Pick the useful part of a validated response.

        Error strings become ``{"error": message}``. Otherwise the
        ``result`` list is reduced to the *addl_key* entry of its first item,
        the whole list (*list_result*), or its first item.
        """
        if isinstance(json, str):
            return {"error": json}

        field = json.get(response_field) if isinstance(json, Mapping) else None
        result = field.get("result") if isinstance(field, Mapping) else None
        if result is None:
            return json
        if not isinstance(result, list):
            return result

        first = result[0] if result else {}
        if addl_key:
            return first.get(addl_key) if isinstance(first, Mapping) else None
        if list_result:
            return result
        return first

    def format_data(self, obj: Mapping[str, Any], dates: Iterable[str]) -> dict[str, Any]:
        """Unwrap raw envelopes and render date fields; see yfclient.finance.normalizer."""
        return format_data(obj, set(dates))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @property
    def all_modules(self) -> list[str]:
        """Quote-summary module names known to the catalog."""
        config = self._catalog.endpoints.get("quoteSummary")
        modules_param = config.query.get("modules") if config else None
        if modules_param is not None and modules_param.options:
            return list(modules_param.options)
        return list(self._catalog.modules)

    def module_dates(self, modules: Iterable[str]) -> list[str]:
        """Date field names for the given quote-summary modules."""
        dates: list[str] = []
        for name in modules:
            module = self._catalog.modules.get(name)
            if module is not None:
                dates.extend(module.convert_dates)
        return dates

    async def quote_summary(self, modules: str | Iterable[str]) -> dict[str, Any]:
        """Fetch quote-summary *modules* for every symbol.

        A single module is flattened so each symbol maps straight to that
        module's data. Unless ``formatted`` is set, raw envelopes are
        unwrapped and date fields rendered.

        Raises:
            InvalidModulesError: If any module name is unknown.
        """
        if isinstance(modules, str):
            module_list = _MODULE_NAME_RE.findall(modules)
        else:
            module_list = list(modules)

        valid = self.all_modules
        invalid = [name for name in module_list if name not in valid]
        if invalid or not module_list:
            raise InvalidModulesError(
                f"Invalid modules: {', '.join(invalid)}. Valid modules: {', '.join(valid)}",
                invalid=invalid,
            )

        addl_key = module_list[0] if len(module_list) == 1 else None
        data = await self.get_data(
            "quoteSummary",
            {"modules": ",".join(module_list)},
            addl_key=addl_key,
        )

        if self.formatted:
            return data
        return format_all(data, set(self.module_dates(module_list)))

    async def validate_symbols(self) -> dict[str, list[str]]:
        """Split the current symbols into those upstream accepts and rejects."""
        data = await self.get_data("validation")
        valid: list[str] = []
        invalid: list[str] = []

        for symbol, result in data.items():
            if isinstance(result, Mapping):
                (valid if result.get("valid") is not False else invalid).append(symbol)
            elif result is True:
                valid.append(symbol)
            else:
                invalid.append(symbol)

        return {"valid": valid, "invalid": invalid}

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the session if this object created it."""
        if self._owns_session:
            await self.session.close()

    async def __aenter__(self) -> BaseFinance:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
