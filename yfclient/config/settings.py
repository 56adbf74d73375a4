"""Pydantic Settings for the finance client.

All environment variables use the YFINANCE_ prefix.
Example: YFINANCE_PROXY_LIST="http://p1:8080\nsocks5://p2:1080", YFINANCE_RETRY_MAX_RETRIES=5

Settings are built once by the caller and handed to SessionManager; nothing
in the library reads the environment behind the caller's back.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from yfclient.proxy.pool import ProxyPool
from yfclient.resilience.retry import RetryPolicy


class FinanceSettings(BaseSettings):
    """Finance client configuration validated from environment variables."""

    # Session
    timeout: int = Field(default=30000, ge=1)  # ms, applies to every request
    verify: bool = True
    username: str | None = None  # Premium login, best-effort
    password: str | None = None
    lang: str = "en-US"  # Sent with every finance request
    region: str = "US"
    cors_domain: str = "finance.yahoo.com"
    log_level: str = "INFO"  # Applied to the yfclient logger by SessionManager

    # Proxy rotation
    proxy_list: str | None = None  # newline-separated proxy URIs
    proxy_max_failures: int = Field(default=3, ge=1)
    proxy_cooldown_ms: int = Field(default=300000, ge=0)  # 5 minutes

    # Retry
    retry_enabled: bool = True
    retry_max_retries: int = Field(default=3, ge=0)
    retry_initial_delay: int = Field(default=1000, ge=0)  # ms
    retry_max_delay: int = Field(default=30000, ge=0)  # ms
    retry_factor: float = Field(default=2.0, ge=1.0)
    retry_jitter: bool = True
    retry_jitter_factor: float = Field(default=0.3, ge=0.0, le=1.0)

    # Endpoint catalog override (None = packaged endpoints.yaml)
    endpoints_path: str | None = None

    model_config = {"env_prefix": "YFINANCE_"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level

    def query_defaults(self) -> dict[str, str]:
        """Locale parameters merged into every finance query."""
        return {"lang": self.lang, "region": self.region, "corsDomain": self.cors_domain}

    def retry_policy(self) -> RetryPolicy:
        """Default retry policy for session requests."""
        return RetryPolicy(
            enabled=self.retry_enabled,
            max_retries=self.retry_max_retries,
            initial_delay_ms=self.retry_initial_delay,
            max_delay_ms=self.retry_max_delay,
            factor=self.retry_factor,
            jitter=self.retry_jitter,
            jitter_factor=self.retry_jitter_factor,
        )

    def proxy_pool(self) -> ProxyPool | None:
        """Build the proxy pool, or None when no usable proxy is configured."""
        if not self.proxy_list:
            return None

        pool = ProxyPool(
            max_failures=self.proxy_max_failures,
            cooldown_ms=self.proxy_cooldown_ms,
        )
        pool.add_from_list(self.proxy_list)
        return pool if len(pool) > 0 else None
