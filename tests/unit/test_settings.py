"""Unit tests for FinanceSettings and endpoint catalog loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from yfclient.config.endpoints import EndpointConfig, load_endpoint_catalog
from yfclient.config.settings import FinanceSettings


# ---------------------------------------------------------------------------
# FinanceSettings
# ---------------------------------------------------------------------------


class TestFinanceSettings:
    def test_defaults_are_correct(self):
        settings = FinanceSettings()

        assert settings.timeout == 30000
        assert settings.verify is True
        assert settings.username is None
        assert settings.password is None
        assert settings.lang == "en-US"
        assert settings.region == "US"
        assert settings.cors_domain == "finance.yahoo.com"
        assert settings.log_level == "INFO"
        assert settings.proxy_list is None
        assert settings.proxy_max_failures == 3
        assert settings.proxy_cooldown_ms == 300000
        assert settings.retry_enabled is True
        assert settings.retry_max_retries == 3
        assert settings.retry_initial_delay == 1000
        assert settings.retry_max_delay == 30000
        assert settings.retry_factor == 2.0
        assert settings.retry_jitter is True
        assert settings.retry_jitter_factor == 0.3

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("YFINANCE_RETRY_MAX_RETRIES", "5")
        monkeypatch.setenv("YFINANCE_RETRY_ENABLED", "false")
        monkeypatch.setenv("YFINANCE_TIMEOUT", "1500")
        monkeypatch.setenv("YFINANCE_LANG", "de-DE")

        settings = FinanceSettings()

        assert settings.retry_max_retries == 5
        assert settings.retry_enabled is False
        assert settings.timeout == 1500
        assert settings.lang == "de-DE"

    def test_query_defaults(self):
        assert FinanceSettings(lang="fr-FR", region="FR", cors_domain="fr.finance.yahoo.com").query_defaults() == {
            "lang": "fr-FR",
            "region": "FR",
            "corsDomain": "fr.finance.yahoo.com",
        }

    def test_log_level_normalized(self):
        assert FinanceSettings(log_level="debug").log_level == "DEBUG"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            FinanceSettings(log_level="chatty")

    def test_rejects_out_of_range_jitter(self):
        with pytest.raises(ValidationError):
            FinanceSettings(retry_jitter_factor=1.5)

    def test_retry_policy_mirrors_settings(self):
        policy = FinanceSettings(
            retry_enabled=False,
            retry_max_retries=7,
            retry_initial_delay=200,
            retry_max_delay=900,
            retry_factor=3.0,
            retry_jitter=False,
            retry_jitter_factor=0.1,
        ).retry_policy()

        assert policy.enabled is False
        assert policy.max_retries == 7
        assert policy.initial_delay_ms == 200
        assert policy.max_delay_ms == 900
        assert policy.factor == 3.0
        assert policy.jitter is False
        assert policy.jitter_factor == 0.1

    def test_proxy_pool_none_without_list(self):
        assert FinanceSettings().proxy_pool() is None

    def test_proxy_pool_none_when_nothing_parses(self):
        assert FinanceSettings(proxy_list="garbage\n# comment").proxy_pool() is None

    def test_proxy_pool_from_list(self):
        pool = FinanceSettings(
            proxy_list="http://p1:8080\nsocks5://p2:1080",
            proxy_max_failures=5,
        ).proxy_pool()

        assert pool is not None
        assert len(pool) == 2

    def test_instances_are_independent(self):
        a = FinanceSettings(retry_max_retries=1)
        b = FinanceSettings(retry_max_retries=2)
        assert a.retry_max_retries != b.retry_max_retries


# ---------------------------------------------------------------------------
# Endpoint catalog
# ---------------------------------------------------------------------------


class TestLoadEndpointCatalog:
    def test_packaged_catalog(self):
        catalog = load_endpoint_catalog()

        assert "quoteSummary" in catalog.endpoints
        assert catalog.endpoints["quoteSummary"].per_symbol is True
        assert catalog.endpoints["quotes"].per_symbol is False
        assert catalog.endpoints["insights"].per_symbol is True
        assert catalog.endpoints["premium_insights"].premium is True
        assert catalog.endpoints["insights"].premium is False
        assert catalog.modules["calendarEvents"].convert_dates == [
            "earningsDate",
            "exDividendDate",
            "dividendDate",
        ]
        assert catalog.modules["earnings"].convert_dates == []

    def test_missing_file_returns_empty(self, tmp_path: Path):
        catalog = load_endpoint_catalog(tmp_path / "nope.yaml")
        assert catalog.endpoints == {}
        assert catalog.modules == {}

    def test_invalid_yaml_returns_empty(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("endpoints: [unclosed", encoding="utf-8")
        assert load_endpoint_catalog(path).endpoints == {}

    def test_missing_endpoints_key(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text(yaml.safe_dump({"modules": {}}), encoding="utf-8")
        assert load_endpoint_catalog(path).endpoints == {}

    def test_invalid_entry_skipped(self, tmp_path: Path):
        path = tmp_path / "partial.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "endpoints": {
                        "good": {"path": "https://x/{symbol}", "response_field": "thing"},
                        "bad": {"path": "https://x/missing-field"},
                    }
                }
            ),
            encoding="utf-8",
        )
        catalog = load_endpoint_catalog(path)
        assert list(catalog.endpoints) == ["good"]

    def test_query_params_parsed(self):
        config = EndpointConfig.model_validate(
            {
                "path": "https://x/y",
                "response_field": "y",
                "query": {"interval": {"default": "1d", "options": ["1d", "1wk"]}},
            }
        )
        assert config.query["interval"].required is False
        assert config.query["interval"].default == "1d"
        assert config.query["interval"].options == ["1d", "1wk"]
