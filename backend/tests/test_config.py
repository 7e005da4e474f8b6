"""
Configuration and Monitoring Tests
Environment loading, secret hiding and Sentry event scrubbing

Run: python -m pytest tests/test_config.py -v
"""

import pytest

from infrastructure import config as config_module
from infrastructure.config import Environment, get_config, get_secrets, reload_config
from sentry_config import filter_sensitive_data, init_sentry


@pytest.fixture
def env(monkeypatch):
    """Set environment variables, reload config, restore afterwards"""
    def _set(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        reload_config()
        return get_config()

    yield _set
    monkeypatch.undo()
    reload_config()


class TestConfig:

    def test_defaults(self, env):
        cfg = env()

        assert cfg.max_batch_size == 10
        assert cfg.cache.ttl_seconds == 3600
        assert cfg.blockchain.default_chain == "ethereum"
        assert cfg.api.analysis_timeout == 30
        assert cfg.api.analysis_timeout > cfg.api.oracle_timeout
        assert set(cfg.supported_chains) == {"ethereum", "polygon", "arbitrum", "optimism", "base"}

    def test_environment_overrides(self, env):
        cfg = env(
            CACHE_TTL_SECONDS="120",
            BASE_RPC_URL="https://rpc.example/base",
            ENABLE_GOPLUS="false",
            ORACLE_TIMEOUT="3",
            ANALYSIS_TIMEOUT="45",
        )

        assert cfg.cache.ttl_seconds == 120
        assert cfg.rpc_url("Base") == "https://rpc.example/base"
        assert cfg.features.enable_goplus is False
        assert cfg.api.oracle_timeout == 3
        assert cfg.api.analysis_timeout == 45

    def test_unknown_chain_uses_ethereum_rpc(self, env):
        cfg = env()
        assert cfg.rpc_url("fantom") == cfg.blockchain.rpc_urls["ethereum"]

    def test_production_hardening(self, env):
        cfg = env(SCORER_ENV="production", LOG_LEVEL="DEBUG")

        assert cfg.environment == Environment.PRODUCTION
        assert cfg.debug is False
        assert cfg.monitoring.log_level == "WARNING"

    def test_to_dict_hides_dsn(self, env):
        cfg = env(SENTRY_DSN="https://key@sentry.example/1")
        assert "sentry_dsn" not in cfg.to_dict()["monitoring"]

    def test_secrets_come_from_environment(self, env):
        env(ETHERSCAN_API_KEY="abc123")
        assert get_secrets().get("ETHERSCAN_API_KEY") == "abc123"
        assert get_secrets().get("GOPLUS_API_KEY", "none") == "none"

    def test_reload_replaces_module_instance(self, env):
        before = config_module.config
        env()
        assert config_module.config is not before


class TestSentry:

    def test_disabled_without_dsn(self, env, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        env()
        assert init_sentry() is False

    def test_request_secrets_are_filtered(self):
        event = {
            "request": {
                "data": {"api_key": "k", "contract_address": "0xabc"},
                "query_string": "module=contract&apikey=secret",
            }
        }

        filtered = filter_sensitive_data(event, None)

        assert filtered["request"]["data"]["api_key"] == "[FILTERED]"
        assert filtered["request"]["data"]["contract_address"] == "0xabc"
        assert filtered["request"]["query_string"] == "[FILTERED]"

    def test_exception_values_are_filtered(self):
        event = {"exception": {"values": [{"value": "GET https://api.etherscan.io?apikey=secret failed"},
                                          {"value": "division by zero"}]}}

        values = filter_sensitive_data(event, None)["exception"]["values"]

        assert values[0]["value"] == "[FILTERED - sensitive data]"
        assert values[1]["value"] == "division by zero"
