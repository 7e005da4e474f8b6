"""
Token Sniffer Adapter Tests

Run: python -m pytest tests/test_token_sniffer.py -v
"""

import httpx
import pytest

from data_sources.token_sniffer import TokenSnifferAdapter, parse_report
from models.oracle import Checked, RateLimited, UncheckedReason

TOKEN = "0x1234567890abcdef1234567890abcdef12345678"


def adapter_for(handler, api_key="test-key", enabled=True) -> TokenSnifferAdapter:
    return TokenSnifferAdapter(enabled=enabled, api_key=api_key, base_url="https://sniffer.test/api/v2",
                               transport=httpx.MockTransport(handler))


class TestEnablement:

    def test_requires_api_key(self):
        assert adapter_for(lambda r: httpx.Response(200), api_key="").enabled is False

    def test_requires_flag(self):
        assert adapter_for(lambda r: httpx.Response(200), enabled=False).enabled is False


@pytest.mark.asyncio
class TestCheck:

    async def test_report_is_parsed(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"score": 80, "scam": True, "warnings": ["a", "b"]})

        result = await adapter_for(handler).check(TOKEN, "ethereum")

        assert isinstance(result, Checked)
        assert result.data["scam"] is True
        assert seen["path"] == f"/api/v2/tokens/eth/{TOKEN}"
        assert seen["auth"] == "Bearer test-key"

    async def test_not_in_database_is_checked_and_neutral(self):
        adapter = adapter_for(lambda r: httpx.Response(404))
        result = await adapter.check(TOKEN, "ethereum")

        assert isinstance(result, Checked)
        assert result.data["in_database"] is False
        assert adapter.risk(result).score_delta == 0

    async def test_bad_key_is_unchecked(self):
        result = await adapter_for(lambda r: httpx.Response(401)).check(TOKEN, "ethereum")
        assert result.reason == UncheckedReason.ERROR

    async def test_rate_limited(self):
        result = await adapter_for(lambda r: httpx.Response(429)).check(TOKEN, "ethereum")
        assert isinstance(result, RateLimited)

    async def test_disabled_without_key(self):
        result = await adapter_for(lambda r: httpx.Response(200), api_key="").check(TOKEN, "ethereum")
        assert result.reason == UncheckedReason.DISABLED


class TestRisk:

    def test_scam_report(self):
        adapter = adapter_for(lambda r: httpx.Response(200))
        data = parse_report({
            "score": 75, "scam": True,
            "warnings": ["w1", "w2", "w3", "w4", "w5", "w6"],
            "exploits": ["reentrancy"],
            "tests": {"is_honeypot": True, "hidden_owner": False},
        })

        result = adapter.risk(Checked(data))

        assert result.has("scam_database_flagged")
        assert result.has("high_scam_score")
        assert result.has("known_exploits")
        assert result.has("honeypot_token_sniffer")
        # warnings capped at 15
        assert result.score_delta == 25 + 20 + 15 + 30 + 25

    def test_moderate_score(self):
        adapter = adapter_for(lambda r: httpx.Response(200))
        result = adapter.risk(Checked(parse_report({"score": 60})))

        assert result.has("moderate_scam_score")
        assert result.score_delta == 10
