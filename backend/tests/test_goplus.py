"""
GoPlus Adapter Tests
HTTP behaviour via httpx.MockTransport; scoring via parsed payloads

Run: python -m pytest tests/test_goplus.py -v
"""

import httpx
import pytest

from data_sources.goplus import GoPlusAdapter, parse_token_data
from models.oracle import Checked, RateLimited, Unchecked, UncheckedReason

TOKEN = "0x1234567890abcdef1234567890abcdef12345678"


def adapter_for(handler, enabled=True) -> GoPlusAdapter:
    return GoPlusAdapter(enabled=enabled, api_key="", base_url="https://goplus.test/api/v1",
                         transport=httpx.MockTransport(handler))


def ok_payload(token_data: dict) -> dict:
    return {"code": 1, "message": "OK", "result": {TOKEN: token_data}}


class TestParsing:

    def test_flags_and_taxes(self):
        parsed = parse_token_data({"is_honeypot": "1", "is_mintable": "0", "buy_tax": "0.15", "sell_tax": ""})

        assert parsed["is_honeypot"] is True
        assert parsed["is_mintable"] is False
        assert parsed["hidden_owner"] is None
        assert parsed["buy_tax"] == 15.0
        assert parsed["sell_tax"] is None


@pytest.mark.asyncio
class TestCheck:

    async def test_checked(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["query"] = dict(request.url.params)
            return httpx.Response(200, json=ok_payload({"is_honeypot": "0"}))

        result = await adapter_for(handler).check(TOKEN, "base")

        assert isinstance(result, Checked)
        assert result.data["is_honeypot"] is False
        assert seen["path"].endswith("/token_security/8453")
        assert seen["query"]["contract_addresses"] == TOKEN

    async def test_rate_limited(self):
        result = await adapter_for(lambda r: httpx.Response(429, headers={"Retry-After": "30"})).check(TOKEN, "ethereum")

        assert isinstance(result, RateLimited)
        assert result.retry_after == 30

    async def test_token_missing_from_result(self):
        result = await adapter_for(
            lambda r: httpx.Response(200, json={"code": 1, "result": {}})
        ).check(TOKEN, "ethereum")

        assert isinstance(result, Unchecked)
        assert result.reason == UncheckedReason.NOT_FOUND

    async def test_server_error(self):
        result = await adapter_for(lambda r: httpx.Response(500)).check(TOKEN, "ethereum")
        assert result == Unchecked(UncheckedReason.ERROR, "HTTP 500")

    async def test_transport_failure_never_raises(self):
        def handler(request):
            raise httpx.ConnectError("boom")

        result = await adapter_for(handler).check(TOKEN, "ethereum")
        assert result.reason == UncheckedReason.ERROR

    async def test_disabled(self):
        def handler(request):
            raise AssertionError("disabled adapter must not call the API")

        result = await adapter_for(handler, enabled=False).check(TOKEN, "ethereum")
        assert result.reason == UncheckedReason.DISABLED


class TestRisk:

    def test_honeypot_with_high_sell_tax(self):
        adapter = GoPlusAdapter(enabled=True, api_key="")
        data = parse_token_data({"is_honeypot": "1", "sell_tax": "0.25", "buy_tax": "0.01"})

        result = adapter.risk(Checked(data))

        assert result.has("honeypot_detected")
        assert result.has("high_sell_tax_goplus")
        assert not result.has("high_buy_tax_goplus")
        assert result.score_delta == 30 + 10

    def test_unverified_proxy(self):
        adapter = GoPlusAdapter(enabled=True, api_key="")
        result = adapter.risk(Checked(parse_token_data({"is_proxy": "1", "is_open_source": "0"})))

        assert result.has("proxy_not_verified")
        assert result.score_delta == 5

    def test_rate_limited_is_neutral_with_info_finding(self):
        adapter = GoPlusAdapter(enabled=True, api_key="")
        result = adapter.risk(RateLimited())

        assert result.score_delta == 0
        assert result.has("goplus_rate_limited")

    def test_disabled_contributes_nothing(self):
        adapter = GoPlusAdapter(enabled=False, api_key="")
        result = adapter.risk(Unchecked(UncheckedReason.DISABLED))

        assert result.score_delta == 0
        assert result.findings == ()
