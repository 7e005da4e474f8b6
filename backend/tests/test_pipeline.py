"""
Risk Pipeline Tests
End-to-end runs over in-memory collaborators: caching, scan depth gating,
analyzer timeouts, batch isolation and health.

Run: python -m pytest tests/test_pipeline.py -v
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from conftest import FakeExplorer, FakeReader, MockClock
from analyzers import bytecode, liquidity
from data_sources.creator_history import CreatorHistoryAdapter
from data_sources.goplus import GoPlusAdapter
from data_sources.token_sniffer import TokenSnifferAdapter
from infrastructure.config import get_config
from infrastructure.errors import AnalysisFailedError, ResolutionFailureError, UpstreamUnavailableError
from infrastructure.result_cache import RiskCache
from models.findings import AnalyzerResult
from models.oracle import Checked, Unchecked, UncheckedReason
from services.resolver import DataSourceResolver
from services.risk_pipeline import RiskPipeline

GOOD = "0x1234567890abcdef1234567890abcdef12345678"
BAD = "0x000000000000000000000000000000000000dead"

EXPLORER_INFO = {
    "source_code": "pragma solidity ^0.8.0; contract Token { function transfer() public {} }",
    "contract_name": "Token",
    "verified": True,
    "is_proxy": False,
    "creator": "0x9999999999999999999999999999999999999999",
    "creation_tx_hash": "0xabc",
    "age_in_days": 400,
    "transaction_count": 12000,
}


class PickyExplorer(FakeExplorer):
    """Explorer that has never heard of one address"""

    def __init__(self, missing: str, **kwargs):
        super().__init__(**kwargs)
        self.missing = missing.lower()

    async def get_contract_info(self, address):
        if address.lower() == self.missing:
            self.calls.append("get_contract_info")
            raise UpstreamUnavailableError("etherscan", "Etherscan error: contract not found")
        return await super().get_contract_info(address)


class SlowReader(FakeReader):
    async def get_owner(self, address):
        await asyncio.sleep(1)
        return None


class SlowCreatorHistory(CreatorHistoryAdapter):
    """Creator history that walks several pages before answering"""

    async def check(self, address, chain="ethereum"):
        await asyncio.sleep(0.2)
        return Checked({"total_contracts_deployed": 3})


def build(cache, explorer=None, reader=None, creator_history=None, timeout=2.0,
          analysis_timeout=None) -> RiskPipeline:
    explorer = explorer or FakeExplorer(EXPLORER_INFO)
    reader = reader or FakeReader()
    sourcify = AsyncMock()
    sourcify.get_source.return_value = None

    resolver = DataSourceResolver(lambda chain: explorer, sourcify, lambda chain: reader, average_block_time=12.0)
    return RiskPipeline(
        resolver=resolver,
        cache=cache,
        goplus=GoPlusAdapter(enabled=False, api_key=""),
        token_sniffer=TokenSnifferAdapter(enabled=False, api_key=""),
        creator_history=creator_history or CreatorHistoryAdapter(lambda chain: explorer, enabled=False),
        explorer_for=lambda chain: explorer,
        reader_for=lambda chain: reader,
        timeout=timeout,
        analysis_timeout=analysis_timeout or timeout,
    )


@pytest.fixture
def clock():
    return MockClock()


@pytest_asyncio.fixture
async def cache(tmp_path, clock):
    store = RiskCache(str(tmp_path / "pipeline.db"), ttl_seconds=3600, clock=clock)
    await store.initialize()
    yield store
    await store.close()


@pytest.mark.asyncio
class TestAnalyze:

    async def test_record_shape(self, cache):
        record = await build(cache).analyze(GOOD, "ethereum", "quick")

        assert 0 <= record["risk_score"] <= 100
        assert record["risk_level"] in ("low", "medium", "high", "critical")
        assert 0.0 <= record["confidence"] <= 1.0
        assert record["scan_depth"] == "quick"
        assert record["data_source_trace"] == ["try_primary", "verified"]
        assert record["contract_info"]["address"] == GOOD
        assert record["recommendations"]
        assert record["external_checks"]["goplus"]["checked"] is False
        assert record["external_checks"]["goplus"]["reason"] == "disabled"
        assert record["external_checks"]["creator_history"]["reason"] == "disabled"
        assert isinstance(record["analysis_time_ms"], int)

    async def test_usdc_quick_scan_is_low_risk(self, cache, test_addresses):
        explorer = FakeExplorer({**EXPLORER_INFO, "contract_name": "FiatTokenProxy", "is_proxy": True})
        reader = FakeReader(owner=test_addresses["OWNER"], token_info={"name": "USD Coin", "symbol": "USDC"})

        record = await build(cache, explorer=explorer, reader=reader).analyze(
            test_addresses["USDC"].lower(), "ethereum", "quick"
        )

        assert record["risk_score"] <= 15
        assert record["risk_level"] == "low"

    async def test_chain_is_case_insensitive(self, cache):
        record = await build(cache).analyze(GOOD, "Ethereum", "quick")
        assert record["contract_info"]["chain"] == "ethereum"

    async def test_cache_hit_skips_resolution(self, cache):
        explorer = FakeExplorer(EXPLORER_INFO)
        pipeline = build(cache, explorer=explorer)

        first = await pipeline.analyze(GOOD, "ethereum", "quick")
        second = await pipeline.analyze(GOOD.upper().replace("0X", "0x"), "ethereum", "quick")

        assert second["risk_score"] == first["risk_score"]
        assert second["analysis_time_ms"] == first["analysis_time_ms"]
        assert explorer.calls.count("get_contract_info") == 1

    async def test_expired_entry_reruns(self, cache, clock):
        explorer = FakeExplorer(EXPLORER_INFO)
        pipeline = build(cache, explorer=explorer)

        await pipeline.analyze(GOOD, "ethereum", "quick")
        clock.advance(3601)
        await pipeline.analyze(GOOD, "ethereum", "quick")

        assert explorer.calls.count("get_contract_info") == 2

    async def test_quick_scan_skips_liquidity_and_holders(self, cache):
        explorer = FakeExplorer(EXPLORER_INFO)
        await build(cache, explorer=explorer).analyze(GOOD, "ethereum", "quick")
        assert "get_token_transfers" not in explorer.calls

    async def test_deep_scan_runs_liquidity_and_holders(self, cache):
        explorer = FakeExplorer(EXPLORER_INFO)
        await build(cache, explorer=explorer).analyze(GOOD, "ethereum", "deep")
        assert "get_token_transfers" in explorer.calls

    async def test_creator_history_only_on_deep_scans(self, cache):
        creator_history = MagicMock()
        creator_history.name = "creator_history"
        creator_history.check = AsyncMock(return_value=Checked({"total_contracts_deployed": 1}))
        creator_history.risk.return_value = AnalyzerResult()
        pipeline = build(cache, creator_history=creator_history)

        quick = await pipeline.analyze(GOOD, "ethereum", "quick")
        creator_history.check.assert_not_awaited()

        deep = await pipeline.analyze(GOOD, "ethereum", "deep")
        creator_history.check.assert_awaited_once_with(EXPLORER_INFO["creator"], "ethereum")
        assert deep["external_checks"]["creator_history"]["checked"] is True
        assert deep["confidence"] > quick["confidence"]

    async def test_slow_analyzer_degrades_confidence_not_the_run(self, tmp_path):
        normal_cache = RiskCache(str(tmp_path / "normal.db"))
        slow_cache = RiskCache(str(tmp_path / "slow.db"))
        await normal_cache.initialize()
        await slow_cache.initialize()
        try:
            normal = await build(normal_cache).analyze(GOOD, "ethereum", "quick")
            slow = await build(slow_cache, reader=SlowReader(), timeout=0.05).analyze(GOOD, "ethereum", "quick")
        finally:
            await normal_cache.close()
            await slow_cache.close()

        errors = [v for v in slow["vulnerabilities"] if v["type"] == "analysis_error"]
        assert len(errors) == 1
        assert "timed out" in errors[0]["description"]
        assert slow["confidence"] < normal["confidence"]

    async def test_unresolvable_contract_raises(self, cache):
        explorer = FakeExplorer(fail={"get_contract_info"})
        with pytest.raises(ResolutionFailureError):
            await build(cache, explorer=explorer).analyze(BAD, "ethereum", "quick")
        assert (await cache.stats())["entries"] == 0

    async def test_unexpected_error_becomes_analysis_failure(self, cache):
        pipeline = build(cache)
        pipeline.resolver = AsyncMock()
        pipeline.resolver.resolve.side_effect = RuntimeError("boom")

        with pytest.raises(AnalysisFailedError) as exc:
            await pipeline.analyze(GOOD, "ethereum", "quick")

        assert exc.value.details["contract_address"] == GOOD
        assert isinstance(exc.value.__cause__, RuntimeError)


@pytest.mark.asyncio
class TestFallbackPath:

    @staticmethod
    def chain_only():
        explorer = FakeExplorer(fail={"get_contract_info"})
        reader = FakeReader(codes={GOOD: "0x6080604052"}, tx_count=1, block_number=19_000_000)
        return explorer, reader

    async def test_quick_scan_reads_bytecode_only(self, cache):
        explorer, reader = self.chain_only()
        record = await build(cache, explorer=explorer, reader=reader).analyze(GOOD, "ethereum", "quick")

        assert record["data_source_trace"][-2:] == ["fallback_chain_read", "unverified"]
        assert record["contract_info"]["fallback_mode"] is True
        assert record["contract_info"]["age_is_estimate"] is True
        assert explorer.calls == ["get_contract_info"]
        assert {v["source"] for v in record["vulnerabilities"]} <= {bytecode.SOURCE}

    async def test_estimated_age_does_not_inflate_score(self, cache):
        explorer, reader = self.chain_only()
        record = await build(cache, explorer=explorer, reader=reader).analyze(GOOD, "ethereum", "quick")

        types = {v["type"] for v in record["vulnerabilities"]}
        assert "abandoned_or_suspicious" not in types
        assert "unverified_old_contract" not in types
        assert "contract_not_found" not in types
        # 50 + 0.4 * 15 for the unanalyzed source
        assert record["risk_score"] == 56
        assert record["risk_level"] == "medium"

    async def test_deep_scan_skips_explorer_history_analyzers(self, cache):
        explorer, reader = self.chain_only()
        record = await build(cache, explorer=explorer, reader=reader).analyze(GOOD, "ethereum", "deep")

        assert "get_transactions" not in explorer.calls
        assert {v["source"] for v in record["vulnerabilities"]} <= {bytecode.SOURCE, liquidity.SOURCE}
        assert record["risk_score"] < 60


@pytest.mark.asyncio
class TestTimeouts:

    async def test_budgets_default_from_config(self, cache):
        pipeline = RiskPipeline(
            resolver=AsyncMock(), cache=cache, goplus=None, token_sniffer=None, creator_history=None,
            explorer_for=lambda chain: None, reader_for=lambda chain: None,
        )
        api = get_config().api
        assert pipeline.timeout == api.oracle_timeout
        assert pipeline.analysis_timeout == api.analysis_timeout
        assert pipeline.analysis_timeout > pipeline.timeout

    async def test_creator_history_gets_the_fan_out_budget(self, cache):
        pipeline = build(cache, creator_history=SlowCreatorHistory(lambda chain: None),
                         timeout=0.05, analysis_timeout=2.0)
        record = await pipeline.analyze(GOOD, "ethereum", "deep")

        assert record["external_checks"]["creator_history"]["checked"] is True

    async def test_single_call_oracles_keep_the_short_budget(self, cache):
        pipeline = build(cache, timeout=0.05, analysis_timeout=2.0)
        slow = SlowCreatorHistory(lambda chain: None)

        result = await pipeline._consult(slow, GOOD, "ethereum")

        assert isinstance(result, Unchecked)
        assert result.reason == UncheckedReason.ERROR


@pytest.mark.asyncio
class TestBatch:

    async def test_failure_is_isolated(self, cache):
        explorer = PickyExplorer(BAD, contract_info=EXPLORER_INFO)
        result = await build(cache, explorer=explorer).analyze_batch([GOOD, BAD], "ethereum", "quick")

        assert result["batch_size"] == 2
        assert result["successful"] == 1
        assert result["failed"] == 1

        ok, failed = result["results"]
        assert ok["contract_address"] == GOOD
        assert ok["status"] == "success"
        assert "risk_score" in ok["result"]
        assert failed["contract_address"] == BAD
        assert failed["status"] == "failed"
        assert failed["error"]["code"] == "RESOLUTION_FAILED"

    async def test_results_keep_input_order(self, cache):
        addresses = [GOOD, BAD, GOOD]
        explorer = PickyExplorer(BAD, contract_info=EXPLORER_INFO)
        result = await build(cache, explorer=explorer).analyze_batch(addresses)

        assert [r["contract_address"] for r in result["results"]] == addresses


@pytest.mark.asyncio
class TestHealth:

    async def test_healthy(self, cache):
        health = await build(cache, reader=FakeReader(block_number=123)).health()

        assert health["status"] == "ok"
        assert health["services"]["rpc"]["current_block"] == 123
        assert health["services"]["cache"]["status"] == "ok"
        assert health["services"]["goplus"]["status"] == "disabled"

    async def test_timestamp_is_utc(self, cache):
        health = await build(cache).health()
        assert datetime.fromisoformat(health["timestamp"]).utcoffset().total_seconds() == 0

    async def test_rpc_outage_degrades(self, cache):
        health = await build(cache, reader=FakeReader(fail={"get_block_number"})).health()

        assert health["status"] == "degraded"
        assert health["services"]["rpc"]["status"] == "error"

    async def test_closed_cache_degrades(self, tmp_path):
        health = await build(RiskCache(str(tmp_path / "closed.db"))).health()

        assert health["status"] == "degraded"
        assert health["services"]["cache"]["status"] == "error"
