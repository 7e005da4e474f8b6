"""
Pytest Configuration for Contract Risk Scorer Tests

Run all tests: python -m pytest tests/ -v
Run unit tests only: python -m pytest tests/ -v -m "not integration"
Run integration tests: python -m pytest tests/ -v -m integration
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

from infrastructure.errors import UpstreamUnavailableError
from models.contract import ContractInfo


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeExplorer:
    """In-memory stand-in for EtherscanClient"""

    def __init__(
        self,
        contract_info: Optional[Dict[str, Any]] = None,
        transactions: Optional[Dict[str, List[Dict]]] = None,
        token_transfers: Optional[Dict[str, List[Dict]]] = None,
        source_codes: Optional[Dict[str, Dict]] = None,
        fail: Optional[set] = None,
    ):
        self.contract_info = contract_info or {}
        self.transactions = {k.lower(): v for k, v in (transactions or {}).items()}
        self.token_transfers = {k.lower(): v for k, v in (token_transfers or {}).items()}
        self.source_codes = {k.lower(): v for k, v in (source_codes or {}).items()}
        self.fail = fail or set()
        self.calls: List[str] = []

    def _maybe_fail(self, method: str):
        self.calls.append(method)
        if method in self.fail:
            raise UpstreamUnavailableError("etherscan", f"Etherscan error: {method} unavailable")

    async def get_contract_info(self, address: str) -> Dict[str, Any]:
        self._maybe_fail("get_contract_info")
        return {"address": address, **self.contract_info}

    async def get_transactions(self, address: str, page: int = 1, offset: int = 100, sort: str = "desc"):
        self._maybe_fail("get_transactions")
        return self.transactions.get(address.lower(), [])[:offset]

    async def get_token_transfers(self, address=None, contract_address=None, page=1, offset=100, sort="desc"):
        self._maybe_fail("get_token_transfers")
        return self.token_transfers.get((contract_address or address or "").lower(), [])[:offset]

    async def get_source_code(self, address: str):
        self._maybe_fail("get_source_code")
        return self.source_codes.get(address.lower())


class FakeReader:
    """In-memory stand-in for ChainReader"""

    def __init__(
        self,
        codes: Optional[Dict[str, str]] = None,
        owner: Optional[str] = None,
        token_info: Optional[Dict[str, Any]] = None,
        supplies: Optional[Dict[str, int]] = None,
        balances: Optional[Dict[tuple, int]] = None,
        tx_count: int = 0,
        block_number: int = 19_000_000,
        fail: Optional[set] = None,
    ):
        self.codes = {k.lower(): v for k, v in (codes or {}).items()}
        self.owner = owner
        self.token_info = token_info or {"name": None, "symbol": None, "decimals": 18, "total_supply": 0}
        self.supplies = {k.lower(): v for k, v in (supplies or {}).items()}
        self.balances = {(t.lower(), h.lower()): v for (t, h), v in (balances or {}).items()}
        self.tx_count = tx_count
        self.block_number = block_number
        self.fail = fail or set()

    def _maybe_fail(self, method: str):
        if method in self.fail:
            raise UpstreamUnavailableError("rpc", f"RPC {method} failed")

    async def get_code(self, address: str) -> str:
        self._maybe_fail("get_code")
        return self.codes.get(address.lower(), "0x")

    async def get_transaction_count(self, address: str) -> int:
        self._maybe_fail("get_transaction_count")
        return self.tx_count

    async def get_block_number(self) -> int:
        self._maybe_fail("get_block_number")
        return self.block_number

    async def get_owner(self, address: str) -> Optional[str]:
        self._maybe_fail("get_owner")
        return self.owner.lower() if self.owner else None

    async def get_token_info(self, address: str) -> Dict[str, Any]:
        self._maybe_fail("get_token_info")
        return dict(self.token_info)

    async def total_supply(self, address: str) -> int:
        self._maybe_fail("total_supply")
        return self.supplies.get(address.lower(), 0)

    async def balance_of(self, token: str, holder: str) -> int:
        self._maybe_fail("balance_of")
        return self.balances.get((token.lower(), holder.lower()), 0)


class MockClock:
    """Settable clock for TTL tests"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# =============================================================================
# FIXTURES - Shared across all test files
# =============================================================================

@pytest.fixture
def test_addresses():
    """Standard test addresses on Ethereum mainnet"""
    return {
        "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        "UNKNOWN": "0x1234567890abcdef1234567890abcdef12345678",
        "CREATOR": "0x9999999999999999999999999999999999999999",
        "OWNER": "0x5E047DeB5eb22F4E4A7f2207087369468575e3EF",
        "PAIR": "0xb4e16d0168e52d35cacd2c6185b44281ec28c9dc",
    }


@pytest.fixture
def mock_clock():
    return MockClock()


@pytest.fixture
def make_contract(test_addresses):
    """Factory for ContractInfo with sensible explorer-path defaults"""
    def _make(**overrides) -> ContractInfo:
        values = {
            "address": test_addresses["UNKNOWN"],
            "chain": "ethereum",
            "verified": True,
            "source_code": "pragma solidity ^0.8.0; contract Token {}",
            "creator": test_addresses["CREATOR"],
            "age_in_days": 200,
            "transaction_count": 500,
            "creation_tx_hash": "0xabc",
        }
        values.update(overrides)
        return ContractInfo(**values)
    return _make


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (use real APIs)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
