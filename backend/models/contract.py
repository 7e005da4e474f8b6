"""
Contract metadata resolved once per analysis run.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class Chain(str, Enum):
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BASE = "base"


class ScanDepth(str, Enum):
    QUICK = "quick"
    DEEP = "deep"


# EVM chain IDs used by the explorer, Sourcify and GoPlus
CHAIN_IDS = {
    "ethereum": 1,
    "optimism": 10,
    "polygon": 137,
    "base": 8453,
    "arbitrum": 42161,
}


def chain_id(chain: str) -> int:
    return CHAIN_IDS.get(chain.lower(), 1)


@dataclass(frozen=True)
class ContractInfo:
    """
    Everything the analyzers know about a contract.

    Built by the resolver and never mutated afterwards. Use `with_updates`
    to derive a modified copy.
    """
    address: str
    chain: str
    verified: bool = False
    source_code: Optional[str] = None
    creator: Optional[str] = None
    age_in_days: int = 0
    transaction_count: int = 0
    is_proxy: bool = False
    fallback_mode: bool = False

    contract_name: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    creation_tx_hash: Optional[str] = None
    creation_date: Optional[str] = None
    implementation: Optional[str] = None
    age_is_estimate: bool = False

    def __post_init__(self):
        if self.age_in_days < 0:
            raise ValueError("age_in_days must be >= 0")
        if self.transaction_count < 0:
            raise ValueError("transaction_count must be >= 0")

    @property
    def has_source(self) -> bool:
        return self.verified and bool(self.source_code)

    @property
    def has_creation_data(self) -> bool:
        return bool(self.creator or self.creation_tx_hash)

    def with_updates(self, **changes) -> "ContractInfo":
        return replace(self, **changes)

    def summary(self) -> dict:
        """Public summary embedded in the risk record"""
        return {
            "address": self.address,
            "name": self.name or self.contract_name or "Unknown",
            "symbol": self.symbol or "UNKNOWN",
            "chain": self.chain,
            "creator": self.creator,
            "created": self.creation_date,
            "age_days": self.age_in_days,
            "age_is_estimate": self.age_is_estimate,
            "verified": self.verified,
            "is_proxy": self.is_proxy,
            "implementation": self.implementation,
            "transaction_count": self.transaction_count,
            "fallback_mode": self.fallback_mode,
        }
