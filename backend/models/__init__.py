"""
Domain types for contract risk analysis
"""

from .contract import CHAIN_IDS, Chain, ContractInfo, ScanDepth, chain_id
from .findings import AnalyzerResult, Finding, Severity
from .oracle import Checked, OracleResult, RateLimited, Unchecked, UncheckedReason, is_checked
from .risk import RiskLevel, RiskRecord, risk_level_for

__all__ = [
    "CHAIN_IDS",
    "Chain",
    "ContractInfo",
    "ScanDepth",
    "chain_id",
    "AnalyzerResult",
    "Finding",
    "Severity",
    "Checked",
    "OracleResult",
    "RateLimited",
    "Unchecked",
    "UncheckedReason",
    "is_checked",
    "RiskLevel",
    "RiskRecord",
    "risk_level_for",
]
