"""
Score Aggregator
Combines analyzer and oracle contributions into one risk score.

Order of operations:
1. Scam keyword in name/symbol -> 95, nothing else computed
2. clamp(50 + 0.4 * internal + 0.6 * external, 0, 100)
3. Known-safe token -> cap 15
4. Else verified stablecoin -> cap 20
5. Round half up
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity
from models.oracle import Checked, OracleResult, Unchecked, UncheckedReason
from models.risk import RiskLevel, risk_level_for
from .whitelist import is_known_safe_token, is_stablecoin, scam_keyword_in

logger = logging.getLogger("Scoring")

# ============================================
# WEIGHTS
# ============================================

BASE_SCORE = 50
INTERNAL_WEIGHT = 0.4
EXTERNAL_WEIGHT = 0.6
SCAM_SCORE = 95
KNOWN_SAFE_CAP = 15
STABLECOIN_CAP = 20
UNANALYZED_SOURCE_PENALTY = 15

# Derived findings that count towards the internal sum
INTERNAL_PATTERNS = frozenset({"unverified_old_contract"})

CONFIDENCE_BASE = 0.5
CONFIDENCE_SIGNALS = {
    "source_analyzed": 0.15,
    "ownership": 0.05,
    "liquidity": 0.05,
    "age": 0.05,
    "token_sniffer": 0.10,
    "goplus": 0.15,
    "creator_history": 0.10,
}

_DISABLED = Unchecked(UncheckedReason.DISABLED)


@dataclass
class Contributions:
    """Everything one run produced, ready for aggregation. None = did not run."""
    contract: ContractInfo
    code: Optional[AnalyzerResult] = None
    ownership: Optional[AnalyzerResult] = None
    liquidity: Optional[AnalyzerResult] = None
    behavior: Optional[AnalyzerResult] = None
    holders: Optional[AnalyzerResult] = None
    bytecode: Optional[AnalyzerResult] = None

    goplus: OracleResult = _DISABLED
    goplus_risk: AnalyzerResult = field(default_factory=lambda: AnalyzerResult(analyzed=False))
    token_sniffer: OracleResult = _DISABLED
    token_sniffer_risk: AnalyzerResult = field(default_factory=lambda: AnalyzerResult(analyzed=False))
    creator_history: OracleResult = _DISABLED
    creator_history_risk: AnalyzerResult = field(default_factory=lambda: AnalyzerResult(analyzed=False))

    @property
    def internal_results(self) -> List[AnalyzerResult]:
        return [r for r in (self.code, self.ownership, self.liquidity, self.behavior, self.bytecode) if r]

    @property
    def external_results(self) -> List[AnalyzerResult]:
        results = [self.goplus_risk, self.token_sniffer_risk, self.creator_history_risk]
        if self.holders:
            results.append(self.holders)
        return results


@dataclass(frozen=True)
class ScoreResult:
    score: int
    level: RiskLevel
    confidence: float
    findings: Tuple[Finding, ...]
    security_checks: Dict[str, bool]


# ============================================
# DETECTORS
# ============================================

def detect_scam_keyword(contract: ContractInfo) -> Optional[Finding]:
    keyword = scam_keyword_in(contract.name, contract.symbol)
    if not keyword:
        return None
    return Finding(
        "explicit_scam_warning", Severity.CRITICAL,
        f'Contract explicitly marked as scam: "{keyword}" found in name/symbol',
        "Name/Symbol Analysis", f'Token name/symbol contains "{keyword}"', 0,
    )


def suspicious_patterns(contract: ContractInfo) -> List[Finding]:
    """Old-but-quiet and old-but-unverified contracts"""
    if is_known_safe_token(contract.address):
        return []
    # block-height ages describe the chain, not the contract
    if contract.age_is_estimate:
        return []

    findings = []
    age, txs = contract.age_in_days, contract.transaction_count

    if age > 365 and txs < 5000:
        per_day = txs / age
        if per_day < 1 and (not contract.verified or age < 730):
            findings.append(Finding(
                "abandoned_or_suspicious", Severity.HIGH,
                f"Old contract ({age} days) with suspiciously low activity "
                f"({txs} tx, {per_day:.1f} tx/day)",
                "Pattern Analysis", None, 15,
            ))

    if not contract.verified and age > 30:
        findings.append(Finding(
            "unverified_old_contract", Severity.CRITICAL,
            f"Contract is {age} days old but source code is not verified",
            "Pattern Analysis", None, 20,
        ))

    return findings


def api_not_found(contract: ContractInfo, goplus: OracleResult) -> List[Finding]:
    """Signals derived from a contract being invisible to indexers and oracles"""
    source = "External API Analysis"

    # chain-read ages are estimates; only the explorer path can prove missing creation data
    missing_creation = not contract.has_creation_data and not contract.age_is_estimate
    if missing_creation or contract.transaction_count == 0:
        return [Finding(
            "contract_not_found", Severity.MEDIUM,
            "Contract does not exist on blockchain or has no activity - possible invalid address",
            source, None, 40,
        )]

    findings = []
    is_old = contract.age_in_days > 30

    if is_old and isinstance(goplus, Unchecked) and goplus.reason == UncheckedReason.NOT_FOUND:
        findings.append(Finding(
            "not_in_security_databases", Severity.MEDIUM,
            "Token not found in GoPlus security database despite being 30+ days old",
            source, None, 10,
        ))

    if is_old and isinstance(goplus, Checked):
        data = goplus.data
        if data.get("is_honeypot") is None and data.get("buy_tax") is None and data.get("sell_tax") is None:
            findings.append(Finding(
                "no_trading_data", Severity.MEDIUM,
                "No trading data found in security databases - possible inactive or abandoned token",
                source, None, 10,
            ))

    return findings


def derived_findings(c: Contributions) -> List[Finding]:
    return suspicious_patterns(c.contract) + api_not_found(c.contract, c.goplus)


# ============================================
# AGGREGATION
# ============================================

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def weighted_score(c: Contributions, derived: List[Finding]) -> float:
    internal = sum(r.score_delta for r in c.internal_results)
    if (c.code is None or not c.code.analyzed) and not c.contract.verified:
        internal += UNANALYZED_SOURCE_PENALTY

    external = sum(r.score_delta for r in c.external_results)
    for f in derived:
        if f.type in INTERNAL_PATTERNS:
            internal += f.score_delta
        else:
            external += f.score_delta

    raw = BASE_SCORE + INTERNAL_WEIGHT * internal + EXTERNAL_WEIGHT * external
    return max(0.0, min(100.0, raw))


def apply_overrides(score: float, contract: ContractInfo) -> float:
    if is_known_safe_token(contract.address):
        logger.info(f"Known safe token {contract.address} - capping risk at {KNOWN_SAFE_CAP}")
        return min(score, KNOWN_SAFE_CAP)
    if contract.verified and is_stablecoin(contract.symbol, contract.name):
        logger.info(f"Stablecoin {contract.symbol} - capping risk at {STABLECOIN_CAP}")
        return min(score, STABLECOIN_CAP)
    return score


def final_score(c: Contributions, scam: Optional[Finding], derived: List[Finding]) -> int:
    if scam:
        logger.warning(f"🚨 SCAM DETECTED: {scam.evidence}")
        return SCAM_SCORE
    return round_half_up(apply_overrides(weighted_score(c, derived), c.contract))


def confidence(c: Contributions) -> float:
    signals = {
        "source_analyzed": c.contract.verified and c.code is not None and c.code.analyzed,
        "ownership": c.ownership is not None and c.ownership.analyzed,
        "liquidity": c.liquidity is not None and c.liquidity.analyzed,
        "age": c.contract.age_in_days > 7 and not c.contract.age_is_estimate,
        "token_sniffer": isinstance(c.token_sniffer, Checked),
        "goplus": isinstance(c.goplus, Checked),
        "creator_history": isinstance(c.creator_history, Checked),
    }
    value = CONFIDENCE_BASE + sum(CONFIDENCE_SIGNALS[k] for k, present in signals.items() if present)
    return round(min(1.0, value), 2)


def security_checks(c: Contributions) -> Dict[str, bool]:
    code_types = {f.type for f in c.code.findings} if c.code else set()
    ownership = c.ownership.details if c.ownership else {}
    liquidity = c.liquidity.details if c.liquidity else {}
    goplus = c.goplus.data if isinstance(c.goplus, Checked) else {}

    def tax_over_limit(side: str) -> bool:
        tax = goplus.get(f"{side}_tax")
        return tax is not None and tax > 10

    return {
        "ownership_renounced": bool(ownership.get("is_renounced")),
        "liquidity_locked": bool(liquidity.get("lp_locked") or liquidity.get("lp_burned")),
        "source_verified": c.contract.verified,
        "proxy_contract": c.contract.is_proxy or bool(goplus.get("is_proxy")),
        "pausable": "pausable" in code_types or bool(goplus.get("transfer_pausable")),
        "blacklist_function": "honeypot" in code_types or bool(goplus.get("is_blacklisted")),
        "mint_function": "hiddenMint" in code_types or bool(goplus.get("is_mintable")),
        "high_tax": "highTax" in code_types or tax_over_limit("buy") or tax_over_limit("sell"),
        "max_tx_limit": "maxTransaction" in code_types,
        "self_destruct": "selfDestruct" in code_types or bool(goplus.get("selfdestruct")),
        "honeypot_risk": ("honeypot" in code_types or bool(goplus.get("is_honeypot"))
                          or bool(goplus.get("cannot_sell_all"))),
        "centralized_ownership": bool(ownership.get("is_centralized")),
    }


def compile_findings(c: Contributions, scam: Optional[Finding], derived: List[Finding]) -> Tuple[Finding, ...]:
    findings: List[Finding] = []
    if scam:
        findings.append(scam)
    findings.extend(derived)
    for result in c.internal_results + c.external_results:
        findings.extend(result.findings)
    return tuple(findings)


def score_contract(c: Contributions) -> ScoreResult:
    # keyword check happens once and feeds both the score and the findings
    scam = detect_scam_keyword(c.contract)
    derived = [] if scam else derived_findings(c)

    score = final_score(c, scam, derived)
    return ScoreResult(
        score=score,
        level=risk_level_for(score),
        confidence=confidence(c),
        findings=compile_findings(c, scam, derived),
        security_checks=security_checks(c),
    )
