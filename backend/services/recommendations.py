"""
Recommendations Generator
Actionable advice per risk level, plus improvement items for the deployer.
"""

from typing import Dict, Iterable, List

from models.contract import ContractInfo
from models.findings import Finding, Severity
from models.risk import RiskLevel

MAX_HIGH_WARNINGS = 5
NEW_CONTRACT_DAYS = 30
BATTLE_TESTED_DAYS = 365

LEVEL_EMOJIS = {
    RiskLevel.CRITICAL: "🚨",
    RiskLevel.HIGH: "⚠️",
    RiskLevel.MEDIUM: "⚡",
    RiskLevel.LOW: "✅",
}


def generate_recommendations(
    score: int,
    level: RiskLevel,
    contract: ContractInfo,
    findings: Iterable[Finding],
    ownership: Dict = None,
    liquidity: Dict = None,
) -> List[str]:
    ownership = ownership or {}
    liquidity = liquidity or {}
    findings = list(findings)
    recs: List[str] = []

    if level == RiskLevel.CRITICAL:
        recs.append("CRITICAL: DO NOT INTERACT - Multiple critical red flags detected")
        recs.extend(f"CRITICAL: {f.description}" for f in findings if f.severity == Severity.CRITICAL)
        recs.append("RECOMMENDATION: Avoid this contract entirely until issues are resolved")
        return recs

    if level == RiskLevel.HIGH:
        recs.append("WARNING: HIGH RISK - Proceed with extreme caution")
        severe = [f for f in findings if f.severity in (Severity.HIGH, Severity.CRITICAL)]
        recs.extend(f"WARNING: {f.description}" for f in severe[:MAX_HIGH_WARNINGS])
        recs.append("RECOMMENDATION: Only interact with small amounts and be prepared to exit")
        return recs

    if level == RiskLevel.MEDIUM:
        recs.append("CAUTION: MEDIUM RISK - Some concerns identified")
        if not contract.verified:
            recs.append("Contract source code is not verified - unable to audit")
        if ownership.get("is_centralized"):
            recs.append("Single address controls contract - centralization risk")
        if not liquidity.get("lp_locked") and not liquidity.get("lp_burned"):
            recs.append("Liquidity is not locked - potential rug pull risk")
        if 0 < contract.age_in_days < NEW_CONTRACT_DAYS:
            recs.append(f"Contract is only {contract.age_in_days} days old - limited track record")
        recs.append("RECOMMENDATION: Do your own research and only invest what you can afford to lose")
        return recs

    recs.append("SAFE: Low risk detected - Contract appears legitimate")
    if ownership.get("is_renounced"):
        recs.append("Ownership has been renounced - immutable contract")
    if liquidity.get("lp_burned"):
        recs.append("Liquidity tokens burned - cannot be removed")
    elif liquidity.get("lp_locked"):
        recs.append("Liquidity tokens locked - reduced rug pull risk")
    if contract.verified:
        recs.append("Source code is verified and can be audited")
    if contract.age_in_days > BATTLE_TESTED_DAYS:
        recs.append(f"Contract has been active for {contract.age_in_days} days - battle-tested")

    if score > 20:
        recs.append("RECOMMENDATION: Still perform your own research before investing large amounts")
    else:
        recs.append("RECOMMENDATION: Contract appears safe, but always verify independently")
    return recs


def generate_improvements(
    contract: ContractInfo,
    security_checks: Dict[str, bool],
    findings: Iterable[Finding],
    ownership: Dict = None,
    liquidity: Dict = None,
) -> List[str]:
    """What the deployer could change to lower the score"""
    ownership = ownership or {}
    liquidity = liquidity or {}
    types = {f.type for f in findings}
    items = []

    if not security_checks.get("source_verified"):
        items.append("Verify source code on block explorer")
    if security_checks.get("centralized_ownership") and not security_checks.get("ownership_renounced"):
        items.append("Renounce ownership or transfer to multi-sig/timelock")
    if not security_checks.get("liquidity_locked") and liquidity.get("has_liquidity"):
        items.append("Lock liquidity tokens for at least 6 months")
    if security_checks.get("pausable") and not ownership.get("is_timelock"):
        items.append("Implement timelock for pause function or remove pause capability")
    if "modifiableTax" in types:
        items.append("Set maximum fee limits in contract or remove fee modification capability")
    if 0 < contract.age_in_days < NEW_CONTRACT_DAYS:
        items.append("Allow contract to mature and build transaction history")

    return items


def risk_emoji(level: RiskLevel) -> str:
    return LEVEL_EMOJIS.get(level, "❓")

