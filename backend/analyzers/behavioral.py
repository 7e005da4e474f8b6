"""
Behavioral / History Scanner
Age bands, activity level and admin-call patterns from the latest page
of explorer-indexed transactions.
"""

from typing import Any, Callable, Dict, List, Tuple

from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity

SOURCE = "Behavioral Analysis"
TX_PAGE_SIZE = 100
ONE_ETH_WEI = 10 ** 18


def age_findings(age_in_days: int) -> List[Finding]:
    evidence = f"Age: {age_in_days} days"
    if age_in_days < 1:
        return [Finding("very_new_contract", Severity.HIGH,
                        "Contract deployed less than 24 hours ago - very high risk", SOURCE, evidence, 10)]
    if age_in_days < 7:
        return [Finding("new_contract", Severity.MEDIUM,
                        "Contract deployed less than 7 days ago - untested", SOURCE, evidence, 5)]
    if age_in_days < 30:
        return [Finding("recent_contract", Severity.MEDIUM,
                        "Contract deployed less than 30 days ago - limited history", SOURCE, evidence, 3)]
    if age_in_days > 365:
        return [Finding("established_contract", Severity.SAFE,
                        "Contract has been deployed for over a year - battle-tested", SOURCE, evidence, -5)]
    return []


def activity_findings(transactions: List[Dict[str, Any]], page_size: int = TX_PAGE_SIZE) -> List[Finding]:
    count = len(transactions)
    if count == 0:
        return [Finding("no_activity", Severity.MEDIUM,
                        "No transaction activity detected - suspicious", SOURCE, None, 5)]
    if count < 10:
        return [Finding("low_activity", Severity.MEDIUM,
                        "Very low transaction activity - not widely used", SOURCE, f"{count} transactions", 3)]
    if count >= page_size:
        return [Finding("high_activity", Severity.SAFE,
                        "High transaction activity - widely used contract", SOURCE, f"{count}+ transactions", -5)]
    return []


def _calls(*needles: str) -> Callable[[Dict[str, Any]], bool]:
    def match(tx: Dict[str, Any]) -> bool:
        name = (tx.get("functionName") or "").lower()
        return any(n in name for n in needles)
    return match


def _large_value(tx: Dict[str, Any]) -> bool:
    try:
        return int(tx.get("value") or 0) > ONE_ETH_WEI
    except (TypeError, ValueError):
        return False


# (type, matcher, minimum matches, severity, score, description, evidence label)
ADMIN_PATTERNS: Tuple = (
    ("tax_modifications", _calls("settax", "setfee", "updatefee"), 1, Severity.MEDIUM, 5,
     "Owner has modified fees/taxes", "fee modification(s) detected"),
    ("blacklist_usage", _calls("blacklist", "block"), 1, Severity.MEDIUM, 5,
     "Addresses have been blacklisted", "blacklist transaction(s)"),
    ("pause_events", _calls("pause"), 1, Severity.MEDIUM, 3,
     "Contract has been paused/unpaused", "pause event(s)"),
    ("large_transfers", _large_value, 6, Severity.MEDIUM, 3,
     "Multiple large value transfers detected", "large transfer(s)"),
    ("multiple_ownership_transfers", _calls("transferownership"), 2, Severity.HIGH, 5,
     "Ownership has been transferred multiple times", "ownership transfer(s)"),
    ("contract_upgrades", _calls("upgrade", "setimplementation"), 1, Severity.HIGH, 5,
     "Contract logic has been upgraded", "upgrade(s) detected"),
)


def pattern_findings(transactions: List[Dict[str, Any]]) -> List[Finding]:
    findings = []
    for finding_type, matcher, minimum, severity, score, description, label in ADMIN_PATTERNS:
        hits = sum(1 for tx in transactions if matcher(tx))
        if hits >= minimum:
            findings.append(Finding(finding_type, severity, description, SOURCE, f"{hits} {label}", score))
    return findings


async def analyze(contract: ContractInfo, explorer) -> AnalyzerResult:
    transactions = await explorer.get_transactions(contract.address, page=1, offset=TX_PAGE_SIZE)

    findings = (
        age_findings(contract.age_in_days)
        + activity_findings(transactions)
        + pattern_findings(transactions)
    )
    return AnalyzerResult.from_findings(findings, recent_transactions=len(transactions))
