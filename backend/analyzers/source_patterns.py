"""
Source Pattern Scanner
Table-driven regex rules over verified Solidity source.

Red-flag rules add risk; safe rules carry negative scores.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity

SOURCE = "Code Analysis"
MAX_EVIDENCE_PER_PATTERN = 3
MAX_SAFE_EVIDENCE_PER_PATTERN = 2


@dataclass(frozen=True)
class SourceRule:
    """
    One pattern rule.

    requires_any: rule only fires if the source also contains one of these
    (case-insensitive); otherwise it is suppressed.
    proxy_downgrade: (severity, score) applied instead when the contract is a proxy.
    """
    id: str
    patterns: Tuple[str, ...]
    severity: Severity
    score: int
    description: str
    requires_any: Tuple[str, ...] = ()
    proxy_downgrade: Optional[Tuple[Severity, int, str]] = None

    def compiled(self) -> List[re.Pattern]:
        return [re.compile(p, re.IGNORECASE) for p in self.patterns]


# ============================================
# RED FLAG RULES
# ============================================

RED_FLAG_RULES = (
    SourceRule(
        "hiddenMint",
        (r"function\s+mint\s*\([^)]*\)[^{]*{", r"_mint\s*\(", r"\.mint\s*\("),
        Severity.CRITICAL, 15, "Contract owner can mint unlimited tokens",
        requires_any=("onlyOwner", "onlyAdmin", "onlyMinter"),
    ),
    SourceRule(
        "selfDestruct",
        (r"selfdestruct\s*\(", r"suicide\s*\("),
        Severity.CRITICAL, 15, "Contract can be destroyed by owner",
    ),
    SourceRule(
        "honeypot",
        (r"blacklist\s*\[", r"isBlacklisted", r"_isExcluded", r"canSell\s*\(", r"canTransfer\s*\("),
        Severity.CRITICAL, 15, "Potential honeypot - can block transfers",
    ),
    SourceRule(
        "delegatecall",
        (r"delegatecall\s*\(", r"\.delegatecall\s*\("),
        Severity.CRITICAL, 15, "Uses delegatecall - potential backdoor",
        proxy_downgrade=(Severity.LOW, 2, "Proxy contract uses delegatecall (expected behavior)"),
    ),
    SourceRule(
        "pausable",
        (r"function\s+pause\s*\(", r"function\s+unpause\s*\(", r"_pause\s*\(", r"whenNotPaused"),
        Severity.HIGH, 10, "Owner can pause all transfers",
    ),
    SourceRule(
        "modifiableTax",
        (r"setTaxFee", r"setBuyFee", r"setSellFee", r"setFee\s*\(", r"updateFee"),
        Severity.HIGH, 10, "Owner can modify trading fees",
    ),
    SourceRule(
        "highTax",
        (r"_taxFee\s*=\s*([1-9][0-9]|100)", r"taxFee\s*=\s*([1-9][0-9]|100)",
         r"buyFee\s*=\s*([1-9][0-9]|100)", r"sellFee\s*=\s*([1-9][0-9]|100)"),
        Severity.HIGH, 10, "High trading fees detected (>10%)",
    ),
    SourceRule(
        "ownership",
        (r"transferOwnership\s*\(", r"renounceOwnership\s*\("),
        Severity.MEDIUM, 5, "Ownership can be transferred",
    ),
    SourceRule(
        "maxTransaction",
        (r"maxTxAmount", r"_maxTxAmount", r"setMaxTx", r"maxTransactionAmount"),
        Severity.MEDIUM, 5, "Maximum transaction limits enforced",
    ),
    SourceRule(
        "maxWallet",
        (r"maxWallet", r"_maxWalletSize", r"maxWalletAmount"),
        Severity.MEDIUM, 5, "Maximum wallet size limits enforced",
    ),
    SourceRule(
        "antiBot",
        (r"isBot\s*\[", r"bots\s*\[", r"addBot\s*\(", r"antiBot"),
        Severity.MEDIUM, 5, "Anti-bot mechanisms present",
    ),
    SourceRule(
        "cooldown",
        (r"cooldown", r"buycooldown", r"sellcooldown"),
        Severity.MEDIUM, 5, "Cooldown periods enforced",
    ),
    SourceRule(
        "scamKeywordsInCode",
        (r"//.*scam", r"/\*.*scam.*\*/", r"//.*honeypot", r"/\*.*honeypot.*\*/",
         r"//.*rug", r"/\*.*rug.*\*/", r"//.*exit.*scam", r"/\*.*exit.*scam.*\*/",
         r"//.*warning.*do.*not.*buy", r"/\*.*warning.*do.*not.*buy.*\*/"),
        Severity.CRITICAL, 30, "Scam-related keywords found in source code comments",
    ),
)

# ============================================
# SAFE RULES (negative score)
# ============================================

SAFE_RULES = (
    SourceRule(
        "renounceOwnership",
        (r"renounceOwnership\s*\(\s*\)\s*public", r"renounceOwnership\s*\(\s*\)\s*external"),
        Severity.SAFE, -10, "Ownership can be renounced",
    ),
    SourceRule(
        "timelockPresent",
        (r"timelock", r"TimelockController", r"delay\s*=\s*[0-9]+\s*days"),
        Severity.SAFE, -10, "Timelock mechanism present",
    ),
    SourceRule(
        "audited",
        (r"@audit", r"audited by", r"security audit"),
        Severity.SAFE, -5, "Contract mentions audit",
    ),
    SourceRule(
        "openZeppelin",
        (r"import.*@openzeppelin", r"OpenZeppelin"),
        Severity.SAFE, -5, "Uses OpenZeppelin contracts",
    ),
)

PROXY_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"upgradeTo", r"upgradeToAndCall", r"implementation\s*\(\)", r"_implementation",
        r"TransparentUpgradeableProxy", r"UUPSUpgradeable",
    )
]

_COMPILED = {rule.id: rule.compiled() for rule in RED_FLAG_RULES + SAFE_RULES}


def collect_evidence(rule: SourceRule, source_code: str, per_pattern: int) -> List[str]:
    evidence = []
    for regex in _COMPILED[rule.id]:
        evidence.extend(m.group(0) for m in list(regex.finditer(source_code))[:per_pattern])
    return evidence


def apply_rule(rule: SourceRule, source_code: str, is_proxy: bool) -> Optional[Finding]:
    per_pattern = MAX_SAFE_EVIDENCE_PER_PATTERN if rule.severity == Severity.SAFE else MAX_EVIDENCE_PER_PATTERN
    evidence = collect_evidence(rule, source_code, per_pattern)
    if not evidence:
        return None

    if rule.requires_any:
        lowered = source_code.lower()
        if not any(token.lower() in lowered for token in rule.requires_any):
            return None

    severity, score, description = rule.severity, rule.score, rule.description
    if is_proxy and rule.proxy_downgrade:
        severity, score, description = rule.proxy_downgrade

    return Finding(rule.id, severity, description, SOURCE, ", ".join(evidence), score)


def scan_source(source_code: str, is_proxy: bool = False) -> AnalyzerResult:
    if not source_code:
        return AnalyzerResult(analyzed=False)

    findings = []
    for rule in RED_FLAG_RULES + SAFE_RULES:
        finding = apply_rule(rule, source_code, is_proxy)
        if finding:
            findings.append(finding)

    return AnalyzerResult.from_findings(findings)


def is_proxy_source(source_code: Optional[str]) -> bool:
    if not source_code:
        return False
    return any(p.search(source_code) for p in PROXY_PATTERNS)


async def analyze(contract: ContractInfo) -> AnalyzerResult:
    return scan_source(contract.source_code or "", contract.is_proxy)
