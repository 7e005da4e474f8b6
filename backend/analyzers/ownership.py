"""
Ownership Centralization Checker
Who controls the contract, and how much should that worry us.
"""

import logging
from typing import List

from infrastructure.errors import UpstreamUnavailableError
from infrastructure.rpc import MULTISIG_SIGNATURES, TIMELOCK_SIGNATURES, ZERO_ADDRESS, code_has_any_selector
from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity
from services.whitelist import allows_centralized_ownership, known_token

logger = logging.getLogger("OwnershipAnalyzer")

SOURCE = "Ownership Analysis"
HISTORY_PAGE_SIZE = 1000


async def ownership_transfers(explorer, address: str) -> List[str]:
    """Hashes of transferOwnership calls; empty when history is unavailable"""
    try:
        transactions = await explorer.get_transactions(address, page=1, offset=HISTORY_PAGE_SIZE)
    except UpstreamUnavailableError as e:
        logger.warning(f"Ownership history unavailable: {e.message}")
        return []
    return [
        tx.get("hash") for tx in transactions
        if "transferownership" in (tx.get("functionName") or "").lower()
    ]


async def analyze(contract: ContractInfo, reader, explorer) -> AnalyzerResult:
    owner = await reader.get_owner(contract.address)

    if not owner:
        return AnalyzerResult.from_findings(
            [Finding("no_owner_function", Severity.INFO,
                     "Contract does not have an owner() function", SOURCE, None, 0)],
            has_owner=False, is_centralized=False,
        )

    details = {
        "has_owner": True,
        "owner_address": owner,
        "is_renounced": False,
        "is_multisig": False,
        "is_timelock": False,
        "is_centralized": True,
    }
    evidence = f"Owner: {owner}"

    if owner.lower() == ZERO_ADDRESS:
        details.update(is_renounced=True, is_centralized=False)
        return AnalyzerResult.from_findings(
            [Finding("ownership_renounced", Severity.SAFE,
                     "Ownership has been renounced - no admin control", SOURCE, evidence, -10)],
            **details,
        )

    findings = []
    owner_code = await reader.get_code(owner)

    if owner_code not in ("0x", "0x0", ""):
        if code_has_any_selector(owner_code, MULTISIG_SIGNATURES):
            details.update(is_multisig=True, is_centralized=False)
            findings.append(Finding("multisig_owner", Severity.SAFE,
                                    "Owner is a multi-sig wallet - reduced centralization",
                                    SOURCE, evidence, -5))
        if code_has_any_selector(owner_code, TIMELOCK_SIGNATURES):
            details.update(is_timelock=True, is_centralized=False)
            findings.append(Finding("timelock_owner", Severity.SAFE,
                                    "Owner is a timelock contract - changes have delay",
                                    SOURCE, evidence, -5))
        if not details["is_multisig"] and not details["is_timelock"]:
            findings.append(Finding("contract_owner", Severity.INFO,
                                    "Owner is a contract (not multi-sig or timelock)",
                                    SOURCE, evidence, 0))
    else:
        token = known_token(contract.address)
        if token and allows_centralized_ownership(contract.address):
            findings.append(Finding(
                "centralized_ownership_expected", Severity.LOW,
                f"Centralized ownership ({token['symbol']} by {token['issuer']}) - expected for this token type",
                SOURCE, evidence, 2,
            ))
        else:
            findings.append(Finding("centralized_ownership", Severity.HIGH,
                                    "Single address controls contract - high centralization risk",
                                    SOURCE, evidence, 10))

    transfers = await ownership_transfers(explorer, contract.address)
    if transfers:
        findings.append(Finding("ownership_transferred", Severity.MEDIUM,
                                f"Ownership has been transferred {len(transfers)} time(s)",
                                SOURCE, ", ".join(transfers[:3]), 3))

    details["ownership_transfers"] = len(transfers)
    return AnalyzerResult.from_findings(findings, **details)
