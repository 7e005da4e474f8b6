"""
Holder Concentration Scanner
Distinct recipients of recent transfers, plus the creator's share of supply.
"""

import asyncio
import logging
from typing import Optional

from infrastructure.errors import UpstreamUnavailableError
from infrastructure.rpc import ZERO_ADDRESS
from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity

logger = logging.getLogger("HolderAnalyzer")

SOURCE = "Holder Analysis"
TRANSFER_PAGE_SIZE = 100


async def holder_concentration(contract: ContractInfo, reader, explorer) -> AnalyzerResult:
    try:
        await reader.total_supply(contract.address)
    except UpstreamUnavailableError:
        logger.info("Cannot get total supply, skipping holder analysis")
        return AnalyzerResult(analyzed=False)

    try:
        transfers = await explorer.get_token_transfers(contract_address=contract.address,
                                                       offset=TRANSFER_PAGE_SIZE)
    except UpstreamUnavailableError as e:
        logger.info(f"Cannot fetch transfer events: {e.message}")
        transfers = []

    holders = {
        (tx.get("to") or "").lower() for tx in transfers
        if tx.get("to") and tx["to"].lower() != ZERO_ADDRESS
    }
    count = len(holders)

    if count == 0:
        return AnalyzerResult.neutral(SOURCE, "holder_distribution_unknown",
                                      "Unable to determine holder distribution")

    evidence = f"{count} recent holders"
    if count < 10:
        finding = Finding("very_few_holders", Severity.HIGH,
                          f"Very few holders detected ({count}) - high concentration risk", SOURCE, evidence, 20)
    elif count < 50:
        finding = Finding("limited_holders", Severity.MEDIUM,
                          f"Limited holder base ({count}) - medium concentration risk", SOURCE, evidence, 10)
    elif count < 100:
        finding = Finding("small_holder_base", Severity.LOW,
                          f"Small holder base ({count}) - low concentration risk", SOURCE, evidence, 5)
    else:
        finding = Finding("good_holder_distribution", Severity.INFO,
                          f"Good holder distribution ({count}+ holders)", SOURCE, evidence, 0)

    return AnalyzerResult.from_findings([finding], holder_count=count)


async def creator_holding(contract: ContractInfo, reader, creator: Optional[str]) -> AnalyzerResult:
    if not creator:
        return AnalyzerResult(analyzed=False)

    try:
        balance, supply = await asyncio.gather(
            reader.balance_of(contract.address, creator),
            reader.total_supply(contract.address),
        )
    except UpstreamUnavailableError as e:
        logger.info(f"Cannot analyze creator holding: {e.message}")
        return AnalyzerResult(analyzed=False)

    if supply <= 0:
        return AnalyzerResult(analyzed=False)

    percent = round(balance / supply * 100, 2)
    evidence = f"Creator holds {percent:.1f}% of supply"

    if percent > 50:
        finding = Finding("creator_holds_majority", Severity.CRITICAL,
                          "Creator holds most of the supply - critical concentration risk", SOURCE, evidence, 25)
    elif percent > 20:
        finding = Finding("creator_high_holding", Severity.HIGH,
                          "Creator holds a large share of supply - high concentration risk", SOURCE, evidence, 15)
    elif percent > 10:
        finding = Finding("creator_moderate_holding", Severity.MEDIUM,
                          "Creator holds a moderate share of supply", SOURCE, evidence, 5)
    elif percent > 0.1:
        finding = Finding("creator_low_holding", Severity.INFO,
                          "Creator holds a small share of supply", SOURCE, evidence, 0)
    else:
        finding = Finding("creator_distributed", Severity.SAFE,
                          "Creator has distributed tokens", SOURCE, evidence, 0)

    return AnalyzerResult.from_findings([finding], creator_percent=percent)


async def analyze(contract: ContractInfo, reader, explorer) -> AnalyzerResult:
    """Holder concentration and creator holding, combined"""
    concentration, holding = await asyncio.gather(
        holder_concentration(contract, reader, explorer),
        creator_holding(contract, reader, contract.creator),
    )
    return AnalyzerResult(
        score_delta=concentration.score_delta + holding.score_delta,
        findings=concentration.findings + holding.findings,
        analyzed=concentration.analyzed or holding.analyzed,
        details={
            "holder_concentration": {"analyzed": concentration.analyzed, **concentration.details},
            "creator_holding": {"analyzed": holding.analyzed, **holding.details},
        },
    )
