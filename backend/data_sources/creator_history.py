"""
Creator History Adapter
Looks at the deployer wallet's other contracts for abandonment and
serial-deployment patterns typical of rug-pull operators.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from infrastructure.config import get_config
from infrastructure.errors import UpstreamUnavailableError
from infrastructure.rpc import ZERO_ADDRESS
from models.findings import AnalyzerResult, Severity
from models.oracle import Checked, OracleResult, RateLimited, UncheckedReason
from .oracle_base import SecurityOracle, unchecked

logger = logging.getLogger("CreatorHistory")

SOURCE = "Creator History"

DAY = 86400
ABANDON_MIN_AGE_DAYS = 7
ABANDON_MIN_TXS = 10
ABANDON_IDLE_DAYS = 30
RECENT_WINDOW_DAYS = 30
FAN_OUT_CONCURRENCY = 5


def is_contract_creation(tx: Dict[str, Any]) -> bool:
    return not tx.get("to") and bool(tx.get("contractAddress"))


class CreatorHistoryAdapter(SecurityOracle):
    """
    Inspects up to `max_contracts` contracts deployed by the same creator.

    `explorer_for(chain)` returns an EtherscanClient for the chain.
    """

    name = "creator_history"
    source = SOURCE

    def __init__(
        self,
        explorer_for: Callable[[str], Any],
        enabled: Optional[bool] = None,
        max_contracts: Optional[int] = None,
        max_transactions: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        cfg = get_config()
        self.explorer_for = explorer_for
        self.enabled = cfg.features.enable_creator_history if enabled is None else enabled
        self.max_contracts = max_contracts or cfg.api.creator_history_max_contracts
        self.max_transactions = max_transactions or cfg.api.creator_history_max_transactions
        self._clock = clock

    async def check(self, address: str, chain: str) -> OracleResult:
        """`address` is the creator wallet"""
        if not self.enabled:
            return unchecked(UncheckedReason.DISABLED, "Creator history disabled")
        if not address or address.lower() == ZERO_ADDRESS:
            return unchecked(UncheckedReason.NOT_FOUND, "No creator address available")

        explorer = self.explorer_for(chain)
        try:
            transactions = await explorer.get_transactions(address, page=1, offset=self.max_transactions)
        except UpstreamUnavailableError as e:
            if "rate limit" in e.message.lower():
                return RateLimited()
            return unchecked(UncheckedReason.ERROR, e.message)
        except Exception as e:
            logger.error(f"Creator history lookup failed: {e}")
            return unchecked(UncheckedReason.ERROR, str(e))

        creations = [tx for tx in transactions if is_contract_creation(tx)]
        logger.info(f"👤 Creator {address[:10]}... deployed {len(creations)} contracts")

        inspected = await self._inspect_all(explorer, creations[:self.max_contracts])
        now = self._clock()

        return Checked({
            "creator_address": address,
            "total_contracts_deployed": len(creations),
            "contracts": inspected,
            "abandoned_contracts": sum(1 for c in inspected if c["abandoned"]),
            "recent_deployments": sum(
                1 for c in inspected if now - c["deployed_at"] < RECENT_WINDOW_DAYS * DAY
            ),
        })

    async def _inspect_all(self, explorer, creations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        semaphore = asyncio.Semaphore(FAN_OUT_CONCURRENCY)

        async def bounded(tx):
            async with semaphore:
                return await self._inspect(explorer, tx)

        results = await asyncio.gather(*(bounded(tx) for tx in creations), return_exceptions=True)

        inspected = []
        for tx, result in zip(creations, results):
            if isinstance(result, Exception):
                logger.warning(f"Skipping {tx.get('contractAddress')}: {result}")
                continue
            inspected.append(result)
        return inspected

    async def _inspect(self, explorer, creation_tx: Dict[str, Any]) -> Dict[str, Any]:
        address = creation_tx["contractAddress"]
        deployed_at = int(creation_tx.get("timeStamp") or 0)
        now = self._clock()
        age_days = int((now - deployed_at) // DAY)

        recent = await explorer.get_transactions(address, page=1, offset=ABANDON_MIN_TXS)
        tx_count = len(recent)

        abandoned = False
        if age_days > ABANDON_MIN_AGE_DAYS:
            if tx_count < ABANDON_MIN_TXS:
                abandoned = True
            else:
                last_tx = int(recent[0].get("timeStamp") or 0)
                abandoned = (now - last_tx) // DAY > ABANDON_IDLE_DAYS

        return {
            "address": address,
            "deployed_at": deployed_at,
            "age_days": age_days,
            "transaction_count": tx_count,
            "abandoned": abandoned,
        }

    def score(self, data: Dict[str, Any]) -> AnalyzerResult:
        total = data.get("total_contracts_deployed", 0)
        abandoned = data.get("abandoned_contracts", 0)
        recent = data.get("recent_deployments", 0)
        inspected = len(data.get("contracts") or [])
        findings = []

        if total >= 10:
            findings.append(self.finding(SOURCE, "serial_deployer", Severity.HIGH,
                                         f"Creator has deployed {total} contracts - serial deployer pattern",
                                         f"{total} contracts deployed", 15))
        elif total >= 5:
            findings.append(self.finding(SOURCE, "multiple_deployments", Severity.MEDIUM,
                                         f"Creator has deployed {total} contracts",
                                         f"{total} contracts deployed", 8))

        if abandoned >= 5:
            findings.append(self.finding(SOURCE, "multiple_abandoned_contracts", Severity.CRITICAL,
                                         f"{abandoned} abandoned contracts - potential rug pull history",
                                         f"{abandoned} abandoned contracts detected", 25))
        elif abandoned >= 3:
            findings.append(self.finding(SOURCE, "abandoned_contracts", Severity.HIGH,
                                         f"{abandoned} abandoned contracts detected",
                                         f"{abandoned} abandoned contracts", 20))

        if recent >= 5:
            findings.append(self.finding(SOURCE, "rapid_deployment", Severity.HIGH,
                                         f"{recent} contracts deployed in last 30 days - rapid deployment pattern",
                                         f"{recent} recent deployments", 12))

        if inspected >= 5:
            rate = abandoned / inspected
            if rate > 0.7:
                findings.append(self.finding(SOURCE, "high_abandonment_rate", Severity.HIGH,
                                             f"{round(rate * 100)}% abandonment rate - high risk pattern",
                                             f"{abandoned}/{inspected} contracts abandoned", 20))
            elif rate > 0.5:
                findings.append(self.finding(SOURCE, "moderate_abandonment_rate", Severity.MEDIUM,
                                             f"{round(rate * 100)}% abandonment rate",
                                             f"{abandoned}/{inspected} contracts abandoned", 10))

        if total == 1:
            findings.append(self.finding(SOURCE, "first_deployment", Severity.INFO,
                                         "This is the creator's first contract deployment",
                                         "1 contract deployed", 0))

        summary = {k: v for k, v in data.items() if k != "contracts"}
        return AnalyzerResult.from_findings(findings, suspicious_pattern=any(f.score_delta for f in findings), **summary)
