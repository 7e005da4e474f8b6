"""
Liquidity Lock Checker
Finds the token's LP pairs and checks whether LP tokens are locked or
burned, or sit with the deployer (rug-capable).
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from infrastructure.rpc import ZERO_ADDRESS
from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity

logger = logging.getLogger("LiquidityAnalyzer")

SOURCE = "Liquidity Analysis"

BURN_ADDRESS = "0x000000000000000000000000000000000000dead"

# Known locker contracts (all chains)
KNOWN_LOCKERS = {
    "0x663a5c229c09b049e36dcc11a9b0d4a8eb9db214": "Unicrypt",
    "0x71b5759d73262fbb223956913ecf4ecc51057641": "PinkLock",
    "0x407993575c91ce7643a4d4ccacc9a98c36ee1bbe": "PinkLock",
    "0xe2fe530c047f2d85298b07d9333c05737f1435fb": "Team Finance",
}

TRANSFER_PAGE_SIZE = 1000
PAIR_CANDIDATES = 5
MIN_HOLDER_PERCENT = 1.0
DEPLOYER_MAJORITY_PERCENT = 50.0


def is_lock_address(address: str) -> bool:
    address = address.lower()
    return address in (BURN_ADDRESS, ZERO_ADDRESS) or address in KNOWN_LOCKERS


async def find_pairs(explorer, token: str) -> List[Dict[str, Any]]:
    """Top receivers of the token whose verified name looks like an LP pair"""
    transfers = await explorer.get_token_transfers(contract_address=token, offset=TRANSFER_PAGE_SIZE)

    received: Dict[str, int] = defaultdict(int)
    for transfer in transfers:
        to = (transfer.get("to") or "").lower()
        if not to or to == ZERO_ADDRESS:
            continue
        received[to] += int(transfer.get("value") or 0)

    candidates = sorted(received.items(), key=lambda item: item[1], reverse=True)[:PAIR_CANDIDATES]

    pairs = []
    for address, volume in candidates:
        try:
            info = await explorer.get_source_code(address)
        except Exception as e:
            logger.debug(f"Pair candidate {address[:10]}... skipped: {e}")
            continue
        name = (info or {}).get("contract_name") or ""
        if "Pair" in name or "LP" in name:
            pairs.append({"address": address, "volume": str(volume), "name": name})
    return pairs


def replay_balances(transfers: List[Dict[str, Any]]) -> Dict[str, int]:
    balances: Dict[str, int] = defaultdict(int)
    for transfer in transfers:
        sender = (transfer.get("from") or "").lower()
        receiver = (transfer.get("to") or "").lower()
        value = int(transfer.get("value") or 0)
        if sender and sender != ZERO_ADDRESS:
            balances[sender] -= value
        if receiver:
            balances[receiver] += value
    return balances


async def lp_holders(explorer, reader, pair: str) -> List[Dict[str, Any]]:
    """Holders of ≥1 % of the pair's LP supply, largest first"""
    transfers = await explorer.get_token_transfers(contract_address=pair, offset=TRANSFER_PAGE_SIZE)
    balances = replay_balances(transfers)
    total_supply = await reader.total_supply(pair)
    if total_supply <= 0:
        return []

    holders = []
    for address, balance in balances.items():
        if balance <= 0:
            continue
        percentage = (balance * 10000 // total_supply) / 100
        if percentage < MIN_HOLDER_PERCENT:
            continue
        holders.append({
            "address": address,
            "balance": str(balance),
            "percentage": percentage,
            "is_locker": address in KNOWN_LOCKERS,
            "is_burned": address in (BURN_ADDRESS, ZERO_ADDRESS),
        })
    holders.sort(key=lambda h: int(h["balance"]), reverse=True)
    return holders


def classify(holders: List[Dict[str, Any]], creator: Optional[str]) -> Dict[str, Any]:
    creator = (creator or "").lower()
    deployer_share = max(
        (h["percentage"] for h in holders if creator and h["address"] == creator),
        default=0.0,
    )
    return {
        "lp_locked": any(is_lock_address(h["address"]) for h in holders),
        "lp_burned": any(h["is_burned"] for h in holders),
        "deployer_lp_percent": deployer_share,
    }


async def analyze(contract: ContractInfo, reader, explorer) -> AnalyzerResult:
    pairs = await find_pairs(explorer, contract.address)

    if not pairs:
        return AnalyzerResult.from_findings(
            [Finding("no_liquidity_found", Severity.MEDIUM,
                     "No liquidity pools found for this token", SOURCE, None, 5)],
            has_liquidity=False, lp_locked=False, lp_burned=False,
        )

    holders: List[Dict[str, Any]] = []
    for pair in pairs:
        holders.extend(await lp_holders(explorer, reader, pair["address"]))

    status = classify(holders, contract.creator)
    details = {"has_liquidity": True, "pairs": pairs, **status}

    if status["lp_locked"]:
        description = ("LP tokens burned - liquidity is locked permanently" if status["lp_burned"]
                       else "LP tokens locked - reduced rug pull risk")
        finding = Finding("liquidity_locked", Severity.SAFE, description, SOURCE, None, -10)
    elif status["deployer_lp_percent"] > DEPLOYER_MAJORITY_PERCENT:
        finding = Finding("liquidity_not_locked", Severity.HIGH,
                          "LP tokens held by deployer - high rug pull risk", SOURCE,
                          f"Creator holds {status['deployer_lp_percent']}% of LP tokens", 15)
    else:
        finding = Finding("liquidity_not_locked", Severity.HIGH,
                          "LP tokens not locked - rug pull risk", SOURCE, None, 10)

    return AnalyzerResult.from_findings([finding], **details)
