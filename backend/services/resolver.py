"""
Data Source Resolver
Decides where contract metadata comes from, as an explicit state machine:

    TRY_PRIMARY ──ok──────────────────────────────▶ VERIFIED | UNVERIFIED
        │ upstream error
        ▼
    TRY_DECENTRALIZED ──verified source───────────▶ VERIFIED
        │ nothing / error
        ▼
    FALLBACK_CHAIN_READ ──code present────────────▶ UNVERIFIED (fallback)
        │ no code / RPC error
        ▼
      FAILED  (ResolutionFailureError)

Every visited state is recorded in the trace returned with the result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Tuple

from analyzers.bytecode import delegatecall_count
from analyzers.source_patterns import is_proxy_source
from infrastructure.config import get_config
from infrastructure.errors import ResolutionFailureError, UpstreamUnavailableError
from models.contract import ContractInfo

logger = logging.getLogger("Resolver")

SECONDS_PER_DAY = 86400
FALLBACK_DELEGATECALL_THRESHOLD = 2


class ResolverState(str, Enum):
    TRY_PRIMARY = "try_primary"
    TRY_DECENTRALIZED = "try_decentralized"
    FALLBACK_CHAIN_READ = "fallback_chain_read"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    FAILED = "failed"


TERMINAL_STATES = {ResolverState.VERIFIED, ResolverState.UNVERIFIED, ResolverState.FAILED}


class Resolution(NamedTuple):
    contract_info: ContractInfo
    using_fallback: bool
    trace: Tuple[str, ...]


@dataclass
class _RunState:
    address: str
    chain: str
    info: Optional[ContractInfo] = None
    using_fallback: bool = False
    trace: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def estimate_age_days(block_number: int, block_time: float) -> int:
    """Coarse age from block height; never less than one day"""
    return max(1, int(block_number * block_time // SECONDS_PER_DAY))


class DataSourceResolver:
    """
    Builds the ContractInfo for one analysis run.

    explorer_for(chain) -> EtherscanClient
    reader_for(chain)   -> ChainReader
    """

    def __init__(
        self,
        explorer_for: Callable[[str], Any],
        sourcify,
        reader_for: Callable[[str], Any],
        average_block_time: Optional[float] = None,
    ):
        self.explorer_for = explorer_for
        self.sourcify = sourcify
        self.reader_for = reader_for
        self.block_time = average_block_time or get_config().blockchain.average_block_time

        self._transitions: Dict[ResolverState, Callable[[_RunState], Awaitable[ResolverState]]] = {
            ResolverState.TRY_PRIMARY: self._try_primary,
            ResolverState.TRY_DECENTRALIZED: self._try_decentralized,
            ResolverState.FALLBACK_CHAIN_READ: self._fallback_chain_read,
        }

    async def resolve(self, address: str, chain: str) -> Resolution:
        run = _RunState(address=address, chain=chain.lower())
        state = ResolverState.TRY_PRIMARY

        while state not in TERMINAL_STATES:
            run.trace.append(state.value)
            state = await self._transitions[state](run)
        run.trace.append(state.value)

        if state == ResolverState.FAILED:
            message = run.errors[-1] if run.errors else "All data sources failed"
            logger.error(f"❌ Resolution failed for {address}: {' -> '.join(run.trace)}")
            raise ResolutionFailureError(address, run.chain, message, list(run.trace))

        info = await self._with_token_metadata(run.info)
        logger.info(f"🧭 Resolved {address[:10]}... via {' -> '.join(run.trace)}")
        return Resolution(info, run.using_fallback, tuple(run.trace))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _try_primary(self, run: _RunState) -> ResolverState:
        explorer = self.explorer_for(run.chain)
        try:
            data = await explorer.get_contract_info(run.address)
        except UpstreamUnavailableError as e:
            run.errors.append(e.message)
            logger.warning(f"⚠️ Explorer unavailable, escalating: {e.message}")
            return ResolverState.TRY_DECENTRALIZED

        source_code = data.get("source_code")
        run.info = ContractInfo(
            address=run.address,
            chain=run.chain,
            verified=bool(data.get("verified")),
            source_code=source_code,
            creator=(data.get("creator") or "").lower() or None,
            age_in_days=data.get("age_in_days") or 0,
            transaction_count=data.get("transaction_count") or 0,
            is_proxy=bool(data.get("is_proxy")) or is_proxy_source(source_code),
            contract_name=data.get("contract_name"),
            creation_tx_hash=data.get("creation_tx_hash"),
            creation_date=data.get("creation_date"),
            implementation=data.get("implementation"),
        )
        return ResolverState.VERIFIED if run.info.verified else ResolverState.UNVERIFIED

    async def _try_decentralized(self, run: _RunState) -> ResolverState:
        try:
            source = await self.sourcify.get_source(run.address, run.chain)
        except UpstreamUnavailableError as e:
            run.errors.append(e.message)
            logger.warning(f"⚠️ Sourcify unavailable, falling back to chain reads: {e.message}")
            return ResolverState.FALLBACK_CHAIN_READ

        if not source or not source.get("source_code"):
            run.errors.append("Not verified on Sourcify")
            return ResolverState.FALLBACK_CHAIN_READ

        reader = self.reader_for(run.chain)
        tx_count, age = 0, 0
        try:
            tx_count = await reader.get_transaction_count(run.address)
            age = estimate_age_days(await reader.get_block_number(), self.block_time)
        except UpstreamUnavailableError as e:
            logger.info(f"Chain metadata unavailable for Sourcify merge: {e.message}")

        run.info = ContractInfo(
            address=run.address,
            chain=run.chain,
            verified=True,
            source_code=source["source_code"],
            age_in_days=age,
            transaction_count=tx_count,
            is_proxy=is_proxy_source(source["source_code"]),
            contract_name=source.get("contract_name"),
            age_is_estimate=True,
        )
        return ResolverState.VERIFIED

    async def _fallback_chain_read(self, run: _RunState) -> ResolverState:
        reader = self.reader_for(run.chain)
        try:
            code = await reader.get_code(run.address)
            if code in ("0x", "0x0", ""):
                run.errors.append("Address is not a contract")
                return ResolverState.FAILED
            tx_count = await reader.get_transaction_count(run.address)
            block_number = await reader.get_block_number()
        except UpstreamUnavailableError as e:
            run.errors.append(e.message)
            return ResolverState.FAILED

        run.using_fallback = True
        run.info = ContractInfo(
            address=run.address,
            chain=run.chain,
            verified=False,
            age_in_days=estimate_age_days(block_number, self.block_time),
            transaction_count=tx_count,
            is_proxy=delegatecall_count(code) > FALLBACK_DELEGATECALL_THRESHOLD,
            fallback_mode=True,
            age_is_estimate=True,
        )
        return ResolverState.UNVERIFIED

    # ------------------------------------------------------------------

    async def _with_token_metadata(self, info: ContractInfo) -> ContractInfo:
        try:
            token = await self.reader_for(info.chain).get_token_info(info.address)
        except UpstreamUnavailableError:
            return info
        name, symbol = token.get("name"), token.get("symbol")
        return info.with_updates(
            name=name or None,
            symbol=symbol or None,
            contract_name=info.contract_name or name or None,
        )
