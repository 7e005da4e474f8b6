"""
Risk Pipeline
Orchestrates one contract analysis run:

    cache lookup -> resolver -> analyzers + oracles (concurrent) -> aggregator -> cache

and fans batches out across contracts.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from analyzers import behavioral, bytecode, guarded, holders, liquidity, ownership, source_patterns
from infrastructure.config import get_config
from infrastructure.errors import (
    AnalysisFailedError,
    ErrorCode,
    ScorerError,
    UpstreamUnavailableError,
    error_tracker,
)
from models.contract import ContractInfo, ScanDepth
from models.oracle import OracleResult, Unchecked, UncheckedReason
from models.risk import RiskRecord
from .recommendations import generate_improvements, generate_recommendations, risk_emoji
from .resolver import DataSourceResolver, Resolution
from .scoring import Contributions, score_contract

logger = logging.getLogger("RiskPipeline")

VERSION = "1.0.0"


class RiskPipeline:
    """
    Owns no global state: every collaborator is injected.

    explorer_for(chain) -> EtherscanClient
    reader_for(chain)   -> ChainReader
    """

    def __init__(
        self,
        resolver: DataSourceResolver,
        cache,
        goplus,
        token_sniffer,
        creator_history,
        explorer_for: Callable[[str], Any],
        reader_for: Callable[[str], Any],
        timeout: Optional[float] = None,
        analysis_timeout: Optional[float] = None,
    ):
        self.resolver = resolver
        self.cache = cache
        self.goplus = goplus
        self.token_sniffer = token_sniffer
        self.creator_history = creator_history
        self.explorer_for = explorer_for
        self.reader_for = reader_for
        self.timeout = timeout or get_config().api.oracle_timeout
        self.analysis_timeout = analysis_timeout or get_config().api.analysis_timeout

    # ============================================
    # SINGLE CONTRACT
    # ============================================

    async def analyze(self, address: str, chain: str = "ethereum", scan_depth: str = "quick") -> Dict[str, Any]:
        chain = chain.lower()
        scan_depth = ScanDepth(scan_depth).value

        cached = await self.cache.get(address, chain, scan_depth)
        if cached is not None:
            logger.info(f"💾 Cache hit for {address[:10]}... on {chain} ({scan_depth})")
            return cached

        logger.info(f"🔍 Analyzing {address} on {chain} ({scan_depth} scan)")
        started = time.perf_counter()

        try:
            record = await self._run(address, chain, scan_depth, started)
        except ScorerError:
            raise
        except Exception as e:
            logger.error(f"❌ Analysis failed for {address}: {e}")
            failure = AnalysisFailedError(address, chain, str(e))
            error_tracker.track(failure)
            raise failure from e

        payload = record.to_dict()
        await self.cache.set(address, chain, scan_depth, payload)
        logger.info(
            f"{risk_emoji(record.level)} {address[:10]}... scored {record.score} ({record.level.value}) "
            f"in {record.analysis_time_ms}ms"
        )
        return payload

    async def _run(self, address: str, chain: str, scan_depth: str, started: float) -> RiskRecord:
        resolution = await self.resolver.resolve(address, chain)
        contract = resolution.contract_info
        deep = scan_depth == ScanDepth.DEEP.value

        tasks = self._analyzer_tasks(contract, resolution, deep)
        tasks.update(self._oracle_tasks(contract, deep))

        names = list(tasks)
        results = dict(zip(names, await asyncio.gather(*tasks.values())))

        contributions = Contributions(
            contract=contract,
            code=results.get("code"),
            ownership=results.get("ownership"),
            liquidity=results.get("liquidity"),
            behavior=results.get("behavior"),
            holders=results.get("holders"),
            bytecode=results.get("bytecode"),
            goplus=results["goplus"],
            goplus_risk=self.goplus.risk(results["goplus"]),
            token_sniffer=results["token_sniffer"],
            token_sniffer_risk=self.token_sniffer.risk(results["token_sniffer"]),
            creator_history=results["creator_history"],
            creator_history_risk=self.creator_history.risk(results["creator_history"]),
        )
        scored = score_contract(contributions)

        ownership_details = contributions.ownership.details if contributions.ownership else {}
        liquidity_details = contributions.liquidity.details if contributions.liquidity else {}

        return RiskRecord(
            score=scored.score,
            level=scored.level,
            confidence=scored.confidence,
            findings=scored.findings,
            security_checks=scored.security_checks,
            recommendations=tuple(generate_recommendations(
                scored.score, scored.level, contract, scored.findings, ownership_details, liquidity_details,
            )),
            improvements=tuple(generate_improvements(
                contract, scored.security_checks, scored.findings, ownership_details, liquidity_details,
            )),
            contract_info=contract.summary(),
            external_checks={
                "goplus": contributions.goplus.to_dict(),
                "token_sniffer": contributions.token_sniffer.to_dict(),
                "creator_history": contributions.creator_history.to_dict(),
            },
            scan_depth=scan_depth,
            data_source_trace=resolution.trace,
            analysis_time_ms=int((time.perf_counter() - started) * 1000),
        )

    def _analyzer_tasks(self, contract: ContractInfo, resolution: Resolution, deep: bool) -> Dict[str, Any]:
        reader = self.reader_for(contract.chain)
        explorer = self.explorer_for(contract.chain)
        fallback = resolution.using_fallback
        t = self.timeout
        fan_out = self.analysis_timeout
        tasks = {}

        if contract.has_source:
            tasks["code"] = guarded("source code", source_patterns.SOURCE,
                                    source_patterns.analyze(contract), t)
        if not fallback:
            tasks["ownership"] = guarded("ownership", ownership.SOURCE,
                                         ownership.analyze(contract, reader, explorer), t)
            tasks["behavior"] = guarded("behavior", behavioral.SOURCE,
                                        behavioral.analyze(contract, explorer), t)
        if deep:
            tasks["liquidity"] = guarded("liquidity", liquidity.SOURCE,
                                         liquidity.analyze(contract, reader, explorer), fan_out)
        if deep and not fallback:
            tasks["holders"] = guarded("holder concentration", holders.SOURCE,
                                       holders.analyze(contract, reader, explorer), fan_out)
        if fallback:
            tasks["bytecode"] = guarded("bytecode", bytecode.SOURCE,
                                        bytecode.analyze(contract, reader), t)
        return tasks

    def _oracle_tasks(self, contract: ContractInfo, deep: bool) -> Dict[str, Any]:
        tasks = {
            "goplus": self._consult(self.goplus, contract.address, contract.chain),
            "token_sniffer": self._consult(self.token_sniffer, contract.address, contract.chain),
        }
        if deep and contract.creator:
            tasks["creator_history"] = self._consult(
                self.creator_history, contract.creator, contract.chain, self.analysis_timeout
            )
        else:
            tasks["creator_history"] = self._skipped("Creator history runs on deep scans with a known creator")
        return tasks

    async def _consult(self, oracle, address: str, chain: str, timeout: Optional[float] = None) -> OracleResult:
        timeout = timeout or self.timeout
        try:
            return await asyncio.wait_for(oracle.check(address, chain), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⏱️ {oracle.name} timed out after {timeout}s")
            return Unchecked(UncheckedReason.ERROR, f"{oracle.name} timed out")

    @staticmethod
    async def _skipped(message: str) -> OracleResult:
        return Unchecked(UncheckedReason.DISABLED, message)

    # ============================================
    # BATCH
    # ============================================

    async def analyze_batch(self, addresses: List[str], chain: str = "ethereum",
                            scan_depth: str = "quick") -> Dict[str, Any]:
        """One independent run per address; a failure never affects its siblings"""
        logger.info(f"📊 Batch analysis started: {len(addresses)} contracts on {chain}")

        outcomes = await asyncio.gather(
            *(self.analyze(address, chain, scan_depth) for address in addresses),
            return_exceptions=True,
        )

        results = []
        for address, outcome in zip(addresses, outcomes):
            if isinstance(outcome, BaseException):
                results.append({"contract_address": address, "status": "failed", "error": _error_body(outcome)})
            else:
                results.append({"contract_address": address, "status": "success", "result": outcome})

        successful = sum(1 for r in results if r["status"] == "success")
        logger.info(f"✅ Batch analysis complete: {successful} successful, {len(results) - successful} failed")

        return {
            "batch_size": len(addresses),
            "successful": successful,
            "failed": len(results) - successful,
            "results": results,
        }

    # ============================================
    # HEALTH
    # ============================================

    async def health(self) -> Dict[str, Any]:
        services: Dict[str, Any] = {}
        status = "ok"

        try:
            block = await self.reader_for(get_config().blockchain.default_chain).get_block_number()
            services["rpc"] = {"status": "ok", "current_block": block}
        except UpstreamUnavailableError as e:
            services["rpc"] = {"status": "error", "message": e.message}
            status = "degraded"

        try:
            await self.cache.ping()
            services["cache"] = {"status": "ok", "type": "SQLite", **(await self.cache.stats())}
        except Exception as e:
            logger.error(f"Cache health check failed: {e}")
            services["cache"] = {"status": "error", "message": str(e)}
            status = "degraded"

        services["goplus"] = {"status": "ok" if getattr(self.goplus, "enabled", False) else "disabled"}
        services["token_sniffer"] = {"status": "ok" if getattr(self.token_sniffer, "enabled", False) else "disabled"}

        return {
            "status": status,
            "version": VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": services,
            "errors": error_tracker.get_stats()["error_counts"],
        }


def _error_body(error: BaseException) -> Dict[str, Any]:
    if isinstance(error, ScorerError):
        return error.to_dict()["error"]
    return {"code": ErrorCode.INTERNAL_ERROR.value, "message": str(error)}
