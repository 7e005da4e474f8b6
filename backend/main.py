"""
Contract Risk Scorer - FastAPI application

Run with:
    uvicorn main:app --port 3000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.risk_router import router as risk_router
from data_sources.creator_history import CreatorHistoryAdapter
from data_sources.etherscan import EtherscanClient
from data_sources.goplus import GoPlusAdapter
from data_sources.sourcify import SourcifyClient
from data_sources.token_sniffer import TokenSnifferAdapter
from infrastructure.config import get_config
from infrastructure.errors import register_exception_handlers
from infrastructure.result_cache import RiskCache
from infrastructure.rpc import ChainReaderRegistry
from sentry_config import init_sentry
from services.resolver import DataSourceResolver
from services.risk_pipeline import RiskPipeline

logger = logging.getLogger("Main")


def configure_logging():
    cfg = get_config()
    logging.basicConfig(
        level=getattr(logging, cfg.monitoring.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def build_pipeline(cache: RiskCache) -> RiskPipeline:
    """Wire every collaborator explicitly; nothing stateful lives at module level"""
    readers = ChainReaderRegistry()
    explorers = {}

    def explorer_for(chain: str) -> EtherscanClient:
        if chain not in explorers:
            explorers[chain] = EtherscanClient(chain)
        return explorers[chain]

    resolver = DataSourceResolver(explorer_for, SourcifyClient(), readers.get)
    return RiskPipeline(
        resolver=resolver,
        cache=cache,
        goplus=GoPlusAdapter(),
        token_sniffer=TokenSnifferAdapter(),
        creator_history=CreatorHistoryAdapter(explorer_for),
        explorer_for=explorer_for,
        reader_for=readers.get,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = get_config()
    cache = None

    if getattr(app.state, "pipeline", None) is None:
        cache = RiskCache(cfg.cache.sqlite_path, ttl_seconds=cfg.cache.ttl_seconds)
        await cache.initialize()
        app.state.pipeline = build_pipeline(cache)

    logger.info(f"🚀 Contract Risk Scorer ready ({cfg.environment.value}) on chains: {', '.join(cfg.supported_chains)}")
    try:
        yield
    finally:
        if cache is not None:
            await cache.close()
        logger.info("👋 Contract Risk Scorer stopped")


def create_app(pipeline: Optional[RiskPipeline] = None) -> FastAPI:
    configure_logging()
    init_sentry()

    app = FastAPI(
        title="Contract Risk Scorer",
        description="Fraud-risk scoring for EVM smart contracts",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(risk_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=get_config().port)
