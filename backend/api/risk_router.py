"""
Risk Scoring API Router
Endpoints for single and batch contract risk analysis, health and metadata
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from infrastructure.config import get_config
from infrastructure.errors import BatchTooLargeError
from security import AnalyzeRequest, BatchAnalyzeRequest
from sentry_config import capture_analysis_context

router = APIRouter(tags=["Risk"])


def get_pipeline(request: Request):
    return request.app.state.pipeline


# ============================================
# ANALYSIS ENDPOINTS
# ============================================

@router.post("/analyze")
async def analyze_contract(body: AnalyzeRequest, request: Request):
    """
    Analyze one contract and return its risk record.

    Identical requests within the cache TTL return the cached record.
    """
    capture_analysis_context(body.contract_address, body.chain.value, body.scan_depth.value)
    pipeline = get_pipeline(request)
    return await pipeline.analyze(body.contract_address, body.chain.value, body.scan_depth.value)


@router.post("/analyze-batch")
async def analyze_batch(body: BatchAnalyzeRequest, request: Request):
    """Analyze up to `max_batch_size` contracts in parallel"""
    limit = get_config().max_batch_size
    if len(body.contracts) > limit:
        raise BatchTooLargeError(limit, len(body.contracts))

    pipeline = get_pipeline(request)
    return await pipeline.analyze_batch(body.contracts, body.chain.value, body.scan_depth.value)


# ============================================
# SERVICE ENDPOINTS
# ============================================

@router.get("/health")
async def health(request: Request):
    report = await get_pipeline(request).health()
    return JSONResponse(content=report, status_code=200 if report["status"] == "ok" else 503)


@router.get("/")
async def service_info():
    cfg = get_config()
    return {
        "name": "Contract Risk Scorer",
        "description": "Fraud-risk scoring for EVM smart contracts (rug pulls, honeypots, hidden backdoors)",
        "version": "1.0.0",
        "supported_chains": cfg.supported_chains,
        "scan_depths": ["quick", "deep"],
        "max_batch_size": cfg.max_batch_size,
        "endpoints": {
            "analyze": "POST /analyze",
            "analyze_batch": "POST /analyze-batch",
            "health": "GET /health",
        },
    }
