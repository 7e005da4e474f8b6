"""
Global Error Handling for the Contract Risk Scorer
Structured exceptions and JSON error responses

Features:
- Custom exception classes for the analysis pipeline
- Automatic error logging
- Structured JSON error responses
- Retry logic for external APIs
- Error tracking and aggregation
"""

import asyncio
import logging
import traceback
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar
from functools import wraps
from enum import Enum

from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("ErrorHandler")


# ============================================
# ERROR CODES
# ============================================

class ErrorCode(str, Enum):
    # Client errors (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BATCH_TOO_LARGE = "BATCH_TOO_LARGE"
    NOT_FOUND = "NOT_FOUND"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    RESOLUTION_FAILED = "RESOLUTION_FAILED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"


# ============================================
# CUSTOM EXCEPTIONS
# ============================================

class ScorerError(Exception):
    """Base exception for the risk scorer"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Any = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details if details is not None else {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict:
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat()
            }
        }


class ValidationError(ScorerError):
    """Input validation error - rejected before the pipeline runs"""
    def __init__(self, message: str, details: Any = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, 400, details)


class BatchTooLargeError(ScorerError):
    """Batch request exceeds the per-request contract limit"""
    def __init__(self, limit: int, received: int):
        super().__init__(
            "Batch too large",
            ErrorCode.BATCH_TOO_LARGE,
            400,
            {
                "message": f"Maximum {limit} contracts per batch request",
                "limit": limit,
                "received": received,
            }
        )


class UpstreamUnavailableError(ScorerError):
    """An oracle, explorer or RPC call failed or timed out"""
    def __init__(self, service: str, message: str = None, status_code: int = None):
        details = {"service": service}
        if status_code:
            details["upstream_status_code"] = status_code
        super().__init__(
            message or f"Upstream service '{service}' unavailable",
            ErrorCode.UPSTREAM_UNAVAILABLE,
            502,
            details
        )
        self.service = service


class ResolutionFailureError(ScorerError):
    """Every data-source stage failed - fatal for one analysis run"""
    def __init__(self, address: str, chain: str, message: str, trace: List[str] = None):
        super().__init__(
            message,
            ErrorCode.RESOLUTION_FAILED,
            500,
            {"address": address, "chain": chain, "trace": trace or []}
        )


class AnalysisFailedError(ScorerError):
    """Analysis of a single contract failed"""
    def __init__(self, address: str, chain: str, message: str):
        super().__init__(
            message,
            ErrorCode.ANALYSIS_FAILED,
            500,
            {"contract_address": address, "chain": chain}
        )
        self.address = address
        self.chain = chain


class CacheCorruptionError(ScorerError):
    """Stored cache payload could not be parsed"""
    def __init__(self, key: str, original_error: Exception = None):
        details = {"key": key}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            f"Corrupted cache entry for {key}",
            ErrorCode.CACHE_ERROR,
            500,
            details
        )


# ============================================
# ERROR TRACKING
# ============================================

class ErrorTracker:
    """Tracks and aggregates errors for monitoring"""

    def __init__(self, max_errors: int = 1000):
        self.errors: list = []
        self.max_errors = max_errors
        self.error_counts: Dict[str, int] = {}

    def track(self, error: Exception, request_path: str = None):
        """Track an error"""
        error_type = type(error).__name__

        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

        error_info = {
            "type": error_type,
            "message": str(error),
            "path": request_path,
            "timestamp": datetime.now().isoformat(),
            "traceback": traceback.format_exc() if not isinstance(error, ScorerError) else None
        }

        if isinstance(error, ScorerError):
            error_info["code"] = error.code.value
            error_info["details"] = error.details

        self.errors.append(error_info)

        if len(self.errors) > self.max_errors:
            self.errors = self.errors[-self.max_errors:]

        # Log server-side errors only
        if not isinstance(error, ScorerError) or error.status_code >= 500:
            logger.error(f"Error tracked: {error_type} - {str(error)[:200]}")

    def get_stats(self) -> Dict:
        """Get error statistics"""
        return {
            "total_errors": len(self.errors),
            "error_counts": self.error_counts,
            "recent_errors": self.errors[-10:],
            "timestamp": datetime.now().isoformat()
        }


# Global error tracker
error_tracker = ErrorTracker()


# ============================================
# RETRY LOGIC
# ============================================

T = TypeVar('T')


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for automatic retry with exponential backoff.

    Usage:
        @retry(max_attempts=3, delay=1.0)
        async def fetch_data():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            last_exception = None
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e

                    if attempt < max_attempts - 1:
                        logger.warning(f"Retry {attempt + 1}/{max_attempts} for {func.__name__}: {e}")
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(f"All retries failed for {func.__name__}: {e}")

            raise last_exception

        return wrapper
    return decorator


# ============================================
# FASTAPI EXCEPTION HANDLERS
# ============================================

async def scorer_exception_handler(request: Request, exc: ScorerError) -> JSONResponse:
    """Handle ScorerError exceptions"""
    error_tracker.track(exc, str(request.url.path))

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render pydantic validation failures as 400 with field-level detail"""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({
            "field": ".".join(loc) or "body",
            "message": err.get("msg", "Invalid value"),
        })

    error = ValidationError("Invalid input", details)
    error_tracker.track(error, str(request.url.path))

    return JSONResponse(status_code=400, content=error.to_dict())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPExceptions"""
    error_tracker.track(exc, str(request.url.path))

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.BAD_REQUEST.value if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR.value,
                "message": exc.detail,
                "timestamp": datetime.now().isoformat()
            }
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    error_tracker.track(exc, str(request.url.path))

    logger.error(f"Unhandled exception: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "An unexpected error occurred",
                "timestamp": datetime.now().isoformat()
            }
        }
    )


def register_exception_handlers(app):
    """Register all exception handlers with FastAPI app"""
    app.add_exception_handler(ScorerError, scorer_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")
