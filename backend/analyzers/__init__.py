"""
Analyzer set for contract risk scoring.

Every analyzer is an async function `analyze(contract, *collaborators)`
returning an AnalyzerResult. `guarded` turns any failure into a neutral
contribution so one broken upstream never fails the whole run.
"""

import asyncio
import logging
from typing import Awaitable, Optional

from models.findings import AnalyzerResult

logger = logging.getLogger("Analyzers")


async def guarded(name: str, source: str, coro: Awaitable[AnalyzerResult],
                  timeout: Optional[float] = None) -> AnalyzerResult:
    try:
        if timeout:
            return await asyncio.wait_for(coro, timeout)
        return await coro
    except asyncio.TimeoutError:
        logger.warning(f"⏱️ {name} timed out after {timeout}s")
        return AnalyzerResult.neutral(source, "analysis_error", f"Could not analyze {name}: timed out")
    except Exception as e:
        logger.warning(f"⚠️ {name} failed: {e}")
        return AnalyzerResult.neutral(source, "analysis_error", f"Could not analyze {name}: {e}")
