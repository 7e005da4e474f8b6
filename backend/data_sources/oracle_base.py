"""
Common contract for third-party security oracles.

check() never raises: every failure becomes an Unchecked or RateLimited
result. risk() turns any result into an AnalyzerResult; anything other
than Checked yields a zero contribution with one informational finding.
"""
import logging
from typing import Any, Dict

from models.findings import AnalyzerResult, Finding, Severity
from models.oracle import Checked, OracleResult, RateLimited, Unchecked, UncheckedReason

logger = logging.getLogger("SecurityOracle")


class SecurityOracle:
    """Base class for oracle adapters"""

    name = "oracle"
    source = "Security Oracle"

    async def check(self, address: str, chain: str) -> OracleResult:
        raise NotImplementedError

    def score(self, data: Dict[str, Any]) -> AnalyzerResult:
        raise NotImplementedError

    def risk(self, result: OracleResult) -> AnalyzerResult:
        if isinstance(result, Checked):
            return self.score(result.data)

        if isinstance(result, RateLimited):
            return AnalyzerResult.neutral(
                self.source,
                f"{self.name}_rate_limited",
                f"{self.source} rate limit reached - check skipped",
                {"retry_after": result.retry_after},
            )

        if result.reason == UncheckedReason.DISABLED:
            return AnalyzerResult(analyzed=False)

        return AnalyzerResult.neutral(
            self.source,
            f"{self.name}_unavailable",
            f"{self.source} could not be consulted ({result.reason.value})",
            result.message,
        )

    @staticmethod
    def finding(source: str, finding_type: str, severity: Severity, description: str,
                evidence: Any, score: int) -> Finding:
        return Finding(finding_type, severity, description, source, evidence, score)


def unchecked(reason: UncheckedReason, message: str = None) -> Unchecked:
    return Unchecked(reason=reason, message=message)
