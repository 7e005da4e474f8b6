"""
Final risk record produced by the pipeline and stored in the result cache.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .findings import Finding


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def risk_level_for(score: float) -> RiskLevel:
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass(frozen=True)
class RiskRecord:
    score: int
    level: RiskLevel
    confidence: float
    findings: Tuple[Finding, ...] = ()
    security_checks: Dict[str, bool] = field(default_factory=dict)
    recommendations: Tuple[str, ...] = ()
    improvements: Tuple[str, ...] = ()

    contract_info: Dict[str, Any] = field(default_factory=dict)
    external_checks: Dict[str, Any] = field(default_factory=dict)
    scan_depth: str = "quick"
    data_source_trace: Tuple[str, ...] = ()
    analysis_time_ms: Optional[int] = None

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"score out of range: {self.score}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")

    def to_dict(self) -> Dict:
        return {
            "risk_score": self.score,
            "risk_level": self.level.value,
            "confidence": self.confidence,
            "contract_info": self.contract_info,
            "vulnerabilities": [f.to_dict() for f in self.findings],
            "security_checks": dict(self.security_checks),
            "external_checks": self.external_checks,
            "recommendations": list(self.recommendations),
            "improvements": list(self.improvements),
            "scan_depth": self.scan_depth,
            "data_source_trace": list(self.data_source_trace),
            "analysis_time_ms": self.analysis_time_ms,
        }

    def finding_types(self) -> List[str]:
        return [f.type for f in self.findings]
