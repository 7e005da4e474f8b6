"""
Findings and per-analyzer contributions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Tuple


class Severity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    SAFE = "safe"


@dataclass(frozen=True)
class Finding:
    type: str
    severity: Severity
    description: str
    source: str
    evidence: Any = None
    score_delta: int = 0

    def to_dict(self) -> Dict:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "description": self.description,
            "evidence": self.evidence,
            "score_delta": self.score_delta,
            "source": self.source,
        }


@dataclass(frozen=True)
class AnalyzerResult:
    """
    One analyzer's contribution to the final score.

    `analyzed` is False when the analyzer could not reach its data;
    `details` carries values the aggregator reads (lp_locked, is_renounced, ...).
    """
    score_delta: int = 0
    findings: Tuple[Finding, ...] = ()
    analyzed: bool = True
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_findings(cls, findings: Iterable[Finding], analyzed: bool = True, **details) -> "AnalyzerResult":
        findings = tuple(findings)
        return cls(
            score_delta=sum(f.score_delta for f in findings),
            findings=findings,
            analyzed=analyzed,
            details=details,
        )

    @classmethod
    def neutral(cls, source: str, finding_type: str, description: str, evidence: Any = None) -> "AnalyzerResult":
        """Zero contribution carrying a single informational finding"""
        return cls(
            score_delta=0,
            findings=(Finding(finding_type, Severity.INFO, description, source, evidence, 0),),
            analyzed=False,
        )

    def has(self, finding_type: str) -> bool:
        return any(f.type == finding_type for f in self.findings)
