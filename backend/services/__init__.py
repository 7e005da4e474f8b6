"""
Contract risk analysis services
Resolution, scoring, recommendations and pipeline orchestration
"""

from .resolver import DataSourceResolver, Resolution, ResolverState
from .risk_pipeline import RiskPipeline
from .scoring import Contributions, ScoreResult, score_contract

__all__ = [
    "DataSourceResolver",
    "Resolution",
    "ResolverState",
    "RiskPipeline",
    "Contributions",
    "ScoreResult",
    "score_contract",
]
