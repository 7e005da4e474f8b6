"""
Risk Scorer Infrastructure Module
Configuration, errors, chain access and the result cache
"""

from .errors import (
    ScorerError,
    ValidationError,
    BatchTooLargeError,
    UpstreamUnavailableError,
    ResolutionFailureError,
    AnalysisFailedError,
    CacheCorruptionError,
    ErrorCode,
    ErrorTracker,
    error_tracker,
    retry,
    register_exception_handlers,
)

from .config import (
    ScorerConfig,
    Environment,
    FeatureFlags,
    SecretsManager,
    get_config,
    get_secrets,
    reload_config,
)

from .rpc import ChainReader, ChainReaderRegistry, ZERO_ADDRESS
from .result_cache import RiskCache, CacheEntry, DEFAULT_TTL_SECONDS

__all__ = [
    # Errors
    "ScorerError",
    "ValidationError",
    "BatchTooLargeError",
    "UpstreamUnavailableError",
    "ResolutionFailureError",
    "AnalysisFailedError",
    "CacheCorruptionError",
    "ErrorCode",
    "ErrorTracker",
    "error_tracker",
    "retry",
    "register_exception_handlers",

    # Config
    "ScorerConfig",
    "Environment",
    "FeatureFlags",
    "SecretsManager",
    "get_config",
    "get_secrets",
    "reload_config",

    # Chain + cache
    "ChainReader",
    "ChainReaderRegistry",
    "ZERO_ADDRESS",
    "RiskCache",
    "CacheEntry",
    "DEFAULT_TTL_SECONDS",
]
