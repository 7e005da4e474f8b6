"""
Request validation for the risk scoring API
"""

from .validation import (
    ADDRESS_PATTERN,
    AnalyzeRequest,
    BatchAnalyzeRequest,
    validate_ethereum_address,
)

__all__ = [
    "ADDRESS_PATTERN",
    "AnalyzeRequest",
    "BatchAnalyzeRequest",
    "validate_ethereum_address",
]
