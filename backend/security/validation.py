"""
Pydantic Validation Models for the risk scoring API

All user inputs are validated here before any analysis runs.
"""

import re
from typing import List

from pydantic import BaseModel, Field, field_validator

from models.contract import Chain, ScanDepth

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


# ============================================
# CUSTOM VALIDATORS
# ============================================

def validate_ethereum_address(address: str) -> str:
    """Validate Ethereum address format"""
    if not address:
        raise ValueError("Address is required")
    if not ADDRESS_PATTERN.match(address):
        raise ValueError("Invalid Ethereum address format")
    return address.lower()


# ============================================
# REQUEST MODELS
# ============================================

class AnalyzeRequest(BaseModel):
    """Single contract analysis"""
    contract_address: str = Field(..., description="Contract address (0x + 40 hex chars)")
    chain: Chain = Field(default=Chain.ETHEREUM)
    scan_depth: ScanDepth = Field(default=ScanDepth.QUICK)

    @field_validator("contract_address")
    @classmethod
    def validate_address(cls, v):
        return validate_ethereum_address(v)


class BatchAnalyzeRequest(BaseModel):
    """
    Batch analysis. The size limit is enforced by the router so an
    oversized batch is reported as such rather than as a field error.
    """
    contracts: List[str] = Field(..., min_length=1)
    chain: Chain = Field(default=Chain.ETHEREUM)
    scan_depth: ScanDepth = Field(default=ScanDepth.QUICK)

    @field_validator("contracts")
    @classmethod
    def validate_addresses(cls, v):
        return [validate_ethereum_address(address) for address in v]
