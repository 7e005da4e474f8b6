"""
Outcome of a single security-oracle lookup.

An oracle either returned data (Checked), refused us (RateLimited), or
could not be consulted at all (Unchecked with a reason).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class UncheckedReason(str, Enum):
    DISABLED = "disabled"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class Unchecked:
    reason: UncheckedReason
    message: Optional[str] = None

    def to_dict(self) -> Dict:
        return {"checked": False, "reason": self.reason.value, "message": self.message}


@dataclass(frozen=True)
class RateLimited:
    retry_after: Optional[int] = None

    def to_dict(self) -> Dict:
        return {"checked": False, "reason": "rate_limited", "retry_after": self.retry_after}


@dataclass(frozen=True)
class Checked:
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {"checked": True, **self.data}


OracleResult = Union[Unchecked, RateLimited, Checked]


def is_checked(result: OracleResult) -> bool:
    return isinstance(result, Checked)
