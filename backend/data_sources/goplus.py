"""
GoPlus Token Security Adapter
Honeypot detection and token-level risk flags from api.gopluslabs.io
"""
import logging
from typing import Any, Dict, Optional

import httpx

from infrastructure.config import get_config, get_secrets
from models.contract import chain_id
from models.findings import AnalyzerResult, Severity
from models.oracle import Checked, OracleResult, RateLimited, UncheckedReason
from .oracle_base import SecurityOracle, unchecked

logger = logging.getLogger("GoPlus")

SOURCE = "GoPlus Security"

BOOL_FIELDS = [
    "is_honeypot", "honeypot_with_same_creator", "is_open_source", "is_proxy",
    "can_take_back_ownership", "owner_change_balance", "hidden_owner",
    "cannot_buy", "cannot_sell_all", "trading_cooldown", "is_blacklisted",
    "is_whitelisted", "selfdestruct", "external_call", "is_mintable",
    "transfer_pausable", "slippage_modifiable", "is_true_token", "is_airdrop_scam",
    "is_anti_whale",
]

# flag -> (finding type, severity, score, description)
FLAG_RULES = {
    "is_honeypot": ("honeypot_detected", Severity.CRITICAL, 30,
                    "Honeypot mechanism detected - tokens cannot be sold"),
    "cannot_sell_all": ("cannot_sell_all", Severity.CRITICAL, 25,
                        "Cannot sell all tokens - potential honeypot"),
    "selfdestruct": ("selfdestruct_goplus", Severity.CRITICAL, 20,
                     "Contract contains self-destruct function"),
    "hidden_owner": ("hidden_owner_goplus", Severity.HIGH, 15,
                     "Contract has hidden owner"),
    "can_take_back_ownership": ("ownership_takeback", Severity.HIGH, 15,
                                "Owner can take back ownership after renouncing"),
    "owner_change_balance": ("owner_change_balance", Severity.HIGH, 15,
                             "Owner can modify user balances"),
    "transfer_pausable": ("transfer_pausable_goplus", Severity.MEDIUM, 8,
                          "Transfers can be paused by owner"),
    "trading_cooldown": ("trading_cooldown_goplus", Severity.MEDIUM, 5,
                         "Trading cooldown mechanism present"),
    "is_blacklisted": ("blacklist_goplus", Severity.MEDIUM, 7,
                       "Blacklist function present"),
    "external_call": ("external_call_risk", Severity.MEDIUM, 5,
                      "Contract makes external calls - potential risk"),
    "honeypot_with_same_creator": ("creator_honeypot_history", Severity.HIGH, 20,
                                   "Creator has deployed honeypots before"),
    "is_airdrop_scam": ("airdrop_scam", Severity.CRITICAL, 25,
                        "Identified as airdrop scam"),
}

HIGH_TAX_PERCENT = 10


def _flag(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    return str(value) == "1"


def _percent(value: Any) -> Optional[float]:
    """GoPlus reports taxes as fractions ("0.05" = 5 %)"""
    if value is None or value == "":
        return None
    try:
        return round(float(value) * 100, 2)
    except (TypeError, ValueError):
        return None


def _number(value: Any, cast=float) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        return None


def parse_token_data(token: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize one token_security entry. Missing fields stay None."""
    parsed = {name: _flag(token.get(name)) for name in BOOL_FIELDS}
    parsed.update({
        "buy_tax": _percent(token.get("buy_tax")),
        "sell_tax": _percent(token.get("sell_tax")),
        "holder_count": _number(token.get("holder_count"), int),
        "lp_holder_count": _number(token.get("lp_holder_count"), int),
        "creator_address": token.get("creator_address"),
        "creator_percent": _number(token.get("creator_percent")),
        "owner_address": token.get("owner_address"),
        "owner_percent": _number(token.get("owner_percent")),
        "token_name": token.get("token_name"),
        "token_symbol": token.get("token_symbol"),
    })
    return parsed


class GoPlusAdapter(SecurityOracle):
    """GoPlus token_security endpoint"""

    name = "goplus"
    source = SOURCE

    def __init__(
        self,
        enabled: Optional[bool] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = get_config()
        self.enabled = cfg.features.enable_goplus if enabled is None else enabled
        self.api_key = api_key if api_key is not None else get_secrets().get("GOPLUS_API_KEY")
        self.base_url = (base_url or cfg.api.goplus_url).rstrip("/")
        self.timeout = timeout or cfg.api.oracle_timeout
        self._transport = transport

    async def check(self, address: str, chain: str) -> OracleResult:
        if not self.enabled:
            return unchecked(UncheckedReason.DISABLED, "GoPlus check disabled")

        address = address.lower()
        url = f"{self.base_url}/token_security/{chain_id(chain)}"
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params={"contract_addresses": address}, headers=headers)

            if response.status_code == 429:
                logger.warning("⚠️ GoPlus rate limit reached")
                return RateLimited(retry_after=_number(response.headers.get("Retry-After"), int))

            if response.status_code == 404:
                return unchecked(UncheckedReason.NOT_FOUND, "Token not found in GoPlus database")

            if response.status_code != 200:
                logger.warning(f"GoPlus API error: {response.status_code}")
                return unchecked(UncheckedReason.ERROR, f"HTTP {response.status_code}")

            data = response.json()

        except Exception as e:
            logger.error(f"GoPlus request failed: {e}")
            return unchecked(UncheckedReason.ERROR, str(e))

        if data.get("code") != 1 or not isinstance(data.get("result"), dict):
            # code 4029 is GoPlus' own throttling signal
            if data.get("code") == 4029:
                return RateLimited()
            return unchecked(UncheckedReason.ERROR, data.get("message") or "Invalid response from GoPlus")

        token = data["result"].get(address)
        if not token:
            return unchecked(UncheckedReason.NOT_FOUND, "Token not found in GoPlus database")

        logger.info(f"🛡️ GoPlus checked {address[:10]}... on {chain}")
        return Checked(parse_token_data(token))

    def score(self, data: Dict[str, Any]) -> AnalyzerResult:
        findings = []

        for flag, (finding_type, severity, points, description) in FLAG_RULES.items():
            if data.get(flag):
                findings.append(self.finding(SOURCE, finding_type, severity, description, f"{flag}: true", points))

        for side in ("buy", "sell"):
            tax = data.get(f"{side}_tax")
            if tax is not None and tax > HIGH_TAX_PERCENT:
                findings.append(self.finding(
                    SOURCE, f"high_{side}_tax_goplus", Severity.HIGH,
                    f"High {side} tax: {tax}%", f"{side}_tax: {tax}%", 10,
                ))

        if data.get("is_proxy") and data.get("is_open_source") is False:
            findings.append(self.finding(
                SOURCE, "proxy_not_verified", Severity.MEDIUM,
                "Proxy contract without verified source code",
                "is_proxy: true, is_open_source: false", 5,
            ))

        return AnalyzerResult.from_findings(findings, **data)
