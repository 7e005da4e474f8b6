"""
Token Sniffer Adapter
Scam-database lookup. Paid API: disabled unless ENABLE_TOKEN_SNIFFER=true
and TOKEN_SNIFFER_API_KEY are both set.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from infrastructure.config import get_config, get_secrets
from models.findings import AnalyzerResult, Severity
from models.oracle import Checked, OracleResult, RateLimited, UncheckedReason
from .oracle_base import SecurityOracle, unchecked

logger = logging.getLogger("TokenSniffer")

SOURCE = "Token Sniffer"

CHAIN_SLUGS = {
    "ethereum": "eth",
    "polygon": "polygon",
    "arbitrum": "arbitrum",
    "optimism": "optimism",
    "base": "base",
}


def parse_report(data: Dict[str, Any]) -> Dict[str, Any]:
    tests = data.get("tests") or {}
    return {
        "in_database": True,
        "score": data.get("score") or 0,
        "scam": bool(data.get("scam")),
        "audit_status": data.get("audit") or "not_audited",
        "warnings": list(data.get("warnings") or []),
        "exploits": list(data.get("exploits") or []),
        "is_honeypot": bool(tests.get("is_honeypot")),
        "hidden_owner": bool(tests.get("hidden_owner")),
        "high_buy_tax": bool(tests.get("high_buy_tax")),
        "high_sell_tax": bool(tests.get("high_sell_tax")),
    }


class TokenSnifferAdapter(SecurityOracle):
    name = "token_sniffer"
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
        self.api_key = api_key if api_key is not None else get_secrets().get("TOKEN_SNIFFER_API_KEY")
        flag = cfg.features.enable_token_sniffer if enabled is None else enabled
        self.enabled = bool(flag and self.api_key)
        self.base_url = (base_url or cfg.api.token_sniffer_url).rstrip("/")
        self.timeout = timeout or cfg.api.oracle_timeout
        self._transport = transport

    async def check(self, address: str, chain: str) -> OracleResult:
        if not self.enabled:
            return unchecked(UncheckedReason.DISABLED, "Token Sniffer check disabled")

        slug = CHAIN_SLUGS.get(chain.lower(), "eth")
        url = f"{self.base_url}/tokens/{slug}/{address}"
        headers = {"Accept": "application/json", "Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers=headers)

            if response.status_code == 404:
                # absent from the scam database: checked, neutral
                return Checked({"in_database": False, "score": None, "scam": False,
                                "warnings": [], "exploits": []})

            if response.status_code == 401:
                logger.warning("Token Sniffer rejected the API key")
                return unchecked(UncheckedReason.ERROR, "API key required")

            if response.status_code == 429:
                logger.warning("⚠️ Token Sniffer rate limit reached")
                return RateLimited()

            if response.status_code != 200:
                return unchecked(UncheckedReason.ERROR, f"HTTP {response.status_code}")

            data = response.json()

        except Exception as e:
            logger.error(f"Token Sniffer request failed: {e}")
            return unchecked(UncheckedReason.ERROR, str(e))

        return Checked(parse_report(data))

    def score(self, data: Dict[str, Any]) -> AnalyzerResult:
        if not data.get("in_database"):
            return AnalyzerResult(details=dict(data))

        findings = []

        if data.get("scam"):
            findings.append(self.finding(SOURCE, "scam_database_flagged", Severity.CRITICAL,
                                         "Token flagged as scam in Token Sniffer database",
                                         "Scam flag: true", 25))

        scam_score = data.get("score") or 0
        if scam_score > 70:
            findings.append(self.finding(SOURCE, "high_scam_score", Severity.HIGH,
                                         "High scam probability score detected",
                                         f"Scam score: {scam_score}/100", 20))
        elif scam_score > 50:
            findings.append(self.finding(SOURCE, "moderate_scam_score", Severity.MEDIUM,
                                         "Moderate scam probability detected",
                                         f"Scam score: {scam_score}/100", 10))

        warnings = data.get("warnings") or []
        if warnings:
            findings.append(self.finding(SOURCE, "token_sniffer_warnings", Severity.MEDIUM,
                                         f"Warnings detected: {', '.join(map(str, warnings))}",
                                         f"{len(warnings)} warning(s)", min(len(warnings) * 3, 15)))

        exploits = data.get("exploits") or []
        if exploits:
            findings.append(self.finding(SOURCE, "known_exploits", Severity.CRITICAL,
                                         "Known exploits detected in contract",
                                         ", ".join(map(str, exploits)), 30))

        if data.get("is_honeypot"):
            findings.append(self.finding(SOURCE, "honeypot_token_sniffer", Severity.CRITICAL,
                                         "Honeypot mechanism detected", "tests.is_honeypot", 25))

        if data.get("hidden_owner"):
            findings.append(self.finding(SOURCE, "hidden_owner_token_sniffer", Severity.HIGH,
                                         "Hidden owner detected", "tests.hidden_owner", 15))

        return AnalyzerResult.from_findings(findings, **data)
