"""
Sourcify API Client
Decentralized source verification, consulted when the block explorer is down.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from infrastructure.config import get_config
from infrastructure.errors import UpstreamUnavailableError
from models.contract import chain_id

logger = logging.getLogger("Sourcify")


class SourcifyClient:
    """Client for the Sourcify server API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = get_config()
        self.base_url = (base_url or cfg.api.sourcify_url).rstrip("/")
        self.timeout = timeout or cfg.api.request_timeout
        self._transport = transport

    async def get_source(self, address: str, chain: str) -> Optional[Dict[str, Any]]:
        """
        Verified source for a contract.

        Returns None when Sourcify has no full or partial match.
        Raises UpstreamUnavailableError on transport failure.
        """
        url = f"{self.base_url}/files/any/{chain_id(chain)}/{address}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError("sourcify", f"Sourcify request failed: {e}") from e

        if response.status_code == 404:
            logger.debug(f"Not verified on Sourcify: {address[:10]}...")
            return None

        if response.status_code != 200:
            raise UpstreamUnavailableError(
                "sourcify", f"Sourcify HTTP {response.status_code}", response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError("sourcify", "Sourcify returned invalid JSON") from e

        return self._extract_source(data)

    @staticmethod
    def _extract_source(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        files = data.get("files") or []

        # {"status": "full", "files": [{"name", "path", "content"}]} or {path: content}
        if isinstance(files, dict):
            files = [{"name": path.split("/")[-1], "content": content} for path, content in files.items()]

        sol_files = [f for f in files if str(f.get("name", "")).endswith(".sol") and f.get("content")]
        if not sol_files:
            return None

        main = sol_files[0]
        return {
            "source_code": "\n\n".join(f["content"] for f in sol_files),
            "contract_name": main["name"][:-len(".sol")],
            "match": data.get("status", "full"),
        }
