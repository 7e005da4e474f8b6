"""
Etherscan V2 API Client
Primary source for verified contract code and indexed transaction history.
One unified endpoint serves every supported chain via the `chainid` parameter.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from infrastructure.config import get_config, get_secrets
from infrastructure.errors import UpstreamUnavailableError, retry
from models.contract import chain_id

logger = logging.getLogger("Etherscan")

# status "0" replies that still carry a usable (empty) answer
BENIGN_MESSAGES = {
    "No transactions found",
    "No data found",
    "Contract source code not verified",
}

NOT_VERIFIED = "Contract source code not verified"


class EtherscanClient:
    """Block-explorer client for one chain"""

    def __init__(
        self,
        chain: str = "ethereum",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = get_config()
        self.chain = chain.lower()
        self.chain_id = chain_id(self.chain)
        self.api_key = api_key if api_key is not None else get_secrets().get("ETHERSCAN_API_KEY", "")
        self.base_url = base_url or cfg.api.etherscan_url
        self.timeout = timeout or cfg.api.request_timeout
        self._transport = transport

    @retry(max_attempts=2, delay=0.5, exceptions=(httpx.TransportError,))
    async def _send(self, params: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.get(self.base_url, params=params)

    async def _request(self, **params) -> Dict[str, Any]:
        """GET the API; raise UpstreamUnavailableError on anything unusable"""
        query = {**params, "chainid": self.chain_id, "apikey": self.api_key or ""}

        try:
            response = await self._send(query)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError("etherscan", f"Etherscan request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamUnavailableError(
                "etherscan", f"Etherscan HTTP {response.status_code}", response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError("etherscan", "Etherscan returned invalid JSON") from e

        if str(data.get("status")) == "0":
            message = data.get("message") or "Unknown error"
            result = data.get("result") if isinstance(data.get("result"), str) else None
            if message not in BENIGN_MESSAGES and result not in BENIGN_MESSAGES:
                # NOTOK + "Max rate limit reached", "Invalid API Key", ...
                raise UpstreamUnavailableError("etherscan", f"Etherscan error: {result or message}")

        # proxy module speaks JSON-RPC
        if data.get("error"):
            raise UpstreamUnavailableError("etherscan", f"Etherscan proxy error: {data['error']}")

        return data

    # ------------------------------------------------------------------
    # Contract module
    # ------------------------------------------------------------------

    async def get_source_code(self, address: str) -> Optional[Dict[str, Any]]:
        data = await self._request(module="contract", action="getsourcecode", address=address)
        result = data.get("result")
        if not isinstance(result, list) or not result:
            return None

        contract = result[0]
        return {
            "source_code": contract.get("SourceCode") or None,
            "abi": contract.get("ABI") if contract.get("ABI") != NOT_VERIFIED else None,
            "contract_name": contract.get("ContractName") or None,
            "compiler_version": contract.get("CompilerVersion"),
            "proxy": contract.get("Proxy") == "1",
            "implementation": contract.get("Implementation") or None,
        }

    async def get_contract_creation(self, address: str) -> Optional[Dict[str, Any]]:
        data = await self._request(
            module="contract", action="getcontractcreation", contractaddresses=address
        )
        result = data.get("result")
        if not isinstance(result, list) or not result:
            return None
        return result[0]

    # ------------------------------------------------------------------
    # Account module
    # ------------------------------------------------------------------

    async def get_transactions(
        self, address: str, page: int = 1, offset: int = 100, sort: str = "desc"
    ) -> List[Dict[str, Any]]:
        data = await self._request(
            module="account", action="txlist", address=address,
            startblock=0, endblock=99999999, page=page, offset=offset, sort=sort,
        )
        result = data.get("result")
        return result if isinstance(result, list) else []

    async def get_token_transfers(
        self,
        address: Optional[str] = None,
        contract_address: Optional[str] = None,
        page: int = 1,
        offset: int = 100,
        sort: str = "desc",
    ) -> List[Dict[str, Any]]:
        params = {
            "module": "account", "action": "tokentx",
            "startblock": 0, "endblock": 99999999,
            "page": page, "offset": offset, "sort": sort,
        }
        if address:
            params["address"] = address
        if contract_address:
            params["contractaddress"] = contract_address

        data = await self._request(**params)
        result = data.get("result")
        return result if isinstance(result, list) else []

    # ------------------------------------------------------------------
    # Proxy module
    # ------------------------------------------------------------------

    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        data = await self._request(module="proxy", action="eth_getTransactionByHash", txhash=tx_hash)
        return data.get("result") or None

    async def get_block_by_number(self, block_number) -> Optional[Dict[str, Any]]:
        tag = hex(block_number) if isinstance(block_number, int) else block_number
        data = await self._request(
            module="proxy", action="eth_getBlockByNumber", tag=tag, boolean="false"
        )
        return data.get("result") or None

    async def get_creation_timestamp(self, tx_hash: str) -> Optional[int]:
        """Unix timestamp of the block that mined `tx_hash`"""
        tx = await self.get_transaction_by_hash(tx_hash)
        if not tx or not tx.get("blockNumber"):
            return None
        block = await self.get_block_by_number(tx["blockNumber"])
        if not block or not block.get("timestamp"):
            return None
        return int(block["timestamp"], 16)

    # ------------------------------------------------------------------
    # Aggregate
    # ------------------------------------------------------------------

    async def get_contract_info(self, address: str) -> Dict[str, Any]:
        """
        Source, creation data, latest transaction and age in one dict.

        Raises UpstreamUnavailableError when the explorer cannot answer.
        """
        source, creation, latest = await asyncio.gather(
            self.get_source_code(address),
            self.get_contract_creation(address),
            self.get_transactions(address, page=1, offset=1),
        )

        age_in_days = 0
        creation_date = None
        if creation and creation.get("txHash"):
            timestamp = await self.get_creation_timestamp(creation["txHash"])
            if timestamp:
                creation_date = datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
                age_in_days = max(0, int((time.time() - timestamp) // 86400))

        source_code = (source or {}).get("source_code")
        tx_count = 0
        if latest:
            try:
                tx_count = int(latest[0].get("nonce", 0)) + 1
            except (TypeError, ValueError):
                tx_count = 0

        logger.info(f"🔎 Explorer data for {address[:10]}... verified={bool(source_code)} age={age_in_days}d")

        return {
            "address": address,
            "chain": self.chain,
            "source_code": source_code,
            "contract_name": (source or {}).get("contract_name"),
            "verified": bool(source_code),
            "is_proxy": bool((source or {}).get("proxy")),
            "implementation": (source or {}).get("implementation"),
            "creator": (creation or {}).get("contractCreator"),
            "creation_tx_hash": (creation or {}).get("txHash"),
            "creation_date": creation_date,
            "age_in_days": age_in_days,
            "transaction_count": tx_count,
        }
