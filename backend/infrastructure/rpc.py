# infrastructure/rpc.py
"""
Direct chain reads for the risk scorer.

One ChainReader per chain wraps a synchronous web3 HTTP provider; every
call runs on the default executor so the event loop is never blocked.
Failures surface as UpstreamUnavailableError.
"""
import asyncio
import logging
from functools import partial
from typing import Any, Callable, Dict, Optional

from web3 import Web3

from .config import get_config
from .errors import UpstreamUnavailableError

logger = logging.getLogger("ChainReader")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ERC20_ABI = [
    {"constant": True, "inputs": [], "name": "name", "outputs": [{"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "totalSupply", "outputs": [{"name": "", "type": "uint256"}], "type": "function"},
    {"constant": True, "inputs": [{"name": "owner", "type": "address"}], "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}], "type": "function"},
]

OWNABLE_ABI = [
    {"constant": True, "inputs": [], "name": "owner", "outputs": [{"name": "", "type": "address"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "getOwner", "outputs": [{"name": "", "type": "address"}], "type": "function"},
]

# Function signatures whose selectors identify admin contracts in bytecode
MULTISIG_SIGNATURES = [
    "getOwners()",
    "getThreshold()",
    "required()",
    "confirmations(uint256,address)",
    "isOwner(address)",
]

TIMELOCK_SIGNATURES = [
    "delay()",
    "getMinDelay()",
    "queueTransaction(address,uint256,string,bytes,uint256)",
    "executeTransaction(address,uint256,string,bytes,uint256)",
    "MINIMUM_DELAY()",
    "GRACE_PERIOD()",
]


def selector(signature: str) -> str:
    """4-byte function selector as lowercase hex without 0x"""
    return Web3.keccak(text=signature).hex().replace("0x", "")[:8]


def code_has_any_selector(code: str, signatures) -> bool:
    code = (code or "").lower()
    return any(selector(sig) in code for sig in signatures)


class ChainReader:
    """Async facade over a web3 HTTP provider for one chain"""

    def __init__(self, chain: str = "ethereum", rpc_url: Optional[str] = None,
                 web3: Optional[Web3] = None, timeout: Optional[int] = None):
        cfg = get_config()
        self.chain = chain.lower()
        self.rpc_url = rpc_url or cfg.rpc_url(self.chain)
        self.timeout = timeout or cfg.blockchain.rpc_timeout
        self.w3 = web3 or Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={'timeout': self.timeout}))

    async def _run(self, label: str, fn: Callable, *args) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args))
        except Exception as e:
            logger.warning(f"⚠️ RPC {label} failed on {self.chain}: {e}")
            raise UpstreamUnavailableError("rpc", f"RPC {label} failed: {e}") from e

    def _contract(self, address: str, abi):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # ------------------------------------------------------------------
    # Raw reads
    # ------------------------------------------------------------------

    async def get_code(self, address: str) -> str:
        """Deployed bytecode as 0x-prefixed hex ("0x" for EOAs)"""
        def _read():
            return Web3.to_hex(self.w3.eth.get_code(Web3.to_checksum_address(address)))
        return await self._run("eth_getCode", _read)

    async def get_transaction_count(self, address: str) -> int:
        def _read():
            return int(self.w3.eth.get_transaction_count(Web3.to_checksum_address(address)))
        return await self._run("eth_getTransactionCount", _read)

    async def get_block_number(self) -> int:
        def _read():
            return int(self.w3.eth.block_number)
        return await self._run("eth_blockNumber", _read)

    # ------------------------------------------------------------------
    # Contract calls
    # ------------------------------------------------------------------

    async def get_owner(self, address: str) -> Optional[str]:
        """owner(), then getOwner(). None when neither is callable."""
        def _read():
            contract = self._contract(address, OWNABLE_ABI)
            for fn_name in ("owner", "getOwner"):
                try:
                    return getattr(contract.functions, fn_name)().call()
                except Exception:
                    continue
            return None

        owner = await self._run("owner()", _read)
        return owner.lower() if owner else None

    async def get_token_info(self, address: str) -> Dict[str, Any]:
        """Best-effort ERC-20 metadata; missing fields fall back to defaults"""
        def _read():
            contract = self._contract(address, ERC20_ABI)
            info = {"name": None, "symbol": None, "decimals": 18, "total_supply": 0}
            for key, fn_name in (("name", "name"), ("symbol", "symbol"),
                                 ("decimals", "decimals"), ("total_supply", "totalSupply")):
                try:
                    info[key] = getattr(contract.functions, fn_name)().call()
                except Exception:
                    pass
            return info
        return await self._run("token info", _read)

    async def total_supply(self, address: str) -> int:
        def _read():
            return int(self._contract(address, ERC20_ABI).functions.totalSupply().call())
        return await self._run("totalSupply()", _read)

    async def balance_of(self, token: str, holder: str) -> int:
        def _read():
            contract = self._contract(token, ERC20_ABI)
            return int(contract.functions.balanceOf(Web3.to_checksum_address(holder)).call())
        return await self._run("balanceOf()", _read)


class ChainReaderRegistry:
    """Lazily builds and caches one ChainReader per chain"""

    def __init__(self, factory: Callable[[str], ChainReader] = ChainReader):
        self._factory = factory
        self._readers: Dict[str, ChainReader] = {}

    def get(self, chain: str) -> ChainReader:
        chain = chain.lower()
        if chain not in self._readers:
            self._readers[chain] = self._factory(chain)
        return self._readers[chain]
