"""
Static lookup tables: well-known tokens, stablecoin and scam keywords.

All lookups are pure functions over lower-cased addresses.
"""

from typing import Dict, Optional

# ============================================
# KNOWN SAFE TOKENS (Ethereum mainnet)
# ============================================

KNOWN_SAFE_TOKENS = frozenset({
    # Stablecoins
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",  # USDC
    "0xdac17f958d2ee523a2206206994597c13d831ec7",  # USDT
    "0x6b175474e89094c44da98b954eedeac495271d0f",  # DAI
    "0x4fabb145d64652a948d72533023f6e7a623c7c53",  # BUSD
    # Wrapped assets
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",  # WETH
    "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",  # WBTC
    # DeFi blue chips
    "0x514910771af9ca656af840dff83e8264ecf986ca",  # LINK
    "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984",  # UNI
    "0x7d1afa7b718fb893db30a3abc0cfc608aacfebb0",  # MATIC
    "0x7fc66500c84a76ad7e9c93437bfc5ac33e2ddae9",  # AAVE
    "0x6b3595068778dd592e39a122f4f5a5cf09c90fe2",  # SUSHI
    "0xc00e94cb662c3520282e6f5717214004a7f26888",  # COMP
    "0x9f8f72aa9304c8b593d555f12ef6589cc3a579a2",  # MKR
    # Exchange tokens
    "0xb8c77482e45f1f44de1745f52c74426c631bdd52",  # BNB
    "0x50d1c9771902476076ecfc8b2a83ad6b9355a4c9",  # FTT
    "0xa0b73e1ff0b80914ab6fe0444e65848c4c34450b",  # CRO
    "0x75231f58b43240c9718dd58b4967c5114342a86c",  # OKB
    "0x6f259637dcd74c767781e37bc6133cd6a68aa161",  # HT
    "0x4a220e6096b25eadb88358cb44068a3248254675",  # QNT
})

# Tokens whose issuer legitimately keeps an admin key
KNOWN_TOKENS: Dict[str, Dict] = {
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": {
        "name": "USD Coin", "symbol": "USDC", "type": "stablecoin",
        "issuer": "Circle", "allow_centralized": True,
    },
    "0xdac17f958d2ee523a2206206994597c13d831ec7": {
        "name": "Tether USD", "symbol": "USDT", "type": "stablecoin",
        "issuer": "Tether", "allow_centralized": True,
    },
    "0x6b175474e89094c44da98b954eedeac495271d0f": {
        "name": "Dai Stablecoin", "symbol": "DAI", "type": "stablecoin",
        "issuer": "MakerDAO", "allow_centralized": False,
    },
    "0x4fabb145d64652a948d72533023f6e7a623c7c53": {
        "name": "Binance USD", "symbol": "BUSD", "type": "stablecoin",
        "issuer": "Binance/Paxos", "allow_centralized": True,
    },
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": {
        "name": "Wrapped Ether", "symbol": "WETH", "type": "wrapped",
        "issuer": "WETH9", "allow_centralized": False,
    },
    "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599": {
        "name": "Wrapped BTC", "symbol": "WBTC", "type": "wrapped",
        "issuer": "BitGo", "allow_centralized": True,
    },
    "0x514910771af9ca656af840dff83e8264ecf986ca": {
        "name": "ChainLink Token", "symbol": "LINK", "type": "utility",
        "issuer": "Chainlink", "allow_centralized": False,
    },
    "0x7d1afa7b718fb893db30a3abc0cfc608aacfebb0": {
        "name": "Polygon", "symbol": "MATIC", "type": "L2",
        "issuer": "Polygon", "allow_centralized": False,
    },
    "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984": {
        "name": "Uniswap", "symbol": "UNI", "type": "governance",
        "issuer": "Uniswap", "allow_centralized": False,
    },
}

STABLECOIN_KEYWORDS = ("usd", "usdc", "usdt", "dai", "busd", "tusd", "gusd", "pax")

SCAM_KEYWORDS = (
    "scam", "beware", "fake", "phishing", "warning", "honeypot",
    "fraud", "ponzi", "rugpull", "rug pull", "exit scam",
    "dont buy", "don't buy", "stay away", "avoid", "stolen", "hacked",
)


def is_known_safe_token(address: str) -> bool:
    return bool(address) and address.lower() in KNOWN_SAFE_TOKENS


def known_token(address: str) -> Optional[Dict]:
    if not address:
        return None
    return KNOWN_TOKENS.get(address.lower())


def allows_centralized_ownership(address: str) -> bool:
    token = known_token(address)
    return bool(token and token["allow_centralized"])


def is_stablecoin(symbol: Optional[str], name: Optional[str]) -> bool:
    if not symbol and not name:
        return False
    text = f"{symbol or ''} {name or ''}".lower()
    return any(keyword in text for keyword in STABLECOIN_KEYWORDS)


def scam_keyword_in(name: Optional[str], symbol: Optional[str]) -> Optional[str]:
    """Return the first scam keyword found in name/symbol, or None"""
    text = f"{name or ''} {symbol or ''}".lower()
    for keyword in SCAM_KEYWORDS:
        if keyword in text:
            return keyword
    return None
