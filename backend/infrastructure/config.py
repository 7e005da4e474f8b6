"""
Configuration Management for the Contract Risk Scorer
Environment-based configuration with secrets handling and feature flags

Features:
- Environment-based config (dev/staging/prod)
- Secrets management
- Per-chain RPC endpoints
- Oracle feature flags
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from enum import Enum

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("Config")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, "true" if default else "false").lower() == "true"


@dataclass
class CacheConfig:
    """Result cache configuration"""
    sqlite_path: str = "scan_cache.db"
    ttl_seconds: int = 3600


@dataclass
class BlockchainConfig:
    """Blockchain configuration"""
    default_chain: str = "ethereum"

    # RPC endpoints
    rpc_urls: Dict[str, str] = field(default_factory=lambda: {
        "ethereum": "https://eth.llamarpc.com",
        "polygon": "https://polygon-rpc.com",
        "arbitrum": "https://arb1.arbitrum.io/rpc",
        "optimism": "https://mainnet.optimism.io",
        "base": "https://mainnet.base.org",
    })

    rpc_timeout: int = 10
    average_block_time: float = 12.0


@dataclass
class APIConfig:
    """External API configuration"""
    etherscan_url: str = "https://api.etherscan.io/v2/api"
    sourcify_url: str = "https://sourcify.dev/server"
    goplus_url: str = "https://api.gopluslabs.io/api/v1"
    token_sniffer_url: str = "https://tokensniffer.com/api/v2"

    # Timeouts (seconds)
    request_timeout: int = 10
    oracle_timeout: int = 10
    # Budget for analyzers and oracles that fan out into several calls
    analysis_timeout: int = 30

    # Creator history fan-out bounds
    creator_history_max_contracts: int = 20
    creator_history_max_transactions: int = 10000


@dataclass
class MonitoringConfig:
    """Monitoring configuration"""
    log_level: str = "INFO"
    sentry_dsn: Optional[str] = None


@dataclass
class FeatureFlags:
    """Feature flags for optional oracles"""
    enable_goplus: bool = True
    enable_token_sniffer: bool = False
    enable_creator_history: bool = True


@dataclass
class ScorerConfig:
    """Main application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    port: int = 3000
    max_batch_size: int = 10
    supported_chains: List[str] = field(default_factory=lambda: [
        "ethereum", "polygon", "arbitrum", "optimism", "base",
    ])

    # Component configs
    cache: CacheConfig = field(default_factory=CacheConfig)
    blockchain: BlockchainConfig = field(default_factory=BlockchainConfig)
    api: APIConfig = field(default_factory=APIConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "ScorerConfig":
        """Create configuration from environment variables"""
        env = os.environ.get("SCORER_ENV", "development").lower()

        config = cls(
            environment=Environment(env) if env in [e.value for e in Environment] else Environment.DEVELOPMENT,
            debug=_env_bool("DEBUG", True),
            port=int(os.environ.get("PORT", "3000")),
        )

        config.cache = CacheConfig(
            sqlite_path=os.environ.get("CACHE_DB_PATH", "scan_cache.db"),
            ttl_seconds=int(os.environ.get("CACHE_TTL_SECONDS", "3600")),
        )

        # Per-chain overrides, e.g. ETHEREUM_RPC_URL
        for chain in list(config.blockchain.rpc_urls):
            override = os.environ.get(f"{chain.upper()}_RPC_URL")
            if override:
                config.blockchain.rpc_urls[chain] = override

        config.api.etherscan_url = os.environ.get("ETHERSCAN_API_URL", config.api.etherscan_url)
        config.api.request_timeout = int(os.environ.get("REQUEST_TIMEOUT", "10"))
        config.api.oracle_timeout = int(os.environ.get("ORACLE_TIMEOUT", "10"))
        config.api.analysis_timeout = int(os.environ.get("ANALYSIS_TIMEOUT", "30"))

        config.monitoring = MonitoringConfig(
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            sentry_dsn=os.environ.get("SENTRY_DSN"),
        )

        config.features = FeatureFlags(
            enable_goplus=_env_bool("ENABLE_GOPLUS", True),
            enable_token_sniffer=_env_bool("ENABLE_TOKEN_SNIFFER", False),
            enable_creator_history=_env_bool("ENABLE_CREATOR_HISTORY", True),
        )

        # Production hardening
        if config.environment == Environment.PRODUCTION:
            config.debug = False
            config.monitoring.log_level = "WARNING"

        return config

    def rpc_url(self, chain: str) -> str:
        return self.blockchain.rpc_urls.get(chain.lower(), self.blockchain.rpc_urls["ethereum"])

    def to_dict(self) -> Dict:
        """Convert to dictionary (hiding secrets)"""
        def sanitize(obj):
            if isinstance(obj, dict):
                return {
                    k: sanitize(v) for k, v in obj.items()
                    if "key" not in k.lower() and "secret" not in k.lower() and "dsn" not in k.lower()
                }
            elif hasattr(obj, '__dataclass_fields__'):
                return sanitize({k: getattr(obj, k) for k in obj.__dataclass_fields__})
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return sanitize(self)


# ============================================
# SECRETS MANAGEMENT
# ============================================

class SecretsManager:
    """
    Holds API keys for the explorer and oracle services.
    Values are read from the environment once and never logged.
    """

    SECRET_KEYS = [
        "ETHERSCAN_API_KEY",
        "GOPLUS_API_KEY",
        "TOKEN_SNIFFER_API_KEY",
    ]

    def __init__(self):
        self._secrets: Dict[str, str] = {}
        self._load_from_env()

    def _load_from_env(self):
        """Load secrets from environment variables"""
        for key in self.SECRET_KEYS:
            value = os.environ.get(key)
            if value:
                self._secrets[key] = value

    def get(self, key: str, default: str = None) -> Optional[str]:
        """Get a secret value"""
        return self._secrets.get(key, default)


# ============================================
# GLOBAL INSTANCES
# ============================================

# Load configuration on module import
config = ScorerConfig.from_env()
secrets = SecretsManager()

logger.info(f"Configuration loaded for environment: {config.environment.value}")


def get_config() -> ScorerConfig:
    """Get the global configuration"""
    return config


def get_secrets() -> SecretsManager:
    """Get the secrets manager"""
    return secrets


def reload_config():
    """Reload configuration from environment"""
    global config, secrets
    config = ScorerConfig.from_env()
    secrets = SecretsManager()
    logger.info("Configuration reloaded")
