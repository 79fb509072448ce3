"""Configuration management for TxGuard."""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass
class Config:
    """Engine configuration."""

    # AI review
    anthropic_api_key: str = ""
    ai_model: str = "claude-3-5-haiku-20241022"

    # Threat intelligence
    chainabuse_api_key: str = ""
    goplus_chain_id: str = "1"

    # Movement nodes
    movement_mainnet_url: str = "https://mainnet.movementnetwork.xyz/v1"
    movement_testnet_url: str = "https://testnet.movementnetwork.xyz/v1"
    movement_devnet_url: str = "https://devnet.movementnetwork.xyz/v1"

    # Timeouts
    detector_timeout_seconds: float = 4.0
    ai_timeout_seconds: float = 20.0
    http_timeout_seconds: float = 10.0

    # Cache
    market_cache_ttl_seconds: float = 300
    threat_cache_ttl_seconds: float = 300
    ledger_cache_ttl_seconds: float = 30
    cache_refresh_ahead_seconds: float = 30
    cache_max_entries: int = 10000

    log_level: str = "WARNING"

    def __post_init__(self):
        """Load configuration from environment."""
        load_dotenv()

        # AI review
        self.anthropic_api_key = os.getenv("ANTHROPIC_API_KEY", self.anthropic_api_key)
        self.ai_model = os.getenv("AI_MODEL", self.ai_model)

        # Threat intelligence
        self.chainabuse_api_key = os.getenv("CHAINABUSE_API_KEY", self.chainabuse_api_key)
        self.goplus_chain_id = os.getenv("GOPLUS_CHAIN_ID", self.goplus_chain_id)

        # Movement nodes
        self.movement_mainnet_url = os.getenv("MOVEMENT_MAINNET_URL", self.movement_mainnet_url)
        self.movement_testnet_url = os.getenv("MOVEMENT_TESTNET_URL", self.movement_testnet_url)
        self.movement_devnet_url = os.getenv("MOVEMENT_DEVNET_URL", self.movement_devnet_url)

        # Timeouts
        self.detector_timeout_seconds = float(os.getenv("DETECTOR_TIMEOUT_SECONDS", self.detector_timeout_seconds))
        self.ai_timeout_seconds = float(os.getenv("AI_TIMEOUT_SECONDS", self.ai_timeout_seconds))
        self.http_timeout_seconds = float(os.getenv("HTTP_TIMEOUT_SECONDS", self.http_timeout_seconds))

        # Cache
        self.market_cache_ttl_seconds = float(os.getenv("MARKET_CACHE_TTL_SECONDS", self.market_cache_ttl_seconds))
        self.threat_cache_ttl_seconds = float(os.getenv("THREAT_CACHE_TTL_SECONDS", self.threat_cache_ttl_seconds))
        self.ledger_cache_ttl_seconds = float(os.getenv("LEDGER_CACHE_TTL_SECONDS", self.ledger_cache_ttl_seconds))
        self.cache_refresh_ahead_seconds = float(
            os.getenv("CACHE_REFRESH_AHEAD_SECONDS", self.cache_refresh_ahead_seconds)
        )
        self.cache_max_entries = int(os.getenv("CACHE_MAX_ENTRIES", self.cache_max_entries))

        self.log_level = os.getenv("TXGUARD_LOG_LEVEL", self.log_level).upper()

    @property
    def ai_enabled(self) -> bool:
        return bool(self.anthropic_api_key)

    def get_node_url(self, network: str) -> str:
        """Get the Movement fullnode URL for a network."""
        urls = {
            "mainnet": self.movement_mainnet_url,
            "testnet": self.movement_testnet_url,
            "devnet": self.movement_devnet_url,
        }
        return urls.get(network, self.movement_mainnet_url)

    def validate(self) -> list[str]:
        """Validate configuration, return list of issues."""
        issues = []

        for name in ("detector_timeout_seconds", "ai_timeout_seconds", "http_timeout_seconds"):
            if getattr(self, name) <= 0:
                issues.append(f"{name.upper()} must be positive")

        for name in ("market_cache_ttl_seconds", "threat_cache_ttl_seconds", "ledger_cache_ttl_seconds"):
            if getattr(self, name) <= 0:
                issues.append(f"{name.upper()} must be positive")

        if self.cache_refresh_ahead_seconds < 0:
            issues.append("CACHE_REFRESH_AHEAD_SECONDS cannot be negative")

        if self.cache_max_entries < 1:
            issues.append("CACHE_MAX_ENTRIES must be at least 1")

        if not isinstance(logging.getLevelName(self.log_level), int):
            issues.append(f"Unknown TXGUARD_LOG_LEVEL {self.log_level!r}")

        if not self.anthropic_api_key:
            issues.append("No ANTHROPIC_API_KEY configured (AI review disabled)")

        if not self.chainabuse_api_key:
            issues.append("No CHAINABUSE_API_KEY configured (ChainAbuse reports skipped)")

        return issues
