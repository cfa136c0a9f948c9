"""
Launchpad TOML Configuration Loader

Loads every section of launchpad.toml with environment variable overrides.

Environment variable mapping:
    [factory] owner        → LAUNCHPAD_FACTORY_OWNER
    [factory] base_fee     → LAUNCHPAD_BASE_FEE
    [ledger]  anti_bot_window → LAUNCHPAD_ANTI_BOT_WINDOW
    [oracle]  rpc_url      → LAUNCHPAD_ORACLE_RPC_URL
    [logging] level        → LAUNCHPAD_LOG_LEVEL
    ...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from eth_utils import is_address

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    try:
        import tomli  # type: ignore[no-redef]
    except ImportError:
        tomli = None  # type: ignore[assignment]

from ..constants import (
    ANTI_BOT_WINDOW_HEIGHT,
    BPS_DENOMINATOR,
    DEFAULT_BASE_FEE,
    DEFAULT_MAX_TRANSACTION_BPS,
    DEFAULT_MAX_WALLET_BPS,
    MAX_DISCOUNT_PERCENTAGE,
    ORACLE_DEFAULT_BLOCK_TAG,
    ORACLE_DEFAULT_TIMEOUT,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ---------------------------------------------------------------------------
# Section dataclasses, one per [section] of launchpad.example.toml
# ---------------------------------------------------------------------------


@dataclass
class FactorySectionConfig:
    """[factory] section."""
    owner: str = ""
    address: str = ""
    base_fee: int = DEFAULT_BASE_FEE
    discount_token: str = ""
    discount_threshold: int = 0
    discount_percentage: int = 0
    whitelist: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactorySectionConfig":
        return cls(
            owner=data.get("owner", ""),
            address=data.get("address", ""),
            base_fee=data.get("base_fee", DEFAULT_BASE_FEE),
            discount_token=data.get("discount_token", ""),
            discount_threshold=data.get("discount_threshold", 0),
            discount_percentage=data.get("discount_percentage", 0),
            whitelist=list(data.get("whitelist", [])),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LAUNCHPAD_FACTORY_OWNER"):
            self.owner = v
        if v := os.environ.get("LAUNCHPAD_FACTORY_ADDRESS"):
            self.address = v
        if v := os.environ.get("LAUNCHPAD_BASE_FEE"):
            self.base_fee = int(v)
        if v := os.environ.get("LAUNCHPAD_DISCOUNT_TOKEN"):
            self.discount_token = v
        if v := os.environ.get("LAUNCHPAD_DISCOUNT_THRESHOLD"):
            self.discount_threshold = int(v)
        if v := os.environ.get("LAUNCHPAD_DISCOUNT_PERCENTAGE"):
            self.discount_percentage = int(v)
        if v := os.environ.get("LAUNCHPAD_WHITELIST"):
            self.whitelist = [a.strip() for a in v.split(",") if a.strip()]

    def validate(self) -> None:
        if self.owner and not is_address(self.owner):
            raise ValueError(f"Invalid factory owner: {self.owner}")
        if self.address and not is_address(self.address):
            raise ValueError(f"Invalid factory address: {self.address}")
        if self.discount_token and not is_address(self.discount_token):
            raise ValueError(f"Invalid discount_token: {self.discount_token}")
        if self.base_fee < 0:
            raise ValueError("base_fee must be >= 0")
        if self.discount_threshold < 0:
            raise ValueError("discount_threshold must be >= 0")
        if not 0 <= self.discount_percentage <= MAX_DISCOUNT_PERCENTAGE:
            raise ValueError(
                f"discount_percentage must be 0-{MAX_DISCOUNT_PERCENTAGE}, "
                f"got {self.discount_percentage}"
            )
        for account in self.whitelist:
            if not is_address(account):
                raise ValueError(f"Invalid whitelist entry: {account}")


@dataclass
class LedgerSectionConfig:
    """[ledger] section, defaults applied to every created ledger."""
    anti_bot_window: int = ANTI_BOT_WINDOW_HEIGHT
    max_transaction_bps: int = DEFAULT_MAX_TRANSACTION_BPS
    max_wallet_bps: int = DEFAULT_MAX_WALLET_BPS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerSectionConfig":
        return cls(
            anti_bot_window=data.get("anti_bot_window", ANTI_BOT_WINDOW_HEIGHT),
            max_transaction_bps=data.get("max_transaction_bps", DEFAULT_MAX_TRANSACTION_BPS),
            max_wallet_bps=data.get("max_wallet_bps", DEFAULT_MAX_WALLET_BPS),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LAUNCHPAD_ANTI_BOT_WINDOW"):
            self.anti_bot_window = int(v)
        if v := os.environ.get("LAUNCHPAD_MAX_TRANSACTION_BPS"):
            self.max_transaction_bps = int(v)
        if v := os.environ.get("LAUNCHPAD_MAX_WALLET_BPS"):
            self.max_wallet_bps = int(v)

    def validate(self) -> None:
        if self.anti_bot_window < 1:
            raise ValueError("anti_bot_window must be >= 1")
        for name in ("max_transaction_bps", "max_wallet_bps"):
            value = getattr(self, name)
            if not 1 <= value <= BPS_DENOMINATOR:
                raise ValueError(f"{name} must be 1-{BPS_DENOMINATOR}, got {value}")


@dataclass
class OracleSectionConfig:
    """[oracle] section. Empty rpc_url means no JSON-RPC oracle."""
    rpc_url: str = ""
    timeout: float = ORACLE_DEFAULT_TIMEOUT
    block_tag: str = ORACLE_DEFAULT_BLOCK_TAG

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleSectionConfig":
        return cls(
            rpc_url=data.get("rpc_url", ""),
            timeout=data.get("timeout", ORACLE_DEFAULT_TIMEOUT),
            block_tag=data.get("block_tag", ORACLE_DEFAULT_BLOCK_TAG),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LAUNCHPAD_ORACLE_RPC_URL"):
            self.rpc_url = v
        if v := os.environ.get("LAUNCHPAD_ORACLE_TIMEOUT"):
            self.timeout = float(v)

    def validate(self) -> None:
        if self.timeout <= 0:
            raise ValueError("oracle timeout must be > 0")
        if self.rpc_url and not self.rpc_url.startswith(("http://", "https://")):
            raise ValueError(f"oracle rpc_url must be http(s): {self.rpc_url}")


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(level=data.get("level", "INFO"))

    def apply_env(self) -> None:
        if v := os.environ.get("LAUNCHPAD_LOG_LEVEL"):
            self.level = v.upper()


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class LaunchpadConfig:
    """
    Unified launchpad configuration.

    Loads every section of launchpad.toml and applies environment variable
    overrides.
    """
    factory: FactorySectionConfig = field(default_factory=FactorySectionConfig)
    ledger: LedgerSectionConfig = field(default_factory=LedgerSectionConfig)
    oracle: OracleSectionConfig = field(default_factory=OracleSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LaunchpadConfig":
        """Create LaunchpadConfig from a parsed TOML dict."""
        return cls(
            factory=FactorySectionConfig.from_dict(data.get("factory", {})),
            ledger=LedgerSectionConfig.from_dict(data.get("ledger", {})),
            oracle=OracleSectionConfig.from_dict(data.get("oracle", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "LaunchpadConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to launchpad.toml

        Returns:
            LaunchpadConfig instance
        """
        if tomli is None:
            raise ImportError(
                "tomli is required for TOML config loading. "
                "Install it: pip install tomli"
            )

        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            raw = tomli.load(f)

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.factory.apply_env()
        self.ledger.apply_env()
        self.oracle.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all valid

        Raises:
            ValueError: on invalid config
        """
        if self.logging.level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")
        self.factory.validate()
        self.ledger.validate()
        self.oracle.validate()
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "factory": {
                "owner": self.factory.owner,
                "address": self.factory.address,
                "base_fee": self.factory.base_fee,
                "discount_token": self.factory.discount_token,
                "discount_threshold": self.factory.discount_threshold,
                "discount_percentage": self.factory.discount_percentage,
                "whitelist": list(self.factory.whitelist),
            },
            "ledger": {
                "anti_bot_window": self.ledger.anti_bot_window,
                "max_transaction_bps": self.ledger.max_transaction_bps,
                "max_wallet_bps": self.ledger.max_wallet_bps,
            },
            "oracle": {
                "rpc_url": self.oracle.rpc_url,
                "timeout": self.oracle.timeout,
                "block_tag": self.oracle.block_tag,
            },
            "logging": {
                "level": self.logging.level,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> LaunchpadConfig:
    """
    Load launchpad configuration.

    Resolution order:
        1. Explicit *path* argument
        2. LAUNCHPAD_CONFIG env var
        3. ./launchpad.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("LAUNCHPAD_CONFIG", "launchpad.toml")

    return LaunchpadConfig.from_file(path)
