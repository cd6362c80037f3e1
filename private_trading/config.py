"""
Private Trading - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the private trading ledger.

CRITICAL CONSTRAINTS:
- Deterministic fill rules only
- One balance policy applied to every fill
- No secrets in code (vault key comes from the environment)

============================================================
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

from .types import MAX_UINT32, BalancePolicy, LimitFillPolicy


logger = logging.getLogger(__name__)


ENV_PREFIX = "PRIVATE_TRADING_"


def _default_seed_prices() -> Dict[str, int]:
    return {
        "BTC/ETH": 15,
        "ETH/USDT": 2500,
        "BTC/USDT": 43000,
    }


# ============================================================
# MARKET CONFIGURATION
# ============================================================

@dataclass
class MarketConfig:
    """
    Market price table configuration.
    """

    seed_prices: Dict[str, int] = field(default_factory=_default_seed_prices)
    """Prices loaded into the table at construction."""


# ============================================================
# VALIDATION CONFIGURATION
# ============================================================

@dataclass
class ValidationConfig:
    """
    Submission validation bounds.
    """

    max_amount: int = MAX_UINT32
    """Largest accepted amount."""

    max_price: int = MAX_UINT32
    """Largest accepted price."""

    max_pair_length: int = 32
    """Longest accepted pair name."""


# ============================================================
# EXECUTION POLICY CONFIGURATION
# ============================================================

@dataclass
class ExecutionPolicyConfig:
    """
    Limit order fill configuration.
    """

    limit_fill_policy: LimitFillPolicy = LimitFillPolicy.MARKET_CROSSING
    """Rule deciding whether a limit order fills on submission."""

    sweep_on_price_update: bool = True
    """Whether a price update fills queued limit orders that now cross."""


# ============================================================
# PORTFOLIO CONFIGURATION
# ============================================================

@dataclass
class PortfolioConfig:
    """
    Portfolio balance configuration.
    """

    balance_policy: BalancePolicy = BalancePolicy.SIGNED
    """Whether balances may go negative."""


# ============================================================
# VAULT CONFIGURATION
# ============================================================

@dataclass
class VaultConfig:
    """
    Encryption-at-rest configuration.
    """

    key: Optional[str] = None
    """Secret the Fernet key is derived from. None generates an ephemeral key."""


# ============================================================
# PERSISTENCE CONFIGURATION
# ============================================================

@dataclass
class PersistenceConfig:
    """
    Database configuration.
    """

    enabled: bool = False
    """Whether accepted submissions are written to the database."""

    database_url: Optional[str] = None
    """SQLAlchemy URL. None resolves from the environment."""

    echo: bool = False
    """Log SQL statements."""


# ============================================================
# LOGGING CONFIGURATION
# ============================================================

@dataclass
class LoggingConfig:
    """
    Logging configuration.
    """

    configure: bool = False
    """Whether the service factory installs the root handler."""

    level: str = "INFO"
    log_format: str = "text"


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class TradingLedgerConfig:
    """
    Master configuration for the trading ledger.
    """

    privileged_account: str = "owner"
    """Account with price-update and restricted-read rights."""

    market: MarketConfig = field(default_factory=MarketConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    execution: ExecutionPolicyConfig = field(default_factory=ExecutionPolicyConfig)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)
    vault: VaultConfig = field(default_factory=VaultConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_testing(cls) -> "TradingLedgerConfig":
        """Get configuration for testing."""
        return cls(
            privileged_account="owner",
            vault=VaultConfig(key="test-vault-key"),
            persistence=PersistenceConfig(
                enabled=False,
                database_url="sqlite+pysqlite:///:memory:",
            ),
        )

    def validate(self) -> None:
        """
        Reject combinations the ledger cannot run with.

        Raises:
            ValueError: Persistence without a vault key, or a seed
                price outside the validation bounds
        """
        if self.persistence.enabled and not self.vault.key:
            raise ValueError(
                "Persistence requires a vault key: values sealed with an "
                "ephemeral key cannot be opened after a restart"
            )
        for pair, price in self.market.seed_prices.items():
            _check_seed_price(pair, price, self.validation)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "TradingLedgerConfig":
        """
        Build configuration from PRIVATE_TRADING_* environment variables.

        A .env file is loaded first; variables already set win.
        """
        load_dotenv(dotenv_path)

        config = cls()

        privileged = _env("PRIVILEGED_ACCOUNT")
        if privileged:
            config.privileged_account = privileged

        seed = _env("SEED_PRICES")
        if seed:
            config.market.seed_prices = parse_seed_prices(seed)

        fill_policy = _env("LIMIT_FILL_POLICY")
        if fill_policy:
            config.execution.limit_fill_policy = LimitFillPolicy(fill_policy.lower())

        sweep = _env("SWEEP_ON_PRICE_UPDATE")
        if sweep is not None:
            config.execution.sweep_on_price_update = _parse_bool(sweep)

        balance_policy = _env("BALANCE_POLICY")
        if balance_policy:
            config.portfolio.balance_policy = BalancePolicy(balance_policy.lower())

        config.vault.key = _env("VAULT_KEY") or None

        database_url = _env("DATABASE_URL")
        if database_url:
            config.persistence.enabled = True
            config.persistence.database_url = database_url

        echo = _env("DATABASE_ECHO")
        if echo is not None:
            config.persistence.echo = _parse_bool(echo)

        level = _env("LOG_LEVEL")
        if level:
            config.logging.configure = True
            config.logging.level = level.upper()

        log_format = _env("LOG_FORMAT")
        if log_format:
            config.logging.log_format = log_format.lower()

        logger.debug(
            f"Loaded configuration: fill_policy={config.execution.limit_fill_policy.value} "
            f"balance_policy={config.portfolio.balance_policy.value} "
            f"persistence={config.persistence.enabled}"
        )
        config.validate()
        return config


# ============================================================
# HELPERS
# ============================================================

def _env(name: str) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return None
    return value.strip()


def _parse_bool(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


def parse_seed_prices(raw: str) -> Dict[str, int]:
    """
    Parse "PAIR=PRICE,PAIR=PRICE" into a price table.

    Raises:
        ValueError: If an entry is malformed or out of bounds
    """
    bounds = ValidationConfig()
    prices: Dict[str, int] = {}
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        pair, sep, price = chunk.rpartition("=")
        if not sep or not pair.strip():
            raise ValueError(f"Malformed seed price entry: {chunk!r}")
        pair = pair.strip()
        prices[pair] = _check_seed_price(pair, int(price), bounds)
    return prices


def _check_seed_price(pair: str, price: int, bounds: ValidationConfig) -> int:
    if len(pair) > bounds.max_pair_length:
        raise ValueError(
            f"Seed pair {pair!r} longer than {bounds.max_pair_length} characters"
        )
    if isinstance(price, bool) or not isinstance(price, int) or not 1 <= price <= bounds.max_price:
        raise ValueError(f"Seed price for {pair!r} must be between 1 and {bounds.max_price}")
    return price
