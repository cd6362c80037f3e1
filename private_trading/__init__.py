"""
Private Trading Package.

============================================================
CONFIDENTIAL TRADING LEDGER
============================================================

Order, trade and portfolio ledgers for a single venue with a
market-maker counterparty. Amounts and prices are sealed at rest
and readable only by their owner or the privileged account.

Components:
- service: PrivateTradingService, the submission and query surface
- ledgers: In-memory ledgers and the per-submission change set
- execution_policy: Limit and market fill rules
- state_machine: Order lifecycle
- confidential: Fernet vault for amounts and prices
- decryption: Oracle request and callback gateway
- repository: SQLAlchemy persistence

============================================================
"""

from .config import TradingLedgerConfig
from .events import (
    DecryptionFulfilled,
    EventBus,
    LedgerEvent,
    OrderCancelled,
    OrderExecuted,
    OrderPlaced,
    PriceUpdated,
    QuickTradeExecuted,
    TradeExecuted,
)
from .service import PrivateTradingService, create_trading_service
from .types import (
    MARKET_MAKER,
    AuthorizationError,
    BalancePolicy,
    DecryptionRequestError,
    Direction,
    InsufficientBalanceError,
    LimitFillPolicy,
    OrderData,
    OrderInfo,
    OrderKind,
    OrderNotCancellableError,
    OrderNotFoundError,
    OrderStatus,
    PersistenceError,
    SealedValueError,
    TradeData,
    TradeInfo,
    TradeNotFoundError,
    TradingLedgerError,
    ValidationError,
)


__all__ = [
    "PrivateTradingService",
    "create_trading_service",
    "TradingLedgerConfig",
    "EventBus",
    "LedgerEvent",
    "OrderPlaced",
    "OrderExecuted",
    "OrderCancelled",
    "TradeExecuted",
    "QuickTradeExecuted",
    "PriceUpdated",
    "DecryptionFulfilled",
    "MARKET_MAKER",
    "Direction",
    "OrderKind",
    "OrderStatus",
    "LimitFillPolicy",
    "BalancePolicy",
    "OrderInfo",
    "OrderData",
    "TradeInfo",
    "TradeData",
    "TradingLedgerError",
    "ValidationError",
    "AuthorizationError",
    "OrderNotFoundError",
    "TradeNotFoundError",
    "OrderNotCancellableError",
    "InsufficientBalanceError",
    "DecryptionRequestError",
    "PersistenceError",
    "SealedValueError",
]
