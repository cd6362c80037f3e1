"""
Private Trading - Types.

============================================================
PURPOSE
============================================================
All type definitions for the private trading ledger.

CRITICAL PRINCIPLE:
    "Amounts and prices are confidential."
    "They never leave the ledger except to the owner or the
     privileged account."

============================================================
"""

from datetime import datetime
from typing import Optional
from dataclasses import dataclass
from enum import Enum


MARKET_MAKER = "market-maker"
"""Sentinel counterparty for fills against the house."""

MAX_UINT32 = 4_294_967_295


# ============================================================
# ORDER TYPES
# ============================================================

class Direction(Enum):
    """Order direction."""

    LONG = "LONG"
    """Buy side. Fills add to the portfolio balance."""

    SHORT = "SHORT"
    """Sell side. Fills subtract from the portfolio balance."""

    @classmethod
    def from_is_long(cls, is_long: bool) -> "Direction":
        """Map the boolean wire flag to a direction."""
        return cls.LONG if is_long else cls.SHORT

    @property
    def is_long(self) -> bool:
        return self is Direction.LONG

    def signed(self, amount: int) -> int:
        """Apply the direction sign to an amount."""
        return amount if self is Direction.LONG else -amount


class OrderKind(Enum):
    """Order kind."""

    LIMIT = "LIMIT"
    """Carries a caller price, filled per the limit fill policy."""

    MARKET = "MARKET"
    """No caller price, filled immediately at the market price."""


# ============================================================
# ORDER LIFECYCLE STATES
# ============================================================

class OrderStatus(Enum):
    """
    Order lifecycle state.

    State Machine:

        ACTIVE
          │
          ├──► EXECUTED
          │
          └──► CANCELLED

    Both terminal states are final.
    """

    ACTIVE = "ACTIVE"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in {OrderStatus.EXECUTED, OrderStatus.CANCELLED}

    def allows_cancel(self) -> bool:
        """Check if an order in this state can be cancelled."""
        return self is OrderStatus.ACTIVE


# ============================================================
# POLICIES
# ============================================================

class LimitFillPolicy(Enum):
    """How a limit order is filled on submission."""

    MARKET_CROSSING = "market_crossing"
    """Fill when the limit price crosses the market price, else queue."""

    IMMEDIATE = "immediate"
    """Always fill at the limit price."""

    QUEUE = "queue"
    """Never fill on submission."""


class BalancePolicy(Enum):
    """How portfolio balances treat underflow."""

    SIGNED = "signed"
    """Balances may go negative (short exposure)."""

    NON_NEGATIVE = "non_negative"
    """Fills that would take a balance below zero are rejected."""


# ============================================================
# LEDGER RECORDS
# ============================================================

@dataclass
class Order:
    """
    Order ledger record.

    Amount and price are held sealed. Use the vault to open them.
    """

    order_id: int
    trader: str
    pair: str
    direction: Direction
    kind: OrderKind
    sealed_amount: str
    sealed_price: Optional[str]
    created_at: datetime
    status: OrderStatus = OrderStatus.ACTIVE
    status_changed_at: Optional[datetime] = None
    fill_trade_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status is OrderStatus.ACTIVE

    @property
    def is_executed(self) -> bool:
        return self.status is OrderStatus.EXECUTED

    @property
    def is_cancelled(self) -> bool:
        return self.status is OrderStatus.CANCELLED


@dataclass(frozen=True)
class Trade:
    """Trade ledger record. Immutable once recorded."""

    trade_id: int
    buyer: str
    seller: str
    pair: str
    volume: int
    price: Optional[int]
    executed_at: datetime
    order_id: Optional[int] = None
    confirmed: bool = True

    def involves(self, account: str) -> bool:
        """Check if the account is a counterparty."""
        return account in (self.buyer, self.seller)


@dataclass(frozen=True)
class PortfolioEntry:
    """Running balance for one (trader, pair)."""

    trader: str
    pair: str
    balance: int
    exists: bool = True
    updated_at: Optional[datetime] = None


# ============================================================
# QUERY RESULTS
# ============================================================

@dataclass(frozen=True)
class OrderInfo:
    """Public order summary. Carries no amount or price."""

    order_id: int
    trader: str
    pair: str
    direction: Direction
    is_active: bool
    is_executed: bool
    is_cancelled: bool
    created_at: datetime

    @property
    def is_long(self) -> bool:
        return self.direction.is_long


@dataclass(frozen=True)
class OrderData:
    """Restricted order figures."""

    order_id: int
    amount: int
    price: Optional[int]


@dataclass(frozen=True)
class TradeInfo:
    """Public trade summary. Carries no volume or price."""

    trade_id: int
    buyer: str
    seller: str
    pair: str
    executed_at: datetime
    confirmed: bool


@dataclass(frozen=True)
class TradeData:
    """Restricted trade figures."""

    trade_id: int
    volume: int
    price: Optional[int]


# ============================================================
# EXCEPTIONS
# ============================================================

class TradingLedgerError(Exception):
    """Base exception for the trading ledger."""

    default_code = "INTERNAL"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or self.default_code


class ValidationError(TradingLedgerError):
    """Submission rejected before any state change."""
    default_code = "VAL_INVALID_AMOUNT"


class AuthorizationError(TradingLedgerError):
    """Caller lacks the capability for a restricted read or write."""
    default_code = "AUTH_NOT_OWNER"


class OrderNotFoundError(TradingLedgerError):
    """No order with the given identifier."""
    default_code = "NF_ORDER"


class TradeNotFoundError(TradingLedgerError):
    """No trade with the given identifier."""
    default_code = "NF_TRADE"


class OrderNotCancellableError(TradingLedgerError):
    """Order is already settled."""
    default_code = "STATE_NOT_CANCELLABLE"


class StateTransitionError(TradingLedgerError):
    """Attempted order status change is not allowed."""
    default_code = "STATE_INVALID_TRANSITION"


class InsufficientBalanceError(TradingLedgerError):
    """Fill would take a balance below zero under the non-negative policy."""
    default_code = "BAL_INSUFFICIENT"


class DecryptionRequestError(TradingLedgerError):
    """Decryption request unknown, pending, or already fulfilled."""
    default_code = "DEC_UNKNOWN_REQUEST"


class PersistenceError(TradingLedgerError):
    """Change set could not be written to the database."""
    default_code = "DB_WRITE_FAILED"


class SealedValueError(TradingLedgerError):
    """Sealed value corrupt or sealed under another vault key."""
    default_code = "VAULT_UNREADABLE"
