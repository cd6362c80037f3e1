"""
Private Trading - ORM Models.

============================================================
PURPOSE
============================================================
SQLAlchemy ORM models for ledger persistence.

TABLES:
- trading_orders: Order ledger (amount and price sealed)
- trading_trades: Trade ledger
- trading_portfolio: Balance per (trader, pair)
- trading_market_prices: Market price table
- trading_events: Emitted notifications (audit trail)

AUDIT REQUIREMENTS:
- Every accepted submission is written in one transaction
- Orders and trades are never deleted
- Notifications are stored exactly as emitted

============================================================
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from database.base import Base, TimestampMixin


# ============================================================
# ORDER MODEL
# ============================================================

class TradingOrderModel(Base, TimestampMixin):
    """Persisted order record."""

    __tablename__ = "trading_orders"

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    trader: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    pair: Mapped[str] = mapped_column(String(32), nullable=False)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    kind: Mapped[str] = mapped_column(String(8), nullable=False)

    # Fernet tokens, never plaintext
    sealed_amount: Mapped[str] = mapped_column(Text, nullable=False)
    sealed_price: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(String(16), nullable=False)
    placed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    fill_trade_id: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_trading_orders_pair_status", "pair", "status"),
    )

    def to_dict(self) -> dict:
        """Convert to dictionary. Sealed fields are left out."""
        return {
            "order_id": self.order_id,
            "trader": self.trader,
            "pair": self.pair,
            "direction": self.direction,
            "kind": self.kind,
            "status": self.status,
            "placed_at": self.placed_at.isoformat() if self.placed_at else None,
            "fill_trade_id": self.fill_trade_id,
        }


# ============================================================
# TRADE MODEL
# ============================================================

class TradingTradeModel(Base, TimestampMixin):
    """Persisted trade record."""

    __tablename__ = "trading_trades"

    trade_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    buyer: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    seller: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    pair: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    volume: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price: Mapped[Optional[int]] = mapped_column(BigInteger)
    order_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    executed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    confirmed: Mapped[bool] = mapped_column(default=True)


# ============================================================
# PORTFOLIO MODEL
# ============================================================

class PortfolioEntryModel(Base, TimestampMixin):
    """Balance for one (trader, pair)."""

    __tablename__ = "trading_portfolio"

    trader: Mapped[str] = mapped_column(String(128), primary_key=True)
    pair: Mapped[str] = mapped_column(String(32), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


# ============================================================
# MARKET PRICE MODEL
# ============================================================

class MarketPriceModel(Base, TimestampMixin):
    """Price for one pair."""

    __tablename__ = "trading_market_prices"

    pair: Mapped[str] = mapped_column(String(32), primary_key=True)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)


# ============================================================
# EVENT MODEL
# ============================================================

class LedgerEventModel(Base):
    """Stored notification."""

    __tablename__ = "trading_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    emitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
