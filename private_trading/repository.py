"""
Private Trading - Repository.

============================================================
PURPOSE
============================================================
Database operations for ledger persistence.

RESPONSIBILITIES:
- Write one change set per transaction
- Restore ledger state at startup
- Query persisted history

CRITICAL REQUIREMENTS:
- A change set is written completely or not at all
- Amounts and prices stay sealed in the database

============================================================
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, func, desc
from sqlalchemy.orm import Session, sessionmaker

from core.clock import ensure_utc
from database.engine import DatabasePersistenceError, transaction_scope

from .ledgers import ChangeSet, LedgerState
from .models import (
    LedgerEventModel,
    MarketPriceModel,
    PortfolioEntryModel,
    TradingOrderModel,
    TradingTradeModel,
)
from .types import (
    Direction,
    Order,
    OrderKind,
    OrderStatus,
    PersistenceError,
    PortfolioEntry,
    Trade,
)


logger = logging.getLogger(__name__)


# ============================================================
# LEDGER REPOSITORY
# ============================================================

class LedgerRepository:
    """
    Repository for ledger persistence.

    Handles all database operations for the trading ledger.
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize repository.

        Args:
            session_factory: SQLAlchemy session factory
        """
        self._session_factory = session_factory

    # --------------------------------------------------------
    # WRITE
    # --------------------------------------------------------

    def persist(self, changes: ChangeSet) -> None:
        """
        Write a change set in one transaction.

        Raises:
            PersistenceError: If the transaction fails (nothing is written)
        """
        try:
            with transaction_scope(self._session_factory) as session:
                for order in changes.orders.values():
                    self._upsert_order(session, order)
                session.flush()

                for trade in changes.trades:
                    session.add(self._trade_to_model(trade))

                for entry in changes.portfolio.values():
                    self._upsert_portfolio(session, entry)

                for pair, price in changes.prices.items():
                    session.merge(MarketPriceModel(pair=pair, price=price))

                for event in changes.events:
                    session.add(LedgerEventModel(
                        event_type=event.name,
                        payload=event.model_dump(mode="json"),
                        emitted_at=event.emitted_at,
                    ))
        except DatabasePersistenceError as e:
            raise PersistenceError(str(e)) from e

        logger.info(
            f"Persisted change set: orders={len(changes.orders)} "
            f"trades={len(changes.trades)} portfolio={len(changes.portfolio)} "
            f"prices={len(changes.prices)} events={len(changes.events)}"
        )

    def save_prices(self, prices: Dict[str, int]) -> None:
        """Write prices that are not in the database yet (initial seed)."""
        try:
            with transaction_scope(self._session_factory) as session:
                existing = set(session.scalars(select(MarketPriceModel.pair)))
                for pair, price in prices.items():
                    if pair not in existing:
                        session.add(MarketPriceModel(pair=pair, price=price))
        except DatabasePersistenceError as e:
            raise PersistenceError(str(e)) from e

    def _upsert_order(self, session: Session, order: Order) -> None:
        model = session.get(TradingOrderModel, order.order_id)
        if model is None:
            session.add(self._order_to_model(order))
            return
        model.status = order.status.value
        model.status_changed_at = order.status_changed_at
        model.fill_trade_id = order.fill_trade_id

    def _upsert_portfolio(self, session: Session, entry: PortfolioEntry) -> None:
        model = session.get(PortfolioEntryModel, (entry.trader, entry.pair))
        if model is None:
            session.add(PortfolioEntryModel(
                trader=entry.trader,
                pair=entry.pair,
                balance=entry.balance,
                balance_updated_at=entry.updated_at,
            ))
            return
        model.balance = entry.balance
        model.balance_updated_at = entry.updated_at

    # --------------------------------------------------------
    # READ
    # --------------------------------------------------------

    def load_into(self, state: LedgerState) -> None:
        """Restore persisted orders, trades, balances and prices."""
        with self._session_factory() as session:
            orders = [self._model_to_order(m) for m in session.scalars(select(TradingOrderModel))]
            trades = [self._model_to_trade(m) for m in session.scalars(select(TradingTradeModel))]
            entries = [
                self._model_to_portfolio(m)
                for m in session.scalars(select(PortfolioEntryModel))
            ]
            prices = {m.pair: m.price for m in session.scalars(select(MarketPriceModel))}

        state.orders.restore(orders)
        state.trades.restore(trades)
        state.portfolio.restore(entries)
        state.prices.restore(prices)

        logger.info(
            f"Restored ledger: orders={len(orders)} trades={len(trades)} "
            f"portfolio={len(entries)} prices={len(prices)}"
        )

    def get_order(self, order_id: int) -> Optional[Order]:
        with self._session_factory() as session:
            model = session.get(TradingOrderModel, order_id)
            return self._model_to_order(model) if model else None

    def get_trades_for_pair(self, pair: str, limit: int = 100) -> List[Trade]:
        with self._session_factory() as session:
            result = session.scalars(
                select(TradingTradeModel)
                .where(TradingTradeModel.pair == pair)
                .order_by(desc(TradingTradeModel.trade_id))
                .limit(limit)
            )
            return [self._model_to_trade(m) for m in result]

    def count_orders(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(TradingOrderModel))

    def count_trades(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(TradingTradeModel))

    def get_events(self, event_type: Optional[str] = None, limit: int = 100) -> List[dict]:
        """Stored notifications, newest first."""
        with self._session_factory() as session:
            query = select(LedgerEventModel).order_by(desc(LedgerEventModel.id)).limit(limit)
            if event_type:
                query = query.where(LedgerEventModel.event_type == event_type)
            return [
                {"event_type": m.event_type, **m.payload}
                for m in session.scalars(query)
            ]

    # --------------------------------------------------------
    # CONVERTERS
    # --------------------------------------------------------

    def _order_to_model(self, order: Order) -> TradingOrderModel:
        return TradingOrderModel(
            order_id=order.order_id,
            trader=order.trader,
            pair=order.pair,
            direction=order.direction.value,
            kind=order.kind.value,
            sealed_amount=order.sealed_amount,
            sealed_price=order.sealed_price,
            status=order.status.value,
            placed_at=order.created_at,
            status_changed_at=order.status_changed_at,
            fill_trade_id=order.fill_trade_id,
        )

    def _model_to_order(self, model: TradingOrderModel) -> Order:
        return Order(
            order_id=model.order_id,
            trader=model.trader,
            pair=model.pair,
            direction=Direction(model.direction),
            kind=OrderKind(model.kind),
            sealed_amount=model.sealed_amount,
            sealed_price=model.sealed_price,
            created_at=ensure_utc(model.placed_at),
            status=OrderStatus(model.status),
            status_changed_at=ensure_utc(model.status_changed_at) if model.status_changed_at else None,
            fill_trade_id=model.fill_trade_id,
        )

    def _trade_to_model(self, trade: Trade) -> TradingTradeModel:
        return TradingTradeModel(
            trade_id=trade.trade_id,
            buyer=trade.buyer,
            seller=trade.seller,
            pair=trade.pair,
            volume=trade.volume,
            price=trade.price,
            order_id=trade.order_id,
            executed_at=trade.executed_at,
            confirmed=trade.confirmed,
        )

    def _model_to_trade(self, model: TradingTradeModel) -> Trade:
        return Trade(
            trade_id=model.trade_id,
            buyer=model.buyer,
            seller=model.seller,
            pair=model.pair,
            volume=model.volume,
            price=model.price,
            executed_at=ensure_utc(model.executed_at),
            order_id=model.order_id,
            confirmed=model.confirmed,
        )

    def _model_to_portfolio(self, model: PortfolioEntryModel) -> PortfolioEntry:
        return PortfolioEntry(
            trader=model.trader,
            pair=model.pair,
            balance=model.balance,
            exists=True,
            updated_at=ensure_utc(model.balance_updated_at) if model.balance_updated_at else None,
        )
