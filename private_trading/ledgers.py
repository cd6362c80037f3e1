"""
Private Trading - Ledgers.

============================================================
PURPOSE
============================================================
In-memory state: orders, trades, portfolio balances and market
prices, plus the change set that stages one submission.

RESPONSIBILITIES:
- Allocate strictly increasing order and trade identifiers
- Apply balance deltas under one balance policy
- Stage every mutation of a submission so it can be persisted
  and then applied as a whole

INVARIANTS:
- Identifiers are never reused
- A balance changes only through a trade on that (trader, pair)
- Nothing is applied until the whole change set is built

============================================================
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .events import LedgerEvent
from .types import (
    BalancePolicy,
    InsufficientBalanceError,
    Order,
    PortfolioEntry,
    StateTransitionError,
    Trade,
)


logger = logging.getLogger(__name__)


PortfolioKey = Tuple[str, str]


# ============================================================
# ORDER LEDGER
# ============================================================

class OrderLedger:
    """Orders by identifier. Orders are never deleted."""

    def __init__(self):
        self._orders: Dict[int, Order] = {}
        self._last_id = 0

    @property
    def count(self) -> int:
        return len(self._orders)

    @property
    def last_id(self) -> int:
        return self._last_id

    def get(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    def ids_for_trader(self, trader: str) -> List[int]:
        return [oid for oid, order in self._orders.items() if order.trader == trader]

    def active_for_pair(self, pair: str) -> List[Order]:
        """Active orders on a pair, oldest first."""
        return sorted(
            (o for o in self._orders.values() if o.pair == pair and o.is_active),
            key=lambda o: o.order_id,
        )

    def apply(self, order: Order) -> None:
        existing = self._orders.get(order.order_id)
        if existing is None:
            if order.order_id <= self._last_id:
                raise StateTransitionError(
                    f"Order id {order.order_id} is not above last id {self._last_id}"
                )
            self._last_id = order.order_id
        elif existing.status.is_terminal() and existing.status is not order.status:
            raise StateTransitionError(
                f"Order {order.order_id} is {existing.status.value} and cannot change"
            )
        self._orders[order.order_id] = order

    def restore(self, orders: Iterable[Order]) -> None:
        for order in sorted(orders, key=lambda o: o.order_id):
            self.apply(order)


# ============================================================
# TRADE LEDGER
# ============================================================

class TradeLedger:
    """Trades by identifier. Trades are immutable."""

    def __init__(self):
        self._trades: Dict[int, Trade] = {}
        self._last_id = 0

    @property
    def count(self) -> int:
        return len(self._trades)

    @property
    def last_id(self) -> int:
        return self._last_id

    def get(self, trade_id: int) -> Optional[Trade]:
        return self._trades.get(trade_id)

    def all(self) -> List[Trade]:
        return [self._trades[tid] for tid in sorted(self._trades)]

    def apply(self, trade: Trade) -> None:
        if trade.trade_id <= self._last_id:
            raise StateTransitionError(
                f"Trade id {trade.trade_id} is not above last id {self._last_id}"
            )
        self._trades[trade.trade_id] = trade
        self._last_id = trade.trade_id

    def restore(self, trades: Iterable[Trade]) -> None:
        for trade in sorted(trades, key=lambda t: t.trade_id):
            self.apply(trade)


# ============================================================
# PORTFOLIO LEDGER
# ============================================================

class PortfolioLedger:
    """
    Running balances keyed by (trader, pair).

    Entries are created lazily on the first fill and never deleted.
    """

    def __init__(self, policy: BalancePolicy = BalancePolicy.SIGNED):
        self._policy = policy
        self._entries: Dict[PortfolioKey, PortfolioEntry] = {}

    @property
    def policy(self) -> BalancePolicy:
        return self._policy

    def get(self, trader: str, pair: str) -> Optional[PortfolioEntry]:
        return self._entries.get((trader, pair))

    def balance(self, trader: str, pair: str) -> int:
        entry = self.get(trader, pair)
        return entry.balance if entry else 0

    def entries(self) -> List[PortfolioEntry]:
        return list(self._entries.values())

    def preview(
        self,
        trader: str,
        pair: str,
        signed_amount: int,
        at: datetime,
        base: Optional[PortfolioEntry] = None,
    ) -> PortfolioEntry:
        """
        Compute the entry after a fill without applying it.

        Args:
            base: Staged entry to build on instead of the stored one

        Raises:
            InsufficientBalanceError: If the non-negative policy is violated
        """
        current = base if base is not None else self.get(trader, pair)
        new_balance = signed_amount if current is None else current.balance + signed_amount

        if self._policy is BalancePolicy.NON_NEGATIVE and new_balance < 0:
            raise InsufficientBalanceError(
                f"Fill would take {trader} balance on {pair} below zero"
            )

        return PortfolioEntry(
            trader=trader,
            pair=pair,
            balance=new_balance,
            exists=True,
            updated_at=at,
        )

    def apply(self, entry: PortfolioEntry) -> None:
        self._entries[(entry.trader, entry.pair)] = entry

    def restore(self, entries: Iterable[PortfolioEntry]) -> None:
        for entry in entries:
            self.apply(entry)


# ============================================================
# MARKET PRICE TABLE
# ============================================================

class MarketPriceTable:
    """Price per pair. Unknown pairs read as 0."""

    def __init__(self, seed: Optional[Dict[str, int]] = None):
        self._prices: Dict[str, int] = dict(seed or {})

    def get(self, pair: str) -> int:
        return self._prices.get(pair, 0)

    def pairs(self) -> List[str]:
        return list(self._prices)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._prices)

    def apply(self, pair: str, price: int) -> None:
        self._prices[pair] = price

    def restore(self, prices: Dict[str, int]) -> None:
        self._prices.update(prices)


# ============================================================
# LEDGER STATE
# ============================================================

class LedgerState:
    """The four ledgers of one trading venue."""

    def __init__(
        self,
        balance_policy: BalancePolicy = BalancePolicy.SIGNED,
        seed_prices: Optional[Dict[str, int]] = None,
    ):
        self.orders = OrderLedger()
        self.trades = TradeLedger()
        self.portfolio = PortfolioLedger(balance_policy)
        self.prices = MarketPriceTable(seed_prices)

    def begin(self) -> "ChangeSet":
        return ChangeSet(self)

    def apply(self, changes: "ChangeSet") -> None:
        """Apply a built change set. Call only after it persisted."""
        for order in changes.orders.values():
            self.orders.apply(order)
        for trade in changes.trades:
            self.trades.apply(trade)
        for entry in changes.portfolio.values():
            self.portfolio.apply(entry)
        for pair, price in changes.prices.items():
            self.prices.apply(pair, price)


# ============================================================
# CHANGE SET
# ============================================================

class ChangeSet:
    """
    Staged mutations of one submission.

    Reads through to the ledgers for anything not staged, so
    several fills in one change set see each other.
    """

    def __init__(self, state: LedgerState):
        self._state = state
        self.orders: Dict[int, Order] = {}
        self.trades: List[Trade] = []
        self.portfolio: Dict[PortfolioKey, PortfolioEntry] = {}
        self.prices: Dict[str, int] = {}
        self.events: List[LedgerEvent] = []

    @property
    def is_empty(self) -> bool:
        return not (self.orders or self.trades or self.portfolio or self.prices)

    def next_order_id(self) -> int:
        staged_new = [oid for oid in self.orders if self._state.orders.get(oid) is None]
        return max([self._state.orders.last_id, *staged_new]) + 1

    def next_trade_id(self) -> int:
        return self._state.trades.last_id + len(self.trades) + 1

    def market_price(self, pair: str) -> int:
        if pair in self.prices:
            return self.prices[pair]
        return self._state.prices.get(pair)

    def stage_order(self, order: Order) -> None:
        self.orders[order.order_id] = order

    def stage_trade(self, trade: Trade) -> None:
        self.trades.append(trade)

    def stage_fill(
        self,
        trader: str,
        pair: str,
        signed_amount: int,
        at: datetime,
    ) -> PortfolioEntry:
        """Stage a balance change on top of anything already staged."""
        key = (trader, pair)
        entry = self._state.portfolio.preview(
            trader, pair, signed_amount, at, base=self.portfolio.get(key)
        )
        self.portfolio[key] = entry
        return entry

    def stage_price(self, pair: str, price: int) -> None:
        self.prices[pair] = price

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)

