"""
Private Trading - Trading Service.

============================================================
PURPOSE
============================================================
The single entry point of the ledger: submissions, queries,
privileged price updates and decryption callbacks.

SUBMISSION FLOW:
    validate -> stage in a change set -> decide fill ->
    persist (if a repository is attached) -> apply -> notify

GUARANTEES:
- Submissions are serialized behind one lock
- A rejected submission changes nothing
- A persistence failure changes nothing in memory
- Notifications never carry amounts or prices

============================================================
"""

import dataclasses
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Union

from sqlalchemy.engine import Engine

from core.clock import ClockProtocol, SystemClock
from core.log_config import setup_logging
from database.engine import create_database_engine, create_session_factory, initialize_database

from .access import AccessController
from .config import TradingLedgerConfig
from .confidential import ConfidentialVault
from .decryption import DecryptionGateway, LocalVaultOracle, Oracle
from .events import (
    DecryptionFulfilled,
    EventBus,
    OrderCancelled,
    OrderExecuted,
    OrderPlaced,
    PriceUpdated,
    QuickTradeExecuted,
    TradeExecuted,
)
from .execution_policy import create_policy, market_fill
from .ledgers import ChangeSet, LedgerState
from .repository import LedgerRepository
from .state_machine import OrderStateMachine
from .types import (
    MARKET_MAKER,
    Direction,
    InsufficientBalanceError,
    Order,
    OrderData,
    OrderInfo,
    OrderKind,
    OrderNotCancellableError,
    OrderNotFoundError,
    SealedValueError,
    Trade,
    TradeData,
    TradeInfo,
    TradeNotFoundError,
    ValidationError,
)
from .validation import SubmissionValidator


logger = logging.getLogger(__name__)


DirectionLike = Union[Direction, bool]


# ============================================================
# TRADING SERVICE
# ============================================================

class PrivateTradingService:
    """
    Order, trade and portfolio ledgers behind one contract surface.

    Accounts are plain string identifiers passed by the caller;
    authenticating them is the transport's job.
    """

    def __init__(
        self,
        config: Optional[TradingLedgerConfig] = None,
        clock: Optional[ClockProtocol] = None,
        repository: Optional[LedgerRepository] = None,
        event_bus: Optional[EventBus] = None,
        oracle: Optional[Oracle] = None,
    ):
        """
        Initialize service.

        Args:
            config: Ledger configuration
            clock: Time source for every timestamp
            repository: Persistence; None keeps the ledger in memory
            event_bus: Notification bus
            oracle: External decryption oracle
        """
        self._config = config or TradingLedgerConfig()
        self._clock = clock or SystemClock()
        self._repository = repository
        self._events = event_bus or EventBus()

        self._state = LedgerState(
            balance_policy=self._config.portfolio.balance_policy,
            seed_prices=self._config.market.seed_prices,
        )
        self._validator = SubmissionValidator(self._config.validation)
        self._access = AccessController(self._config.privileged_account)
        self._policy = create_policy(self._config.execution.limit_fill_policy)
        self._vault = ConfidentialVault(self._config.vault.key)
        self._decryption = DecryptionGateway(oracle)

        self._lock = threading.RLock()

        logger.info(
            f"Trading service ready: fill_policy={self._policy.policy.value} "
            f"balance_policy={self._state.portfolio.policy.value} "
            f"persistence={'on' if repository else 'off'}"
        )

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def config(self) -> TradingLedgerConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def vault(self) -> ConfidentialVault:
        return self._vault

    @property
    def privileged_account(self) -> str:
        return self._access.privileged_account

    # --------------------------------------------------------
    # STARTUP
    # --------------------------------------------------------

    def restore(self) -> None:
        """Seed missing prices in the database, then load persisted state."""
        if self._repository is None:
            return
        with self._lock:
            self._repository.save_prices(self._state.prices.snapshot())
            self._repository.load_into(self._state)

    # --------------------------------------------------------
    # SUBMISSIONS
    # --------------------------------------------------------

    def place_order(
        self,
        trader: str,
        pair: str,
        direction: DirectionLike,
        amount: int,
        price: Optional[int] = None,
    ) -> int:
        """
        Place a limit order, or a market order when price is None.

        Returns:
            New order id

        Raises:
            ValidationError: Bad input, nothing recorded
            InsufficientBalanceError: Fill would break the non-negative policy
        """
        with self._lock, self._rejecting("order"):
            trader, pair, amount, price = self._validator.validate_order(trader, pair, amount, price)
            direction = self._validator.validate_direction(direction)
            now = self._clock.now()

            changes = self._state.begin()
            order = Order(
                order_id=changes.next_order_id(),
                trader=trader,
                pair=pair,
                direction=direction,
                kind=OrderKind.MARKET if price is None else OrderKind.LIMIT,
                sealed_amount=self._vault.seal(amount),
                sealed_price=self._vault.seal_optional(price),
                created_at=now,
            )
            changes.stage_order(order)
            changes.emit(OrderPlaced(
                emitted_at=now,
                order_id=order.order_id,
                trader=trader,
                pair=pair,
                is_long=direction.is_long,
            ))

            market_price = changes.market_price(pair)
            if order.kind is OrderKind.MARKET:
                decision = market_fill(market_price)
            else:
                decision = self._policy.decide(direction, price, market_price)

            if decision.should_fill:
                self._stage_order_fill(changes, order, amount, decision.fill_price)

            self._commit(changes)

            logger.info(
                f"Order {order.order_id} placed: {direction.value} {pair} "
                f"{order.kind.value} by {trader} ({decision.reason})"
            )
            return order.order_id

    def quick_trade(
        self,
        trader: str,
        pair: str,
        direction: DirectionLike,
        amount: int,
    ) -> int:
        """
        Trade immediately at the market price against the market maker.

        No order record is created.

        Returns:
            New trade id
        """
        with self._lock, self._rejecting("quick trade"):
            trader, pair, amount = self._validator.validate_quick_trade(trader, pair, amount)
            direction = self._validator.validate_direction(direction)
            now = self._clock.now()

            changes = self._state.begin()
            decision = market_fill(changes.market_price(pair))
            trade = self._stage_trade(changes, trader, pair, direction, amount, decision.fill_price)
            changes.emit(QuickTradeExecuted(
                emitted_at=now,
                trader=trader,
                pair=pair,
                is_long=direction.is_long,
            ))
            self._commit(changes)

            logger.info(f"Quick {direction.value} on {pair} by {trader}: trade {trade.trade_id}")
            return trade.trade_id

    def quick_buy(self, trader: str, pair: str, amount: int) -> int:
        return self.quick_trade(trader, pair, Direction.LONG, amount)

    def quick_sell(self, trader: str, pair: str, amount: int) -> int:
        return self.quick_trade(trader, pair, Direction.SHORT, amount)

    def cancel_order(self, caller: str, order_id: int) -> None:
        """
        Cancel an active order. Owner only.

        Raises:
            OrderNotFoundError: Unknown order
            AuthorizationError: Caller is not the owner
            OrderNotCancellableError: Order already executed or cancelled
        """
        with self._lock:
            order = self._require_order(order_id)
            self._access.require_owner(caller, order.trader, "cancel order")
            if not order.status.allows_cancel():
                raise OrderNotCancellableError(
                    f"Order {order_id} is {order.status.value.lower()}"
                )

            now = self._clock.now()
            changes = self._state.begin()
            staged = dataclasses.replace(order)
            OrderStateMachine(staged).mark_cancelled(now)
            changes.stage_order(staged)
            changes.emit(OrderCancelled(
                emitted_at=now,
                order_id=order_id,
                trader=order.trader,
                pair=order.pair,
            ))
            self._commit(changes)

            logger.info(f"Order {order_id} cancelled by {caller}")

    def update_market_price(self, caller: str, pair: str, new_price: int) -> None:
        """
        Set a pair's market price. Privileged account only.

        Queued limit orders on the pair that now cross are filled
        in the same change set when sweeping is enabled.
        """
        with self._lock, self._rejecting("price update"):
            self._access.require_privileged(caller, "update market price")
            pair = self._validator.validate_pair(pair)
            new_price = self._validator.validate_price(new_price)
            now = self._clock.now()

            changes = self._state.begin()
            changes.stage_price(pair, new_price)
            changes.emit(PriceUpdated(emitted_at=now, pair=pair))

            filled = 0
            if self._config.execution.sweep_on_price_update:
                filled = self._stage_sweep(changes, pair)

            self._commit(changes)
            logger.info(f"Market price updated for {pair}, {filled} queued orders filled")

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def get_order_info(self, order_id: int) -> OrderInfo:
        """Public order summary."""
        with self._lock:
            order = self._require_order(order_id)
            return OrderInfo(
                order_id=order.order_id,
                trader=order.trader,
                pair=order.pair,
                direction=order.direction,
                is_active=order.is_active,
                is_executed=order.is_executed,
                is_cancelled=order.is_cancelled,
                created_at=order.created_at,
            )

    def get_order_data(self, caller: str, order_id: int) -> OrderData:
        """Order amount and price. Owner or privileged account only."""
        with self._lock:
            order = self._require_order(order_id)
            self._access.require_owner_or_privileged(caller, order.trader, "read order data")
            return OrderData(
                order_id=order.order_id,
                amount=self._vault.open(order.sealed_amount),
                price=self._vault.open_optional(order.sealed_price),
            )

    def get_trader_orders(self, caller: str, trader: str) -> List[int]:
        """Order ids placed by a trader. The trader or privileged account only."""
        with self._lock:
            self._access.require_owner_or_privileged(caller, trader, "list orders")
            return self._state.orders.ids_for_trader(trader)

    def get_trade_info(self, trade_id: int) -> TradeInfo:
        """Public trade summary."""
        with self._lock:
            trade = self._require_trade(trade_id)
            return TradeInfo(
                trade_id=trade.trade_id,
                buyer=trade.buyer,
                seller=trade.seller,
                pair=trade.pair,
                executed_at=trade.executed_at,
                confirmed=trade.confirmed,
            )

    def get_trade_data(self, caller: str, trade_id: int) -> TradeData:
        """Trade volume and price. Counterparties or privileged account only."""
        with self._lock:
            trade = self._require_trade(trade_id)
            self._access.require_party_or_privileged(
                caller, (trade.buyer, trade.seller), "read trade data"
            )
            return TradeData(trade_id=trade.trade_id, volume=trade.volume, price=trade.price)

    def get_portfolio_balance(self, caller: str, trader: str, pair: str) -> int:
        """Balance for (trader, pair), 0 if none. The trader or privileged account only."""
        with self._lock:
            self._access.require_owner_or_privileged(caller, trader, "read portfolio balance")
            return self._state.portfolio.balance(trader, self._validator.validate_pair(pair))

    def get_market_price(self, pair: str) -> int:
        """Public market price, 0 if unknown."""
        with self._lock:
            return self._state.prices.get(self._validator.validate_pair(pair))

    def get_market_pairs(self) -> List[str]:
        with self._lock:
            return self._state.prices.pairs()

    def get_order_count(self) -> int:
        with self._lock:
            return self._state.orders.count

    def get_trade_count(self) -> int:
        with self._lock:
            return self._state.trades.count

    def get_counts(self) -> tuple[int, int]:
        """(order count, trade count)."""
        with self._lock:
            return self._state.orders.count, self._state.trades.count

    # --------------------------------------------------------
    # DECRYPTION
    # --------------------------------------------------------

    def attach_local_oracle(self, deferred: bool = False) -> LocalVaultOracle:
        """Attach an in-process oracle that opens handles with this vault."""
        oracle = LocalVaultOracle(self._vault, self.fulfill_decryption, deferred=deferred)
        self._decryption.set_oracle(oracle)
        return oracle

    def request_balance_decryption(self, caller: str, trader: str, pair: str) -> int:
        """
        Ask the oracle to decrypt a balance for the caller.

        Returns:
            Request id; read the value with get_decryption_result()
        """
        with self._lock:
            self._access.require_owner_or_privileged(caller, trader, "decrypt portfolio balance")
            pair = self._validator.validate_pair(pair)
            handle = self._vault.seal(self._state.portfolio.balance(trader, pair))
            now = self._clock.now()

        # Oracle runs outside the lock; its callback may arrive at any time
        request = self._decryption.submit(caller, handle, f"balance:{trader}:{pair}", now)
        return request.request_id

    def fulfill_decryption(self, request_id: int, cleartext: int) -> None:
        """
        Oracle callback. Accepted exactly once per request.

        The request stays pending if the notification cannot be
        persisted, so the oracle may deliver again.

        Raises:
            DecryptionRequestError: Unknown or already fulfilled request
            PersistenceError: Notification not written, request still pending
        """
        with self._lock:
            now = self._clock.now()
            self._decryption.check_fulfillable(request_id)
            changes = self._state.begin()
            changes.emit(DecryptionFulfilled(emitted_at=now, request_id=request_id))
            self._commit(
                changes,
                on_persisted=lambda: self._decryption.fulfill(request_id, cleartext, now),
            )

    def get_decryption_result(self, caller: str, request_id: int) -> int:
        return self._decryption.result(request_id, caller)

    # --------------------------------------------------------
    # STAGING
    # --------------------------------------------------------

    def _stage_trade(
        self,
        changes: ChangeSet,
        trader: str,
        pair: str,
        direction: Direction,
        amount: int,
        price: Optional[int],
        order_id: Optional[int] = None,
    ) -> Trade:
        now = self._clock.now()
        # Balance first: a policy violation must leave the change set untouched
        changes.stage_fill(trader, pair, direction.signed(amount), now)

        if direction is Direction.LONG:
            buyer, seller = trader, MARKET_MAKER
        else:
            buyer, seller = MARKET_MAKER, trader

        trade = Trade(
            trade_id=changes.next_trade_id(),
            buyer=buyer,
            seller=seller,
            pair=pair,
            volume=amount,
            price=price,
            executed_at=now,
            order_id=order_id,
        )
        changes.stage_trade(trade)
        changes.emit(TradeExecuted(
            emitted_at=now,
            trade_id=trade.trade_id,
            buyer=buyer,
            seller=seller,
            pair=pair,
        ))
        return trade

    def _stage_order_fill(
        self,
        changes: ChangeSet,
        order: Order,
        amount: int,
        price: Optional[int],
    ) -> Trade:
        trade = self._stage_trade(
            changes, order.trader, order.pair, order.direction, amount, price, order.order_id
        )
        OrderStateMachine(order).mark_executed(trade.trade_id, trade.executed_at)
        changes.stage_order(order)
        changes.emit(OrderExecuted(
            emitted_at=trade.executed_at,
            order_id=order.order_id,
            trade_id=trade.trade_id,
        ))
        return trade

    def _stage_sweep(self, changes: ChangeSet, pair: str) -> int:
        """Fill queued limit orders on a pair that cross the staged price."""
        filled = 0
        market_price = changes.market_price(pair)
        for order in self._state.orders.active_for_pair(pair):
            if order.kind is not OrderKind.LIMIT:
                continue
            try:
                limit_price = self._vault.open(order.sealed_price)
                amount = self._vault.open(order.sealed_amount)
            except SealedValueError:
                logger.error(f"Queued order {order.order_id} skipped: sealed values unreadable")
                continue
            decision = self._policy.decide(order.direction, limit_price, market_price)
            if not decision.should_fill:
                continue
            staged = dataclasses.replace(order)
            try:
                self._stage_order_fill(changes, staged, amount, decision.fill_price)
            except InsufficientBalanceError:
                logger.warning(f"Queued order {order.order_id} stays active: balance policy")
                continue
            filled += 1
        return filled

    def _commit(
        self,
        changes: ChangeSet,
        on_persisted: Optional[Callable[[], None]] = None,
    ) -> None:
        if self._repository is not None:
            self._repository.persist(changes)
        if on_persisted is not None:
            on_persisted()
        self._state.apply(changes)
        self._events.publish_all(changes.events)

    @contextmanager
    def _rejecting(self, action: str) -> Iterator[None]:
        """Log rejected submissions at WARNING, then re-raise."""
        try:
            yield
        except (ValidationError, InsufficientBalanceError) as e:
            logger.warning(f"Rejected {action}: [{e.code}] {e}")
            raise

    # --------------------------------------------------------
    # LOOKUPS
    # --------------------------------------------------------

    def _require_order(self, order_id: int) -> Order:
        order = self._state.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def _require_trade(self, trade_id: int) -> Trade:
        trade = self._state.trades.get(trade_id)
        if trade is None:
            raise TradeNotFoundError(f"Trade {trade_id} not found")
        return trade


# ============================================================
# FACTORY
# ============================================================

def create_trading_service(
    config: Optional[TradingLedgerConfig] = None,
    clock: Optional[ClockProtocol] = None,
    event_bus: Optional[EventBus] = None,
    oracle: Optional[Oracle] = None,
    engine: Optional[Engine] = None,
) -> PrivateTradingService:
    """
    Create a fully wired trading service.

    Configuration defaults to the environment. With persistence
    enabled the schema is created and persisted state restored.
    """
    config = config or TradingLedgerConfig.from_env()
    config.validate()

    if config.logging.configure:
        setup_logging(config.logging.level, config.logging.log_format, "private_trading")

    repository = None
    if config.persistence.enabled:
        engine = engine or create_database_engine(
            config.persistence.database_url,
            echo=config.persistence.echo,
        )
        initialize_database(engine)
        repository = LedgerRepository(create_session_factory(engine))

    service = PrivateTradingService(
        config=config,
        clock=clock,
        repository=repository,
        event_bus=event_bus,
        oracle=oracle,
    )
    service.restore()
    return service
