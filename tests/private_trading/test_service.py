"""
Tests for the Private Trading Service.

Tests cover:
- Identifier allocation
- Portfolio consistency with the trade history
- Rejected submissions leave no trace
- Owner and privileged-account capabilities
- Limit fill policies and price-update sweeps
- Notifications carry no amounts or prices
"""

import logging

import pytest

from private_trading.config import TradingLedgerConfig
from private_trading.events import (
    OrderCancelled,
    OrderExecuted,
    OrderPlaced,
    PriceUpdated,
    QuickTradeExecuted,
    TradeExecuted,
)
from private_trading.service import PrivateTradingService, create_trading_service
from private_trading.types import (
    MARKET_MAKER,
    AuthorizationError,
    BalancePolicy,
    DecryptionRequestError,
    Direction,
    InsufficientBalanceError,
    LimitFillPolicy,
    OrderNotCancellableError,
    OrderNotFoundError,
    PersistenceError,
    TradeNotFoundError,
    ValidationError,
)


PAIR = "BTC/ETH"


def make_service(clock, **overrides) -> PrivateTradingService:
    config = TradingLedgerConfig.for_testing()
    if "fill_policy" in overrides:
        config.execution.limit_fill_policy = overrides["fill_policy"]
    if "balance_policy" in overrides:
        config.portfolio.balance_policy = overrides["balance_policy"]
    if "sweep" in overrides:
        config.execution.sweep_on_price_update = overrides["sweep"]
    return PrivateTradingService(config=config, clock=clock)


def ledger_snapshot(service: PrivateTradingService, trader: str = "alice") -> tuple:
    return (
        service.get_order_count(),
        service.get_trade_count(),
        service.get_portfolio_balance(trader, trader, PAIR),
    )


# =============================================================
# TEST: Identifiers
# =============================================================

class TestIdentifiers:
    """Order and trade ids are strictly increasing."""

    def test_order_ids_increase(self, service):
        """Each accepted order gets the next id."""
        ids = [service.place_order("alice", PAIR, Direction.SHORT, 1, 100) for _ in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    def test_trade_ids_increase_across_kinds(self, service):
        """Quick trades and order fills share one trade sequence."""
        first = service.quick_buy("alice", PAIR, 3)
        service.place_order("alice", PAIR, Direction.LONG, 2)
        second = service.quick_sell("bob", PAIR, 1)

        assert first == 1
        assert second == 3
        assert service.get_trade_count() == 3

    def test_rejected_submission_does_not_consume_id(self, service):
        """A rejected order leaves the next id unchanged."""
        service.place_order("alice", PAIR, Direction.LONG, 1, 10)
        with pytest.raises(ValidationError):
            service.place_order("alice", PAIR, Direction.LONG, 0, 10)
        assert service.place_order("alice", PAIR, Direction.LONG, 1, 10) == 2

    def test_quick_trade_creates_no_order(self, service):
        service.quick_buy("alice", PAIR, 10)
        assert service.get_counts() == (0, 1)


# =============================================================
# TEST: Portfolio
# =============================================================

class TestPortfolio:
    """Balances follow the trade history."""

    def test_balance_equals_sum_of_signed_trades(self, service):
        """Balance is the signed sum of every trade for (trader, pair)."""
        service.quick_buy("alice", PAIR, 10)
        service.quick_sell("alice", PAIR, 3)
        service.place_order("alice", PAIR, Direction.LONG, 5)
        service.place_order("alice", PAIR, Direction.SHORT, 2)

        expected = 0
        for trade_id in range(1, service.get_trade_count() + 1):
            info = service.get_trade_info(trade_id)
            data = service.get_trade_data("alice", trade_id)
            expected += data.volume if info.buyer == "alice" else -data.volume

        assert expected == 10
        assert service.get_portfolio_balance("alice", "alice", PAIR) == expected

    def test_round_trip_restores_balance(self, service):
        """Quick buy then quick sell of n restores the balance."""
        service.quick_buy("alice", PAIR, 7)
        before = service.get_portfolio_balance("alice", "alice", PAIR)

        service.quick_buy("alice", PAIR, 42)
        service.quick_sell("alice", PAIR, 42)

        assert service.get_portfolio_balance("alice", "alice", PAIR) == before

    def test_balances_are_per_trader_and_pair(self, service):
        service.quick_buy("alice", PAIR, 10)
        service.quick_buy("alice", "ETH/USDT", 4)
        service.quick_buy("bob", PAIR, 1)

        assert service.get_portfolio_balance("alice", "alice", PAIR) == 10
        assert service.get_portfolio_balance("alice", "alice", "ETH/USDT") == 4
        assert service.get_portfolio_balance("bob", "bob", PAIR) == 1

    def test_unknown_entry_reads_zero(self, service):
        assert service.get_portfolio_balance("alice", "alice", "DOGE/BTC") == 0

    def test_signed_policy_allows_negative(self, service):
        """Default policy records short exposure."""
        service.quick_sell("alice", PAIR, 5)
        assert service.get_portfolio_balance("alice", "alice", PAIR) == -5

    def test_non_negative_policy_rejects_underflow(self, clock):
        """Underflow is rejected and nothing is recorded."""
        service = make_service(clock, balance_policy=BalancePolicy.NON_NEGATIVE)
        service.quick_buy("alice", PAIR, 3)
        before = ledger_snapshot(service)

        with pytest.raises(InsufficientBalanceError):
            service.quick_sell("alice", PAIR, 4)

        assert ledger_snapshot(service) == before

    def test_non_negative_policy_rejects_whole_order(self, clock):
        """An order whose fill would underflow is not recorded either."""
        service = make_service(
            clock,
            balance_policy=BalancePolicy.NON_NEGATIVE,
            fill_policy=LimitFillPolicy.IMMEDIATE,
        )

        with pytest.raises(InsufficientBalanceError):
            service.place_order("alice", PAIR, Direction.SHORT, 1, 10)

        assert service.get_counts() == (0, 0)


# =============================================================
# TEST: Validation
# =============================================================

class TestRejectedSubmissions:
    """Validation failures change nothing."""

    @pytest.mark.parametrize("amount, price", [
        (0, 10),
        (-1, 10),
        (10, 0),
        (10, -5),
    ])
    def test_zero_or_negative_rejected(self, service, amount, price):
        before = ledger_snapshot(service)
        with pytest.raises(ValidationError):
            service.place_order("alice", PAIR, Direction.LONG, amount, price)
        assert ledger_snapshot(service) == before
        assert service.events.recent() == []

    def test_empty_pair_rejected(self, service):
        with pytest.raises(ValidationError) as exc:
            service.quick_buy("alice", "   ", 1)
        assert exc.value.code == "VAL_INVALID_PAIR"
        assert service.get_trade_count() == 0

    def test_bad_direction_rejected(self, service):
        with pytest.raises(ValidationError) as exc:
            service.place_order("alice", PAIR, "up", 1, 10)
        assert exc.value.code == "VAL_INVALID_DIRECTION"

    def test_boolean_direction_accepted(self, service):
        order_id = service.place_order("alice", PAIR, False, 1, 100)
        assert service.get_order_info(order_id).direction is Direction.SHORT

    def test_market_maker_cannot_submit(self, service):
        with pytest.raises(ValidationError):
            service.quick_buy(MARKET_MAKER, PAIR, 1)

    def test_pair_is_normalized(self, service):
        service.quick_buy("alice", "  BTC/ETH ", 2)
        assert service.get_portfolio_balance("alice", "alice", PAIR) == 2

    def test_queries_normalize_pair(self, service):
        """Reads strip the pair the same way submissions do."""
        service.quick_buy("alice", PAIR, 2)
        assert service.get_portfolio_balance("alice", "alice", " BTC/ETH ") == 2
        assert service.get_market_price(" BTC/ETH") == 15

    def test_rejection_logged_at_warning(self, service, caplog):
        caplog.set_level(logging.WARNING, logger="private_trading.service")
        with pytest.raises(ValidationError):
            service.place_order("alice", PAIR, Direction.LONG, 0, 10)
        with pytest.raises(ValidationError):
            service.quick_sell("alice", "", 1)

        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert any("Rejected order: [VAL_INVALID_AMOUNT]" in m for m in messages)
        assert any("Rejected quick trade: [VAL_INVALID_PAIR]" in m for m in messages)

    def test_balance_rejection_logged(self, clock, caplog):
        caplog.set_level(logging.WARNING, logger="private_trading.service")
        service = make_service(clock, balance_policy=BalancePolicy.NON_NEGATIVE)
        with pytest.raises(InsufficientBalanceError):
            service.quick_sell("alice", PAIR, 1)
        assert "Rejected quick trade: [BAL_INSUFFICIENT]" in caplog.text


# =============================================================
# TEST: Access Control
# =============================================================

class TestAccessControl:
    """Restricted reads and privileged writes."""

    def test_owner_reads_order_data(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)
        data = service.get_order_data("alice", order_id)
        assert (data.amount, data.price) == (4, 16)

    def test_privileged_reads_order_data(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)
        assert service.get_order_data("owner", order_id).amount == 4

    def test_other_account_cannot_read_order_data(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)
        with pytest.raises(AuthorizationError):
            service.get_order_data("mallory", order_id)

    def test_order_info_is_public(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)
        info = service.get_order_info(order_id)

        assert info.trader == "alice"
        assert info.pair == PAIR
        assert not info.is_long
        assert info.is_active
        assert not hasattr(info, "amount")

    def test_portfolio_restricted(self, service):
        service.quick_buy("alice", PAIR, 1)
        assert service.get_portfolio_balance("owner", "alice", PAIR) == 1
        with pytest.raises(AuthorizationError):
            service.get_portfolio_balance("mallory", "alice", PAIR)

    def test_trade_data_restricted_to_counterparties(self, service):
        trade_id = service.quick_buy("alice", PAIR, 3)
        assert service.get_trade_data("alice", trade_id).volume == 3
        assert service.get_trade_data("owner", trade_id).price == 15
        with pytest.raises(AuthorizationError):
            service.get_trade_data("mallory", trade_id)

    def test_trader_orders_restricted(self, service):
        service.place_order("alice", PAIR, Direction.SHORT, 1, 100)
        service.place_order("bob", PAIR, Direction.SHORT, 1, 100)
        service.place_order("alice", PAIR, Direction.SHORT, 1, 100)

        assert service.get_trader_orders("alice", "alice") == [1, 3]
        assert service.get_trader_orders("owner", "bob") == [2]
        with pytest.raises(AuthorizationError):
            service.get_trader_orders("bob", "alice")

    def test_only_privileged_updates_price(self, service):
        with pytest.raises(AuthorizationError) as exc:
            service.update_market_price("alice", PAIR, 20)
        assert exc.value.code == "AUTH_NOT_PRIVILEGED"
        assert service.get_market_price(PAIR) == 15

        service.update_market_price("owner", PAIR, 20)
        assert service.get_market_price(PAIR) == 20

    def test_unknown_ids(self, service):
        with pytest.raises(OrderNotFoundError):
            service.get_order_info(99)
        with pytest.raises(TradeNotFoundError):
            service.get_trade_info(99)


# =============================================================
# TEST: Market Prices
# =============================================================

class TestMarketPrices:
    """Seeded, public, privileged updates."""

    def test_seed_prices(self, service):
        assert service.get_market_price("BTC/ETH") == 15
        assert service.get_market_price("ETH/USDT") == 2500
        assert service.get_market_price("BTC/USDT") == 43000
        assert sorted(service.get_market_pairs()) == ["BTC/ETH", "BTC/USDT", "ETH/USDT"]

    def test_unknown_pair_reads_zero(self, service):
        assert service.get_market_price("DOGE/BTC") == 0

    def test_new_pair_can_be_listed(self, service):
        service.update_market_price("owner", "SOL/USDT", 90)
        assert service.get_market_price("SOL/USDT") == 90

    def test_zero_price_rejected(self, service):
        with pytest.raises(ValidationError):
            service.update_market_price("owner", PAIR, 0)

    def test_quick_trade_on_unpriced_pair(self, service):
        """Unpriced pairs still trade, with no price recorded."""
        trade_id = service.quick_buy("alice", "DOGE/BTC", 5)
        assert service.get_trade_data("alice", trade_id).price is None
        assert service.get_portfolio_balance("alice", "alice", "DOGE/BTC") == 5


# =============================================================
# TEST: Execution Policies
# =============================================================

class TestExecutionPolicies:
    """Limit order fill rules."""

    def test_example_scenario_default_policy(self, service):
        """Sell above market stays queued under market crossing."""
        service.quick_buy("alice", PAIR, 10)
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)

        assert service.get_order_count() == 1
        assert service.get_trade_count() >= 1
        assert service.get_order_info(order_id).is_active
        assert service.get_portfolio_balance("alice", "alice", PAIR) == 10

    def test_example_scenario_immediate_policy(self, clock):
        service = make_service(clock, fill_policy=LimitFillPolicy.IMMEDIATE)
        service.quick_buy("alice", PAIR, 10)
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)

        assert service.get_counts() == (1, 2)
        assert service.get_order_info(order_id).is_executed
        assert service.get_portfolio_balance("alice", "alice", PAIR) == 6

    def test_crossing_orders_fill_at_limit(self, service):
        buy = service.place_order("alice", PAIR, Direction.LONG, 2, 15)
        sell = service.place_order("alice", PAIR, Direction.SHORT, 1, 14)

        assert service.get_order_info(buy).is_executed
        assert service.get_order_info(sell).is_executed
        assert service.get_trade_data("alice", 1).price == 15
        assert service.get_trade_data("alice", 2).price == 14

    def test_non_crossing_buy_queued(self, service):
        order_id = service.place_order("alice", PAIR, Direction.LONG, 2, 14)
        assert service.get_order_info(order_id).is_active
        assert service.get_trade_count() == 0

    def test_limit_on_unpriced_pair_queued(self, service):
        order_id = service.place_order("alice", "DOGE/BTC", Direction.LONG, 1, 1)
        assert service.get_order_info(order_id).is_active

    def test_queue_policy_never_fills(self, clock):
        service = make_service(clock, fill_policy=LimitFillPolicy.QUEUE)
        order_id = service.place_order("alice", PAIR, Direction.LONG, 1, 1000)
        assert service.get_order_info(order_id).is_active

    def test_market_order_fills_at_market(self, service):
        order_id = service.place_order("alice", PAIR, Direction.LONG, 3)
        info = service.get_order_info(order_id)
        data = service.get_order_data("alice", order_id)

        assert info.is_executed
        assert data.price is None
        assert service.get_trade_data("alice", 1).price == 15

    def test_fill_links_order_and_trade(self, service):
        order_id = service.place_order("alice", PAIR, Direction.LONG, 1)
        trade = service.get_trade_info(1)
        assert trade.buyer == "alice"
        assert trade.seller == MARKET_MAKER
        assert trade.confirmed
        assert service.events.recent(OrderExecuted)[0].order_id == order_id


# =============================================================
# TEST: Price Update Sweep
# =============================================================

class TestPriceUpdateSweep:
    """Queued limits fill when the market moves through them."""

    def test_sweep_fills_crossing_orders(self, service):
        service.quick_buy("alice", PAIR, 10)
        sell = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)

        service.update_market_price("owner", PAIR, 16)

        assert service.get_order_info(sell).is_executed
        assert service.get_portfolio_balance("alice", "alice", PAIR) == 6

    def test_sweep_fills_in_id_order(self, service):
        first = service.place_order("bob", PAIR, Direction.SHORT, 1, 18)
        second = service.place_order("alice", PAIR, Direction.SHORT, 1, 17)

        service.update_market_price("owner", PAIR, 20)

        assert service.get_order_info(first).is_executed
        assert service.get_order_info(second).is_executed
        assert service.get_trade_info(1).seller == "bob"
        assert service.get_trade_info(2).seller == "alice"

    def test_sweep_leaves_non_crossing_orders(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 30)
        service.update_market_price("owner", PAIR, 20)
        assert service.get_order_info(order_id).is_active

    def test_sweep_disabled(self, clock):
        service = make_service(clock, sweep=False)
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 16)
        service.update_market_price("owner", PAIR, 16)
        assert service.get_order_info(order_id).is_active

    def test_sweep_skips_underflowing_order(self, clock):
        """Under non-negative balances an underflowing fill stays queued."""
        service = make_service(clock, balance_policy=BalancePolicy.NON_NEGATIVE)
        service.quick_buy("alice", PAIR, 2)
        big = service.place_order("alice", PAIR, Direction.SHORT, 5, 16)
        small = service.place_order("alice", PAIR, Direction.SHORT, 2, 16)

        service.update_market_price("owner", PAIR, 16)

        assert service.get_order_info(big).is_active
        assert service.get_order_info(small).is_executed
        assert service.get_portfolio_balance("alice", "alice", PAIR) == 0

    def test_cancelled_orders_not_swept(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 16)
        service.cancel_order("alice", order_id)
        service.update_market_price("owner", PAIR, 16)
        assert service.get_order_info(order_id).is_cancelled
        assert service.get_trade_count() == 0


# =============================================================
# TEST: Cancellation
# =============================================================

class TestCancellation:
    """Owner-only cancel of active orders."""

    def test_owner_cancels(self, service, clock):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 100)
        clock.advance(60)
        service.cancel_order("alice", order_id)

        info = service.get_order_info(order_id)
        assert info.is_cancelled
        assert not info.is_active
        assert service.get_order_count() == 1

    def test_privileged_cannot_cancel(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 100)
        with pytest.raises(AuthorizationError):
            service.cancel_order("owner", order_id)
        assert service.get_order_info(order_id).is_active

    def test_cannot_cancel_twice(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 100)
        service.cancel_order("alice", order_id)
        with pytest.raises(OrderNotCancellableError):
            service.cancel_order("alice", order_id)

    def test_cannot_cancel_executed(self, service):
        order_id = service.place_order("alice", PAIR, Direction.LONG, 1)
        with pytest.raises(OrderNotCancellableError):
            service.cancel_order("alice", order_id)

    def test_cancel_unknown_order(self, service):
        with pytest.raises(OrderNotFoundError):
            service.cancel_order("alice", 1)


# =============================================================
# TEST: Notifications
# =============================================================

class TestNotifications:
    """Emitted events and their fields."""

    def test_order_placed_event(self, service):
        service.place_order("alice", PAIR, Direction.SHORT, 4, 16)
        event = service.events.recent(OrderPlaced)[0]
        assert (event.order_id, event.trader, event.pair, event.is_long) == (1, "alice", PAIR, False)

    def test_quick_trade_emits_both_events(self, service):
        service.quick_sell("alice", PAIR, 2)
        trade_event = service.events.recent(TradeExecuted)[0]
        quick_event = service.events.recent(QuickTradeExecuted)[0]

        assert trade_event.buyer == MARKET_MAKER
        assert trade_event.seller == "alice"
        assert quick_event.is_long is False

    def test_cancel_and_price_events(self, service):
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 1, 100)
        service.cancel_order("alice", order_id)
        service.update_market_price("owner", PAIR, 17)

        assert service.events.recent(OrderCancelled)[0].order_id == order_id
        assert service.events.recent(PriceUpdated)[0].pair == PAIR

    def test_events_carry_no_amounts(self, service):
        service.quick_buy("alice", PAIR, 10)
        service.place_order("alice", PAIR, Direction.LONG, 4, 16)
        service.update_market_price("owner", PAIR, 20)

        for event in service.events.recent():
            fields = set(event.model_dump())
            assert not fields & {"amount", "price", "volume", "balance"}

    def test_subscriber_receives_events_after_apply(self, service):
        seen = []

        def on_event(event):
            seen.append((event.name, service.get_trade_count()))

        service.events.subscribe(on_event, TradeExecuted)
        service.quick_buy("alice", PAIR, 1)

        assert seen == [("TradeExecuted", 1)]

    def test_failing_subscriber_does_not_undo(self, service):
        def broken(event):
            raise RuntimeError("observer down")

        service.events.subscribe(broken)
        service.quick_buy("alice", PAIR, 1)
        assert service.get_trade_count() == 1


# =============================================================
# TEST: Persistence Failure
# =============================================================

class FailingRepository:
    """Repository whose writes always fail."""

    def persist(self, changes):
        raise PersistenceError("database unavailable")


class FlakyRepository:
    """Repository whose writes fail while `fail` is set."""

    def __init__(self):
        self.fail = False
        self.persisted = 0

    def persist(self, changes):
        if self.fail:
            raise PersistenceError("database unavailable")
        self.persisted += 1


class TestPersistenceFailure:
    """A failed write leaves memory untouched."""

    def test_state_unchanged_on_failed_write(self, config, clock):
        service = PrivateTradingService(config=config, clock=clock, repository=FailingRepository())
        published = []
        service.events.subscribe(published.append)

        with pytest.raises(PersistenceError):
            service.place_order("alice", PAIR, Direction.LONG, 1)
        with pytest.raises(PersistenceError):
            service.update_market_price("owner", PAIR, 99)

        assert service.get_counts() == (0, 0)
        assert service.get_market_price(PAIR) == 15
        assert published == []

    def test_decryption_stays_pending_on_failed_write(self, config, clock):
        """The oracle can deliver again after the notification failed to persist."""
        repository = FlakyRepository()
        service = PrivateTradingService(config=config, clock=clock, repository=repository)
        oracle = service.attach_local_oracle(deferred=True)
        service.quick_buy("alice", PAIR, 5)
        request_id = service.request_balance_decryption("alice", "alice", PAIR)

        repository.fail = True
        with pytest.raises(PersistenceError):
            oracle.drain()

        with pytest.raises(DecryptionRequestError) as exc:
            service.get_decryption_result("alice", request_id)
        assert exc.value.code == "DEC_PENDING"

        repository.fail = False
        service.fulfill_decryption(request_id, 5)
        assert service.get_decryption_result("alice", request_id) == 5
        assert repository.persisted == 2


# =============================================================
# TEST: Factory
# =============================================================

class TestFactory:
    """create_trading_service wiring."""

    def test_in_memory_factory(self, config, clock):
        service = create_trading_service(config=config, clock=clock)
        service.quick_buy("alice", PAIR, 1)
        assert service.get_trade_count() == 1

    def test_factory_with_persistence(self, config, clock, engine):
        config.persistence.enabled = True
        service = create_trading_service(config=config, clock=clock, engine=engine)
        service.quick_buy("alice", PAIR, 3)

        reopened = create_trading_service(config=config, clock=clock, engine=engine)
        assert reopened.get_trade_count() == 1
        assert reopened.get_portfolio_balance("alice", "alice", PAIR) == 3

    def test_persistence_requires_vault_key(self, config, clock, engine):
        config.persistence.enabled = True
        config.vault.key = None
        with pytest.raises(ValueError, match="vault key"):
            create_trading_service(config=config, clock=clock, engine=engine)

    def test_queued_order_swept_after_restart(self, config, clock, engine):
        """Sealed orders reopen with the same vault key."""
        config.persistence.enabled = True
        service = create_trading_service(config=config, clock=clock, engine=engine)
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)

        reopened = create_trading_service(config=config, clock=clock, engine=engine)
        reopened.update_market_price("owner", PAIR, 16)

        assert reopened.get_order_info(order_id).is_executed
        assert reopened.get_portfolio_balance("alice", "alice", PAIR) == -4

    def test_unreadable_order_skipped_by_sweep(self, config, clock, engine, caplog):
        """An order sealed under another key stays active and is logged."""
        config.persistence.enabled = True
        service = create_trading_service(config=config, clock=clock, engine=engine)
        order_id = service.place_order("alice", PAIR, Direction.SHORT, 4, 16)

        rotated = TradingLedgerConfig.for_testing()
        rotated.persistence.enabled = True
        rotated.vault.key = "rotated-key"
        reopened = create_trading_service(config=rotated, clock=clock, engine=engine)

        caplog.set_level(logging.ERROR, logger="private_trading.service")
        reopened.update_market_price("owner", PAIR, 16)

        assert reopened.get_market_price(PAIR) == 16
        assert reopened.get_order_info(order_id).is_active
        assert f"Queued order {order_id} skipped" in caplog.text
