"""
Private Trading - Notifications.

============================================================
PURPOSE
============================================================
Externally observable notifications and the bus that delivers
them.

CONFIDENTIALITY:
    Notifications carry identifiers, accounts, pairs and
    directions only. Models forbid extra fields, so an amount or
    price cannot be attached by mistake.

DELIVERY:
    Published after the change is applied. A failing observer is
    logged and skipped; it never rolls the change back.

============================================================
"""

import logging
from collections import deque
from datetime import datetime
from typing import Callable, Deque, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict


logger = logging.getLogger(__name__)


# ============================================================
# NOTIFICATION MODELS
# ============================================================

class LedgerEvent(BaseModel):
    """Base notification."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    emitted_at: datetime

    @property
    def name(self) -> str:
        return type(self).__name__


class OrderPlaced(LedgerEvent):
    order_id: int
    trader: str
    pair: str
    is_long: bool


class OrderExecuted(LedgerEvent):
    order_id: int
    trade_id: int


class OrderCancelled(LedgerEvent):
    order_id: int
    trader: str
    pair: str


class TradeExecuted(LedgerEvent):
    trade_id: int
    buyer: str
    seller: str
    pair: str


class QuickTradeExecuted(LedgerEvent):
    trader: str
    pair: str
    is_long: bool


class PriceUpdated(LedgerEvent):
    pair: str


class DecryptionFulfilled(LedgerEvent):
    request_id: int


# ============================================================
# EVENT BUS
# ============================================================

Listener = Callable[[LedgerEvent], None]


class EventBus:
    """
    Synchronous publish/subscribe for ledger notifications.

    Keeps a bounded history of recent notifications for observers
    that attach late.
    """

    def __init__(self, history_size: int = 1000):
        self._subscribers: List[Tuple[Optional[Type[LedgerEvent]], Listener]] = []
        self._history: Deque[LedgerEvent] = deque(maxlen=history_size)

    def subscribe(
        self,
        listener: Listener,
        event_type: Optional[Type[LedgerEvent]] = None,
    ) -> None:
        """Subscribe to all notifications, or to one type and its subclasses."""
        self._subscribers.append((event_type, listener))

    def unsubscribe(self, listener: Listener) -> None:
        self._subscribers = [
            (event_type, existing)
            for event_type, existing in self._subscribers
            if existing is not listener
        ]

    def publish(self, event: LedgerEvent) -> None:
        self._history.append(event)
        for event_type, listener in list(self._subscribers):
            if event_type is not None and not isinstance(event, event_type):
                continue
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener error on {event.name}: {e}")

    def publish_all(self, events: List[LedgerEvent]) -> None:
        for event in events:
            self.publish(event)

    def recent(self, event_type: Optional[Type[LedgerEvent]] = None) -> List[LedgerEvent]:
        """Get recent notifications, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if isinstance(e, event_type)]
