"""
Private Trading - Execution Policy.

============================================================
PURPOSE
============================================================
Decides whether a submission fills, and at what price.

POLICIES:
- Quick trades and market orders: always fill at the market
  price (unpriced when the pair has no market price).
- Limit orders: one of
    market_crossing  fill when the limit crosses the market
    immediate        always fill at the limit price
    queue            never fill on submission

Every decision is a pure function of the order and the current
market price. No clock, no randomness.

============================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

from .types import Direction, LimitFillPolicy


# ============================================================
# FILL DECISION
# ============================================================

@dataclass(frozen=True)
class FillDecision:
    """Outcome of an execution policy."""

    should_fill: bool
    fill_price: Optional[int] = None
    reason: str = ""

    @classmethod
    def fill(cls, price: Optional[int], reason: str) -> "FillDecision":
        return cls(True, price, reason)

    @classmethod
    def queue(cls, reason: str) -> "FillDecision":
        return cls(False, None, reason)


# ============================================================
# POLICIES
# ============================================================

class ExecutionPolicy(ABC):
    """Fill rule for limit orders."""

    policy: LimitFillPolicy

    @abstractmethod
    def decide(
        self,
        direction: Direction,
        limit_price: int,
        market_price: int,
    ) -> FillDecision:
        """
        Decide a limit order fill.

        Args:
            direction: Order direction
            limit_price: Caller price
            market_price: Current market price, 0 when unpriced
        """


class MarketCrossingPolicy(ExecutionPolicy):
    """Fill at the limit price when it crosses the market."""

    policy = LimitFillPolicy.MARKET_CROSSING

    def decide(self, direction: Direction, limit_price: int, market_price: int) -> FillDecision:
        if market_price <= 0:
            return FillDecision.queue("Pair has no market price")
        if direction is Direction.LONG and limit_price >= market_price:
            return FillDecision.fill(limit_price, "Bid at or above market")
        if direction is Direction.SHORT and limit_price <= market_price:
            return FillDecision.fill(limit_price, "Ask at or below market")
        return FillDecision.queue("Limit does not cross market")


class ImmediateFillPolicy(ExecutionPolicy):
    """Fill every limit order at its own price."""

    policy = LimitFillPolicy.IMMEDIATE

    def decide(self, direction: Direction, limit_price: int, market_price: int) -> FillDecision:
        return FillDecision.fill(limit_price, "Immediate fill")


class QueuePolicy(ExecutionPolicy):
    """Never fill on submission."""

    policy = LimitFillPolicy.QUEUE

    def decide(self, direction: Direction, limit_price: int, market_price: int) -> FillDecision:
        return FillDecision.queue("Queued by policy")


POLICIES: Dict[LimitFillPolicy, Type[ExecutionPolicy]] = {
    LimitFillPolicy.MARKET_CROSSING: MarketCrossingPolicy,
    LimitFillPolicy.IMMEDIATE: ImmediateFillPolicy,
    LimitFillPolicy.QUEUE: QueuePolicy,
}


def create_policy(policy: LimitFillPolicy) -> ExecutionPolicy:
    """Create the execution policy for a configured rule."""
    try:
        return POLICIES[policy]()
    except KeyError:
        raise ValueError(f"Unsupported limit fill policy: {policy}") from None


def market_fill(market_price: int) -> FillDecision:
    """Quick trades and market orders always fill at the market price."""
    if market_price <= 0:
        return FillDecision.fill(None, "Unpriced market fill")
    return FillDecision.fill(market_price, "Market fill")
