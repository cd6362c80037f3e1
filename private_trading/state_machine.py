"""
Private Trading - Order State Machine.

============================================================
PURPOSE
============================================================
Manages order status with strict, forward-only transitions.

STATE MACHINE:

    ACTIVE ──────► EXECUTED
       │
       └─────────► CANCELLED

INVARIANTS:
- Terminal states are final
- Each transition has a guard
- All transitions are logged

============================================================
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Set

from .types import Order, OrderStatus, StateTransitionError


logger = logging.getLogger(__name__)


# ============================================================
# STATE TRANSITION RULES
# ============================================================

VALID_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.ACTIVE: {
        OrderStatus.EXECUTED,
        OrderStatus.CANCELLED,
    },
    # Terminal states - no transitions out
    OrderStatus.EXECUTED: set(),
    OrderStatus.CANCELLED: set(),
}


# ============================================================
# STATE TRANSITION GUARD
# ============================================================

class TransitionGuard:
    """
    Guard for status transitions.

    Ensures transitions are valid and provides reason for denial.
    """

    @staticmethod
    def can_transition(
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> tuple[bool, str]:
        """
        Check if transition is allowed.

        A same-status move is rejected: an order is executed or
        cancelled exactly once.
        """
        if to_status in VALID_TRANSITIONS.get(from_status, set()):
            return True, "Valid transition"

        if from_status.is_terminal():
            return False, f"Cannot transition from terminal status {from_status.value}"

        return False, f"Invalid transition: {from_status.value} -> {to_status.value}"

    @staticmethod
    def validate_fill(target_status: OrderStatus, fill_trade_id: Optional[int]) -> tuple[bool, str]:
        """An executed order must reference its fill trade."""
        if target_status is OrderStatus.EXECUTED and fill_trade_id is None:
            return False, "Missing fill trade for EXECUTED status"
        return True, "Order valid for status"


# ============================================================
# ORDER STATE MACHINE
# ============================================================

class OrderStateMachine:
    """
    Applies guarded transitions to the order it wraps.

    Callers that need atomicity hand it a staged copy and swap the
    copy in on commit.
    """

    def __init__(self, order: Order):
        self._order = order

    @property
    def order(self) -> Order:
        return self._order

    def can_transition_to(
        self,
        target_status: OrderStatus,
        fill_trade_id: Optional[int] = None,
    ) -> tuple[bool, str]:
        allowed, reason = TransitionGuard.can_transition(self._order.status, target_status)
        if not allowed:
            return False, reason
        return TransitionGuard.validate_fill(target_status, fill_trade_id)

    def transition_to(
        self,
        target_status: OrderStatus,
        at: datetime,
        reason: str = "",
        fill_trade_id: Optional[int] = None,
    ) -> Order:
        """
        Transition to a new status.

        Raises:
            StateTransitionError: If transition is not allowed
        """
        allowed, validation_reason = self.can_transition_to(target_status, fill_trade_id)
        if not allowed:
            raise StateTransitionError(
                f"Cannot transition order {self._order.order_id} from "
                f"{self._order.status.value} to {target_status.value}: "
                f"{validation_reason}"
            )

        from_status = self._order.status
        self._order.status = target_status
        self._order.status_changed_at = at
        if fill_trade_id is not None:
            self._order.fill_trade_id = fill_trade_id

        logger.debug(
            f"Order {self._order.order_id}: "
            f"{from_status.value} -> {target_status.value} ({reason})"
        )
        return self._order

    # --------------------------------------------------------
    # CONVENIENCE METHODS
    # --------------------------------------------------------

    def mark_executed(self, fill_trade_id: int, at: datetime, reason: str = "Order filled") -> Order:
        return self.transition_to(OrderStatus.EXECUTED, at, reason, fill_trade_id)

    def mark_cancelled(self, at: datetime, reason: str = "Cancelled by owner") -> Order:
        return self.transition_to(OrderStatus.CANCELLED, at, reason)
