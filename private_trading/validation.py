"""
Private Trading - Submission Validation.

============================================================
PURPOSE
============================================================
Validates submissions before any ledger state is touched.

VALIDATION STEPS:
1. Caller is a regular account (not empty, not the market maker)
2. Pair is a non-empty name within the length bound
3. Amount is a positive integer within bounds
4. Price (when required or given) is a positive integer within bounds

CRITICAL PRINCIPLE:
    "Reject first, mutate later."

============================================================
"""

from typing import Optional

from .config import ValidationConfig
from .types import MARKET_MAKER, Direction, ValidationError


class SubmissionValidator:
    """
    Validates submission parameters.

    Every method either returns the normalized value or raises
    ValidationError. Nothing here reads or writes ledger state.
    """

    def __init__(self, config: ValidationConfig):
        self._config = config

    def validate_account(self, account: str) -> str:
        """Validate a caller account identifier."""
        if not isinstance(account, str) or not account.strip():
            raise ValidationError("Account must be a non-empty string", "VAL_INVALID_ACCOUNT")
        if account == MARKET_MAKER:
            raise ValidationError(
                f"Account {MARKET_MAKER!r} is reserved",
                "VAL_INVALID_ACCOUNT",
            )
        return account

    def validate_pair(self, pair: str) -> str:
        """Validate and normalize a pair name."""
        if not isinstance(pair, str):
            raise ValidationError("Pair must be a string", "VAL_INVALID_PAIR")
        normalized = pair.strip()
        if not normalized:
            raise ValidationError("Pair must not be empty", "VAL_INVALID_PAIR")
        if len(normalized) > self._config.max_pair_length:
            raise ValidationError(
                f"Pair longer than {self._config.max_pair_length} characters",
                "VAL_INVALID_PAIR",
            )
        return normalized

    def validate_amount(self, amount: int) -> int:
        """Validate an order or trade amount."""
        if not _is_int(amount) or amount <= 0:
            raise ValidationError("Amount must be positive", "VAL_INVALID_AMOUNT")
        if amount > self._config.max_amount:
            raise ValidationError(
                f"Amount exceeds maximum of {self._config.max_amount}",
                "VAL_INVALID_AMOUNT",
            )
        return amount

    def validate_price(self, price: int) -> int:
        """Validate a limit or market price."""
        if not _is_int(price) or price <= 0:
            raise ValidationError("Price must be positive", "VAL_INVALID_PRICE")
        if price > self._config.max_price:
            raise ValidationError(
                f"Price exceeds maximum of {self._config.max_price}",
                "VAL_INVALID_PRICE",
            )
        return price

    def validate_direction(self, direction) -> Direction:
        """Accept a Direction or the boolean is_long wire flag."""
        if isinstance(direction, Direction):
            return direction
        if isinstance(direction, bool):
            return Direction.from_is_long(direction)
        raise ValidationError("Direction must be long or short", "VAL_INVALID_DIRECTION")

    def validate_order(
        self,
        trader: str,
        pair: str,
        amount: int,
        price: Optional[int],
    ) -> tuple[str, str, int, Optional[int]]:
        """
        Validate a place-order submission.

        Returns:
            Tuple of (trader, pair, amount, price) with the pair normalized
        """
        trader = self.validate_account(trader)
        pair = self.validate_pair(pair)
        amount = self.validate_amount(amount)
        if price is not None:
            price = self.validate_price(price)
        return trader, pair, amount, price

    def validate_quick_trade(
        self,
        trader: str,
        pair: str,
        amount: int,
    ) -> tuple[str, str, int]:
        """Validate a quick buy or sell."""
        trader = self.validate_account(trader)
        pair = self.validate_pair(pair)
        amount = self.validate_amount(amount)
        return trader, pair, amount


def _is_int(value) -> bool:
    # bool is an int subclass; True is not an amount
    return isinstance(value, int) and not isinstance(value, bool)
