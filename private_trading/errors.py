"""
Private Trading - Error Taxonomy.

============================================================
PURPOSE
============================================================
Classification of every failure the ledger can raise.

ERROR CATEGORIES:
1. Validation Errors - Bad amount, price, pair or account
2. Authorization Errors - Caller lacks the capability
3. Not Found Errors - Unknown order or trade
4. State Errors - Order already settled
5. Balance Errors - Non-negative policy violated
6. Decryption Errors - Oracle callback misuse
7. Persistence Errors - Database write failed

All errors are raised before any ledger mutation. None are
retried by the ledger.

============================================================
"""

from enum import Enum
from typing import Dict
from dataclasses import dataclass

from .types import TradingLedgerError


# ============================================================
# ERROR CATEGORIES
# ============================================================

class ErrorCategory(Enum):
    """Error category classification."""

    VALIDATION = "VALIDATION"
    AUTHORIZATION = "AUTHORIZATION"
    NOT_FOUND = "NOT_FOUND"
    STATE = "STATE"
    BALANCE = "BALANCE"
    DECRYPTION = "DECRYPTION"
    PERSISTENCE = "PERSISTENCE"
    INTERNAL = "INTERNAL"


class ErrorSeverity(Enum):
    """Error severity levels."""

    WARNING = "WARNING"
    """Caller mistake, informational."""

    ERROR = "ERROR"
    """Needs attention."""

    CRITICAL = "CRITICAL"
    """Ledger could not record an accepted change."""


# ============================================================
# ERROR CODE REGISTRY
# ============================================================

@dataclass
class ErrorCodeInfo:
    """Information about an error code."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    description: str
    recommended_action: str


ERROR_CODES: Dict[str, ErrorCodeInfo] = {
    # ========== VALIDATION ERRORS ==========
    "VAL_INVALID_AMOUNT": ErrorCodeInfo(
        code="VAL_INVALID_AMOUNT",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        description="Amount must be a positive integer within bounds",
        recommended_action="Resubmit with an amount of at least 1",
    ),
    "VAL_INVALID_PRICE": ErrorCodeInfo(
        code="VAL_INVALID_PRICE",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        description="Price must be a positive integer within bounds",
        recommended_action="Resubmit with a price of at least 1",
    ),
    "VAL_INVALID_PAIR": ErrorCodeInfo(
        code="VAL_INVALID_PAIR",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        description="Pair name is empty or too long",
        recommended_action="Resubmit with a pair such as BTC/ETH",
    ),
    "VAL_INVALID_DIRECTION": ErrorCodeInfo(
        code="VAL_INVALID_DIRECTION",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        description="Direction must be long or short",
        recommended_action="Pass a Direction or an is_long flag",
    ),
    "VAL_INVALID_ACCOUNT": ErrorCodeInfo(
        code="VAL_INVALID_ACCOUNT",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        description="Account identifier is empty or reserved",
        recommended_action="Submit from a regular trader account",
    ),
    # ========== AUTHORIZATION ERRORS ==========
    "AUTH_NOT_OWNER": ErrorCodeInfo(
        code="AUTH_NOT_OWNER",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        description="Only the owner or the privileged account may do this",
        recommended_action="Call from the owning account",
    ),
    "AUTH_NOT_PRIVILEGED": ErrorCodeInfo(
        code="AUTH_NOT_PRIVILEGED",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        description="Only the privileged account may do this",
        recommended_action="Call from the privileged account",
    ),
    "AUTH_NOT_REQUESTER": ErrorCodeInfo(
        code="AUTH_NOT_REQUESTER",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        description="Only the requester may read a decryption result",
        recommended_action="Read the result from the requesting account",
    ),
    # ========== NOT FOUND ERRORS ==========
    "NF_ORDER": ErrorCodeInfo(
        code="NF_ORDER",
        category=ErrorCategory.NOT_FOUND,
        severity=ErrorSeverity.WARNING,
        description="Order does not exist",
        recommended_action="Check the order identifier",
    ),
    "NF_TRADE": ErrorCodeInfo(
        code="NF_TRADE",
        category=ErrorCategory.NOT_FOUND,
        severity=ErrorSeverity.WARNING,
        description="Trade does not exist",
        recommended_action="Check the trade identifier",
    ),
    # ========== STATE ERRORS ==========
    "STATE_NOT_CANCELLABLE": ErrorCodeInfo(
        code="STATE_NOT_CANCELLABLE",
        category=ErrorCategory.STATE,
        severity=ErrorSeverity.WARNING,
        description="Order is already executed or cancelled",
        recommended_action="None, the order is settled",
    ),
    "STATE_INVALID_TRANSITION": ErrorCodeInfo(
        code="STATE_INVALID_TRANSITION",
        category=ErrorCategory.STATE,
        severity=ErrorSeverity.ERROR,
        description="Order status change is not allowed",
        recommended_action="Investigate the caller, statuses never move backward",
    ),
    # ========== BALANCE ERRORS ==========
    "BAL_INSUFFICIENT": ErrorCodeInfo(
        code="BAL_INSUFFICIENT",
        category=ErrorCategory.BALANCE,
        severity=ErrorSeverity.WARNING,
        description="Fill would take the balance below zero",
        recommended_action="Reduce the amount or buy first",
    ),
    # ========== DECRYPTION ERRORS ==========
    "DEC_UNKNOWN_REQUEST": ErrorCodeInfo(
        code="DEC_UNKNOWN_REQUEST",
        category=ErrorCategory.DECRYPTION,
        severity=ErrorSeverity.ERROR,
        description="Decryption request does not exist",
        recommended_action="Check the oracle callback wiring",
    ),
    "DEC_ALREADY_FULFILLED": ErrorCodeInfo(
        code="DEC_ALREADY_FULFILLED",
        category=ErrorCategory.DECRYPTION,
        severity=ErrorSeverity.ERROR,
        description="Decryption result was already delivered",
        recommended_action="Check the oracle for duplicate delivery",
    ),
    "DEC_PENDING": ErrorCodeInfo(
        code="DEC_PENDING",
        category=ErrorCategory.DECRYPTION,
        severity=ErrorSeverity.WARNING,
        description="Decryption result not delivered yet",
        recommended_action="Wait for the oracle callback",
    ),
    # ========== PERSISTENCE ERRORS ==========
    "DB_WRITE_FAILED": ErrorCodeInfo(
        code="DB_WRITE_FAILED",
        category=ErrorCategory.PERSISTENCE,
        severity=ErrorSeverity.CRITICAL,
        description="Change set could not be persisted",
        recommended_action="Check database connectivity and resubmit",
    ),
    # ========== VAULT ERRORS ==========
    "VAULT_UNREADABLE": ErrorCodeInfo(
        code="VAULT_UNREADABLE",
        category=ErrorCategory.INTERNAL,
        severity=ErrorSeverity.CRITICAL,
        description="Sealed value cannot be opened with the configured vault key",
        recommended_action="Restore the vault key the value was sealed with",
    ),
}


UNKNOWN_ERROR = ErrorCodeInfo(
    code="INTERNAL",
    category=ErrorCategory.INTERNAL,
    severity=ErrorSeverity.ERROR,
    description="Unclassified ledger error",
    recommended_action="Investigate logs",
)


def get_error_info(code: str) -> ErrorCodeInfo:
    """Look up an error code, falling back to the internal entry."""
    return ERROR_CODES.get(code, UNKNOWN_ERROR)


def classify(error: TradingLedgerError) -> ErrorCategory:
    """Get the category of a raised ledger error."""
    return get_error_info(error.code).category


def is_caller_error(error: TradingLedgerError) -> bool:
    """Check if the error stems from the caller's input or rights."""
    return get_error_info(error.code).severity is ErrorSeverity.WARNING
