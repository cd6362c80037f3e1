"""
Core Module Package.

Infrastructure shared by the ledger packages.

Components:
- clock: Unified time abstraction
- log_config: Root logger setup
"""

from .clock import ClockProtocol, SystemClock, MockClock, ensure_utc
from .log_config import setup_logging


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_utc",
    "setup_logging",
]
