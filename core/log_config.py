"""
Core Module - Logging Setup.

============================================================
RESPONSIBILITY
============================================================
Configures the root logger once, at service start.

- Modules log through logging.getLogger(__name__)
- Output is JSON (one object per line) or text
- Amounts and prices are never logged by ledger modules

============================================================
"""

import json
import logging
import sys
from typing import Optional


class LedgerJsonFormatter(logging.Formatter):
    """One JSON object per record, serialized with json.dumps."""

    def __init__(self, service_name: Optional[str] = None):
        super().__init__()
        self._service_name = service_name or ""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self._service_name,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def build_formatter(log_format: str, service_name: Optional[str] = None) -> logging.Formatter:
    """Formatter for a configured output format (json or text)."""
    if log_format == "json":
        return LedgerJsonFormatter(service_name)
    return logging.Formatter(
        f"%(asctime)s | %(levelname)-8s | %(name)s | {service_name or 'ledger'} | %(message)s"
    )


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    service_name: Optional[str] = None,
) -> logging.Logger:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Log level name, case-insensitive
        log_format: json or text
        service_name: Tag added to every record

    Returns:
        The private_trading package logger
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(log_format, service_name))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = [handler]

    return logging.getLogger("private_trading")
