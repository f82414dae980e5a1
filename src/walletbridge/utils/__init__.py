"""
walletbridge utilities.

This module provides logging, retry and validation helpers.
"""

from walletbridge.utils.logging import (
    LogContext,
    configure_logging,
    disable_logging,
    enable_debug,
    get_logger,
    set_level,
)
from walletbridge.utils.retry import RetryConfig, calculate_delay, retry_async
from walletbridge.utils.validation import validate_address

__all__ = [
    # Structured logging
    "get_logger",
    "configure_logging",
    "set_level",
    "disable_logging",
    "enable_debug",
    "LogContext",
    # Retry
    "RetryConfig",
    "calculate_delay",
    "retry_async",
    # Validation
    "validate_address",
]
