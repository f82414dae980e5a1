"""
Structured logging for walletbridge.

Thin layer over the standard library ``logging`` module. Every module
gets its logger through ``get_logger(__name__)`` and passes context via
``extra={...}``; the default formatter appends that context as
``key=value`` pairs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

ROOT_LOGGER_NAME = "walletbridge"

# Attributes every LogRecord has; anything else came from ``extra``
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Formatter that renders ``extra`` fields after the message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if not context:
            return base
        rendered = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
        return f"{base} | {rendered}"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``walletbridge`` namespace.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    *,
    handler: Optional[logging.Handler] = None,
    fmt: str = "%(asctime)s %(levelname)s %(name)s: %(message)s",
) -> logging.Logger:
    """
    Attach a handler to the package root logger.

    Calling it again replaces the previously configured handler.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in list(root.handlers):
        if getattr(existing, "_walletbridge", False):
            root.removeHandler(existing)

    handler = handler or logging.StreamHandler()
    handler.setFormatter(ContextFormatter(fmt))
    handler._walletbridge = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
    return root


def set_level(level: Union[int, str]) -> None:
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)


def disable_logging() -> None:
    # Level above CRITICAL so child loggers are filtered too
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.CRITICAL + 1)


def enable_debug() -> None:
    configure_logging(logging.DEBUG)


class LogContext(logging.LoggerAdapter):
    """
    Logger adapter that merges fixed context into every record.

    Example:
        >>> log = LogContext(get_logger(__name__), {"contract": "0xabc..."})
        >>> log.info("Submitting", extra={"method": "mint"})
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> Any:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


# Library default: silent unless the application configures logging
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
