"""
Wallet provider boundary.

A wallet provider holds signing keys and talks to the network on the
user's behalf. The client only needs the EIP-1193 surface: a
request/response call and event subscription.
"""

from __future__ import annotations

import asyncio
import inspect
import traceback
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from walletbridge.utils.logging import get_logger

_logger = get_logger(__name__)

Handler = Callable[..., Any]

CHAIN_CHANGED = "chainChanged"
ACCOUNTS_CHANGED = "accountsChanged"


@runtime_checkable
class WalletProvider(Protocol):
    """Interface the session and executors require from a wallet."""

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Perform a JSON-RPC style request; raise ProviderRpcError on failure."""
        ...

    def on(self, event: str, handler: Handler) -> None:
        ...

    def remove_listener(self, event: str, handler: Handler) -> None:
        ...


class EventEmitter:
    """
    Minimal event registry for providers.

    Handlers may be plain callables or coroutine functions; coroutine
    results are scheduled on the running loop.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Handler]] = {}
        self._pending: set = set()

    def on(self, event: str, handler: Handler) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Handler) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, [])):
            try:
                result = handler(*args)
            except Exception as e:
                _logger.error(
                    "Event handler failed",
                    extra={"event": event, "error": str(e), "traceback": traceback.format_exc()},
                )
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
