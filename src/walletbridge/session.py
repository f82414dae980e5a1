"""Wallet session.

WalletSession owns the connection to a wallet provider. It is the only
component allowed to mutate the active account and chain id, and it
does so only from the provider's own change notifications and from
fresh reads it performs itself.
"""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, List, Optional

from walletbridge.errors import (
    ProviderUnavailableError,
    UserRejectedError,
    from_provider_error,
)
from walletbridge.provider.base import ACCOUNTS_CHANGED, CHAIN_CHANGED, WalletProvider
from walletbridge.utils.logging import get_logger

_logger = get_logger(__name__)

NetworkHandler = Callable[[str], Any]
AccountsHandler = Callable[[Optional[str]], Any]


def normalize_chain_id(value: Any) -> str:
    """Render a provider chain id (``"0x13882"``, ``80002``, ``"80002"``) as a decimal string."""
    if isinstance(value, int):
        return str(value)
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return str(int(text, 16))
    return str(int(text))


class WalletSession:
    """
    Connection to a wallet provider.

    Attributes:
        provider: The wallet provider, or None when no wallet is present
        account_address: Connected account, None until ``connect()``
        active_chain_id: Last observed chain id as a decimal string
    """

    def __init__(self, provider: Optional[WalletProvider]) -> None:
        self.provider = provider
        self.account_address: Optional[str] = None
        self.active_chain_id: Optional[str] = None
        self._network_handlers: List[NetworkHandler] = []
        self._account_handlers: List[AccountsHandler] = []
        self._subscribed = False
        self._tasks: set = set()

    @property
    def is_connected(self) -> bool:
        return self.provider is not None and self.account_address is not None

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise ProviderUnavailableError()
        return self.provider

    async def connect(self) -> str:
        """
        Request account access from the provider.

        The provider may show a prompt; this call waits for the user's
        answer without a timeout.

        Returns:
            The connected account address

        Raises:
            ProviderUnavailableError: If no provider is present
            UserRejectedError: If the user declines access
        """
        provider = self._require_provider()
        try:
            accounts = await provider.request("eth_requestAccounts")
        except Exception as e:
            raise from_provider_error(e) from e

        if not accounts:
            raise UserRejectedError("Wallet returned no accounts")

        self.account_address = accounts[0]
        self._subscribe(provider)
        await self.current_chain_id()
        _logger.info(
            "Wallet connected",
            extra={"account": self.account_address, "chain_id": self.active_chain_id},
        )
        return self.account_address

    async def current_chain_id(self) -> str:
        """
        Query the provider's active chain id.

        Always performs a fresh provider read and refreshes
        ``active_chain_id``.

        Raises:
            ProviderUnavailableError: If no provider is present
        """
        provider = self._require_provider()
        try:
            raw = await provider.request("eth_chainId")
        except Exception as e:
            raise from_provider_error(e) from e
        self.active_chain_id = normalize_chain_id(raw)
        return self.active_chain_id

    def on_network_changed(self, handler: NetworkHandler) -> Callable[[], None]:
        """
        Register a callback for provider network changes.

        ``active_chain_id`` is already updated when the handler runs.
        Coroutine handlers are scheduled as tasks.

        Returns:
            A callable that unregisters the handler
        """
        self._network_handlers.append(handler)
        if self.provider is not None:
            self._subscribe(self.provider)
        return lambda: _discard(self._network_handlers, handler)

    def on_accounts_changed(self, handler: AccountsHandler) -> Callable[[], None]:
        self._account_handlers.append(handler)
        if self.provider is not None:
            self._subscribe(self.provider)
        return lambda: _discard(self._account_handlers, handler)

    def _subscribe(self, provider: WalletProvider) -> None:
        if self._subscribed:
            return
        provider.on(CHAIN_CHANGED, self._handle_chain_changed)
        provider.on(ACCOUNTS_CHANGED, self._handle_accounts_changed)
        self._subscribed = True

    def _handle_chain_changed(self, raw_chain_id: Any) -> None:
        self.active_chain_id = normalize_chain_id(raw_chain_id)
        _logger.info("Network changed", extra={"chain_id": self.active_chain_id})
        for handler in list(self._network_handlers):
            self._dispatch(handler, self.active_chain_id)

    def _handle_accounts_changed(self, accounts: List[str]) -> None:
        self.account_address = accounts[0] if accounts else None
        _logger.info("Accounts changed", extra={"account": self.account_address})
        for handler in list(self._account_handlers):
            self._dispatch(handler, self.account_address)

    def _dispatch(self, handler: Callable[..., Any], value: Any) -> None:
        result = handler(value)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def close(self) -> None:
        """Unsubscribe from provider events and forget the account."""
        if self.provider is not None and self._subscribed:
            self.provider.remove_listener(CHAIN_CHANGED, self._handle_chain_changed)
            self.provider.remove_listener(ACCOUNTS_CHANGED, self._handle_accounts_changed)
        self._subscribed = False
        self._network_handlers.clear()
        self._account_handlers.clear()
        self.account_address = None
        self.active_chain_id = None

    async def __aenter__(self) -> "WalletSession":
        await self.connect()
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        self.close()


def _discard(handlers: List[Callable[..., Any]], handler: Callable[..., Any]) -> None:
    if handler in handlers:
        handlers.remove(handler)
