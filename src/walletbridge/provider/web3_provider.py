"""Wallet provider backed by a JSON-RPC node through web3.py.

Web3Provider plays the role of an injected browser wallet for Python
callers. Requests are forwarded to the node; when a local key is
configured the provider answers account requests itself and signs
``eth_sendTransaction`` locally, asking the optional ``approve`` hook
first, which is where a wallet would show its confirmation prompt.

Example:
    >>> provider = Web3Provider("https://rpc-amoy.polygon.technology", private_key="0x...")
    >>> session = WalletSession(provider)
    >>> await session.connect()
"""
from __future__ import annotations

import asyncio
import inspect
import traceback
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from aiohttp import ClientTimeout
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3

from walletbridge.constants import (
    DISCONNECTED_CODE,
    MAX_FEE_MULTIPLIER,
    NETWORK_WATCH_INTERVAL_SECONDS,
    PRIORITY_FEE_GWEI,
    PROVIDER_TIMEOUT_SECONDS,
    UNAUTHORIZED_CODE,
    USER_REJECTED_CODE,
)
from walletbridge.errors import ProviderRpcError, ProviderUnavailableError
from walletbridge.provider.base import ACCOUNTS_CHANGED, CHAIN_CHANGED, EventEmitter
from walletbridge.utils.logging import get_logger

_logger = get_logger(__name__)

ApprovalHook = Callable[[Dict[str, Any]], Union[bool, Awaitable[bool]]]


class Web3Provider(EventEmitter):
    """JSON-RPC wallet provider using ``web3.AsyncWeb3``."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        *,
        w3: Optional[AsyncWeb3] = None,
        private_key: Optional[str] = None,
        approve: Optional[ApprovalHook] = None,
        timeout: int = PROVIDER_TIMEOUT_SECONDS,
        watch_interval: float = NETWORK_WATCH_INTERVAL_SECONDS,
    ) -> None:
        super().__init__()
        if w3 is None:
            if not rpc_url:
                raise ProviderUnavailableError("Web3Provider needs an rpc_url or a w3 instance")
            # Timeout on the HTTP provider so a dead node cannot hang the client
            w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": ClientTimeout(total=timeout)}))
        self.w3 = w3
        self.account: Optional[LocalAccount] = None
        if private_key is not None:
            # Sanitize private key errors to prevent key leakage in stack traces
            try:
                self.account = Account.from_key(private_key)
            except Exception:
                raise ValueError("Invalid private key format (key not shown for security)") from None
        self._approve = approve
        self._watch_interval = watch_interval
        self._stop_event: Optional[asyncio.Event] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._last_chain_id: Optional[str] = None
        self._last_accounts: Optional[List[str]] = None

    # ------------------------------------------------------------------
    # EIP-1193 request
    # ------------------------------------------------------------------
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        params = params or []

        if self.account is not None:
            if method == "eth_requestAccounts":
                await self._require_approval({"method": method})
                return [self.account.address]
            if method == "eth_accounts":
                return [self.account.address]
            if method == "eth_sendTransaction":
                return await self._sign_and_send(params[0])

        return await self._rpc(method, params)

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        try:
            response = await self.w3.provider.make_request(method, params)
        except (OSError, asyncio.TimeoutError) as e:
            raise ProviderRpcError(DISCONNECTED_CODE, f"Provider connection failed: {e}") from e

        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise ProviderRpcError(
                    int(error.get("code", 0)),
                    error.get("message", "Unknown provider error"),
                    error.get("data"),
                )
            raise ProviderRpcError(0, str(error))
        return response.get("result")

    async def _require_approval(self, request: Dict[str, Any]) -> None:
        if self._approve is None:
            return
        decision = self._approve(request)
        if inspect.isawaitable(decision):
            decision = await decision
        if not decision:
            raise ProviderRpcError(USER_REJECTED_CODE, "User rejected the request.")

    async def _sign_and_send(self, tx: Dict[str, Any]) -> str:
        """Fill in nonce, chain id and fees, sign with the local key, broadcast."""
        assert self.account is not None
        sender = tx.get("from")
        if sender and sender.lower() != self.account.address.lower():
            raise ProviderRpcError(UNAUTHORIZED_CODE, f"Account {sender} is not managed by this provider")

        await self._require_approval({"method": "eth_sendTransaction", "params": [tx]})

        nonce = await self._rpc("eth_getTransactionCount", [self.account.address, "pending"])
        chain_id = await self._rpc("eth_chainId", [])
        signable: Dict[str, Any] = {
            "to": Web3.to_checksum_address(tx["to"]),
            "data": tx.get("data", "0x"),
            "value": _to_int(tx.get("value", 0)),
            "gas": _to_int(tx["gas"]),
            "nonce": _to_int(nonce),
            "chainId": _to_int(chain_id),
        }
        signable.update(await self._fee_fields())

        signed = self.account.sign_transaction(signable)
        raw_tx = Web3.to_hex(signed.raw_transaction)
        return await self._rpc("eth_sendRawTransaction", [raw_tx])

    async def _fee_fields(self) -> Dict[str, int]:
        latest = await self._rpc("eth_getBlockByNumber", ["latest", False])
        base_fee = (latest or {}).get("baseFeePerGas")
        if base_fee is None:
            # Pre-London network: legacy pricing
            return {"gasPrice": _to_int(await self._rpc("eth_gasPrice", []))}

        max_priority_fee = Web3.to_wei(PRIORITY_FEE_GWEI, "gwei")
        return {
            "maxFeePerGas": _to_int(base_fee) * MAX_FEE_MULTIPLIER + max_priority_fee,
            "maxPriorityFeePerGas": max_priority_fee,
        }

    # ------------------------------------------------------------------
    # Network/account change detection
    # ------------------------------------------------------------------
    async def start_watching(self) -> None:
        """
        Start polling the node for chain and account changes.

        Emits ``chainChanged`` (hex chain id) and ``accountsChanged``
        (list of addresses) when the observed values move.

        Raises:
            RuntimeError: If already watching
        """
        if self._watch_task is not None:
            raise RuntimeError("Provider is already watching")
        self._stop_event = asyncio.Event()
        self._last_chain_id = await self._rpc("eth_chainId", [])
        self._last_accounts = await self.request("eth_accounts")
        self._watch_task = asyncio.create_task(self._watch_loop())
        _logger.debug("Started network watch", extra={"chain_id": self._last_chain_id})

    async def stop_watching(self) -> None:
        if self._watch_task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await asyncio.wait_for(self._watch_task, timeout=self._watch_interval * 2)
        except asyncio.TimeoutError:
            _logger.warning("Watch task timeout, cancelling")
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
        self._watch_task = None

    async def _watch_loop(self) -> None:
        while self._stop_event is not None and not self._stop_event.is_set():
            try:
                await self._poll_once()
            except Exception as e:
                _logger.error(
                    "Error in network watch loop",
                    extra={"error": str(e), "traceback": traceback.format_exc()},
                )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._watch_interval)
                break
            except asyncio.TimeoutError:
                continue

    async def _poll_once(self) -> None:
        chain_id = await self._rpc("eth_chainId", [])
        if chain_id != self._last_chain_id:
            self._last_chain_id = chain_id
            self.emit(CHAIN_CHANGED, chain_id)

        accounts = await self.request("eth_accounts")
        if accounts != self._last_accounts:
            self._last_accounts = accounts
            self.emit(ACCOUNTS_CHANGED, accounts)


def _to_int(value: Union[int, str]) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)
