"""State-changing contract invocations.

TransactionExecutor drives one transaction through

    IDLE -> VALIDATING_NETWORK -> ESTIMATING_GAS -> SUBMITTING -> PENDING
         -> CONFIRMED | FAILED

and always returns a TransactionResult instead of raising, so callers
can branch on ``result.kind``. Gas estimation failure is the only
condition recovered internally: the executor falls back to the gas
bound and carries on.

At most one state machine runs per ContractBinding; a second ``send``
is rejected (``in_flight="reject"``) or waits its turn
(``in_flight="queue"``).
"""
from __future__ import annotations

import asyncio
import traceback
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from walletbridge.abi.codec import AbiCodecError, encode_call
from walletbridge.binding import ContractBinding
from walletbridge.config import Settings
from walletbridge.errors import (
    CallRevertedError,
    ChainMismatchError,
    GasEstimationFailedError,
    InvalidArgumentsError,
    InvalidRecipientError,
    MethodNotFoundError,
    ProviderRpcError,
    ProviderUnavailableError,
    ReceiptTimeoutError,
    TransactionInFlightError,
    WalletBridgeError,
    from_provider_error,
)
from walletbridge.models import (
    Confirmed,
    Failed,
    FailureKind,
    MethodKind,
    RecipientMode,
    TransactionRequest,
    TransactionResult,
    TxState,
)
from walletbridge.session import WalletSession
from walletbridge.utils.logging import LogContext, get_logger
from walletbridge.utils.retry import RetryConfig, retry_async
from walletbridge.utils.validation import validate_address

_logger = get_logger(__name__)

StateObserver = Callable[[TxState, Dict[str, Any]], Any]


class SendOptions(BaseModel):
    """
    Per-call options for ``TransactionExecutor.send``.

    Example:
        ```python
        options = SendOptions(recipient=RecipientMode.SELF, gas_limit=200_000)
        result = await executor.send(binding, "mint", [100], options)
        ```
    """

    model_config = ConfigDict(frozen=True)

    gas_limit: Optional[int] = Field(
        default=None,
        gt=0,
        description="Upper bound for the applied gas limit; defaults to Settings.default_gas_limit",
    )
    value: int = Field(
        default=0,
        ge=0,
        description="Native value in wei; only allowed for payable methods",
    )
    recipient: Optional[RecipientMode] = Field(
        default=None,
        description="Insert a recipient argument resolved from the session (self) or recipient_address (other)",
    )
    recipient_address: Optional[str] = Field(
        default=None,
        description="Explicit recipient for RecipientMode.OTHER",
    )
    recipient_position: int = Field(
        default=0,
        ge=0,
        description="Index in the argument list where the recipient is inserted",
    )
    validate_recipient: bool = Field(
        default=False,
        description="Check the recipient address format locally before submitting",
    )
    in_flight: Literal["reject", "queue"] = Field(
        default="reject",
        description="What to do when this binding already has a transaction running",
    )
    receipt_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for inclusion; None waits indefinitely",
    )


def resolve_recipient(
    session: WalletSession,
    mode: RecipientMode,
    address: Optional[str] = None,
    *,
    validate: bool = False,
) -> str:
    """
    Resolve the recipient of a transfer-like call.

    Args:
        session: Session whose connected account is used for ``SELF``
        mode: ``SELF`` or ``OTHER``
        address: Explicit address, required for ``OTHER``
        validate: Also check the address format locally

    Raises:
        InvalidRecipientError: If no address can be resolved, or
            validation is requested and fails
    """
    if mode is RecipientMode.SELF:
        resolved = session.account_address
        if not resolved:
            raise InvalidRecipientError("no connected account to send to")
    else:
        if not address:
            raise InvalidRecipientError("recipient mode 'other' requires an address")
        resolved = address

    if validate:
        validate_address(resolved, "recipient")
    return resolved


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


class TransactionExecutor:
    """
    Submits state-changing contract calls through the session's provider.

    Args:
        settings: Gas bound, gas buffer and receipt poll interval
        on_state: Optional observer called with each state transition
        retry: Retry policy for receipt polling reads
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        on_state: Optional[StateObserver] = None,
        retry: Optional[RetryConfig] = None,
    ) -> None:
        self.settings = settings or Settings()
        self._on_state = on_state
        self._retry = retry or RetryConfig(
            retryable_errors=(ConnectionError, TimeoutError, ProviderRpcError),
        )

    async def send(
        self,
        binding: ContractBinding,
        method: str,
        args: Optional[Sequence[Any]] = None,
        options: Optional[SendOptions] = None,
    ) -> TransactionResult:
        """
        Send a state-changing transaction and wait for its outcome.

        Args:
            binding: Contract to transact with
            method: Method name from the binding's method table
            args: Positional arguments (without the recipient when
                ``options.recipient`` is set)
            options: Gas bound, value, recipient and concurrency options

        Returns:
            ``Confirmed`` with the receipt, or ``Failed`` with a FailureKind
        """
        options = options or SendOptions()
        lock = binding.send_lock

        if options.in_flight == "reject" and lock.locked():
            error = TransactionInFlightError(binding.address)
            _logger.warning("Rejected concurrent send", extra={"contract": binding.address, "method": method})
            return error.to_failed()

        async with lock:
            return await self._run(binding, method, list(args or []), options)

    async def submit(
        self,
        binding: ContractBinding,
        request: TransactionRequest,
        options: Optional[SendOptions] = None,
    ) -> TransactionResult:
        """Send a TransactionRequest; its gas_limit overrides the one in options."""
        options = options or SendOptions()
        if request.gas_limit is not None:
            options = options.model_copy(update={"gas_limit": request.gas_limit})
        return await self.send(binding, request.method, request.args, options)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    async def _run(
        self,
        binding: ContractBinding,
        method: str,
        args: List[Any],
        options: SendOptions,
    ) -> TransactionResult:
        log = LogContext(_logger, {"contract": binding.address, "method": method})
        context: Dict[str, Any] = {"contract": binding.address, "method": method}
        state = TxState.IDLE
        tx_hash: Optional[str] = None

        def enter(next_state: TxState) -> None:
            nonlocal state
            state = next_state
            log.debug("Transaction state", extra={"state": state.value})
            if self._on_state is None:
                return
            try:
                self._on_state(state, dict(context))
            except Exception as e:
                log.error(
                    "State observer failed",
                    extra={"state": state.value, "error": str(e), "traceback": traceback.format_exc()},
                )

        try:
            descriptor = binding.get_method(method)
            if descriptor.kind is MethodKind.CONSTRUCTOR:
                raise MethodNotFoundError(method, address=binding.address)
            if options.value and not descriptor.is_payable:
                raise InvalidArgumentsError(method, f"{method} is not payable; value must be 0")

            session = binding.session
            if not session.is_connected:
                raise ProviderUnavailableError("Wallet session is not connected")

            enter(TxState.VALIDATING_NETWORK)
            chain_id = await session.current_chain_id()
            if chain_id != binding.expected_chain_id:
                raise ChainMismatchError(expected=binding.expected_chain_id, actual=chain_id)

            # Account is read after the chain check; it may have changed while suspended
            sender = session.account_address
            if not sender:
                raise ProviderUnavailableError("Wallet account disconnected")

            call_args = args
            if options.recipient is not None:
                recipient = resolve_recipient(
                    session,
                    options.recipient,
                    options.recipient_address,
                    validate=options.validate_recipient,
                )
                if options.recipient_position > len(args):
                    raise InvalidRecipientError(
                        f"position {options.recipient_position} is past the end of the arguments",
                        address=recipient,
                    )
                call_args = args[: options.recipient_position] + [recipient] + args[options.recipient_position :]
                context["recipient"] = recipient

            try:
                calldata = encode_call(descriptor, call_args)
            except AbiCodecError as e:
                raise InvalidArgumentsError(method, str(e)) from e

            tx: Dict[str, Any] = {
                "from": sender,
                "to": binding.address,
                "data": calldata,
                "value": hex(options.value),
            }

            enter(TxState.ESTIMATING_GAS)
            bound = options.gas_limit or self.settings.default_gas_limit
            gas_limit = await self._resolve_gas_limit(session, tx, bound, log)
            context["gas_limit"] = gas_limit

            enter(TxState.SUBMITTING)
            try:
                tx_hash = await session.provider.request("eth_sendTransaction", [{**tx, "gas": hex(gas_limit)}])
            except Exception as e:
                raise from_provider_error(e) from e
            context["tx_hash"] = tx_hash

            enter(TxState.PENDING)
            receipt = await self._wait_for_receipt(session, tx_hash, options.receipt_timeout)
            if _to_int(receipt.get("status", 0)) != 1:
                raise CallRevertedError("Transaction reverted on-chain", tx_hash=tx_hash)

            enter(TxState.CONFIRMED)
            log.info("Transaction confirmed", extra={"tx_hash": tx_hash, "gas_limit": gas_limit})
            return Confirmed(receipt=receipt, tx_hash=tx_hash, gas_limit=gas_limit)

        except WalletBridgeError as e:
            failed_in = state
            enter(TxState.FAILED)
            if isinstance(e, ChainMismatchError):
                log.warning("Chain mismatch", extra=e.details)
            else:
                log.info("Transaction failed", extra={"code": e.code, "state": failed_in.value})
            return e.to_failed(tx_hash=tx_hash, state=failed_in)
        except Exception as e:
            failed_in = state
            enter(TxState.FAILED)
            log.error(
                "Unexpected error while sending transaction",
                extra={"error": str(e), "traceback": traceback.format_exc()},
            )
            return Failed(
                kind=FailureKind.UNKNOWN,
                reason=str(e) or e.__class__.__name__,
                tx_hash=tx_hash,
                details={"exception": e.__class__.__name__, "state": failed_in.value},
            )

    async def _resolve_gas_limit(
        self,
        session: WalletSession,
        tx: Dict[str, Any],
        bound: int,
        log: LogContext,
    ) -> int:
        """Estimate gas with the safety margin, capped at ``bound``; fall back to ``bound``."""
        try:
            estimate = _to_int(await session.provider.request("eth_estimateGas", [tx]))
        except Exception as e:
            error = GasEstimationFailedError(
                from_provider_error(e).message,
                details={"fallback_gas_limit": bound},
            )
            log.warning(
                "Gas estimation failed, using gas bound",
                extra={"error": error.message, "code": error.code, **error.details},
            )
            return bound

        return min(int(estimate * self.settings.gas_buffer), bound)

    async def _wait_for_receipt(
        self,
        session: WalletSession,
        tx_hash: str,
        timeout: Optional[float],
    ) -> Dict[str, Any]:
        provider = session.provider

        async def poll() -> Dict[str, Any]:
            while True:
                receipt = await retry_async(
                    lambda: provider.request("eth_getTransactionReceipt", [tx_hash]),
                    self._retry,
                )
                if receipt:
                    return receipt
                await asyncio.sleep(self.settings.poll_interval)

        try:
            if timeout is None:
                return await poll()
            return await asyncio.wait_for(poll(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ReceiptTimeoutError(tx_hash, timeout) from None
        except WalletBridgeError:
            raise
        except Exception as e:
            raise from_provider_error(e, tx_hash=tx_hash) from e


async def send(
    binding: ContractBinding,
    method: str,
    args: Optional[Sequence[Any]] = None,
    options: Optional[SendOptions] = None,
) -> TransactionResult:
    """Module-level shortcut for ``TransactionExecutor().send(...)``."""
    return await TransactionExecutor().send(binding, method, args, options)
