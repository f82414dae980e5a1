"""
Wallet and contract interaction exceptions.

These exceptions are raised while talking to a wallet provider:
connecting, reading the active network, calling read-only methods and
submitting transactions. Each one carries the FailureKind that the
transaction executor reports in a ``Failed`` outcome.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from walletbridge.abi.codec import decode_revert_reason
from walletbridge.constants import (
    CHAIN_DISCONNECTED_CODE,
    DISCONNECTED_CODE,
    EXECUTION_REVERTED_CODE,
    USER_REJECTED_CODE,
)
from walletbridge.errors.base import WalletBridgeError
from walletbridge.models import FailureKind


class ProviderRpcError(Exception):
    """
    Raw error reported by a wallet provider (EIP-1193 shape).

    Providers raise this; the client translates it with
    ``from_provider_error()`` before it reaches callers.

    Attributes:
        code: Numeric EIP-1193 / JSON-RPC error code
        message: Provider-supplied message
        data: Optional payload (revert data for execution errors)
    """

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"{message} (code {code})")
        self.code = code
        self.message = message
        self.data = data


class ProviderUnavailableError(WalletBridgeError):
    """
    Raised when no wallet provider is present or it is disconnected.

    Example:
        >>> raise ProviderUnavailableError("No wallet provider found")
    """

    kind = FailureKind.PROVIDER_UNAVAILABLE

    def __init__(
        self,
        message: str = "No wallet provider available; install or connect a wallet",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="PROVIDER_UNAVAILABLE", details=details)


class UserRejectedError(WalletBridgeError):
    """Raised when the user declines a connection or signing request."""

    kind = FailureKind.USER_REJECTED

    def __init__(
        self,
        message: str = "User rejected the request",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="USER_REJECTED", details=details)


class ChainMismatchError(WalletBridgeError):
    """
    Raised when the provider's active network differs from the
    network the contract is deployed on.

    Example:
        >>> raise ChainMismatchError(expected="80002", actual="5")
    """

    kind = FailureKind.CHAIN_MISMATCH

    def __init__(
        self,
        *,
        expected: str,
        actual: Optional[str],
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        details["expected_chain_id"] = expected
        details["actual_chain_id"] = actual
        super().__init__(
            f"Wallet is on chain {actual}, contract is deployed on chain {expected}",
            code="CHAIN_MISMATCH",
            details=details,
        )
        self.expected = expected
        self.actual = actual


class MethodNotFoundError(WalletBridgeError):
    """Raised when a method name is absent from the method table."""

    kind = FailureKind.METHOD_NOT_FOUND

    def __init__(self, method: str, *, address: Optional[str] = None) -> None:
        details: Dict[str, Any] = {"method": method}
        if address:
            details["address"] = address
        super().__init__(
            f"Method {method} not found in contract ABI",
            code="METHOD_NOT_FOUND",
            details=details,
        )
        self.method = method


class NotReadableError(WalletBridgeError):
    """Raised when a state-changing method is invoked through the read path."""

    kind = FailureKind.NOT_READABLE

    def __init__(self, method: str, mutability: str) -> None:
        super().__init__(
            f"Method {method} is {mutability}; send a transaction instead of calling it",
            code="NOT_READABLE",
            details={"method": method, "mutability": mutability},
        )
        self.method = method
        self.mutability = mutability


class GasEstimationFailedError(WalletBridgeError):
    """
    Raised by gas estimation. The transaction executor recovers from it
    by falling back to the default gas bound; it is never surfaced.
    """

    kind = FailureKind.GAS_ESTIMATION_FAILED

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="GAS_ESTIMATION_FAILED", details=details)


class CallRevertedError(WalletBridgeError):
    """
    Raised when the contract rejects a call or a mined transaction reverts.

    Example:
        >>> raise CallRevertedError("ERC20: insufficient balance")
    """

    kind = FailureKind.CALL_REVERTED

    def __init__(
        self,
        message: str = "execution reverted",
        *,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="CALL_REVERTED", tx_hash=tx_hash, details=details)


class TransactionInFlightError(WalletBridgeError):
    """Raised when a binding already has a transaction running."""

    kind = FailureKind.IN_FLIGHT

    def __init__(self, address: str) -> None:
        super().__init__(
            f"A transaction for {address} is already in flight",
            code="TRANSACTION_IN_FLIGHT",
            details={"address": address},
        )


class ReceiptTimeoutError(WalletBridgeError):
    """Raised when a caller-supplied receipt timeout elapses while pending."""

    kind = FailureKind.TIMEOUT

    def __init__(self, tx_hash: str, timeout: float) -> None:
        super().__init__(
            f"Transaction not confirmed within {timeout}s; it may still be mined",
            code="RECEIPT_TIMEOUT",
            tx_hash=tx_hash,
            details={"timeout_seconds": timeout},
        )
        self.timeout = timeout


class InvalidRecipientError(WalletBridgeError):
    """Raised when a recipient cannot be resolved or fails strict validation."""

    kind = FailureKind.UNKNOWN

    def __init__(self, reason: str, *, address: Optional[str] = None) -> None:
        details: Dict[str, Any] = {"reason": reason}
        if address is not None:
            details["address"] = address
        super().__init__(f"Invalid recipient: {reason}", code="INVALID_RECIPIENT", details=details)
        self.address = address


class InvalidArgumentsError(WalletBridgeError):
    """Raised when arguments cannot be encoded for, or results decoded from, a method."""

    kind = FailureKind.UNKNOWN

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(
            reason,
            code="INVALID_ARGUMENTS",
            details={"method": method},
        )
        self.method = method


class UnknownProviderError(WalletBridgeError):
    """Catch-all for provider failures, keeping the raw detail for diagnosis."""

    kind = FailureKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="UNKNOWN", tx_hash=tx_hash, details=details)


def _is_revert(code: Optional[int], message: str) -> bool:
    if code == EXECUTION_REVERTED_CODE:
        return True
    return "revert" in message.lower()


def from_provider_error(exc: BaseException, *, tx_hash: Optional[str] = None) -> WalletBridgeError:
    """Translate an exception raised at the provider boundary into a typed error.

    Args:
        exc: Exception raised by a WalletProvider call
        tx_hash: Transaction hash to attach, when known

    Returns:
        The matching WalletBridgeError subclass instance
    """
    if isinstance(exc, WalletBridgeError):
        return exc

    if isinstance(exc, ProviderRpcError):
        details: Dict[str, Any] = {"provider_code": exc.code}
        if exc.data is not None:
            details["data"] = exc.data
        if exc.code == USER_REJECTED_CODE:
            return UserRejectedError(exc.message, details=details)
        if exc.code in (DISCONNECTED_CODE, CHAIN_DISCONNECTED_CODE):
            return ProviderUnavailableError(exc.message, details=details)
        if _is_revert(exc.code, exc.message):
            reason = None
            if isinstance(exc.data, str):
                reason = decode_revert_reason(exc.data)
            return CallRevertedError(reason or exc.message, tx_hash=tx_hash, details=details)
        return UnknownProviderError(exc.message, tx_hash=tx_hash, details=details)

    if isinstance(exc, ConnectionError):
        return ProviderUnavailableError(str(exc) or "Provider connection failed")

    return UnknownProviderError(
        str(exc) or exc.__class__.__name__,
        tx_hash=tx_hash,
        details={"exception": exc.__class__.__name__},
    )
