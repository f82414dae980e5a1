"""
Exception hierarchy for walletbridge.

Every exception derives from WalletBridgeError and carries a FailureKind,
so callers can branch on ``error.kind`` instead of matching messages.
"""

from walletbridge.errors.base import WalletBridgeError
from walletbridge.errors.wallet import (
    CallRevertedError,
    ChainMismatchError,
    GasEstimationFailedError,
    InvalidArgumentsError,
    InvalidRecipientError,
    MethodNotFoundError,
    NotReadableError,
    ProviderRpcError,
    ProviderUnavailableError,
    ReceiptTimeoutError,
    TransactionInFlightError,
    UnknownProviderError,
    UserRejectedError,
    from_provider_error,
)

__all__ = [
    "WalletBridgeError",
    "ProviderRpcError",
    "ProviderUnavailableError",
    "UserRejectedError",
    "ChainMismatchError",
    "MethodNotFoundError",
    "NotReadableError",
    "GasEstimationFailedError",
    "CallRevertedError",
    "TransactionInFlightError",
    "ReceiptTimeoutError",
    "InvalidRecipientError",
    "InvalidArgumentsError",
    "UnknownProviderError",
    "from_provider_error",
]
