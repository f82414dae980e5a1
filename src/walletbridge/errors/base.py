"""
Base exception class for walletbridge.

All client exceptions inherit from WalletBridgeError, which carries a
machine-readable code, a FailureKind for branching, an optional
transaction hash, and additional context details. Transaction sends
never raise; ``to_failed`` turns an error into the ``Failed`` outcome
they return instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from walletbridge.models import Failed, FailureKind, TxState


class WalletBridgeError(Exception):
    """
    Base exception for all contract interaction errors.

    Subclasses set ``kind`` so a caught error maps onto exactly one
    FailureKind without inspecting its code string.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code (e.g., "CHAIN_MISMATCH").
        kind: FailureKind used when the error becomes a Failed outcome.
        tx_hash: Optional transaction hash related to the error.
        details: Optional dictionary with additional error context.

    Example:
        >>> error = WalletBridgeError("Chain mismatch", code="CHAIN_MISMATCH")
        >>> error.to_failed(state=TxState.VALIDATING_NETWORK).kind
        <FailureKind.UNKNOWN: 'UNKNOWN'>
    """

    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        code: str = "WALLETBRIDGE_ERROR",
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize WalletBridgeError.

        Args:
            message: Human-readable error description
            code: Machine-readable error code
            tx_hash: Hash of the transaction involved, if it was submitted
            details: Additional context, copied into Failed.details
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.tx_hash = tx_hash
        self.details = details or {}

    def __str__(self) -> str:
        """Return ``[CODE] message`` with a shortened tx hash when known."""
        text = f"[{self.code}] {self.message}"
        if self.tx_hash:
            text += f" (tx: {self.tx_hash[:10]}...)"
        return text

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"kind={self.kind.value!r}, "
            f"tx_hash={self.tx_hash!r}, "
            f"details={self.details!r})"
        )

    def to_failed(
        self,
        *,
        tx_hash: Optional[str] = None,
        state: Optional[TxState] = None,
    ) -> Failed:
        """
        Convert the error into the Failed outcome of a transaction.

        Args:
            tx_hash: Hash to report when the error itself carries none
            state: State the transaction was in when it failed

        Returns:
            Failed with this error's kind, message and details.
        """
        details = dict(self.details)
        if state is not None:
            details["state"] = state.value
        return Failed(
            kind=self.kind,
            reason=self.message,
            tx_hash=self.tx_hash or tx_hash,
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to a dictionary for JSON serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "tx_hash": self.tx_hash,
            "details": self.details,
        }
