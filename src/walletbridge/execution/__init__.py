"""
Contract method execution: read-only calls and state-changing transactions.
"""

from walletbridge.execution.call import CallExecutor, call
from walletbridge.execution.transaction import (
    SendOptions,
    StateObserver,
    TransactionExecutor,
    resolve_recipient,
    send,
)

__all__ = [
    "CallExecutor",
    "call",
    "TransactionExecutor",
    "SendOptions",
    "StateObserver",
    "resolve_recipient",
    "send",
]
