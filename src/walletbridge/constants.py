"""Constants for walletbridge.

This module defines the constant values shared across the client,
including ABI encoding constants, gas parameters, receipt polling
settings and the wallet provider error codes.
"""

# ABI Encoding Constants
ABI_SELECTOR_LENGTH = 4
REVERT_SELECTOR = "0x08c379a0"
UNKNOWN_TYPE = "unknown"

# Gas Constants
DEFAULT_GAS_LIMIT = 300_000  # Upper bound when the caller supplies none
GAS_ESTIMATION_BUFFER = 1.2
MAX_FEE_MULTIPLIER = 2
PRIORITY_FEE_GWEI = "1.5"

# Receipt polling
RECEIPT_POLL_INTERVAL_SECONDS = 2.0
PROVIDER_TIMEOUT_SECONDS = 30
NETWORK_WATCH_INTERVAL_SECONDS = 4.0

# EIP-1193 provider error codes
USER_REJECTED_CODE = 4001
UNAUTHORIZED_CODE = 4100
DISCONNECTED_CODE = 4900
CHAIN_DISCONNECTED_CODE = 4901

# JSON-RPC error codes
EXECUTION_REVERTED_CODE = 3

# Address regex pattern: 0x followed by 40 hex characters
ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

__all__ = [
    "ABI_SELECTOR_LENGTH",
    "REVERT_SELECTOR",
    "UNKNOWN_TYPE",
    "DEFAULT_GAS_LIMIT",
    "GAS_ESTIMATION_BUFFER",
    "MAX_FEE_MULTIPLIER",
    "PRIORITY_FEE_GWEI",
    "RECEIPT_POLL_INTERVAL_SECONDS",
    "PROVIDER_TIMEOUT_SECONDS",
    "NETWORK_WATCH_INTERVAL_SECONDS",
    # EIP-1193
    "USER_REJECTED_CODE",
    "UNAUTHORIZED_CODE",
    "DISCONNECTED_CODE",
    "CHAIN_DISCONNECTED_CODE",
    # JSON-RPC
    "EXECUTION_REVERTED_CODE",
    "ADDRESS_PATTERN",
    "ZERO_ADDRESS",
]
