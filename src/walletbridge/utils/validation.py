"""
Validation utilities for walletbridge.

Provides input validation for values the client forwards to a wallet
provider. All validation functions raise InvalidRecipientError (a
WalletBridgeError) on failure.
"""

from __future__ import annotations

import re

from web3 import Web3

from walletbridge.constants import ADDRESS_PATTERN, ZERO_ADDRESS
from walletbridge.errors import InvalidRecipientError


def validate_address(address: str, field_name: str = "address") -> str:
    """
    Validate Ethereum address format.

    Mixed-case addresses must carry a valid EIP-55 checksum.

    Args:
        address: Address to validate
        field_name: Field name for error messages

    Returns:
        The address, unchanged

    Raises:
        InvalidRecipientError: If address is invalid
    """
    if not address or not isinstance(address, str):
        raise InvalidRecipientError(f"{field_name} is required", address=address)

    if not re.match(ADDRESS_PATTERN, address):
        raise InvalidRecipientError(
            f"{field_name} must be 0x followed by 40 hex characters",
            address=address,
        )

    # Single-case addresses carry no checksum; mixed case must be valid EIP-55
    body = address[2:]
    if body != body.lower() and body != body.upper() and not Web3.is_checksum_address(address):
        raise InvalidRecipientError(f"{field_name} has an invalid checksum", address=address)

    if address.lower() == ZERO_ADDRESS:
        raise InvalidRecipientError(f"{field_name} cannot be the zero address", address=address)

    return address
