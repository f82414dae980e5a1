"""
ABI codec helpers.

Encodes calldata for a MethodDescriptor and decodes return data and
Solidity revert payloads. Encoding is delegated to eth-abi; selectors
come from eth-utils (Keccak-256, not NIST SHA3-256).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from walletbridge.constants import ABI_SELECTOR_LENGTH, REVERT_SELECTOR

if TYPE_CHECKING:
    from walletbridge.models import MethodDescriptor


class AbiCodecError(ValueError):
    """Raised when arguments or return data do not match a method's types."""


def _hex_to_bytes(data: str) -> bytes:
    return bytes.fromhex(data[2:] if data.startswith("0x") else data)


def encode_call(descriptor: "MethodDescriptor", args: Sequence[Any]) -> str:
    """
    ABI-encode a function call.

    Args:
        descriptor: Method to call
        args: Positional arguments, one per declared input

    Returns:
        0x-prefixed hex encoded calldata (selector + arguments)

    Raises:
        AbiCodecError: If an input type is unknown, the argument count is
            wrong, or a value cannot be encoded
    """
    unresolved = [p.name or str(i) for i, p in enumerate(descriptor.inputs) if not p.is_known]
    if unresolved:
        raise AbiCodecError(
            f"Cannot encode {descriptor.name}: unresolved input types for {', '.join(unresolved)}"
        )
    if len(args) != len(descriptor.inputs):
        raise AbiCodecError(
            f"{descriptor.name} expects {len(descriptor.inputs)} arguments, got {len(args)}"
        )

    try:
        encoded_args = encode(descriptor.input_types, list(args)) if args else b""
    except (EncodingError, TypeError, ValueError) as e:
        raise AbiCodecError(f"Cannot encode arguments for {descriptor.signature}: {e}") from e

    return descriptor.selector + encoded_args.hex()


def decode_result(descriptor: "MethodDescriptor", data: Optional[str]) -> Any:
    """
    ABI-decode a call result.

    Returns:
        None when the method has no outputs or the node returned ``0x``,
        the bare value for a single output, otherwise a tuple.
    """
    if not descriptor.outputs or data in (None, "", "0x"):
        return None
    if not all(p.is_known for p in descriptor.outputs):
        raise AbiCodecError(f"Cannot decode {descriptor.name}: unresolved output types")

    try:
        decoded = decode(descriptor.output_types, _hex_to_bytes(data))
    except (DecodingError, ValueError) as e:
        raise AbiCodecError(f"Cannot decode result of {descriptor.signature}: {e}") from e

    if len(decoded) == 1:
        return decoded[0]
    return tuple(decoded)


def decode_revert_reason(raw: str) -> Optional[str]:
    """Decode a Solidity ``Error(string)`` revert payload.

    Args:
        raw: Hex-encoded error data string

    Returns:
        Decoded revert reason string, or None if the payload is not
        an ``Error(string)`` or cannot be decoded
    """
    if not isinstance(raw, str) or not raw.startswith(REVERT_SELECTOR):
        return None
    try:
        payload = _hex_to_bytes(raw)[ABI_SELECTOR_LENGTH:]
        (reason,) = decode(["string"], payload)
    except (DecodingError, ValueError):
        # ValueError: invalid hex string
        return None
    return reason
