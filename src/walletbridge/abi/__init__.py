"""
ABI handling: normalization into a MethodTable, calldata encoding and
result decoding, and loading contract details from disk.
"""

from walletbridge.abi.codec import (
    AbiCodecError,
    decode_result,
    decode_revert_reason,
    encode_call,
)
from walletbridge.abi.loader import load_address_book, load_raw_abi, resolve_address
from walletbridge.abi.normalizer import CONSTRUCTOR_NAME, RawAbi, normalize

__all__ = [
    "normalize",
    "RawAbi",
    "CONSTRUCTOR_NAME",
    "encode_call",
    "decode_result",
    "decode_revert_reason",
    "AbiCodecError",
    "load_raw_abi",
    "load_address_book",
    "resolve_address",
]
