from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from eth_utils import function_signature_to_4byte_selector

from .constants import UNKNOWN_TYPE

__all__ = [
    "FailureKind",
    "MethodKind",
    "Mutability",
    "TxState",
    "RecipientMode",
    "AbiParam",
    "MethodDescriptor",
    "MethodTable",
    "TransactionRequest",
    "Confirmed",
    "Failed",
    "TransactionResult",
]


class FailureKind(str, Enum):
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    USER_REJECTED = "USER_REJECTED"
    CHAIN_MISMATCH = "CHAIN_MISMATCH"
    METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
    NOT_READABLE = "NOT_READABLE"
    GAS_ESTIMATION_FAILED = "GAS_ESTIMATION_FAILED"
    CALL_REVERTED = "CALL_REVERTED"
    IN_FLIGHT = "IN_FLIGHT"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class MethodKind(str, Enum):
    CONSTRUCTOR = "constructor"
    FUNCTION = "function"


class Mutability(str, Enum):
    PURE = "pure"
    VIEW = "view"
    NONPAYABLE = "nonpayable"
    PAYABLE = "payable"


class RecipientMode(str, Enum):
    """Who receives a transfer-like call: the connected account or an explicit address."""

    SELF = "self"
    OTHER = "other"


class TxState(str, Enum):
    """States of a single TransactionExecutor invocation."""

    IDLE = "idle"
    VALIDATING_NETWORK = "validating_network"
    ESTIMATING_GAS = "estimating_gas"
    SUBMITTING = "submitting"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class AbiParam:
    """A single method input or output.

    Attributes:
        name: Argument name (may be empty)
        type: Canonical Solidity type (``uint256``, ``address[]``, ``tuple``)
            or ``unknown`` when the source type could not be resolved
        components: Member params when ``type`` is a tuple (or tuple array)
    """

    name: str
    type: str
    components: Tuple["AbiParam", ...] = ()

    @property
    def is_known(self) -> bool:
        if self.type == UNKNOWN_TYPE:
            return False
        return all(c.is_known for c in self.components)

    @property
    def canonical_type(self) -> str:
        """Type string as used in signatures and by eth_abi, e.g. ``(uint256,address)[]``."""
        if self.type.startswith("tuple"):
            inner = ",".join(c.canonical_type for c in self.components)
            return f"({inner}){self.type[len('tuple'):]}"
        return self.type


@dataclass(frozen=True)
class MethodDescriptor:
    """A normalized constructor or function.

    Attributes:
        name: Key in the MethodTable; overloads carry a numeric suffix
            (``safeTransferFrom0``)
        raw_name: Solidity function name used for the signature and
            selector; empty means same as ``name``
    """

    name: str
    kind: MethodKind
    inputs: Tuple[AbiParam, ...]
    outputs: Tuple[AbiParam, ...]
    mutability: Mutability
    is_constant: bool
    raw_name: str = ""

    @property
    def is_read_only(self) -> bool:
        return self.mutability in (Mutability.PURE, Mutability.VIEW)

    @property
    def is_payable(self) -> bool:
        return self.mutability is Mutability.PAYABLE

    @property
    def input_types(self) -> List[str]:
        return [p.canonical_type for p in self.inputs]

    @property
    def output_types(self) -> List[str]:
        return [p.canonical_type for p in self.outputs]

    @property
    def signature(self) -> str:
        return f"{self.raw_name or self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> str:
        """0x-prefixed 4-byte function selector."""
        return "0x" + function_signature_to_4byte_selector(self.signature).hex()


class MethodTable(Mapping):
    """
    Read-only, ordered mapping of method name to MethodDescriptor.

    Built once by ``normalize()``; iteration order is the constructor
    (if any) followed by methods in source order.
    """

    __slots__ = ("_entries",)

    def __init__(self, descriptors: Optional[List[MethodDescriptor]] = None) -> None:
        entries: Dict[str, MethodDescriptor] = {}
        for descriptor in descriptors or []:
            if descriptor.name in entries:
                raise ValueError(f"Duplicate method name in table: {descriptor.name}")
            entries[descriptor.name] = descriptor
        self._entries = entries

    def __getitem__(self, name: str) -> MethodDescriptor:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MethodTable):
            return list(self._entries.items()) == list(other._entries.items())
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._entries.items()))

    def __repr__(self) -> str:
        return f"MethodTable({list(self._entries)!r})"

    @property
    def constructor(self) -> Optional[MethodDescriptor]:
        for descriptor in self._entries.values():
            if descriptor.kind is MethodKind.CONSTRUCTOR:
                return descriptor
        return None

    def functions(self) -> List[MethodDescriptor]:
        return [d for d in self._entries.values() if d.kind is MethodKind.FUNCTION]


@dataclass
class TransactionRequest:
    method: str
    args: List[Any] = field(default_factory=list)
    gas_limit: Optional[int] = None


@dataclass(frozen=True)
class Confirmed:
    """Terminal success: the transaction was included with status 1."""

    receipt: Dict[str, Any]
    tx_hash: str
    gas_limit: int

    ok = True


@dataclass(frozen=True)
class Failed:
    """Terminal failure with a machine-readable kind.

    Attributes:
        kind: Failure category callers branch on
        reason: Human-readable description (provider message where available)
        tx_hash: Set when the failure happened after submission
        details: Extra context (expected/actual chain, raw provider error, ...)
    """

    kind: FailureKind
    reason: str
    tx_hash: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    ok = False


TransactionResult = Union[Confirmed, Failed]
