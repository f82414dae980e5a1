"""
ABI normalization.

Turns a raw contract description into a canonical MethodTable.

Two input shapes are accepted:

- The go-ethereum marshalled ABI, a mapping with ``Constructor`` and
  ``Methods`` entries whose argument types are encoded as
  ``{"T": <tag>, "Size": n, "Elem": {...}, "TupleElems": [...]}``.
  This is what the contract backend serves.
- A standard Solidity JSON ABI list, as emitted by solc/Hardhat/Foundry.

Normalization is pure: the same input always yields an equal table,
with the constructor first and methods in source order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from walletbridge.constants import UNKNOWN_TYPE
from walletbridge.models import (
    AbiParam,
    MethodDescriptor,
    MethodKind,
    MethodTable,
    Mutability,
)

RawAbi = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]

CONSTRUCTOR_NAME = "constructor"

# go-ethereum abi type tags (accounts/abi/type.go)
INT_TY = 0
UINT_TY = 1
BOOL_TY = 2
STRING_TY = 3
SLICE_TY = 4
ARRAY_TY = 5
TUPLE_TY = 6
ADDRESS_TY = 7
FIXED_BYTES_TY = 8
BYTES_TY = 9
HASH_TY = 10
FIXED_POINT_TY = 11
FUNCTION_TY = 12

_SIMPLE_TAGS = {
    BOOL_TY: "bool",
    STRING_TY: "string",
    ADDRESS_TY: "address",
    BYTES_TY: "bytes",
    HASH_TY: "bytes32",
    FUNCTION_TY: "function",
}

_TYPE_ALIASES = {
    "uint": "uint256",
    "int": "int256",
    "byte": "bytes1",
}


def _resolve_tagged(raw_type: Optional[Mapping[str, Any]]) -> Tuple[str, Tuple[AbiParam, ...]]:
    """Resolve a tagged go-ethereum type to (canonical type, tuple components)."""
    if not isinstance(raw_type, Mapping):
        return UNKNOWN_TYPE, ()

    tag = raw_type.get("T")
    size = raw_type.get("Size") or 0

    if tag in _SIMPLE_TAGS:
        return _SIMPLE_TAGS[tag], ()
    if tag == INT_TY:
        return f"int{size or 256}", ()
    if tag == UINT_TY:
        return f"uint{size or 256}", ()
    if tag == FIXED_BYTES_TY:
        return (f"bytes{size}", ()) if 1 <= size <= 32 else (UNKNOWN_TYPE, ())
    if tag in (SLICE_TY, ARRAY_TY):
        elem, components = _resolve_tagged(raw_type.get("Elem"))
        if elem == UNKNOWN_TYPE:
            return UNKNOWN_TYPE, ()
        suffix = "[]" if tag == SLICE_TY else f"[{size}]"
        return elem + suffix, components
    if tag == TUPLE_TY:
        elems = raw_type.get("TupleElems") or []
        names = raw_type.get("TupleRawNames") or []
        components = []
        for i, elem in enumerate(elems):
            elem_type, elem_components = _resolve_tagged(elem)
            name = names[i] if i < len(names) else ""
            components.append(AbiParam(name=name, type=elem_type, components=elem_components))
        return "tuple", tuple(components)

    # FIXED_POINT_TY has no canonical encoding; anything else is an unknown tag
    return UNKNOWN_TYPE, ()


def _tagged_params(raw_args: Optional[Sequence[Mapping[str, Any]]]) -> Tuple[AbiParam, ...]:
    params = []
    for arg in raw_args or []:
        type_str, components = _resolve_tagged(arg.get("Type"))
        params.append(AbiParam(name=arg.get("Name") or "", type=type_str, components=components))
    return tuple(params)


def _json_params(raw_args: Optional[Sequence[Mapping[str, Any]]]) -> Tuple[AbiParam, ...]:
    params = []
    for arg in raw_args or []:
        type_str = arg.get("type") or UNKNOWN_TYPE
        base, bracket, rest = type_str.partition("[")
        type_str = _TYPE_ALIASES.get(base, base) + bracket + rest
        components = _json_params(arg.get("components")) if type_str.startswith("tuple") else ()
        params.append(AbiParam(name=arg.get("name") or "", type=type_str, components=components))
    return tuple(params)


def _mutability(state_mutability: Optional[str], constant: bool, payable: bool) -> Mutability:
    if state_mutability:
        try:
            return Mutability(state_mutability)
        except ValueError:
            pass
    # Legacy ABIs only carry the constant/payable flags
    if payable:
        return Mutability.PAYABLE
    if constant:
        return Mutability.VIEW
    return Mutability.NONPAYABLE


def _descriptor(
    name: str,
    kind: MethodKind,
    inputs: Tuple[AbiParam, ...],
    outputs: Tuple[AbiParam, ...],
    state_mutability: Optional[str],
    constant: bool,
    payable: bool,
    raw_name: str = "",
) -> MethodDescriptor:
    mutability = _mutability(state_mutability, constant, payable)
    return MethodDescriptor(
        name=name,
        kind=kind,
        inputs=inputs,
        outputs=outputs,
        mutability=mutability,
        is_constant=bool(constant) or mutability in (Mutability.PURE, Mutability.VIEW),
        raw_name=raw_name,
    )


def _normalize_tagged(raw_abi: Mapping[str, Any]) -> List[MethodDescriptor]:
    descriptors: List[MethodDescriptor] = []

    constructor = raw_abi.get("Constructor")
    # go-ethereum emits a zero-valued Method when the contract has no constructor
    if isinstance(constructor, Mapping) and (
        constructor.get("Inputs") or constructor.get("StateMutability")
    ):
        descriptors.append(
            _descriptor(
                CONSTRUCTOR_NAME,
                MethodKind.CONSTRUCTOR,
                _tagged_params(constructor.get("Inputs")),
                (),
                constructor.get("StateMutability"),
                False,
                bool(constructor.get("Payable")),
            )
        )

    methods: Mapping[str, Any] = raw_abi.get("Methods") or {}
    for key, method in methods.items():
        name = method.get("Name") or key
        descriptors.append(
            _descriptor(
                name,
                MethodKind.FUNCTION,
                _tagged_params(method.get("Inputs")),
                _tagged_params(method.get("Outputs")),
                method.get("StateMutability"),
                bool(method.get("Constant")),
                bool(method.get("Payable")),
                # Overloads are keyed foo, foo0, ...; RawName is the Solidity name
                method.get("RawName") or name,
            )
        )
    return descriptors


def _normalize_json(raw_abi: Sequence[Mapping[str, Any]]) -> List[MethodDescriptor]:
    constructor: Optional[MethodDescriptor] = None
    functions: List[MethodDescriptor] = []
    seen: Dict[str, int] = {}

    for entry in raw_abi:
        entry_type = entry.get("type", "function")
        if entry_type == "constructor":
            constructor = _descriptor(
                CONSTRUCTOR_NAME,
                MethodKind.CONSTRUCTOR,
                _json_params(entry.get("inputs")),
                (),
                entry.get("stateMutability"),
                False,
                bool(entry.get("payable")),
            )
        elif entry_type == "function":
            raw_name = entry.get("name") or ""
            name = raw_name
            # Overloads get go-ethereum style suffixes: foo, foo0, foo1
            if name in seen:
                suffix = seen[name]
                seen[name] += 1
                name = f"{name}{suffix}"
            else:
                seen[name] = 0
            functions.append(
                _descriptor(
                    name,
                    MethodKind.FUNCTION,
                    _json_params(entry.get("inputs")),
                    _json_params(entry.get("outputs")),
                    entry.get("stateMutability"),
                    bool(entry.get("constant")),
                    bool(entry.get("payable")),
                    raw_name,
                )
            )

    return ([constructor] if constructor else []) + functions


def normalize(raw_abi: RawAbi) -> MethodTable:
    """
    Normalize a raw ABI into a MethodTable.

    Args:
        raw_abi: go-ethereum marshalled ABI (mapping) or Solidity JSON ABI (list)

    Returns:
        MethodTable with the constructor (if present) first, followed by
        methods in source order. Types that cannot be resolved become
        ``unknown`` instead of failing the whole table.

    Raises:
        TypeError: If raw_abi is neither a mapping nor a list
    """
    if isinstance(raw_abi, Mapping):
        return MethodTable(_normalize_tagged(raw_abi))
    if isinstance(raw_abi, (list, tuple)):
        return MethodTable(_normalize_json(raw_abi))
    raise TypeError(f"Unsupported ABI shape: {type(raw_abi).__name__}")
