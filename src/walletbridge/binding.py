"""Contract binding.

A ContractBinding ties a deployed contract (address + expected network)
to its normalized MethodTable and the shared WalletSession. Binding is
pure composition; it performs no network I/O.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional

from walletbridge.errors import MethodNotFoundError
from walletbridge.models import MethodDescriptor, MethodTable
from walletbridge.session import WalletSession, normalize_chain_id


class ContractBinding:
    """
    Callable view of one deployed contract.

    The session is shared by reference; the binding never copies the
    account or chain id out of it.
    """

    def __init__(
        self,
        address: str,
        methods: MethodTable,
        session: WalletSession,
        expected_chain_id: str,
    ) -> None:
        self.address = address
        self.methods = methods
        self.session = session
        self.expected_chain_id = normalize_chain_id(expected_chain_id)
        self._send_lock: Optional[asyncio.Lock] = None

    def __repr__(self) -> str:
        return (
            f"ContractBinding(address={self.address!r}, "
            f"chain={self.expected_chain_id!r}, methods={len(self.methods)})"
        )

    def get_method(self, name: str) -> MethodDescriptor:
        """
        Look up a method descriptor by name.

        Raises:
            MethodNotFoundError: If the name is not in the method table
        """
        try:
            return self.methods[name]
        except KeyError:
            raise MethodNotFoundError(name, address=self.address) from None

    def has_method(self, name: str) -> bool:
        return name in self.methods

    def read_methods(self) -> List[MethodDescriptor]:
        return [d for d in self.methods.functions() if d.is_read_only]

    def write_methods(self) -> List[MethodDescriptor]:
        return [d for d in self.methods.functions() if not d.is_read_only]

    @property
    def send_lock(self) -> asyncio.Lock:
        """Per-binding lock serializing transaction state machines."""
        # Created lazily so the binding can be built outside a running loop
        if self._send_lock is None:
            self._send_lock = asyncio.Lock()
        return self._send_lock


def bind(
    address: str,
    methods: MethodTable,
    session: WalletSession,
    expected_chain_id: str,
) -> ContractBinding:
    """Combine a contract address, method table and session into a binding."""
    return ContractBinding(address, methods, session, expected_chain_id)
