"""
Shared fixtures for walletbridge tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from walletbridge.abi import normalize
from walletbridge.binding import ContractBinding, bind
from walletbridge.config import Settings
from walletbridge.errors import ProviderRpcError
from walletbridge.provider.base import CHAIN_CHANGED, ACCOUNTS_CHANGED, EventEmitter
from walletbridge.session import WalletSession


# =============================================================================
# Test Constants
# =============================================================================

SELF_ADDRESS = "0x" + "aa" * 20
OTHER_ADDRESS = "0x" + "bb" * 20
TOKEN_ADDRESS = "0x" + "cc" * 20

AMOY_CHAIN_ID = "80002"
GOERLI_CHAIN_ID = "5"

TX_HASH = "0x" + "ab" * 32


def _uint(size: int = 256) -> Dict[str, Any]:
    return {"T": 1, "Size": size}


def _address() -> Dict[str, Any]:
    return {"T": 7, "Size": 20}


# go-ethereum marshalled ABI of a small mintable token
TOKEN_ABI: Dict[str, Any] = {
    "Constructor": {
        "Name": "",
        "Inputs": [{"Name": "initialSupply", "Type": _uint()}],
        "Outputs": [],
        "StateMutability": "nonpayable",
        "Constant": False,
        "Payable": False,
    },
    "Methods": {
        "name": {
            "Name": "name",
            "Inputs": [],
            "Outputs": [{"Name": "", "Type": {"T": 3, "Size": 0}}],
            "StateMutability": "view",
            "Constant": True,
            "Payable": False,
        },
        "balanceOf": {
            "Name": "balanceOf",
            "Inputs": [{"Name": "account", "Type": _address()}],
            "Outputs": [{"Name": "", "Type": _uint()}],
            "StateMutability": "view",
            "Constant": True,
            "Payable": False,
        },
        "mint": {
            "Name": "mint",
            "Inputs": [
                {"Name": "to", "Type": _address()},
                {"Name": "amount", "Type": _uint()},
            ],
            "Outputs": [],
            "StateMutability": "nonpayable",
            "Constant": False,
            "Payable": False,
        },
        "transfer": {
            "Name": "transfer",
            "Inputs": [
                {"Name": "to", "Type": _address()},
                {"Name": "amount", "Type": _uint()},
            ],
            "Outputs": [{"Name": "", "Type": {"T": 2, "Size": 0}}],
            "StateMutability": "nonpayable",
            "Constant": False,
            "Payable": False,
        },
        "deposit": {
            "Name": "deposit",
            "Inputs": [],
            "Outputs": [],
            "StateMutability": "payable",
            "Constant": False,
            "Payable": True,
        },
    },
}


# =============================================================================
# Fake wallet provider
# =============================================================================


class FakeProvider(EventEmitter):
    """
    In-memory EIP-1193 provider.

    Records every request in ``calls`` as ``(method, params)``. Behaviour
    is configured through attributes; an Exception instance stored in a
    ``*_error`` attribute is raised by the matching method.
    """

    def __init__(
        self,
        *,
        accounts: Optional[List[str]] = None,
        chain_id: str = AMOY_CHAIN_ID,
    ) -> None:
        super().__init__()
        self.accounts = [SELF_ADDRESS] if accounts is None else accounts
        self.chain_id = chain_id
        self.calls: List[Tuple[str, Any]] = []

        self.connect_error: Optional[Exception] = None
        self.gas_estimate: int = 100_000
        self.estimate_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.call_result: str = "0x"
        self.call_error: Optional[Exception] = None
        self.receipt_status: int = 1
        self.pending_polls: int = 0
        self.receipt_errors: List[Exception] = []
        self.never_mined = False
        # When set, eth_sendTransaction waits on it
        self.send_gate: Optional[asyncio.Event] = None
        self.sent: List[Dict[str, Any]] = []

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def switch_chain(self, chain_id: str) -> None:
        self.chain_id = chain_id
        self.emit(CHAIN_CHANGED, hex(int(chain_id)))

    def switch_accounts(self, accounts: List[str]) -> None:
        self.accounts = accounts
        self.emit(ACCOUNTS_CHANGED, accounts)

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self.calls.append((method, params))

        if method == "eth_requestAccounts":
            if self.connect_error:
                raise self.connect_error
            return list(self.accounts)
        if method == "eth_accounts":
            return list(self.accounts)
        if method == "eth_chainId":
            return hex(int(self.chain_id))
        if method == "eth_estimateGas":
            if self.estimate_error:
                raise self.estimate_error
            return hex(self.gas_estimate)
        if method == "eth_sendTransaction":
            if self.send_gate is not None:
                await self.send_gate.wait()
            if self.send_error:
                raise self.send_error
            self.sent.append(params[0])
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            if self.receipt_errors:
                raise self.receipt_errors.pop(0)
            if self.never_mined:
                return None
            if self.pending_polls > 0:
                self.pending_polls -= 1
                return None
            return {
                "transactionHash": params[0],
                "status": hex(self.receipt_status),
                "gasUsed": hex(self.gas_estimate),
                "blockNumber": "0x10",
            }
        if method == "eth_call":
            if self.call_error:
                raise self.call_error
            return self.call_result

        raise ProviderRpcError(4200, f"Unsupported method: {method}")


class RejectingProvider(FakeProvider):
    """Wallet whose user declines every signature."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.send_error = ProviderRpcError(4001, "User denied transaction signature.")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def token_abi() -> Dict[str, Any]:
    return TOKEN_ABI


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def session(provider: FakeProvider) -> WalletSession:
    return WalletSession(provider)


@pytest.fixture
async def connected_session(session: WalletSession, provider: FakeProvider) -> WalletSession:
    await session.connect()
    provider.calls.clear()
    return session


@pytest.fixture
def binding(connected_session: WalletSession) -> ContractBinding:
    return bind(TOKEN_ADDRESS, normalize(TOKEN_ABI), connected_session, AMOY_CHAIN_ID)


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(poll_interval=0.01)
