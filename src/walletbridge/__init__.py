"""
walletbridge - wallet-backed smart contract interaction client.

Connects to a browser-style (EIP-1193) wallet provider, normalizes a
contract ABI into a method table, and invokes contract methods: reads
through ``eth_call`` and writes as signed transactions with bounded gas.

Quick Start:
    >>> import asyncio
    >>> from walletbridge import (
    ...     SendOptions, RecipientMode, TransactionExecutor, WalletSession,
    ...     Web3Provider, bind, normalize,
    ... )
    >>>
    >>> async def main():
    ...     session = WalletSession(Web3Provider("http://127.0.0.1:8545", private_key=KEY))
    ...     await session.connect()
    ...     binding = bind(TOKEN_ADDRESS, normalize(raw_abi), session, "31337")
    ...     result = await TransactionExecutor().send(
    ...         binding, "mint", [100], SendOptions(recipient=RecipientMode.SELF)
    ...     )
    ...     print(result.ok, getattr(result, "tx_hash", None))
    ...
    >>> asyncio.run(main())

Modules:
- `session`: WalletSession, the connection to the wallet provider
- `abi`: ABI normalization, calldata codec and contract detail loaders
- `binding`: ContractBinding and ``bind()``
- `execution`: CallExecutor and TransactionExecutor
- `provider`: WalletProvider protocol and the web3.py-backed provider
- `errors`: Exception hierarchy carrying a FailureKind
- `config`: Known networks and runtime Settings
"""

from walletbridge.version import __version__, __version_info__

from walletbridge.models import (
    AbiParam,
    Confirmed,
    Failed,
    FailureKind,
    MethodDescriptor,
    MethodKind,
    MethodTable,
    Mutability,
    RecipientMode,
    TransactionRequest,
    TransactionResult,
    TxState,
)

from walletbridge.errors import (
    CallRevertedError,
    ChainMismatchError,
    GasEstimationFailedError,
    InvalidArgumentsError,
    InvalidRecipientError,
    MethodNotFoundError,
    NotReadableError,
    ProviderRpcError,
    ProviderUnavailableError,
    ReceiptTimeoutError,
    TransactionInFlightError,
    UnknownProviderError,
    UserRejectedError,
    WalletBridgeError,
)

from walletbridge.config import (
    NETWORKS,
    Network,
    NetworkConfig,
    Settings,
    get_network_by_chain_id,
    get_network_config,
    load_settings,
)

from walletbridge.abi import (
    AbiCodecError,
    load_address_book,
    load_raw_abi,
    normalize,
    resolve_address,
)

from walletbridge.provider import EventEmitter, WalletProvider, Web3Provider
from walletbridge.session import WalletSession, normalize_chain_id
from walletbridge.binding import ContractBinding, bind
from walletbridge.execution import (
    CallExecutor,
    SendOptions,
    TransactionExecutor,
    resolve_recipient,
)
from walletbridge.utils.logging import configure_logging, get_logger

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    # Models
    "AbiParam",
    "MethodDescriptor",
    "MethodKind",
    "MethodTable",
    "Mutability",
    "FailureKind",
    "RecipientMode",
    "TxState",
    "TransactionRequest",
    "TransactionResult",
    "Confirmed",
    "Failed",
    # Errors
    "WalletBridgeError",
    "ProviderRpcError",
    "ProviderUnavailableError",
    "UserRejectedError",
    "ChainMismatchError",
    "MethodNotFoundError",
    "NotReadableError",
    "GasEstimationFailedError",
    "CallRevertedError",
    "TransactionInFlightError",
    "ReceiptTimeoutError",
    "InvalidRecipientError",
    "InvalidArgumentsError",
    "UnknownProviderError",
    # Config
    "Network",
    "NetworkConfig",
    "NETWORKS",
    "get_network_config",
    "get_network_by_chain_id",
    "Settings",
    "load_settings",
    # ABI
    "normalize",
    "AbiCodecError",
    "load_raw_abi",
    "load_address_book",
    "resolve_address",
    # Provider
    "WalletProvider",
    "EventEmitter",
    "Web3Provider",
    # Session and binding
    "WalletSession",
    "normalize_chain_id",
    "ContractBinding",
    "bind",
    # Execution
    "CallExecutor",
    "TransactionExecutor",
    "SendOptions",
    "resolve_recipient",
    # Logging
    "get_logger",
    "configure_logging",
]
