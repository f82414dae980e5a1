"""
Wallet provider boundary and the bundled web3.py-backed provider.
"""

from walletbridge.provider.base import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    EventEmitter,
    WalletProvider,
)
from walletbridge.provider.web3_provider import Web3Provider

__all__ = [
    "WalletProvider",
    "EventEmitter",
    "Web3Provider",
    "CHAIN_CHANGED",
    "ACCOUNTS_CHANGED",
]
