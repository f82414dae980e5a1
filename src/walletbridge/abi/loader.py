"""
Loaders for contract details stored on disk.

The contract backend keeps two documents per contract: the ABI and an
address book mapping each network to the deployed address. Both are
plain JSON; Hardhat/Foundry artifacts (``{"abi": [...]}``) are accepted
for the ABI as well.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from walletbridge.config import NETWORKS

# ABI loading cache, keyed by resolved path
_ABI_CACHE: Dict[str, Any] = {}


def load_raw_abi(path: Union[str, Path]) -> Any:
    """Load a raw ABI document with caching.

    Args:
        path: Path to the ABI JSON file

    Returns:
        The go-ethereum ABI mapping or the Solidity JSON ABI list

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a recognised ABI shape
    """
    resolved = str(Path(path).resolve())
    if resolved not in _ABI_CACHE:
        document = json.loads(Path(resolved).read_text(encoding="utf-8"))
        if isinstance(document, dict) and isinstance(document.get("abi"), list):
            document = document["abi"]
        if not isinstance(document, (dict, list)):
            raise ValueError(f"Not an ABI document: {path}")
        _ABI_CACHE[resolved] = document
    return _ABI_CACHE[resolved]


def load_address_book(path: Union[str, Path]) -> Dict[str, str]:
    """Load a network -> contract address mapping.

    Keys are kept as strings; they may be chain ids (``"80002"``) or
    network names (``"polygon-amoy"``).
    """
    document = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"Address book must be a JSON object: {path}")
    return {str(key): str(value) for key, value in document.items()}


def resolve_address(book: Dict[str, str], chain_id: str) -> Optional[str]:
    """Find the deployed address for a chain id, falling back to the network name."""
    if chain_id in book:
        return book[chain_id]
    for network, cfg in NETWORKS.items():
        if cfg.chain_id == chain_id:
            return book.get(network.value) or book.get(network.name.lower())
    return None


def clear_cache() -> None:
    _ABI_CACHE.clear()
