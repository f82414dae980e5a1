#!/usr/bin/env python3
"""
Example: mint tokens to the connected account

This demonstrates the full contract interaction flow:
- Connect a wallet session (local key signing through a JSON-RPC node)
- Normalize the contract ABI and bind it to the deployed address
- Read a balance with CallExecutor
- Mint with TransactionExecutor, recipient resolved from the session

Run against a local Hardhat node with the token deployed:
    WALLETBRIDGE_RPC_URL=http://127.0.0.1:8545 \
    PRIVATE_KEY=0x... \
    python examples/mint_token.py path/to/Token.abi.json path/to/addresses.json
"""

import asyncio
import os
import sys

from walletbridge import (
    CallExecutor,
    RecipientMode,
    SendOptions,
    TransactionExecutor,
    WalletSession,
    Web3Provider,
    bind,
    configure_logging,
    load_address_book,
    load_raw_abi,
    load_settings,
    normalize,
    resolve_address,
)
from walletbridge.config import Network, get_network_config


async def main(abi_path: str, addresses_path: str) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    network = get_network_config(Network.HARDHAT, rpc_url=settings.rpc_url)

    print("=" * 60)
    print(f"walletbridge - mint on {network.display_name} ({network.chain_id})")
    print("=" * 60)

    provider = Web3Provider(network.rpc_url, private_key=os.environ["PRIVATE_KEY"])
    async with WalletSession(provider) as session:
        print(f"[WALLET] Connected {session.account_address} on chain {session.active_chain_id}")

        address = resolve_address(load_address_book(addresses_path), network.chain_id)
        if address is None:
            print(f"[ERROR] No deployment for chain {network.chain_id}")
            return 1
        token = bind(address, normalize(load_raw_abi(abi_path)), session, network.chain_id)
        print(f"[TOKEN] {address}: {len(token.read_methods())} read, {len(token.write_methods())} write methods")

        reader = CallExecutor()
        before = await reader.call(token, "balanceOf", [session.account_address])
        print(f"[TOKEN] Balance before: {before}")

        executor = TransactionExecutor(
            settings,
            on_state=lambda state, _ctx: print(f"[TX] {state.value}"),
        )
        result = await executor.send(
            token,
            "mint",
            [1_000],
            SendOptions(recipient=RecipientMode.SELF, receipt_timeout=60),
        )

        if not result.ok:
            print(f"[TX] Failed ({result.kind.value}): {result.reason}")
            return 1

        print(f"[TX] Confirmed {result.tx_hash} with gas limit {result.gas_limit}")
        after = await reader.call(token, "balanceOf", [session.account_address])
        print(f"[TOKEN] Balance after: {after}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2])))
