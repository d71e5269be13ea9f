#!/usr/bin/env python3
"""Simple CLI for exercising the wallet session against a JSON-RPC node"""

import argparse
import asyncio
from typing import Optional

from mnee_wallet.config import settings
from mnee_wallet.core.wallet import ProviderAdapter, Session, WalletResult, WalletSessionManager
from mnee_wallet.logging_config import setup_logging
from mnee_wallet.providers.json_rpc import JsonRpcWalletProvider
from mnee_wallet.services import chain_name, explorer_tx_url, format_address


def print_session(session: Session) -> None:
    """Pretty print a session snapshot"""
    print("\nWallet Session")
    print("=" * 50)
    print(f"Status:  {session.connection_status.value}")
    if session.address:
        print(f"Address: {format_address(session.address)} ({session.address})")
        print(f"Network: {chain_name(session.network_id)} ({session.network_id})")
        print(f"Native:  {session.native_balance}")
        print(f"Token:   {session.token_balance}")
    if session.wrong_network:
        print(f"⚠️  Expected network {chain_name(session.expected_network_id)}")


def print_problems(result: WalletResult) -> None:
    if result.error:
        print(f"❌ {result.error.kind.value}: {result.error.message}")
        if result.error.suggested_action:
            print(f"   {result.error.suggested_action}")
    for warning in result.warnings:
        print(f"⚠️  {warning.kind.value}: {warning.message}")


async def cli_session(manager: WalletSessionManager) -> None:
    result = await manager.start()
    print_problems(result)
    print_session(manager.get_session())


async def cli_connect(manager: WalletSessionManager) -> None:
    result = await manager.connect()
    print_problems(result)
    print_session(manager.get_session())


async def cli_transfer(manager: WalletSessionManager, recipient: str, amount: str) -> None:
    probe = await manager.start()
    if not manager.get_session().is_connected:
        print_problems(probe)
        print("❌ No authorized account available on the node")
        return

    def on_submitted(tx_hash: str) -> None:
        print(f"📤 Submitted {tx_hash}, waiting for confirmation...")

    result = await manager.transfer(recipient, amount, on_submitted=on_submitted)
    print_problems(result)
    if result.ok:
        session = manager.get_session()
        print(f"✅ Transferred {amount} to {format_address(recipient)}")
        url = explorer_tx_url(result.value, session.network_id)
        if url:
            print(f"   {url}")
        print_session(session)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MNEE Wallet CLI")
    parser.add_argument("--rpc-url", help="JSON-RPC node (default: RPC_URL setting)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("session", help="Probe the node for an authorized account")
    subparsers.add_parser("connect", help="Connect to the node's first account")

    transfer_parser = subparsers.add_parser("transfer", help="Transfer tokens")
    transfer_parser.add_argument("recipient", help="Recipient address")
    transfer_parser.add_argument("amount", help="Amount in token units, e.g. 10.00")

    return parser


async def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    rpc_url = args.rpc_url or settings.rpc_url
    if not rpc_url:
        print("❌ No RPC URL configured (set RPC_URL or pass --rpc-url)")
        return

    setup_logging()
    provider = JsonRpcWalletProvider(rpc_url)
    manager = WalletSessionManager(adapter=ProviderAdapter(provider=provider))

    try:
        if args.command == "session":
            await cli_session(manager)
        elif args.command == "connect":
            await cli_connect(manager)
        elif args.command == "transfer":
            await cli_transfer(manager, args.recipient, args.amount)
    finally:
        manager.close()
        await provider.close()


if __name__ == "__main__":
    asyncio.run(main())
