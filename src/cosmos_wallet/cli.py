"""
Command-line interface for the Cosmos wallet.

Provides commands for key generation, balance queries and token transfers.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import structlog

from cosmos_wallet import __version__
from cosmos_wallet.config import WalletConfig, set_config
from cosmos_wallet.core.coins import Coin
from cosmos_wallet.core.request import TransactionRequest
from cosmos_wallet.core.response import BroadcastMode
from cosmos_wallet.node.cosmos import CosmosAdapter
from cosmos_wallet.node.interface import LedgerConnectionError, LedgerRequestError
from cosmos_wallet.tx.errors import BroadcastError, WalletError
from cosmos_wallet.tx.signer import TransactionSigner
from cosmos_wallet.tx.transaction import msg_send
from cosmos_wallet.wallet import Wallet


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cosmos-wallet",
        description="Build, sign and broadcast Cosmos SDK transactions",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from configuration)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Keygen command
    subparsers.add_parser("keygen", help="Generate a new private key")

    # Address command
    subparsers.add_parser("address", help="Show the address of the configured key")

    # Balance command
    balance_parser = subparsers.add_parser("balance", help="Show the balances of an address")
    balance_parser.add_argument(
        "address",
        nargs="?",
        help="Address to query (default: the configured key's address)",
    )

    # Send command
    send_parser = subparsers.add_parser("send", help="Send tokens to an address")
    send_parser.add_argument("--to", required=True, help="Recipient address")
    send_parser.add_argument(
        "--amount",
        required=True,
        help="Amount to send, e.g. 1000uatom or 10uatom,5ufoo",
    )
    send_parser.add_argument("--memo", default="", help="Transaction memo")
    send_parser.add_argument(
        "--gas",
        default="auto",
        help="Gas limit, or 'auto' to simulate (default: auto)",
    )
    send_parser.add_argument(
        "--fees",
        default="auto",
        help="Fee coins, or 'auto' to use the gas price (default: auto)",
    )
    send_parser.add_argument("--granter", help="Fee granter address")
    send_parser.add_argument("--sequence", type=int, help="Sequence number override")
    send_parser.add_argument(
        "--mode",
        choices=[m.value for m in BroadcastMode],
        default=BroadcastMode.SYNC.value,
        help="Broadcast mode (default: sync)",
    )

    return parser


def _load_signer(config: WalletConfig) -> TransactionSigner:
    signer = TransactionSigner(config)
    signer.load_from_config()
    return signer


def build_send_request(
    args: argparse.Namespace,
    sender: str,
    client: CosmosAdapter,
) -> TransactionRequest:
    """Translate ``send`` arguments into a transaction request."""
    client.parse_address(args.to)
    if args.granter:
        client.parse_address(args.granter)

    amount: List[Coin] = Coin.parse_list(args.amount)
    if not amount:
        raise ValueError("amount must not be empty")

    request = TransactionRequest.of(msg_send(sender, args.to, amount)).with_memo(args.memo)

    if args.gas == "auto":
        request = request.with_gas_auto()
    else:
        request = request.with_gas_limit(int(args.gas))

    if args.fees == "auto":
        request = request.with_fee_auto()
    else:
        request = request.with_fee_amount(Coin.parse_list(args.fees))

    if args.granter:
        request = request.with_fee_granter(args.granter)
    if args.sequence is not None:
        request = request.with_sequence(args.sequence)

    return request


async def show_balance(args: argparse.Namespace, config: WalletConfig) -> None:
    """Print the balances of an address."""
    address = args.address
    if not address:
        address = _load_signer(config).address(config.bech32_prefix)

    async with CosmosAdapter(config) as client:
        client.parse_address(address)
        balances = await client.get_balances(address)

    print(f"Address: {address}")
    if not balances:
        print("  (no balances)")
    for coin in balances:
        print(f"  {coin.amount} {coin.denom}")


async def send_tokens(args: argparse.Namespace, config: WalletConfig) -> None:
    """Build, sign and broadcast a bank transfer."""
    signer = _load_signer(config)

    async with CosmosAdapter(config) as client:
        wallet = Wallet(signer, client)
        request = build_send_request(args, wallet.address, client)
        response = await wallet.broadcast_tx(request, BroadcastMode(args.mode))

    print(json.dumps(response.to_dict(), indent=2))
    if response.result is not None and not response.result.is_success:
        sys.exit(2)


def run(args: argparse.Namespace, config: WalletConfig) -> None:
    """Run the selected command."""
    if args.command == "keygen":
        signer = TransactionSigner.generate(config)
        print(json.dumps({
            "private_key": signer.export_hex(),
            "public_key": signer.public_key.hex(),
            "address": signer.address(config.bech32_prefix),
        }, indent=2))
    elif args.command == "address":
        print(_load_signer(config).address(config.bech32_prefix))
    elif args.command == "balance":
        asyncio.run(show_balance(args, config))
    elif args.command == "send":
        asyncio.run(send_tokens(args, config))


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = WalletConfig()
        set_config(config)

        # Setup logging
        setup_logging(args.log_level or config.log_level, args.log_json or config.log_json)

        run(args, config)
    except BroadcastError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.response is not None and e.response.tx is not None:
            print(f"Transaction hash: {e.response.tx.tx_hash}", file=sys.stderr)
        sys.exit(1)
    except (
        WalletError,
        LedgerConnectionError,
        LedgerRequestError,
        ValueError,
        FileNotFoundError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
