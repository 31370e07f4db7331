#!/usr/bin/env python3
"""
Sandglass CLI -- LP Position Valuation
======================================

Values a wallet's Sandglass LP (staked + free) from on-chain state.

Usage:
  python run.py value   <wallet> --markets markets.json             Value a wallet across all markets
  python run.py value   <wallet> --price Crypto.ETH/USD=3000         Override an oracle price
  python run.py value   <wallet> --json                              Machine-readable output
  python run.py markets --markets markets.json                       List registry markets
  python run.py info                                                 System overview

Sources:
  Solana JSON-RPC  : https://solana.com/docs/rpc
  Pyth Hermes      : https://hermes.pyth.network/docs/
"""

import sys
import argparse
from pathlib import Path

# ── Imports ───────────────────────────────────────────────────────────────

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from sandglass_cli.central_config import PROJECT_VERSION, PROJECT_NAME
from sandglass_cli.commands import cmd_info, cmd_markets, cmd_value


# ── CLI Parser ────────────────────────────────────────────────────────────


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sandglass-cli",
        description=f"{PROJECT_NAME} v{PROJECT_VERSION} — Sandglass LP Position Valuation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py value   <WALLET> --markets markets.json
  python run.py value   <WALLET> --rpc https://mainnetbeta-rpc.eclipse.xyz --json
  python run.py value   <WALLET> --price Crypto.TETH/ETH.RR=1.04 --price Crypto.ETH/USD=3000
  python run.py markets --markets markets.json
  python run.py info

Environment:
  SANDGLASS_MARKETS  Default market registry path (else ./markets.json)
  SANDGLASS_RPC_URL  Default RPC endpoint
""",
    )
    parser.add_argument(
        "--version", action="version", version=f"{PROJECT_NAME} v{PROJECT_VERSION}"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    value_p = sub.add_parser("value", help="Value a wallet's LP across all markets")
    value_p.add_argument("wallet", help="Wallet address (base58)")
    value_p.add_argument(
        "--markets",
        type=str,
        default=None,
        help="Market registry JSON (default: $SANDGLASS_MARKETS or ./markets.json)",
    )
    value_p.add_argument(
        "--rpc",
        type=str,
        default=None,
        help="JSON-RPC endpoint (default: $SANDGLASS_RPC_URL or Eclipse mainnet)",
    )
    value_p.add_argument(
        "--price",
        action="append",
        default=[],
        metavar="SYMBOL=VALUE",
        help="Fixed oracle price, e.g. Crypto.ETH/USD=3000 (repeatable)",
    )
    value_p.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )

    markets_p = sub.add_parser("markets", help="List registry markets")
    markets_p.add_argument(
        "--markets", type=str, default=None, help="Market registry JSON"
    )

    sub.add_parser("info", help="System & architecture info")

    return parser


# ── Main ──────────────────────────────────────────────────────────────────


def main(argv=None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "info":
        return cmd_info()
    if args.command == "markets":
        return cmd_markets(args.markets)
    if args.command == "value":
        return cmd_value(
            wallet=args.wallet,
            markets_path=args.markets,
            rpc_url=args.rpc,
            prices=args.price,
            as_json=args.json,
        )

    parser.print_help()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n❌ Cancelled.")
        sys.exit(130)
