"""
Sandglass CLI — Command Implementations
=======================================

All CLI command handlers live here, keeping run.py as a thin argparse
dispatcher. Each public function corresponds to a subcommand
(info, markets, value) and returns a process exit code.
"""

from __future__ import annotations

import asyncio
import json

from sandglass_cli.central_config import PROJECT_NAME, PROJECT_VERSION, config
from sandglass_cli.errors import SandglassError
from sandglass_cli.market_registry import (
    MarketRegistry,
    load_market_registry,
    resolve_registry_path,
)
from sandglass_cli.price_feeds import (
    OverridePriceSource,
    PythPriceClient,
    parse_price_overrides,
)
from sandglass_cli.rpc_helpers import mask_rpc_url


def _load_registry(markets_path: str | None) -> MarketRegistry | None:
    path = resolve_registry_path(markets_path)
    if path is None:
        print("❌ No market registry. Pass --markets <file.json> or set SANDGLASS_MARKETS.")
        return None
    try:
        return load_market_registry(path)
    except ValueError as e:
        print(f"❌ {e}")
        return None


def _fmt_usd(value) -> str:
    return f"${value:,.2f}"


def _mask_address(address: str) -> str:
    """Shorten a base58 address for terminal output: 7xKXtg…sgAsU"""
    if len(address) <= 12:
        return address
    return f"{address[:6]}…{address[-5:]}"


# ── Commands ─────────────────────────────────────────────────────────────


def cmd_info() -> int:
    """Display system and architecture information."""
    print(f"\n⏳ {PROJECT_NAME} v{PROJECT_VERSION}")
    print("=" * 55)
    print("🔗 Protocol   : Sandglass (PT / YT yield splitting, time-decaying AMM)")
    print(f"🌐 RPC        : {mask_rpc_url(config.rpc.resolve_url())} ({config.rpc.COMMITMENT})")
    print(f"📡 Oracle     : {mask_rpc_url(config.oracle.BASE_URL)} (Pyth Hermes)")
    print()
    print("📁 Files:")
    print("   run.py                — CLI entry point")
    print("   position_reader.py    — On-chain snapshot reader")
    print("   sandglass_math.py     — Valuation engine (Decimal, price-base flooring)")
    print("   valuation.py          — Pipeline + compute_user_valuation")
    print("   sandglass_cli/        — RPC, layouts, registry, price feeds, config")
    print()
    return 0


def cmd_markets(markets_path: str | None = None) -> int:
    """List the markets of the registry."""
    registry = _load_registry(markets_path)
    if registry is None:
        return 1

    print(f"\n📋 {len(registry.markets)} market(s) — program {registry.program_id}")
    print("─" * 55)
    for i, m in enumerate(registry.markets, 1):
        feeds = ", ".join(f"{k}={v}" for k, v in m.price_feeds.items()) or "none"
        print(f"  {i}. {m.symbol:<10s} {m.market_account}")
        print(f"     PT {m.token_pt.name} ({m.token_pt.decimals}) | "
              f"YT {m.token_yt.name} ({m.token_yt.decimals}) | "
              f"LP {m.token_lp.name} ({m.token_lp.decimals})")
        print(f"     feeds: {feeds}")
    return 0


async def _run_valuation(wallet: str, registry: MarketRegistry, rpc_url, price_overrides):
    # Imported here: commands is a package module, the pipeline lives at the root
    from position_reader import SandglassReader
    from valuation import compute_user_valuation

    reader = SandglassReader(registry.program_id, rpc_url=rpc_url)
    price_source = OverridePriceSource(price_overrides, PythPriceClient())
    return await compute_user_valuation(wallet, registry, reader, price_source)


def cmd_value(
    wallet: str,
    markets_path: str | None = None,
    rpc_url: str | None = None,
    prices: list | None = None,
    as_json: bool = False,
) -> int:
    """Value a wallet's LP across all registry markets."""
    registry = _load_registry(markets_path)
    if registry is None:
        return 1

    try:
        overrides = parse_price_overrides(prices)
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    try:
        result = asyncio.run(_run_valuation(wallet, registry, rpc_url, overrides))
    except ValueError as e:
        print(f"❌ {e}")
        return 1
    except SandglassError as e:
        print(f"❌ {type(e).__name__}: {e}")
        return 1

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print(f"\n💼 Wallet {_mask_address(result.address)}")
    print("═" * 55)
    for m in result.markets:
        state = []
        if not m.has_position:
            state.append("no stake account")
        if not m.has_wallet_lp:
            state.append("no LP token account")
        print(f"  ⏳ {m.symbol} (slot {m.slot})")
        print(f"     APY {m.market_apy * 100:.2f}% | PT {m.pt_price} | YT {m.yt_price}")
        print(f"     Pool PT {m.pool_pt_price:.6f} | Pool YT {m.pool_yt_price:.6f}")
        print(f"     Staked {_fmt_usd(m.staked)} | Unstaked {_fmt_usd(m.unstaked)} | "
              f"Total {_fmt_usd(m.total)}")
        if state:
            print(f"     ({', '.join(state)})")
    for skipped in result.skipped:
        print(f"  ⚠️  Skipped {skipped} (market account missing)")
    print("─" * 55)
    print(f"  Staked   : {_fmt_usd(result.staked)}")
    print(f"  Unstaked : {_fmt_usd(result.unstaked)}")
    print(f"  Total    : {_fmt_usd(result.total)}")
    return 0
