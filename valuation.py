#!/usr/bin/env python3
"""
User Valuation — Snapshot → Engine → Result
===========================================

Wires the reader, the price source and the engine together:

  compute_user_valuation(wallet, registry, reader, price_source)
      for every market in the registry (concurrently):
          snapshot  = reader.read_market(market)
          holdings  = reader.read_holdings(snapshot, wallet)
          spot      = price_source.get_price(...)       (epoch markets only)
          value_market(snapshot, holdings, spot prices)  (pure)
      sum staked / unstaked / total over the valued markets

Markets whose accounts are missing on chain are skipped and listed in
`ValuationResult.skipped`; any other failure propagates.
"""

import asyncio
from dataclasses import asdict, dataclass, field
from decimal import Decimal, localcontext
from typing import Any, Dict, List, Tuple

from position_reader import MarketSnapshot, SandglassReader
from sandglass_cli.errors import MissingAccountError
from sandglass_cli.market_registry import MarketInfo, MarketRegistry
from sandglass_cli.models import MarketType, UserHoldings
from sandglass_cli.rpc_helpers import to_pubkey
from sandglass_math import (
    ONE,
    VALUATION_CONTEXT,
    ZERO,
    AmmPricer,
    ConcentrationCurve,
    PositionAggregator,
    SyntheticPricer,
    YieldResolver,
)


def _decimal_str(value: Decimal) -> str:
    """Plain notation without the trailing zeros left by fixed-precision division."""
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class MarketValuation:
    market_account: str
    symbol: str
    slot: int
    total: Decimal
    staked: Decimal
    unstaked: Decimal
    has_position: bool
    has_wallet_lp: bool
    # Diagnostics
    market_apy: Decimal
    market_end_price: Decimal
    market_sol_price: Decimal
    pt_price: Decimal
    yt_price: Decimal
    pool_pt_price: Decimal
    pool_yt_price: Decimal
    concentration: Decimal
    pool_value: Decimal
    lp_unit_value: Decimal
    pt_mint_supply: int
    ybt_price: Decimal
    base_token_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {k: (_decimal_str(v) if isinstance(v, Decimal) else v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class ValuationResult:
    address: str
    total: Decimal
    staked: Decimal
    unstaked: Decimal
    markets: List[MarketValuation] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "total": _decimal_str(self.total),
            "staked": _decimal_str(self.staked),
            "unstaked": _decimal_str(self.unstaked),
            "markets": [m.to_dict() for m in self.markets],
            "skipped": list(self.skipped),
        }


# ── Spot Prices ──────────────────────────────────────────────────────────


async def resolve_spot_prices(
    market_info: MarketInfo, market_type: MarketType, price_source
) -> Tuple[Decimal, Decimal]:
    """
    (yield-bearing asset price, base asset USD price).

    Decay markets are priced in their own unit: (1, 1), no oracle call.
    Epoch markets without a configured feed get 0 for that price.
    """
    if market_type is not MarketType.EPOCH_COMPOUNDING:
        return ONE, ONE

    async def fetch(symbol):
        if not symbol:
            print(f"  ⚠️  {market_info.symbol}: no price feed configured — using 0")
            return ZERO
        return await price_source.get_price(symbol)

    ybt_price, base_price = await asyncio.gather(
        fetch(market_info.ybt_price_feed), fetch(market_info.base_price_feed)
    )
    return ybt_price, base_price


# ── Pure Pipeline ────────────────────────────────────────────────────────


def value_market(
    snapshot: MarketSnapshot,
    holdings: UserHoldings,
    ybt_price: Decimal,
    base_token_price: Decimal,
) -> MarketValuation:
    """Run the engine over one market snapshot. No I/O."""
    config = snapshot.market.market_config
    reserves = snapshot.reserves
    clock = snapshot.clock

    quote = YieldResolver.resolve(config.terms(), ybt_price, clock)
    fair = SyntheticPricer.prices(config.start_price, config.price_base, quote.market_end_price)
    concentration = ConcentrationCurve.concentration(
        clock.unix_timestamp, snapshot.market.pool_config, config.start_time, config.end_time
    )
    pool = AmmPricer.prices(
        reserves.pt_pool_amount, reserves.yt_pool_amount, fair, concentration
    )
    position = PositionAggregator.value(
        reserves, pool, holdings, quote.market_sol_price, base_token_price
    )

    return MarketValuation(
        market_account=snapshot.market_info.market_account,
        symbol=snapshot.market_info.symbol,
        slot=snapshot.slot,
        total=position.total,
        staked=position.staked,
        unstaked=position.unstaked,
        has_position=position.has_position,
        has_wallet_lp=position.has_wallet_lp,
        market_apy=quote.market_apy,
        market_end_price=quote.market_end_price,
        market_sol_price=quote.market_sol_price,
        pt_price=fair.pt_price,
        yt_price=fair.yt_price,
        pool_pt_price=pool.pool_pt_price,
        pool_yt_price=pool.pool_yt_price,
        concentration=concentration,
        pool_value=position.pool_value,
        lp_unit_value=position.lp_unit_value,
        pt_mint_supply=reserves.pt_mint_supply,
        ybt_price=ybt_price,
        base_token_price=base_token_price,
    )


# ── Public Operation ─────────────────────────────────────────────────────


async def value_user_market(
    wallet_address: str, market_info: MarketInfo, reader: SandglassReader, price_source
) -> MarketValuation:
    snapshot = await reader.read_market(market_info)
    market_type = snapshot.market.market_config.market_type
    (ybt_price, base_price), holdings = await asyncio.gather(
        resolve_spot_prices(market_info, market_type, price_source),
        reader.read_holdings(snapshot, wallet_address),
    )
    return value_market(snapshot, holdings, ybt_price, base_price)


async def compute_user_valuation(
    wallet_address: str,
    registry: MarketRegistry,
    reader: SandglassReader,
    price_source,
) -> ValuationResult:
    """
    Value a wallet's LP across every market in the registry.

    Args:
        wallet_address: base58 wallet address.
        registry: markets to value, in order.
        reader: snapshot provider (SandglassReader or a stand-in with the same methods).
        price_source: object with `async get_price(symbol) -> Decimal`.

    Raises:
        ValueError: wallet address is not a valid public key.
        AccountDecodeError / RpcError / ArithmeticInvariantViolation: from any market.
    """
    address = str(to_pubkey(wallet_address))

    outcomes = await asyncio.gather(
        *(value_user_market(address, m, reader, price_source) for m in registry.markets),
        return_exceptions=True,
    )

    valued: List[MarketValuation] = []
    skipped: List[str] = []
    for market_info, outcome in zip(registry.markets, outcomes):
        if isinstance(outcome, MissingAccountError):
            print(f"  ⚠️  {market_info.symbol}: {outcome} — market skipped")
            skipped.append(market_info.market_account)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            valued.append(outcome)

    with localcontext(VALUATION_CONTEXT):
        staked = sum((m.staked for m in valued), ZERO)
        unstaked = sum((m.unstaked for m in valued), ZERO)
        total = staked + unstaked

    return ValuationResult(
        address=address,
        total=total,
        staked=staked,
        unstaked=unstaked,
        markets=valued,
        skipped=skipped,
    )
