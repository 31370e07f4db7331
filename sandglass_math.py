#!/usr/bin/env python3
"""
Sandglass Valuation Engine
==========================

Pure functions that turn a decoded market snapshot into prices and a
position value. No I/O, no shared state: the same snapshot always gives the
same Decimal output.

PIPELINE (every stage consumes the previous one):
──────────────────────────────────────────────────
  ConcentrationCurve ─┐
                      ├─► AmmPricer ─► PositionAggregator
  YieldResolver ─► SyntheticPricer ─┘

NUMERICS:
──────────
  • Decimal only, in VALUATION_CONTEXT: 20 significant digits, ROUND_HALF_UP.
    This is the arithmetic of the protocol's reference client; changing it
    changes the last digits of every price.
  • On-chain prices are integers scaled by `price_base`. Every derived price
    is floored to that scale at the formula boundary, as the program's
    integer math truncates:  floor(x · price_base) / price_base
  • Fractional powers (per-period growth) use Decimal exponentiation.

FORMULAS:
──────────
1. Concentration (virtual liquidity), linear in time:
     c(t) = c₀ + (c_m − c₀) · (t − t_start) / (t_end − t_start)
     c_m = 0 disables the curve; t ≥ t_end gives c_m.

2. Epoch-compounding yield (market type 0), when an update is due:
     g          = (⌊spot · pb⌋ / start_price) ^ (1 / n)      n = elapsed periods
     APY        = ⌊(g^periods_per_year − 1) · pb⌋ / pb
     end_price  = ⌊g^periods_in_market · start_price⌋ / pb

3. Continuous decay (market type ≠ 0):
     end_price(t) = initial_end − (initial_end − start) · (t − t_start) / (t_end − t_start)

4. Fair prices (PT is a discount bond on the end price):
     PT = min(1, ⌊(start / end) · pb⌋ / pb)      YT = 1 − PT

5. AMM implied prices from virtual reserves:
     r = (Y_v / P_yt) / (X_v / P_pt)      PT_pool = r / (1 + r)      YT_pool = 1 − PT_pool

6. Position value:
     LP_unit = (X · PT_pool + Y · YT_pool) / LP_supply
     value   = LP_amount · LP_unit · sol_price · base_price
"""

from dataclasses import dataclass
from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    ROUND_FLOOR,
    ROUND_HALF_UP,
    localcontext,
)
from functools import wraps

from sandglass_cli.errors import ArithmeticInvariantViolation
from sandglass_cli.models import (
    ContinuousDecayTerms,
    EpochCompoundingTerms,
    MarketTerms,
    ClockSnapshot,
    PoolConfig,
    PoolReserves,
    UserHoldings,
)

# ── Named Constants ──────────────────────────────────────────────────────

VALUATION_CONTEXT = Context(
    prec=20,
    rounding=ROUND_HALF_UP,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

ZERO = Decimal(0)
ONE = Decimal(1)
YEAR_SECONDS = Decimal(365 * 24 * 60 * 60)


def _in_valuation_context(func):
    """Run `func` with VALUATION_CONTEXT as the active decimal context."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        with localcontext(VALUATION_CONTEXT):
            return func(*args, **kwargs)

    return wrapper


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def _floor_to_base(value: Decimal, price_base: Decimal) -> Decimal:
    """⌊value · pb⌋ / pb — one price-base boundary."""
    return _floor(value * price_base) / price_base


# ── Results ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class YieldQuote:
    market_apy: Decimal
    market_end_price: Decimal
    market_sol_price: Decimal


@dataclass(frozen=True)
class SyntheticPrices:
    pt_price: Decimal
    yt_price: Decimal


@dataclass(frozen=True)
class PoolPrices:
    pool_price: Decimal  # YT-to-PT value ratio of the virtual reserves
    pool_pt_price: Decimal
    pool_yt_price: Decimal


@dataclass(frozen=True)
class PositionValue:
    pool_value: Decimal
    lp_unit_value: Decimal
    staked: Decimal
    unstaked: Decimal
    total: Decimal
    has_position: bool
    has_wallet_lp: bool


# ── Concentration Curve ──────────────────────────────────────────────────


class ConcentrationCurve:
    """Time-interpolated virtual liquidity added to both pool reserves."""

    @staticmethod
    @_in_valuation_context
    def concentration(now: int, pool_config: PoolConfig, start_time: int, end_time: int) -> Decimal:
        initial = Decimal(pool_config.initial_concentration)
        maturity = Decimal(pool_config.maturity_concentration)

        if maturity == 0:
            return initial

        # A zero-length market is matured from the start
        if now >= end_time or end_time <= start_time:
            return maturity

        time_diff = Decimal(now) - Decimal(start_time)
        total_diff = Decimal(end_time) - Decimal(start_time)
        delta = (maturity - initial) * time_diff / total_diff
        return initial + delta


# ── Yield Resolver ───────────────────────────────────────────────────────


class YieldResolver:
    """
    Implied APY and projected end price of the yield-bearing asset.

    Dispatches once on the market variant:
      EpochCompoundingTerms → re-projects from the live spot price, at most
                              once per update-skip interval
      ContinuousDecayTerms  → deterministic linear decay, no oracle input
    """

    @staticmethod
    @_in_valuation_context
    def resolve(terms: MarketTerms, spot_price: Decimal, clock: ClockSnapshot) -> YieldQuote:
        if isinstance(terms, EpochCompoundingTerms):
            return YieldResolver._epoch_compounding(terms, Decimal(spot_price), clock)
        if isinstance(terms, ContinuousDecayTerms):
            return YieldResolver._continuous_decay(terms, clock)
        raise TypeError(f"Unknown market terms: {type(terms).__name__}")

    @staticmethod
    def _epoch_compounding(
        terms: EpochCompoundingTerms, spot_price: Decimal, clock: ClockSnapshot
    ) -> YieldQuote:
        price_base = Decimal(terms.price_base)
        spot_price_scaled = _floor(spot_price * price_base)

        # Seed with the values last written on chain
        market_apy = Decimal(terms.market_apy) / price_base
        market_sol_price = Decimal(terms.market_sol_price) / price_base
        market_end_price = Decimal(terms.market_end_price) / price_base

        # Open-market test runs on the host clock, like the program's client
        market_open = clock.wall_time < terms.end_time
        if not (market_open and market_sol_price < spot_price):
            return YieldQuote(market_apy, market_end_price, market_sol_price)

        now = Decimal(clock.unix_timestamp)
        start_time = Decimal(terms.start_time)
        market_time = Decimal(terms.end_time) - start_time
        update_skip_time = Decimal(terms.update_skip_time)

        epoch_count = ZERO
        year_epoch = ZERO
        market_epoch = ZERO

        if terms.compounding_period == 0:
            # Epoch-driven: one compounding step per ledger epoch
            epoch_start_time = Decimal(clock.epoch_start_timestamp)
            if now > epoch_start_time + update_skip_time and clock.epoch >= terms.last_update_epoch:
                epoch_count = Decimal(clock.epoch) - Decimal(terms.start_epoch)
                time_diff = epoch_start_time - start_time
                if epoch_count > 0:
                    if time_diff == 0:
                        raise ArithmeticInvariantViolation(
                            "epoch start coincides with market start; epoch length undefined"
                        )
                    year_epoch = YEAR_SECONDS / time_diff * epoch_count
                    market_epoch = epoch_count * market_time / time_diff
        else:
            # Time-driven: one compounding step per `compounding_period` seconds
            if now > Decimal(terms.last_update_time) + update_skip_time:
                compounding_period = Decimal(terms.compounding_period)
                epoch_count = (now - start_time) / compounding_period
                year_epoch = YEAR_SECONDS / compounding_period
                market_epoch = market_time / compounding_period

        if epoch_count > 0:
            start_price = Decimal(terms.start_price)
            if start_price <= 0:
                raise ArithmeticInvariantViolation("start_price must be positive to compound")

            apr_plus_one = (spot_price_scaled / start_price) ** (ONE / epoch_count)
            market_apy = _floor_to_base(apr_plus_one ** year_epoch - ONE, price_base)
            market_sol_price = spot_price
            market_end_price = _floor_to_base(
                apr_plus_one ** market_epoch * (start_price / price_base), price_base
            )

        return YieldQuote(market_apy, market_end_price, market_sol_price)

    @staticmethod
    def _continuous_decay(terms: ContinuousDecayTerms, clock: ClockSnapshot) -> YieldQuote:
        price_base = Decimal(terms.price_base)
        start_price = Decimal(terms.start_price)
        initial_end_price = Decimal(terms.initial_end_price)

        # Before the market opens the end price has not started to decay
        time_diff = max(Decimal(clock.unix_timestamp) - Decimal(terms.start_time), ZERO)
        market_time = Decimal(terms.end_time) - Decimal(terms.start_time)

        market_end_price = start_price / price_base
        if market_time > 0 and time_diff <= market_time:
            delta_price = initial_end_price - start_price
            decayed = initial_end_price - delta_price * time_diff / market_time
            market_end_price = _floor(decayed / price_base * price_base) / price_base

        # Decay markets carry no spot-derived price
        return YieldQuote(market_apy=ZERO, market_end_price=market_end_price, market_sol_price=ONE)


# ── Synthetic Pricer ─────────────────────────────────────────────────────


class SyntheticPricer:
    """Fair PT / YT prices implied by the projected end price."""

    @staticmethod
    @_in_valuation_context
    def prices(start_price: int, price_base: int, end_price: Decimal) -> SyntheticPrices:
        """
        PT = ⌊(start / end) · pb⌋ / pb, never above par.
        An end price of zero means nothing is left to discount: PT is at par.
        """
        price_base = Decimal(price_base)
        if end_price <= 0:
            pt_price = ONE
        else:
            start = Decimal(start_price) / price_base
            pt_price = min(_floor_to_base(start / end_price, price_base), ONE)
        return SyntheticPrices(pt_price=pt_price, yt_price=ONE - pt_price)


# ── AMM Pricer ───────────────────────────────────────────────────────────


class AmmPricer:
    """
    Trade prices implied by the pool's virtual reserves.

    These are what the AMM would quote, as opposed to the fair prices of
    SyntheticPricer; their gap is the market basis.
    """

    @staticmethod
    @_in_valuation_context
    def prices(
        pt_pool_amount: int,
        yt_pool_amount: int,
        fair: SyntheticPrices,
        concentration: Decimal,
    ) -> PoolPrices:
        virtual_pt = Decimal(pt_pool_amount) + concentration
        virtual_yt = Decimal(yt_pool_amount) + concentration

        # Limits of r / (1 + r) where r would be 0/0, x/0 or 0/x
        if virtual_pt == 0 and virtual_yt == 0:
            pool_price = fair.pt_price / fair.yt_price if fair.yt_price > 0 else ZERO
            return PoolPrices(pool_price, fair.pt_price, fair.yt_price)
        if fair.yt_price == 0 or virtual_pt == 0:
            return PoolPrices(ZERO, ONE, ZERO)
        if fair.pt_price == 0 or virtual_yt == 0:
            return PoolPrices(ZERO, ZERO, ONE)

        pool_price = virtual_yt / fair.yt_price / (virtual_pt / fair.pt_price)
        pool_pt_price = pool_price / (pool_price + ONE)
        return PoolPrices(pool_price, pool_pt_price, ONE - pool_pt_price)


# ── Position Aggregator ──────────────────────────────────────────────────


class PositionAggregator:
    """Values a wallet's staked and free LP against the pool."""

    @staticmethod
    @_in_valuation_context
    def value(
        reserves: PoolReserves,
        pool: PoolPrices,
        holdings: UserHoldings,
        market_sol_price: Decimal,
        base_token_price: Decimal,
    ) -> PositionValue:
        pool_value = (
            reserves.pt_pool_ui * pool.pool_pt_price
            + reserves.yt_pool_ui * pool.pool_yt_price
        )
        lp_supply = reserves.lp_supply_ui
        # No LP outstanding → nobody can hold a share
        lp_unit_value = pool_value / lp_supply if lp_supply > 0 else ZERO

        lp_scale = Decimal(10) ** reserves.lp_decimals

        def lp_value(amount: int) -> Decimal:
            return (
                (Decimal(amount) / lp_scale)
                * lp_unit_value
                * market_sol_price
                * base_token_price
            )

        staked = lp_value(holdings.stake_lp_amount) if holdings.has_position else ZERO
        unstaked = lp_value(holdings.wallet_lp_amount) if holdings.has_wallet_lp else ZERO

        return PositionValue(
            pool_value=pool_value,
            lp_unit_value=lp_unit_value,
            staked=staked,
            unstaked=unstaked,
            total=staked + unstaked,
            has_position=holdings.has_position,
            has_wallet_lp=holdings.has_wallet_lp,
        )
