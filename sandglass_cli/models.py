"""
Snapshot Records — Immutable Inputs of the Valuation Engine
============================================================

Typed, read-only records produced by the account decoder (layouts.py) and
consumed by sandglass_math.py. Integer fields hold raw on-chain values
(prices scaled by `price_base`, token amounts in base units); the engine is
the only place that turns them into Decimals.

Market types are a closed, tagged variant:

  MarketConfig.terms() ─┬─ EpochCompoundingTerms   (type 0: yield compounds per epoch / period,
                        │                           end price re-projected from the spot price)
                        └─ ContinuousDecayTerms     (type ≠ 0: end price decays linearly
                                                    from initial_end_price to start_price)
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Optional, Union

from sandglass_cli.errors import ArithmeticInvariantViolation


class MarketType(IntEnum):
    EPOCH_COMPOUNDING = 0
    CONTINUOUS_DECAY = 1

    @classmethod
    def from_raw(cls, raw: int) -> "MarketType":
        """Any non-zero on-chain value is a decay market."""
        return cls.EPOCH_COMPOUNDING if raw == 0 else cls.CONTINUOUS_DECAY


# ── Market Configuration ────────────────────────────────────────────────


@dataclass(frozen=True)
class EpochCompoundingTerms:
    """Config subset used by epoch-compounding markets."""

    start_time: int
    end_time: int
    start_price: int
    price_base: int
    market_apy: int
    market_sol_price: int
    market_end_price: int
    last_update_epoch: int
    last_update_time: int
    start_epoch: int
    update_skip_time: int
    compounding_period: int  # 0 → epoch-driven updates


@dataclass(frozen=True)
class ContinuousDecayTerms:
    """Config subset used by continuously-decaying markets."""

    start_time: int
    end_time: int
    start_price: int
    initial_end_price: int
    price_base: int


MarketTerms = Union[EpochCompoundingTerms, ContinuousDecayTerms]


@dataclass(frozen=True)
class MarketConfig:
    market_type: MarketType
    start_time: int
    end_time: int
    start_price: int
    initial_end_price: int
    market_apy: int
    market_sol_price: int
    market_end_price: int
    last_update_epoch: int
    last_update_time: int
    start_epoch: int
    update_skip_time: int
    compounding_period: int
    price_base: int

    def __post_init__(self):
        if self.price_base <= 0:
            raise ArithmeticInvariantViolation(
                f"price_base must be positive, got {self.price_base}"
            )
        if self.end_time < self.start_time:
            raise ArithmeticInvariantViolation(
                f"end_time {self.end_time} precedes start_time {self.start_time}"
            )

    def terms(self) -> MarketTerms:
        if self.market_type is MarketType.EPOCH_COMPOUNDING:
            return EpochCompoundingTerms(
                start_time=self.start_time,
                end_time=self.end_time,
                start_price=self.start_price,
                price_base=self.price_base,
                market_apy=self.market_apy,
                market_sol_price=self.market_sol_price,
                market_end_price=self.market_end_price,
                last_update_epoch=self.last_update_epoch,
                last_update_time=self.last_update_time,
                start_epoch=self.start_epoch,
                update_skip_time=self.update_skip_time,
                compounding_period=self.compounding_period,
            )
        return ContinuousDecayTerms(
            start_time=self.start_time,
            end_time=self.end_time,
            start_price=self.start_price,
            initial_end_price=self.initial_end_price,
            price_base=self.price_base,
        )


@dataclass(frozen=True)
class PoolConfig:
    initial_concentration: int
    maturity_concentration: int  # 0 disables the curve


@dataclass(frozen=True)
class MarketAccount:
    """Decoded market account: token addresses + the two config blocks."""

    token_sy_mint_address: str
    token_pt_mint_address: str
    token_yt_mint_address: str
    token_lp_mint_address: str
    pool_pt_token_account: str
    pool_yt_token_account: str
    market_config: MarketConfig
    pool_config: PoolConfig


# ── Ledger State ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ClockSnapshot:
    """
    Clock sysvar fields from ONE read, plus the host clock at that moment.

    `wall_time` feeds the "market still open" test of epoch markets, which
    the protocol's client evaluates against the host clock rather than the
    ledger clock. Capturing it here keeps a snapshot fully reproducible.
    """

    epoch_start_timestamp: int
    epoch: int
    unix_timestamp: int
    wall_time: float


@dataclass(frozen=True)
class PoolReserves:
    """Raw pool balances and supplies (base units) with their decimals."""

    pt_pool_amount: int
    yt_pool_amount: int
    lp_supply_amount: int
    pt_mint_supply: int
    pt_decimals: int
    yt_decimals: int
    lp_decimals: int

    @property
    def pt_pool_ui(self) -> Decimal:
        return Decimal(self.pt_pool_amount) / Decimal(10) ** self.pt_decimals

    @property
    def yt_pool_ui(self) -> Decimal:
        return Decimal(self.yt_pool_amount) / Decimal(10) ** self.yt_decimals

    @property
    def lp_supply_ui(self) -> Decimal:
        return Decimal(self.lp_supply_amount) / Decimal(10) ** self.lp_decimals


@dataclass(frozen=True)
class UserHoldings:
    """
    A wallet's LP in one market.

    None means the account does not exist on chain; 0 means it exists and
    is empty. The two are reported differently.
    """

    stake_lp_amount: Optional[int] = None   # position (stake) account
    wallet_lp_amount: Optional[int] = None  # associated token account

    @property
    def has_position(self) -> bool:
        return self.stake_lp_amount is not None

    @property
    def has_wallet_lp(self) -> bool:
        return self.wallet_lp_amount is not None
