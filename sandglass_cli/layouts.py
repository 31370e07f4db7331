"""
Account Layouts — Binary Schemas for Market, Position, SPL and Clock Accounts
=============================================================================

Declarative `construct` layouts for every account the valuation reads, and
decoders that turn raw bytes into the records of models.py.

Layout Sources:
  Anchor accounts : 8-byte discriminator = sha256("account:<Name>")[:8], then Borsh fields
                    https://www.anchor-lang.com/docs/account-discriminator
  SPL Mint        : 82 bytes  — https://github.com/solana-labs/solana-program-library/blob/master/token/program/src/state.rs
  SPL Account     : 165 bytes — same file (Token-2022 accounts share the base layout)
  Clock sysvar    : 40 bytes  — slot u64 | epoch_start_timestamp i64 | epoch u64 |
                                leader_schedule_epoch u64 | unix_timestamp i64
  Market,
  SandglassAccount: field names match the Sandglass TypeScript client accessors
                    (market.marketConfig.*, poolConfig.*, stakeInfo.stakeLpAmount).
                    The program IDL is not published, so field ORDER and integer
                    widths are assumed. Check them against a live account dump.

Borsh integers are little-endian; every numeric Market field is a u64/i64.
"""

import hashlib

from construct import (
    Adapter,
    Bytes,
    ConstructError,
    Int8ul,
    Int32ul,
    Int64sl,
    Int64ul,
    Struct,
)
from solders.pubkey import Pubkey

from sandglass_cli.errors import AccountDecodeError
from sandglass_cli.models import (
    ClockSnapshot,
    MarketAccount,
    MarketConfig,
    MarketType,
    PoolConfig,
)

DISCRIMINATOR_BYTES = 8


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: first 8 bytes of sha256("account:<Name>")."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_BYTES]


MARKET_DISCRIMINATOR = account_discriminator("Market")
SANDGLASS_ACCOUNT_DISCRIMINATOR = account_discriminator("SandglassAccount")


class PublicKeyAdapter(Adapter):
    """32 raw bytes ↔ base58 string."""

    def _decode(self, obj, context, path):
        return str(Pubkey.from_bytes(obj))

    def _encode(self, obj, context, path):
        return bytes(Pubkey.from_string(obj))


PublicKey = PublicKeyAdapter(Bytes(32))


# ── Sandglass Program Accounts ──────────────────────────────────────────

MARKET_CONFIG_LAYOUT = Struct(
    "market_type" / Int64ul,
    "start_time" / Int64sl,
    "end_time" / Int64sl,
    "start_price" / Int64ul,
    "initial_end_price" / Int64ul,
    "market_apy" / Int64ul,
    "market_sol_price" / Int64ul,
    "market_end_price" / Int64ul,
    "last_update_epoch" / Int64ul,
    "last_update_time" / Int64sl,
    "start_epoch" / Int64ul,
    "update_skip_time" / Int64sl,
    "compounding_period" / Int64sl,
    "price_base" / Int64ul,
)

POOL_CONFIG_LAYOUT = Struct(
    "initial_concentration" / Int64ul,
    "maturity_concentration" / Int64ul,
)

# Assumed order: mint and pool addresses first, then the two config structs
MARKET_LAYOUT = Struct(
    "discriminator" / Bytes(DISCRIMINATOR_BYTES),
    "token_sy_mint_address" / PublicKey,
    "token_pt_mint_address" / PublicKey,
    "token_yt_mint_address" / PublicKey,
    "token_lp_mint_address" / PublicKey,
    "pool_pt_token_account" / PublicKey,
    "pool_yt_token_account" / PublicKey,
    "market_config" / MARKET_CONFIG_LAYOUT,
    "pool_config" / POOL_CONFIG_LAYOUT,
)

SANDGLASS_ACCOUNT_LAYOUT = Struct(
    "discriminator" / Bytes(DISCRIMINATOR_BYTES),
    "market_account" / PublicKey,
    "user_address" / PublicKey,
    "stake_info" / Struct(
        "stake_lp_amount" / Int64ul,
        "stake_time" / Int64sl,
    ),
)


# ── SPL Token Accounts ──────────────────────────────────────────────────

MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Int8ul,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / Bytes(32),
)

TOKEN_ACCOUNT_LAYOUT = Struct(
    "mint" / PublicKey,
    "owner" / PublicKey,
    "amount" / Int64ul,
)

CLOCK_LAYOUT = Struct(
    "slot" / Int64ul,
    "epoch_start_timestamp" / Int64sl,
    "epoch" / Int64ul,
    "leader_schedule_epoch" / Int64ul,
    "unix_timestamp" / Int64sl,
)


# ── Decoders ────────────────────────────────────────────────────────────

def _parse(layout, data: bytes, kind: str):
    if data is None:
        raise AccountDecodeError(kind, "no data")
    if len(data) < layout.sizeof():
        raise AccountDecodeError(kind, f"{len(data)} bytes, need at least {layout.sizeof()}")
    try:
        return layout.parse(data)
    except ConstructError as e:
        raise AccountDecodeError(kind, str(e)) from e


def _check_discriminator(parsed, expected: bytes, kind: str) -> None:
    if parsed.discriminator != expected:
        raise AccountDecodeError(
            kind, f"discriminator {parsed.discriminator.hex()} != {expected.hex()}"
        )


def decode_market(data: bytes) -> MarketAccount:
    parsed = _parse(MARKET_LAYOUT, data, "market")
    _check_discriminator(parsed, MARKET_DISCRIMINATOR, "market")

    mc = parsed.market_config
    pc = parsed.pool_config
    return MarketAccount(
        token_sy_mint_address=parsed.token_sy_mint_address,
        token_pt_mint_address=parsed.token_pt_mint_address,
        token_yt_mint_address=parsed.token_yt_mint_address,
        token_lp_mint_address=parsed.token_lp_mint_address,
        pool_pt_token_account=parsed.pool_pt_token_account,
        pool_yt_token_account=parsed.pool_yt_token_account,
        market_config=MarketConfig(
            market_type=MarketType.from_raw(mc.market_type),
            start_time=mc.start_time,
            end_time=mc.end_time,
            start_price=mc.start_price,
            initial_end_price=mc.initial_end_price,
            market_apy=mc.market_apy,
            market_sol_price=mc.market_sol_price,
            market_end_price=mc.market_end_price,
            last_update_epoch=mc.last_update_epoch,
            last_update_time=mc.last_update_time,
            start_epoch=mc.start_epoch,
            update_skip_time=mc.update_skip_time,
            compounding_period=mc.compounding_period,
            price_base=mc.price_base,
        ),
        pool_config=PoolConfig(
            initial_concentration=pc.initial_concentration,
            maturity_concentration=pc.maturity_concentration,
        ),
    )


def decode_stake_lp_amount(data: bytes) -> int:
    """Staked LP (base units) from a user's position account."""
    parsed = _parse(SANDGLASS_ACCOUNT_LAYOUT, data, "position")
    _check_discriminator(parsed, SANDGLASS_ACCOUNT_DISCRIMINATOR, "position")
    return parsed.stake_info.stake_lp_amount


def decode_mint_supply(data: bytes) -> int:
    return _parse(MINT_LAYOUT, data, "mint").supply


def decode_token_amount(data: bytes) -> int:
    return _parse(TOKEN_ACCOUNT_LAYOUT, data, "token account").amount


def decode_clock(data: bytes, wall_time: float) -> ClockSnapshot:
    parsed = _parse(CLOCK_LAYOUT, data, "clock")
    return ClockSnapshot(
        epoch_start_timestamp=parsed.epoch_start_timestamp,
        epoch=parsed.epoch,
        unix_timestamp=parsed.unix_timestamp,
        wall_time=wall_time,
    )
