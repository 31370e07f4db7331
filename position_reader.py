#!/usr/bin/env python3
"""
On-Chain Snapshot Reader for Sandglass Markets
==============================================

Reads the accounts a valuation needs directly from the ledger via public
JSON-RPC. No SDK: raw getAccountInfo / getMultipleAccounts over httpx.

Data Sources (per market):
───────────────────────────
1. Market account (getAccountInfo)
   Returns: token mints, pool token accounts, market config, pool config

2. One getMultipleAccounts call, so all values share a slot:
   • PT mint        → supply
   • LP mint        → supply
   • Pool PT vault  → amount
   • Pool YT vault  → amount
   • Clock sysvar   → epoch_start_timestamp, epoch, unix_timestamp

Data Sources (per user, per market):
─────────────────────────────────────
3. One getMultipleAccounts call:
   • Position PDA  [market, wallet] @ program         → staked LP
   • Associated token account [wallet, token program, LP mint]  → free LP
   Either may be absent; absence is reported as None, not as 0.
"""

import time
from dataclasses import dataclass
from typing import Callable

from sandglass_cli.central_config import SYSVAR_CLOCK_PUBKEY, config
from sandglass_cli.errors import MissingAccountError
from sandglass_cli.layouts import (
    decode_clock,
    decode_market,
    decode_mint_supply,
    decode_stake_lp_amount,
    decode_token_amount,
)
from sandglass_cli.market_registry import MarketInfo
from sandglass_cli.models import ClockSnapshot, MarketAccount, PoolReserves, UserHoldings
from sandglass_cli.rpc_helpers import (
    find_position_address,
    get_account_info as _get_account_info,
    get_associated_token_address,
    get_multiple_accounts as _get_multiple_accounts,
    mask_rpc_url,
)


@dataclass(frozen=True)
class MarketSnapshot:
    """Everything the engine needs about one market, read at one slot."""

    market_info: MarketInfo
    market: MarketAccount
    reserves: PoolReserves
    clock: ClockSnapshot
    slot: int


class SandglassReader:
    """
    Reads Sandglass market and user accounts.

    Usage:
        reader = SandglassReader(program_id)
        snapshot = await reader.read_market(market_info)
        holdings = await reader.read_holdings(snapshot, "<wallet>")
    """

    def __init__(
        self,
        program_id: str,
        rpc_url: str = None,
        commitment: str = None,
        timeout: int = None,
        clock: Callable[[], float] = time.time,
    ):
        self.program_id = program_id
        self.rpc_url = config.rpc.resolve_url(rpc_url)
        self.commitment = commitment or config.rpc.COMMITMENT
        self.timeout = timeout or config.rpc.TIMEOUT_SECONDS
        self._clock = clock

    async def read_market(self, market_info: MarketInfo) -> MarketSnapshot:
        """
        Read and decode one market.

        Raises:
            MissingAccountError: market, mint, pool vault or clock account absent.
            AccountDecodeError: an account does not match its layout.
        """
        print(f"  📖 Reading market {market_info.symbol} from {mask_rpc_url(self.rpc_url)}...")

        _, market_data = await _get_account_info(
            self.rpc_url, market_info.market_account, self.commitment, self.timeout
        )
        if market_data is None:
            raise MissingAccountError(market_info.market_account, "market")
        market = decode_market(market_data)

        # ── One read for supplies, vaults and clock ──────────────────
        keyed = [
            (market.token_pt_mint_address, "PT mint"),
            (market.token_lp_mint_address, "LP mint"),
            (market.pool_pt_token_account, "pool PT"),
            (market.pool_yt_token_account, "pool YT"),
            (SYSVAR_CLOCK_PUBKEY, "clock"),
        ]
        slot, accounts = await _get_multiple_accounts(
            self.rpc_url, [k for k, _ in keyed], self.commitment, self.timeout
        )
        wall_time = self._clock()

        for (address, kind), data in zip(keyed, accounts):
            if data is None:
                raise MissingAccountError(address, kind)
        pt_mint_data, lp_mint_data, pool_pt_data, pool_yt_data, clock_data = accounts

        reserves = PoolReserves(
            pt_pool_amount=decode_token_amount(pool_pt_data),
            yt_pool_amount=decode_token_amount(pool_yt_data),
            lp_supply_amount=decode_mint_supply(lp_mint_data),
            pt_mint_supply=decode_mint_supply(pt_mint_data),
            pt_decimals=market_info.token_pt.decimals,
            yt_decimals=market_info.token_yt.decimals,
            lp_decimals=market_info.token_lp.decimals,
        )

        return MarketSnapshot(
            market_info=market_info,
            market=market,
            reserves=reserves,
            clock=decode_clock(clock_data, wall_time),
            slot=slot,
        )

    async def read_holdings(self, snapshot: MarketSnapshot, wallet_address: str) -> UserHoldings:
        """Staked and free LP of `wallet_address` in the snapshot's market."""
        position_address = find_position_address(
            snapshot.market_info.market_account, wallet_address, self.program_id
        )
        lp_token_address = get_associated_token_address(
            snapshot.market.token_lp_mint_address,
            wallet_address,
            snapshot.market_info.token_program,
        )

        _, (position_data, token_data) = await _get_multiple_accounts(
            self.rpc_url,
            [str(position_address), str(lp_token_address)],
            self.commitment,
            self.timeout,
        )

        return UserHoldings(
            stake_lp_amount=decode_stake_lp_amount(position_data) if position_data is not None else None,
            wallet_lp_amount=decode_token_amount(token_data) if token_data is not None else None,
        )
