#!/usr/bin/env python3
"""
RPC Helpers — Solana JSON-RPC Client and Address Derivation
===========================================================

Low-level ledger primitives used by position_reader.py:

  • JSON-RPC client (getAccountInfo, getMultipleAccounts)
  • base64 account-data decoding
  • Program-derived addresses (position account, associated token account)

Eclipse exposes the Solana JSON-RPC API unchanged:
  https://solana.com/docs/rpc/http/getmultipleaccounts

Terminology:
  • Pubkey:  32-byte ed25519 public key, base58 on the wire
  • PDA:     Program-derived address — sha256(seeds ‖ bump ‖ program ‖ "ProgramDerivedAddress"),
             searched from bump 255 downwards until the hash is off the ed25519 curve
  • Slot:    Ledger height the node answered from (audit trail)
"""

import base64
from typing import Any, Dict, List, Optional, Tuple

import httpx
from solders.pubkey import Pubkey

from sandglass_cli.central_config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
)
from sandglass_cli.errors import RpcError

# Solana caps getMultipleAccounts at 100 keys per request
MAX_MULTIPLE_ACCOUNTS = 100


# ── Address Helpers ─────────────────────────────────────────────────────

def to_pubkey(address) -> Pubkey:
    """Accept a Pubkey or a base58 string; raise ValueError on garbage."""
    if isinstance(address, Pubkey):
        return address
    try:
        return Pubkey.from_string(str(address).strip())
    except Exception as e:  # solders raises its own ParseHashError / ValueError
        raise ValueError(f"Invalid address: {address!r}") from e


def find_position_address(market_address, wallet_address, program_id) -> Pubkey:
    """
    Per-user position ("sandglass") account of a market.

    Seeds: [market, wallet] under the market program.
    """
    address, _bump = Pubkey.find_program_address(
        [bytes(to_pubkey(market_address)), bytes(to_pubkey(wallet_address))],
        to_pubkey(program_id),
    )
    return address


def get_associated_token_address(
    mint_address, wallet_address, token_program=TOKEN_2022_PROGRAM_ID
) -> Pubkey:
    """
    Associated token account of `wallet` for `mint`.

    Seeds: [wallet, token_program, mint] under the Associated Token program.
    Ref: https://spl.solana.com/associated-token-account#finding-the-associated-token-account-address
    """
    address, _bump = Pubkey.find_program_address(
        [
            bytes(to_pubkey(wallet_address)),
            bytes(to_pubkey(token_program)),
            bytes(to_pubkey(mint_address)),
        ],
        to_pubkey(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return address


# ── Account Data ────────────────────────────────────────────────────────

def decode_account_data(account: Optional[Dict[str, Any]]) -> Optional[bytes]:
    """
    Extract raw bytes from a JSON-RPC account object.

    With encoding="base64" the node returns data as [<payload>, "base64"].
    A null account (does not exist) maps to None.
    """
    if account is None:
        return None
    data = account.get("data")
    if isinstance(data, list) and len(data) == 2 and data[1] == "base64":
        return base64.b64decode(data[0])
    raise RpcError(f"Unexpected account data encoding: {str(data)[:40]}")


# ── JSON-RPC Client ─────────────────────────────────────────────────────

async def _rpc_request(rpc_url: str, method: str, params: list, timeout: int) -> Dict[str, Any]:
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": method,
        "params": params,
    }
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(rpc_url, json=payload)
            result = resp.json()
    except httpx.HTTPError as e:
        raise RpcError(f"{method} transport failure: {type(e).__name__}") from e
    except ValueError as e:
        raise RpcError(f"{method} returned a non-JSON response") from e
    if "error" in result:
        raise RpcError(f"RPC error: {result['error'].get('message', result['error'])}")
    if "result" not in result:
        raise RpcError(f"{method} returned no result")
    return result["result"]


async def get_account_info(
    rpc_url: str,
    address: str,
    commitment: str = "processed",
    timeout: int = 20,
) -> Tuple[int, Optional[bytes]]:
    """
    Fetch one account.

    Returns:
        (slot, data) — data is None when the account does not exist.
    """
    result = await _rpc_request(
        rpc_url,
        "getAccountInfo",
        [str(address), {"encoding": "base64", "commitment": commitment}],
        timeout,
    )
    return result["context"]["slot"], decode_account_data(result["value"])


async def get_multiple_accounts(
    rpc_url: str,
    addresses: List[str],
    commitment: str = "processed",
    timeout: int = 20,
) -> Tuple[int, List[Optional[bytes]]]:
    """
    Fetch several accounts in ONE request, so every value comes from the
    same slot (clock and pool balances stay mutually consistent).

    Returns:
        (slot, [data or None, ...]) in the same order as `addresses`.
    """
    if len(addresses) > MAX_MULTIPLE_ACCOUNTS:
        raise ValueError(
            f"getMultipleAccounts accepts at most {MAX_MULTIPLE_ACCOUNTS} keys, got {len(addresses)}"
        )
    result = await _rpc_request(
        rpc_url,
        "getMultipleAccounts",
        [[str(a) for a in addresses], {"encoding": "base64", "commitment": commitment}],
        timeout,
    )
    values = result["value"]
    if len(values) != len(addresses):
        raise RpcError(
            f"getMultipleAccounts returned {len(values)} accounts for {len(addresses)} keys"
        )
    return result["context"]["slot"], [decode_account_data(v) for v in values]


def mask_rpc_url(rpc_url: str) -> str:
    """Host part only — keeps API keys embedded in paths/queries out of the output."""
    try:
        return httpx.URL(rpc_url).host or "rpc"
    except Exception:  # noqa: BLE001
        return "rpc"
