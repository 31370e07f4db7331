#!/usr/bin/env python3
"""
Market Registry — Sandglass Markets and Their Token Metadata
============================================================

Ordered list of markets to value. Each entry names the market account and the
symbol / decimals of its four tokens:

  SY  yield-bearing asset (e.g. tETH)
  PT  principal token
  YT  yield token
  LP  pool share

Registry file (JSON):

  {
    "program_id": "<sandglass program id>",
    "markets": [
      {
        "market_account": "<market pubkey>",
        "symbol": "tETH",
        "token_sy": {"name": "tETH",    "address": "<mint>", "decimals": 9},
        "token_pt": {"name": "PT-tETH", "address": "<mint>", "decimals": 9},
        "token_yt": {"name": "YT-tETH", "address": "<mint>", "decimals": 9},
        "token_lp": {"name": "LP-tETH", "address": "<mint>", "decimals": 9},
        "price_feeds": {"ybt": "Crypto.TETH/ETH.RR", "base": "Crypto.ETH/USD"},
        "token_program": "<optional, defaults to Token-2022>"
      }
    ]
  }

`price_feeds.ybt` prices the yield-bearing asset in its base asset;
`price_feeds.base` prices the base asset in USD. Epoch-compounding markets
without feeds are valued with a 0 spot price (degraded, not an error).

The path comes from --markets or the SANDGLASS_MARKETS env var.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from sandglass_cli.central_config import ENV_MARKETS_PATH, TOKEN_2022_PROGRAM_ID
from sandglass_cli.rpc_helpers import to_pubkey

_TOKEN_KEYS = ("token_sy", "token_pt", "token_yt", "token_lp")


@dataclass(frozen=True)
class MarketToken:
    name: str
    address: str
    decimals: int


@dataclass(frozen=True)
class MarketInfo:
    market_account: str
    symbol: str
    token_sy: MarketToken
    token_pt: MarketToken
    token_yt: MarketToken
    token_lp: MarketToken
    price_feeds: Dict[str, str] = field(default_factory=dict)
    token_program: str = TOKEN_2022_PROGRAM_ID

    @property
    def ybt_price_feed(self) -> Optional[str]:
        return self.price_feeds.get("ybt")

    @property
    def base_price_feed(self) -> Optional[str]:
        return self.price_feeds.get("base")


@dataclass(frozen=True)
class MarketRegistry:
    program_id: str
    markets: List[MarketInfo]


# ── Parsing ─────────────────────────────────────────────────────────────


def _parse_token(raw: dict, where: str) -> MarketToken:
    try:
        decimals = int(raw["decimals"])
        address = str(to_pubkey(raw["address"]))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"{where}: {e}") from e
    if not 0 <= decimals <= 18:
        raise ValueError(f"{where}: decimals out of range: {decimals}")
    return MarketToken(name=str(raw.get("name", "")), address=address, decimals=decimals)


def _parse_market(raw: dict, index: int) -> MarketInfo:
    where = f"markets[{index}]"
    try:
        market_account = str(to_pubkey(raw["market_account"]))
        symbol = str(raw["symbol"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"{where}: {e}") from e

    tokens = {}
    for key in _TOKEN_KEYS:
        if key not in raw:
            raise ValueError(f"{where}: missing {key}")
        tokens[key] = _parse_token(raw[key], f"{where}.{key}")

    feeds = raw.get("price_feeds") or {}
    if not isinstance(feeds, dict):
        raise ValueError(f"{where}.price_feeds must be an object")

    token_program = str(to_pubkey(raw.get("token_program", TOKEN_2022_PROGRAM_ID)))

    return MarketInfo(
        market_account=market_account,
        symbol=symbol,
        price_feeds={k: str(v) for k, v in feeds.items()},
        token_program=token_program,
        **tokens,
    )


def parse_market_registry(raw: dict) -> MarketRegistry:
    """Validate a decoded registry document. Order of `markets` is preserved."""
    if not isinstance(raw, dict):
        raise ValueError("Registry must be a JSON object")
    try:
        program_id = str(to_pubkey(raw["program_id"]))
    except KeyError:
        raise ValueError("Registry is missing program_id") from None
    markets = raw.get("markets")
    if not isinstance(markets, list):
        raise ValueError("Registry 'markets' must be a list")

    parsed = [_parse_market(m, i) for i, m in enumerate(markets)]
    seen = set()
    for m in parsed:
        if m.market_account in seen:
            raise ValueError(f"Duplicate market account: {m.market_account}")
        seen.add(m.market_account)
    return MarketRegistry(program_id=program_id, markets=parsed)


def resolve_registry_path(override: str = None) -> Optional[Path]:
    """CLI flag → env var → ./markets.json (if present)."""
    candidate = override or os.environ.get(ENV_MARKETS_PATH)
    if candidate:
        return Path(candidate)
    default = Path.cwd() / "markets.json"
    return default if default.exists() else None


def load_market_registry(path) -> MarketRegistry:
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except FileNotFoundError:
        raise ValueError(f"Market registry not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ValueError(f"Market registry {path} is not valid JSON: {e}") from e
    return parse_market_registry(raw)
