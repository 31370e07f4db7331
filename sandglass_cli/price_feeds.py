#!/usr/bin/env python3
"""
Spot Price Sources — Pyth Hermes Client and Static Prices
=========================================================
Based on the Hermes REST reference: https://hermes.pyth.network/docs/

Contract shared by every source:

    await source.get_price("Crypto.ETH/USD") -> Decimal

A source NEVER raises. Network failure, unknown symbol, zero price or
confidence, or a stale publish time all return Decimal(0), and the valuation
carries on with a degraded (zero) spot price.

Feeds used by Sandglass markets:
  Crypto.TETH/ETH.RR  — tETH → ETH redemption rate (yield-bearing asset price)
  Crypto.ETH/USD      — ETH → USD (base asset price)
"""

import asyncio
import time
from decimal import Decimal
from typing import Callable, Dict, Optional

import httpx

from sandglass_cli.central_config import config

ZERO = Decimal(0)


# ── Rate Limiter (CWE-770 mitigation) ────────────────────────────────────


class _RateLimiter:
    """Token-bucket rate limiter to respect the Hermes request budget."""

    def __init__(self, max_requests: int, period_seconds: float):
        self._max = max_requests
        self._period = period_seconds
        self._timestamps: list[float] = []

    async def acquire(self) -> None:
        """Wait until a request slot is available."""
        now = time.monotonic()
        # Purge timestamps outside the current window
        self._timestamps = [t for t in self._timestamps if now - t < self._period]
        if len(self._timestamps) >= self._max:
            # Wait until the oldest request expires
            sleep_time = self._period - (now - self._timestamps[0]) + 0.1
            if sleep_time > 0:
                await asyncio.sleep(sleep_time)
        self._timestamps.append(time.monotonic())


def _search_term(symbol: str) -> str:
    """'Crypto.TETH/ETH.RR' → 'TETH'"""
    body = symbol.split(".", 1)[1] if "." in symbol else symbol
    return body.split("/", 1)[0]


class PythPriceClient:
    """
    Pyth Hermes price client.

    Feed ids are resolved from the human symbol once per client and cached;
    each get_price() then costs one request. Pass one instance to every
    valuation that should share the cache and the rate limit.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: int = None,
        max_age_seconds: int = None,
        clock: Callable[[], float] = time.time,
    ):
        self.feeds_url = (base_url or config.oracle.BASE_URL) + config.oracle.FEEDS_ENDPOINT
        self.latest_url = (base_url or config.oracle.BASE_URL) + config.oracle.LATEST_ENDPOINT
        self.timeout = timeout or config.oracle.TIMEOUT_SECONDS
        self.max_age_seconds = (
            max_age_seconds if max_age_seconds is not None else config.oracle.MAX_PRICE_AGE_SECONDS
        )
        self._clock = clock
        self._feed_ids: Dict[str, str] = {}
        self._limiter = _RateLimiter(config.oracle.MAX_REQUESTS, config.oracle.PERIOD_SECONDS)

    async def get_price(self, symbol: str) -> Decimal:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, verify=True) as client:
                feed_id = await self._resolve_feed_id(client, symbol)
                if not feed_id:
                    print(f"⚠️  Price feed {symbol} not found — using 0")
                    return ZERO
                return await self._fetch_latest(client, feed_id, symbol)

        except httpx.TimeoutException:
            print(f"⏰ Timeout fetching {symbol} — using 0")
            return ZERO

        except (httpx.HTTPError, KeyError, ValueError, TypeError, AttributeError, ArithmeticError):
            # CWE-209: generic error message
            print(f"⚠️  Price request for {symbol} failed — using 0")
            return ZERO

    async def _resolve_feed_id(self, client: httpx.AsyncClient, symbol: str) -> Optional[str]:
        if symbol in self._feed_ids:
            return self._feed_ids[symbol]

        await self._limiter.acquire()
        response = await client.get(self.feeds_url, params={"query": _search_term(symbol)})
        if response.status_code != 200:
            print(f"❌ HTTP Error {response.status_code} from Hermes")
            return None

        feeds = response.json()
        if not isinstance(feeds, list):
            return None
        for feed in feeds:
            if not isinstance(feed, dict):
                continue
            if feed.get("attributes", {}).get("symbol", "").lower() == symbol.lower():
                self._feed_ids[symbol] = feed["id"]
                return feed["id"]
        return None

    async def _fetch_latest(self, client: httpx.AsyncClient, feed_id: str, symbol: str) -> Decimal:
        await self._limiter.acquire()
        response = await client.get(
            self.latest_url, params={"ids[]": feed_id, "parsed": "true"}
        )
        if response.status_code == 429:
            print("⚠️ Rate limit reached. Please wait and try again.")
            return ZERO
        if response.status_code != 200:
            print(f"❌ HTTP Error {response.status_code} from Hermes")
            return ZERO

        body = response.json()
        parsed = body.get("parsed") if isinstance(body, dict) else None
        if not parsed or not isinstance(parsed, list):
            return ZERO
        return self._extract_price(parsed[0]["price"], symbol)

    def _extract_price(self, price_data: Dict, symbol: str) -> Decimal:
        """price × 10^expo, or 0 when the quote is empty or stale."""
        price = int(price_data["price"])
        conf = int(price_data["conf"])
        if not price or not conf:
            return ZERO

        age = self._clock() - int(price_data["publish_time"])
        if age > self.max_age_seconds:
            print(f"⚠️  {symbol} is stale ({int(age)}s old) — using 0")
            return ZERO

        return Decimal(price).scaleb(int(price_data["expo"]))


class StaticPriceSource:
    """Fixed prices (tests, offline runs, CLI --price overrides). Unknown symbol → 0."""

    def __init__(self, prices: Dict[str, object] = None):
        self._prices = {k: Decimal(str(v)) for k, v in (prices or {}).items()}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._prices

    async def get_price(self, symbol: str) -> Decimal:
        return self._prices.get(symbol, ZERO)


class OverridePriceSource:
    """Static overrides first, then the wrapped source."""

    def __init__(self, overrides: Dict[str, object], fallback):
        self._static = StaticPriceSource(overrides)
        self._fallback = fallback

    async def get_price(self, symbol: str) -> Decimal:
        if symbol in self._static:
            return await self._static.get_price(symbol)
        return await self._fallback.get_price(symbol)


def parse_price_overrides(pairs) -> Dict[str, Decimal]:
    """['Crypto.ETH/USD=3000', ...] → {'Crypto.ETH/USD': Decimal('3000')}"""
    prices = {}
    for item in pairs or []:
        symbol, sep, value = item.partition("=")
        if not sep or not symbol.strip():
            raise ValueError(f"Expected SYMBOL=VALUE, got {item!r}")
        try:
            prices[symbol.strip()] = Decimal(value.strip())
        except ArithmeticError:
            raise ValueError(f"Invalid price for {symbol.strip()}: {value!r}") from None
    return prices
