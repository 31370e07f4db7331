"""
Project Configuration — RPC endpoint, oracle API, program ids, version
=======================================================================

Contains the Eclipse RPC and Pyth Hermes configuration plus the well-known
Solana program ids used for address derivation and clock reads.
Sources:
  Eclipse RPC       : https://docs.eclipse.xyz/developers/rpc-and-block-explorers
  Pyth Hermes API   : https://hermes.pyth.network/docs/
  SPL programs      : https://spl.solana.com/associated-token-account
"""

import os
import re
from dataclasses import dataclass
from importlib.metadata import version, PackageNotFoundError
from pathlib import Path

# Version — single source of truth is pyproject.toml
try:
    PROJECT_VERSION = version("sandglass-cli")
except PackageNotFoundError:
    # Dev / CI: package not installed — read pyproject.toml directly
    _toml = Path(__file__).resolve().parent.parent / "pyproject.toml"
    _m = (
        re.search(r'version\s*=\s*"([^"]+)"', _toml.read_text())
        if _toml.exists()
        else None
    )
    PROJECT_VERSION = _m.group(1) if _m else "0.0.0-dev"
PROJECT_NAME = "Sandglass CLI"


# ── Well-Known Program Ids ──────────────────────────────────────────────
# Ref: https://spl.solana.com/token-2022  /  https://docs.solana.com/developing/runtime-facilities/sysvars#clock

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
SYSVAR_CLOCK_PUBKEY = "SysvarC1ock11111111111111111111111111111111"

# Env overrides (CLI flags take precedence over these)
ENV_RPC_URL = "SANDGLASS_RPC_URL"
ENV_MARKETS_PATH = "SANDGLASS_MARKETS"


@dataclass(frozen=True)
class EclipseRPC:
    """Eclipse mainnet JSON-RPC configuration (Solana-compatible API)."""

    BASE_URL: str = "https://mainnetbeta-rpc.eclipse.xyz"

    # The protocol's own client reads at "processed"
    COMMITMENT: str = "processed"

    TIMEOUT_SECONDS: int = 20

    @classmethod
    def resolve_url(cls, override: str = None) -> str:
        """CLI flag → env var → default endpoint."""
        return override or os.environ.get(ENV_RPC_URL) or cls.BASE_URL


@dataclass(frozen=True)
class PythHermesAPI:
    """Pyth Hermes REST configuration."""

    BASE_URL: str = "https://hermes.pyth.network"

    FEEDS_ENDPOINT: str = "/v2/price_feeds"  # symbol → feed id lookup
    LATEST_ENDPOINT: str = "/v2/updates/price/latest"  # latest parsed price

    TIMEOUT_SECONDS: int = 15

    # Redemption-rate feeds publish slowly; anything older than a day is stale
    MAX_PRICE_AGE_SECONDS: int = 86_400

    # Public Hermes limit is 30 requests / 10 s per IP
    MAX_REQUESTS: int = 25
    PERIOD_SECONDS: float = 10.0


# Unified configuration
class SandglassConfig:
    """Unified configuration for the RPC node and the price oracle."""

    rpc = EclipseRPC()
    oracle = PythHermesAPI()


# Global instance
config = SandglassConfig()
