"""
Error Taxonomy — Typed Failures for the Valuation Pipeline
===========================================================

Collaborator-boundary failures (RPC transport, account decoding) surface as
typed errors. Arithmetic edge cases that have a defined answer (matured
market, absent user account) are branches in the engine and do not raise.

  SandglassError
  ├── MissingAccountError           required market / mint / pool / clock account absent
  ├── AccountDecodeError            bytes do not match the expected layout
  ├── ArithmeticInvariantViolation  end < start, price_base ≤ 0, undefined epoch length
  └── RpcError                      JSON-RPC error object or HTTP transport failure

Oracle failures are not in this list: the price source degrades to
Decimal(0) instead of raising.
"""


class SandglassError(Exception):
    """Base class for every error raised by this project."""


class MissingAccountError(SandglassError, LookupError):
    """A required on-chain account does not exist."""

    def __init__(self, address: str, kind: str = "account"):
        self.address = address
        self.kind = kind
        super().__init__(f"{kind} account not found: {address}")


class AccountDecodeError(SandglassError, ValueError):
    """Raw account data does not match the expected binary layout."""

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        super().__init__(f"Cannot decode {kind}: {reason}")


class ArithmeticInvariantViolation(SandglassError, ArithmeticError):
    """Market parameters would make a formula divide by zero or go backwards in time."""


class RpcError(SandglassError, RuntimeError):
    """The RPC node returned an error or could not be reached."""
