"""Sandglass CLI — on-chain valuation of Sandglass PT/YT LP positions."""

from sandglass_cli.central_config import PROJECT_VERSION

__version__ = PROJECT_VERSION
