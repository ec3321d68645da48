"""Single-asset savings vault with an oracle-driven APR."""

from typing import NoReturn

from savings_vault.errors import (
    AboveMaxDeposit,
    BelowMinDeposit,
    InsufficientBalance,
    InsufficientVaultFunds,
    OracleUnavailable,
    TransferFailed,
    Unauthorized,
    VaultError,
    ZeroAmount,
)
from savings_vault.models import VaultConfig
from savings_vault.vault import VaultService

__version__ = "0.1.0"

__all__ = [
    "AboveMaxDeposit",
    "BelowMinDeposit",
    "InsufficientBalance",
    "InsufficientVaultFunds",
    "OracleUnavailable",
    "TransferFailed",
    "Unauthorized",
    "VaultConfig",
    "VaultError",
    "VaultService",
    "ZeroAmount",
]


def _entry_point() -> NoReturn:
    """Entry point for the savings-vault script."""
    import sys

    from savings_vault.cli import main

    raise SystemExit(main(sys.argv[1:]))
