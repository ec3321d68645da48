"""Custody of the base asset (ETH) held by the vault."""

import threading
from typing import Protocol

from savings_vault.errors import TransferFailed
from savings_vault.formatters import normalize_account


class Custody(Protocol):
    """Moves the base asset between depositors and the vault."""

    def pull(self, account: str, amount_wei: int) -> None:
        """Take `amount_wei` from `account` into the vault. Raises TransferFailed."""

    def push(self, account: str, amount_wei: int) -> None:
        """Pay `amount_wei` from the vault to `account`. Raises TransferFailed."""

    def vault_balance(self) -> int:
        """Total base asset currently held by the vault."""


class InMemoryCustody:
    """Wallet balances kept in a dict. Stands in for the chain in tests and replays."""

    def __init__(self, wallets: dict[str, int] | None = None, *, vault_balance_wei: int = 0) -> None:
        self._wallets = {normalize_account(k): int(v) for k, v in (wallets or {}).items()}
        self._vault_wei = int(vault_balance_wei)
        self._rejection: str | None = None
        self._lock = threading.Lock()

    def credit(self, account: str, amount_wei: int) -> None:
        """Give `account` funds from outside the system (faucet)."""
        key = normalize_account(account)
        with self._lock:
            self._wallets[key] = self._wallets.get(key, 0) + int(amount_wei)

    def wallet_balance(self, account: str) -> int:
        with self._lock:
            return self._wallets.get(normalize_account(account), 0)

    def reject_transfers(self, reason: str | None) -> None:
        """Fail every transfer with `reason`; pass None to accept transfers again."""
        with self._lock:
            self._rejection = reason

    def vault_balance(self) -> int:
        with self._lock:
            return self._vault_wei

    def pull(self, account: str, amount_wei: int) -> None:
        key = normalize_account(account)
        with self._lock:
            if self._rejection is not None:
                raise TransferFailed(key, amount_wei, self._rejection)
            if amount_wei <= 0:
                raise TransferFailed(key, amount_wei, "amount must be > 0")
            available = self._wallets.get(key, 0)
            if available < amount_wei:
                raise TransferFailed(key, amount_wei, f"insufficient wallet funds ({available})")
            self._wallets[key] = available - amount_wei
            self._vault_wei += amount_wei

    def push(self, account: str, amount_wei: int) -> None:
        key = normalize_account(account)
        with self._lock:
            if self._rejection is not None:
                raise TransferFailed(key, amount_wei, self._rejection)
            if amount_wei < 0:
                raise TransferFailed(key, amount_wei, "amount must be >= 0")
            if self._vault_wei < amount_wei:
                raise TransferFailed(key, amount_wei, f"vault holds only {self._vault_wei}")
            self._vault_wei -= amount_wei
            self._wallets[key] = self._wallets.get(key, 0) + amount_wei
