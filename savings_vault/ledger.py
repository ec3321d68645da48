"""Principal ledger: per-account positions plus the running total."""

import threading

from savings_vault.errors import AboveMaxDeposit, BelowMinDeposit, InsufficientBalance, ZeroAmount
from savings_vault.formatters import normalize_account
from savings_vault.models import AccountPosition, LedgerSnapshot, Staked, Withdrawn
from savings_vault.validation import validate_ledger_snapshot


class Ledger:
    """
    Owns account positions and `total_principal_wei`.

    Every mutation checks first and then updates the position and the total together under
    `lock`. The lock is re-entrant so callers can hold it across check, transfer and commit.
    """

    def __init__(self, *, min_deposit_wei: int = 0, max_deposit_wei: int | None = None) -> None:
        self.min_deposit_wei = min_deposit_wei
        self.max_deposit_wei = max_deposit_wei
        self.lock = threading.RLock()
        self._positions: dict[str, AccountPosition] = {}
        self._total_principal_wei = 0

    @property
    def total_principal_wei(self) -> int:
        with self.lock:
            return self._total_principal_wei

    def position(self, account: str) -> AccountPosition:
        """Position of `account`; unknown accounts read as all zeros."""
        key = normalize_account(account)
        with self.lock:
            return self._positions.get(key, AccountPosition())

    def balance_of(self, account: str) -> int:
        return self.position(account).principal_wei

    def settlement_timestamp(self, account: str) -> int:
        return self.position(account).settlement_timestamp

    def accounts(self) -> list[str]:
        with self.lock:
            return sorted(self._positions)

    def check_deposit(self, account: str, amount_wei: int) -> int:
        """Validate a deposit without applying it. Returns the resulting principal."""
        if amount_wei <= 0:
            raise ZeroAmount(amount_wei)
        key = normalize_account(account)
        with self.lock:
            new_principal = self._positions.get(key, AccountPosition()).principal_wei + amount_wei
        if new_principal < self.min_deposit_wei:
            raise BelowMinDeposit(key, new_principal, self.min_deposit_wei)
        if self.max_deposit_wei is not None and new_principal > self.max_deposit_wei:
            raise AboveMaxDeposit(key, new_principal, self.max_deposit_wei)
        return new_principal

    def check_withdraw(self, account: str, amount_wei: int) -> int:
        """Validate a withdrawal of principal without applying it. Returns the resulting principal."""
        if amount_wei <= 0:
            raise ZeroAmount(amount_wei)
        key = normalize_account(account)
        with self.lock:
            principal = self._positions.get(key, AccountPosition()).principal_wei
        if amount_wei > principal:
            raise InsufficientBalance(key, amount_wei, principal)
        return principal - amount_wei

    def deposit(self, account: str, amount_wei: int, now: int) -> Staked:
        """Add `amount_wei` to the account and restart its accrual clock for the whole principal."""
        key = normalize_account(account)
        with self.lock:
            new_principal = self.check_deposit(key, amount_wei)
            self._commit(key, new_principal, self._total_principal_wei + amount_wei, now)
        return Staked(account=key, amount_wei=amount_wei, timestamp=now)

    def withdraw(self, account: str, amount_wei: int, now: int) -> Withdrawn:
        """Remove `amount_wei` of principal and restart the accrual clock."""
        key = normalize_account(account)
        with self.lock:
            new_principal = self.check_withdraw(key, amount_wei)
            self._commit(key, new_principal, self._total_principal_wei - amount_wei, now)
        return Withdrawn(account=key, amount_wei=amount_wei, timestamp=now)

    def _commit(self, key: str, principal_wei: int, total_wei: int, now: int) -> None:
        prev = self._positions.get(key, AccountPosition())
        # The settlement clock never moves backwards, even if the ambient clock does.
        self._positions[key] = AccountPosition(
            principal_wei=principal_wei,
            settlement_timestamp=max(prev.settlement_timestamp, int(now)),
        )
        self._total_principal_wei = total_wei

    def snapshot(self) -> LedgerSnapshot:
        with self.lock:
            return LedgerSnapshot(positions=dict(self._positions), total_principal_wei=self._total_principal_wei)

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Replace the ledger state with `snapshot` after checking its invariants."""
        validate_ledger_snapshot(snapshot, warn_only=False)
        with self.lock:
            self._positions = {normalize_account(k): v for k, v in snapshot.positions.items()}
            self._total_principal_wei = snapshot.total_principal_wei
