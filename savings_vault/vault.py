"""Vault service: deposits, withdrawals and interest on top of the ledger."""

import sys
import threading
from collections import deque
from collections.abc import Callable

from savings_vault.clock import Clock, system_clock
from savings_vault.constants import DEFAULT_EVENT_LOG_SIZE
from savings_vault.custody import Custody
from savings_vault.errors import InsufficientVaultFunds, Unauthorized, ZeroAmount
from savings_vault.formatters import normalize_account
from savings_vault.interest import accrue_interest
from savings_vault.ledger import Ledger
from savings_vault.models import AccountPosition, ReserveFunded, Staked, VaultConfig, VaultEvent, Withdrawn
from savings_vault.oracle import PriceOracle
from savings_vault.rates import select_rate
from savings_vault.validation import validate_config


class VaultService:
    """
    Single-asset savings vault.

    Principal is tracked by a `Ledger`, the base asset is moved by a `Custody`, and the
    APR is chosen from one oracle read per operation. Mutations run under the ledger lock
    from validation through commit, so a failed transfer leaves the ledger untouched.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        custody: Custody,
        *,
        config: VaultConfig | None = None,
        clock: Clock = system_clock,
        event_log_size: int = DEFAULT_EVENT_LOG_SIZE,
    ) -> None:
        cfg = config if config is not None else VaultConfig()
        validate_config(cfg)
        self.config = cfg
        self.oracle = oracle
        self.custody = custody
        self.ledger = Ledger(min_deposit_wei=cfg.min_deposit_wei, max_deposit_wei=cfg.max_deposit_wei)
        self._clock = clock
        if event_log_size <= 0:
            raise ValueError("event_log_size must be > 0")
        self._events: deque[VaultEvent] = deque(maxlen=event_log_size)
        self._subscribers: list[Callable[[VaultEvent], None]] = []
        self._events_lock = threading.Lock()

    # -- queries -------------------------------------------------------------

    def balances(self, account: str) -> int:
        """Principal currently staked by `account`."""
        return self.ledger.balance_of(account)

    def stake_timestamps(self, account: str) -> int:
        """Start of the current accrual window for `account` (0 if it never staked)."""
        return self.ledger.settlement_timestamp(account)

    def total_staked(self) -> int:
        return self.ledger.total_principal_wei

    def get_price(self) -> int:
        """Current ETH/USD price from the oracle, 18 decimals."""
        return self.oracle.read_price().value

    def get_current_apr(self) -> int:
        """APR in basis points implied by the current oracle price."""
        return select_rate(self.get_price(), self.config)

    def calculate_interest(self, account: str) -> int:
        """Interest accrued on the account's principal since its last mutation."""
        pos = self.ledger.position(account)
        return self._accrued(pos, self.get_current_apr(), self._clock())

    def get_total_balance(self, account: str) -> int:
        """Principal plus accrued interest."""
        pos = self.ledger.position(account)
        return pos.principal_wei + self._accrued(pos, self.get_current_apr(), self._clock())

    def reserve_balance(self) -> int:
        """Vault holdings that do not back principal, available to pay interest."""
        return self.custody.vault_balance() - self.ledger.total_principal_wei

    @property
    def events(self) -> tuple[VaultEvent, ...]:
        """The most recent events, oldest first, bounded by `event_log_size`."""
        with self._events_lock:
            return tuple(self._events)

    def subscribe(self, callback: Callable[[VaultEvent], None]) -> None:
        """Call `callback` with every event emitted after a committed operation."""
        with self._events_lock:
            self._subscribers.append(callback)

    # -- mutations -----------------------------------------------------------

    def stake(self, account: str, amount_wei: int) -> Staked:
        """Take `amount_wei` into custody and add it to the account's principal."""
        with self.ledger.lock:
            self.ledger.check_deposit(account, amount_wei)
            self.custody.pull(account, amount_wei)
            event = self.ledger.deposit(account, amount_wei, self._clock())
        self._emit(event)
        return event

    def withdraw(self, account: str, amount_wei: int) -> Withdrawn:
        """
        Pay out `amount_wei` of principal plus all interest accrued on the position.

        Interest is computed from the pre-withdrawal principal. The payout is checked against
        the vault's holdings and transferred before the ledger is updated.
        """
        with self.ledger.lock:
            self.ledger.check_withdraw(account, amount_wei)
            now = self._clock()
            interest = self._accrued(self.ledger.position(account), self.get_current_apr(), now)
            payout = amount_wei + interest
            available = self.custody.vault_balance()
            if available < payout:
                raise InsufficientVaultFunds(payout, available)
            self.custody.push(account, payout)
            committed = self.ledger.withdraw(account, amount_wei, now)
        event = Withdrawn(
            account=committed.account,
            amount_wei=committed.amount_wei,
            timestamp=committed.timestamp,
            interest_wei=interest,
        )
        self._emit(event)
        return event

    def fund_reserve(self, account: str, amount_wei: int) -> ReserveFunded:
        """Top up the payout reserve. Does not create principal."""
        key = normalize_account(account)
        funders = self.config.reserve_funders
        if funders is not None and key not in {normalize_account(f) for f in funders}:
            raise Unauthorized(key, "fund the reserve")
        if amount_wei <= 0:
            raise ZeroAmount(amount_wei)
        with self.ledger.lock:
            self.custody.pull(key, amount_wei)
            event = ReserveFunded(account=key, amount_wei=amount_wei, timestamp=self._clock())
        self._emit(event)
        return event

    # -- internals -----------------------------------------------------------

    def _accrued(self, pos: AccountPosition, rate_bps: int, now: int) -> int:
        return accrue_interest(
            pos.principal_wei,
            rate_bps,
            now - pos.settlement_timestamp,
            self.config.seconds_per_year,
        )

    def _emit(self, event: VaultEvent) -> None:
        with self._events_lock:
            self._events.append(event)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as ex:  # pylint: disable=broad-exception-caught
                # Operation already committed.
                print(f"⚠️  Event subscriber failed on {type(event).__name__}: {ex}", file=sys.stderr)
