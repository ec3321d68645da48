"""Data models for the savings vault."""

from dataclasses import dataclass, field

from savings_vault.constants import (
    DEFAULT_HIGH_RATE_BPS,
    DEFAULT_LOW_RATE_BPS,
    DEFAULT_MAX_DEPOSIT_WEI,
    DEFAULT_MIN_DEPOSIT_WEI,
    DEFAULT_PRICE_THRESHOLD,
    SECONDS_PER_YEAR,
)


@dataclass(frozen=True)
class VaultConfig:
    """
    Immutable vault configuration.

    The default instance reproduces the fixed-constant vault (6% / 3% around 3000 USD/ETH,
    no deposit bounds). Bounds apply to the cumulative principal of one account.
    """

    min_deposit_wei: int = DEFAULT_MIN_DEPOSIT_WEI
    max_deposit_wei: int | None = DEFAULT_MAX_DEPOSIT_WEI
    price_threshold: int = DEFAULT_PRICE_THRESHOLD
    high_rate_bps: int = DEFAULT_HIGH_RATE_BPS
    low_rate_bps: int = DEFAULT_LOW_RATE_BPS
    seconds_per_year: int = SECONDS_PER_YEAR
    # None means anyone may top up the payout reserve.
    reserve_funders: frozenset[str] | None = None


@dataclass(frozen=True)
class AccountPosition:
    """Principal and accrual clock of one depositor."""

    principal_wei: int = 0
    settlement_timestamp: int = 0


@dataclass(frozen=True)
class PriceReading:
    """A single oracle observation, 18 decimals."""

    value: int
    timestamp: int


@dataclass(frozen=True)
class LedgerSnapshot:
    """Point-in-time copy of the ledger, used for persistence."""

    positions: dict[str, AccountPosition] = field(default_factory=dict)
    total_principal_wei: int = 0


@dataclass(frozen=True)
class Staked:
    """Emitted after a deposit is committed."""

    account: str
    amount_wei: int
    timestamp: int


@dataclass(frozen=True)
class Withdrawn:
    """Emitted after a withdrawal is paid out. `amount_wei` is principal only."""

    account: str
    amount_wei: int
    timestamp: int
    interest_wei: int = 0


@dataclass(frozen=True)
class ReserveFunded:
    """Emitted when the payout reserve is topped up."""

    account: str
    amount_wei: int
    timestamp: int


VaultEvent = Staked | Withdrawn | ReserveFunded
