"""Validation logic for configuration and ledger state."""

from savings_vault.models import LedgerSnapshot, VaultConfig


def validate_config(cfg: VaultConfig) -> None:
    """Raise ValueError if `cfg` cannot describe a working vault."""
    if cfg.min_deposit_wei < 0:
        raise ValueError(f"min_deposit_wei must be >= 0 (got {cfg.min_deposit_wei})")
    if cfg.max_deposit_wei is not None:
        if cfg.max_deposit_wei <= 0:
            raise ValueError(f"max_deposit_wei must be > 0 (got {cfg.max_deposit_wei})")
        if cfg.min_deposit_wei > cfg.max_deposit_wei:
            raise ValueError(
                f"min_deposit_wei ({cfg.min_deposit_wei}) must not exceed max_deposit_wei ({cfg.max_deposit_wei})"
            )
    if cfg.price_threshold < 0:
        raise ValueError(f"price_threshold must be >= 0 (got {cfg.price_threshold})")
    for name, value in (("high_rate_bps", cfg.high_rate_bps), ("low_rate_bps", cfg.low_rate_bps)):
        if value < 0:
            raise ValueError(f"{name} must be >= 0 (got {value})")
    if cfg.seconds_per_year <= 0:
        raise ValueError(f"seconds_per_year must be > 0 (got {cfg.seconds_per_year})")


def validate_ledger_snapshot(snapshot: LedgerSnapshot, *, warn_only: bool = True) -> list[str]:
    """
    Check ledger invariants: every principal is non-negative and the total equals their sum.

    Returns list of issues. If warn_only=False, raises ValueError on the first one.
    """
    issues: list[str] = []

    for account, pos in snapshot.positions.items():
        if pos.principal_wei < 0:
            msg = f"Account {account}: negative principal {pos.principal_wei}"
            issues.append(msg)
            if not warn_only:
                raise ValueError(msg)
        if pos.settlement_timestamp < 0:
            msg = f"Account {account}: negative settlement timestamp {pos.settlement_timestamp}"
            issues.append(msg)
            if not warn_only:
                raise ValueError(msg)

    expected_total = sum(pos.principal_wei for pos in snapshot.positions.values())
    if snapshot.total_principal_wei != expected_total:
        msg = (
            f"Total principal mismatch: recorded={snapshot.total_principal_wei} != "
            f"sum of positions={expected_total}"
        )
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    return issues
