"""Simple (non-compounding) interest accrual."""

from savings_vault.constants import SECONDS_PER_YEAR, TOTAL_BASIS_POINTS


def accrue_interest(
    principal_wei: int, rate_bps: int, elapsed_seconds: int, seconds_per_year: int = SECONDS_PER_YEAR
) -> int:
    """
    interest = principal * rate_bps * elapsed / (10000 * seconds_per_year), floored.

    Python ints do not overflow, so the full product is formed before the single division
    and nothing is truncated early.
    """
    if principal_wei < 0:
        raise ValueError("principal must be >= 0")
    if rate_bps < 0:
        raise ValueError("rate_bps must be >= 0")
    if seconds_per_year <= 0:
        raise ValueError("seconds_per_year must be > 0")
    if principal_wei == 0 or elapsed_seconds <= 0 or rate_bps == 0:
        return 0
    return (principal_wei * rate_bps * elapsed_seconds) // (TOTAL_BASIS_POINTS * seconds_per_year)
