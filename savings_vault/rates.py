"""APR selection from the oracle price."""

from savings_vault.models import VaultConfig


def select_rate(price: int, cfg: VaultConfig) -> int:
    """
    Pick the annual rate in basis points for `price`.

    Strictly below the threshold pays the high rate; a price exactly at the threshold
    already pays the low rate.
    """
    if price < cfg.price_threshold:
        return cfg.high_rate_bps
    return cfg.low_rate_bps
