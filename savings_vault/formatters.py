"""Formatting and conversion utilities."""

from decimal import Decimal, InvalidOperation

from savings_vault.constants import PRICE_SCALE, WEI_PER_ETH


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip()
        if v.startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def normalize_hex_str(value) -> str:
    """Normalize hex string to 0x-prefixed format."""
    if isinstance(value, (bytes, bytearray)):
        return f"0x{value.hex()}"
    if hasattr(value, "hex") and not isinstance(value, str):
        hex_str = value.hex()
        return hex_str if hex_str.startswith("0x") else f"0x{hex_str}"
    s = str(value).strip()
    if s.lower().startswith("0x"):
        return f"0x{s[2:]}"
    return f"0x{s}"


def normalize_account(account: str) -> str:
    """Ledger key for an account. Addresses compare case-insensitively."""
    key = str(account).strip().lower()
    if not key:
        raise ValueError("account must be a non-empty string")
    return key


def parse_amount_wei(value) -> int:
    """
    Parse an amount into wei.

    Accepts ints (wei), hex strings, decimal wei strings and ether strings such as
    "1.5 ETH" or "0.01eth". Fractions smaller than 1 wei are rejected.
    """
    if isinstance(value, str):
        v = value.strip()
        if v.lower().endswith("eth"):
            try:
                eth = Decimal(v[:-3].strip())
            except InvalidOperation as ex:
                raise ValueError(f"Invalid ether amount: {value!r}") from ex
            if not eth.is_finite():
                raise ValueError(f"Ether amount must be finite: {value!r}")
            wei = eth * WEI_PER_ETH
            if wei != wei.to_integral_value():
                raise ValueError(f"Ether amount has more than 18 decimals: {value!r}")
            return int(wei)
    if isinstance(value, float):
        raise ValueError(f"Refusing float amount {value!r}; use an int or an ether string")
    try:
        return as_int(value)
    except (TypeError, ValueError) as ex:
        raise ValueError(f"Invalid amount: {value!r}") from ex


def format_bp(bp: int) -> str:
    """Format basis points as percentage."""
    return f"{(Decimal(bp) / Decimal(100)):.2f}%"


def format_eth(value_wei: int, *, decimals: int = 9, approx: bool = False) -> str:
    """Format wei value as ETH."""
    eth = Decimal(value_wei) / WEI_PER_ETH
    s = f"{eth:.{decimals}f}".rstrip("0").rstrip(".")
    prefix = "~" if approx else ""
    return f"{prefix}{s} ETH"


def format_price(value: int, *, decimals: int = 2) -> str:
    """Format an 18-decimal USD price."""
    usd = Decimal(value) / Decimal(PRICE_SCALE)
    return f"${usd:,.{decimals}f}"
