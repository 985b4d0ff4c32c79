"""Formatting and conversion utilities."""

from decimal import Decimal

from staking_strategy.constants import TOKEN_DECIMALS


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip().replace("_", "")
        if v.startswith("0x"):
            return int(v, 16)
        if "e" in v.lower():
            # "1.5e18" style amounts in scenario files
            return int(Decimal(v))
        return int(v)
    return int(value)


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison (checksummed vs. lowercase)."""
    if a is None or b is None:
        return False
    return str(a).lower() == str(b).lower()


def short_address(address: str) -> str:
    """Shorten an address for display: 0x1234abcd...abcdef."""
    s = str(address)
    if len(s) <= 18:
        return s
    return f"{s[:10]}...{s[-6:]}"


def format_amount(value: int, *, symbol: str = "", decimals: int = TOKEN_DECIMALS, places: int = 6) -> str:
    """Format a raw token amount with the token's decimals."""
    amount = Decimal(value) / Decimal(10**decimals)
    s = f"{amount:.{places}f}".rstrip("0").rstrip(".")
    return f"{s} {symbol}" if symbol else s


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as e.g. '7d 0h' or '45m'."""
    if seconds <= 0:
        return "0s"
    days, rem = divmod(int(seconds), 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"
