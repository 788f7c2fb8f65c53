from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

DEFAULT_DECIMALS = 6


def utc_now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def format_amount(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render a smallest-unit integer as a fixed-point display string.

    Pure integer arithmetic: format_amount(12_500_000) == "12.500000".
    Display only; never feed the result back into a contract call.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"amount must be an int in smallest units, got {type(amount).__name__}")
    if decimals < 0:
        raise ValueError("decimals must be >= 0")

    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10 ** decimals)
    if decimals == 0:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac:0{decimals}d}"


def parse_amount(amount: Union[str, int, float, Decimal], decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a display amount to smallest units, truncating any remainder.

    parse_amount("12.5") == 12_500_000 and parse_amount("0.0000019") == 1.
    Floats go through their shortest repr so 12.5 and "12.5" agree.
    """
    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    if isinstance(amount, bool):
        raise TypeError("amount must be numeric, not bool")

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)
