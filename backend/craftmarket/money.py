from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

_CENT = Decimal("0.01")


def format_cents(cents: int | None) -> str | None:
    """1234 -> "12.34". Exact; never goes through float."""
    if cents is None:
        return None
    return str((Decimal(cents) / 100).quantize(_CENT))


def to_cents(value) -> int:
    """
    Parse a money amount ("12.5", 12.5, Decimal("12.50")) into integer cents.

    Raises ValueError for non-numeric, negative or out-of-range input.
    """
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    try:
        amount = Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValueError("price must be a number")
    cents = int(amount * 100)
    if cents < 0:
        raise ValueError("price must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValueError(f"price cannot exceed {format_cents(MAX_PRICE_CENTS)}")
    return cents
