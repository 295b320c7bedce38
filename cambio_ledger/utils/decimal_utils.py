"""Helpers for Decimal normalization."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to Decimal.

    Args:
        value: Raw numeric value from SQL, adapters or user input.

    Returns:
        Decimal: Normalized numeric value.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """Round a monetary value to two decimals (half up).

    Args:
        value: Raw numeric value.

    Returns:
        Decimal: Value quantized to cents.
    """
    return coerce_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def is_finite_amount(value) -> bool:
    """Return True when the value is a finite Decimal-compatible number."""
    return coerce_decimal(value).is_finite()


__all__ = ["CENT", "coerce_decimal", "round_money", "is_finite_amount"]
