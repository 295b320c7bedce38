"""Validation rules for writing ledger movements."""

from decimal import Decimal

from cambio_ledger.domain.constants import BALANCE_TOLERANCE
from cambio_ledger.domain.models import (
    WRITABLE_KINDS,
    MovementKind,
    UnknownMovementKind,
    parse_movement_kind,
)
from cambio_ledger.utils.decimal_utils import coerce_decimal, round_money


class MovementValidationError(ValueError):
    """Raised when a movement is inconsistent with its recorded balances."""


def _writable_kind(kind: str | MovementKind) -> MovementKind:
    parsed = kind if isinstance(kind, MovementKind) else parse_movement_kind(kind)
    if isinstance(parsed, UnknownMovementKind) or parsed not in WRITABLE_KINDS:
        raise MovementValidationError(f"Unsupported movement kind: {kind}")
    return parsed


def signed_amount_for(kind: str | MovementKind, amount) -> Decimal:
    """Return the amount with the sign stored for a writable kind.

    Args:
        kind: INGRESO, EGRESO, AJUSTE or SALDO_INICIAL.
        amount: Raw amount (any sign).

    Returns:
        Decimal: ``+|x|`` for income and initial balance, ``-|x|`` for
        expense, the amount unchanged for adjustments.

    Raises:
        MovementValidationError: If the kind cannot be written.
    """
    parsed = _writable_kind(kind)
    value = coerce_decimal(amount)
    if parsed is MovementKind.EGRESO:
        return -abs(value)
    if parsed is MovementKind.AJUSTE:
        return value
    return abs(value)


def movement_delta(kind: str | MovementKind, amount) -> Decimal:
    """Return the balance delta produced by a writable movement."""
    return signed_amount_for(kind, amount)


def has_sufficient_balance(current, amount) -> bool:
    """Return True when ``current`` covers an outgoing ``amount``."""
    return coerce_decimal(current) - abs(coerce_decimal(amount)) >= 0


def validate_movement(
    kind: str | MovementKind,
    amount,
    balance_before,
    balance_after,
) -> Decimal:
    """Check a movement against its before/after balances.

    Args:
        kind: Writable movement kind.
        amount: Raw amount.
        balance_before: Balance before applying the movement.
        balance_after: Balance after applying the movement.

    Returns:
        Decimal: The signed amount to persist.

    Raises:
        MovementValidationError: If the amount is zero for a non-adjustment
            kind or if the balances disagree with the signed amount.
    """
    parsed = _writable_kind(kind)
    value = coerce_decimal(amount)
    if not value.is_finite():
        raise MovementValidationError(f"Amount is not a finite number: {amount}")
    if value == 0 and parsed is not MovementKind.AJUSTE:
        raise MovementValidationError(
            f"Amount must be non-zero for {parsed.value} movements"
        )
    signed = signed_amount_for(parsed, value)
    delta = coerce_decimal(balance_after) - coerce_decimal(balance_before)
    if abs(delta - signed) > BALANCE_TOLERANCE:
        raise MovementValidationError(
            f"Balance change {round_money(delta)} does not match "
            f"{parsed.value} amount {round_money(signed)}"
        )
    return signed


__all__ = [
    "MovementValidationError",
    "signed_amount_for",
    "movement_delta",
    "has_sufficient_balance",
    "validate_movement",
]
