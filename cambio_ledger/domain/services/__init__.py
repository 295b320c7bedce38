"""Domain services package."""

from .cash_breakdown import CashSplit, normalize_cash_breakdown, split_cash_bank
from .movement_normalizer import normalize_movement_amount
from .movement_rules import (
    MovementValidationError,
    has_sufficient_balance,
    movement_delta,
    signed_amount_for,
    validate_movement,
)

__all__ = [
    "CashSplit",
    "MovementValidationError",
    "has_sufficient_balance",
    "movement_delta",
    "normalize_cash_breakdown",
    "normalize_movement_amount",
    "signed_amount_for",
    "split_cash_bank",
    "validate_movement",
]
