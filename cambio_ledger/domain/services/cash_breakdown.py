"""Cash bucket arithmetic (notes, coins and bank)."""

from dataclasses import dataclass
from decimal import Decimal

from cambio_ledger.utils.decimal_utils import round_money

_ZERO = Decimal("0")


@dataclass(frozen=True)
class CashSplit:
    """How an amount is split across cash notes, coins and bank."""

    notes: Decimal
    coins: Decimal
    bank: Decimal

    @property
    def cash(self) -> Decimal:
        """Return the physical cash portion (notes plus coins)."""
        return self.notes + self.coins

    @property
    def total(self) -> Decimal:
        """Return the full amount across buckets."""
        return self.notes + self.coins + self.bank


def _clamp(value, ceiling: Decimal) -> Decimal:
    return min(max(round_money(value), _ZERO), ceiling)


def split_cash_bank(amount, notes=None, coins=None, bank=None) -> CashSplit:
    """Split an amount across buckets without exceeding it.

    With no split supplied everything goes to notes. Otherwise the buckets
    are clamped in priority order bank, coins, notes so that their sum never
    exceeds ``amount``; any shortfall left by rounding is added to notes.

    Args:
        amount: Total amount of the operation.
        notes: Requested notes portion.
        coins: Requested coins portion.
        bank: Requested bank portion.

    Returns:
        CashSplit: Normalized split whose total equals ``amount``.
    """
    total = abs(round_money(amount))
    if notes is None and coins is None and bank is None:
        return CashSplit(notes=total, coins=_ZERO, bank=_ZERO)

    bank_part = _clamp(bank or 0, total)
    coins_part = _clamp(coins or 0, total - bank_part)
    notes_part = _clamp(notes or 0, total - bank_part - coins_part)
    shortfall = total - (bank_part + coins_part + notes_part)
    if shortfall > 0:
        notes_part += shortfall
    return CashSplit(notes=notes_part, coins=coins_part, bank=bank_part)


def normalize_cash_breakdown(physical, notes, coins) -> tuple[Decimal, Decimal]:
    """Make notes plus coins add up to the physical count.

    Buckets are rounded to cents and floored at zero. If their sum differs
    from the physical count they are scaled proportionally, and the rounding
    remainder is assigned to notes.

    Args:
        physical: Counted cash total.
        notes: Reported notes amount.
        coins: Reported coins amount.

    Returns:
        tuple[Decimal, Decimal]: Normalized ``(notes, coins)``.
    """
    target = max(round_money(physical), _ZERO)
    notes_value = max(round_money(notes or 0), _ZERO)
    coins_value = max(round_money(coins or 0), _ZERO)
    current = notes_value + coins_value
    if current == target:
        return notes_value, coins_value
    if current == 0:
        return target, _ZERO

    scaled_notes = round_money(notes_value * target / current)
    scaled_coins = round_money(coins_value * target / current)
    scaled_notes += target - (scaled_notes + scaled_coins)
    if scaled_notes < 0:
        scaled_coins += scaled_notes
        scaled_notes = _ZERO
    return scaled_notes, max(scaled_coins, _ZERO)


__all__ = ["CashSplit", "split_cash_bank", "normalize_cash_breakdown"]
