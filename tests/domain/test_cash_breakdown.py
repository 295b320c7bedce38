"""Tests for cash bucket arithmetic."""

from decimal import Decimal

from cambio_ledger.domain.services import normalize_cash_breakdown, split_cash_bank


def test_split_defaults_to_notes() -> None:
    """Without a breakdown the whole amount is notes."""
    split = split_cash_bank(Decimal("12.50"))

    assert split.notes == Decimal("12.50")
    assert split.coins == 0
    assert split.bank == 0


def test_split_clamps_bank_first_and_tops_up_notes() -> None:
    """Bank and coins are clamped; the remainder goes to notes."""
    split = split_cash_bank(Decimal("10"), notes=None, coins=Decimal("1"), bank=Decimal("15"))

    assert split.bank == Decimal("10.00")
    assert split.coins == 0
    assert split.notes == 0
    assert split.total == Decimal("10.00")

    partial = split_cash_bank(Decimal("10"), notes=Decimal("2"), coins=Decimal("1"))
    assert partial.notes == Decimal("9.00")
    assert partial.coins == Decimal("1.00")
    assert partial.cash == Decimal("10.00")


def test_normalize_breakdown_scales_to_physical_count() -> None:
    """Notes plus coins are rescaled to match the counted total."""
    notes, coins = normalize_cash_breakdown(Decimal("100"), Decimal("60"), Decimal("20"))

    assert notes + coins == Decimal("100.00")
    assert coins == Decimal("25.00")
    assert notes == Decimal("75.00")


def test_normalize_breakdown_without_buckets_uses_notes() -> None:
    """Missing buckets put everything in notes."""
    assert normalize_cash_breakdown(Decimal("48.5"), None, None) == (
        Decimal("48.50"),
        Decimal("0"),
    )
