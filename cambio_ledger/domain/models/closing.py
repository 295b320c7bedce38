"""Cash counts, day closures and operator shifts."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any


class DayAlreadyClosedError(RuntimeError):
    """Raised when a (point, day) already has a closed day closure."""


@dataclass(frozen=True)
class CashCount:
    """Cash-count header for a point and business day."""

    id: str
    point_id: str
    user_id: str
    state: str
    opened_at: datetime
    closed_at: datetime | None = None
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_movements: int = 0
    observations: str | None = None


@dataclass(frozen=True)
class CashCountDetail:
    """Per-currency line of a cash count.

    Attributes:
        opening_balance: Balance at the start of the period.
        theoretical_balance: Balance computed from the ledger.
        physical_count: Counted cash.
        notes: Counted cash in notes.
        coins: Counted cash in coins.
        difference: ``physical_count - theoretical_balance`` rounded to cents.
        bank_theoretical: Expected bank bucket, when tracked.
        bank_physical: Bank bucket reported by the operator, if any.
        bank_difference: ``bank_physical - bank_theoretical``.
    """

    id: str
    cash_count_id: str
    currency_id: str
    opening_balance: Decimal
    theoretical_balance: Decimal
    physical_count: Decimal
    notes: Decimal
    coins: Decimal
    difference: Decimal
    income_total: Decimal = Decimal("0")
    expense_total: Decimal = Decimal("0")
    movement_count: int = 0
    bank_theoretical: Decimal = Decimal("0")
    bank_physical: Decimal | None = None
    bank_difference: Decimal = Decimal("0")
    justification: str | None = None


@dataclass(frozen=True)
class DayClosure:
    """Closure of one business day at a point; unique per (point, day)."""

    id: str
    point_id: str
    day: date
    user_id: str
    state: str
    discrepancies: list[dict[str, Any]] = field(default_factory=list)
    closed_at: datetime | None = None
    closed_by: str | None = None
    observations: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Shift:
    """Operator shift ("jornada") at a point."""

    id: str
    user_id: str
    point_id: str
    state: str
    started_at: datetime
    ended_at: datetime | None = None
    notes: str | None = None


__all__ = [
    "CashCount",
    "CashCountDetail",
    "DayAlreadyClosedError",
    "DayClosure",
    "Shift",
]
