"""Tests for the SQLAlchemy ledger repository."""

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from cambio_ledger.domain.models import (
    DayAlreadyClosedError,
    DayClosure,
    LedgerMovement,
)
from cambio_ledger.infrastructure import schema

T0 = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)


def test_snapshot_save_is_an_upsert(seed, uow) -> None:
    """Saving twice keeps one row per (point, currency)."""
    point = seed.point()
    usd = seed.currency("USD")
    seed.snapshot(point, usd, 10)
    seed.snapshot(point, usd, 20)

    with uow.transaction() as repo:
        snapshots = repo.list_snapshots(point)

    assert len(snapshots) == 1
    assert snapshots[0].amount == Decimal("20.00")


def _closure(point: str, closure_id: str, state: str) -> DayClosure:
    return DayClosure(
        id=closure_id,
        point_id=point,
        day=date(2025, 3, 10),
        user_id="u1",
        state=state,
    )


def test_day_closure_key_rejects_raw_duplicates(seed, uow, engine) -> None:
    """The (point, day) key rejects a second row even outside the repository."""
    point = seed.point()
    with uow.transaction() as repo:
        repo.add_day_closure(_closure(point, "c1", "CERRADO"))

    with pytest.raises(IntegrityError):
        with engine.begin() as conn:
            conn.execute(
                schema.day_closures.insert().values(
                    id="c2",
                    point_id=point,
                    day=date(2025, 3, 10),
                    user_id="u1",
                    state="CERRADO",
                    discrepancies=[],
                )
            )


def test_add_day_closure_raises_on_duplicate(seed, uow) -> None:
    """A second insert for the same (point, day) fails and rolls back."""
    point = seed.point()
    with uow.transaction() as repo:
        repo.add_day_closure(_closure(point, "c1", "CERRADO"))

    with pytest.raises(DayAlreadyClosedError):
        with uow.transaction() as repo:
            repo.add_day_closure(_closure(point, "c2", "CERRADO"))

    with uow.transaction() as repo:
        assert repo.get_day_closure(point, date(2025, 3, 10)).id == "c1"


def test_close_day_closure_only_updates_open_rows(seed, uow) -> None:
    """The state guard refuses to overwrite a closed row."""
    point = seed.point()
    other = seed.point("Amazonas")
    with uow.transaction() as repo:
        repo.add_day_closure(_closure(point, "c1", "ABIERTO"))
        repo.add_day_closure(_closure(other, "c2", "CERRADO"))

    with uow.transaction() as repo:
        closed = repo.close_day_closure(_closure(point, "c1", "CERRADO"))
        overwritten = repo.close_day_closure(
            replace(_closure(other, "c2", "CERRADO"), user_id="u2")
        )

    assert closed is True
    assert overwritten is False
    with uow.transaction() as repo:
        assert repo.get_day_closure(point, date(2025, 3, 10)).state == "CERRADO"
        assert repo.get_day_closure(other, date(2025, 3, 10)).user_id == "u1"


def test_transaction_rolls_back_on_error(seed, uow) -> None:
    """Writes inside a failed transaction are discarded."""
    point = seed.point()
    usd = seed.currency("USD")

    with pytest.raises(RuntimeError):
        with uow.transaction() as repo:
            repo.add_movement(
                LedgerMovement(
                    id="m1",
                    point_id=point,
                    currency_id=usd,
                    kind="INGRESO",
                    amount=Decimal("5"),
                    balance_before=Decimal("0"),
                    balance_after=Decimal("5"),
                    description=None,
                    reference_type=None,
                    reference_id=None,
                    created_at=T0,
                )
            )
            raise RuntimeError("abort")

    with uow.transaction() as repo:
        assert repo.list_movements(point, usd) == []


def test_datetimes_round_trip_as_utc(seed, uow) -> None:
    """Stored timestamps come back timezone-aware in UTC."""
    point = seed.point()
    usd = seed.currency("USD")
    seed.movement(point, usd, "INGRESO", 1, T0)

    with uow.transaction() as repo:
        movement = repo.list_movements(point, usd)[0]

    assert movement.created_at == T0
    assert movement.created_at.tzinfo is not None


def test_scan_movements_is_newest_first(seed, uow) -> None:
    """Scans return the most recent rows first and honor the limit."""
    point = seed.point()
    usd = seed.currency("USD")
    seed.movement(point, usd, "INGRESO", 1, T0)
    newest = seed.movement(point, usd, "INGRESO", 2, T0.replace(hour=15))

    with uow.transaction() as repo:
        rows = repo.scan_movements(limit=1)

    assert [row.id for row in rows] == [newest]
