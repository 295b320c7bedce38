"""Tests for the daily closing use case."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from cambio_ledger.application.use_cases.calculate_balance import (
    CalculateBalanceUseCase,
)
from cambio_ledger.application.use_cases.daily_closing import (
    ClosingDetailInput,
    ClosingRequest,
    DailyClosingUseCase,
)
from cambio_ledger.domain.models import ExchangeRecord
from cambio_ledger.infrastructure import schema
from cambio_ledger.infrastructure.ledger_repository import (
    SqlAlchemyLedgerRepository,
)
from cambio_ledger.utils.identifiers import new_id
from cambio_ledger.utils.timezone import day_range_utc_from_date

DAY = date(2025, 3, 10)
DAY_RANGE = day_range_utc_from_date(DAY)
MORNING = DAY_RANGE.gte + timedelta(hours=9)
NOW = DAY_RANGE.gte + timedelta(hours=18)


@pytest.fixture
def closing_setup(seed, uow):
    """A point with a USD balance of 150 and an operator on shift."""
    point = seed.point("Plaza del Valle")
    usd = seed.currency("USD")
    eur = seed.currency("EUR", display_order=1)
    operator = seed.user("operador1", role="OPERADOR", point_id=point)
    seed.initial_balance(point, usd, 100, DAY_RANGE.gte - timedelta(days=3))
    seed.snapshot(point, usd, 100)
    seed.movement(
        point,
        usd,
        "INGRESO",
        50,
        MORNING,
        description="Ingreso por cambio",
        balance_before=100,
        balance_after=150,
    )
    seed.shift(operator, point, MORNING - timedelta(hours=1))
    with uow.transaction() as repo:
        repo.add_exchange(
            ExchangeRecord(
                id=new_id(),
                point_id=point,
                origin_currency_id=usd,
                destination_currency_id=eur,
                origin_amount=Decimal("50"),
                destination_amount=Decimal("45"),
                state="COMPLETADO",
                operation_type="VENTA",
                receipt_number="R-1",
                created_at=MORNING,
            )
        )
    return {"point": point, "usd": usd, "eur": eur, "operator": operator}


def _use_case(uow, logger, **kwargs) -> DailyClosingUseCase:
    return DailyClosingUseCase(uow, logger, clock=lambda: NOW, **kwargs)


def _request(setup, physical, theoretical="150", **detail) -> ClosingRequest:
    return ClosingRequest(
        point_id=setup["point"],
        user_id=setup["operator"],
        day=DAY,
        details=[
            ClosingDetailInput(
                currency_id=setup["usd"],
                opening_balance=Decimal("100"),
                theoretical_balance=Decimal(theoretical),
                physical_count=Decimal(physical),
                income_total=Decimal("50"),
                movement_count=1,
                **detail,
            )
        ],
    )


def test_summarize_day_lists_touched_currencies(closing_setup, uow, logger) -> None:
    """Currencies come from the day's operations, ordered for display."""
    summary = _use_case(uow, logger).summarize_day(
        closing_setup["point"],
        DAY,
        user_id=closing_setup["operator"],
    )

    assert [c.code for c in summary.currencies] == ["USD", "EUR"]
    usd = summary.currencies[0]
    assert usd.opening_balance == Decimal("100.00")
    assert usd.theoretical_balance == Decimal("150.00")
    assert usd.income_total == Decimal("50.00")
    assert usd.expense_total == Decimal("0.00")
    assert usd.movement_count == 1
    assert summary.totals.exchanges == 1
    assert summary.prepared_by == closing_setup["operator"]


def test_perform_closing_records_discrepancy(closing_setup, uow, logger) -> None:
    """A short count is stored as a discrepancy and synced everywhere."""
    use_case = _use_case(uow, logger)

    result = use_case.perform_closing(
        _request(closing_setup, "148.50", notes=Decimal("140"), coins=Decimal("8.50"))
    )

    assert result.success
    assert result.shift_ended
    assert result.message == "Daily closing completed and shift ended"
    assert len(result.discrepancies) == 1
    assert result.discrepancies[0]["difference"] == -1.5

    point, usd = closing_setup["point"], closing_setup["usd"]
    with uow.transaction() as repo:
        details = repo.list_cash_count_details(result.cash_count_id)
        snapshot = repo.get_snapshot(point, usd)
        closure = repo.get_day_closure(point, DAY)
        shift = repo.find_active_shift(closing_setup["operator"], point)
    assert len(details) == 1
    assert details[0].difference == Decimal("-1.50")
    assert snapshot.amount == Decimal("148.50")
    assert snapshot.notes == Decimal("140.00")
    assert snapshot.coins == Decimal("8.50")
    assert closure.state == "CERRADO"
    assert closure.discrepancies[0]["currency_code"] == "USD"
    assert shift is None
    # The closing adjustment brings the ledger in line with the count.
    assert CalculateBalanceUseCase(uow, logger).execute(point, usd) == Decimal(
        "148.50"
    )


def test_second_closing_is_rejected(closing_setup, uow, logger) -> None:
    """CLOSED is terminal for a (point, day)."""
    use_case = _use_case(uow, logger)
    first = use_case.perform_closing(_request(closing_setup, "150"))

    second = use_case.perform_closing(_request(closing_setup, "150"))

    assert first.success
    assert first.message == "Daily closing completed and shift ended"
    assert not second.success
    assert second.code == "ALREADY_CLOSED"
    with uow.transaction() as repo:
        assert len(repo.list_cash_count_details(first.cash_count_id)) == 1


def test_closing_within_tolerance_writes_no_adjustment(
    closing_setup,
    uow,
    logger,
) -> None:
    """An exact count leaves the ledger untouched."""
    point, usd = closing_setup["point"], closing_setup["usd"]

    result = _use_case(uow, logger).perform_closing(_request(closing_setup, "150"))

    assert result.discrepancies == []
    with uow.transaction() as repo:
        movements = repo.list_movements(point, usd)
    assert len(movements) == 1


def test_closing_rolls_back_when_a_step_fails(
    closing_setup,
    uow,
    logger,
    monkeypatch,
) -> None:
    """A failure after the cash count is written leaves nothing behind."""
    point, usd = closing_setup["point"], closing_setup["usd"]

    def _boom(self, shift):
        raise RuntimeError("storage failure")

    monkeypatch.setattr(SqlAlchemyLedgerRepository, "save_shift", _boom)

    with pytest.raises(RuntimeError):
        _use_case(uow, logger).perform_closing(_request(closing_setup, "148.50"))

    with uow.transaction() as repo:
        assert repo.get_day_closure(point, DAY) is None
        assert (
            repo.find_cash_count(
                point,
                since=DAY_RANGE.gte,
                until=DAY_RANGE.lt,
                states=["ABIERTO", "PARCIAL", "CERRADO"],
            )
            is None
        )
        assert repo.get_snapshot(point, usd).amount == Decimal("100.00")
        assert len(repo.list_movements(point, usd)) == 1


def test_validation_codes(closing_setup, seed, uow, logger) -> None:
    """Each precondition maps to its own code."""
    use_case = _use_case(uow, logger)
    other_point = seed.point("Amazonas")
    closed_point = seed.point("Cerrado", is_active=False)

    assert use_case.validate_closure_possible(
        closing_setup["point"], DAY, closing_setup["operator"]
    ).ok
    assert (
        use_case.validate_closure_possible(
            other_point, DAY, closing_setup["operator"]
        ).code
        == "NO_PERMISSION"
    )
    assert (
        use_case.validate_closure_possible(
            closed_point, DAY, closing_setup["operator"]
        ).code
        == "POINT_INACTIVE"
    )
    assert (
        use_case.validate_closure_possible(closing_setup["point"], DAY, "ghost").code
        == "USER_NOT_FOUND"
    )


def test_partial_closing_checks_tolerance_and_breakdown(
    closing_setup,
    uow,
    logger,
) -> None:
    """Partial saves enforce tolerance and notes plus coins."""
    use_case = _use_case(uow, logger)

    too_far = use_case.save_partial_closing(_request(closing_setup, "148"))
    mismatch = use_case.save_partial_closing(
        _request(closing_setup, "149.50", notes=Decimal("100"), coins=Decimal("40"))
    )
    allowed = use_case.save_partial_closing(
        _request(closing_setup, "148"),
        allow_mismatch=True,
    )

    assert too_far.code == "DIFFERENCE_OUT_OF_TOLERANCE"
    assert mismatch.code == "BREAKDOWN_MISMATCH"
    assert allowed.success
    point, usd = closing_setup["point"], closing_setup["usd"]
    with uow.transaction() as repo:
        assert repo.get_day_closure(point, DAY) is None
        assert repo.get_snapshot(point, usd).amount == Decimal("100.00")
        assert repo.find_active_shift(closing_setup["operator"], point) is not None
    next_day = DAY_RANGE.lt
    assert use_case.compute_opening_balance(point, usd, next_day) == Decimal(
        "148.00"
    )


def test_partial_then_full_closing_reuses_cash_count(
    closing_setup,
    uow,
    logger,
) -> None:
    """The full close upgrades the day's partial count."""
    use_case = _use_case(uow, logger)
    partial = use_case.save_partial_closing(_request(closing_setup, "150"))

    final = use_case.perform_closing(_request(closing_setup, "150"))

    assert final.cash_count_id == partial.cash_count_id


def test_closure_status_reports_closer(closing_setup, uow, logger) -> None:
    """Status exposes state, closer and stored discrepancies."""
    use_case = _use_case(uow, logger)
    assert not use_case.get_closure_status(closing_setup["point"], DAY).exists

    use_case.perform_closing(_request(closing_setup, "148.50"))
    status = use_case.get_closure_status(closing_setup["point"], DAY)

    assert status.exists
    assert status.state == "CERRADO"
    assert status.closed_by_name == "Operador1"
    assert status.discrepancies[0]["difference"] == -1.5


def _closed_cash_counts(engine, point: str) -> int:
    table = schema.cash_counts
    with engine.connect() as conn:
        return conn.execute(
            select(func.count())
            .select_from(table)
            .where(table.c.point_id == point, table.c.state == "CERRADO")
        ).scalar_one()


def test_racing_close_after_stale_precheck_is_rejected(
    closing_setup,
    uow,
    engine,
    logger,
    monkeypatch,
) -> None:
    """A close that missed the committed closure fails on the unique key."""
    use_case = _use_case(uow, logger)
    first = use_case.perform_closing(_request(closing_setup, "150"))
    stale = [True]
    real_get = SqlAlchemyLedgerRepository.get_day_closure

    def _stale_get(self, point_id, day):
        return None if stale[0] else real_get(self, point_id, day)

    monkeypatch.setattr(SqlAlchemyLedgerRepository, "get_day_closure", _stale_get)

    second = use_case.perform_closing(_request(closing_setup, "140"))
    stale[0] = False

    assert first.success
    assert not second.success
    assert second.code == "ALREADY_CLOSED"
    assert _closed_cash_counts(engine, closing_setup["point"]) == 1
    with uow.transaction() as repo:
        closure = repo.get_day_closure(closing_setup["point"], DAY)
        snapshot = repo.get_snapshot(closing_setup["point"], closing_setup["usd"])
    assert closure.id == first.closure_id
    assert snapshot.amount == Decimal("150.00")


def test_racing_close_cannot_overwrite_closed_row(
    closing_setup,
    uow,
    engine,
    logger,
    monkeypatch,
) -> None:
    """A close that read the closure as still open is refused by the state guard."""
    use_case = _use_case(uow, logger)
    first = use_case.perform_closing(_request(closing_setup, "150"))
    real_get = SqlAlchemyLedgerRepository.get_day_closure

    def _open_get(self, point_id, day):
        closure = real_get(self, point_id, day)
        return replace(closure, state="ABIERTO") if closure else None

    monkeypatch.setattr(SqlAlchemyLedgerRepository, "get_day_closure", _open_get)

    second = use_case.perform_closing(_request(closing_setup, "140"))

    assert first.success
    assert not second.success
    assert second.code == "ALREADY_CLOSED"
    assert _closed_cash_counts(engine, closing_setup["point"]) == 1
