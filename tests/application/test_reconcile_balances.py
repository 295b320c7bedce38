"""Tests for snapshot reconciliation."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from cambio_ledger.application.use_cases.reconcile_balances import (
    ReconcileBalancesUseCase,
)

T0 = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)


def _seed_scenario(seed):
    point = seed.point()
    usd = seed.currency("USD")
    seed.initial_balance(point, usd, 100, T0)
    seed.movement(point, usd, "INGRESO", 50, T0 + timedelta(hours=1))
    seed.movement(
        point,
        usd,
        "EGRESO",
        20,
        T0 + timedelta(hours=2),
        description="Depósito en bancos",
    )
    seed.snapshot(point, usd, 130, notes=100, coins=30, bank=5)
    return point, usd


def test_reconcile_one_rewrites_drifted_snapshot(seed, uow, logger) -> None:
    """A drifted snapshot is set to the calculated balance."""
    point, usd = _seed_scenario(seed)
    use_case = ReconcileBalancesUseCase(uow, logger)

    result = use_case.reconcile_one(point, usd)

    assert result.before == Decimal("130.00")
    assert result.after == Decimal("150.00")
    assert result.diff == Decimal("-20.00")
    assert result.corrected is True
    assert result.success
    with uow.transaction() as repo:
        snapshot = repo.get_snapshot(point, usd)
    assert snapshot.amount == Decimal("150.00")
    # Buckets are left alone.
    assert snapshot.notes == Decimal("100.00")
    assert snapshot.coins == Decimal("30.00")
    assert snapshot.bank == Decimal("5.00")


def test_reconcile_one_is_idempotent(seed, uow, logger) -> None:
    """A second run with no new movements changes nothing."""
    point, usd = _seed_scenario(seed)
    use_case = ReconcileBalancesUseCase(uow, logger)

    use_case.reconcile_one(point, usd)
    second = use_case.reconcile_one(point, usd)

    assert second.corrected is False
    assert second.diff == Decimal("0.00")
    assert use_case.is_balanced(point, usd)


def test_reconcile_creates_missing_snapshot(seed, uow, logger) -> None:
    """A missing snapshot counts as zero and is created."""
    point = seed.point()
    usd = seed.currency("USD")
    seed.movement(point, usd, "INGRESO", 12, T0)

    result = ReconcileBalancesUseCase(uow, logger).reconcile_one(point, usd)

    assert result.before == Decimal("0.00")
    assert result.corrected is True
    with uow.transaction() as repo:
        assert repo.get_snapshot(point, usd).amount == Decimal("12.00")


def test_reconcile_all_collects_errors_per_currency(
    seed,
    uow,
    logger,
    monkeypatch,
) -> None:
    """One failing currency does not stop the others."""
    point, usd = _seed_scenario(seed)
    eur = seed.currency("EUR", display_order=1)
    seed.snapshot(point, eur, 10)
    use_case = ReconcileBalancesUseCase(uow, logger)
    original = use_case.reconcile_one

    def _flaky(point_id, currency_id):
        if currency_id == eur:
            raise RuntimeError("connection lost")
        return original(point_id, currency_id)

    monkeypatch.setattr(use_case, "reconcile_one", _flaky)

    outcome = use_case.reconcile_all(point)

    assert len(outcome.results) == 2
    assert outcome.corrected_count == 1
    assert [r.currency_id for r in outcome.errors] == [eur]
    assert outcome.errors[0].error == "connection lost"


def test_report_inconsistencies_does_not_write(seed, uow, logger) -> None:
    """The report lists drift without touching snapshots."""
    point, usd = _seed_scenario(seed)

    rows = ReconcileBalancesUseCase(uow, logger).report_inconsistencies()

    assert len(rows) == 1
    assert rows[0].currency_code == "USD"
    assert rows[0].diff == Decimal("-20.00")
    with uow.transaction() as repo:
        assert repo.get_snapshot(point, usd).amount == Decimal("130.00")


def test_corrupt_row_does_not_wipe_snapshot(seed, uow, engine, logger) -> None:
    """A non-finite movement is skipped and a correct snapshot is kept."""
    point = seed.point()
    usd = seed.currency("USD")
    seed.initial_balance(point, usd, 100, T0)
    seed.movement(point, usd, "INGRESO", 50, T0 + timedelta(hours=1))
    corrupt = seed.movement(point, usd, "INGRESO", 1, T0 + timedelta(hours=2))
    seed.snapshot(point, usd, 150)
    with engine.begin() as conn:
        conn.exec_driver_sql(
            "UPDATE ledger_movements SET amount = 9e999 WHERE id = ?",
            (corrupt,),
        )

    result = ReconcileBalancesUseCase(uow, logger).reconcile_one(point, usd)

    assert result.before == Decimal("150.00")
    assert result.after == Decimal("150.00")
    assert result.corrected is False


def test_reconcile_one_with_missing_ids_writes_nothing(seed, uow, logger) -> None:
    """Empty identifiers fail closed with a zero result."""
    result = ReconcileBalancesUseCase(uow, logger).reconcile_one("", "")

    assert result.corrected is False
    assert result.after == Decimal("0.00")
    assert result.error is not None
    logger.warning.assert_called_once()
    with uow.transaction() as repo:
        assert repo.list_snapshots() == []
