"""Tests for end-of-day target balances."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from cambio_ledger.application.use_cases.apply_target_balances import (
    ApplyTargetBalancesUseCase,
    BalanceTarget,
    parse_target,
)
from cambio_ledger.application.use_cases.calculate_balance import (
    CalculateBalanceUseCase,
)
from cambio_ledger.utils.timezone import day_range_utc_from_date

DAY = date(2025, 3, 10)
DAY_RANGE = day_range_utc_from_date(DAY)


@pytest.fixture
def targets_setup(seed):
    """Two points with known USD balances on DAY."""
    usd = seed.currency("USD")
    system_user = seed.user("SYSTEM", role="ADMIN")
    plaza = seed.point("Plaza del Valle")
    plaza_norte = seed.point("Plaza Norte")
    amazonas = seed.point("Amazonas")
    for point in (plaza, plaza_norte, amazonas):
        seed.initial_balance(point, usd, 100, DAY_RANGE.gte - timedelta(days=1))
        seed.snapshot(point, usd, 100)
    seed.movement(amazonas, usd, "INGRESO", 20, DAY_RANGE.gte + timedelta(hours=3))
    return {
        "usd": usd,
        "system_user": system_user,
        "plaza": plaza,
        "amazonas": amazonas,
    }


def test_parse_target() -> None:
    """NAME:AMOUNT splits on the last colon."""
    target = parse_target("Plaza: Valle:1250.4")

    assert target == BalanceTarget(point="Plaza: Valle", amount=Decimal("1250.40"))
    with pytest.raises(ValueError):
        parse_target("Plaza")


def test_apply_is_idempotent(targets_setup, uow, logger) -> None:
    """Re-applying a target rewrites the same adjustment."""
    use_case = ApplyTargetBalancesUseCase(uow, targets_setup["system_user"], logger)
    targets = [BalanceTarget("amazonas", Decimal("115.50"))]
    usd, point = targets_setup["usd"], targets_setup["amazonas"]

    first = use_case.run(targets, DAY, execute=True)
    second = use_case.run(targets, DAY, execute=True)

    assert first.outcomes[0].status == "applied"
    assert first.outcomes[0].calculated == Decimal("120.00")
    assert first.outcomes[0].adjustment == Decimal("-4.50")
    assert second.outcomes[0].status == "unchanged"
    with uow.transaction() as repo:
        adjustments = [
            m for m in repo.list_movements(point, usd) if m.kind == "AJUSTE"
        ]
        snapshot = repo.get_snapshot(point, usd)
    assert len(adjustments) == 1
    assert adjustments[0].description == "AJUSTE SALDO FIN DIA 2025-03-10 (pantallazo)"
    assert adjustments[0].created_at == DAY_RANGE.lt - timedelta(milliseconds=1)
    assert snapshot.amount == Decimal("115.50")
    assert snapshot.notes == Decimal("115.50")
    assert snapshot.coins == Decimal("0.00")
    assert CalculateBalanceUseCase(uow, logger).execute(point, usd) == Decimal(
        "115.50"
    )


def test_matching_target_removes_adjustment(targets_setup, uow, logger) -> None:
    """When the ledger already matches, the adjustment is deleted."""
    use_case = ApplyTargetBalancesUseCase(uow, targets_setup["system_user"], logger)
    usd, point = targets_setup["usd"], targets_setup["amazonas"]
    use_case.run([BalanceTarget("Amazonas", Decimal("110"))], DAY, execute=True)

    report = use_case.run(
        [BalanceTarget("Amazonas", Decimal("120"))],
        DAY,
        execute=True,
    )

    assert report.outcomes[0].status == "removed"
    with uow.transaction() as repo:
        kinds = [m.kind for m in repo.list_movements(point, usd)]
    assert kinds == ["INGRESO"]


def test_dry_run_and_ambiguous_names(targets_setup, uow, logger) -> None:
    """Ambiguous fragments fail unless allowed; dry runs do not write."""
    use_case = ApplyTargetBalancesUseCase(uow, targets_setup["system_user"], logger)

    report = use_case.run(
        [
            BalanceTarget("plaza", Decimal("90")),
            BalanceTarget("Nowhere", Decimal("1")),
            BalanceTarget(targets_setup["plaza"], Decimal("90")),
        ],
        DAY,
    )

    assert [o.status for o in report.outcomes] == [
        "ambiguous",
        "not_found",
        "pending",
    ]
    assert len(report.failed) == 2
    with uow.transaction() as repo:
        snapshot = repo.get_snapshot(targets_setup["plaza"], targets_setup["usd"])
    assert snapshot.amount == Decimal("100.00")

    allowed = use_case.run(
        [BalanceTarget("plaza", Decimal("90"))],
        DAY,
        allow_ambiguous=True,
    )
    assert len(allowed.outcomes) == 2


def test_unknown_currency_raises(targets_setup, uow, logger) -> None:
    """An unknown currency code is rejected up front."""
    use_case = ApplyTargetBalancesUseCase(uow, targets_setup["system_user"], logger)

    with pytest.raises(ValueError):
        use_case.run([], DAY, currency_code="XYZ")
