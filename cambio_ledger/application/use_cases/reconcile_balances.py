"""Reconcile balance snapshots against the ledger.

A snapshot is a cache of the calculated balance. Reconciling overwrites the
cached amount when it drifts more than a cent from the calculation; no
compensating ledger movement is written and the bucket breakdown is left
untouched.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal

from cambio_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
    UnitOfWorkPort,
)
from cambio_ledger.application.use_cases.calculate_balance import calculate_balance
from cambio_ledger.domain.constants import BALANCE_TOLERANCE
from cambio_ledger.domain.models import BalanceSnapshot
from cambio_ledger.infrastructure.logging.logger import get_app_logger
from cambio_ledger.utils.decimal_utils import coerce_decimal, round_money
from cambio_ledger.utils.identifiers import new_id


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of reconciling one (point, currency).

    Attributes:
        point_id: Point of attention.
        currency_id: Currency.
        before: Snapshot amount before reconciling.
        after: Calculated amount.
        diff: ``before - after``.
        corrected: Whether the snapshot was rewritten.
        movement_count: Movements considered since the cutover.
        error: Error message when reconciliation failed.
    """

    point_id: str
    currency_id: str
    before: Decimal
    after: Decimal
    diff: Decimal
    corrected: bool
    movement_count: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        """Return True when no error was recorded."""
        return self.error is None


@dataclass(frozen=True)
class PointReconciliation:
    """Per-currency results for one point."""

    point_id: str
    results: list[ReconciliationResult] = field(default_factory=list)

    @property
    def corrected_count(self) -> int:
        """Return how many snapshots were rewritten."""
        return sum(1 for result in self.results if result.corrected)

    @property
    def errors(self) -> list[ReconciliationResult]:
        """Return failed currencies."""
        return [result for result in self.results if not result.success]


@dataclass(frozen=True)
class InconsistencyRow:
    """Snapshot whose amount differs from the calculated balance."""

    point_id: str
    point_name: str
    currency_id: str
    currency_code: str
    snapshot_amount: Decimal
    calculated_amount: Decimal
    diff: Decimal


def is_balanced(snapshot_amount, calculated_amount) -> bool:
    """Return True when the two amounts agree within one cent."""
    diff = coerce_decimal(snapshot_amount) - coerce_decimal(calculated_amount)
    return abs(diff) <= BALANCE_TOLERANCE


def reconcile_snapshot(
    repository: LedgerRepositoryPort,
    point_id: str,
    currency_id: str,
    logger=None,
) -> ReconciliationResult:
    """Reconcile one snapshot inside an existing transaction.

    Args:
        repository: Transaction-bound ledger repository.
        point_id: Point of attention.
        currency_id: Currency.
        logger: Optional logger compatible with logging.Logger-like API.

    Returns:
        ReconciliationResult: Before/after amounts and whether it changed.
    """
    log = logger or get_app_logger()
    snapshot = repository.get_snapshot(point_id, currency_id)
    before = round_money(snapshot.amount) if snapshot is not None else round_money(0)
    after = calculate_balance(repository, point_id, currency_id, logger=log)
    diff = round_money(before - after)
    initial = repository.get_active_initial_balance(point_id, currency_id)
    movement_count = len(
        repository.list_movements(
            point_id,
            currency_id,
            since=initial.assigned_at if initial is not None else None,
        )
    )

    corrected = False
    if not is_balanced(before, after):
        now = datetime.now(timezone.utc)
        if snapshot is None:
            repository.save_snapshot(
                BalanceSnapshot(
                    id=new_id(),
                    point_id=point_id,
                    currency_id=currency_id,
                    amount=after,
                    updated_at=now,
                )
            )
        else:
            repository.save_snapshot(replace(snapshot, amount=after, updated_at=now))
        corrected = True
        log.warning(
            f"Snapshot corrected point_id={point_id} currency_id={currency_id} "
            f"before={before} after={after} diff={diff}"
        )

    return ReconciliationResult(
        point_id=point_id,
        currency_id=currency_id,
        before=before,
        after=after,
        diff=diff,
        corrected=corrected,
        movement_count=movement_count,
    )


class ReconcileBalancesUseCase:
    """Refresh cached balances from the ledger.

    Each (point, currency) is reconciled in its own transaction so one
    failure never blocks the others.
    """

    def __init__(self, uow: UnitOfWorkPort, logger=None) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._logger = logger or get_app_logger()

    def reconcile_one(self, point_id: str, currency_id: str) -> ReconciliationResult:
        """Reconcile a single snapshot.

        Storage errors propagate; use ``reconcile_all`` for the
        catch-and-report behavior. Missing identifiers fail closed with a
        zero result and nothing is written.
        """
        if not point_id or not currency_id:
            self._logger.warning(
                f"Invalid reconciliation request point_id={point_id!r} "
                f"currency_id={currency_id!r}"
            )
            zero = round_money(0)
            return ReconciliationResult(
                point_id=point_id,
                currency_id=currency_id,
                before=zero,
                after=zero,
                diff=zero,
                corrected=False,
                error="Missing point or currency id",
            )
        with self._uow.transaction() as repository:
            return reconcile_snapshot(
                repository,
                point_id,
                currency_id,
                logger=self._logger,
            )

    def reconcile_all(self, point_id: str) -> PointReconciliation:
        """Reconcile every currency that has a snapshot at a point.

        Args:
            point_id: Point of attention.

        Returns:
            PointReconciliation: One result per currency, including failures.
        """
        with self._uow.transaction() as repository:
            currency_ids = [
                snapshot.currency_id
                for snapshot in repository.list_snapshots(point_id)
            ]

        results = []
        for currency_id in currency_ids:
            try:
                results.append(self.reconcile_one(point_id, currency_id))
            except Exception as exc:
                self._logger.error(
                    f"Reconciliation failed point_id={point_id} "
                    f"currency_id={currency_id}: {exc}"
                )
                zero = round_money(0)
                results.append(
                    ReconciliationResult(
                        point_id=point_id,
                        currency_id=currency_id,
                        before=zero,
                        after=zero,
                        diff=zero,
                        corrected=False,
                        error=str(exc),
                    )
                )
        self._logger.info(
            f"Reconciled point_id={point_id}: {len(results)} currencies, "
            f"{sum(1 for r in results if r.corrected)} corrected"
        )
        return PointReconciliation(point_id=point_id, results=results)

    def report_inconsistencies(self) -> list[InconsistencyRow]:
        """List snapshots that exceed the tolerance, without writing.

        Returns:
            list[InconsistencyRow]: Out-of-tolerance snapshots system-wide.
        """
        rows = []
        with self._uow.transaction() as repository:
            for snapshot in repository.list_snapshots():
                calculated = calculate_balance(
                    repository,
                    snapshot.point_id,
                    snapshot.currency_id,
                    logger=self._logger,
                )
                amount = round_money(snapshot.amount)
                if is_balanced(amount, calculated):
                    continue
                point = repository.get_point(snapshot.point_id)
                currency = repository.get_currency(snapshot.currency_id)
                rows.append(
                    InconsistencyRow(
                        point_id=snapshot.point_id,
                        point_name=point.name if point else snapshot.point_id,
                        currency_id=snapshot.currency_id,
                        currency_code=(
                            currency.code if currency else snapshot.currency_id
                        ),
                        snapshot_amount=amount,
                        calculated_amount=calculated,
                        diff=round_money(amount - calculated),
                    )
                )
        self._logger.info(f"Found {len(rows)} inconsistent balance snapshots")
        return rows

    def is_balanced(self, point_id: str, currency_id: str) -> bool:
        """Return True when the snapshot agrees with the ledger."""
        with self._uow.transaction() as repository:
            snapshot = repository.get_snapshot(point_id, currency_id)
            calculated = calculate_balance(
                repository,
                point_id,
                currency_id,
                logger=self._logger,
            )
        amount = snapshot.amount if snapshot is not None else 0
        return is_balanced(amount, calculated)


__all__ = [
    "ReconciliationResult",
    "PointReconciliation",
    "InconsistencyRow",
    "is_balanced",
    "reconcile_snapshot",
    "ReconcileBalancesUseCase",
]
