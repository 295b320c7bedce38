"""Batch recalculation of balance snapshots across points.

The batch replays the balance calculation for every selected
(point, currency) pair. Dry runs only report the corrections; execute runs
apply each one in its own transaction through the reconciliation use case.
One pair failing never stops the batch; the error is collected instead.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from cambio_ledger.application.ports.ledger_repository import UnitOfWorkPort
from cambio_ledger.application.use_cases.calculate_balance import calculate_balance
from cambio_ledger.application.use_cases.reconcile_balances import (
    ReconcileBalancesUseCase,
    is_balanced,
)
from cambio_ledger.domain.models import Currency, PointOfAttention
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger
from cambio_ledger.utils.decimal_utils import round_money


@dataclass(frozen=True)
class BalanceCorrection:
    """Snapshot that differs from the calculated balance."""

    point_id: str
    point_name: str
    currency_id: str
    currency_code: str
    before: Decimal
    after: Decimal

    @property
    def diff(self) -> Decimal:
        """Return ``before - after``."""
        return self.before - self.after


@dataclass
class RecalculationReport:
    """Summary of a recalculation batch."""

    executed: bool
    points_processed: int = 0
    pairs_checked: int = 0
    corrections: list[BalanceCorrection] = field(default_factory=list)
    applied: int = 0
    errors: list[str] = field(default_factory=list)


class RecalculateBalancesUseCase:
    """Detect and fix snapshot drift for many (point, currency) pairs."""

    def __init__(self, uow: UnitOfWorkPort, logger=None) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._logger = logger or get_maintenance_logger()
        self._reconciler = ReconcileBalancesUseCase(uow, logger=self._logger)

    def run(
        self,
        execute: bool = False,
        point_id: str | None = None,
        currency_codes: Iterable[str] | None = ("USD",),
        include_inactive: bool = False,
        limit: int | None = None,
    ) -> RecalculationReport:
        """Run the batch.

        Args:
            execute: Apply corrections; otherwise only report them.
            point_id: Restrict to one point.
            currency_codes: Currencies to process; ``None`` means every
                active currency.
            include_inactive: Include inactive points.
            limit: Maximum number of points to process.

        Returns:
            RecalculationReport: Corrections found, applied, and errors.
        """
        report = RecalculationReport(executed=execute)
        points, currencies = self._select(
            point_id,
            currency_codes,
            include_inactive,
            limit,
        )
        self._logger.info(
            f"Recalculating {len(points)} points x {len(currencies)} currencies "
            f"(execute={execute})"
        )

        for point in points:
            report.points_processed += 1
            for currency in currencies:
                report.pairs_checked += 1
                try:
                    correction = self._check(point, currency)
                    if correction is None:
                        continue
                    report.corrections.append(correction)
                    if execute:
                        result = self._reconciler.reconcile_one(point.id, currency.id)
                        if result.corrected:
                            report.applied += 1
                except Exception as exc:
                    message = f"{point.name} [{currency.code}]: {exc}"
                    self._logger.error(f"Recalculation failed for {message}")
                    report.errors.append(message)

        self._logger.info(
            f"Recalculation finished: {len(report.corrections)} corrections, "
            f"{report.applied} applied, {len(report.errors)} errors"
        )
        return report

    def _select(
        self,
        point_id: str | None,
        currency_codes: Iterable[str] | None,
        include_inactive: bool,
        limit: int | None,
    ) -> tuple[list[PointOfAttention], list[Currency]]:
        with self._uow.transaction() as repository:
            if point_id:
                point = repository.get_point(point_id)
                points = [point] if point is not None else []
            else:
                points = repository.list_points(include_inactive=include_inactive)
            if limit is not None:
                points = points[:limit]

            if currency_codes is None:
                currencies = repository.list_currencies()
            else:
                currencies = []
                for code in currency_codes:
                    currency = repository.find_currency_by_code(code)
                    if currency is None:
                        self._logger.warning(f"Unknown currency code {code}")
                        continue
                    currencies.append(currency)
        return points, currencies

    def _check(
        self,
        point: PointOfAttention,
        currency: Currency,
    ) -> BalanceCorrection | None:
        with self._uow.transaction() as repository:
            snapshot = repository.get_snapshot(point.id, currency.id)
            calculated = calculate_balance(
                repository,
                point.id,
                currency.id,
                logger=self._logger,
            )
        before = round_money(snapshot.amount if snapshot is not None else 0)
        if is_balanced(before, calculated):
            return None
        return BalanceCorrection(
            point_id=point.id,
            point_name=point.name,
            currency_id=currency.id,
            currency_code=currency.code,
            before=before,
            after=calculated,
        )


__all__ = [
    "BalanceCorrection",
    "RecalculationReport",
    "RecalculateBalancesUseCase",
]
