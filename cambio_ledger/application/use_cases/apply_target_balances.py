"""Apply operator-supplied end-of-day balances.

Operators sometimes report the real balance of a point from a screenshot of
the counted cash. For each target the use case computes the ledger balance
at the end of the business day and keeps a single manual adjustment
movement that closes the gap. Re-running with the same target rewrites that
movement instead of stacking new ones.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

from cambio_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
    UnitOfWorkPort,
)
from cambio_ledger.application.use_cases.calculate_balance import calculate_balance
from cambio_ledger.application.use_cases.record_ledger_movement import (
    build_ledger_movement,
)
from cambio_ledger.domain.constants import ADJUSTMENT_NOISE, ReferenceType
from cambio_ledger.domain.models import (
    BalanceSnapshot,
    Currency,
    MovementKind,
    PointOfAttention,
)
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger
from cambio_ledger.utils.decimal_utils import coerce_decimal, round_money
from cambio_ledger.utils.identifiers import new_id
from cambio_ledger.utils.timezone import DayRange, day_range_utc_from_date

ADJUSTMENT_DESCRIPTION = "AJUSTE SALDO FIN DIA {day} (pantallazo)"

APPLIED = "applied"
REMOVED = "removed"
UNCHANGED = "unchanged"
PENDING = "pending"
NOT_FOUND = "not_found"
AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class BalanceTarget:
    """Target balance for a point, identified by id or name fragment."""

    point: str
    amount: Decimal


@dataclass(frozen=True)
class TargetOutcome:
    """Result of applying one target."""

    target: BalanceTarget
    status: str
    point_id: str | None = None
    point_name: str | None = None
    calculated: Decimal | None = None
    adjustment: Decimal | None = None
    message: str = ""


@dataclass
class TargetReport:
    """Summary of a target-application run."""

    executed: bool
    day: date
    currency_code: str
    outcomes: list[TargetOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[TargetOutcome]:
        """Return targets that could not be matched to one point."""
        return [o for o in self.outcomes if o.status in (NOT_FOUND, AMBIGUOUS)]


def parse_target(raw: str) -> BalanceTarget:
    """Parse ``NAME:AMOUNT`` into a target.

    Raises:
        ValueError: If the separator or the amount is missing.
    """
    name, sep, amount = raw.rpartition(":")
    if not sep or not name.strip():
        raise ValueError(f"Expected NAME:AMOUNT, got {raw!r}")
    try:
        value = coerce_decimal(amount.strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount in {raw!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid amount in {raw!r}")
    return BalanceTarget(point=name.strip(), amount=round_money(value))


def match_points(
    points: list[PointOfAttention],
    query: str,
) -> list[PointOfAttention]:
    """Return points whose id equals, or name contains, the query."""
    by_id = [point for point in points if point.id == query]
    if by_id:
        return by_id
    needle = query.casefold()
    return [point for point in points if needle in point.name.casefold()]


class ApplyTargetBalancesUseCase:
    """Align ledger and snapshots with counted end-of-day balances."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        system_user_id: str,
        logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            system_user_id: User recorded on adjustments by default.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._system_user_id = system_user_id
        self._logger = logger or get_maintenance_logger()

    def run(
        self,
        targets: list[BalanceTarget],
        day: date,
        currency_code: str = "USD",
        execute: bool = False,
        user_id: str | None = None,
        allow_ambiguous: bool = False,
    ) -> TargetReport:
        """Apply each target for a business day.

        Args:
            targets: Points and their counted balances.
            day: Business day the balances refer to.
            currency_code: Currency of every target.
            execute: Write the changes; otherwise only compute them.
            user_id: User recorded on the adjustments.
            allow_ambiguous: Apply a fragment to every point it matches.

        Returns:
            TargetReport: One outcome per applied point or failed target.

        Raises:
            ValueError: If the currency code is unknown.
        """
        report = TargetReport(executed=execute, day=day, currency_code=currency_code)
        day_range = day_range_utc_from_date(day)
        with self._uow.transaction() as repository:
            currency = repository.find_currency_by_code(currency_code)
            if currency is None:
                raise ValueError(f"Unknown currency code {currency_code}")
            points = repository.list_points(include_inactive=True)

        for target in targets:
            matches = match_points(points, target.point)
            if not matches:
                self._logger.warning(f"No point matches {target.point!r}")
                report.outcomes.append(
                    TargetOutcome(
                        target=target,
                        status=NOT_FOUND,
                        message="No point matches",
                    )
                )
                continue
            if len(matches) > 1 and not allow_ambiguous:
                names = ", ".join(point.name for point in matches)
                self._logger.warning(f"{target.point!r} is ambiguous: {names}")
                report.outcomes.append(
                    TargetOutcome(
                        target=target,
                        status=AMBIGUOUS,
                        message=f"Matches {names}",
                    )
                )
                continue
            for point in matches:
                with self._uow.transaction() as repository:
                    report.outcomes.append(
                        self._apply(
                            repository,
                            target,
                            point,
                            currency,
                            day,
                            day_range,
                            execute,
                            user_id or self._system_user_id,
                        )
                    )
        return report

    def _apply(
        self,
        repository: LedgerRepositoryPort,
        target: BalanceTarget,
        point: PointOfAttention,
        currency: Currency,
        day: date,
        day_range: DayRange,
        execute: bool,
        user_id: str,
    ) -> TargetOutcome:
        description = ADJUSTMENT_DESCRIPTION.format(day=day.isoformat())
        existing = repository.find_movement(
            point.id,
            currency.id,
            reference_type=ReferenceType.AJUSTE_MANUAL.value,
            description=description,
            since=day_range.gte,
            until=day_range.lt,
        )
        calculated = calculate_balance(
            repository,
            point.id,
            currency.id,
            until=day_range.lt,
            exclude_movement_ids=[existing.id] if existing else [],
            logger=self._logger,
        )
        needed = round_money(target.amount - calculated)

        if abs(needed) < ADJUSTMENT_NOISE:
            status = REMOVED if existing is not None else UNCHANGED
        elif existing is not None and round_money(existing.amount) == needed:
            status = UNCHANGED
        else:
            status = APPLIED
        if not execute and status != UNCHANGED:
            status = PENDING

        self._logger.info(
            f"{point.name} [{currency.code}] {day}: calculated={calculated} "
            f"target={target.amount} adjustment={needed} status={status}"
        )
        if execute:
            self._write(
                repository,
                point,
                currency,
                target,
                calculated,
                needed,
                existing,
                description,
                day_range,
                user_id,
            )

        return TargetOutcome(
            target=target,
            status=status,
            point_id=point.id,
            point_name=point.name,
            calculated=calculated,
            adjustment=needed,
        )

    def _write(
        self,
        repository: LedgerRepositoryPort,
        point: PointOfAttention,
        currency: Currency,
        target: BalanceTarget,
        calculated: Decimal,
        needed: Decimal,
        existing,
        description: str,
        day_range: DayRange,
        user_id: str,
    ) -> None:
        if abs(needed) < ADJUSTMENT_NOISE:
            if existing is not None:
                repository.delete_movements([existing.id])
        else:
            movement = build_ledger_movement(
                point_id=point.id,
                currency_id=currency.id,
                kind=MovementKind.AJUSTE,
                amount=needed,
                balance_before=calculated,
                balance_after=target.amount,
                description=description,
                reference_type=ReferenceType.AJUSTE_MANUAL,
                user_id=user_id,
                created_at=day_range.lt - timedelta(milliseconds=1),
                movement_id=existing.id if existing else None,
            )
            if existing is not None:
                repository.update_movement(movement)
            else:
                repository.add_movement(movement)

        now = datetime.now(timezone.utc)
        snapshot = repository.get_snapshot(point.id, currency.id)
        if snapshot is None:
            snapshot = BalanceSnapshot(
                id=new_id(),
                point_id=point.id,
                currency_id=currency.id,
                amount=target.amount,
            )
        repository.save_snapshot(
            replace(
                snapshot,
                amount=target.amount,
                notes=target.amount,
                coins=round_money(0),
                updated_at=now,
            )
        )


__all__ = [
    "ADJUSTMENT_DESCRIPTION",
    "BalanceTarget",
    "TargetOutcome",
    "TargetReport",
    "parse_target",
    "match_points",
    "ApplyTargetBalancesUseCase",
]
