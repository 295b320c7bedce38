"""Backfill ledger rows stored with a sign that contradicts their kind.

Older writers persisted some egress amounts as positive values and some
income amounts as negative ones. A row is only rewritten when its own
recorded before/after balances agree with the corrected sign; anything else
is reported and left alone for manual review.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from cambio_ledger.application.ports.ledger_repository import UnitOfWorkPort
from cambio_ledger.domain.constants import BALANCE_TOLERANCE, SIGN_NOISE
from cambio_ledger.domain.models import LedgerMovement, MovementKind
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger
from cambio_ledger.utils.decimal_utils import coerce_decimal, round_money

NEGATIVE_KINDS = frozenset(
    {
        MovementKind.EGRESO,
        MovementKind.TRANSFERENCIA_SALIENTE,
        MovementKind.TRANSFERENCIA_SALIDA,
    }
)
POSITIVE_KINDS = frozenset(
    {
        MovementKind.INGRESO,
        MovementKind.SALDO_INICIAL,
        MovementKind.TRANSFERENCIA_ENTRANTE,
        MovementKind.TRANSFERENCIA_ENTRADA,
        MovementKind.TRANSFERENCIA_DEVOLUCION,
    }
)


@dataclass(frozen=True)
class SignFix:
    """Ledger row with a contradicting sign."""

    movement_id: str
    point_id: str
    currency_id: str
    kind: str
    amount: Decimal
    corrected_amount: Decimal
    confirmed: bool


@dataclass
class SignFixReport:
    """Summary of a sign backfill run."""

    executed: bool
    scanned: int = 0
    fixes: list[SignFix] = field(default_factory=list)
    applied: int = 0

    @property
    def skipped(self) -> list[SignFix]:
        """Return rows whose recorded delta does not confirm the fix."""
        return [fix for fix in self.fixes if not fix.confirmed]


def inspect_sign(movement: LedgerMovement) -> SignFix | None:
    """Return a fix when the stored sign contradicts the kind.

    Args:
        movement: Ledger row to inspect.

    Returns:
        SignFix | None: ``None`` when the sign is already right, the kind is
        not covered, or the amount is noise.
    """
    kind = movement.movement_kind
    amount = coerce_decimal(movement.amount)
    if not amount.is_finite() or abs(amount) <= SIGN_NOISE:
        return None
    if kind in NEGATIVE_KINDS and amount > 0:
        corrected = -amount
    elif kind in POSITIVE_KINDS and amount < 0:
        corrected = -amount
    else:
        return None

    delta = coerce_decimal(movement.balance_after) - coerce_decimal(
        movement.balance_before
    )
    confirmed = delta.is_finite() and abs(delta - corrected) <= BALANCE_TOLERANCE
    return SignFix(
        movement_id=movement.id,
        point_id=movement.point_id,
        currency_id=movement.currency_id,
        kind=movement.kind,
        amount=round_money(amount),
        corrected_amount=round_money(corrected),
        confirmed=confirmed,
    )


class FixMovementSignsUseCase:
    """Scan and optionally rewrite sign-inverted ledger rows."""

    def __init__(self, uow: UnitOfWorkPort, logger=None) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._logger = logger or get_maintenance_logger()

    def run(
        self,
        execute: bool = False,
        point_id: str | None = None,
        currency_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = 5000,
    ) -> SignFixReport:
        """Scan the ledger, newest first.

        Args:
            execute: Rewrite confirmed rows; otherwise only report them.
            point_id: Restrict to one point.
            currency_id: Restrict to one currency.
            since: Inclusive lower timestamp bound.
            until: Exclusive upper timestamp bound.
            limit: Maximum rows to scan.

        Returns:
            SignFixReport: Rows found, applied and skipped.
        """
        report = SignFixReport(executed=execute)
        with self._uow.transaction() as repository:
            movements = repository.scan_movements(
                point_id=point_id,
                currency_id=currency_id,
                since=since,
                until=until,
                limit=limit,
            )
            report.scanned = len(movements)
            for movement in movements:
                fix = inspect_sign(movement)
                if fix is None:
                    continue
                report.fixes.append(fix)
                if not fix.confirmed:
                    self._logger.warning(
                        f"Skipping movement_id={fix.movement_id} kind={fix.kind} "
                        f"amount={fix.amount}: balances do not confirm the sign"
                    )
                    continue
                if execute:
                    repository.update_movement(
                        replace(movement, amount=fix.corrected_amount)
                    )
                    report.applied += 1

        self._logger.info(
            f"Scanned {report.scanned} movements: {len(report.fixes)} inverted, "
            f"{report.applied} fixed, {len(report.skipped)} skipped"
        )
        return report


__all__ = [
    "NEGATIVE_KINDS",
    "POSITIVE_KINDS",
    "SignFix",
    "SignFixReport",
    "inspect_sign",
    "FixMovementSignsUseCase",
]
