"""Assign a new initial balance (the cutover for balance calculation)."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal

from cambio_ledger.application.ports.ledger_repository import UnitOfWorkPort
from cambio_ledger.application.use_cases.record_ledger_movement import (
    record_ledger_movement,
)
from cambio_ledger.domain.constants import ReferenceType
from cambio_ledger.domain.models import (
    BalanceSnapshot,
    InitialBalance,
    MovementKind,
)
from cambio_ledger.infrastructure.logging.logger import get_app_logger
from cambio_ledger.utils.decimal_utils import round_money
from cambio_ledger.utils.identifiers import new_id


@dataclass(frozen=True)
class InitialBalanceAssignment:
    """Outcome of an initial-balance assignment."""

    initial_balance_id: str
    amount: Decimal
    deactivated: int
    previous_snapshot_amount: Decimal


class AssignInitialBalanceUseCase:
    """Replace the active initial balance of a (point, currency)."""

    def __init__(self, uow: UnitOfWorkPort, logger=None) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._logger = logger or get_app_logger()

    def execute(
        self,
        point_id: str,
        currency_id: str,
        amount,
        user_id: str,
        notes: str | None = None,
        assigned_at: datetime | None = None,
    ) -> InitialBalanceAssignment:
        """Deactivate the previous baseline and record a new one.

        The snapshot is reset to the new amount (all cash in notes, bank
        bucket kept) and an audit SALDO_INICIAL movement is appended; the
        calculator ignores that movement.

        Args:
            point_id: Point of attention.
            currency_id: Currency.
            amount: New baseline amount.
            user_id: Assigning user.
            notes: Optional remarks.
            assigned_at: Cutover timestamp; defaults to now.

        Returns:
            InitialBalanceAssignment: Identifiers and the previous snapshot.
        """
        value = round_money(amount)
        if value < 0:
            raise ValueError(f"Initial balance cannot be negative: {value}")
        moment = assigned_at or datetime.now(timezone.utc)

        with self._uow.transaction() as repository:
            deactivated = repository.deactivate_initial_balances(
                point_id,
                currency_id,
            )
            balance = InitialBalance(
                id=new_id(),
                point_id=point_id,
                currency_id=currency_id,
                amount=value,
                assigned_at=moment,
                assigned_by=user_id,
                is_active=True,
                notes=notes,
            )
            repository.add_initial_balance(balance)

            snapshot = repository.get_snapshot(point_id, currency_id)
            previous = round_money(snapshot.amount if snapshot else 0)
            if snapshot is None:
                snapshot = BalanceSnapshot(
                    id=new_id(),
                    point_id=point_id,
                    currency_id=currency_id,
                    amount=value,
                    notes=value,
                    updated_at=moment,
                )
            else:
                snapshot = replace(
                    snapshot,
                    amount=value,
                    notes=value,
                    coins=round_money(0),
                    updated_at=moment,
                )
            repository.save_snapshot(snapshot)

            if value > 0:
                record_ledger_movement(
                    repository,
                    point_id=point_id,
                    currency_id=currency_id,
                    kind=MovementKind.SALDO_INICIAL,
                    amount=value,
                    balance_before=0,
                    balance_after=value,
                    description=f"Saldo inicial asignado: {value}",
                    reference_type=ReferenceType.SALDO_INICIAL,
                    reference_id=balance.id,
                    user_id=user_id,
                    created_at=moment,
                )

        self._logger.info(
            f"Initial balance assigned point_id={point_id} "
            f"currency_id={currency_id} amount={value} "
            f"deactivated={deactivated}"
        )
        return InitialBalanceAssignment(
            initial_balance_id=balance.id,
            amount=value,
            deactivated=deactivated,
            previous_snapshot_amount=previous,
        )


__all__ = ["AssignInitialBalanceUseCase", "InitialBalanceAssignment"]
