"""Authoritative cash balance per (point, currency).

The balance is rebuilt from the ledger: start from the active initial
balance, then fold every movement recorded at or after its assignment
timestamp (the cutover) through the sign normalizer. Bank-bucket movements
and SALDO_INICIAL rows never contribute. Movements before the cutover are
ignored on purpose: re-assigning an initial balance resets the history it
subsumes.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal, InvalidOperation

from cambio_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
    UnitOfWorkPort,
)
from cambio_ledger.domain.models import MovementKind
from cambio_ledger.domain.policies import is_bank_movement
from cambio_ledger.domain.services import normalize_movement_amount
from cambio_ledger.infrastructure.logging.logger import get_app_logger
from cambio_ledger.utils.decimal_utils import coerce_decimal, round_money

_ZERO = Decimal("0")


def calculate_balance(
    repository: LedgerRepositoryPort,
    point_id: str,
    currency_id: str,
    *,
    until: datetime | None = None,
    exclude_movement_ids: Iterable[str] = (),
    logger=None,
) -> Decimal:
    """Compute the cash balance of a point in a currency.

    Args:
        repository: Transaction-bound ledger repository.
        point_id: Point of attention.
        currency_id: Currency.
        until: Optional exclusive upper bound for movement timestamps.
        exclude_movement_ids: Movements to leave out (e.g. an adjustment
            that is about to be recomputed).
        logger: Optional logger compatible with logging.Logger-like API.

    Returns:
        Decimal: Balance rounded to cents; zero if the data is corrupt.
    """
    log = logger or get_app_logger()
    excluded = set(exclude_movement_ids)

    initial = repository.get_active_initial_balance(point_id, currency_id)
    balance = coerce_decimal(initial.amount) if initial is not None else _ZERO
    cutover = initial.assigned_at if initial is not None else None

    movements = repository.list_movements(
        point_id,
        currency_id,
        since=cutover,
        until=until,
    )
    for movement in movements:
        if movement.id in excluded or is_bank_movement(movement.description):
            continue
        kind = movement.movement_kind
        if kind is MovementKind.SALDO_INICIAL:
            continue
        try:
            amount = coerce_decimal(movement.amount)
            if not amount.is_finite():
                raise ValueError(f"non-finite amount {amount}")
            balance += normalize_movement_amount(kind, amount, movement.description)
        except (InvalidOperation, TypeError, ValueError):
            log.warning(
                f"Skipping movement with malformed amount "
                f"movement_id={movement.id} amount={movement.amount!r}"
            )

    # Backstop only: every folded row is finite.
    if not balance.is_finite():
        log.error(
            f"Non-finite balance for point_id={point_id} "
            f"currency_id={currency_id}; returning 0"
        )
        return round_money(_ZERO)
    return round_money(balance)


class CalculateBalanceUseCase:
    """Compute balances in their own read transaction.

    Invalid input fails closed: the use case logs and returns zero instead
    of raising. Storage errors propagate.
    """

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
        until: datetime | None = None,
    ) -> Decimal:
        """Return the authoritative balance for a (point, currency).

        Args:
            point_id: Point of attention.
            currency_id: Currency.
            until: Optional exclusive upper bound for movement timestamps.

        Returns:
            Decimal: Balance rounded to cents.
        """
        if not point_id or not currency_id:
            self._logger.warning(
                f"Invalid balance request point_id={point_id!r} "
                f"currency_id={currency_id!r}"
            )
            return round_money(_ZERO)
        with self._uow.transaction() as repository:
            return calculate_balance(
                repository,
                point_id,
                currency_id,
                until=until,
                logger=self._logger,
            )


__all__ = ["calculate_balance", "CalculateBalanceUseCase"]
