"""Validated construction of ledger movements."""

from datetime import datetime, timezone

from cambio_ledger.application.ports.ledger_repository import LedgerRepositoryPort
from cambio_ledger.domain.models import LedgerMovement, MovementKind
from cambio_ledger.domain.services import validate_movement
from cambio_ledger.utils.decimal_utils import round_money
from cambio_ledger.utils.identifiers import new_id


def build_ledger_movement(
    *,
    point_id: str,
    currency_id: str,
    kind: str | MovementKind,
    amount,
    balance_before,
    balance_after,
    description: str | None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    user_id: str | None = None,
    created_at: datetime | None = None,
    movement_id: str | None = None,
) -> LedgerMovement:
    """Validate a movement and return it with its stored sign.

    Args:
        point_id: Point of attention.
        currency_id: Currency.
        kind: INGRESO, EGRESO, AJUSTE or SALDO_INICIAL.
        amount: Raw amount; the sign is derived from ``kind``.
        balance_before: Balance before the movement.
        balance_after: Balance after the movement.
        description: Free-text description.
        reference_type: Kind of originating record.
        reference_id: Identifier of the originating record.
        user_id: Recording user.
        created_at: Timestamp; defaults to now.
        movement_id: Identifier to reuse when rewriting a movement.

    Returns:
        LedgerMovement: Movement ready to persist.

    Raises:
        MovementValidationError: If the movement is inconsistent.
    """
    signed = validate_movement(kind, amount, balance_before, balance_after)
    kind_value = kind.value if isinstance(kind, MovementKind) else kind.strip().upper()
    return LedgerMovement(
        id=movement_id or new_id(),
        point_id=point_id,
        currency_id=currency_id,
        kind=kind_value,
        amount=round_money(signed),
        balance_before=round_money(balance_before),
        balance_after=round_money(balance_after),
        description=description,
        reference_type=getattr(reference_type, "value", reference_type),
        reference_id=reference_id,
        created_at=created_at or datetime.now(timezone.utc),
        user_id=user_id,
    )


def record_ledger_movement(repository: LedgerRepositoryPort, **kwargs) -> LedgerMovement:
    """Validate and append a movement.

    Args:
        repository: Transaction-bound ledger repository.
        **kwargs: Arguments accepted by ``build_ledger_movement``.

    Returns:
        LedgerMovement: The persisted movement.
    """
    movement = build_ledger_movement(**kwargs)
    repository.add_movement(movement)
    return movement


__all__ = ["build_ledger_movement", "record_ledger_movement"]
