"""Ledger movement kinds and balance records."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class MovementKind(str, Enum):
    """Known ledger movement kinds."""

    INGRESO = "INGRESO"
    INGRESOS = "INGRESOS"
    EGRESO = "EGRESO"
    EGRESOS = "EGRESOS"
    AJUSTE = "AJUSTE"
    SALDO_INICIAL = "SALDO_INICIAL"
    CAMBIO_DIVISA = "CAMBIO_DIVISA"
    VENTA = "VENTA"
    COMPRA = "COMPRA"
    SALDO = "SALDO"
    SALDO_EN_CAJA = "SALDO EN CAJA"
    TRANSFERENCIA_ENTRANTE = "TRANSFERENCIA_ENTRANTE"
    TRANSFERENCIA_ENTRADA = "TRANSFERENCIA_ENTRADA"
    TRANSFERENCIA_RECIBIDA = "TRANSFERENCIA_RECIBIDA"
    TRANSFERENCIA_DEVOLUCION = "TRANSFERENCIA_DEVOLUCION"
    TRANSFERENCIA_SALIENTE = "TRANSFERENCIA_SALIENTE"
    TRANSFERENCIA_SALIDA = "TRANSFERENCIA_SALIDA"
    TRANSFERENCIA_ENVIADA = "TRANSFERENCIA_ENVIADA"


@dataclass(frozen=True)
class UnknownMovementKind:
    """Legacy kind that matches no known tag.

    Attributes:
        raw: Uppercased kind text as stored.
    """

    raw: str


def parse_movement_kind(raw: str | None) -> MovementKind | UnknownMovementKind:
    """Map stored kind text to a known kind or an unknown variant.

    Args:
        raw: Kind text as persisted (any case, may have padding).

    Returns:
        MovementKind | UnknownMovementKind: Parsed kind.
    """
    cleaned = (raw or "").strip().upper()
    try:
        return MovementKind(cleaned)
    except ValueError:
        return UnknownMovementKind(cleaned)


INCOME_KINDS = frozenset(
    {
        MovementKind.INGRESO,
        MovementKind.INGRESOS,
        MovementKind.VENTA,
        MovementKind.SALDO,
        MovementKind.SALDO_EN_CAJA,
        MovementKind.TRANSFERENCIA_ENTRANTE,
        MovementKind.TRANSFERENCIA_ENTRADA,
        MovementKind.TRANSFERENCIA_RECIBIDA,
        MovementKind.TRANSFERENCIA_DEVOLUCION,
    }
)

EXPENSE_KINDS = frozenset(
    {
        MovementKind.EGRESO,
        MovementKind.EGRESOS,
        MovementKind.COMPRA,
        MovementKind.TRANSFERENCIA_SALIENTE,
        MovementKind.TRANSFERENCIA_SALIDA,
        MovementKind.TRANSFERENCIA_ENVIADA,
    }
)

WRITABLE_KINDS = frozenset(
    {
        MovementKind.INGRESO,
        MovementKind.EGRESO,
        MovementKind.AJUSTE,
        MovementKind.SALDO_INICIAL,
    }
)


@dataclass(frozen=True)
class LedgerMovement:
    """Append-only change to a (point, currency) balance.

    Attributes:
        id: Movement identifier.
        point_id: Point of attention the movement belongs to.
        currency_id: Currency of the amount.
        kind: Kind text as stored; see ``parse_movement_kind``.
        amount: Signed amount; sign meaning depends on ``kind``.
        balance_before: Balance recorded at write time (informational).
        balance_after: Balance recorded at write time (informational).
        description: Free text; "banco"/"bancos" marks bank movements.
        reference_type: Kind of originating record, if any.
        reference_id: Identifier of the originating record, if any.
        created_at: Movement timestamp (UTC).
        user_id: Recording user.
    """

    id: str
    point_id: str
    currency_id: str
    kind: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    description: str | None
    reference_type: str | None
    reference_id: str | None
    created_at: datetime
    user_id: str | None = None

    @property
    def movement_kind(self) -> MovementKind | UnknownMovementKind:
        """Return the parsed kind."""
        return parse_movement_kind(self.kind)


@dataclass(frozen=True)
class InitialBalance:
    """Baseline amount for a (point, currency); the active row is the cutover."""

    id: str
    point_id: str
    currency_id: str
    amount: Decimal
    assigned_at: datetime
    assigned_by: str | None
    is_active: bool = True
    notes: str | None = None


@dataclass(frozen=True)
class BalanceSnapshot:
    """Cached balance per (point, currency) with its bucket breakdown.

    The snapshot is derived state. It can always be rebuilt from the
    active initial balance plus the ledger movements after it.
    """

    id: str
    point_id: str
    currency_id: str
    amount: Decimal
    notes: Decimal = Decimal("0")
    coins: Decimal = Decimal("0")
    bank: Decimal = Decimal("0")
    updated_at: datetime | None = None


__all__ = [
    "MovementKind",
    "UnknownMovementKind",
    "parse_movement_kind",
    "INCOME_KINDS",
    "EXPENSE_KINDS",
    "WRITABLE_KINDS",
    "LedgerMovement",
    "InitialBalance",
    "BalanceSnapshot",
]
