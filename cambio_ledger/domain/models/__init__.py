"""Domain models package."""

from .closing import (
    CashCount,
    CashCountDetail,
    DayAlreadyClosedError,
    DayClosure,
    Shift,
)
from .movements import (
    EXPENSE_KINDS,
    INCOME_KINDS,
    WRITABLE_KINDS,
    BalanceSnapshot,
    InitialBalance,
    LedgerMovement,
    MovementKind,
    UnknownMovementKind,
    parse_movement_kind,
)
from .operations import (
    ExchangeRecord,
    ExternalServiceBalance,
    ExternalServiceHistory,
    ExternalServiceMovement,
    TransferRecord,
)
from .reference import Currency, PointOfAttention, User

__all__ = [
    "BalanceSnapshot",
    "CashCount",
    "CashCountDetail",
    "Currency",
    "DayAlreadyClosedError",
    "DayClosure",
    "EXPENSE_KINDS",
    "ExchangeRecord",
    "ExternalServiceBalance",
    "ExternalServiceHistory",
    "ExternalServiceMovement",
    "INCOME_KINDS",
    "InitialBalance",
    "LedgerMovement",
    "MovementKind",
    "PointOfAttention",
    "Shift",
    "TransferRecord",
    "UnknownMovementKind",
    "User",
    "WRITABLE_KINDS",
    "parse_movement_kind",
]
