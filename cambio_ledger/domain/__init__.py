"""Domain package for balance rules and ledger models."""

from .constants import (
    BALANCE_TOLERANCE,
    CashCountState,
    ClosureState,
    ReferenceType,
    ShiftState,
    ValidationCode,
)
from .models import (
    BalanceSnapshot,
    CashCount,
    CashCountDetail,
    Currency,
    DayClosure,
    ExchangeRecord,
    ExternalServiceBalance,
    ExternalServiceHistory,
    ExternalServiceMovement,
    InitialBalance,
    LedgerMovement,
    MovementKind,
    PointOfAttention,
    Shift,
    TransferRecord,
    UnknownMovementKind,
    User,
    parse_movement_kind,
)
from .policies import can_operate_point, is_bank_movement
from .services import (
    CashSplit,
    MovementValidationError,
    normalize_cash_breakdown,
    normalize_movement_amount,
    signed_amount_for,
    split_cash_bank,
    validate_movement,
)

__all__ = [
    "BALANCE_TOLERANCE",
    "BalanceSnapshot",
    "CashCount",
    "CashCountDetail",
    "CashCountState",
    "CashSplit",
    "ClosureState",
    "Currency",
    "DayClosure",
    "ExchangeRecord",
    "ExternalServiceBalance",
    "ExternalServiceHistory",
    "ExternalServiceMovement",
    "InitialBalance",
    "LedgerMovement",
    "MovementKind",
    "MovementValidationError",
    "PointOfAttention",
    "ReferenceType",
    "Shift",
    "ShiftState",
    "TransferRecord",
    "UnknownMovementKind",
    "User",
    "ValidationCode",
    "can_operate_point",
    "is_bank_movement",
    "normalize_cash_breakdown",
    "normalize_movement_amount",
    "parse_movement_kind",
    "signed_amount_for",
    "split_cash_bank",
    "validate_movement",
]
