"""Domain constants for balance reconciliation and closings."""

from decimal import Decimal
from enum import Enum

BALANCE_TOLERANCE = Decimal("0.01")
ADJUSTMENT_NOISE = Decimal("0.005")
SIGN_NOISE = Decimal("0.001")
BASE_CURRENCY_PARTIAL_TOLERANCE = Decimal("1.00")

BANK_MARKERS = ("bancos", "banco")
CAMBIO_EGRESS_PREFIX = "egreso por cambio"
CAMBIO_INGRESS_PREFIX = "ingreso por cambio"

EXPENSE_KIND_TOKENS = ("SALIDA", "SALIENTE", "EGRESO", "COMPRA")
INCOME_KIND_TOKENS = ("ENTRADA", "ENTRANTE", "INGRESO", "VENTA", "DEVOLUCION")

RESTRICTED_ROLES = frozenset({"OPERADOR"})
SYSTEM_ROLE = "ADMIN"

AUTO_SHIFT_END_NOTE = (
    "Jornada finalizada automáticamente al completar cierre diario"
)
UNKNOWN_POINT_NAME = "Punto desconocido"


class CashCountState(str, Enum):
    """Lifecycle of a cash-count header."""

    OPEN = "ABIERTO"
    PARTIAL = "PARCIAL"
    CLOSED = "CERRADO"


class ClosureState(str, Enum):
    """Lifecycle of a day closure."""

    OPEN = "ABIERTO"
    CLOSED = "CERRADO"


class ShiftState(str, Enum):
    """Lifecycle of an operator shift."""

    ACTIVE = "ACTIVO"
    LUNCH = "ALMUERZO"
    COMPLETED = "COMPLETADO"
    CANCELLED = "CANCELADO"


class ReferenceType(str, Enum):
    """Domain record a ledger movement links back to."""

    EXCHANGE = "EXCHANGE"
    CAMBIO_DIVISA = "CAMBIO_DIVISA"
    TRANSFER = "TRANSFER"
    SERVICIO_EXTERNO = "SERVICIO_EXTERNO"
    AJUSTE_MANUAL = "AJUSTE_MANUAL"
    SALDO_INICIAL = "SALDO_INICIAL"
    CIERRE_DIARIO = "CIERRE_DIARIO"
    SERVIENTREGA = "SERVIENTREGA"


class ValidationCode(str, Enum):
    """Stable codes for soft validation failures."""

    ALREADY_CLOSED = "ALREADY_CLOSED"
    POINT_INACTIVE = "POINT_INACTIVE"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    NO_PERMISSION = "NO_PERMISSION"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    DIFFERENCE_OUT_OF_TOLERANCE = "DIFFERENCE_OUT_OF_TOLERANCE"
    BREAKDOWN_MISMATCH = "BREAKDOWN_MISMATCH"


EXCHANGE_COMPLETED = "COMPLETADO"
TRANSFER_APPROVED = "APROBADO"


__all__ = [
    "BALANCE_TOLERANCE",
    "ADJUSTMENT_NOISE",
    "SIGN_NOISE",
    "BASE_CURRENCY_PARTIAL_TOLERANCE",
    "BANK_MARKERS",
    "CAMBIO_EGRESS_PREFIX",
    "CAMBIO_INGRESS_PREFIX",
    "EXPENSE_KIND_TOKENS",
    "INCOME_KIND_TOKENS",
    "RESTRICTED_ROLES",
    "SYSTEM_ROLE",
    "AUTO_SHIFT_END_NOTE",
    "UNKNOWN_POINT_NAME",
    "CashCountState",
    "ClosureState",
    "ShiftState",
    "ReferenceType",
    "ValidationCode",
    "EXCHANGE_COMPLETED",
    "TRANSFER_APPROVED",
]
