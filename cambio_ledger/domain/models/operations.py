"""Upstream operations that feed the ledger and external services."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class ExchangeRecord:
    """Currency exchange performed at a point."""

    id: str
    point_id: str
    origin_currency_id: str
    destination_currency_id: str
    origin_amount: Decimal
    destination_amount: Decimal
    state: str
    operation_type: str
    receipt_number: str | None
    created_at: datetime


@dataclass(frozen=True)
class TransferRecord:
    """Transfer of funds between points."""

    id: str
    origin_point_id: str | None
    destination_point_id: str
    currency_id: str
    amount: Decimal
    state: str
    transfer_type: str
    receipt_number: str | None
    created_at: datetime


@dataclass(frozen=True)
class ExternalServiceMovement:
    """Audit row for an external-service operation (e.g. a courier guide)."""

    id: str
    point_id: str
    service: str
    kind: str
    currency_id: str
    amount: Decimal
    user_id: str | None
    created_at: datetime
    description: str | None = None
    reference_number: str | None = None
    notes_amount: Decimal = Decimal("0")
    coins_amount: Decimal = Decimal("0")
    bank_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class ExternalServiceBalance:
    """Prepaid credit of an external service at a point.

    The row is a cache of the credit/debit history; ``available`` is the
    amount still usable for new operations.
    """

    id: str
    point_id: str
    service: str
    total: Decimal
    used: Decimal
    updated_at: datetime | None = None

    @property
    def available(self) -> Decimal:
        """Return total minus used."""
        return self.total - self.used


@dataclass(frozen=True)
class ExternalServiceHistory:
    """Audit-history row for credit and debit operations."""

    id: str
    point_id: str
    point_name: str
    service: str
    amount: Decimal
    created_by: str
    created_at: datetime
    reference: str | None = None


__all__ = [
    "ExchangeRecord",
    "TransferRecord",
    "ExternalServiceMovement",
    "ExternalServiceBalance",
    "ExternalServiceHistory",
]
