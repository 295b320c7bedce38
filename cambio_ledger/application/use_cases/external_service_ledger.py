"""Ledger side effects of external-service operations (courier guides).

Issuing a guide brings money into the point: the cash portion becomes an
INGRESO on the cash bucket and the bank portion a separate INGRESO whose
description carries the bank marker, so the balance calculator keeps it out
of cash. Cancelling a guide mirrors both with EGRESO movements. The
service's prepaid credit (total assigned, total used) is tracked separately
and can be credited, debited, and optionally consumed by issuance.

Every operation runs in a single transaction.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from cambio_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
    UnitOfWorkPort,
)
from cambio_ledger.application.use_cases.record_ledger_movement import (
    record_ledger_movement,
)
from cambio_ledger.domain.constants import (
    UNKNOWN_POINT_NAME,
    ReferenceType,
    ValidationCode,
)
from cambio_ledger.domain.models import (
    BalanceSnapshot,
    ExternalServiceBalance,
    ExternalServiceHistory,
    ExternalServiceMovement,
    MovementKind,
)
from cambio_ledger.domain.services import CashSplit, split_cash_bank
from cambio_ledger.infrastructure.logging.logger import get_app_logger
from cambio_ledger.utils.decimal_utils import round_money
from cambio_ledger.utils.identifiers import new_id

_ZERO = Decimal("0")
BANK_SUFFIX = " (bancos)"


@dataclass(frozen=True)
class ExternalIncomeResult:
    """Balances around a guide issuance or cancellation.

    Attributes:
        success: False when the operation was rejected.
        code: Validation code when rejected.
        service_movement_id: Audit row written for the operation.
        split: Normalized cash/bank split.
        general_before: Snapshot amount (cash) before.
        general_after: Snapshot amount (cash) after.
        bank_before: Snapshot bank bucket before.
        bank_after: Snapshot bank bucket after.
        service_before: Available service credit before.
        service_after: Available service credit after.
    """

    success: bool
    code: str | None = None
    message: str | None = None
    service_movement_id: str | None = None
    split: CashSplit | None = None
    general_before: Decimal = _ZERO
    general_after: Decimal = _ZERO
    bank_before: Decimal = _ZERO
    bank_after: Decimal = _ZERO
    service_before: Decimal = _ZERO
    service_after: Decimal = _ZERO


@dataclass(frozen=True)
class ExternalBalanceResult:
    """Outcome of a credit or debit on the service balance."""

    success: bool
    code: str | None = None
    message: str | None = None
    total: Decimal = _ZERO
    used: Decimal = _ZERO
    available: Decimal = _ZERO


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExternalServiceLedgerUseCase:
    """Record external-service income, reversals and credit changes."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        currency_id: str,
        system_user_id: str,
        logger=None,
        *,
        service: str = "SERVIENTREGA",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            currency_id: Currency the service operates in.
            system_user_id: User recorded when no operator is given.
            logger: Optional logger compatible with logging.Logger-like API.
            service: Service name stored on audit rows and balances.
            clock: Returns the current UTC time; overridable in tests.
        """
        self._uow = uow
        self._currency_id = currency_id
        self._system_user_id = system_user_id
        self._logger = logger or get_app_logger()
        self._service = service.upper()
        self._clock = clock or _utc_now

    # Guide issuance and cancellation

    def record_income(
        self,
        point_id: str,
        amount,
        guide_ref: str,
        *,
        user_id: str | None = None,
        notes=None,
        coins=None,
        bank=None,
        consume_credit: bool = False,
    ) -> ExternalIncomeResult:
        """Record the money received for an issued guide.

        Args:
            point_id: Point where the guide was issued.
            amount: Amount charged for the guide.
            guide_ref: Guide number.
            user_id: Operator; defaults to the system user.
            notes: Portion paid in notes.
            coins: Portion paid in coins.
            bank: Portion paid by bank transfer.
            consume_credit: Also debit the service's prepaid credit.

        Returns:
            ExternalIncomeResult: Old and new balances, or
            INSUFFICIENT_BALANCE when the credit cannot cover the guide.
        """
        return self._apply(
            point_id,
            amount,
            guide_ref,
            user_id=user_id,
            split=split_cash_bank(amount, notes, coins, bank),
            reverse=False,
            consume_credit=consume_credit,
        )

    def reverse_income(
        self,
        point_id: str,
        amount,
        guide_ref: str,
        *,
        user_id: str | None = None,
        notes=None,
        coins=None,
        bank=None,
        consume_credit: bool = False,
    ) -> ExternalIncomeResult:
        """Undo ``record_income`` for a cancelled guide.

        Bucket decrements floor at zero even if historical data is
        inconsistent. With ``consume_credit`` the prepaid credit is given
        back.
        """
        return self._apply(
            point_id,
            amount,
            guide_ref,
            user_id=user_id,
            split=split_cash_bank(amount, notes, coins, bank),
            reverse=True,
            consume_credit=consume_credit,
        )

    def _apply(
        self,
        point_id: str,
        amount,
        guide_ref: str,
        *,
        user_id: str | None,
        split: CashSplit,
        reverse: bool,
        consume_credit: bool,
    ) -> ExternalIncomeResult:
        value = abs(round_money(amount))
        if value <= 0:
            raise ValueError(f"Guide amount must be positive: {amount}")
        actor = user_id or self._system_user_id
        now = self._clock()
        kind = MovementKind.EGRESO if reverse else MovementKind.INGRESO
        label = f"{self._service} guía {guide_ref}"
        if reverse:
            label = f"Anulación {label}"

        with self._uow.transaction() as repository:
            service_balance = repository.get_external_balance(point_id, self._service)
            service_before = (
                service_balance.available if service_balance else _ZERO
            )
            service_after = service_before
            if consume_credit:
                if not reverse and service_before < value:
                    self._logger.warning(
                        f"Insufficient {self._service} credit point_id={point_id} "
                        f"available={service_before} amount={value}"
                    )
                    return ExternalIncomeResult(
                        success=False,
                        code=ValidationCode.INSUFFICIENT_BALANCE.value,
                        message="Saldo insuficiente",
                        service_before=service_before,
                        service_after=service_before,
                    )
                service_after = self._consume_credit(
                    repository,
                    point_id,
                    service_balance,
                    value,
                    reverse=reverse,
                    created_by=actor,
                    reference=guide_ref,
                    now=now,
                )

            audit = ExternalServiceMovement(
                id=new_id(),
                point_id=point_id,
                service=self._service,
                kind=kind.value,
                currency_id=self._currency_id,
                amount=value,
                user_id=actor,
                created_at=now,
                description=label,
                reference_number=guide_ref,
                notes_amount=split.notes,
                coins_amount=split.coins,
                bank_amount=split.bank,
            )
            repository.add_external_movement(audit)

            snapshot = repository.get_snapshot(point_id, self._currency_id)
            general_before = round_money(snapshot.amount if snapshot else 0)
            bank_before = round_money(snapshot.bank if snapshot else 0)
            notes_before = round_money(snapshot.notes if snapshot else 0)
            coins_before = round_money(snapshot.coins if snapshot else 0)

            if reverse:
                general_after = general_before - split.cash
                bank_after = max(bank_before - split.bank, _ZERO)
                notes_after = max(notes_before - split.notes, _ZERO)
                coins_after = max(coins_before - split.coins, _ZERO)
            else:
                general_after = general_before + split.cash
                bank_after = bank_before + split.bank
                notes_after = notes_before + split.notes
                coins_after = coins_before + split.coins

            if split.cash > 0:
                record_ledger_movement(
                    repository,
                    point_id=point_id,
                    currency_id=self._currency_id,
                    kind=kind,
                    amount=split.cash,
                    balance_before=general_before,
                    balance_after=general_after,
                    description=label,
                    reference_type=ReferenceType.SERVIENTREGA,
                    reference_id=audit.id,
                    user_id=actor,
                    created_at=now,
                )
            bank_delta = abs(bank_after - bank_before)
            if bank_delta > 0:
                record_ledger_movement(
                    repository,
                    point_id=point_id,
                    currency_id=self._currency_id,
                    kind=kind,
                    amount=bank_delta,
                    balance_before=bank_before,
                    balance_after=bank_after,
                    description=f"{label}{BANK_SUFFIX}",
                    reference_type=ReferenceType.SERVIENTREGA,
                    reference_id=audit.id,
                    user_id=actor,
                    created_at=now,
                )

            repository.save_snapshot(
                BalanceSnapshot(
                    id=snapshot.id if snapshot else new_id(),
                    point_id=point_id,
                    currency_id=self._currency_id,
                    amount=general_after,
                    notes=notes_after,
                    coins=coins_after,
                    bank=bank_after,
                    updated_at=now,
                )
            )

        self._logger.info(
            f"{label} point_id={point_id} cash={split.cash} bank={split.bank} "
            f"balance {general_before} -> {general_after}"
        )
        return ExternalIncomeResult(
            success=True,
            service_movement_id=audit.id,
            split=split,
            general_before=general_before,
            general_after=general_after,
            bank_before=bank_before,
            bank_after=bank_after,
            service_before=service_before,
            service_after=service_after,
        )

    def _consume_credit(
        self,
        repository: LedgerRepositoryPort,
        point_id: str,
        balance: ExternalServiceBalance | None,
        value: Decimal,
        *,
        reverse: bool,
        created_by: str,
        reference: str,
        now: datetime,
    ) -> Decimal:
        if balance is None:
            balance = ExternalServiceBalance(
                id=new_id(),
                point_id=point_id,
                service=self._service,
                total=_ZERO,
                used=_ZERO,
            )
        if reverse:
            used = max(balance.used - value, _ZERO)
        else:
            used = balance.used + value
        updated = replace(balance, used=round_money(used), updated_at=now)
        repository.save_external_balance(updated)
        self._add_history(
            repository,
            point_id,
            value if reverse else -value,
            created_by,
            reference,
            now,
        )
        return updated.available

    # Prepaid credit

    def credit_balance(
        self,
        point_id: str,
        amount,
        created_by: str | None = None,
    ) -> ExternalBalanceResult:
        """Assign prepaid credit to a point.

        Args:
            point_id: Point receiving the credit.
            amount: Credit to add to the total.
            created_by: User assigning the credit; defaults to the system user.

        Returns:
            ExternalBalanceResult: New total, used and available amounts.
        """
        value = round_money(amount)
        if value <= 0:
            raise ValueError(f"Credit amount must be positive: {amount}")
        actor = created_by or self._system_user_id
        now = self._clock()
        with self._uow.transaction() as repository:
            balance = repository.get_external_balance(point_id, self._service)
            if balance is None:
                balance = ExternalServiceBalance(
                    id=new_id(),
                    point_id=point_id,
                    service=self._service,
                    total=_ZERO,
                    used=_ZERO,
                )
            before = balance.available
            updated = replace(balance, total=balance.total + value, updated_at=now)
            repository.save_external_balance(updated)
            self._add_history(repository, point_id, value, actor, None, now)
            self._record_credit_movement(
                repository,
                point_id,
                MovementKind.INGRESO,
                value,
                before,
                updated.available,
                f"{self._service} saldo asignado{BANK_SUFFIX}",
                actor,
                now,
            )

        self._logger.info(
            f"{self._service} credit point_id={point_id} amount={value} "
            f"available={updated.available}"
        )
        return ExternalBalanceResult(
            success=True,
            total=updated.total,
            used=updated.used,
            available=updated.available,
        )

    def debit_balance(
        self,
        point_id: str,
        amount,
        guide_ref: str | None = None,
        created_by: str | None = None,
    ) -> ExternalBalanceResult:
        """Consume prepaid credit (guide issuance).

        Returns:
            ExternalBalanceResult: New amounts, or INSUFFICIENT_BALANCE if
            the debit would make used exceed total.
        """
        value = round_money(amount)
        if value <= 0:
            raise ValueError(f"Debit amount must be positive: {amount}")
        actor = created_by or self._system_user_id
        now = self._clock()
        with self._uow.transaction() as repository:
            balance = repository.get_external_balance(point_id, self._service)
            if balance is None or balance.used + value > balance.total:
                available = balance.available if balance else _ZERO
                self._logger.warning(
                    f"Insufficient {self._service} credit point_id={point_id} "
                    f"available={available} amount={value}"
                )
                return ExternalBalanceResult(
                    success=False,
                    code=ValidationCode.INSUFFICIENT_BALANCE.value,
                    message="Saldo insuficiente",
                    total=balance.total if balance else _ZERO,
                    used=balance.used if balance else _ZERO,
                    available=available,
                )
            before = balance.available
            updated = replace(balance, used=balance.used + value, updated_at=now)
            repository.save_external_balance(updated)
            self._add_history(repository, point_id, -value, actor, guide_ref, now)
            description = f"{self._service} consumo de saldo"
            if guide_ref:
                description = f"{description} guía {guide_ref}"
            self._record_credit_movement(
                repository,
                point_id,
                MovementKind.EGRESO,
                value,
                before,
                updated.available,
                f"{description}{BANK_SUFFIX}",
                actor,
                now,
            )

        self._logger.info(
            f"{self._service} debit point_id={point_id} amount={value} "
            f"available={updated.available}"
        )
        return ExternalBalanceResult(
            success=True,
            total=updated.total,
            used=updated.used,
            available=updated.available,
        )

    def _record_credit_movement(
        self,
        repository: LedgerRepositoryPort,
        point_id: str,
        kind: MovementKind,
        value: Decimal,
        before: Decimal,
        after: Decimal,
        description: str,
        actor: str,
        now: datetime,
    ) -> None:
        # Prepaid credit is never cash; the bank marker keeps it out of the
        # cash balance.
        record_ledger_movement(
            repository,
            point_id=point_id,
            currency_id=self._currency_id,
            kind=kind,
            amount=value,
            balance_before=before,
            balance_after=after,
            description=description,
            reference_type=ReferenceType.SERVIENTREGA,
            reference_id=None,
            user_id=actor,
            created_at=now,
        )

    def _add_history(
        self,
        repository: LedgerRepositoryPort,
        point_id: str,
        amount: Decimal,
        created_by: str,
        reference: str | None,
        now: datetime,
    ) -> None:
        point = repository.get_point(point_id)
        repository.add_external_history(
            ExternalServiceHistory(
                id=new_id(),
                point_id=point_id,
                point_name=point.name if point else UNKNOWN_POINT_NAME,
                service=self._service,
                amount=round_money(amount),
                created_by=created_by,
                created_at=now,
                reference=reference,
            )
        )


__all__ = [
    "ExternalIncomeResult",
    "ExternalBalanceResult",
    "ExternalServiceLedgerUseCase",
]
