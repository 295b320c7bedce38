"""Daily closing ("cierre diario") of a point of attention.

Per (point, business day) the closing moves from no closure row, through an
implicit open state where a cash count may be OPEN or PARTIAL, to CLOSED.
CLOSED is terminal: a second close for the same day is rejected with
``ALREADY_CLOSED`` by the pre-check. A racing close that passed the
pre-check hits the unique (point, day) key on insert, or the state guard
on update, and is rolled back with ``ALREADY_CLOSED`` as well.

``perform_closing`` writes the cash count and its details, the day
closure, the ended shift, the balance snapshots and the optional ledger
adjustment in one transaction.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

from cambio_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
    UnitOfWorkPort,
)
from cambio_ledger.application.use_cases.calculate_balance import calculate_balance
from cambio_ledger.application.use_cases.record_ledger_movement import (
    build_ledger_movement,
)
from cambio_ledger.domain.constants import (
    AUTO_SHIFT_END_NOTE,
    BALANCE_TOLERANCE,
    BASE_CURRENCY_PARTIAL_TOLERANCE,
    EXCHANGE_COMPLETED,
    TRANSFER_APPROVED,
    CashCountState,
    ClosureState,
    ReferenceType,
    ShiftState,
    ValidationCode,
)
from cambio_ledger.domain.models import (
    BalanceSnapshot,
    CashCount,
    CashCountDetail,
    Currency,
    DayAlreadyClosedError,
    DayClosure,
    MovementKind,
)
from cambio_ledger.domain.policies import can_operate_point
from cambio_ledger.domain.services import normalize_cash_breakdown
from cambio_ledger.infrastructure.logging.logger import get_app_logger
from cambio_ledger.utils.decimal_utils import coerce_decimal, round_money
from cambio_ledger.utils.identifiers import new_id
from cambio_ledger.utils.timezone import DayRange, day_range_utc_from_date

_ZERO = Decimal("0")
_OPEN_COUNT_STATES = (CashCountState.OPEN.value, CashCountState.PARTIAL.value)
_OPENING_SOURCE_STATES = (CashCountState.CLOSED.value, CashCountState.PARTIAL.value)


@dataclass(frozen=True)
class ClosureValidation:
    """Soft validation outcome; ``code`` is set when ``ok`` is False."""

    ok: bool
    code: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class ClosingDetailInput:
    """Per-currency figures submitted by the operator.

    Attributes:
        currency_id: Currency being counted.
        opening_balance: Balance at the start of the day.
        theoretical_balance: Balance expected from the ledger.
        physical_count: Counted cash.
        notes: Counted notes; defaults to the whole physical count.
        coins: Counted coins; defaults to zero.
        income_total: Income of the day.
        expense_total: Expense of the day.
        movement_count: Number of ledger movements of the day.
        bank_theoretical: Expected bank bucket.
        bank_physical: Reported bank bucket; leaves the bank untouched when
            omitted.
        justification: Operator note explaining a difference.
    """

    currency_id: str
    opening_balance: Any
    theoretical_balance: Any
    physical_count: Any
    notes: Any = None
    coins: Any = None
    income_total: Any = 0
    expense_total: Any = 0
    movement_count: int = 0
    bank_theoretical: Any = 0
    bank_physical: Any = None
    justification: str | None = None


@dataclass(frozen=True)
class ClosingRequest:
    """Data submitted to close (or partially save) a business day."""

    point_id: str
    user_id: str
    day: date
    details: list[ClosingDetailInput]
    observations: str | None = None


@dataclass(frozen=True)
class ClosingResult:
    """Outcome of a full or partial closing."""

    success: bool
    code: str | None = None
    message: str | None = None
    closure_id: str | None = None
    cash_count_id: str | None = None
    shift_ended: bool = False
    discrepancies: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class CurrencyDaySummary:
    """Figures of one currency for the day being closed."""

    currency_id: str
    code: str
    name: str
    symbol: str
    opening_balance: Decimal
    theoretical_balance: Decimal
    income_total: Decimal
    expense_total: Decimal
    movement_count: int

    @property
    def physical_count(self) -> Decimal:
        """Suggested physical count (the theoretical balance)."""
        return self.theoretical_balance


@dataclass(frozen=True)
class DayTotals:
    """Operation counts for the day."""

    exchanges: int
    external_services: int
    transfers: int


@dataclass(frozen=True)
class DaySummary:
    """Summary shown to the operator before closing."""

    point_id: str
    day: date
    currencies: list[CurrencyDaySummary]
    totals: DayTotals
    prepared_by: str | None = None


@dataclass(frozen=True)
class ClosureStatus:
    """Read-only view of a day closure."""

    exists: bool
    state: str | None = None
    closure_id: str | None = None
    closed_at: datetime | None = None
    user_name: str | None = None
    closed_by_name: str | None = None
    discrepancies: list[dict[str, Any]] = field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _stamp_within(day_range: DayRange, now: datetime) -> datetime:
    last_instant = day_range.lt - timedelta(milliseconds=1)
    return max(day_range.gte, min(now, last_instant))


def _money_or_none(value) -> Decimal | None:
    return None if value is None else round_money(value)


class DailyClosingUseCase:
    """Validate, summarize and perform daily closings."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        logger=None,
        *,
        record_adjustments: bool = True,
        base_currency_code: str = "USD",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            logger: Optional logger compatible with logging.Logger-like API.
            record_adjustments: Append a ledger adjustment when the count
                differs from the calculated balance.
            base_currency_code: Currency with the wider partial tolerance.
            clock: Returns the current UTC time; overridable in tests.
        """
        self._uow = uow
        self._logger = logger or get_app_logger()
        self._record_adjustments = record_adjustments
        self._base_currency_code = base_currency_code.upper()
        self._clock = clock or _utc_now

    # Validation

    def validate_closure_possible(
        self,
        point_id: str,
        day: date,
        user_id: str,
    ) -> ClosureValidation:
        """Check whether a user may close a point for a day.

        Returns:
            ClosureValidation: ``ok`` or the first failing code among
            ALREADY_CLOSED, POINT_INACTIVE, USER_NOT_FOUND, NO_PERMISSION.
        """
        with self._uow.transaction() as repository:
            return self._validate(repository, point_id, day, user_id)

    def _validate(
        self,
        repository: LedgerRepositoryPort,
        point_id: str,
        day: date,
        user_id: str,
    ) -> ClosureValidation:
        closure = repository.get_day_closure(point_id, day)
        if closure is not None and closure.state == ClosureState.CLOSED.value:
            return ClosureValidation(
                ok=False,
                code=ValidationCode.ALREADY_CLOSED.value,
                message=f"Day {day.isoformat()} is already closed for this point",
            )
        point = repository.get_point(point_id)
        if point is None or not point.is_active:
            return ClosureValidation(
                ok=False,
                code=ValidationCode.POINT_INACTIVE.value,
                message="Point of attention is missing or inactive",
            )
        user = repository.get_user(user_id)
        if user is None:
            return ClosureValidation(
                ok=False,
                code=ValidationCode.USER_NOT_FOUND.value,
                message="User not found",
            )
        if not can_operate_point(user, point_id):
            return ClosureValidation(
                ok=False,
                code=ValidationCode.NO_PERMISSION.value,
                message="User is not allowed to close this point",
            )
        return ClosureValidation(ok=True)

    # Opening balance and summary

    def compute_opening_balance(
        self,
        point_id: str,
        currency_id: str,
        period_start: datetime,
    ) -> Decimal:
        """Return the balance the period started with.

        The physical count of the latest CLOSED or PARTIAL cash count opened
        strictly before ``period_start`` wins; otherwise the snapshot amount
        (or zero) is used.
        """
        with self._uow.transaction() as repository:
            return self._opening_balance(
                repository,
                point_id,
                currency_id,
                period_start,
            )

    @staticmethod
    def _opening_balance(
        repository: LedgerRepositoryPort,
        point_id: str,
        currency_id: str,
        period_start: datetime,
    ) -> Decimal:
        detail = repository.find_last_count_detail(
            point_id,
            currency_id,
            before=period_start,
            states=_OPENING_SOURCE_STATES,
        )
        if detail is not None:
            return round_money(detail.physical_count)
        snapshot = repository.get_snapshot(point_id, currency_id)
        return round_money(snapshot.amount if snapshot is not None else 0)

    def summarize_day(
        self,
        point_id: str,
        day: date,
        user_id: str | None = None,
    ) -> DaySummary:
        """Summarize every currency touched during a business day.

        Currencies come from completed exchanges (either side), approved
        transfers (either direction) and external-service movements.

        Args:
            point_id: Point of attention.
            day: Local business date.
            user_id: User preparing the closing, echoed in the summary.

        Returns:
            DaySummary: Per-currency figures and operation counts.
        """
        day_range = day_range_utc_from_date(day)
        with self._uow.transaction() as repository:
            exchanges = repository.list_exchanges(
                point_id,
                since=day_range.gte,
                until=day_range.lt,
                states=[EXCHANGE_COMPLETED],
            )
            transfers = repository.list_transfers(
                point_id,
                since=day_range.gte,
                until=day_range.lt,
                states=[TRANSFER_APPROVED],
            )
            external = repository.list_external_movements(
                point_id,
                since=day_range.gte,
                until=day_range.lt,
            )

            currency_ids: set[str] = set()
            for exchange in exchanges:
                currency_ids.add(exchange.origin_currency_id)
                currency_ids.add(exchange.destination_currency_id)
            currency_ids.update(transfer.currency_id for transfer in transfers)
            currency_ids.update(movement.currency_id for movement in external)

            currencies = [
                currency
                for currency in (
                    repository.get_currency(currency_id)
                    for currency_id in currency_ids
                )
                if currency is not None
            ]
            currencies.sort(key=lambda c: (c.display_order, c.name))

            rows = [
                self._summarize_currency(repository, point_id, currency, day_range)
                for currency in currencies
            ]

        self._logger.info(
            f"Summarized day={day.isoformat()} point_id={point_id}: "
            f"{len(rows)} currencies"
        )
        return DaySummary(
            point_id=point_id,
            day=day,
            currencies=rows,
            totals=DayTotals(
                exchanges=len(exchanges),
                external_services=len(external),
                transfers=len(transfers),
            ),
            prepared_by=user_id,
        )

    def _summarize_currency(
        self,
        repository: LedgerRepositoryPort,
        point_id: str,
        currency: Currency,
        day_range: DayRange,
    ) -> CurrencyDaySummary:
        movements = repository.list_movements(
            point_id,
            currency.id,
            since=day_range.gte,
            until=day_range.lt,
        )
        income = _ZERO
        expense = _ZERO
        for movement in movements:
            amount = coerce_decimal(movement.amount)
            if amount > 0:
                income += amount
            elif amount < 0:
                expense += abs(amount)
        return CurrencyDaySummary(
            currency_id=currency.id,
            code=currency.code,
            name=currency.name,
            symbol=currency.symbol,
            opening_balance=self._opening_balance(
                repository,
                point_id,
                currency.id,
                day_range.gte,
            ),
            theoretical_balance=calculate_balance(
                repository,
                point_id,
                currency.id,
                until=day_range.lt,
                logger=self._logger,
            ),
            income_total=round_money(income),
            expense_total=round_money(expense),
            movement_count=len(movements),
        )

    # Closing

    def perform_closing(self, request: ClosingRequest) -> ClosingResult:
        """Close a business day atomically.

        Args:
            request: Point, user, day and per-currency counts.

        Returns:
            ClosingResult: Identifiers of the closure and cash count, or the
            validation failure.
        """
        now = self._clock()
        day_range = day_range_utc_from_date(request.day)

        try:
            with self._uow.transaction() as repository:
                validation = self._validate(
                    repository,
                    request.point_id,
                    request.day,
                    request.user_id,
                )
                if not validation.ok:
                    self._logger.warning(
                        f"Closing rejected point_id={request.point_id} "
                        f"day={request.day.isoformat()} code={validation.code}"
                    )
                    return ClosingResult(
                        success=False,
                        code=validation.code,
                        message=validation.message,
                    )

                cash_count, details = self._save_cash_count(
                    repository,
                    request,
                    CashCountState.CLOSED,
                    day_range,
                    now,
                )
                discrepancies = self._discrepancies(repository, details)

                existing_closure = repository.get_day_closure(
                    request.point_id,
                    request.day,
                )
                closure = DayClosure(
                    id=existing_closure.id if existing_closure else new_id(),
                    point_id=request.point_id,
                    day=request.day,
                    user_id=request.user_id,
                    state=ClosureState.CLOSED.value,
                    discrepancies=discrepancies,
                    closed_at=now,
                    closed_by=request.user_id,
                    observations=request.observations,
                    created_at=(
                        existing_closure.created_at if existing_closure else now
                    ),
                )
                if existing_closure is None:
                    repository.add_day_closure(closure)
                elif not repository.close_day_closure(closure):
                    raise DayAlreadyClosedError(
                        f"Day {request.day.isoformat()} was closed concurrently"
                    )

                shift_ended = self._end_active_shift(repository, request, now)

                stamp = _stamp_within(day_range, now)
                for detail in details:
                    self._sync_snapshot(repository, request.point_id, detail, now)
                    if self._record_adjustments:
                        self._upsert_closing_adjustment(
                            repository,
                            request,
                            closure.id,
                            detail,
                            stamp,
                        )
        except DayAlreadyClosedError as exc:
            self._logger.warning(
                f"Closing rejected point_id={request.point_id} "
                f"day={request.day.isoformat()}: {exc}"
            )
            return ClosingResult(
                success=False,
                code=ValidationCode.ALREADY_CLOSED.value,
                message=str(exc),
            )

        message = "Daily closing completed"
        if shift_ended:
            message = "Daily closing completed and shift ended"
        self._logger.info(
            f"{message} point_id={request.point_id} "
            f"day={request.day.isoformat()} closure_id={closure.id} "
            f"discrepancies={len(discrepancies)}"
        )
        return ClosingResult(
            success=True,
            message=message,
            closure_id=closure.id,
            cash_count_id=cash_count.id,
            shift_ended=shift_ended,
            discrepancies=discrepancies,
        )

    def save_partial_closing(
        self,
        request: ClosingRequest,
        allow_mismatch: bool = False,
    ) -> ClosingResult:
        """Save an intermediate count without closing the day.

        The cash count moves to PARTIAL and its details are replaced. The
        snapshot, the day closure and the shift are not touched.

        Args:
            request: Point, user, day and per-currency counts.
            allow_mismatch: Skip the per-currency difference tolerance.

        Returns:
            ClosingResult: Cash count identifier or the validation failure.
        """
        now = self._clock()
        day_range = day_range_utc_from_date(request.day)

        with self._uow.transaction() as repository:
            validation = self._validate(
                repository,
                request.point_id,
                request.day,
                request.user_id,
            )
            if not validation.ok:
                return ClosingResult(
                    success=False,
                    code=validation.code,
                    message=validation.message,
                )
            failure = self._check_partial_details(
                repository,
                request.details,
                allow_mismatch,
            )
            if failure is not None:
                return failure
            cash_count, _ = self._save_cash_count(
                repository,
                request,
                CashCountState.PARTIAL,
                day_range,
                now,
            )

        self._logger.info(
            f"Partial closing saved point_id={request.point_id} "
            f"day={request.day.isoformat()} cash_count_id={cash_count.id}"
        )
        return ClosingResult(
            success=True,
            message="Partial closing saved",
            cash_count_id=cash_count.id,
        )

    def get_closure_status(self, point_id: str, day: date) -> ClosureStatus:
        """Return whether a day closure exists and who closed it."""
        with self._uow.transaction() as repository:
            closure = repository.get_day_closure(point_id, day)
            if closure is None:
                return ClosureStatus(exists=False)
            user = repository.get_user(closure.user_id)
            closer = (
                repository.get_user(closure.closed_by)
                if closure.closed_by
                else None
            )
        return ClosureStatus(
            exists=True,
            state=closure.state,
            closure_id=closure.id,
            closed_at=closure.closed_at,
            user_name=user.name if user else None,
            closed_by_name=closer.name if closer else None,
            discrepancies=list(closure.discrepancies),
        )

    # Persistence helpers

    def _check_partial_details(
        self,
        repository: LedgerRepositoryPort,
        details: list[ClosingDetailInput],
        allow_mismatch: bool,
    ) -> ClosingResult | None:
        for detail in details:
            physical = round_money(detail.physical_count)
            currency = repository.get_currency(detail.currency_id)
            code = currency.code if currency else detail.currency_id
            if not allow_mismatch:
                tolerance = (
                    BASE_CURRENCY_PARTIAL_TOLERANCE
                    if code.upper() == self._base_currency_code
                    else BALANCE_TOLERANCE
                )
                difference = physical - round_money(detail.theoretical_balance)
                if abs(difference) > tolerance:
                    return ClosingResult(
                        success=False,
                        code=ValidationCode.DIFFERENCE_OUT_OF_TOLERANCE.value,
                        message=(
                            f"{code}: difference {round_money(difference)} "
                            f"exceeds tolerance {tolerance}"
                        ),
                    )
            if detail.notes is not None or detail.coins is not None:
                breakdown = round_money(detail.notes or 0) + round_money(
                    detail.coins or 0
                )
                if abs(breakdown - physical) > BALANCE_TOLERANCE:
                    return ClosingResult(
                        success=False,
                        code=ValidationCode.BREAKDOWN_MISMATCH.value,
                        message=(
                            f"{code}: notes plus coins {breakdown} "
                            f"do not match physical count {physical}"
                        ),
                    )
        return None

    def _save_cash_count(
        self,
        repository: LedgerRepositoryPort,
        request: ClosingRequest,
        state: CashCountState,
        day_range: DayRange,
        now: datetime,
    ) -> tuple[CashCount, list[CashCountDetail]]:
        existing = repository.find_cash_count(
            request.point_id,
            since=day_range.gte,
            until=day_range.lt,
            states=_OPEN_COUNT_STATES,
        )
        cash_count = CashCount(
            id=existing.id if existing else new_id(),
            point_id=request.point_id,
            user_id=request.user_id,
            state=state.value,
            opened_at=existing.opened_at if existing else _stamp_within(day_range, now),
            closed_at=now if state is CashCountState.CLOSED else None,
            total_income=round_money(
                sum((coerce_decimal(d.income_total) for d in request.details), _ZERO)
            ),
            total_expense=round_money(
                sum((coerce_decimal(d.expense_total) for d in request.details), _ZERO)
            ),
            total_movements=sum(int(d.movement_count) for d in request.details),
            observations=request.observations,
        )
        details = [self._build_detail(cash_count.id, d) for d in request.details]
        repository.save_cash_count(cash_count)
        repository.replace_cash_count_details(cash_count.id, details)
        return cash_count, details

    @staticmethod
    def _build_detail(cash_count_id: str, data: ClosingDetailInput) -> CashCountDetail:
        physical = round_money(data.physical_count)
        theoretical = round_money(data.theoretical_balance)
        if data.notes is None and data.coins is None:
            notes = physical
        else:
            notes = round_money(data.notes or 0)
        bank_theoretical = round_money(data.bank_theoretical)
        bank_physical = _money_or_none(data.bank_physical)
        bank_difference = (
            round_money(bank_physical - bank_theoretical)
            if bank_physical is not None
            else round_money(0)
        )
        return CashCountDetail(
            id=new_id(),
            cash_count_id=cash_count_id,
            currency_id=data.currency_id,
            opening_balance=round_money(data.opening_balance),
            theoretical_balance=theoretical,
            physical_count=physical,
            notes=notes,
            coins=round_money(data.coins or 0),
            difference=round_money(physical - theoretical),
            income_total=round_money(data.income_total),
            expense_total=round_money(data.expense_total),
            movement_count=int(data.movement_count),
            bank_theoretical=bank_theoretical,
            bank_physical=bank_physical,
            bank_difference=bank_difference,
            justification=data.justification,
        )

    @staticmethod
    def _discrepancies(
        repository: LedgerRepositoryPort,
        details: list[CashCountDetail],
    ) -> list[dict[str, Any]]:
        entries = []
        for detail in details:
            cash_off = abs(detail.difference) > BALANCE_TOLERANCE
            bank_off = (
                detail.bank_physical is not None
                and abs(detail.bank_difference) > BALANCE_TOLERANCE
            )
            if not (cash_off or bank_off):
                continue
            currency = repository.get_currency(detail.currency_id)
            entries.append(
                {
                    "currency_id": detail.currency_id,
                    "currency_code": currency.code if currency else None,
                    "theoretical_balance": float(detail.theoretical_balance),
                    "physical_count": float(detail.physical_count),
                    "difference": float(detail.difference),
                    "bank_theoretical": float(detail.bank_theoretical),
                    "bank_physical": (
                        float(detail.bank_physical)
                        if detail.bank_physical is not None
                        else None
                    ),
                    "bank_difference": float(detail.bank_difference),
                    "justification": detail.justification,
                }
            )
        return entries

    def _end_active_shift(
        self,
        repository: LedgerRepositoryPort,
        request: ClosingRequest,
        now: datetime,
    ) -> bool:
        shift = repository.find_active_shift(request.user_id, request.point_id)
        if shift is None:
            return False
        repository.save_shift(
            replace(
                shift,
                state=ShiftState.COMPLETED.value,
                ended_at=now,
                notes=AUTO_SHIFT_END_NOTE,
            )
        )
        return True

    @staticmethod
    def _sync_snapshot(
        repository: LedgerRepositoryPort,
        point_id: str,
        detail: CashCountDetail,
        now: datetime,
    ) -> None:
        physical = detail.physical_count
        notes, coins = normalize_cash_breakdown(physical, detail.notes, detail.coins)
        snapshot = repository.get_snapshot(point_id, detail.currency_id)
        bank = detail.bank_physical
        if bank is None:
            bank = snapshot.bank if snapshot is not None else round_money(0)
        repository.save_snapshot(
            BalanceSnapshot(
                id=snapshot.id if snapshot is not None else new_id(),
                point_id=point_id,
                currency_id=detail.currency_id,
                amount=physical,
                notes=notes,
                coins=coins,
                bank=bank,
                updated_at=now,
            )
        )

    def _upsert_closing_adjustment(
        self,
        repository: LedgerRepositoryPort,
        request: ClosingRequest,
        closure_id: str,
        detail: CashCountDetail,
        stamp: datetime,
    ) -> None:
        existing = repository.find_movement(
            request.point_id,
            detail.currency_id,
            reference_type=ReferenceType.CIERRE_DIARIO.value,
            reference_id=closure_id,
        )
        calculated = calculate_balance(
            repository,
            request.point_id,
            detail.currency_id,
            exclude_movement_ids=[existing.id] if existing else [],
            logger=self._logger,
        )
        needed = round_money(detail.physical_count - calculated)
        if abs(needed) <= BALANCE_TOLERANCE:
            if existing is not None:
                repository.delete_movements([existing.id])
            return

        movement = build_ledger_movement(
            point_id=request.point_id,
            currency_id=detail.currency_id,
            kind=MovementKind.INGRESO if needed > 0 else MovementKind.EGRESO,
            amount=abs(needed),
            balance_before=calculated,
            balance_after=detail.physical_count,
            description=f"AJUSTE CIERRE {request.day.isoformat()}",
            reference_type=ReferenceType.CIERRE_DIARIO,
            reference_id=closure_id,
            user_id=request.user_id,
            created_at=stamp,
            movement_id=existing.id if existing else None,
        )
        if existing is not None:
            repository.update_movement(movement)
        else:
            repository.add_movement(movement)
        self._logger.info(
            f"Closing adjustment point_id={request.point_id} "
            f"currency_id={detail.currency_id} amount={movement.amount}"
        )


__all__ = [
    "ClosureValidation",
    "ClosingDetailInput",
    "ClosingRequest",
    "ClosingResult",
    "CurrencyDaySummary",
    "DayTotals",
    "DaySummary",
    "ClosureStatus",
    "DailyClosingUseCase",
]
