"""SQLAlchemy implementation of the ledger repository and unit of work.

The repository works on a single SQLAlchemy connection that already has a
transaction open. ``SqlAlchemyUnitOfWork`` opens that transaction with
``engine.begin()`` so every write made through one repository instance
commits or rolls back together.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import Table, and_, delete, insert, or_, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from cambio_ledger.application.ports.database import DatabaseEnginePort
from cambio_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
    UnitOfWorkPort,
)
from cambio_ledger.domain.constants import ClosureState, ShiftState
from cambio_ledger.domain.models import (
    BalanceSnapshot,
    CashCount,
    CashCountDetail,
    Currency,
    DayAlreadyClosedError,
    DayClosure,
    ExchangeRecord,
    ExternalServiceBalance,
    ExternalServiceHistory,
    ExternalServiceMovement,
    InitialBalance,
    LedgerMovement,
    PointOfAttention,
    Shift,
    TransferRecord,
    User,
)
from cambio_ledger.infrastructure import schema
from cambio_ledger.utils.timezone import ensure_utc


def _to_db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


def _from_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _values(entity) -> dict[str, Any]:
    return {
        field.name: _to_db_value(getattr(entity, field.name))
        for field in fields(entity)
    }


def _build(model, row) -> Any:
    mapping = row._mapping
    return model(
        **{
            field.name: _from_db_value(mapping[field.name])
            for field in fields(model)
        }
    )


class SqlAlchemyLedgerRepository(LedgerRepositoryPort):
    """LedgerRepositoryPort backed by SQLAlchemy Core on one connection."""

    def __init__(self, conn: Connection) -> None:
        """Initialize the repository.

        Args:
            conn: Connection with an open transaction.
        """
        self._conn = conn

    # Generic helpers

    def _fetch_one(self, model, table: Table, *criteria, order_by=None):
        query = select(table).where(*criteria)
        if order_by is not None:
            query = query.order_by(*order_by)
        row = self._conn.execute(query.limit(1)).first()
        return _build(model, row) if row is not None else None

    def _fetch_all(self, model, table: Table, *criteria, order_by=None, limit=None):
        query = select(table).where(*criteria)
        if order_by is not None:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        return [_build(model, row) for row in self._conn.execute(query)]

    def _insert(self, table: Table, entity) -> None:
        self._conn.execute(insert(table).values(**_values(entity)))

    def _upsert(self, table: Table, entity, key_columns: tuple[str, ...]) -> None:
        values = _values(entity)
        criteria = [table.c[name] == values[name] for name in key_columns]
        existing = self._conn.execute(
            select(table.c.id).where(*criteria).limit(1)
        ).first()
        if existing is None:
            self._conn.execute(insert(table).values(**values))
            return
        values.pop("id")
        self._conn.execute(
            update(table).where(table.c.id == existing.id).values(**values)
        )

    def _delete_ids(self, table: Table, ids: Iterable[str]) -> int:
        id_list = list(ids)
        if not id_list:
            return 0
        result = self._conn.execute(delete(table).where(table.c.id.in_(id_list)))
        return result.rowcount or 0

    @staticmethod
    def _time_window(column, since: datetime | None, until: datetime | None) -> list:
        criteria = []
        if since is not None:
            criteria.append(column >= ensure_utc(since))
        if until is not None:
            criteria.append(column < ensure_utc(until))
        return criteria

    # Reference data

    def get_point(self, point_id: str) -> PointOfAttention | None:
        return self._fetch_one(
            PointOfAttention,
            schema.points,
            schema.points.c.id == point_id,
        )

    def list_points(self, include_inactive: bool = False) -> list[PointOfAttention]:
        criteria = [] if include_inactive else [schema.points.c.is_active.is_(True)]
        return self._fetch_all(
            PointOfAttention,
            schema.points,
            *criteria,
            order_by=(schema.points.c.name, schema.points.c.id),
        )

    def add_point(self, point: PointOfAttention) -> None:
        self._insert(schema.points, point)

    def get_user(self, user_id: str) -> User | None:
        return self._fetch_one(User, schema.users, schema.users.c.id == user_id)

    def find_user_by_username(self, username: str) -> User | None:
        return self._fetch_one(
            User,
            schema.users,
            schema.users.c.username == username,
        )

    def add_user(self, user: User) -> None:
        self._insert(schema.users, user)

    def get_currency(self, currency_id: str) -> Currency | None:
        return self._fetch_one(
            Currency,
            schema.currencies,
            schema.currencies.c.id == currency_id,
        )

    def find_currency_by_code(self, code: str) -> Currency | None:
        return self._fetch_one(
            Currency,
            schema.currencies,
            schema.currencies.c.code == code.strip().upper(),
        )

    def list_currencies(self, include_inactive: bool = False) -> list[Currency]:
        table = schema.currencies
        criteria = [] if include_inactive else [table.c.is_active.is_(True)]
        return self._fetch_all(
            Currency,
            table,
            *criteria,
            order_by=(table.c.display_order, table.c.name),
        )

    def add_currency(self, currency: Currency) -> None:
        self._insert(schema.currencies, currency)

    # Initial balances

    def get_active_initial_balance(
        self,
        point_id: str,
        currency_id: str,
    ) -> InitialBalance | None:
        table = schema.initial_balances
        return self._fetch_one(
            InitialBalance,
            table,
            table.c.point_id == point_id,
            table.c.currency_id == currency_id,
            table.c.is_active.is_(True),
            order_by=(table.c.assigned_at.desc(),),
        )

    def deactivate_initial_balances(self, point_id: str, currency_id: str) -> int:
        table = schema.initial_balances
        result = self._conn.execute(
            update(table)
            .where(
                table.c.point_id == point_id,
                table.c.currency_id == currency_id,
                table.c.is_active.is_(True),
            )
            .values(is_active=False)
        )
        return result.rowcount or 0

    def add_initial_balance(self, balance: InitialBalance) -> None:
        self._insert(schema.initial_balances, balance)

    # Ledger movements

    def list_movements(
        self,
        point_id: str,
        currency_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LedgerMovement]:
        table = schema.ledger_movements
        return self._fetch_all(
            LedgerMovement,
            table,
            table.c.point_id == point_id,
            table.c.currency_id == currency_id,
            *self._time_window(table.c.created_at, since, until),
            order_by=(table.c.created_at.asc(), table.c.id.asc()),
        )

    def scan_movements(
        self,
        point_id: str | None = None,
        currency_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[LedgerMovement]:
        table = schema.ledger_movements
        criteria = self._time_window(table.c.created_at, since, until)
        if point_id is not None:
            criteria.append(table.c.point_id == point_id)
        if currency_id is not None:
            criteria.append(table.c.currency_id == currency_id)
        return self._fetch_all(
            LedgerMovement,
            table,
            *criteria,
            order_by=(table.c.created_at.desc(), table.c.id.desc()),
            limit=limit,
        )

    def find_movement(
        self,
        point_id: str,
        currency_id: str,
        reference_type: str,
        reference_id: str | None = None,
        description: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> LedgerMovement | None:
        table = schema.ledger_movements
        criteria = [
            table.c.point_id == point_id,
            table.c.currency_id == currency_id,
            table.c.reference_type == _to_db_value(reference_type),
            *self._time_window(table.c.created_at, since, until),
        ]
        if reference_id is not None:
            criteria.append(table.c.reference_id == reference_id)
        if description is not None:
            criteria.append(table.c.description == description)
        return self._fetch_one(
            LedgerMovement,
            table,
            *criteria,
            order_by=(table.c.created_at.asc(), table.c.id.asc()),
        )

    def add_movement(self, movement: LedgerMovement) -> None:
        self._insert(schema.ledger_movements, movement)

    def update_movement(self, movement: LedgerMovement) -> None:
        values = _values(movement)
        movement_id = values.pop("id")
        table = schema.ledger_movements
        self._conn.execute(
            update(table).where(table.c.id == movement_id).values(**values)
        )

    def delete_movements(self, movement_ids: Iterable[str]) -> int:
        return self._delete_ids(schema.ledger_movements, movement_ids)

    def delete_movements_by_reference(self, reference_ids: Iterable[str]) -> int:
        id_list = list(reference_ids)
        if not id_list:
            return 0
        table = schema.ledger_movements
        result = self._conn.execute(
            delete(table).where(table.c.reference_id.in_(id_list))
        )
        return result.rowcount or 0

    # Balance snapshots

    def get_snapshot(self, point_id: str, currency_id: str) -> BalanceSnapshot | None:
        table = schema.balance_snapshots
        return self._fetch_one(
            BalanceSnapshot,
            table,
            table.c.point_id == point_id,
            table.c.currency_id == currency_id,
        )

    def list_snapshots(self, point_id: str | None = None) -> list[BalanceSnapshot]:
        table = schema.balance_snapshots
        criteria = [] if point_id is None else [table.c.point_id == point_id]
        return self._fetch_all(
            BalanceSnapshot,
            table,
            *criteria,
            order_by=(table.c.point_id, table.c.currency_id),
        )

    def save_snapshot(self, snapshot: BalanceSnapshot) -> None:
        self._upsert(
            schema.balance_snapshots,
            snapshot,
            ("point_id", "currency_id"),
        )

    # Cash counts

    def find_cash_count(
        self,
        point_id: str,
        since: datetime,
        until: datetime,
        states: Iterable[str],
    ) -> CashCount | None:
        table = schema.cash_counts
        return self._fetch_one(
            CashCount,
            table,
            table.c.point_id == point_id,
            table.c.state.in_([_to_db_value(state) for state in states]),
            *self._time_window(table.c.opened_at, since, until),
            order_by=(table.c.opened_at.desc(),),
        )

    def save_cash_count(self, cash_count: CashCount) -> None:
        self._upsert(schema.cash_counts, cash_count, ("id",))

    def replace_cash_count_details(
        self,
        cash_count_id: str,
        details: Iterable[CashCountDetail],
    ) -> None:
        table = schema.cash_count_details
        self._conn.execute(delete(table).where(table.c.cash_count_id == cash_count_id))
        rows = [_values(detail) for detail in details]
        if rows:
            self._conn.execute(insert(table), rows)

    def list_cash_count_details(self, cash_count_id: str) -> list[CashCountDetail]:
        table = schema.cash_count_details
        return self._fetch_all(
            CashCountDetail,
            table,
            table.c.cash_count_id == cash_count_id,
            order_by=(table.c.currency_id,),
        )

    def find_last_count_detail(
        self,
        point_id: str,
        currency_id: str,
        before: datetime,
        states: Iterable[str],
    ) -> CashCountDetail | None:
        details = schema.cash_count_details
        headers = schema.cash_counts
        query = (
            select(details)
            .join(headers, headers.c.id == details.c.cash_count_id)
            .where(
                headers.c.point_id == point_id,
                details.c.currency_id == currency_id,
                headers.c.opened_at < ensure_utc(before),
                headers.c.state.in_([_to_db_value(state) for state in states]),
            )
            .order_by(headers.c.opened_at.desc())
            .limit(1)
        )
        row = self._conn.execute(query).first()
        return _build(CashCountDetail, row) if row is not None else None

    # Day closures

    def get_day_closure(self, point_id: str, day: date) -> DayClosure | None:
        table = schema.day_closures
        return self._fetch_one(
            DayClosure,
            table,
            table.c.point_id == point_id,
            table.c.day == day,
        )

    def add_day_closure(self, closure: DayClosure) -> None:
        try:
            self._insert(schema.day_closures, closure)
        except IntegrityError as exc:
            raise DayAlreadyClosedError(
                f"Day {closure.day.isoformat()} already has a closure "
                f"for point_id={closure.point_id}"
            ) from exc

    def close_day_closure(self, closure: DayClosure) -> bool:
        table = schema.day_closures
        values = _values(closure)
        values.pop("id")
        result = self._conn.execute(
            update(table)
            .where(
                table.c.id == closure.id,
                table.c.state != ClosureState.CLOSED.value,
            )
            .values(**values)
        )
        return bool(result.rowcount)

    # Shifts

    def find_active_shift(self, user_id: str, point_id: str) -> Shift | None:
        table = schema.shifts
        return self._fetch_one(
            Shift,
            table,
            table.c.user_id == user_id,
            table.c.point_id == point_id,
            table.c.state.in_([ShiftState.ACTIVE.value, ShiftState.LUNCH.value]),
            table.c.ended_at.is_(None),
            order_by=(table.c.started_at.desc(),),
        )

    def save_shift(self, shift: Shift) -> None:
        self._upsert(schema.shifts, shift, ("id",))

    # Upstream operations

    def list_exchanges(
        self,
        point_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        states: Iterable[str] | None = None,
    ) -> list[ExchangeRecord]:
        table = schema.exchanges
        criteria = self._time_window(table.c.created_at, since, until)
        if point_id is not None:
            criteria.append(table.c.point_id == point_id)
        if states is not None:
            criteria.append(table.c.state.in_([_to_db_value(s) for s in states]))
        return self._fetch_all(
            ExchangeRecord,
            table,
            *criteria,
            order_by=(table.c.created_at.asc(), table.c.id.asc()),
        )

    def add_exchange(self, exchange: ExchangeRecord) -> None:
        self._insert(schema.exchanges, exchange)

    def delete_exchanges(self, exchange_ids: Iterable[str]) -> int:
        return self._delete_ids(schema.exchanges, exchange_ids)

    def list_transfers(
        self,
        point_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        states: Iterable[str] | None = None,
    ) -> list[TransferRecord]:
        table = schema.transfers
        criteria = self._time_window(table.c.created_at, since, until)
        if point_id is not None:
            criteria.append(
                or_(
                    table.c.origin_point_id == point_id,
                    table.c.destination_point_id == point_id,
                )
            )
        if states is not None:
            criteria.append(table.c.state.in_([_to_db_value(s) for s in states]))
        return self._fetch_all(
            TransferRecord,
            table,
            *criteria,
            order_by=(table.c.created_at.asc(), table.c.id.asc()),
        )

    def add_transfer(self, transfer: TransferRecord) -> None:
        self._insert(schema.transfers, transfer)

    def delete_transfers(self, transfer_ids: Iterable[str]) -> int:
        return self._delete_ids(schema.transfers, transfer_ids)

    def list_external_movements(
        self,
        point_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ExternalServiceMovement]:
        table = schema.external_service_movements
        criteria = self._time_window(table.c.created_at, since, until)
        if point_id is not None:
            criteria.append(table.c.point_id == point_id)
        return self._fetch_all(
            ExternalServiceMovement,
            table,
            *criteria,
            order_by=(table.c.created_at.asc(), table.c.id.asc()),
        )

    def add_external_movement(self, movement: ExternalServiceMovement) -> None:
        self._insert(schema.external_service_movements, movement)

    def delete_external_movements(self, movement_ids: Iterable[str]) -> int:
        return self._delete_ids(schema.external_service_movements, movement_ids)

    # External-service balances

    def get_external_balance(
        self,
        point_id: str,
        service: str,
    ) -> ExternalServiceBalance | None:
        table = schema.external_service_balances
        return self._fetch_one(
            ExternalServiceBalance,
            table,
            and_(table.c.point_id == point_id, table.c.service == service),
        )

    def save_external_balance(self, balance: ExternalServiceBalance) -> None:
        self._upsert(
            schema.external_service_balances,
            balance,
            ("point_id", "service"),
        )

    def add_external_history(self, entry: ExternalServiceHistory) -> None:
        self._insert(schema.external_service_history, entry)


class SqlAlchemyUnitOfWork(UnitOfWorkPort):
    """UnitOfWorkPort that maps one transaction to ``engine.begin()``."""

    def __init__(self, db_port: DatabaseEnginePort) -> None:
        """Initialize the unit of work.

        Args:
            db_port: Port providing the ledger engine.
        """
        self._db_port = db_port

    @contextmanager
    def transaction(self) -> Iterator[SqlAlchemyLedgerRepository]:
        """Yield a repository bound to a new transaction."""
        engine = self._db_port.get_ledger_engine()
        with engine.begin() as conn:
            yield SqlAlchemyLedgerRepository(conn)


__all__ = ["SqlAlchemyLedgerRepository", "SqlAlchemyUnitOfWork"]
