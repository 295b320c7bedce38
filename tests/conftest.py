"""Shared fixtures: a file-backed SQLite ledger and seeding helpers."""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine

from cambio_ledger.application.ports.database import DatabaseEnginePort
from cambio_ledger.domain.models import (
    BalanceSnapshot,
    Currency,
    InitialBalance,
    LedgerMovement,
    PointOfAttention,
    Shift,
    User,
)
from cambio_ledger.infrastructure.ledger_repository import SqlAlchemyUnitOfWork
from cambio_ledger.infrastructure.logging import logger as logger_module
from cambio_ledger.infrastructure.schema import ensure_schema
from cambio_ledger.utils.identifiers import new_id


class _FakeDatabasePort(DatabaseEnginePort):
    def __init__(self, engine) -> None:
        self._engine = engine

    def get_ledger_engine(self):
        return self._engine


class LedgerSeeder:
    """Insert reference rows and ledger history for a test."""

    def __init__(self, uow: SqlAlchemyUnitOfWork) -> None:
        self._uow = uow

    def point(self, name: str = "Plaza del Valle", is_active: bool = True) -> str:
        point = PointOfAttention(id=new_id(), name=name, is_active=is_active)
        with self._uow.transaction() as repo:
            repo.add_point(point)
        return point.id

    def user(
        self,
        username: str = "operador1",
        role: str = "OPERADOR",
        point_id: str | None = None,
    ) -> str:
        user = User(
            id=new_id(),
            username=username,
            name=username.title(),
            role=role,
            point_id=point_id,
        )
        with self._uow.transaction() as repo:
            repo.add_user(user)
        return user.id

    def currency(self, code: str = "USD", display_order: int = 0) -> str:
        currency = Currency(
            id=new_id(),
            code=code,
            name=code,
            symbol="$",
            display_order=display_order,
        )
        with self._uow.transaction() as repo:
            repo.add_currency(currency)
        return currency.id

    def initial_balance(
        self,
        point_id: str,
        currency_id: str,
        amount,
        assigned_at: datetime,
    ) -> str:
        balance = InitialBalance(
            id=new_id(),
            point_id=point_id,
            currency_id=currency_id,
            amount=Decimal(str(amount)),
            assigned_at=assigned_at,
            assigned_by="admin",
        )
        with self._uow.transaction() as repo:
            repo.add_initial_balance(balance)
        return balance.id

    def movement(
        self,
        point_id: str,
        currency_id: str,
        kind: str,
        amount,
        created_at: datetime,
        description: str | None = None,
        balance_before=0,
        balance_after=0,
        reference_type: str | None = None,
        reference_id: str | None = None,
    ) -> str:
        movement = LedgerMovement(
            id=new_id(),
            point_id=point_id,
            currency_id=currency_id,
            kind=kind,
            amount=Decimal(str(amount)),
            balance_before=Decimal(str(balance_before)),
            balance_after=Decimal(str(balance_after)),
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            created_at=created_at,
        )
        with self._uow.transaction() as repo:
            repo.add_movement(movement)
        return movement.id

    def snapshot(
        self,
        point_id: str,
        currency_id: str,
        amount,
        notes=None,
        coins=0,
        bank=0,
    ) -> None:
        value = Decimal(str(amount))
        with self._uow.transaction() as repo:
            repo.save_snapshot(
                BalanceSnapshot(
                    id=new_id(),
                    point_id=point_id,
                    currency_id=currency_id,
                    amount=value,
                    notes=value if notes is None else Decimal(str(notes)),
                    coins=Decimal(str(coins)),
                    bank=Decimal(str(bank)),
                    updated_at=datetime.now(timezone.utc),
                )
            )

    def shift(self, user_id: str, point_id: str, started_at: datetime) -> str:
        shift = Shift(
            id=new_id(),
            user_id=user_id,
            point_id=point_id,
            state="ACTIVO",
            started_at=started_at,
        )
        with self._uow.transaction() as repo:
            repo.save_shift(shift)
        return shift.id


@pytest.fixture(autouse=True)
def _logs_in_tmp(tmp_path_factory, monkeypatch):
    """Keep log files out of the working tree."""
    log_root = tmp_path_factory.getbasetemp()
    monkeypatch.setattr(logger_module, "get_project_root", lambda: Path(log_root))


@pytest.fixture
def engine(tmp_path):
    """SQLite engine with the ledger schema."""
    db_engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", future=True)
    ensure_schema(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def db_port(engine):
    """Database port returning the test engine."""
    return _FakeDatabasePort(engine)


@pytest.fixture
def uow(db_port):
    """Unit of work over the test database."""
    return SqlAlchemyUnitOfWork(db_port)


@pytest.fixture
def seed(uow):
    """Seeding helper bound to the test database."""
    return LedgerSeeder(uow)


@pytest.fixture
def logger():
    """Logger double that records calls."""
    return MagicMock()
