"""Repository and unit-of-work ports for the ledger core.

The repository exposes keyed reads and writes of every ledger entity. A
repository instance is always bound to one transaction; use cases obtain it
from ``UnitOfWorkPort.transaction()`` so that every write made through it
commits or rolls back together.
"""

from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Protocol

from cambio_ledger.domain.models import (
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
    PointOfAttention,
    Shift,
    TransferRecord,
    User,
)


class LedgerRepositoryPort(Protocol):
    """Keyed access to ledger entities inside one transaction."""

    # Reference data
    def get_point(self, point_id: str) -> PointOfAttention | None:
        """Return a point by id."""

    def list_points(self, include_inactive: bool = False) -> list[PointOfAttention]:
        """Return points ordered by name."""

    def add_point(self, point: PointOfAttention) -> None:
        """Insert a point."""

    def get_user(self, user_id: str) -> User | None:
        """Return a user by id."""

    def find_user_by_username(self, username: str) -> User | None:
        """Return a user by login name."""

    def add_user(self, user: User) -> None:
        """Insert a user."""

    def get_currency(self, currency_id: str) -> Currency | None:
        """Return a currency by id."""

    def find_currency_by_code(self, code: str) -> Currency | None:
        """Return a currency by code."""

    def list_currencies(self, include_inactive: bool = False) -> list[Currency]:
        """Return currencies ordered by display order, then name."""

    def add_currency(self, currency: Currency) -> None:
        """Insert a currency."""

    # Initial balances
    def get_active_initial_balance(
        self,
        point_id: str,
        currency_id: str,
    ) -> InitialBalance | None:
        """Return the most recent active initial balance."""

    def deactivate_initial_balances(self, point_id: str, currency_id: str) -> int:
        """Deactivate active initial balances and return how many changed."""

    def add_initial_balance(self, balance: InitialBalance) -> None:
        """Insert an initial balance."""

    # Ledger movements
    def list_movements(
        self,
        point_id: str,
        currency_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LedgerMovement]:
        """Return movements in ``[since, until)`` ordered by timestamp."""

    def scan_movements(
        self,
        point_id: str | None = None,
        currency_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[LedgerMovement]:
        """Return movements across points, newest first."""

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
        """Return the earliest movement matching a reference."""

    def add_movement(self, movement: LedgerMovement) -> None:
        """Append a movement."""

    def update_movement(self, movement: LedgerMovement) -> None:
        """Rewrite a movement (maintenance tooling only)."""

    def delete_movements(self, movement_ids: Iterable[str]) -> int:
        """Delete movements by id and return how many were removed."""

    def delete_movements_by_reference(self, reference_ids: Iterable[str]) -> int:
        """Delete movements pointing at the given reference ids."""

    # Balance snapshots
    def get_snapshot(self, point_id: str, currency_id: str) -> BalanceSnapshot | None:
        """Return the snapshot for a (point, currency)."""

    def list_snapshots(self, point_id: str | None = None) -> list[BalanceSnapshot]:
        """Return snapshots, optionally for one point."""

    def save_snapshot(self, snapshot: BalanceSnapshot) -> None:
        """Upsert a snapshot by (point, currency)."""

    # Cash counts
    def find_cash_count(
        self,
        point_id: str,
        since: datetime,
        until: datetime,
        states: Iterable[str],
    ) -> CashCount | None:
        """Return the latest cash count opened in ``[since, until)``."""

    def save_cash_count(self, cash_count: CashCount) -> None:
        """Upsert a cash-count header by id."""

    def replace_cash_count_details(
        self,
        cash_count_id: str,
        details: Iterable[CashCountDetail],
    ) -> None:
        """Delete the header's details and insert the given ones."""

    def list_cash_count_details(self, cash_count_id: str) -> list[CashCountDetail]:
        """Return the details of a cash count."""

    def find_last_count_detail(
        self,
        point_id: str,
        currency_id: str,
        before: datetime,
        states: Iterable[str],
    ) -> CashCountDetail | None:
        """Return the latest detail whose header was opened before ``before``."""

    # Day closures
    def get_day_closure(self, point_id: str, day: date) -> DayClosure | None:
        """Return the closure for a (point, day)."""

    def add_day_closure(self, closure: DayClosure) -> None:
        """Insert a closure; raise DayAlreadyClosedError if (point, day) exists."""

    def close_day_closure(self, closure: DayClosure) -> bool:
        """Overwrite a closure that is not closed yet.

        Returns:
            bool: False when the stored row is already CERRADO.
        """

    # Shifts
    def find_active_shift(self, user_id: str, point_id: str) -> Shift | None:
        """Return the open shift (ACTIVO/ALMUERZO without end) of a user."""

    def save_shift(self, shift: Shift) -> None:
        """Upsert a shift by id."""

    # Upstream operations
    def list_exchanges(
        self,
        point_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        states: Iterable[str] | None = None,
    ) -> list[ExchangeRecord]:
        """Return exchanges ordered by timestamp."""

    def add_exchange(self, exchange: ExchangeRecord) -> None:
        """Insert an exchange."""

    def delete_exchanges(self, exchange_ids: Iterable[str]) -> int:
        """Delete exchanges by id."""

    def list_transfers(
        self,
        point_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        states: Iterable[str] | None = None,
    ) -> list[TransferRecord]:
        """Return transfers touching a point in either direction."""

    def add_transfer(self, transfer: TransferRecord) -> None:
        """Insert a transfer."""

    def delete_transfers(self, transfer_ids: Iterable[str]) -> int:
        """Delete transfers by id."""

    def list_external_movements(
        self,
        point_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ExternalServiceMovement]:
        """Return external-service movements ordered by timestamp."""

    def add_external_movement(self, movement: ExternalServiceMovement) -> None:
        """Insert an external-service movement."""

    def delete_external_movements(self, movement_ids: Iterable[str]) -> int:
        """Delete external-service movements by id."""

    # External-service balances
    def get_external_balance(
        self,
        point_id: str,
        service: str,
    ) -> ExternalServiceBalance | None:
        """Return the service balance of a point."""

    def save_external_balance(self, balance: ExternalServiceBalance) -> None:
        """Upsert a service balance by (point, service)."""

    def add_external_history(self, entry: ExternalServiceHistory) -> None:
        """Append a credit/debit history row."""


class UnitOfWorkPort(Protocol):
    """Factory of transaction-scoped repositories."""

    def transaction(self) -> AbstractContextManager[LedgerRepositoryPort]:
        """Open a transaction and yield a repository bound to it.

        The transaction commits when the block exits normally and rolls back
        when it raises.
        """


__all__ = ["LedgerRepositoryPort", "UnitOfWorkPort"]
