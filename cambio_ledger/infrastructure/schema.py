"""SQLAlchemy Core tables for the ledger database."""

from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine

metadata = MetaData()


def _money(name: str, nullable: bool = False, default=Decimal("0")) -> Column:
    return Column(name, Numeric(18, 2), nullable=nullable, default=default)


points = Table(
    "points",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
)

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(100), nullable=False, unique=True),
    Column("name", String(200), nullable=False),
    Column("role", String(30), nullable=False),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
)

currencies = Table(
    "currencies",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("code", String(10), nullable=False, unique=True),
    Column("name", String(100), nullable=False, default=""),
    Column("symbol", String(10), nullable=False, default=""),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("display_order", Integer, nullable=False, default=0),
    Column("buy_multiplies", Boolean, nullable=False, default=True),
    Column("sell_multiplies", Boolean, nullable=False, default=True),
)

initial_balances = Table(
    "initial_balances",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("currency_id", String(36), ForeignKey("currencies.id"), nullable=False),
    _money("amount"),
    Column("assigned_at", DateTime(timezone=True), nullable=False),
    Column("assigned_by", String(36), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("notes", Text, nullable=True),
)

ledger_movements = Table(
    "ledger_movements",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("currency_id", String(36), ForeignKey("currencies.id"), nullable=False),
    Column("kind", String(40), nullable=False),
    _money("amount"),
    _money("balance_before"),
    _money("balance_after"),
    Column("description", Text, nullable=True),
    Column("reference_type", String(40), nullable=True),
    Column("reference_id", String(36), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Column("user_id", String(36), nullable=True),
)

balance_snapshots = Table(
    "balance_snapshots",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("currency_id", String(36), ForeignKey("currencies.id"), nullable=False),
    _money("amount"),
    _money("notes"),
    _money("coins"),
    _money("bank"),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("point_id", "currency_id", name="uq_snapshot_point_currency"),
)

cash_counts = Table(
    "cash_counts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("user_id", String(36), nullable=False),
    Column("state", String(20), nullable=False),
    Column("opened_at", DateTime(timezone=True), nullable=False, index=True),
    Column("closed_at", DateTime(timezone=True), nullable=True),
    _money("total_income"),
    _money("total_expense"),
    Column("total_movements", Integer, nullable=False, default=0),
    Column("observations", Text, nullable=True),
)

cash_count_details = Table(
    "cash_count_details",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "cash_count_id",
        String(36),
        ForeignKey("cash_counts.id"),
        nullable=False,
    ),
    Column("currency_id", String(36), ForeignKey("currencies.id"), nullable=False),
    _money("opening_balance"),
    _money("theoretical_balance"),
    _money("physical_count"),
    _money("notes"),
    _money("coins"),
    _money("difference"),
    _money("income_total"),
    _money("expense_total"),
    Column("movement_count", Integer, nullable=False, default=0),
    _money("bank_theoretical"),
    _money("bank_physical", nullable=True, default=None),
    _money("bank_difference"),
    Column("justification", Text, nullable=True),
    UniqueConstraint(
        "cash_count_id",
        "currency_id",
        name="uq_count_detail_currency",
    ),
)

day_closures = Table(
    "day_closures",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("day", Date, nullable=False),
    Column("user_id", String(36), nullable=False),
    Column("state", String(20), nullable=False),
    Column("discrepancies", JSON, nullable=False),
    Column("closed_at", DateTime(timezone=True), nullable=True),
    Column("closed_by", String(36), nullable=True),
    Column("observations", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("point_id", "day", name="uq_closure_point_day"),
)

shifts = Table(
    "shifts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), nullable=False),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("state", String(20), nullable=False),
    Column("started_at", DateTime(timezone=True), nullable=False),
    Column("ended_at", DateTime(timezone=True), nullable=True),
    Column("notes", Text, nullable=True),
)

exchanges = Table(
    "exchanges",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("origin_currency_id", String(36), nullable=False),
    Column("destination_currency_id", String(36), nullable=False),
    _money("origin_amount"),
    _money("destination_amount"),
    Column("state", String(20), nullable=False),
    Column("operation_type", String(20), nullable=False),
    Column("receipt_number", String(60), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)

transfers = Table(
    "transfers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("origin_point_id", String(36), nullable=True),
    Column("destination_point_id", String(36), nullable=False),
    Column("currency_id", String(36), nullable=False),
    _money("amount"),
    Column("state", String(20), nullable=False),
    Column("transfer_type", String(30), nullable=False),
    Column("receipt_number", String(60), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)

external_service_movements = Table(
    "external_service_movements",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("service", String(40), nullable=False),
    Column("kind", String(20), nullable=False),
    Column("currency_id", String(36), nullable=False),
    _money("amount"),
    Column("user_id", String(36), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Column("description", Text, nullable=True),
    Column("reference_number", String(60), nullable=True),
    _money("notes_amount"),
    _money("coins_amount"),
    _money("bank_amount"),
)

external_service_balances = Table(
    "external_service_balances",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), ForeignKey("points.id"), nullable=False),
    Column("service", String(40), nullable=False),
    _money("total"),
    _money("used"),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("point_id", "service", name="uq_external_point_service"),
)

external_service_history = Table(
    "external_service_history",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("point_id", String(36), nullable=False),
    Column("point_name", String(200), nullable=False),
    Column("service", String(40), nullable=False),
    _money("amount"),
    Column("created_by", String(100), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("reference", String(60), nullable=True),
)


def ensure_schema(engine: Engine) -> None:
    """Create missing ledger tables.

    Args:
        engine: SQLAlchemy engine connected to the ledger database.
    """
    metadata.create_all(engine)


__all__ = [
    "metadata",
    "points",
    "users",
    "currencies",
    "initial_balances",
    "ledger_movements",
    "balance_snapshots",
    "cash_counts",
    "cash_count_details",
    "day_closures",
    "shifts",
    "exchanges",
    "transfers",
    "external_service_movements",
    "external_service_balances",
    "external_service_history",
    "ensure_schema",
]
