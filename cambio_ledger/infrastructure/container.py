"""Composition root for wiring infrastructure adapters."""

from cambio_ledger.application.ports.database import DatabaseEnginePort
from cambio_ledger.application.ports.ledger_repository import UnitOfWorkPort
from cambio_ledger.application.use_cases.apply_target_balances import (
    ApplyTargetBalancesUseCase,
)
from cambio_ledger.application.use_cases.assign_initial_balance import (
    AssignInitialBalanceUseCase,
)
from cambio_ledger.application.use_cases.calculate_balance import (
    CalculateBalanceUseCase,
)
from cambio_ledger.application.use_cases.daily_closing import DailyClosingUseCase
from cambio_ledger.application.use_cases.deduplicate_records import (
    DeduplicateRecordsUseCase,
)
from cambio_ledger.application.use_cases.external_service_ledger import (
    ExternalServiceLedgerUseCase,
)
from cambio_ledger.application.use_cases.fix_movement_signs import (
    FixMovementSignsUseCase,
)
from cambio_ledger.application.use_cases.provision_reference_data import (
    ProvisionReferenceDataUseCase,
    ReferenceData,
)
from cambio_ledger.application.use_cases.recalculate_balances import (
    RecalculateBalancesUseCase,
)
from cambio_ledger.application.use_cases.reconcile_balances import (
    ReconcileBalancesUseCase,
)
from cambio_ledger.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from cambio_ledger.infrastructure.ledger_repository import SqlAlchemyUnitOfWork
from cambio_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_maintenance_logger,
)
from cambio_ledger.infrastructure.schema import ensure_schema
from cambio_ledger.infrastructure.settings import LedgerSettings


def build_database_adapter() -> DatabaseEnginePort:
    """Return the database adapter instance."""
    return SqlAlchemyDatabaseEngineAdapter()


def build_unit_of_work(db_port: DatabaseEnginePort | None = None) -> UnitOfWorkPort:
    """Return a unit of work bound to the ledger database."""
    resolved_db = db_port or build_database_adapter()
    return SqlAlchemyUnitOfWork(resolved_db)


def build_reference_data(
    db_port: DatabaseEnginePort | None = None,
    settings: LedgerSettings | None = None,
) -> ReferenceData:
    """Create missing tables and provision the system user and base currency."""
    resolved_db = db_port or build_database_adapter()
    resolved_settings = settings or LedgerSettings.from_env()
    ensure_schema(resolved_db.get_ledger_engine())
    use_case = ProvisionReferenceDataUseCase(
        build_unit_of_work(resolved_db),
        base_currency_code=resolved_settings.base_currency_code,
        system_username=resolved_settings.system_username,
        logger=get_app_logger(),
    )
    return use_case.run()


def build_calculate_balance_use_case(
    db_port: DatabaseEnginePort | None = None,
) -> CalculateBalanceUseCase:
    """Return the balance calculator."""
    return CalculateBalanceUseCase(build_unit_of_work(db_port), get_app_logger())


def build_reconcile_balances_use_case(
    db_port: DatabaseEnginePort | None = None,
) -> ReconcileBalancesUseCase:
    """Return the snapshot reconciler."""
    return ReconcileBalancesUseCase(build_unit_of_work(db_port), get_app_logger())


def build_assign_initial_balance_use_case(
    db_port: DatabaseEnginePort | None = None,
) -> AssignInitialBalanceUseCase:
    """Return the initial-balance assignment use case."""
    return AssignInitialBalanceUseCase(
        build_unit_of_work(db_port),
        get_app_logger(),
    )


def build_daily_closing_use_case(
    db_port: DatabaseEnginePort | None = None,
    settings: LedgerSettings | None = None,
) -> DailyClosingUseCase:
    """Return the daily closing use case configured from settings."""
    resolved_settings = settings or LedgerSettings.from_env()
    return DailyClosingUseCase(
        build_unit_of_work(db_port),
        get_app_logger(),
        record_adjustments=resolved_settings.record_closing_adjustments,
        base_currency_code=resolved_settings.base_currency_code,
    )


def build_external_service_ledger_use_case(
    db_port: DatabaseEnginePort | None = None,
    settings: LedgerSettings | None = None,
) -> ExternalServiceLedgerUseCase:
    """Return the external-service ledger bound to provisioned reference data."""
    resolved_db = db_port or build_database_adapter()
    resolved_settings = settings or LedgerSettings.from_env()
    reference = build_reference_data(resolved_db, resolved_settings)
    return ExternalServiceLedgerUseCase(
        build_unit_of_work(resolved_db),
        currency_id=reference.base_currency_id,
        system_user_id=reference.system_user_id,
        logger=get_app_logger(),
        service=resolved_settings.external_service,
    )


def build_recalculate_balances_use_case(
    db_port: DatabaseEnginePort | None = None,
) -> RecalculateBalancesUseCase:
    """Return the batch recalculation use case."""
    return RecalculateBalancesUseCase(
        build_unit_of_work(db_port),
        get_maintenance_logger(),
    )


def build_deduplicate_records_use_case(
    db_port: DatabaseEnginePort | None = None,
) -> DeduplicateRecordsUseCase:
    """Return the duplicate cleanup use case."""
    return DeduplicateRecordsUseCase(
        build_unit_of_work(db_port),
        get_maintenance_logger(),
    )


def build_apply_target_balances_use_case(
    db_port: DatabaseEnginePort | None = None,
    settings: LedgerSettings | None = None,
) -> ApplyTargetBalancesUseCase:
    """Return the end-of-day target use case."""
    resolved_db = db_port or build_database_adapter()
    reference = build_reference_data(resolved_db, settings)
    return ApplyTargetBalancesUseCase(
        build_unit_of_work(resolved_db),
        system_user_id=reference.system_user_id,
        logger=get_maintenance_logger(),
    )


def build_fix_movement_signs_use_case(
    db_port: DatabaseEnginePort | None = None,
) -> FixMovementSignsUseCase:
    """Return the sign backfill use case."""
    return FixMovementSignsUseCase(
        build_unit_of_work(db_port),
        get_maintenance_logger(),
    )


__all__ = [
    "build_database_adapter",
    "build_unit_of_work",
    "build_reference_data",
    "build_calculate_balance_use_case",
    "build_reconcile_balances_use_case",
    "build_assign_initial_balance_use_case",
    "build_daily_closing_use_case",
    "build_external_service_ledger_use_case",
    "build_recalculate_balances_use_case",
    "build_deduplicate_records_use_case",
    "build_apply_target_balances_use_case",
    "build_fix_movement_signs_use_case",
]
