"""Application use cases package."""

from .calculate_balance import CalculateBalanceUseCase, calculate_balance
from .reconcile_balances import (
    ReconcileBalancesUseCase,
    ReconciliationResult,
    PointReconciliation,
    InconsistencyRow,
)
from .assign_initial_balance import (
    AssignInitialBalanceUseCase,
    InitialBalanceAssignment,
)
from .daily_closing import (
    DailyClosingUseCase,
    ClosingDetailInput,
    ClosingRequest,
    ClosingResult,
    ClosureValidation,
    ClosureStatus,
    DaySummary,
)
from .external_service_ledger import (
    ExternalServiceLedgerUseCase,
    ExternalIncomeResult,
    ExternalBalanceResult,
)
from .recalculate_balances import RecalculateBalancesUseCase, RecalculationReport
from .deduplicate_records import DeduplicateRecordsUseCase, DeduplicationReport
from .apply_target_balances import (
    ApplyTargetBalancesUseCase,
    BalanceTarget,
    TargetReport,
)
from .fix_movement_signs import FixMovementSignsUseCase, SignFixReport
from .provision_reference_data import (
    ProvisionReferenceDataUseCase,
    ReferenceData,
)

__all__ = [
    "CalculateBalanceUseCase",
    "calculate_balance",
    "ReconcileBalancesUseCase",
    "ReconciliationResult",
    "PointReconciliation",
    "InconsistencyRow",
    "AssignInitialBalanceUseCase",
    "InitialBalanceAssignment",
    "DailyClosingUseCase",
    "ClosingDetailInput",
    "ClosingRequest",
    "ClosingResult",
    "ClosureValidation",
    "ClosureStatus",
    "DaySummary",
    "ExternalServiceLedgerUseCase",
    "ExternalIncomeResult",
    "ExternalBalanceResult",
    "RecalculateBalancesUseCase",
    "RecalculationReport",
    "DeduplicateRecordsUseCase",
    "DeduplicationReport",
    "ApplyTargetBalancesUseCase",
    "BalanceTarget",
    "TargetReport",
    "FixMovementSignsUseCase",
    "SignFixReport",
    "ProvisionReferenceDataUseCase",
    "ReferenceData",
]
