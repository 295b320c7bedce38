"""Detect and remove duplicated upstream operations.

Exchanges, transfers and external-service movements are grouped by a
composite natural key. Each group with more than one record keeps the
earliest (timestamp, then id); the rest are reported and, on execute,
deleted along with the ledger movements that point at them. Run this before
recalculating balances.
"""

from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from cambio_ledger.application.ports.ledger_repository import UnitOfWorkPort
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger
from cambio_ledger.utils.decimal_utils import round_money

EXCHANGES = "exchanges"
TRANSFERS = "transfers"
EXTERNAL_MOVEMENTS = "external_movements"


@dataclass(frozen=True)
class DuplicateGroup:
    """Records sharing the same natural key."""

    record_type: str
    key: tuple
    keep_id: str
    duplicate_ids: list[str]


@dataclass
class DeduplicationReport:
    """Summary of a deduplication run."""

    executed: bool
    groups: list[DuplicateGroup] = field(default_factory=list)
    removed: dict[str, int] = field(default_factory=dict)
    removed_movements: int = 0

    @property
    def duplicate_count(self) -> int:
        """Return the number of records flagged for removal."""
        return sum(len(group.duplicate_ids) for group in self.groups)


def _exchange_key(record) -> tuple:
    return (
        round_money(record.origin_amount),
        round_money(record.destination_amount),
        record.origin_currency_id,
        record.destination_currency_id,
        record.point_id,
        record.created_at,
        record.operation_type,
        record.receipt_number,
    )


def _transfer_key(record) -> tuple:
    return (
        round_money(record.amount),
        record.currency_id,
        record.origin_point_id,
        record.destination_point_id,
        record.created_at,
        record.transfer_type,
        record.receipt_number,
    )


def _external_key(record) -> tuple:
    return (
        round_money(record.amount),
        record.currency_id,
        record.point_id,
        record.service,
        record.kind,
        record.created_at,
        record.reference_number,
    )


def find_duplicate_groups(
    record_type: str,
    records: Iterable[Any],
    key: Callable[[Any], tuple],
) -> list[DuplicateGroup]:
    """Group records by key and return groups with more than one member.

    Args:
        record_type: Label stored on each group.
        records: Records exposing ``id`` and ``created_at``.
        key: Function computing the natural key.

    Returns:
        list[DuplicateGroup]: Groups keeping their earliest record.
    """
    buckets: dict[tuple, list[Any]] = defaultdict(list)
    for record in records:
        buckets[key(record)].append(record)

    groups = []
    for group_key, members in buckets.items():
        if len(members) < 2:
            continue
        ordered = sorted(members, key=lambda r: (r.created_at, r.id))
        groups.append(
            DuplicateGroup(
                record_type=record_type,
                key=group_key,
                keep_id=ordered[0].id,
                duplicate_ids=[r.id for r in ordered[1:]],
            )
        )
    return groups


class DeduplicateRecordsUseCase:
    """Data-hygiene pass over upstream operation tables."""

    def __init__(self, uow: UnitOfWorkPort, logger=None) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._logger = logger or get_maintenance_logger()

    def run(self, execute: bool = False) -> DeduplicationReport:
        """Find duplicates and optionally delete them.

        Args:
            execute: Delete the duplicates; otherwise only report them.

        Returns:
            DeduplicationReport: Groups found and rows removed.
        """
        report = DeduplicationReport(executed=execute)
        with self._uow.transaction() as repository:
            report.groups.extend(
                find_duplicate_groups(
                    EXCHANGES,
                    repository.list_exchanges(),
                    _exchange_key,
                )
            )
            report.groups.extend(
                find_duplicate_groups(
                    TRANSFERS,
                    repository.list_transfers(),
                    _transfer_key,
                )
            )
            report.groups.extend(
                find_duplicate_groups(
                    EXTERNAL_MOVEMENTS,
                    repository.list_external_movements(),
                    _external_key,
                )
            )
            self._logger.info(
                f"Found {len(report.groups)} duplicate groups "
                f"({report.duplicate_count} records)"
            )
            if not execute:
                return report

            deleters = {
                EXCHANGES: repository.delete_exchanges,
                TRANSFERS: repository.delete_transfers,
                EXTERNAL_MOVEMENTS: repository.delete_external_movements,
            }
            removed_ids = []
            for record_type, delete in deleters.items():
                ids = [
                    record_id
                    for group in report.groups
                    if group.record_type == record_type
                    for record_id in group.duplicate_ids
                ]
                report.removed[record_type] = delete(ids)
                removed_ids.extend(ids)
            report.removed_movements = repository.delete_movements_by_reference(
                removed_ids
            )

        self._logger.info(
            f"Removed duplicates: {report.removed}; "
            f"ledger movements removed: {report.removed_movements}"
        )
        return report


__all__ = [
    "DuplicateGroup",
    "DeduplicationReport",
    "find_duplicate_groups",
    "DeduplicateRecordsUseCase",
]
