"""CLI adapter to recalculate balance snapshots from the ledger.

Without ``--execute`` the command only lists the snapshots that drifted and
exits with status 2 when any were found. ``--execute`` also needs
``CONFIRM=1`` in the environment.
"""

import argparse
import sys

from cambio_ledger.adapters.cli_support import execution_confirmed
from cambio_ledger.infrastructure.container import (
    build_database_adapter,
    build_recalculate_balances_use_case,
    build_reconcile_balances_use_case,
)
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cambio-reconcile",
        description="Recalculate balance snapshots and report drift.",
    )
    parser.add_argument(
        "--currency",
        action="append",
        dest="currencies",
        help="Currency code to process (repeatable, default USD).",
    )
    parser.add_argument(
        "--all-currencies",
        action="store_true",
        help="Process every active currency.",
    )
    parser.add_argument(
        "--include-inactive",
        action="store_true",
        help="Include inactive points.",
    )
    parser.add_argument("--point-id", help="Process a single point.")
    parser.add_argument("--limit", type=int, help="Maximum points to process.")
    parser.add_argument(
        "--report",
        action="store_true",
        help="Only list out-of-tolerance snapshots system-wide.",
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Apply the corrections (requires CONFIRM=1).",
    )
    return parser


def _print_report(use_case) -> int:
    rows = use_case.report_inconsistencies()
    for row in rows:
        print(
            f"{row.point_name} [{row.currency_code}]: "
            f"snapshot={row.snapshot_amount} calculated={row.calculated_amount} "
            f"diff={row.diff}"
        )
    print(f"Inconsistent snapshots: {len(rows)}")
    return 0 if not rows else 2


def main(argv: list[str] | None = None) -> int:
    """Run the balance recalculation batch."""
    args = _build_parser().parse_args(argv)
    logger = get_maintenance_logger()
    db_adapter = build_database_adapter()

    if args.report:
        return _print_report(build_reconcile_balances_use_case(db_adapter))

    if args.execute and not execution_confirmed(logger):
        return 1

    currency_codes = None if args.all_currencies else (args.currencies or ["USD"])
    use_case = build_recalculate_balances_use_case(db_adapter)
    report = use_case.run(
        execute=args.execute,
        point_id=args.point_id,
        currency_codes=currency_codes,
        include_inactive=args.include_inactive,
        limit=args.limit,
    )

    for correction in report.corrections:
        print(
            f"{correction.point_name} [{correction.currency_code}]: "
            f"{correction.before} -> {correction.after} (diff={correction.diff})"
        )
    for error in report.errors:
        print(f"ERROR {error}")
    print(
        f"Points={report.points_processed} pairs={report.pairs_checked} "
        f"corrections={len(report.corrections)} applied={report.applied} "
        f"errors={len(report.errors)}"
    )

    if report.errors:
        return 1
    if report.corrections and not args.execute:
        return 2
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
