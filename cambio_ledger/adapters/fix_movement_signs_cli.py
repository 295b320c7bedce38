"""CLI adapter to backfill ledger rows stored with an inverted sign."""

import argparse
import sys

from cambio_ledger.adapters.cli_support import execution_confirmed, parse_date
from cambio_ledger.infrastructure.container import (
    build_database_adapter,
    build_fix_movement_signs_use_case,
)
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger
from cambio_ledger.utils.timezone import day_range_utc_from_date


def main(argv: list[str] | None = None) -> int:
    """Scan ledger rows and fix the confirmed sign inversions."""
    parser = argparse.ArgumentParser(
        prog="cambio-fix-signs",
        description="Fix ledger rows whose sign contradicts their kind.",
    )
    parser.add_argument("--point-id", help="Restrict to one point.")
    parser.add_argument("--currency-id", help="Restrict to one currency.")
    parser.add_argument("--since", help="First business day (YYYY-MM-DD).")
    parser.add_argument("--until", help="Last business day (YYYY-MM-DD).")
    parser.add_argument("--limit", type=int, default=5000, help="Rows to scan.")
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Rewrite confirmed rows (requires CONFIRM=1).",
    )
    args = parser.parse_args(argv)
    logger = get_maintenance_logger()

    since_day = parse_date(args.since, logger)
    until_day = parse_date(args.until, logger)
    if args.execute and not execution_confirmed(logger):
        return 1

    use_case = build_fix_movement_signs_use_case(build_database_adapter())
    report = use_case.run(
        execute=args.execute,
        point_id=args.point_id,
        currency_id=args.currency_id,
        since=day_range_utc_from_date(since_day).gte if since_day else None,
        until=day_range_utc_from_date(until_day).lt if until_day else None,
        limit=args.limit,
    )

    for fix in report.fixes:
        state = "fix" if fix.confirmed else "skip"
        print(
            f"{state} {fix.movement_id} {fix.kind}: "
            f"{fix.amount} -> {fix.corrected_amount}"
        )
    print(
        f"Scanned={report.scanned} inverted={len(report.fixes)} "
        f"applied={report.applied} skipped={len(report.skipped)}"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
