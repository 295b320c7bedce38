"""CLI adapter to remove duplicated exchanges, transfers and service rows."""

import argparse
import sys

from cambio_ledger.adapters.cli_support import execution_confirmed
from cambio_ledger.infrastructure.container import (
    build_database_adapter,
    build_deduplicate_records_use_case,
)
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger


def main(argv: list[str] | None = None) -> int:
    """Report duplicates and optionally delete them."""
    parser = argparse.ArgumentParser(
        prog="cambio-deduplicate",
        description="Find duplicated operations and delete the extra copies.",
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Delete the duplicates (requires CONFIRM=1).",
    )
    args = parser.parse_args(argv)
    logger = get_maintenance_logger()

    if args.execute and not execution_confirmed(logger):
        return 1

    use_case = build_deduplicate_records_use_case(build_database_adapter())
    report = use_case.run(execute=args.execute)

    for group in report.groups:
        print(
            f"{group.record_type}: keep {group.keep_id}, "
            f"duplicates {', '.join(group.duplicate_ids)}"
        )
    print(
        f"Duplicate groups={len(report.groups)} "
        f"records={report.duplicate_count}"
    )
    if report.executed:
        print(
            f"Removed {report.removed}; "
            f"ledger movements removed={report.removed_movements}"
        )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
