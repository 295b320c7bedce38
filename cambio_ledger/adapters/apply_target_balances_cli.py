"""CLI adapter to apply counted end-of-day balances.

Example::

    CONFIRM=1 cambio-apply-targets --date 2025-03-14 \
        --set "Plaza:1250.40" --set "Amazonas:980" --execute
"""

import argparse
import sys

from cambio_ledger.adapters.cli_support import execution_confirmed, parse_date
from cambio_ledger.application.use_cases.apply_target_balances import parse_target
from cambio_ledger.infrastructure.container import (
    build_apply_target_balances_use_case,
    build_database_adapter,
)
from cambio_ledger.infrastructure.logging.logger import get_maintenance_logger
from cambio_ledger.utils.timezone import today_date_only


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cambio-apply-targets",
        description="Adjust ledger and snapshots to counted end-of-day balances.",
    )
    parser.add_argument(
        "--set",
        action="append",
        dest="targets",
        required=True,
        metavar="NAME:AMOUNT",
        help="Point name fragment (or id) and its counted balance.",
    )
    parser.add_argument("--date", help="Business day (YYYY-MM-DD), default today.")
    parser.add_argument("--currency", default="USD", help="Currency code.")
    parser.add_argument("--user-id", help="User recorded on the adjustments.")
    parser.add_argument(
        "--allow-ambiguous",
        action="store_true",
        help="Apply a fragment to every point it matches.",
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Write the adjustments (requires CONFIRM=1).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Apply the requested targets."""
    args = _build_parser().parse_args(argv)
    logger = get_maintenance_logger()

    try:
        targets = [parse_target(raw) for raw in args.targets]
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    day = parse_date(args.date or today_date_only(), logger)
    if day is None:
        return 1

    if args.execute and not execution_confirmed(logger):
        return 1

    use_case = build_apply_target_balances_use_case(build_database_adapter())
    try:
        report = use_case.run(
            targets,
            day,
            currency_code=args.currency.upper(),
            execute=args.execute,
            user_id=args.user_id,
            allow_ambiguous=args.allow_ambiguous,
        )
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    for outcome in report.outcomes:
        if outcome.point_id is None:
            print(f"{outcome.target.point}: {outcome.status} {outcome.message}")
            continue
        print(
            f"{outcome.point_name}: calculated={outcome.calculated} "
            f"target={outcome.target.amount} adjustment={outcome.adjustment} "
            f"status={outcome.status}"
        )
    return 1 if report.failed else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
