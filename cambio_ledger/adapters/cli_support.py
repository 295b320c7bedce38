"""Helpers shared by the maintenance command-line adapters."""

from datetime import date
import os

CONFIRM_ENV = "CONFIRM"


def execution_confirmed(logger) -> bool:
    """Return True when destructive runs were confirmed through the env.

    Args:
        logger: Logger used to explain how to confirm.

    Returns:
        bool: Whether ``CONFIRM=1`` is set.
    """
    if os.getenv(CONFIRM_ENV, "").strip() == "1":
        return True
    logger.warning(
        f"--execute requires {CONFIRM_ENV}=1 in the environment. Nothing was written."
    )
    return False


def parse_date(value: str | None, logger) -> date | None:
    """Parse an ISO date string into a date.

    Args:
        value: Date string in YYYY-MM-DD format.
        logger: Logger used for warnings.

    Returns:
        date | None: Parsed date or None when invalid.
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        logger.warning(f"Invalid date '{value}'. Expected format YYYY-MM-DD.")
        return None


__all__ = ["CONFIRM_ENV", "execution_confirmed", "parse_date"]
