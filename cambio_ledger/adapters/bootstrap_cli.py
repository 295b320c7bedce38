"""CLI adapter to create the ledger schema and provision reference rows."""

from cambio_ledger.infrastructure.container import (
    build_database_adapter,
    build_reference_data,
)
from cambio_ledger.infrastructure.logging.logger import get_app_logger


def main() -> None:
    """Create missing tables, then the system user and base currency."""
    logger = get_app_logger()
    reference = build_reference_data(build_database_adapter())
    logger.info("Ledger schema is ready.")
    print(
        f"System user id={reference.system_user_id}, "
        f"base currency id={reference.base_currency_id}"
    )


if __name__ == "__main__":  # pragma: no cover
    main()
