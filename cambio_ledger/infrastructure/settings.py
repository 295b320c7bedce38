"""Settings helpers for infrastructure adapters."""

from dataclasses import dataclass
import os

from cambio_ledger.infrastructure.logging.logger import get_app_logger

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LedgerSettings:
    """Settings for the ledger core.

    Attributes:
        base_currency_code: Currency provisioned at startup and used by the
            external-service ledger and the maintenance defaults.
        system_username: Login name of the user recorded on automated writes.
        external_service: Name of the external service whose balance is
            tracked (e.g. the courier).
        record_closing_adjustments: Whether a day close appends a ledger
            adjustment for each counted difference.
    """

    base_currency_code: str = "USD"
    system_username: str = "SYSTEM"
    external_service: str = "SERVIENTREGA"
    record_closing_adjustments: bool = True

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """Build settings from environment variables.

        Returns:
            LedgerSettings: Settings sourced from environment variables.
        """
        logger = get_app_logger()
        base_currency = os.getenv("LEDGER_BASE_CURRENCY", "USD").strip().upper()
        system_username = os.getenv("LEDGER_SYSTEM_USER", "SYSTEM").strip()
        external_service = (
            os.getenv("LEDGER_EXTERNAL_SERVICE", "SERVIENTREGA").strip().upper()
        )
        adjustments = cls._parse_bool(
            os.getenv("LEDGER_CLOSING_ADJUSTMENTS"),
            default=True,
            name="LEDGER_CLOSING_ADJUSTMENTS",
            logger=logger,
        )
        return cls(
            base_currency_code=base_currency or "USD",
            system_username=system_username or "SYSTEM",
            external_service=external_service or "SERVIENTREGA",
            record_closing_adjustments=adjustments,
        )

    @staticmethod
    def _parse_bool(raw: str | None, default: bool, name: str, logger) -> bool:
        """Parse a boolean flag from an environment value.

        Args:
            raw: Raw environment value.
            default: Value used when the variable is unset or invalid.
            name: Variable name, used in warnings.
            logger: Logger used for warnings.

        Returns:
            bool: Parsed flag.
        """
        if raw is None or not raw.strip():
            return default
        cleaned = raw.strip().lower()
        if cleaned in _TRUE_VALUES:
            return True
        if cleaned in _FALSE_VALUES:
            return False
        logger.warning(f"Invalid boolean for {name}: {raw!r}; using {default}")
        return default


__all__ = ["LedgerSettings"]
