"""Startup provisioning of the system user and the base currency."""

from dataclasses import dataclass

from cambio_ledger.application.ports.ledger_repository import UnitOfWorkPort
from cambio_ledger.domain.constants import SYSTEM_ROLE
from cambio_ledger.domain.models import Currency, User
from cambio_ledger.infrastructure.logging.logger import get_app_logger
from cambio_ledger.utils.identifiers import new_id

_CURRENCY_NAMES = {
    "USD": ("Dólar estadounidense", "$"),
    "EUR": ("Euro", "€"),
    "COP": ("Peso colombiano", "$"),
    "PEN": ("Sol peruano", "S/"),
}


@dataclass(frozen=True)
class ReferenceData:
    """Identifiers business operations receive from the composition root."""

    system_user_id: str
    base_currency_id: str


class ProvisionReferenceDataUseCase:
    """Get or create the rows every ledger operation depends on."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        base_currency_code: str = "USD",
        system_username: str = "SYSTEM",
        logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow: Unit of work providing transaction-bound repositories.
            base_currency_code: Code of the base currency.
            system_username: Login name of the system user.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._base_currency_code = base_currency_code.upper()
        self._system_username = system_username
        self._logger = logger or get_app_logger()

    def run(self) -> ReferenceData:
        """Ensure the system user and base currency exist.

        Returns:
            ReferenceData: Their identifiers.
        """
        with self._uow.transaction() as repository:
            user = repository.find_user_by_username(self._system_username)
            if user is None:
                user = User(
                    id=new_id(),
                    username=self._system_username,
                    name="Sistema",
                    role=SYSTEM_ROLE,
                )
                repository.add_user(user)
                self._logger.info(f"Created system user {user.username}")

            currency = repository.find_currency_by_code(self._base_currency_code)
            if currency is None:
                name, symbol = _CURRENCY_NAMES.get(
                    self._base_currency_code,
                    (self._base_currency_code, ""),
                )
                currency = Currency(
                    id=new_id(),
                    code=self._base_currency_code,
                    name=name,
                    symbol=symbol,
                )
                repository.add_currency(currency)
                self._logger.info(f"Created base currency {currency.code}")

        return ReferenceData(system_user_id=user.id, base_currency_id=currency.id)


__all__ = ["ReferenceData", "ProvisionReferenceDataUseCase"]
