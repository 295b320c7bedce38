"""Application ports package."""

from .database import DatabaseEnginePort
from .ledger_repository import LedgerRepositoryPort, UnitOfWorkPort

__all__ = ["DatabaseEnginePort", "LedgerRepositoryPort", "UnitOfWorkPort"]
