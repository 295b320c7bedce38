"""Domain policies package."""

from .ledger_policies import can_operate_point, is_bank_movement

__all__ = ["can_operate_point", "is_bank_movement"]
