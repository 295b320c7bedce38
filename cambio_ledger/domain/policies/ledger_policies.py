"""Business policies keyed on free-text and role fields."""

from cambio_ledger.domain.constants import BANK_MARKERS, RESTRICTED_ROLES
from cambio_ledger.domain.models import User


def is_bank_movement(description: str | None) -> bool:
    """Return True when a ledger description marks a bank-bucket movement.

    Args:
        description: Free-text movement description.

    Returns:
        bool: True if the description mentions "banco" or "bancos".
    """
    if not description:
        return False
    lowered = description.lower()
    return any(marker in lowered for marker in BANK_MARKERS)


def can_operate_point(user: User, point_id: str) -> bool:
    """Return True when the user may act on the given point.

    Restricted roles are tied to their assigned point; other roles may
    operate any point.
    """
    if user.role.strip().upper() in RESTRICTED_ROLES:
        return user.point_id == point_id
    return True


__all__ = ["is_bank_movement", "can_operate_point"]
