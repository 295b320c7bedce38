"""Reference entities owned outside the ledger core."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PointOfAttention:
    """Physical or logical cash location."""

    id: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class User:
    """Back-office user.

    Attributes:
        id: User identifier.
        username: Login name.
        name: Display name.
        role: Role code; restricted roles may only act on ``point_id``.
        point_id: Point the user is assigned to, if any.
        is_active: Whether the account is enabled.
    """

    id: str
    username: str
    name: str
    role: str
    point_id: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Currency:
    """Currency with its exchange behavior flags.

    The behavior flags describe whether buy/sell rates multiply or divide;
    they shape upstream exchange records and are carried as-is here.
    """

    id: str
    code: str
    name: str = ""
    symbol: str = ""
    is_active: bool = True
    display_order: int = 0
    buy_multiplies: bool = True
    sell_multiplies: bool = True


__all__ = ["PointOfAttention", "User", "Currency"]
