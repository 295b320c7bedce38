"""Sign normalization for ledger movements.

Legacy rows were written with inconsistent signs, so the amount stored on a
movement cannot be added to a balance as-is. ``normalize_movement_amount``
turns (kind, amount, description) into the delta a running cash balance
must apply. The rule order is fixed: special kinds first, then the known
income/expense sets, then substring heuristics, then pass-through.
"""

from decimal import Decimal

from cambio_ledger.domain.constants import (
    CAMBIO_EGRESS_PREFIX,
    CAMBIO_INGRESS_PREFIX,
    EXPENSE_KIND_TOKENS,
    INCOME_KIND_TOKENS,
)
from cambio_ledger.domain.models import (
    EXPENSE_KINDS,
    INCOME_KINDS,
    MovementKind,
    UnknownMovementKind,
    parse_movement_kind,
)
from cambio_ledger.utils.decimal_utils import coerce_decimal

_ZERO = Decimal("0")


def normalize_movement_amount(
    kind: str | MovementKind | UnknownMovementKind,
    amount,
    description: str | None = None,
) -> Decimal:
    """Return the signed delta a movement applies to the cash balance.

    Args:
        kind: Stored kind text or an already parsed kind.
        amount: Raw stored amount.
        description: Free-text description, used for CAMBIO_DIVISA rows.

    Returns:
        Decimal: Canonical signed delta.
    """
    parsed = kind
    if not isinstance(kind, (MovementKind, UnknownMovementKind)):
        parsed = parse_movement_kind(kind)
    value = coerce_decimal(amount)

    if parsed is MovementKind.SALDO_INICIAL:
        return _ZERO
    if parsed is MovementKind.AJUSTE:
        return value
    if parsed is MovementKind.CAMBIO_DIVISA:
        return _normalize_exchange(value, description)
    if parsed in INCOME_KINDS:
        return abs(value)
    if parsed in EXPENSE_KINDS:
        return -abs(value)

    raw = parsed.raw if isinstance(parsed, UnknownMovementKind) else parsed.value
    if any(token in raw for token in EXPENSE_KIND_TOKENS):
        return -abs(value)
    if any(token in raw for token in INCOME_KIND_TOKENS):
        return abs(value)
    return value


def _normalize_exchange(value: Decimal, description: str | None) -> Decimal:
    text = (description or "").strip().lower()
    if text.startswith(CAMBIO_EGRESS_PREFIX):
        return -abs(value)
    if text.startswith(CAMBIO_INGRESS_PREFIX):
        return abs(value)
    # Legacy rows without a recognizable prefix keep their stored sign.
    return value


__all__ = ["normalize_movement_amount"]
