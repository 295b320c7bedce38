"""Business-day helpers for the fixed UTC-5 timezone.

Exchange points operate in Guayaquil time, which is UTC-5 all year long
(no daylight saving). Every "day" used by closings, summaries and
maintenance scripts is a half-open UTC range ``[gte, lt)`` covering one
local calendar day.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

BUSINESS_UTC_OFFSET = timedelta(hours=-5)
BUSINESS_TZ = timezone(BUSINESS_UTC_OFFSET, name="America/Guayaquil")


@dataclass(frozen=True)
class DayRange:
    """Half-open UTC range covering one business day.

    Attributes:
        gte: Inclusive start (local midnight expressed in UTC).
        lt: Exclusive end, 24 hours after ``gte``.
    """

    gte: datetime
    lt: datetime

    def contains(self, moment: datetime) -> bool:
        """Return True when ``moment`` falls inside the range."""
        return self.gte <= ensure_utc(moment) < self.lt


def ensure_utc(moment: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def business_date_of(moment: datetime) -> date:
    """Return the local business date for an instant."""
    return ensure_utc(moment).astimezone(BUSINESS_TZ).date()


def _range_for_local_date(local_day: date) -> DayRange:
    start_local = datetime.combine(local_day, time.min, tzinfo=BUSINESS_TZ)
    gte = start_local.astimezone(timezone.utc)
    return DayRange(gte=gte, lt=gte + timedelta(days=1))


def day_range_utc_from_date(moment: datetime | date) -> DayRange:
    """Return the UTC range of the business day containing ``moment``.

    Args:
        moment: Instant (naive values are UTC) or a plain local date.

    Returns:
        DayRange: Half-open UTC range for the local day.
    """
    if isinstance(moment, datetime):
        return _range_for_local_date(business_date_of(moment))
    return _range_for_local_date(moment)


def day_range_utc_from_date_only(value: str) -> DayRange:
    """Return the UTC range for a ``YYYY-MM-DD`` business date.

    Raises:
        ValueError: If the value is not a valid ISO date.
    """
    return _range_for_local_date(date.fromisoformat(value.strip()))


def today_date_only(now: datetime | None = None) -> str:
    """Return today's business date as ``YYYY-MM-DD``."""
    return business_date_of(now or datetime.now(timezone.utc)).isoformat()


__all__ = [
    "BUSINESS_TZ",
    "BUSINESS_UTC_OFFSET",
    "DayRange",
    "ensure_utc",
    "business_date_of",
    "day_range_utc_from_date",
    "day_range_utc_from_date_only",
    "today_date_only",
]
