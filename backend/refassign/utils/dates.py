"""
Timezone helpers.

The match store keeps kickoffs as naive UTC instants. All calendar reasoning
(weekday rules, same-day detection) happens in the local league timezone via
zoneinfo, then gets converted back to naive UTC for store queries.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from refassign.settings import LOCAL_TIMEZONE

# Python weekday() index (0=Monday) -> rule weekday code
WEEKDAY_CODES = ("L", "M", "X", "J", "V", "S", "D")


def local_zone(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or LOCAL_TIMEZONE)


def to_store_instant(value: datetime) -> datetime:
    """Normalize any datetime to the store's naive-UTC representation.

    Naive inputs are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_store_instant(value: datetime) -> datetime:
    """Attach UTC to a naive store instant."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


def local_datetime(tz_name: Optional[str], day: date, at: time) -> datetime:
    """Build an aware datetime for a local wall-clock time."""
    return datetime.combine(day, at, tzinfo=local_zone(tz_name))


def to_local(value: datetime, tz_name: Optional[str] = None) -> datetime:
    return from_store_instant(value).astimezone(local_zone(tz_name))


def weekday_code(kickoff: Optional[datetime], tz_name: Optional[str] = None) -> Optional[str]:
    """Weekday code (L M X J V S D) of a kickoff in the local calendar."""
    if kickoff is None:
        return None
    return WEEKDAY_CODES[to_local(kickoff, tz_name).weekday()]


def operational_day(kickoff: datetime, rollover_hour: int = 0, tz_name: Optional[str] = None) -> date:
    """Local calendar day a kickoff belongs to.

    Kickoffs before `rollover_hour` local time count for the previous day.
    """
    local = to_local(kickoff, tz_name)
    if local.hour < rollover_hour:
        return local.date() - timedelta(days=1)
    return local.date()


def local_day_bounds(
    kickoff: datetime, rollover_hour: int = 0, tz_name: Optional[str] = None
) -> Tuple[datetime, datetime]:
    """
    Half-open [start, end) store-instant bounds of the operational day
    containing `kickoff`.

    Bounds are built as local wall-clock times in the zone and only then
    converted to naive UTC, so a UTC offset change between start and end is
    handled by zoneinfo.
    """
    day = operational_day(kickoff, rollover_hour, tz_name)
    boundary = time(hour=rollover_hour)
    start_local = local_datetime(tz_name, day, boundary)
    end_local = local_datetime(tz_name, day + timedelta(days=1), boundary)
    return to_store_instant(start_local), to_store_instant(end_local)
