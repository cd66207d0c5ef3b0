"""
Tests for local-calendar helpers (America/Mexico_City, UTC-6 in 2025).
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from refassign.models.match import Match
from refassign.utils.dates import local_day_bounds, operational_day, to_store_instant, weekday_code
from tests.factories import KICKOFF, add_base_hierarchy, add_match

MX = ZoneInfo("America/Mexico_City")


def local(year, month, day, hour, minute=0) -> datetime:
    """Naive-UTC store instant for a Mexico City wall-clock time."""
    return to_store_instant(datetime(year, month, day, hour, minute, tzinfo=MX))


def test_to_store_instant():
    aware = datetime(2025, 3, 15, 23, 30, tzinfo=MX)
    assert to_store_instant(aware) == datetime(2025, 3, 16, 5, 30)
    assert to_store_instant(datetime(2025, 1, 1, 10, 0)) == datetime(2025, 1, 1, 10, 0)
    assert to_store_instant(datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)) == datetime(2025, 1, 1, 10, 0)


def test_weekday_code_uses_local_calendar():
    # Sunday in UTC, still Saturday in Mexico City
    assert weekday_code(datetime(2025, 3, 16, 3, 0)) == "S"
    assert weekday_code(datetime(2025, 3, 17, 18, 0)) == "L"
    assert weekday_code(None) is None


def test_operational_day_rollover():
    assert operational_day(local(2025, 3, 15, 23, 30), rollover_hour=1) == date(2025, 3, 15)
    assert operational_day(local(2025, 3, 16, 0, 30), rollover_hour=1) == date(2025, 3, 15)
    assert operational_day(local(2025, 3, 16, 1, 0), rollover_hour=1) == date(2025, 3, 16)
    assert operational_day(local(2025, 3, 16, 0, 30), rollover_hour=0) == date(2025, 3, 16)


def test_local_day_bounds_are_store_instants():
    start, end = local_day_bounds(local(2025, 3, 15, 23, 30), rollover_hour=1)

    assert start == datetime(2025, 3, 15, 7, 0)
    assert end == datetime(2025, 3, 16, 7, 0)


def test_local_day_bounds_midnight_rollover():
    start, end = local_day_bounds(local(2025, 3, 15, 12, 0), rollover_hour=0)

    assert start == datetime(2025, 3, 15, 6, 0)
    assert end == datetime(2025, 3, 16, 6, 0)


def test_store_keeps_naive_utc_kickoff(session):
    add_base_hierarchy(session)
    add_match(session, "M1", kickoff=local(2025, 3, 15, 12))
    session.expire_all()

    stored = session.get(Match, "M1")

    assert stored.kickoff == KICKOFF
    assert stored.kickoff.tzinfo is None
