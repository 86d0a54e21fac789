"""Clock-time helpers for hour-aligned court slots.

Slot times are stored as ``datetime.time``. An end time of ``00:00`` means
midnight at the end of the booking day, so interval arithmetic works on
minutes since midnight instead of comparing ``time`` objects directly.
"""

import datetime as dt
import re

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MINUTES_PER_DAY = 24 * 60
SLOT_MINUTES = 60


def parse_hhmm(value: str) -> dt.time | None:
    match = HHMM_PATTERN.match(value)
    if not match:
        return None
    return dt.time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: dt.time) -> str:
    return value.strftime("%H:%M")


def start_minutes(value: dt.time) -> int:
    return value.hour * 60 + value.minute


def end_minutes(value: dt.time) -> int:
    minutes = start_minutes(value)
    return minutes if minutes else MINUTES_PER_DAY


def default_end_time(start: dt.time) -> dt.time:
    return time_from_minutes(start_minutes(start) + SLOT_MINUTES)


def time_from_minutes(minutes: int) -> dt.time:
    minutes %= MINUTES_PER_DAY
    return dt.time(minutes // 60, minutes % 60)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open [start, end) intersection; identical intervals overlap."""
    return start_a < end_b and start_b < end_a


def slot_end_datetime(day: dt.date, end: dt.time, tz: dt.tzinfo) -> dt.datetime:
    """Aware end datetime of a slot; an ``00:00`` end rolls to the next day."""
    if end == dt.time(0, 0):
        return dt.datetime.combine(day + dt.timedelta(days=1), end, tzinfo=tz)
    return dt.datetime.combine(day, end, tzinfo=tz)


def weekly_dates(start: dt.date, end: dt.date, day_of_week: int) -> list[dt.date]:
    """Dates in ``[start, end]`` falling on ``day_of_week`` (0 = Sunday, 6 = Saturday)."""
    offset = (day_of_week - start.isoweekday() % 7) % 7
    dates = []
    current = start + dt.timedelta(days=offset)
    while current <= end:
        dates.append(current)
        current += dt.timedelta(weeks=1)
    return dates


def slot_duration_minutes(start: dt.time, end: dt.time) -> int:
    return end_minutes(end) - start_minutes(start)
