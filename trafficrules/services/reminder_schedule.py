"""
Reminder Schedule

Pure time arithmetic for study reminders:
- weekday naming and validation
- parsing "HH:MM" reminder times
- deciding whether a reminder is due at a given instant
- computing the next instant a reminder should fire

Nothing here touches the clock or the database; callers pass `now`
explicitly so every function is deterministic.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


WEEKDAYS = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

# wider than any DST shift in the tz database
GAP_LOOKBACK_HOURS = 3


def day_name(moment: datetime) -> str:
    """Weekday name of `moment` in its own timezone."""
    return WEEKDAYS[moment.weekday()]


def get_zone(name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is empty or unknown
    """
    if not name:
        raise ValueError("Timezone is required")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}")


def parse_reminder_time(value: Union[str, time]) -> time:
    """
    Normalize a reminder time to minute precision.

    Accepts a `datetime.time` or an "HH:MM" / "HH:MM:SS" string.
    Seconds and microseconds are dropped so stored times always
    compare equal to a minute-truncated clock reading.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid reminder time: {value!r} (expected HH:MM)")
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid reminder time: {value!r} (expected HH:MM)")
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid reminder time: {value!r}")
    return time(hours, minutes)


def validate_days(days: Iterable[str]) -> List[str]:
    """
    Validate a set of weekday names.

    Returns the days de-duplicated in calendar order (Monday first).

    Raises:
        ValueError: If the collection is empty or holds an unknown name
    """
    if isinstance(days, str) or days is None:
        raise ValueError("Days of week must be a list of weekday names")
    days = list(days)
    if not days:
        raise ValueError("At least one day of week is required")
    invalid = [d for d in days if d not in WEEKDAYS]
    if invalid:
        raise ValueError(f"Invalid days: {', '.join(map(str, invalid))}")
    return [d for d in WEEKDAYS if d in days]


def local_now(now: datetime, tz_name: str) -> datetime:
    """Convert an aware instant into the reminder's wall clock."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(get_zone(tz_name))


def occurrence_at(day: date, due_time: time, zone: ZoneInfo) -> datetime:
    """
    The UTC instant of `due_time` on `day` in `zone`.

    A wall time skipped by a spring-forward change resolves with the
    offset in force before the change (02:30 in a 02:00-03:00 gap fires
    at 03:30 local). A repeated wall time resolves to its first occurrence.
    """
    return datetime.combine(day, due_time, tzinfo=zone).astimezone(timezone.utc)


def due_wall_times(now: datetime, tz_name: str) -> List[time]:
    """
    Reminder times (minute precision) that fire during the minute containing `now`.

    Normally just the local HH:MM. Right after a spring-forward change the
    skipped wall time that resolves to this minute is included as well.
    """
    zone = get_zone(tz_name)
    minute = local_now(now, "UTC").replace(second=0, microsecond=0)
    local = minute.astimezone(zone)
    times = [time(local.hour, local.minute)]

    earlier = (minute - timedelta(hours=GAP_LOOKBACK_HOURS)).astimezone(zone)
    jump = local.utcoffset() - earlier.utcoffset()
    if jump > timedelta(0):
        skipped = local.replace(tzinfo=None) - jump
        skipped_time = time(skipped.hour, skipped.minute)
        if skipped.date() == local.date() and occurrence_at(local.date(), skipped_time, zone) == minute:
            times.append(skipped_time)
    return times


def matches(
    reminder_time: Union[str, time],
    days_of_week: Iterable[str],
    tz_name: str,
    now: datetime,
) -> bool:
    """
    True if the reminder is due during the minute containing `now`.

    The reminder time is resolved on the local date the same way
    next_occurrence resolves it, then compared to `now` at minute precision.
    """
    zone = get_zone(tz_name)
    local = local_now(now, tz_name)
    minute = local.astimezone(timezone.utc).replace(second=0, microsecond=0)
    due_time = parse_reminder_time(reminder_time)
    if occurrence_at(local.date(), due_time, zone) != minute:
        return False
    return day_name(local) in set(days_of_week)


def same_local_minute(first: datetime, second: datetime, tz_name: str) -> bool:
    """True if both instants fall within one wall-clock minute of `tz_name`."""
    a = local_now(first, tz_name).replace(second=0, microsecond=0)
    b = local_now(second, tz_name).replace(second=0, microsecond=0)
    return a == b


def next_occurrence(
    reminder_time: Union[str, time],
    days_of_week: Iterable[str],
    tz_name: str,
    now: datetime,
) -> datetime:
    """
    Next instant, strictly after `now`, at which the reminder fires.

    Scans today plus the following six days (in the reminder's timezone)
    and returns the first active weekday whose reminder time is still ahead.
    When only today matches and its time has passed, the answer is the
    same weekday next week.

    Returns:
        Aware datetime in UTC
    """
    due_time = parse_reminder_time(reminder_time)
    days = set(validate_days(days_of_week))
    zone = get_zone(tz_name)
    local = local_now(now, tz_name)
    now_utc = local.astimezone(timezone.utc)

    for offset in range(7):
        candidate_date = local.date() + timedelta(days=offset)
        if WEEKDAYS[candidate_date.weekday()] not in days:
            continue
        candidate = occurrence_at(candidate_date, due_time, zone)
        if candidate > now_utc:
            return candidate

    return occurrence_at(local.date() + timedelta(days=7), due_time, zone)
