"""
Interval arithmetic shared by the availability resolver and the slot search.

All helpers work on `Interval` values and return new ones; nothing here touches
storage. Working-hours templates are wall-clock times in the business timezone,
so they are resolved against a concrete date and converted to UTC before any
comparison is made.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, List, Sequence

from .errors import InvalidArgument
from .models import Interval, WorkingHoursEntry


def day_of_week(day: date) -> int:
    """Weekday number with 0 = Sunday .. 6 = Saturday."""
    return day.isoweekday() % 7


def ensure_aware(value: datetime, field: str) -> datetime:
    """Rejects naive datetimes; they cannot be compared across timezones."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidArgument(field, f"{field} must be timezone-aware")
    return value


def validate_interval(candidate: Interval, field: str = "candidate") -> Interval:
    """
    Checks that a caller-supplied window is usable and returns it in UTC.

    Raises:
        InvalidArgument: naive datetimes, or end not after start.
    """
    ensure_aware(candidate.start, f"{field}.start")
    ensure_aware(candidate.end, f"{field}.end")
    if candidate.end <= candidate.start:
        raise InvalidArgument(field, "End date must be after start date")
    return Interval(
        start=candidate.start.astimezone(timezone.utc),
        end=candidate.end.astimezone(timezone.utc),
    )


def day_span(day: date, tz: tzinfo) -> Interval:
    """The whole local calendar day `day` as a UTC interval."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return Interval(start=start.astimezone(timezone.utc), end=end.astimezone(timezone.utc))


def local_to_utc(day: date, wall: time, tz: tzinfo) -> datetime:
    """
    Resolves a wall-clock time on `day` in `tz` to UTC.

    Times skipped by a spring-forward transition are moved forward by the length
    of the gap (02:30 in a 02:00-03:00 gap becomes 03:30 after the jump). Times
    repeated by a fall-back transition resolve to their first occurrence.
    """
    return datetime.combine(day, wall.replace(tzinfo=None), tzinfo=tz).replace(fold=0).astimezone(timezone.utc)


def working_windows(entries: Iterable[WorkingHoursEntry], day: date, tz: tzinfo) -> List[Interval]:
    """
    Resolves the templates matching `day`'s weekday into concrete UTC windows.

    Adjacent templates are kept as separate windows: a candidate must fit inside
    a single template to count as within working hours. A template whose bounds
    collapse across a spring-forward gap (end not after start once resolved)
    yields no window that day.

    Args:
        entries: The technician's working-hours entries (any weekday).
        day: The local calendar date to resolve.
        tz: The business timezone the templates are expressed in.

    Returns:
        Windows for that day, ordered by start.
    """
    weekday = day_of_week(day)
    windows = []
    for entry in entries:
        if entry.day_of_week != weekday:
            continue
        start = local_to_utc(day, entry.start_time, tz)
        end = local_to_utc(day, entry.end_time, tz)
        if end > start:
            windows.append(Interval(start=start, end=end))
    return sorted(windows, key=lambda w: w.start)


def subtract(window: Interval, busy: Iterable[Interval]) -> List[Interval]:
    """
    Removes every busy interval from `window`.

    Example:
        window 09:00-17:00, busy [10:00-11:00, 14:00-15:00]
        -> [09:00-10:00, 11:00-14:00, 15:00-17:00]
    """
    free: List[Interval] = []
    cursor = window.start

    for blocked in sorted((b for b in busy if b.overlaps(window)), key=lambda b: b.start):
        if cursor < blocked.start:
            free.append(Interval(start=cursor, end=blocked.start))
        cursor = max(cursor, min(blocked.end, window.end))

    if cursor < window.end:
        free.append(Interval(start=cursor, end=window.end))
    return free


def free_windows(windows: Sequence[Interval], busy: Sequence[Interval]) -> List[Interval]:
    """Subtracts `busy` from each window; the result is sorted by start."""
    result: List[Interval] = []
    for window in sorted(windows, key=lambda w: w.start):
        result.extend(subtract(window, busy))
    return sorted(result, key=lambda w: w.start)


def not_before(windows: Sequence[Interval], instant: datetime) -> List[Interval]:
    """Trims windows so that none of them starts before `instant`."""
    trimmed = []
    for window in windows:
        if window.end <= instant:
            continue
        trimmed.append(Interval(start=max(window.start, instant), end=window.end))
    return trimmed


def candidate_from_slot(day: date, start: time, duration_minutes: int, tz: tzinfo) -> Interval:
    """
    Builds the candidate interval for a point check from a date, a local start
    time and a duration.
    """
    if duration_minutes <= 0:
        raise InvalidArgument("duration_minutes", "duration must be a positive number")
    start_dt = local_to_utc(day, start, tz)
    return Interval(start=start_dt, end=start_dt + timedelta(minutes=duration_minutes))
