"""
Date utilities for the weekly planner and school calendar.
Dates are plain datetime.date values; keys are ISO "YYYY-MM-DD" strings.
Weekday numbers follow the calendar configuration: Sunday=0 ... Saturday=6.
"""

from datetime import date, timedelta
from typing import Iterable, List, Mapping, Optional, Union

from django.utils import timezone

DateLike = Union[date, str]

# Upper bound for next_school_day, roughly ten years of days
SCHOOL_DAY_SEARCH_LIMIT = 3660

WEEKDAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
WEEKDAY_SHORT = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


def parse_date_key(key: str) -> date:
    """Parse "YYYY-MM-DD" into a date."""
    return date.fromisoformat(key)


def format_date_key(value: date) -> str:
    """Format a date as "YYYY-MM-DD"."""
    return value.isoformat()


def to_date(value: DateLike) -> date:
    if isinstance(value, str):
        return parse_date_key(value)
    return value


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def js_weekday(value: DateLike) -> int:
    """Weekday number with Sunday=0 (Python's weekday() has Monday=0)."""
    return (to_date(value).weekday() + 1) % 7


def today() -> date:
    return timezone.localdate()


def week_start(value: Optional[DateLike] = None) -> str:
    """Returns the Monday on or before the given date (today if omitted)."""
    d = today() if value is None else to_date(value)
    return format_date_key(d - timedelta(days=d.weekday()))


def week_end(week_start_key: str) -> str:
    """Friday of the week starting on the given Monday."""
    return format_date_key(add_days(parse_date_key(week_start_key), 4))


def full_week_end(week_start_key: str) -> str:
    """Sunday of the week starting on the given Monday."""
    return format_date_key(add_days(parse_date_key(week_start_key), 6))


def week_dates(week_start_key: str) -> List[str]:
    """Mon-Fri date keys for the week starting on the given Monday."""
    start = parse_date_key(week_start_key)
    return [format_date_key(add_days(start, i)) for i in range(5)]


def full_week_dates(week_start_key: str) -> List[str]:
    """Mon-Sun date keys for the week starting on the given Monday."""
    start = parse_date_key(week_start_key)
    return [format_date_key(add_days(start, i)) for i in range(7)]


def prev_week(week_start_key: str) -> str:
    return format_date_key(add_days(parse_date_key(week_start_key), -7))


def next_week(week_start_key: str) -> str:
    return format_date_key(add_days(parse_date_key(week_start_key), 7))


def format_weekday(value: DateLike) -> str:
    """Full weekday name, e.g. "Monday"."""
    return WEEKDAY_NAMES[js_weekday(value)]


def format_weekday_short(value: DateLike) -> str:
    """Short weekday name, e.g. "Mon"."""
    return WEEKDAY_SHORT[js_weekday(value)]


def format_short_date(value: DateLike) -> str:
    """Month and day, e.g. "Sep 1"."""
    d = to_date(value)
    return f"{MONTH_NAMES[d.month - 1]} {d.day}"


def format_week_label(week_start_key: str) -> str:
    """e.g. "Week of Sep 1"."""
    return f"Week of {format_short_date(week_start_key)}"


def is_today(key: str) -> bool:
    return key == format_date_key(today())


def normalize_weekdays(weekdays: Iterable[int]) -> List[int]:
    """Deduplicated, sorted weekday numbers; anything outside 0-6 is dropped."""
    return sorted({
        day for day in weekdays
        if isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6
    })


def has_weekday_changes(draft: Iterable[int], current: Iterable[int]) -> bool:
    return normalize_weekdays(draft) != normalize_weekdays(current)


def normalize_overrides(overrides) -> Mapping[str, str]:
    """
    Accept either a mapping of date key -> 'include'/'exclude' or an iterable
    of {'date': ..., 'type': ...} items (dates may be keys or date values).
    """
    if overrides is None:
        return {}
    if isinstance(overrides, Mapping):
        return overrides
    normalized = {}
    for item in overrides:
        item_date = item['date']
        key = item_date if isinstance(item_date, str) else format_date_key(item_date)
        normalized[key] = item['type']
    return normalized


def is_school_day(value: DateLike, weekdays, overrides=None) -> bool:
    """
    Whether a date is a school day.
    An override for that exact date always wins over the weekday set.
    """
    d = to_date(value)
    override = normalize_overrides(overrides).get(format_date_key(d))
    if override == 'include':
        return True
    if override == 'exclude':
        return False
    return js_weekday(d) in weekdays


def next_school_day(after: DateLike, weekdays, overrides=None) -> str:
    """
    First school day on or after the given date.
    Returns the given date unchanged when nothing is found within
    SCHOOL_DAY_SEARCH_LIMIT days (e.g. empty weekday set, no includes).
    """
    start = to_date(after)
    overrides = normalize_overrides(overrides)
    weekdays = set(weekdays)
    cursor = start
    for _ in range(SCHOOL_DAY_SEARCH_LIMIT):
        if is_school_day(cursor, weekdays, overrides):
            return format_date_key(cursor)
        cursor = add_days(cursor, 1)
    return format_date_key(start)


def _format_clock(value) -> str:
    hour, minute = str(value).split(':')[:2]
    hour = int(hour)
    suffix = 'PM' if hour >= 12 else 'AM'
    return f"{hour % 12 or 12}:{minute} {suffix}"


def format_time_range(start_time, end_time, all_day: bool) -> str:
    """
    Human label for an event's time of day, e.g. "9:00 AM - 10:30 AM".
    Times may be datetime.time values or "HH:MM[:SS]" strings.
    """
    if all_day:
        return 'All day'
    if start_time and end_time:
        return f"{_format_clock(start_time)} - {_format_clock(end_time)}"
    if start_time:
        return f"Starts {_format_clock(start_time)}"
    if end_time:
        return f"Until {_format_clock(end_time)}"
    return ''
