"""
iCalendar (RFC 5545) export of expanded event occurrences.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz
from icalendar import Calendar, Event

from .expand import Occurrence

PRODID = '-//Harmony Homeschool//EN'
CALENDAR_NAME = 'Harmony Homeschool'
UID_DOMAIN = 'harmony-homeschool'

# Timed events with no end time get this duration
DEFAULT_DURATION = timedelta(hours=1)


def occurrence_uid(occurrence: Occurrence) -> str:
    return f"{occurrence.event_id}-{occurrence.date:%Y%m%d}@{UID_DOMAIN}"


def _localize(value: datetime, tz) -> datetime:
    """Attach the calendar zone and convert to UTC, or keep a floating time."""
    if tz is None:
        return value
    return tz.localize(value).astimezone(pytz.utc)


def occurrence_to_vevent(occurrence: Occurrence, stamp: datetime, tz=None) -> Event:
    vevent = Event()
    vevent.add('uid', occurrence_uid(occurrence))
    vevent.add('dtstamp', stamp)
    vevent.add('summary', occurrence.title)

    description = occurrence.description or ''
    if occurrence.children:
        names = ', '.join(child.name for child in occurrence.children)
        description = f"{description}\n\nStudents: {names}" if description else f"Students: {names}"
    if description:
        vevent.add('description', description)

    if occurrence.all_day or occurrence.start_time is None:
        # All-day: DTEND is the following day (exclusive)
        vevent.add('dtstart', occurrence.date)
        vevent.add('dtend', occurrence.date + timedelta(days=1))
    else:
        start = datetime.combine(occurrence.date, occurrence.start_time)
        if occurrence.end_time is not None and occurrence.end_time > occurrence.start_time:
            end = datetime.combine(occurrence.date, occurrence.end_time)
        else:
            end = start + DEFAULT_DURATION
        vevent.add('dtstart', _localize(start, tz))
        vevent.add('dtend', _localize(end, tz))

    return vevent


def build_calendar(occurrences: Iterable[Occurrence], tz_name: Optional[str] = None,
                   stamp: Optional[datetime] = None) -> Calendar:
    """
    Build a VCALENDAR with one VEVENT per occurrence.

    Args:
        occurrences: Occurrences to export (already sorted by the caller)
        tz_name: Zone the event times are in (e.g. 'America/Chicago');
            times are exported as floating local times when omitted
        stamp: DTSTAMP value, defaults to now (UTC)

    Raises:
        pytz.UnknownTimeZoneError: if tz_name is not a known zone
    """
    tz = pytz.timezone(tz_name) if tz_name else None
    stamp = stamp or datetime.now(pytz.utc)

    calendar = Calendar()
    calendar.add('prodid', PRODID)
    calendar.add('version', '2.0')
    calendar.add('calscale', 'GREGORIAN')
    calendar.add('method', 'PUBLISH')
    calendar.add('x-wr-calname', CALENDAR_NAME)

    for occurrence in occurrences:
        calendar.add_component(occurrence_to_vevent(occurrence, stamp, tz))

    return calendar
