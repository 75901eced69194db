"""
Turn a pasted list of dates (one per line) into an event schedule.
The recurrence type is inferred from the dates, and dates the inferred rule
would produce but that were not pasted become exception dates.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from .dates import format_date_key, js_weekday
from .exceptions import DateImportError
from .expand import EventDefinition, create_rrule_for_event

ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
US_DATE_RE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')

IMPORTED_EXCEPTION_REASON = 'Not in imported schedule'

# dateutil fills missing fields from its default; parsing against two
# defaults that differ in year, month and day exposes any filled-in field
PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


@dataclass
class ParsedDateImport:
    dates: List[date]
    recurrence_type: str
    day_of_week: Optional[int]
    start_date: date
    end_date: Optional[date]
    implied_exception_dates: List[date] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'dates': [format_date_key(d) for d in self.dates],
            'recurrence_type': self.recurrence_type,
            'day_of_week': self.day_of_week,
            'start_date': format_date_key(self.start_date),
            'end_date': format_date_key(self.end_date) if self.end_date else None,
            'implied_exception_dates': [format_date_key(d) for d in self.implied_exception_dates],
        }


def parse_flexible_date(text: str) -> Optional[date]:
    """Parse YYYY-MM-DD, M/D/YYYY or any format dateutil understands; None if unparseable."""
    text = text.strip()
    if not text:
        return None

    try:
        if ISO_DATE_RE.match(text):
            return date.fromisoformat(text)

        match = US_DATE_RE.match(text)
        if match:
            month, day, year = (int(part) for part in match.groups())
            return date(year, month, day)

        first, second = (date_parser.parse(text, default=default).date() for default in PARSE_DEFAULTS)
        return first if first == second else None
    except (ValueError, OverflowError):
        return None


def infer_recurrence_type(dates: List[date]) -> str:
    """dates must be sorted, unique and hold at least two entries."""
    weekdays = {d.weekday() for d in dates}
    gaps = [(later - earlier).days for earlier, later in zip(dates, dates[1:])]

    if len(weekdays) == 1 and all(gap % 14 == 0 for gap in gaps):
        return 'biweekly'
    if len(weekdays) == 1 and all(gap % 7 == 0 for gap in gaps):
        return 'weekly'
    if all(d.day == dates[0].day for d in dates):
        return 'monthly'
    return 'weekly'


def parse_imported_dates(raw: str) -> ParsedDateImport:
    """
    Infer an event schedule from newline-separated dates.

    Raises:
        DateImportError: if no line holds a valid date
    """
    parsed = [parse_flexible_date(line) for line in re.split(r'\r?\n', raw or '')]
    dates = sorted({d for d in parsed if d is not None})

    if not dates:
        raise DateImportError("Paste at least one valid date")

    start_date = dates[0]
    if len(dates) == 1:
        return ParsedDateImport(
            dates=dates,
            recurrence_type='once',
            day_of_week=None,
            start_date=start_date,
            end_date=None,
        )

    end_date = dates[-1]
    recurrence_type = infer_recurrence_type(dates)
    day_of_week = None if recurrence_type == 'monthly' else js_weekday(start_date)

    rule = create_rrule_for_event(EventDefinition(
        id=None,
        title='',
        recurrence_type=recurrence_type,
        day_of_week=day_of_week,
        start_date=start_date,
        end_date=end_date,
    ))
    pasted = set(dates)
    implied_exception_dates = [
        occurrence_dt.date() for occurrence_dt in rule
        if occurrence_dt.date() not in pasted
    ]

    return ParsedDateImport(
        dates=dates,
        recurrence_type=recurrence_type,
        day_of_week=day_of_week,
        start_date=start_date,
        end_date=end_date,
        implied_exception_dates=implied_exception_dates,
    )
