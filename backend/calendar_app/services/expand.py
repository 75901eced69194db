"""
Service for expanding external event definitions into dated occurrences.
Handles the once/weekly/biweekly/monthly recurrence types and exception dates.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from dateutil import rrule
from django.db.models import Q

from ..models import ExternalEvent
from .dates import format_date_key, js_weekday, to_date
from .exceptions import InvalidEventError

logger = logging.getLogger(__name__)

RECURRENCE_TYPES = ('once', 'weekly', 'biweekly', 'monthly')

# Weeks between occurrences for the weekday-based recurrence types
WEEK_INTERVALS = {
    'weekly': 1,
    'biweekly': 2,
}


@dataclass(frozen=True)
class ChildRef:
    id: Any
    name: str


@dataclass(frozen=True)
class EventDefinition:
    """
    A validated, fully materialized external event.
    Children and exception dates are loaded up front so expansion does no I/O.
    """

    id: Any
    title: str
    recurrence_type: str
    start_date: date
    description: str = ''
    day_of_week: Optional[int] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    all_day: bool = False
    color: str = '#3b82f6'
    location: str = ''
    travel_minutes: Optional[int] = None
    children: Tuple[ChildRef, ...] = ()
    exception_dates: FrozenSet[date] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.recurrence_type not in RECURRENCE_TYPES:
            raise InvalidEventError(
                f"Event {self.id}: unknown recurrence type {self.recurrence_type!r}"
            )
        if self.end_date is not None and self.end_date < self.start_date:
            raise InvalidEventError(
                f"Event {self.id}: end date {self.end_date} is before start date {self.start_date}"
            )
        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise InvalidEventError(f"Event {self.id}: day of week {self.day_of_week} out of range")
        if (self.recurrence_type in WEEK_INTERVALS and self.day_of_week is not None
                and self.day_of_week != js_weekday(self.start_date)):
            raise InvalidEventError(
                f"Event {self.id}: day of week {self.day_of_week} does not match start date {self.start_date}"
            )

    @classmethod
    def from_model(cls, event) -> 'EventDefinition':
        """
        Build a definition from an ExternalEvent instance.
        Use prefetch_related('children', 'exceptions') to avoid a query per event.
        """
        return cls(
            id=event.pk,
            title=event.title,
            description=event.description,
            recurrence_type=event.recurrence_type,
            day_of_week=event.day_of_week,
            start_date=event.start_date,
            end_date=event.end_date,
            start_time=None if event.all_day else event.start_time,
            end_time=None if event.all_day else event.end_time,
            all_day=event.all_day,
            color=event.color,
            location=event.location,
            travel_minutes=event.travel_minutes,
            children=tuple(ChildRef(id=child.pk, name=child.name) for child in event.children.all()),
            exception_dates=frozenset(exc.exception_date for exc in event.exceptions.all()),
        )


@dataclass(frozen=True)
class Occurrence:
    """One concrete date of an external event. Identified by (event_id, date)."""

    event_id: Any
    date: date
    title: str
    description: str
    color: str
    start_time: Optional[time]
    end_time: Optional[time]
    all_day: bool
    children: Tuple[ChildRef, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        """JSON-ready representation with ISO date and HH:MM:SS time strings."""
        return {
            'event_id': self.event_id,
            'date': format_date_key(self.date),
            'title': self.title,
            'description': self.description,
            'color': self.color,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'all_day': self.all_day,
            'children': [{'id': child.id, 'name': child.name} for child in self.children],
        }


def _as_datetime(value: date) -> datetime:
    return datetime.combine(value, time.min)


def create_rrule_for_event(event: EventDefinition, until: Optional[date] = None) -> Optional[rrule.rrule]:
    """
    Create a dateutil rrule for a recurring event.

    Args:
        event: EventDefinition to build the rule for
        until: Optional last date to limit the rule (combined with end_date)

    Returns:
        rrule.rrule object, or None for one-off events
    """
    if event.recurrence_type == 'once':
        return None

    rule_until = until
    if event.end_date:
        rule_until = event.end_date if not until else min(event.end_date, until)

    # Biweekly parity and the monthly day are both counted from the start date
    anchor = event.start_date
    rule_params = {
        'dtstart': _as_datetime(anchor),
    }
    if rule_until:
        rule_params['until'] = _as_datetime(rule_until)

    if event.recurrence_type in WEEK_INTERVALS:
        # No byweekday: the rule repeats on the anchor's weekday, so every
        # occurrence is anchor + n * 7 * interval days
        rule_params['freq'] = rrule.WEEKLY
        rule_params['interval'] = WEEK_INTERVALS[event.recurrence_type]
    else:
        rule_params['freq'] = rrule.MONTHLY
        day = anchor.day
        if day <= 28:
            rule_params['bymonthday'] = day
        else:
            # Last existing day among 28..day, i.e. day clamped to the month length
            rule_params['bymonthday'] = tuple(range(28, day + 1))
            rule_params['bysetpos'] = -1

    return rrule.rrule(**rule_params)


def _make_occurrence(event: EventDefinition, occurrence_date: date) -> Occurrence:
    return Occurrence(
        event_id=event.id,
        date=occurrence_date,
        title=event.title,
        description=event.description,
        color=event.color,
        start_time=event.start_time,
        end_time=event.end_time,
        all_day=event.all_day,
        children=event.children,
    )


def expand_event(event: EventDefinition, range_start, range_end) -> List[Occurrence]:
    """
    Expand one event into its occurrences within [range_start, range_end].

    Args:
        event: EventDefinition to expand
        range_start: First date of the window (inclusive), date or ISO key
        range_end: Last date of the window (inclusive), date or ISO key

    Returns:
        Occurrences in ascending date order; empty when nothing matches
    """
    range_start = to_date(range_start)
    range_end = to_date(range_end)

    if range_start > range_end:
        return []
    if event.start_date > range_end:
        return []
    if event.end_date is not None and event.end_date < range_start:
        return []

    if event.recurrence_type == 'once':
        candidates = [event.start_date] if range_start <= event.start_date <= range_end else []
    else:
        rule = create_rrule_for_event(event, range_end)
        candidates = [
            occurrence_dt.date()
            for occurrence_dt in rule.between(_as_datetime(range_start), _as_datetime(range_end), inc=True)
        ]

    occurrences = []
    for candidate in candidates:
        if candidate in event.exception_dates:
            continue
        if event.end_date is not None and candidate > event.end_date:
            continue
        occurrences.append(_make_occurrence(event, candidate))

    logger.debug(
        "Expanded event %s (%s) over %s..%s: %d occurrences",
        event.id, event.recurrence_type, range_start, range_end, len(occurrences)
    )
    return occurrences


def sort_occurrences(occurrences: Iterable[Occurrence]) -> List[Occurrence]:
    """Ascending by date, then by title for same-day occurrences."""
    return sorted(occurrences, key=lambda occ: (occ.date, occ.title))


def expand_events(events: Iterable[EventDefinition], range_start, range_end) -> List[Occurrence]:
    """Expand several events and merge their occurrences into one sorted list."""
    all_occurrences = []
    for event in events:
        all_occurrences.extend(expand_event(event, range_start, range_end))
    return sort_occurrences(all_occurrences)


def load_event_definitions(range_start, range_end, child_id=None) -> List[EventDefinition]:
    """
    Load the events whose [start_date, end_date] window touches the range.
    Events that fail validation are logged and skipped.
    """
    range_start = to_date(range_start)
    range_end = to_date(range_end)

    queryset = (
        ExternalEvent.objects
        .filter(start_date__lte=range_end)
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=range_start))
        .prefetch_related('children', 'exceptions')
    )
    if child_id is not None:
        queryset = queryset.filter(children__id=child_id).distinct()

    definitions = []
    for event in queryset:
        try:
            definitions.append(EventDefinition.from_model(event))
        except InvalidEventError as exc:
            logger.warning("Skipping external event %s: %s", event.pk, exc)
    return definitions


def expand_all_events(range_start, range_end, child_id=None) -> List[Occurrence]:
    """
    Expand all stored events within the given date range.

    Args:
        range_start: First date of the window (inclusive)
        range_end: Last date of the window (inclusive)
        child_id: Optional child to restrict the events to

    Returns:
        List of all occurrences sorted by date, then title
    """
    if to_date(range_start) > to_date(range_end):
        return []
    events = load_event_definitions(range_start, range_end, child_id=child_id)
    return expand_events(events, range_start, range_end)
