"""
Test cases for the iCal export.
"""

from datetime import date, datetime, time
from django.test import SimpleTestCase
from icalendar import Calendar
import pytz
from calendar_app.services.expand import ChildRef, Occurrence
from calendar_app.services.ical import build_calendar, occurrence_uid


def make_occurrence(**overrides):
    values = {
        'event_id': 7,
        'date': date(2026, 1, 7),
        'title': 'Co-op',
        'description': '',
        'color': '#10b981',
        'start_time': time(9, 0),
        'end_time': time(12, 0),
        'all_day': False,
        'children': (ChildRef(id=1, name='Ada'),),
    }
    values.update(overrides)
    return Occurrence(**values)


class BuildCalendarTest(SimpleTestCase):

    def setUp(self):
        self.stamp = datetime(2026, 1, 1, 12, 0, tzinfo=pytz.utc)

    def test_calendar_properties(self):
        body = build_calendar([], stamp=self.stamp).to_ical()
        self.assertIn(b'BEGIN:VCALENDAR', body)
        self.assertIn(b'PRODID:-//Harmony Homeschool//EN', body)
        self.assertNotIn(b'BEGIN:VEVENT', body)

    def test_timed_event_floating(self):
        calendar = Calendar.from_ical(build_calendar([make_occurrence()], stamp=self.stamp).to_ical())
        events = list(calendar.walk('VEVENT'))
        self.assertEqual(len(events), 1)
        vevent = events[0]
        self.assertEqual(str(vevent['summary']), 'Co-op')
        self.assertEqual(str(vevent['uid']), '7-20260107@harmony-homeschool')
        self.assertEqual(vevent.decoded('dtstart'), datetime(2026, 1, 7, 9, 0))
        self.assertEqual(vevent.decoded('dtend'), datetime(2026, 1, 7, 12, 0))
        self.assertIn('Ada', str(vevent['description']))

    def test_timed_event_with_timezone(self):
        body = build_calendar([make_occurrence()], tz_name='America/Chicago', stamp=self.stamp).to_ical()
        self.assertIn(b'DTSTART:20260107T150000Z', body)

    def test_all_day_event(self):
        occurrence = make_occurrence(all_day=True, start_time=None, end_time=None)
        calendar = Calendar.from_ical(build_calendar([occurrence], stamp=self.stamp).to_ical())
        vevent = list(calendar.walk('VEVENT'))[0]
        self.assertEqual(vevent.decoded('dtstart'), date(2026, 1, 7))
        self.assertEqual(vevent.decoded('dtend'), date(2026, 1, 8))

    def test_missing_end_time_defaults_to_one_hour(self):
        calendar = Calendar.from_ical(
            build_calendar([make_occurrence(end_time=None)], stamp=self.stamp).to_ical()
        )
        vevent = list(calendar.walk('VEVENT'))[0]
        self.assertEqual(vevent.decoded('dtend'), datetime(2026, 1, 7, 10, 0))

    def test_unknown_timezone(self):
        with self.assertRaises(pytz.UnknownTimeZoneError):
            build_calendar([make_occurrence()], tz_name='Mars/Olympus')

    def test_uid_unique_per_date(self):
        first = make_occurrence()
        second = make_occurrence(date=date(2026, 1, 14))
        self.assertNotEqual(occurrence_uid(first), occurrence_uid(second))
