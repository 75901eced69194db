"""
Test cases for calendar app models.
"""

from datetime import date, time
from django.test import TestCase
from django.core.exceptions import ValidationError
from calendar_app.models import (
    Child, ExternalEvent, ExternalEventException, SchoolYear, SchoolDay, DateOverride,
)
from calendar_app.services.exceptions import InvalidEventError
from calendar_app.services.expand import EventDefinition


class ExternalEventModelTest(TestCase):
    """Test ExternalEvent model validation and behavior"""

    def test_create_valid_event(self):
        event = ExternalEvent.objects.create(
            title="Co-op",
            recurrence_type='weekly',
            day_of_week=3,
            start_date=date(2026, 1, 7)
        )
        self.assertEqual(event.title, "Co-op")
        self.assertEqual(event.category, 'other')
        self.assertEqual(event.color, '#3b82f6')
        self.assertIsNone(event.end_date)
        self.assertEqual(str(event), "Co-op (Weekly)")

    def test_end_before_start_validation(self):
        event = ExternalEvent(
            title="Backwards",
            recurrence_type='weekly',
            start_date=date(2026, 2, 1),
            end_date=date(2026, 1, 1)
        )
        with self.assertRaises(ValidationError):
            event.clean()

    def test_end_time_before_start_time_validation(self):
        event = ExternalEvent(
            title="Backwards",
            recurrence_type='once',
            start_date=date(2026, 2, 1),
            start_time=time(10, 0),
            end_time=time(9, 0)
        )
        with self.assertRaises(ValidationError):
            event.clean()

    def test_day_of_week_inferred(self):
        """Weekly events without a weekday take the start date's weekday"""
        event = ExternalEvent(title="Co-op", recurrence_type='biweekly', start_date=date(2026, 1, 7))
        event.clean()
        self.assertEqual(event.day_of_week, 3)

    def test_day_of_week_must_match_start_date(self):
        event = ExternalEvent(
            title="Piano", recurrence_type='biweekly', day_of_week=3, start_date=date(2026, 1, 5)
        )
        with self.assertRaises(ValidationError):
            event.clean()

    def test_day_of_week_cleared_for_once_and_monthly(self):
        for recurrence_type in ['once', 'monthly']:
            event = ExternalEvent(
                title="Trip", recurrence_type=recurrence_type, day_of_week=2, start_date=date(2026, 1, 7)
            )
            event.clean()
            self.assertIsNone(event.day_of_week)

    def test_all_day_clears_times(self):
        event = ExternalEvent(
            title="Trip",
            recurrence_type='once',
            start_date=date(2026, 1, 7),
            all_day=True,
            start_time=time(9, 0),
            end_time=time(17, 0)
        )
        event.clean()
        self.assertIsNone(event.start_time)
        self.assertIsNone(event.end_time)

    def test_definition_from_model(self):
        child = Child.objects.create(name="Ada")
        event = ExternalEvent.objects.create(
            title="Co-op", recurrence_type='weekly', day_of_week=3, start_date=date(2026, 1, 7)
        )
        event.children.add(child)
        ExternalEventException.objects.create(event=event, exception_date=date(2026, 1, 14))

        definition = EventDefinition.from_model(event)
        self.assertEqual(definition.id, event.pk)
        self.assertEqual(definition.exception_dates, frozenset({date(2026, 1, 14)}))
        self.assertEqual([c.name for c in definition.children], ["Ada"])

    def test_definition_rejects_end_before_start(self):
        """Rows saved without clean() are still caught when loaded"""
        event = ExternalEvent.objects.create(
            title="Broken", recurrence_type='weekly', start_date=date(2026, 2, 1), end_date=date(2026, 1, 1)
        )
        with self.assertRaises(InvalidEventError):
            EventDefinition.from_model(event)


class ExternalEventExceptionModelTest(TestCase):
    """Test ExternalEventException model behavior"""

    def setUp(self):
        self.event = ExternalEvent.objects.create(
            title="Co-op", recurrence_type='weekly', day_of_week=3, start_date=date(2026, 1, 7)
        )

    def test_create_exception(self):
        exception = ExternalEventException.objects.create(
            event=self.event,
            exception_date=date(2026, 1, 14),
            reason="Snow day"
        )
        self.assertEqual(exception.event, self.event)
        self.assertEqual(list(self.event.exceptions.all()), [exception])

    def test_unique_constraint(self):
        """Test that event+exception_date is unique"""
        ExternalEventException.objects.create(event=self.event, exception_date=date(2026, 1, 14))

        with self.assertRaises(Exception):  # IntegrityError
            ExternalEventException.objects.create(event=self.event, exception_date=date(2026, 1, 14))

    def test_exceptions_deleted_with_event(self):
        ExternalEventException.objects.create(event=self.event, exception_date=date(2026, 1, 14))
        self.event.delete()
        self.assertEqual(ExternalEventException.objects.count(), 0)


class SchoolYearModelTest(TestCase):
    """Test SchoolYear schedule configuration"""

    def setUp(self):
        self.year = SchoolYear.objects.create(
            label="2025-2026", start_date=date(2025, 8, 15), end_date=date(2026, 6, 1)
        )
        for weekday in [1, 2, 3, 4, 5]:
            SchoolDay.objects.create(school_year=self.year, weekday=weekday)
        DateOverride.objects.create(school_year=self.year, date=date(2026, 1, 19), type='exclude')
        DateOverride.objects.create(school_year=self.year, date=date(2026, 1, 24), type='include')

    def test_schedule(self):
        weekdays, overrides = self.year.schedule()
        self.assertEqual(weekdays, {1, 2, 3, 4, 5})
        self.assertEqual(overrides, {'2026-01-19': 'exclude', '2026-01-24': 'include'})

    def test_end_before_start_validation(self):
        year = SchoolYear(label="Backwards", start_date=date(2026, 6, 1), end_date=date(2025, 8, 15))
        with self.assertRaises(ValidationError):
            year.clean()

    def test_unique_weekday(self):
        with self.assertRaises(Exception):  # IntegrityError
            SchoolDay.objects.create(school_year=self.year, weekday=1)
