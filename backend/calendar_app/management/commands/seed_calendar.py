"""
Management command to seed the calendar with sample data.
Creates children, a school year and external events of every recurrence type.
"""

from datetime import date, time, timedelta

from django.core.management.base import BaseCommand
from django.db import transaction

from calendar_app.models import (
    Child, ExternalEvent, ExternalEventException, SchoolYear, SchoolDay, DateOverride,
)
from calendar_app.services.dates import parse_date_key, today, week_start


class Command(BaseCommand):
    help = 'Seed the calendar with sample children, events and a school year'

    def add_arguments(self, parser):
        parser.add_argument(
            '--start',
            help='Monday to anchor the sample data on (YYYY-MM-DD). Defaults to this week.',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Check if data already exists
        if ExternalEvent.objects.exists():
            self.stdout.write(
                self.style.WARNING(
                    f'Calendar already has {ExternalEvent.objects.count()} events. '
                    'Skipping seed to avoid duplicates. Use clear_calendar command first if needed.'
                )
            )
            return

        self.stdout.write('Seeding calendar data...')

        monday = parse_date_key(week_start(options['start'] or today()))

        ada = Child.objects.create(name='Ada')
        ben = Child.objects.create(name='Ben')

        # 1. School year, Monday-Friday, with a holiday and a make-up day
        year_start = date(monday.year if monday.month >= 8 else monday.year - 1, 8, 15)
        school_year = SchoolYear.objects.create(
            label=f'{year_start.year}-{year_start.year + 1}',
            start_date=year_start,
            end_date=date(year_start.year + 1, 6, 1),
        )
        SchoolDay.objects.bulk_create([
            SchoolDay(school_year=school_year, weekday=weekday) for weekday in range(1, 6)
        ])
        DateOverride.objects.create(
            school_year=school_year, date=monday + timedelta(days=14), type='exclude', reason='Field day off'
        )
        DateOverride.objects.create(
            school_year=school_year, date=monday + timedelta(days=19), type='include', reason='Make-up day'
        )
        self.stdout.write(f'Created school year {school_year.label}')

        # 2. Weekly Wednesday co-op
        co_op = ExternalEvent.objects.create(
            title='Co-op',
            category='co-op',
            recurrence_type='weekly',
            day_of_week=3,
            start_date=monday + timedelta(days=2),
            start_time=time(9, 0),
            end_time=time(12, 0),
            color='#10b981',
            location='Community center',
            travel_minutes=20,
        )
        co_op.children.set([ada, ben])
        self.stdout.write(f'Created weekly Co-op starting {co_op.start_date}')

        # 3. Biweekly Monday piano lesson
        piano = ExternalEvent.objects.create(
            title='Piano lesson',
            category='music',
            recurrence_type='biweekly',
            day_of_week=1,
            start_date=monday,
            start_time=time(15, 30),
            end_time=time(16, 15),
            color='#8b5cf6',
        )
        piano.children.set([ada])
        self.stdout.write(f'Created biweekly Piano lesson starting {piano.start_date}')

        # 4. Monthly library day, anchored on the 31st to exercise clamping
        library = ExternalEvent.objects.create(
            title='Library day',
            category='other',
            recurrence_type='monthly',
            start_date=date(monday.year, 1, 31),
            all_day=True,
            color='#f59e0b',
        )
        library.children.set([ada, ben])
        self.stdout.write(f'Created monthly Library day starting {library.start_date}')

        # 5. One-off field trip
        field_trip = ExternalEvent.objects.create(
            title='Zoo field trip',
            category='field-trip',
            recurrence_type='once',
            start_date=monday + timedelta(days=10),
            all_day=True,
            color='#ef4444',
        )
        field_trip.children.set([ben])
        self.stdout.write(f'Created one-off Zoo field trip on {field_trip.start_date}')

        # 6. Exception: cancel next week's co-op
        cancelled = co_op.start_date + timedelta(days=7)
        ExternalEventException.objects.create(event=co_op, exception_date=cancelled, reason='Building closed')
        self.stdout.write(f'Cancelled Co-op on {cancelled}')

        self.stdout.write(
            self.style.SUCCESS(
                f'Successfully seeded calendar with {ExternalEvent.objects.count()} events, '
                f'{ExternalEventException.objects.count()} exceptions and {Child.objects.count()} children'
            )
        )
