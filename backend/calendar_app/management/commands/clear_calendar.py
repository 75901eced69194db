"""
Management command to clear all calendar data (events, exceptions, school years)
"""

from django.core.management.base import BaseCommand
from calendar_app.models import Child, ExternalEvent, ExternalEventException, SchoolYear


class Command(BaseCommand):
    help = 'Clear all calendar data (events, exceptions, school years, children)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Confirm that you want to delete all data',
        )
        parser.add_argument(
            '--keep-children',
            action='store_true',
            help='Keep the children records',
        )

    def handle(self, *args, **options):
        if not options['confirm']:
            self.stdout.write(
                self.style.WARNING(
                    'This will delete ALL calendar data. Use --confirm to proceed.'
                )
            )
            return

        exception_count = ExternalEventException.objects.count()
        event_count = ExternalEvent.objects.count()
        year_count = SchoolYear.objects.count()

        # Exceptions, school days and overrides cascade
        ExternalEvent.objects.all().delete()
        SchoolYear.objects.all().delete()

        child_count = 0
        if not options['keep_children']:
            child_count = Child.objects.count()
            Child.objects.all().delete()

        self.stdout.write(
            self.style.SUCCESS(
                f'Successfully cleared {event_count} events, {exception_count} exceptions, '
                f'{year_count} school years and {child_count} children'
            )
        )
