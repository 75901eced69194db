"""
Views for the calendar API.
Provides CRUD operations for external events and school years, plus
range queries that expand events into dated occurrences.
"""

import logging

from django.conf import settings
from django.http import HttpResponse, JsonResponse
from django.utils.crypto import constant_time_compare
from django.utils.dateparse import parse_date
from pytz import UnknownTimeZoneError
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.request import Request

from .models import Child, ExternalEvent, ExternalEventException, SchoolYear
from .serializers import (
    ChildSerializer, ExternalEventSerializer, ExternalEventExceptionSerializer, SchoolYearSerializer,
)
from .services import dates
from .services.date_import import parse_imported_dates
from .services.exceptions import DateImportError
from .services.expand import expand_all_events
from .services.ical import build_calendar

logger = logging.getLogger(__name__)


def _parse_date_param(value):
    """Parse a YYYY-MM-DD query value, returning None when missing or invalid."""
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        return None


def _parse_child_param(params):
    """
    Read the optional child query parameter.
    Returns (child_id, error_message).
    """
    child = params.get('child')
    if not child:
        return None, None
    if not child.isdigit():
        return None, 'child must be a numeric id'
    return int(child), None


def _parse_range(params):
    """
    Read the start/end query parameters.
    Returns (start, end, error_message).
    """
    start_str = params.get('start')
    end_str = params.get('end')
    if not start_str or not end_str:
        return None, None, 'Both start and end query parameters are required'

    start = _parse_date_param(start_str)
    end = _parse_date_param(end_str)
    if not start or not end:
        return None, None, 'start and end must be valid YYYY-MM-DD dates'
    return start, end, None


class ChildViewSet(viewsets.ModelViewSet):
    queryset = Child.objects.all()
    serializer_class = ChildSerializer


class ExternalEventViewSet(viewsets.ModelViewSet):
    """
    ViewSet for CRUD operations on ExternalEvent.
    Provides additional actions for exception dates and pasted-date import.
    """
    queryset = ExternalEvent.objects.prefetch_related('children', 'exceptions')
    serializer_class = ExternalEventSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        child_id, error = _parse_child_param(self.request.query_params)
        if error:
            raise ValidationError({'error': error})
        if child_id is not None:
            queryset = queryset.filter(children__id=child_id).distinct()
        return queryset

    @action(detail=True, methods=['post', 'delete'], url_path='exceptions')
    def exceptions(self, request: Request, pk=None):
        """
        Cancel or restore a single occurrence.

        POST - Cancel the occurrence on a date:
        {
            "date": "2026-02-16",
            "reason": "Presidents' Day"  // optional
        }

        DELETE - Restore a cancelled occurrence:
        Query parameter: date (YYYY-MM-DD)
        """
        event = self.get_object()

        if request.method == 'DELETE':
            return self._handle_delete_exception(request, event)
        else:  # POST
            return self._handle_create_exception(request, event)

    def _handle_create_exception(self, request: Request, event):
        date_str = request.data.get('date')
        if not date_str:
            return Response(
                {'error': 'date is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        exception_date = _parse_date_param(date_str)
        if not exception_date:
            return Response(
                {'error': 'date must be a valid YYYY-MM-DD date'},
                status=status.HTTP_400_BAD_REQUEST
            )

        exception, created = ExternalEventException.objects.get_or_create(
            event=event,
            exception_date=exception_date,
            defaults={'reason': request.data.get('reason', '')}
        )
        if not created and 'reason' in request.data:
            exception.reason = request.data.get('reason') or ''
            exception.save()

        logger.info("Cancelled '%s' on %s", event.title, exception_date)
        serializer = ExternalEventExceptionSerializer(exception)
        return Response(serializer.data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)

    def _handle_delete_exception(self, request: Request, event):
        date_str = request.query_params.get('date')
        if not date_str:
            return Response(
                {'error': 'date query parameter is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        exception_date = _parse_date_param(date_str)
        if not exception_date:
            return Response(
                {'error': 'date must be a valid YYYY-MM-DD date'},
                status=status.HTTP_400_BAD_REQUEST
            )

        deleted, _ = ExternalEventException.objects.filter(
            event=event,
            exception_date=exception_date
        ).delete()
        if not deleted:
            return Response(
                {'error': f'No exception on {exception_date.isoformat()}'},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response({'message': 'Occurrence restored successfully'}, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'], url_path='import-dates')
    def import_dates(self, request: Request):
        """
        Preview the schedule inferred from pasted dates.

        Expected payload:
        {
            "pasted_dates": "2026-01-05\n2026-01-19\n2026-02-02"
        }
        """
        try:
            parsed = parse_imported_dates(request.data.get('pasted_dates', ''))
        except DateImportError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(parsed.as_dict(), status=status.HTTP_200_OK)


class SchoolYearViewSet(viewsets.ModelViewSet):
    """
    ViewSet for school years and their school-day configuration.
    """
    queryset = SchoolYear.objects.prefetch_related('school_days', 'overrides')
    serializer_class = SchoolYearSerializer

    @action(detail=True, methods=['get'], url_path='next-school-day')
    def next_school_day(self, request: Request, pk=None):
        """
        First school day on or after ?after=YYYY-MM-DD (defaults to today).
        """
        school_year = self.get_object()
        after_str = request.query_params.get('after')
        after = _parse_date_param(after_str) if after_str else dates.today()
        if not after:
            return Response(
                {'error': 'after must be a valid YYYY-MM-DD date'},
                status=status.HTTP_400_BAD_REQUEST
            )

        weekdays, overrides = school_year.schedule()
        return Response({'date': dates.next_school_day(after, weekdays, overrides)})

    @action(detail=True, methods=['get'])
    def week(self, request: Request, pk=None):
        """
        The Monday-Sunday week containing ?date=YYYY-MM-DD (defaults to today),
        with a school-day flag per date.
        """
        school_year = self.get_object()
        date_str = request.query_params.get('date')
        day = _parse_date_param(date_str) if date_str else dates.today()
        if not day:
            return Response(
                {'error': 'date must be a valid YYYY-MM-DD date'},
                status=status.HTTP_400_BAD_REQUEST
            )

        weekdays, overrides = school_year.schedule()
        start = dates.week_start(day)
        return Response({
            'week_start': start,
            'week_end': dates.full_week_end(start),
            'label': dates.format_week_label(start),
            'prev_week': dates.prev_week(start),
            'next_week': dates.next_week(start),
            'days': [
                {
                    'date': key,
                    'weekday': dates.format_weekday(key),
                    'label': dates.format_short_date(key),
                    'is_school_day': dates.is_school_day(key, weekdays, overrides),
                }
                for key in dates.full_week_dates(start)
            ],
        })


def occurrences_view(request):
    """
    Get expanded external event occurrences within a date range.

    Query parameters:
    - start: YYYY-MM-DD (required)
    - end: YYYY-MM-DD (required, inclusive)
    - child: Child id (optional)

    Returns occurrences sorted by date, then title.
    """
    start, end, error = _parse_range(request.GET)
    if error:
        return JsonResponse({'error': error}, status=400)

    child_id, error = _parse_child_param(request.GET)
    if error:
        return JsonResponse({'error': error}, status=400)

    occurrences = expand_all_events(start, end, child_id=child_id)

    for_display = []
    for occ in occurrences:
        data = occ.as_dict()
        data['time_label'] = dates.format_time_range(occ.start_time, occ.end_time, occ.all_day)
        for_display.append(data)

    return JsonResponse({'occurrences': for_display})


def ical_view(request):
    """
    iCal feed of external event occurrences.

    Query parameters:
    - start, end: YYYY-MM-DD range (required)
    - child: Child id (optional)
    - tz: Timezone name the event times are in (optional, e.g. 'America/Chicago')
    - token: Must match HARMONY_ICAL_TOKEN when that setting is set
    """
    expected_token = getattr(settings, 'HARMONY_ICAL_TOKEN', '')
    if expected_token and not constant_time_compare(request.GET.get('token', ''), expected_token):
        logger.warning("Rejected iCal request with a missing or wrong token")
        return HttpResponse('Unauthorized', status=401)

    start, end, error = _parse_range(request.GET)
    if error:
        return JsonResponse({'error': error}, status=400)

    child_id, error = _parse_child_param(request.GET)
    if error:
        return JsonResponse({'error': error}, status=400)

    occurrences = expand_all_events(start, end, child_id=child_id)

    tz_name = request.GET.get('tz')
    try:
        calendar = build_calendar(occurrences, tz_name=tz_name)
    except UnknownTimeZoneError:
        return JsonResponse({'error': f'Invalid timezone: {tz_name}'}, status=400)

    response = HttpResponse(calendar.to_ical(), content_type='text/calendar; charset=utf-8')
    response['Content-Disposition'] = 'inline; filename="harmony.ics"'
    response['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    return response
