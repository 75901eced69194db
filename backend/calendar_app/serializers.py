from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers

from .models import (
    Child, ExternalEvent, ExternalEventException, SchoolYear, SchoolDay, DateOverride,
    RECURRENCE_CHOICES,
)
from .services.date_import import parse_imported_dates, IMPORTED_EXCEPTION_REASON
from .services.dates import normalize_weekdays
from .services.exceptions import DateImportError

# Fields that take part in ExternalEvent.clean()
EVENT_RULE_FIELDS = [
    'title', 'recurrence_type', 'day_of_week', 'start_date', 'end_date',
    'start_time', 'end_time', 'all_day',
]


class ChildSerializer(serializers.ModelSerializer):
    class Meta:
        model = Child
        fields = ['id', 'name']


class ExternalEventExceptionSerializer(serializers.ModelSerializer):
    """Serializer for cancelled occurrences"""

    class Meta:
        model = ExternalEventException
        fields = ['id', 'event', 'exception_date', 'reason', 'created_at']
        read_only_fields = ['event', 'created_at']


class ExternalEventSerializer(serializers.ModelSerializer):
    """
    Serializer for ExternalEvent with nested children and exception dates.

    Writes accept child_ids and exception_dates; pasted_dates (one date per line)
    replaces the recurrence fields with the schedule inferred from those dates.
    """

    children = ChildSerializer(many=True, read_only=True)
    child_ids = serializers.PrimaryKeyRelatedField(
        many=True, write_only=True, required=False,
        queryset=Child.objects.all(), source='children'
    )
    exceptions = ExternalEventExceptionSerializer(many=True, read_only=True)
    exception_dates = serializers.ListField(
        child=serializers.DateField(), write_only=True, required=False
    )
    pasted_dates = serializers.CharField(write_only=True, required=False, allow_blank=True)
    start_date = serializers.DateField(required=False)

    class Meta:
        model = ExternalEvent
        fields = [
            'id', 'title', 'description', 'category', 'recurrence_type', 'day_of_week',
            'start_date', 'end_date', 'start_time', 'end_time', 'all_day', 'color',
            'location', 'travel_minutes', 'children', 'child_ids', 'exceptions',
            'exception_dates', 'pasted_dates', 'created_at',
        ]
        read_only_fields = ['created_at']

    def validate_recurrence_type(self, value):
        """Validate recurrence choice"""
        valid_types = [choice for choice, _ in RECURRENCE_CHOICES]
        if value not in valid_types:
            raise serializers.ValidationError(f"Recurrence type must be one of: {valid_types}")
        return value

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title is required")
        return value

    def validate(self, data):
        """Cross-field validation"""
        pasted_dates = (data.pop('pasted_dates', '') or '').strip()
        if pasted_dates:
            try:
                parsed = parse_imported_dates(pasted_dates)
            except DateImportError as exc:
                raise serializers.ValidationError({'pasted_dates': str(exc)})

            data['recurrence_type'] = parsed.recurrence_type
            data['day_of_week'] = parsed.day_of_week
            data['start_date'] = parsed.start_date
            data['end_date'] = parsed.end_date
            implied = set(parsed.implied_exception_dates)
            data['exception_dates'] = sorted(set(data.get('exception_dates', [])) | implied)
            data['exception_reason'] = IMPORTED_EXCEPTION_REASON

        values = {
            name: getattr(self.instance, name)
            for name in EVENT_RULE_FIELDS
            if self.instance is not None
        }
        values.update({name: data[name] for name in EVENT_RULE_FIELDS if name in data})
        if 'start_date' in data and 'day_of_week' not in data:
            values['day_of_week'] = None  # Re-inferred from the new start date

        if not values.get('start_date'):
            raise serializers.ValidationError({'start_date': "Start date is required"})

        # Reuse the model rules, including their auto-corrections
        candidate = ExternalEvent(**values)
        try:
            candidate.clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages)

        for name in ['day_of_week', 'start_time', 'end_time']:
            data[name] = getattr(candidate, name)

        return data

    @transaction.atomic
    def create(self, validated_data):
        children = validated_data.pop('children', [])
        exception_dates = validated_data.pop('exception_dates', [])
        reason = validated_data.pop('exception_reason', '')

        event = ExternalEvent.objects.create(**validated_data)
        event.children.set(children)
        self._replace_exceptions(event, exception_dates, reason)
        return event

    @transaction.atomic
    def update(self, instance, validated_data):
        children = validated_data.pop('children', None)
        exception_dates = validated_data.pop('exception_dates', None)
        reason = validated_data.pop('exception_reason', '')

        instance = super().update(instance, validated_data)
        if children is not None:
            instance.children.set(children)
        if exception_dates is not None:
            self._replace_exceptions(instance, exception_dates, reason)
        return instance

    def _replace_exceptions(self, event, exception_dates, reason):
        event.exceptions.all().delete()
        ExternalEventException.objects.bulk_create([
            ExternalEventException(event=event, exception_date=exception_date, reason=reason)
            for exception_date in sorted(set(exception_dates))
        ])


class DateOverrideSerializer(serializers.ModelSerializer):
    class Meta:
        model = DateOverride
        fields = ['date', 'type', 'reason']


class SchoolYearSerializer(serializers.ModelSerializer):
    """Serializer for SchoolYear with its school weekdays (Sunday=0) and overrides"""

    weekdays = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=6), required=False
    )
    overrides = DateOverrideSerializer(many=True, required=False)

    class Meta:
        model = SchoolYear
        fields = ['id', 'label', 'start_date', 'end_date', 'weekdays', 'overrides', 'created_at']
        read_only_fields = ['created_at']

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['weekdays'] = normalize_weekdays(instance.school_days.values_list('weekday', flat=True))
        return data

    def validate_overrides(self, value):
        dates = [item['date'] for item in value]
        if len(dates) != len(set(dates)):
            raise serializers.ValidationError("Only one override per date is allowed")
        return value

    def validate(self, data):
        start_date = data.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = data.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError("School year cannot end before it starts")
        return data

    @transaction.atomic
    def create(self, validated_data):
        weekdays = validated_data.pop('weekdays', [])
        overrides = validated_data.pop('overrides', [])
        school_year = SchoolYear.objects.create(**validated_data)
        self._replace_schedule(school_year, weekdays, overrides)
        return school_year

    @transaction.atomic
    def update(self, instance, validated_data):
        weekdays = validated_data.pop('weekdays', None)
        overrides = validated_data.pop('overrides', None)
        instance = super().update(instance, validated_data)
        self._replace_schedule(instance, weekdays, overrides)
        return instance

    def _replace_schedule(self, school_year, weekdays, overrides):
        if weekdays is not None:
            school_year.school_days.all().delete()
            SchoolDay.objects.bulk_create([
                SchoolDay(school_year=school_year, weekday=weekday)
                for weekday in normalize_weekdays(weekdays)
            ])
        if overrides is not None:
            school_year.overrides.all().delete()
            DateOverride.objects.bulk_create([
                DateOverride(school_year=school_year, **override)
                for override in overrides
            ])
