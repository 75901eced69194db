from django.db import models
from django.core.exceptions import ValidationError

from .services.dates import js_weekday, normalize_weekdays


# Choices defined at module level so they can be shared
RECURRENCE_CHOICES = [
    ('once', 'Once'),
    ('weekly', 'Weekly'),
    ('biweekly', 'Every other week'),
    ('monthly', 'Monthly'),
]

CATEGORY_CHOICES = [
    ('co-op', 'Co-op'),
    ('sport', 'Sport'),
    ('music', 'Music'),
    ('art', 'Art'),
    ('field-trip', 'Field trip'),
    ('other', 'Other'),
]

WEEKDAY_CHOICES = [
    (0, 'Sunday'),
    (1, 'Monday'),
    (2, 'Tuesday'),
    (3, 'Wednesday'),
    (4, 'Thursday'),
    (5, 'Friday'),
    (6, 'Saturday'),
]

OVERRIDE_CHOICES = [
    ('include', 'Include (extra school day)'),
    ('exclude', 'Exclude (no school)'),
]

DEFAULT_EVENT_COLOR = '#3b82f6'


class Child(models.Model):
    """A student whose calendar can be filtered and who can attend external events."""

    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'children'

    def __str__(self):
        return self.name


class ExternalEvent(models.Model):
    """
    An activity outside the lesson plan (co-op, sports practice, music lesson...).
    The definition is stored once; dated occurrences are expanded on demand.
    """

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='other')
    recurrence_type = models.CharField(max_length=20, choices=RECURRENCE_CHOICES, default='weekly')
    day_of_week = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        choices=WEEKDAY_CHOICES,
        help_text="Weekday for weekly/biweekly events (Sunday=0). Empty = infer from start date"
    )
    start_date = models.DateField(help_text="Occurrence date for one-off events, anchor date otherwise")
    end_date = models.DateField(null=True, blank=True, help_text="Last possible date. Empty = no end")
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    all_day = models.BooleanField(default=False)
    color = models.CharField(max_length=20, default=DEFAULT_EVENT_COLOR)
    location = models.CharField(max_length=255, blank=True)
    travel_minutes = models.PositiveIntegerField(null=True, blank=True)
    children = models.ManyToManyField(Child, related_name='external_events', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['start_date', 'title']

    def __str__(self):
        return f"{self.title} ({self.get_recurrence_type_display()})"

    def clean(self):
        """Validate model constraints"""
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError("End date cannot be before the start date")

        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")

        if self.all_day:
            self.start_time = None  # All-day events carry no times
            self.end_time = None
        elif self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValidationError("End time cannot be before the start time")

        if self.recurrence_type in ['once', 'monthly']:
            self.day_of_week = None  # Auto-correct, the start date decides
        elif self.start_date:
            weekday = js_weekday(self.start_date)
            if self.day_of_week is None:
                self.day_of_week = weekday
            elif self.day_of_week != weekday:
                raise ValidationError(
                    "Day of week must match the start date's weekday for weekly and biweekly events"
                )


class ExternalEventException(models.Model):
    """
    A cancelled occurrence: the event does not happen on this exact date.
    """

    event = models.ForeignKey(ExternalEvent, on_delete=models.CASCADE, related_name='exceptions')
    exception_date = models.DateField()
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['event', 'exception_date']
        ordering = ['exception_date']

    def __str__(self):
        return f"No '{self.event.title}' on {self.exception_date}"


class SchoolYear(models.Model):
    """A school year with its default school weekdays and per-date overrides."""

    label = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-start_date']

    def __str__(self):
        return self.label

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("School year cannot end before it starts")

    def schedule(self):
        """
        Return (weekdays, overrides) in the shape the date utilities expect:
        a set of weekday numbers and a dict of date key -> 'include'/'exclude'.
        """
        weekdays = set(normalize_weekdays(self.school_days.values_list('weekday', flat=True)))
        overrides = {
            override.date.isoformat(): override.type
            for override in self.overrides.all()
        }
        return weekdays, overrides


class SchoolDay(models.Model):
    school_year = models.ForeignKey(SchoolYear, on_delete=models.CASCADE, related_name='school_days')
    weekday = models.PositiveSmallIntegerField(choices=WEEKDAY_CHOICES)

    class Meta:
        unique_together = ['school_year', 'weekday']
        ordering = ['weekday']

    def __str__(self):
        return f"{self.school_year.label}: {self.get_weekday_display()}"


class DateOverride(models.Model):
    """Turns a single date into a school day (include) or a day off (exclude)."""

    school_year = models.ForeignKey(SchoolYear, on_delete=models.CASCADE, related_name='overrides')
    date = models.DateField()
    type = models.CharField(max_length=10, choices=OVERRIDE_CHOICES)
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        unique_together = ['school_year', 'date']
        ordering = ['date']

    def __str__(self):
        return f"{self.get_type_display()} on {self.date}"
