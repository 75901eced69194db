from django.contrib import admin
from .models import Child, ExternalEvent, ExternalEventException, SchoolYear, SchoolDay, DateOverride


class ExternalEventExceptionInline(admin.TabularInline):
    model = ExternalEventException
    extra = 0


@admin.register(ExternalEvent)
class ExternalEventAdmin(admin.ModelAdmin):
    list_display = ['title', 'recurrence_type', 'start_date', 'end_date', 'all_day', 'created_at']
    list_filter = ['recurrence_type', 'category', 'all_day']
    search_fields = ['title', 'description', 'location']
    readonly_fields = ['created_at']
    filter_horizontal = ['children']
    inlines = [ExternalEventExceptionInline]
    ordering = ['start_date']


@admin.register(Child)
class ChildAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


class SchoolDayInline(admin.TabularInline):
    model = SchoolDay
    extra = 0


class DateOverrideInline(admin.TabularInline):
    model = DateOverride
    extra = 0


@admin.register(SchoolYear)
class SchoolYearAdmin(admin.ModelAdmin):
    list_display = ['label', 'start_date', 'end_date']
    inlines = [SchoolDayInline, DateOverrideInline]
    ordering = ['-start_date']
