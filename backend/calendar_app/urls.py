"""
URL configuration for calendar_app.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    ChildViewSet, ExternalEventViewSet, SchoolYearViewSet, occurrences_view, ical_view,
)

# Create router for viewsets
router = DefaultRouter()
router.register(r'children', ChildViewSet)
router.register(r'events', ExternalEventViewSet)
router.register(r'school-years', SchoolYearViewSet)

urlpatterns = [
    # Include viewset URLs
    path('', include(router.urls)),

    # Expanded occurrences for a date range
    path('occurrences/', occurrences_view, name='occurrences'),
    path('calendar/ical/', ical_view, name='calendar-ical'),
]
