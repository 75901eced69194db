"""
Errors raised by the calendar services.
Views turn these into 400 responses.
"""


class CalendarServiceError(ValueError):
    """Base class for calendar service errors."""


class InvalidEventError(CalendarServiceError):
    """A stored event violates a data-integrity precondition (e.g. end before start)."""


class DateImportError(CalendarServiceError):
    """Pasted dates could not be turned into an event schedule."""
