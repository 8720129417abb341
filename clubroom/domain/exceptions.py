"""
Domain-specific exception hierarchy for the club room booking application.
"""


class ClubroomError(Exception):
    """Base class for all application-level errors."""


class ValidationError(ClubroomError):
    """Raised when a user action is rejected before any state changes."""


class BookingRejected(ValidationError):
    """Raised when a booking cannot be created (blank name, slot taken)."""


class InvalidSlotLabel(ValidationError):
    """Raised when a time-slot label is blank."""


class RemoteStoreError(ClubroomError):
    """Raised when the remote document cannot be fetched, parsed or written."""
