"""
Domain-specific exception hierarchy for the salon booking application.
"""


class SalonSlotsError(Exception):
    """Base class for all application-level errors."""


class StoreError(SalonSlotsError):
    """Raised when booking or blocked-date data cannot be fetched or saved."""


class RecordNotFoundError(SalonSlotsError):
    """Raised when a stored record to update or delete does not exist."""
