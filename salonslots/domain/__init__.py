"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityCalculator, compute_available_slots
from .models import (
    BlockedDate,
    Booking,
    BusinessHours,
    PartialBlock,
    ServiceDescriptor,
    SlotStatus,
    SlotTime,
    WholeDayBlock,
    resolve_duration,
)

__all__ = [
    "AvailabilityCalculator",
    "BlockedDate",
    "Booking",
    "BusinessHours",
    "PartialBlock",
    "ServiceDescriptor",
    "SlotStatus",
    "SlotTime",
    "WholeDayBlock",
    "compute_available_slots",
    "resolve_duration",
]
