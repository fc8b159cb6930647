"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import (
    AvailabilityService,
    BlockedTimeStoreProtocol,
    BookingStoreProtocol,
)

__all__ = ["AvailabilityService", "BlockedTimeStoreProtocol", "BookingStoreProtocol"]
