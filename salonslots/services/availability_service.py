"""
Application services for offering appointment slots.

The service coordinates reading bookings and blocked dates via store
adapters and delegates the actual availability rules to the domain-level
``AvailabilityCalculator``. This keeps the CLI thin and improves testability
by allowing the stores to be stubbed via simple protocols.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Literal, Optional, Protocol, TypeVar

from pendulum import Date

from ..adapters.records import coerce_duration, parse_blocked_date, parse_booking
from ..domain.availability import AvailabilityCalculator
from ..domain.exceptions import RecordNotFoundError, StoreError
from ..domain.models import (
    BlockedDate,
    Booking,
    ServiceDescriptor,
    SlotStatus,
    SlotTime,
    parse_calendar_date,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

StoreFailurePolicy = Literal["optimistic", "suppress"]


class BookingStoreProtocol(Protocol):
    """Protocol describing the booking store behaviour needed by the service."""

    def list_bookings(self, date: Date) -> List[Booking]:
        """Return the bookings on a calendar date."""


class BlockedTimeStoreProtocol(Protocol):
    """Protocol describing the blocked-date store behaviour needed by the service."""

    def get_blocked_dates(self) -> List[BlockedDate]:
        """Return every blocked-date record."""

    def save_blocked_date(self, record: BlockedDate) -> BlockedDate:
        """Create or replace the record for a date."""

    def delete_blocked_date(self, date: Date) -> None:
        """Remove the record for a date."""


class AvailabilityService:
    """
    Orchestrates store reads and slot calculation.

    When a store cannot be read, ``store_failure_policy`` decides what
    happens: ``optimistic`` carries on as if the store were empty,
    ``suppress`` offers no slots at all.
    """

    def __init__(
        self,
        booking_store: BookingStoreProtocol,
        blocked_store: BlockedTimeStoreProtocol,
        calculator: Optional[AvailabilityCalculator] = None,
        store_failure_policy: StoreFailurePolicy = "optimistic",
    ) -> None:
        self._booking_store = booking_store
        self._blocked_store = blocked_store
        self._calculator = calculator or AvailabilityCalculator()
        self._store_failure_policy = store_failure_policy

    @property
    def calculator(self) -> AvailabilityCalculator:
        return self._calculator

    def find_slots(self, *, date: Date, service: Optional[ServiceDescriptor]) -> List[SlotTime]:
        """
        Read fresh bookings and blocks, then compute the offerable start times.
        """
        if service is None:
            return []

        date = parse_calendar_date(date)
        bookings = self._read_store("bookings", lambda: self._booking_store.list_bookings(date))
        blocked_dates = self._read_store("blocked dates", self._blocked_store.get_blocked_dates)

        if bookings is None or blocked_dates is None:
            return []

        return self.calculate_slots(
            date=date,
            service=service,
            bookings=bookings,
            blocked_dates=blocked_dates,
        )

    def calculate_slots(
        self,
        *,
        date: Date,
        service: Optional[ServiceDescriptor],
        bookings: List[Booking],
        blocked_dates: List[BlockedDate],
    ) -> List[SlotTime]:
        """Calculate offerable start times from already fetched data."""
        return self._calculator.find_available_slots(
            date=date,
            service=service,
            bookings=bookings,
            blocked_dates=blocked_dates,
        )

    def compute_from_payload(self, payload: Dict[str, Any]) -> Dict[str, List[str]]:
        """
        Stateless computation contract.

        Takes ``{date, serviceDurationHours, bookings[], blockedRecords[]}``
        with bookings and blocks in their stored shape and answers
        ``{"slots": [...]}``. A missing duration means no service is selected;
        an unreadable one falls back to the default duration. Unreadable
        blocked records are skipped.
        """
        date = parse_calendar_date(payload["date"])
        duration = payload.get("serviceDurationHours")
        service = ServiceDescriptor(duration_hours=coerce_duration(duration)) if duration else None

        bookings = [
            booking
            for booking in (parse_booking(item) for item in payload.get("bookings") or [])
            if booking is not None
        ]

        blocked_dates: List[BlockedDate] = []
        for item in payload.get("blockedRecords") or []:
            try:
                blocked_dates.append(parse_blocked_date(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable blocked date %r: %s", item, exc)

        slots = self.calculate_slots(
            date=date,
            service=service,
            bookings=bookings,
            blocked_dates=blocked_dates,
        )
        return {"slots": [str(slot) for slot in slots]}

    def slot_grid(self, date: Date) -> List[SlotStatus]:
        """
        Admin view of a date: every curated slot with blocked/booked flags.

        Store failures propagate; the admin needs to know the data is missing.
        """
        date = parse_calendar_date(date)
        return self._calculator.build_slot_grid(
            date=date,
            bookings=self._booking_store.list_bookings(date),
            blocked_dates=self._blocked_store.get_blocked_dates(),
        )

    def block(self, date: Date, time: Optional[SlotTime] = None) -> BlockedDate:
        """
        Block a single start time, or the whole date when ``time`` is None.

        Blocking the last open grid slot turns the record into a whole-day block.
        """
        date = parse_calendar_date(date)
        if time is None:
            record = BlockedDate.whole_day(date)
        else:
            existing = self._find_blocked_date(date)
            grid = self._calculator.grid_slots(date)
            if existing is None:
                record = BlockedDate.from_times(date, [time]).with_time(time, grid)
            else:
                record = existing.with_time(time, grid)

        logger.info("Blocking %s %s", date.to_date_string(), time or "(whole day)")
        return self._blocked_store.save_blocked_date(record)

    def unblock(self, date: Date, time: Optional[SlotTime] = None) -> Optional[BlockedDate]:
        """
        Unblock a single start time, or the whole date when ``time`` is None.

        Unblocking one time of a whole-day block keeps the other grid slots
        blocked. Returns the remaining record, or None when the date is open.

        Raises:
            RecordNotFoundError: If the date is not blocked at all
        """
        date = parse_calendar_date(date)
        if time is None:
            self._blocked_store.delete_blocked_date(date)
            logger.info("Unblocked %s", date.to_date_string())
            return None

        existing = self._find_blocked_date(date)
        if existing is None:
            raise RecordNotFoundError(f"Blocked date not found: {date.to_date_string()}")

        remaining = existing.without_time(time, self._calculator.grid_slots(date))
        if remaining is None:
            self._blocked_store.delete_blocked_date(date)
        else:
            self._blocked_store.save_blocked_date(remaining)

        logger.info("Unblocked %s %s", date.to_date_string(), time)
        return remaining

    def _find_blocked_date(self, date: Date) -> Optional[BlockedDate]:
        for record in self._blocked_store.get_blocked_dates():
            if record.date == date:
                return record
        return None

    def _read_store(self, label: str, reader: Callable[[], List[T]]) -> Optional[List[T]]:
        """
        Run a store read under the failure policy.

        Returns None when slot computation must be suppressed.
        """
        try:
            return reader()
        except StoreError as exc:
            if self._store_failure_policy == "suppress":
                logger.error("Could not read %s, offering no slots: %s", label, exc)
                return None
            logger.warning("Could not read %s, assuming none: %s", label, exc)
            return []
