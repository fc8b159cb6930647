"""
Core business logic for deciding which appointment start times can be offered.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

from typing import Iterable, List, Optional, Sequence, Set

from pendulum import Date

from .models import (
    BlockedDate,
    Booking,
    BusinessHours,
    ServiceDescriptor,
    SlotStatus,
    SlotTime,
    parse_calendar_date,
)


def fits_before_closing(start: SlotTime, duration_hours: int, closing_hour: int) -> bool:
    """Check if a service starting at ``start`` finishes by closing time."""
    return start.hour + duration_hours <= closing_hour


def overlaps(start: SlotTime, duration_hours: int, booking: Booking) -> bool:
    """
    Half-open interval test between a candidate slot and a booking.

    A slot starting exactly when the booking ends is not a conflict.
    """
    return booking.overlaps(start, duration_hours)


def is_booked(start: SlotTime, duration_hours: int, bookings: Iterable[Booking]) -> bool:
    """Check if the candidate slot clashes with any of the bookings."""
    return any(overlaps(start, duration_hours, booking) for booking in bookings)


def find_blocked_date(date: Date, blocked_dates: Iterable[BlockedDate]) -> Optional[BlockedDate]:
    """Find the blocked-date record for a calendar date, if any."""
    for record in blocked_dates:
        if record.date == date:
            return record
    return None


def is_blocked(start: SlotTime, date: Date, blocked_dates: Iterable[BlockedDate]) -> bool:
    """
    Check if the start time is blocked by an admin on this date.

    Blocked times match by exact start time only, not as ranges.
    """
    record = find_blocked_date(parse_calendar_date(date), blocked_dates)
    if record is None:
        return False
    return record.blocks(start)


class AvailabilityCalculator:
    """
    Calculates the start times a customer may book for a service on a date.

    Algorithm:
    1. Bail out when the whole date is blocked or no service is selected
    2. Seed candidates from the curated default slots for the duration
    3. With bookings, add earlier default slots and each booking's end time
    4. Filter by blocks, conflicts, closing time and the evening rules
    5. Enforce a full service duration of spacing after earlier bookings
    """

    def __init__(self, business_hours: Optional[BusinessHours] = None):
        self.business_hours = business_hours or BusinessHours()

    def closing_hour(self, date: Date) -> int:
        """Latest hour by which a service must finish on this date."""
        return self.business_hours.closing_hour_for(date)

    def is_late_evening_start(self, start: SlotTime, date: Date) -> bool:
        """Check if the slot starts inside the evening window of a late-opening day."""
        return (
            self.business_hours.has_extended_hours(date)
            and start.hour >= self.business_hours.evening_start_hour
        )

    def default_slots(self, date: Date, duration_hours: int) -> List[SlotTime]:
        """
        Curated start times offered before bookings are considered.

        Long services get their own short list; everything else follows the
        standard list plus the evening slot on late-opening days.
        """
        hours = self.business_hours
        if duration_hours == hours.long_service_hours:
            return list(hours.long_service_slots)

        slots = list(hours.standard_slots)
        if hours.has_extended_hours(date):
            slots.append(hours.evening_slot)
        return slots

    def find_available_slots(
        self,
        date: Date,
        service: Optional[ServiceDescriptor],
        bookings: Sequence[Booking],
        blocked_dates: Sequence[BlockedDate],
    ) -> List[SlotTime]:
        """
        Find all start times that can be offered for a service on a date.

        Args:
            date: Calendar date the customer picked
            service: Selected service, or None when nothing is selected yet
            bookings: Existing bookings; entries for other dates are ignored
            blocked_dates: All admin blocked-date records

        Returns:
            Ascending, de-duplicated list of bookable start times
        """
        if service is None:
            return []

        date = parse_calendar_date(date)
        record = find_blocked_date(date, blocked_dates)

        # Step 1: Whole-day block wins over everything else
        if record is not None and record.is_whole_day:
            return []

        duration = service.duration_hours
        closing = self.closing_hour(date)
        base_slots = self.default_slots(date, duration)
        day_bookings = [booking for booking in bookings if booking.date == date]

        # Step 2: Without bookings only closing time and blocks matter
        if not day_bookings:
            return sorted({
                slot for slot in base_slots
                if fits_before_closing(slot, duration, closing)
                and not is_blocked(slot, date, blocked_dates)
            })

        # Step 3: Collect candidates around the existing bookings
        candidates = self._collect_candidates(
            date=date,
            duration=duration,
            closing=closing,
            base_slots=base_slots,
            bookings=day_bookings,
            blocked_dates=blocked_dates,
        )

        # Step 4 + 5: Apply every rule to the candidate set
        return sorted(
            slot for slot in candidates
            if self._passes_filters(slot, date, duration, closing, day_bookings, blocked_dates)
            and self._respects_spacing(slot, date, duration, day_bookings)
        )

    def build_slot_grid(
        self,
        date: Date,
        bookings: Sequence[Booking],
        blocked_dates: Sequence[BlockedDate],
    ) -> List[SlotStatus]:
        """
        Build the admin view of a date: every curated slot with its status.

        A slot counts as booked when it would clash with a booking either as
        a standard or as a long service.
        """
        date = parse_calendar_date(date)
        day_bookings = [booking for booking in bookings if booking.date == date]
        record = find_blocked_date(date, blocked_dates)
        standard = self.business_hours.standard_service_hours

        grid: List[SlotStatus] = []
        for slot in self.grid_slots(date):
            booked = (
                is_booked(slot, standard, day_bookings)
                or is_booked(slot, self.business_hours.long_service_hours, day_bookings)
            )
            booking_at_slot = next(
                (booking for booking in day_bookings if booking.start_hour == slot.hour),
                None,
            )
            grid.append(
                SlotStatus(
                    time=slot,
                    blocked=record is not None and record.blocks(slot),
                    booked=booked,
                    booking=booking_at_slot,
                )
            )
        return grid

    def grid_slots(self, date: Date) -> List[SlotTime]:
        """Union of the standard and long-service default slots for a date."""
        date = parse_calendar_date(date)
        standard = self.default_slots(date, self.business_hours.standard_service_hours)
        long_service = self.default_slots(date, self.business_hours.long_service_hours)
        return sorted(set(standard) | set(long_service))

    def all_time_slots(
        self,
        date: Optional[Date] = None,
        start_hour: Optional[int] = None,
        end_hour: Optional[int] = None,
        interval_minutes: int = 30,
    ) -> List[SlotTime]:
        """
        Generate every start time between opening and closing at a fixed interval.

        Without a date the regular closing hour is used.
        """
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be greater than zero")

        first_hour = self.business_hours.opening_hour if start_hour is None else start_hour
        if end_hour is not None:
            last_hour = end_hour
        elif date is not None:
            last_hour = self.closing_hour(date)
        else:
            last_hour = self.business_hours.closing_hour

        return [
            SlotTime(hour=hour, minute=minute)
            for hour in range(first_hour, last_hour)
            for minute in range(0, 60, interval_minutes)
        ]

    def _collect_candidates(
        self,
        *,
        date: Date,
        duration: int,
        closing: int,
        base_slots: List[SlotTime],
        bookings: List[Booking],
        blocked_dates: Sequence[BlockedDate],
    ) -> Set[SlotTime]:
        """
        Gather candidate start times when the date already has bookings.

        Candidates are the open default slots, the default slots finishing
        before each booking begins, and the hour each booking frees up.
        """
        def is_open(slot: SlotTime) -> bool:
            return (
                fits_before_closing(slot, duration, closing)
                and not is_booked(slot, duration, bookings)
                and not is_blocked(slot, date, blocked_dates)
            )

        candidates: Set[SlotTime] = {slot for slot in base_slots if is_open(slot)}

        for booking in bookings:
            for slot in base_slots:
                if slot.hour + duration <= booking.start_hour and is_open(slot):
                    candidates.add(slot)

            # Past midnight can never fit before closing
            if booking.end_hour > 23:
                continue
            next_free = SlotTime(hour=booking.end_hour)
            if is_open(next_free) and not self._is_long_late_start(next_free, date, duration):
                candidates.add(next_free)

        return candidates

    def _passes_filters(
        self,
        slot: SlotTime,
        date: Date,
        duration: int,
        closing: int,
        bookings: List[Booking],
        blocked_dates: Sequence[BlockedDate],
    ) -> bool:
        if is_blocked(slot, date, blocked_dates):
            return False
        if is_booked(slot, duration, bookings):
            return False
        if self._is_long_late_start(slot, date, duration):
            return False
        if not fits_before_closing(slot, duration, closing):
            return False

        # Extended hours only apply to slots starting in the evening window
        hours = self.business_hours
        if slot.hour < hours.evening_start_hour and slot.hour + duration > hours.closing_hour:
            return False

        return True

    def _respects_spacing(
        self,
        slot: SlotTime,
        date: Date,
        duration: int,
        bookings: List[Booking],
    ) -> bool:
        """
        Require a full service duration between an earlier booking's end and the slot.

        The evening slot on late-opening days is exempt.
        """
        hours = self.business_hours
        if slot.hour == hours.evening_slot.hour and hours.has_extended_hours(date):
            return True

        for booking in bookings:
            if slot.hour > booking.end_hour and slot.hour - booking.end_hour < duration:
                return False
        return True

    def _is_long_late_start(self, slot: SlotTime, date: Date, duration: int) -> bool:
        return (
            duration == self.business_hours.long_service_hours
            and self.is_late_evening_start(slot, date)
        )


def compute_available_slots(
    date: Date,
    service: Optional[ServiceDescriptor],
    bookings: Sequence[Booking],
    blocked_dates: Sequence[BlockedDate],
    business_hours: Optional[BusinessHours] = None,
) -> List[SlotTime]:
    """Shortcut for ``AvailabilityCalculator(business_hours).find_available_slots``."""
    return AvailabilityCalculator(business_hours).find_available_slots(
        date=date,
        service=service,
        bookings=bookings,
        blocked_dates=blocked_dates,
    )
