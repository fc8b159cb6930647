"""
Tests for the availability calculator.
"""

import pendulum
import pytest

from salonslots.domain.availability import (
    AvailabilityCalculator,
    compute_available_slots,
    fits_before_closing,
    is_blocked,
    is_booked,
    overlaps,
)
from salonslots.domain.models import (
    BlockedDate,
    Booking,
    BusinessHours,
    ServiceDescriptor,
    SlotTime,
)

TUESDAY = pendulum.date(2024, 11, 26)
WEDNESDAY = pendulum.date(2024, 11, 27)
THURSDAY = pendulum.date(2024, 11, 28)

THREE_HOURS = ServiceDescriptor(duration_hours=3)
FIVE_HOURS = ServiceDescriptor(duration_hours=5)


def _booking(day, time, hours=3):
    return Booking(date=day, start=SlotTime.parse(time), duration_hours=hours)


def _times(slots):
    return [str(slot) for slot in slots]


class TestPredicates:
    """Tests for the slot validity predicates."""

    def test_fits_before_closing(self):
        """Test that services must end by closing time."""
        assert fits_before_closing(SlotTime(16), 3, 19)
        assert not fits_before_closing(SlotTime(17), 3, 19)

    def test_back_to_back_is_not_a_conflict(self):
        """Test that a slot starting at a booking's end does not overlap."""
        booking = _booking(WEDNESDAY, "09:00")

        assert not overlaps(SlotTime(12), 3, booking)
        assert overlaps(SlotTime(11), 3, booking)

    def test_is_booked_checks_every_booking(self):
        """Test conflict detection across several bookings."""
        bookings = [_booking(WEDNESDAY, "09:00", 1), _booking(WEDNESDAY, "15:00")]

        assert is_booked(SlotTime(13), 3, bookings)
        assert not is_booked(SlotTime(10), 3, bookings)
        assert not is_booked(SlotTime(12), 3, [])

    def test_is_blocked(self):
        """Test whole-day, partial and missing block records."""
        partial = BlockedDate.from_times(WEDNESDAY, [SlotTime(12)])
        whole_day = BlockedDate.whole_day(TUESDAY)

        assert is_blocked(SlotTime(12), WEDNESDAY, [partial, whole_day])
        assert not is_blocked(SlotTime(9), WEDNESDAY, [partial, whole_day])
        assert is_blocked(SlotTime(9), TUESDAY, [partial, whole_day])
        assert not is_blocked(SlotTime(9), THURSDAY, [partial, whole_day])

    def test_late_evening_start(self):
        """Test the evening window on late-opening days only."""
        calculator = AvailabilityCalculator()

        assert calculator.is_late_evening_start(SlotTime(18), TUESDAY)
        assert calculator.is_late_evening_start(SlotTime(19), THURSDAY)
        assert not calculator.is_late_evening_start(SlotTime(17), TUESDAY)
        assert not calculator.is_late_evening_start(SlotTime(18), WEDNESDAY)


class TestDefaultSlots:
    """Tests for the curated default slot lists."""

    def test_standard_service_on_regular_day(self):
        calculator = AvailabilityCalculator()

        assert _times(calculator.default_slots(WEDNESDAY, 3)) == ["09:00", "12:00", "15:00"]

    def test_standard_service_on_late_day_adds_evening_slot(self):
        calculator = AvailabilityCalculator()

        assert _times(calculator.default_slots(THURSDAY, 3)) == ["09:00", "12:00", "15:00", "18:00"]

    def test_long_service(self):
        calculator = AvailabilityCalculator()

        assert _times(calculator.default_slots(TUESDAY, 5)) == ["09:00", "14:00"]

    def test_other_durations_use_standard_list(self):
        """Test that unknown durations follow the standard rule set."""
        calculator = AvailabilityCalculator()

        assert _times(calculator.default_slots(WEDNESDAY, 2)) == ["09:00", "12:00", "15:00"]


class TestFindAvailableSlots:
    """Tests for AvailabilityCalculator.find_available_slots."""

    def test_regular_day_without_bookings(self):
        """Test a Wednesday with nothing booked or blocked."""
        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, [], [])

        assert _times(slots) == ["09:00", "12:00", "15:00"]

    def test_late_day_without_bookings(self):
        """Test a Tuesday offers the evening slot for standard services."""
        slots = compute_available_slots(TUESDAY, THREE_HOURS, [], [])

        assert _times(slots) == ["09:00", "12:00", "15:00", "18:00"]

    def test_long_service_on_late_day(self):
        """Test that long services never start in the evening window."""
        slots = compute_available_slots(TUESDAY, FIVE_HOURS, [], [])

        assert _times(slots) == ["09:00", "14:00"]

    def test_back_to_back_after_morning_booking(self):
        """Test that the slot at a booking's end is offered."""
        bookings = [_booking(WEDNESDAY, "09:00")]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, bookings, [])

        assert _times(slots) == ["12:00", "15:00"]

    def test_partial_block_removes_time(self):
        """Test a blocked start time is not offered."""
        blocked = [BlockedDate.from_times(WEDNESDAY, [SlotTime(12)])]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, [], blocked)

        assert _times(slots) == ["09:00", "15:00"]

    @pytest.mark.parametrize("service", [THREE_HOURS, FIVE_HOURS])
    def test_whole_day_block_returns_nothing(self, service):
        """Test a whole-day block wins regardless of bookings."""
        blocked = [BlockedDate.whole_day(TUESDAY)]
        bookings = [_booking(TUESDAY, "09:00")]

        assert compute_available_slots(TUESDAY, service, [], blocked) == []
        assert compute_available_slots(TUESDAY, service, bookings, blocked) == []

    def test_midnight_entry_is_not_a_whole_day_block(self):
        """Test that only an empty times list blocks the whole day."""
        blocked = [BlockedDate.from_times(WEDNESDAY, [SlotTime(0), SlotTime(12)])]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, [], blocked)

        assert not blocked[0].is_whole_day
        assert _times(slots) == ["09:00", "15:00"]

    def test_no_service_selected(self):
        """Test that no service means no slots."""
        assert compute_available_slots(WEDNESDAY, None, [], []) == []

    def test_blocked_time_outside_curated_slots_has_no_effect(self):
        """Test that only curated slots are checked against blocked times."""
        blocked = [BlockedDate.from_times(WEDNESDAY, [SlotTime(10, 30)])]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, [], blocked)

        assert _times(slots) == ["09:00", "12:00", "15:00"]

    def test_bookings_on_other_dates_are_ignored(self):
        """Test that only bookings for the requested date count."""
        bookings = [_booking(TUESDAY, "09:00"), _booking(TUESDAY, "12:00")]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, bookings, [])

        assert _times(slots) == ["09:00", "12:00", "15:00"]

    def test_earlier_slot_stays_before_midday_booking(self):
        """Test slots around a booking in the middle of a late-opening day."""
        bookings = [_booking(TUESDAY, "12:00")]

        slots = compute_available_slots(TUESDAY, THREE_HOURS, bookings, [])

        assert _times(slots) == ["09:00", "15:00", "18:00"]

    def test_spacing_after_short_booking(self):
        """Test a slot too soon after a booking's end is dropped."""
        # Booking 09:00-10:00 frees 10:00; 12:00 is only two hours later
        bookings = [_booking(WEDNESDAY, "09:00", hours=1)]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, bookings, [])

        assert _times(slots) == ["10:00", "15:00"]

    def test_evening_slot_is_exempt_from_spacing(self):
        """Test 18:00 on a late-opening day ignores the spacing rule."""
        # Booking 16:00-17:00; 17:00 would run past 19:00, 18:00 stays offered
        bookings = [_booking(TUESDAY, "16:00", hours=1)]

        slots = compute_available_slots(TUESDAY, THREE_HOURS, bookings, [])

        assert _times(slots) == ["09:00", "12:00", "18:00"]

    def test_daytime_start_cannot_use_extended_hours(self):
        """Test a 17:00 start on Tuesday is rejected although it ends by 22:00."""
        bookings = [_booking(TUESDAY, "16:00", hours=1)]

        slots = compute_available_slots(TUESDAY, THREE_HOURS, bookings, [])

        assert SlotTime(17) not in slots

    def test_long_service_never_starts_late(self):
        """Test the late-start exclusion when the evening start would still fit."""
        hours = BusinessHours(extended_closing_hour=23)
        bookings = [_booking(TUESDAY, "13:00", hours=5)]

        slots = compute_available_slots(TUESDAY, FIVE_HOURS, bookings, [], business_hours=hours)

        assert SlotTime(18) not in slots
        assert slots == []

    def test_booking_ending_late_is_skipped(self):
        """Test a booking ending after midnight does not break the calculation."""
        bookings = [_booking(TUESDAY, "20:00", hours=5)]

        slots = compute_available_slots(TUESDAY, THREE_HOURS, bookings, [])

        assert _times(slots) == ["09:00", "12:00", "15:00"]

    def test_blocked_slot_next_to_booking(self):
        """Test that a blocked booking end time is not offered."""
        bookings = [_booking(WEDNESDAY, "09:00")]
        blocked = [BlockedDate.from_times(WEDNESDAY, [SlotTime(12)])]

        slots = compute_available_slots(WEDNESDAY, THREE_HOURS, bookings, blocked)

        assert _times(slots) == ["15:00"]


class TestAvailabilityProperties:
    """Invariants that hold for every calculation."""

    SCENARIOS = [
        (day, service, bookings)
        for day in (TUESDAY, WEDNESDAY, THURSDAY)
        for service in (THREE_HOURS, FIVE_HOURS, ServiceDescriptor(duration_hours=2))
        for bookings in (
            [],
            [("09:00", 3)],
            [("12:00", 3)],
            [("09:00", 1), ("14:00", 5)],
            [("10:00", 2), ("15:00", 3)],
            [("18:00", 3)],
        )
    ]

    @pytest.mark.parametrize("day, service, raw_bookings", SCENARIOS)
    def test_invariants(self, day, service, raw_bookings):
        """Test fit, conflict-freedom, ordering and determinism."""
        calculator = AvailabilityCalculator()
        bookings = [_booking(day, time, hours) for time, hours in raw_bookings]

        slots = calculator.find_available_slots(day, service, bookings, [])
        closing = calculator.closing_hour(day)

        for slot in slots:
            assert slot.hour + service.duration_hours <= closing
            assert not any(overlaps(slot, service.duration_hours, b) for b in bookings)
            if service.duration_hours == 5:
                assert not calculator.is_late_evening_start(slot, day)

        rendered = _times(slots)
        assert rendered == sorted(set(rendered))
        assert calculator.find_available_slots(day, service, bookings, []) == slots


class TestSlotGrid:
    """Tests for the admin slot grid."""

    def test_grid_slots_union(self):
        """Test the grid merges standard and long-service slots."""
        calculator = AvailabilityCalculator()

        assert _times(calculator.grid_slots(TUESDAY)) == ["09:00", "12:00", "14:00", "15:00", "18:00"]
        assert _times(calculator.grid_slots(WEDNESDAY)) == ["09:00", "12:00", "14:00", "15:00"]

    def test_grid_statuses(self):
        """Test blocked and booked flags per slot."""
        calculator = AvailabilityCalculator()
        booking = _booking(WEDNESDAY, "09:00")
        blocked = [BlockedDate.from_times(WEDNESDAY, [SlotTime(14)])]

        grid = {str(status.time): status for status in calculator.build_slot_grid(WEDNESDAY, [booking], blocked)}

        assert grid["09:00"].booked
        assert grid["09:00"].booking == booking
        assert not grid["12:00"].booked
        assert grid["12:00"].is_free
        assert grid["14:00"].blocked
        assert not grid["15:00"].blocked

    def test_grid_whole_day_block(self):
        """Test every grid slot is blocked on a whole-day block."""
        calculator = AvailabilityCalculator()

        grid = calculator.build_slot_grid(TUESDAY, [], [BlockedDate.whole_day(TUESDAY)])

        assert all(status.blocked for status in grid)

    def test_all_time_slots(self):
        """Test the half-hour grid follows the date's closing hour."""
        calculator = AvailabilityCalculator()

        wednesday = calculator.all_time_slots(WEDNESDAY)
        tuesday = calculator.all_time_slots(TUESDAY)

        assert str(wednesday[0]) == "09:00"
        assert str(wednesday[-1]) == "18:30"
        assert len(wednesday) == 20
        assert str(tuesday[-1]) == "21:30"

    def test_all_time_slots_custom_range(self):
        """Test explicit hours and interval."""
        calculator = AvailabilityCalculator()

        slots = calculator.all_time_slots(start_hour=10, end_hour=12, interval_minutes=60)

        assert _times(slots) == ["10:00", "11:00"]
