"""
Domain models for salon services, bookings, blocked dates and business hours.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as _date
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

import pendulum
from pendulum import Date

DEFAULT_DURATION_HOURS = 3

_TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):([0-5][0-9])$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DURATION_PATTERN = re.compile(r"(\d+)\s*(?:小时|hours?\b|hrs?\b|h\b)", re.IGNORECASE)


def resolve_duration(label: Optional[str]) -> int:
    """
    Extract the number of hours from a duration label such as "3小时" or "5 hrs".

    Labels without a recognisable hour value fall back to three hours.
    """
    if not label:
        return DEFAULT_DURATION_HOURS
    match = _DURATION_PATTERN.search(label)
    return int(match.group(1)) if match else DEFAULT_DURATION_HOURS


def parse_calendar_date(value: Union[str, _date]) -> Date:
    """
    Convert a date string or date object into a local calendar date.

    Only the year, month and day components are used, so no time zone
    conversion can move the value onto a neighbouring day. ISO strings with
    a time part ("2024-11-26T00:00:00.000Z") are cut at the "T".
    """
    if isinstance(value, _date):
        return pendulum.date(value.year, value.month, value.day)

    date_str = value.strip().split("T")[0]
    if not _DATE_PATTERN.match(date_str):
        raise ValueError(f"Invalid date format, should be YYYY-MM-DD: {value!r}")
    return pendulum.from_format(date_str, "YYYY-MM-DD").date()


def format_calendar_date(value: _date) -> str:
    """Canonical YYYY-MM-DD key for a calendar date."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


@dataclass(frozen=True, order=True)
class SlotTime:
    """
    A time of day on the salon's booking grid.

    Ordering is chronological, which matches the lexicographic order of the
    HH:MM strings.
    """
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Minute must be between 0 and 59, got {self.minute}")

    @classmethod
    def parse(cls, value: str) -> "SlotTime":
        """Parse an HH:MM string."""
        match = _TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError(f"Invalid time format, should be HH:MM: {value!r}")
        return cls(hour=int(match.group(1)), minute=int(match.group(2)))

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return isinstance(value, str) and bool(_TIME_PATTERN.match(value))

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class ServiceDescriptor:
    """A bookable service. Only the duration matters for availability."""
    duration_hours: int
    name: str = ""

    @classmethod
    def from_label(cls, duration_label: Optional[str], name: str = "") -> "ServiceDescriptor":
        """Build a descriptor from a catalogue duration label."""
        return cls(duration_hours=resolve_duration(duration_label), name=name)


@dataclass(frozen=True)
class Booking:
    """
    An existing appointment on a given day.

    Only whole hours are used when computing the end of the appointment.
    """
    date: Date
    start: SlotTime
    duration_hours: int = DEFAULT_DURATION_HOURS
    booking_id: str = ""
    status: str = "confirmed"

    @property
    def start_hour(self) -> int:
        return self.start.hour

    @property
    def end_hour(self) -> int:
        return self.start.hour + self.duration_hours

    def overlaps(self, start: SlotTime, duration_hours: int) -> bool:
        """Check if a service starting at ``start`` would clash with this booking."""
        candidate_end = start.hour + duration_hours
        return start.hour < self.end_hour and candidate_end > self.start_hour


@dataclass(frozen=True)
class WholeDayBlock:
    """The salon takes no appointments at all on the date."""

    def blocks(self, time: SlotTime) -> bool:
        return True


@dataclass(frozen=True)
class PartialBlock:
    """Only the listed start times are unavailable."""
    times: FrozenSet[SlotTime]

    def __post_init__(self):
        if not self.times:
            raise ValueError("A partial block needs at least one time; use WholeDayBlock instead")

    def blocks(self, time: SlotTime) -> bool:
        return time in self.times


Block = Union[WholeDayBlock, PartialBlock]


@dataclass(frozen=True)
class BlockedDate:
    """
    Admin-declared unavailability for one calendar date.

    In stored documents a whole-day block is an empty ``times`` list.
    """
    date: Date
    block: Block

    @classmethod
    def whole_day(cls, date: Date) -> "BlockedDate":
        return cls(date=date, block=WholeDayBlock())

    @classmethod
    def from_times(cls, date: Date, times: Iterable[SlotTime]) -> "BlockedDate":
        """Create a record from a list of times; an empty list blocks the whole day."""
        time_set = frozenset(times)
        if not time_set:
            return cls.whole_day(date)
        return cls(date=date, block=PartialBlock(times=time_set))

    @property
    def is_whole_day(self) -> bool:
        return isinstance(self.block, WholeDayBlock)

    @property
    def times(self) -> List[SlotTime]:
        """Blocked start times in order; empty for a whole-day block."""
        if isinstance(self.block, PartialBlock):
            return sorted(self.block.times)
        return []

    def blocks(self, time: SlotTime) -> bool:
        return self.block.blocks(time)

    def with_time(self, time: SlotTime, grid: Iterable[SlotTime] = ()) -> "BlockedDate":
        """
        Return a copy with ``time`` blocked as well.

        When every slot of ``grid`` ends up blocked, the record collapses into
        a whole-day block.
        """
        if self.is_whole_day:
            return self
        new_times = set(self.times) | {time}
        grid_set = set(grid)
        if grid_set and grid_set <= new_times:
            return BlockedDate.whole_day(self.date)
        return BlockedDate.from_times(self.date, new_times)

    def without_time(self, time: SlotTime, grid: Iterable[SlotTime] = ()) -> Optional["BlockedDate"]:
        """
        Return a copy with ``time`` unblocked, or None when nothing stays blocked.

        Unblocking one time of a whole-day block keeps every other ``grid``
        slot blocked.
        """
        if self.is_whole_day:
            remaining = [slot for slot in grid if slot != time]
        else:
            remaining = [slot for slot in self.times if slot != time]
        if not remaining:
            return None
        return BlockedDate.from_times(self.date, remaining)


@dataclass(frozen=True)
class BusinessHours:
    """
    Opening rules of the salon.

    Tuesday and Thursday stay open until the extended closing hour, but only
    for appointments starting inside the evening window. Weekdays follow
    pendulum's numbering (0=Monday, 6=Sunday).
    """
    opening_hour: int = 9
    closing_hour: int = 19
    extended_closing_hour: int = 22
    extended_weekdays: Tuple[int, ...] = (pendulum.TUESDAY, pendulum.THURSDAY)
    evening_start_hour: int = 18
    standard_service_hours: int = 3
    long_service_hours: int = 5
    standard_slots: Tuple[SlotTime, ...] = (SlotTime(9), SlotTime(12), SlotTime(15))
    long_service_slots: Tuple[SlotTime, ...] = (SlotTime(9), SlotTime(14))
    evening_slot: SlotTime = SlotTime(18)

    def has_extended_hours(self, date: Date) -> bool:
        """Check if the date is one of the late-opening weekdays."""
        return parse_calendar_date(date).day_of_week in self.extended_weekdays

    def closing_hour_for(self, date: Date) -> int:
        """Latest hour by which a service must finish on this date."""
        if self.has_extended_hours(date):
            return self.extended_closing_hour
        return self.closing_hour


@dataclass(frozen=True)
class SlotStatus:
    """One row of the admin slot grid."""
    time: SlotTime
    blocked: bool
    booked: bool
    booking: Optional[Booking] = None

    @property
    def is_free(self) -> bool:
        return not self.blocked and not self.booked
