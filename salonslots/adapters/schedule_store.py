"""
Booking and blocked-date storage on top of a plain key/value document store.

Each collection is a single JSON document under ``<prefix>:<collection>``.
Subclasses only implement how a document is read and written.
"""

import logging
import secrets
import string
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import pendulum
from pendulum import Date

from ..domain.exceptions import RecordNotFoundError
from ..domain.models import BlockedDate, Booking, SlotTime, format_calendar_date
from .records import (
    blocked_date_to_payload,
    booking_date_string,
    parse_blocked_date,
    parse_booking,
    unwrap_document,
    validate_booking,
)

logger = logging.getLogger(__name__)

BOOKINGS = "bookings"
SERVICES = "services"
BLOCKED_DATES = "blocked_dates"

# Field that wraps the record list inside each stored document
_DOCUMENT_FIELDS = {
    BOOKINGS: "bookings",
    SERVICES: "services",
    BLOCKED_DATES: "blockedDates",
}


def generate_booking_id() -> str:
    """Unique booking reference, e.g. ``BK1732612345678k3j9x0q2a``."""
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"BK{int(pendulum.now('UTC').timestamp() * 1000)}{suffix}"


class ScheduleStore(ABC):
    """
    Booking Store and Blocked-Time Store backed by JSON documents.

    Call ``connect()`` before first use.
    """

    def __init__(self, key_prefix: str = "heyu_test"):
        self.key_prefix = key_prefix

    def key(self, collection: str) -> str:
        return f"{self.key_prefix}:{collection}"

    @abstractmethod
    def connect(self) -> None:
        """Prepare the backend and verify it is reachable."""

    @abstractmethod
    def _read_document(self, key: str) -> Any:
        """Return the parsed document stored under ``key`` or None."""

    @abstractmethod
    def _write_document(self, key: str, document: Dict[str, Any]) -> None:
        """Store ``document`` under ``key``."""

    # Raw collections

    def read_records(self, collection: str) -> List[Dict[str, Any]]:
        data = self._read_document(self.key(collection))
        return unwrap_document(data, _DOCUMENT_FIELDS[collection])

    def save_records(self, collection: str, records: List[Dict[str, Any]]) -> None:
        document = {
            _DOCUMENT_FIELDS[collection]: records,
            "lastUpdated": pendulum.now("UTC").to_iso8601_string(),
        }
        self._write_document(self.key(collection), document)
        logger.info("Saved %d %s to %s", len(records), collection, self.key(collection))

    # Booking Store

    def list_bookings(self, date: Date) -> List[Booking]:
        """
        Bookings on a calendar date, cancelled ones excluded.

        Records without a readable start time are skipped.
        """
        date_str = format_calendar_date(date)
        bookings: List[Booking] = []

        for payload in self.read_records(BOOKINGS):
            if booking_date_string(payload) != date_str:
                continue
            if payload.get("status") == "cancelled":
                continue
            booking = parse_booking(payload)
            if booking is not None:
                bookings.append(booking)

        return bookings

    def add_booking(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and append a new booking.

        Returns:
            The stored record including its generated ``bookingId``

        Raises:
            ValueError: If the payload does not validate
        """
        errors = validate_booking(payload)
        if errors:
            raise ValueError("; ".join(errors))

        record = {
            "bookingId": generate_booking_id(),
            "service": payload["service"],
            "selectedDate": booking_date_string(payload),
            "selectedTime": payload["selectedTime"],
            "name": payload["name"].strip(),
            "wechatName": payload["wechatName"].strip(),
            "email": payload["email"].strip(),
            "phone": payload["phone"].strip(),
            "wechat": (payload.get("wechat") or "").strip(),
            "status": "confirmed",
            "createdAt": pendulum.now("UTC").to_iso8601_string(),
        }

        records = self.read_records(BOOKINGS)
        records.append(record)
        self.save_records(BOOKINGS, records)
        return record

    def cancel_booking(self, booking_id: str) -> None:
        """
        Mark a booking as cancelled.

        Raises:
            RecordNotFoundError: If no booking has this id
        """
        records = self.read_records(BOOKINGS)
        for record in records:
            if record.get("bookingId") == booking_id:
                record["status"] = "cancelled"
                self.save_records(BOOKINGS, records)
                return
        raise RecordNotFoundError(f"Booking not found: {booking_id}")

    # Service catalogue

    def list_services(self) -> List[Dict[str, Any]]:
        return self.read_records(SERVICES)

    # Blocked-Time Store

    def get_blocked_dates(self) -> List[BlockedDate]:
        """All blocked-date records; malformed ones are skipped with a warning."""
        blocked: List[BlockedDate] = []
        for payload in self.read_records(BLOCKED_DATES):
            try:
                blocked.append(parse_blocked_date(payload))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable blocked date %r: %s", payload, exc)
        return blocked

    def save_blocked_date(self, record: BlockedDate) -> BlockedDate:
        """Create or replace the record for ``record.date``."""
        payload = blocked_date_to_payload(record)
        records = self.read_records(BLOCKED_DATES)
        existing_index = next(
            (index for index, r in enumerate(records) if r.get("date") == payload["date"]),
            None,
        )

        if existing_index is not None:
            records[existing_index] = payload
        else:
            records.append(payload)

        self.save_records(BLOCKED_DATES, records)
        return record

    def delete_blocked_date(self, date: Date) -> None:
        """
        Remove the whole record for a date.

        Raises:
            RecordNotFoundError: If the date has no record
        """
        date_str = format_calendar_date(date)
        records = self.read_records(BLOCKED_DATES)
        remaining = [r for r in records if r.get("date") != date_str]

        if len(remaining) == len(records):
            raise RecordNotFoundError(f"Blocked date not found: {date_str}")

        self.save_records(BLOCKED_DATES, remaining)

    def delete_blocked_time(self, date: Date, time: SlotTime) -> None:
        """
        Remove one time from a date's record; drop the record once empty.

        Raises:
            RecordNotFoundError: If the date has no record
        """
        date_str = format_calendar_date(date)
        records = self.read_records(BLOCKED_DATES)
        target = next((r for r in records if r.get("date") == date_str), None)

        if target is None:
            raise RecordNotFoundError(f"Blocked date not found: {date_str}")

        remaining_times = [t for t in target.get("times") or [] if t != str(time)]
        if remaining_times:
            target["times"] = remaining_times
        else:
            records = [r for r in records if r.get("date") != date_str]

        self.save_records(BLOCKED_DATES, records)
