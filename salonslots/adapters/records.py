"""
Conversion between stored JSON documents and domain models.

Stored records keep the field names of the booking front end
(``selectedDate``, ``selectedTime``, ``service.duration`` ...). Everything in
this module is tolerant of older record shapes.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..domain.models import (
    DEFAULT_DURATION_HOURS,
    BlockedDate,
    Booking,
    SlotTime,
    format_calendar_date,
    parse_calendar_date,
    resolve_duration,
)

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LOOSE_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})")
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")


def unwrap_document(data: Any, field: str) -> List[Dict[str, Any]]:
    """
    Extract the record list from a stored document.

    Documents are either a bare list or ``{field: [...], "lastUpdated": ...}``.
    Anything else counts as empty.
    """
    if isinstance(data, dict) and isinstance(data.get(field), list):
        return data[field]
    if isinstance(data, list):
        return data
    return []


def booking_date_string(payload: Dict[str, Any]) -> str:
    """Date part of a stored booking, with any ISO time suffix removed."""
    value = payload.get("selectedDate") or payload.get("date") or ""
    return str(value).split("T")[0]


def booking_duration(payload: Dict[str, Any]) -> int:
    """Resolve a stored booking's duration in whole hours."""
    service = payload.get("service")
    if isinstance(service, dict) and service.get("duration"):
        return resolve_duration(service["duration"])
    if payload.get("serviceDuration"):
        return coerce_duration(payload["serviceDuration"])
    return resolve_duration(payload.get("duration")) or DEFAULT_DURATION_HOURS


def coerce_duration(value: Any) -> int:
    """
    Whole hours from a number or a duration label.

    Integers and integer strings are taken as-is; anything else ("3小时",
    "2.5", "soon") goes through ``resolve_duration`` and its default.
    """
    if isinstance(value, bool):
        return DEFAULT_DURATION_HOURS
    if isinstance(value, int):
        return value if value > 0 else DEFAULT_DURATION_HOURS
    text = str(value).strip()
    if text.isdigit() and int(text) > 0:
        return int(text)
    return resolve_duration(text)


def parse_booking(payload: Dict[str, Any]) -> Optional[Booking]:
    """
    Build a Booking from a stored record.

    Returns None for records without a usable start time or date.
    """
    raw_time = payload.get("selectedTime") or payload.get("time") or payload.get("startTime")
    if not raw_time:
        return None

    match = _LOOSE_TIME_PATTERN.match(str(raw_time))
    try:
        if not match:
            raise ValueError(f"Invalid time format: {raw_time!r}")
        start = SlotTime(hour=int(match.group(1)), minute=int(match.group(2)))
        date = parse_calendar_date(booking_date_string(payload))
    except ValueError as exc:
        logger.warning("Skipping unreadable booking %s: %s", payload.get("bookingId", "?"), exc)
        return None

    return Booking(
        date=date,
        start=start,
        duration_hours=booking_duration(payload),
        booking_id=str(payload.get("bookingId", "")),
        status=str(payload.get("status", "confirmed")),
    )


def parse_blocked_date(payload: Dict[str, Any]) -> BlockedDate:
    """
    Build a BlockedDate from a stored ``{date, times}`` record.

    Raises:
        ValueError: If the date or one of the times is malformed
    """
    date = parse_calendar_date(str(payload["date"]))
    times = [SlotTime.parse(time) for time in payload.get("times") or []]
    return BlockedDate.from_times(date, times)


def blocked_date_to_payload(record: BlockedDate) -> Dict[str, Any]:
    """Serialize a BlockedDate; a whole-day block is an empty ``times`` list."""
    return {
        "date": format_calendar_date(record.date),
        "times": [str(time) for time in record.times],
    }


def validate_blocked_date(payload: Dict[str, Any]) -> List[str]:
    """Return the validation errors of a blocked-date payload."""
    errors: List[str] = []

    date = payload.get("date")
    if not date or not isinstance(date, str):
        errors.append("Date is required and must be a string")
    elif not _DATE_PATTERN.match(date):
        errors.append("Invalid date format, should be YYYY-MM-DD")

    times = payload.get("times")
    if not isinstance(times, list):
        errors.append("Times must be an array")
    else:
        invalid_times = [str(time) for time in times if not SlotTime.is_valid(time)]
        if invalid_times:
            errors.append(f"Invalid time format: {', '.join(invalid_times)}")

    return errors


def validate_booking(payload: Dict[str, Any]) -> List[str]:
    """Return the validation errors of a new booking payload."""
    errors: List[str] = []

    service = payload.get("service")
    if not isinstance(service, dict) or not service.get("id"):
        errors.append("Service information is required")

    selected_date = payload.get("selectedDate")
    if not selected_date:
        errors.append("Date is required")
    elif not _DATE_PATTERN.match(str(selected_date).split("T")[0]):
        errors.append("Invalid date format, should be YYYY-MM-DD")

    if not payload.get("selectedTime"):
        errors.append("Time is required")

    if not str(payload.get("name") or "").strip():
        errors.append("Name is required")

    if not str(payload.get("wechatName") or "").strip():
        errors.append("WeChat name is required")

    email = str(payload.get("email") or "").strip()
    if not email:
        errors.append("Email address is required")
    elif not _EMAIL_PATTERN.match(email):
        errors.append("Invalid email address format")

    phone = str(payload.get("phone") or "").strip()
    if not phone:
        errors.append("Phone number is required")
    else:
        digits_only = re.sub(r"\D", "", phone)
        if not _PHONE_PATTERN.match(phone) or len(digits_only) < 8:
            errors.append("Invalid phone number format")

    return errors
