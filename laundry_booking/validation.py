import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional

from laundry_booking.errors import (
    BookingConflictError,
    InvalidDateTimeError,
    InvalidPhoneError,
    MissingFieldsError,
    PastBookingError,
    TimeOrderError,
    UnknownMachineError,
)
from laundry_booking.timeutils import parse_civil_date, parse_civil_time, to_instant

REQUIRED_FIELDS = ("booker_name", "phone", "machine", "date", "start_time", "end_time")

# Тайские номера: мобильные 06/08/09, городские 02-07, с кодом +66 / 66 и без
PHONE_PATTERNS = [
    re.compile(r"^0[689][0-9]{8}$"),
    re.compile(r"^0[2-7][0-9]{7,8}$"),
    re.compile(r"^\+66[689][0-9]{8}$"),
    re.compile(r"^\+660[2-7][0-9]{7,8}$"),
    re.compile(r"^66[689][0-9]{8}$"),
    re.compile(r"^660[2-7][0-9]{7,8}$"),
]

_PHONE_NOISE = re.compile(r"[\s\-().]")


@dataclass
class BookingCandidate:
    booker_name: Optional[str]
    phone: Optional[str]
    machine: Optional[str]
    date: Optional[str]
    start_time: Optional[str]
    end_time: Optional[str]


@dataclass
class ValidBooking:
    booker_name: str
    phone: str
    machine: str
    date: date
    start_time: time
    end_time: time


def normalize_phone(phone: str) -> str:
    return _PHONE_NOISE.sub("", phone)


def is_valid_phone(phone: str) -> bool:
    clean = normalize_phone(phone)
    return any(pattern.match(clean) for pattern in PHONE_PATTERNS)


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    # Полуоткрытые интервалы [start, end): касание концами не пересечение
    return start_a < end_b and end_a > start_b


def find_conflicts(existing: Iterable, machine: str, day: date, start: time, end: time) -> list:
    """Брони той же машины на ту же дату, чей интервал пересекается с [start, end)."""
    conflicts = []
    for booking in existing:
        if booking.machine != machine or parse_civil_date(booking.date) != day:
            continue
        if intervals_overlap(parse_civil_time(booking.start_time), parse_civil_time(booking.end_time),
                             start, end):
            conflicts.append(booking)
    return conflicts


def check_required(candidate: BookingCandidate) -> None:
    for field in REQUIRED_FIELDS:
        value = getattr(candidate, field)
        if value is None or not str(value).strip():
            raise MissingFieldsError()


def parse_candidate(candidate: BookingCandidate) -> ValidBooking:
    try:
        day = parse_civil_date(candidate.date)
        start = parse_civil_time(candidate.start_time)
        end = parse_civil_time(candidate.end_time)
    except ValueError:
        raise InvalidDateTimeError()
    return ValidBooking(
        booker_name=candidate.booker_name.strip(),
        phone=candidate.phone.strip(),
        machine=candidate.machine.strip(),
        date=day,
        start_time=start,
        end_time=end,
    )


def validate_booking(candidate: BookingCandidate, existing: Iterable, *, now: datetime,
                     offset_hours: int, machines: Optional[Iterable[str]] = None) -> ValidBooking:
    """Проверяет заявку против текущих броней; при отказе бросает BookingError."""
    check_required(candidate)

    if not is_valid_phone(candidate.phone):
        raise InvalidPhoneError()

    if machines is not None and candidate.machine.strip() not in set(machines):
        raise UnknownMachineError()

    booking = parse_candidate(candidate)

    if booking.end_time <= booking.start_time:
        raise TimeOrderError()

    if to_instant(booking.date, booking.start_time, offset_hours) <= now:
        raise PastBookingError()

    if find_conflicts(existing, booking.machine, booking.date, booking.start_time, booking.end_time):
        raise BookingConflictError()

    return booking
