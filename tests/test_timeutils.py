from datetime import date, datetime, time, timedelta, timezone

import pytest

from laundry_booking.timeutils import (
    is_expired,
    minutes_until_expiry,
    now_in_offset,
    parse_civil_time,
    to_instant,
)

GRACE = timedelta(minutes=30)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_to_instant_uses_fixed_offset():
    instant = to_instant("2025-01-01", "10:00", 7)
    assert instant.utcoffset() == timedelta(hours=7)
    assert instant.astimezone(timezone.utc) == utc(2025, 1, 1, 3, 0)


def test_to_instant_accepts_date_and_time_objects():
    assert to_instant(date(2025, 1, 1), time(10, 0), 7) == to_instant("2025-01-01", "10:00:00", 7)


def test_now_in_offset_is_shift_of_utc():
    local = now_in_offset(7, utc(2025, 1, 1, 20, 0))
    assert (local.year, local.month, local.day, local.hour) == (2025, 1, 2, 3)


def test_parse_civil_time_formats():
    assert parse_civil_time("9:05") == time(9, 5)
    assert parse_civil_time("21:25:00") == time(21, 25)
    with pytest.raises(ValueError):
        parse_civil_time("21h25")


def test_not_expired_within_grace():
    # Конец в 10:00 по Бангкоку = 03:00 UTC
    assert not is_expired("2025-01-01", "10:00", offset_hours=7, grace=GRACE, now=utc(2025, 1, 1, 3, 30))


def test_expired_after_grace():
    assert is_expired("2025-01-01", "10:00", offset_hours=7, grace=GRACE, now=utc(2025, 1, 1, 3, 31))


def test_zero_grace():
    assert is_expired("2025-01-01", "10:00", offset_hours=7, grace=timedelta(0), now=utc(2025, 1, 1, 3, 0, 1))


def test_yesterday_always_expired():
    # Бронь до 23:59 вчерашнего дня, сейчас 00:05 по Бангкоку
    now = utc(2025, 1, 1, 17, 5)
    assert is_expired("2025-01-01", "23:59", offset_hours=7, grace=timedelta(hours=2), now=now)


def test_expiry_is_monotonic():
    start = utc(2025, 1, 1, 2, 0)
    seen_expired = False
    for minutes in range(0, 24 * 60, 7):
        expired = is_expired("2025-01-01", "10:00", offset_hours=7, grace=GRACE,
                             now=start + timedelta(minutes=minutes))
        if seen_expired:
            assert expired
        seen_expired = seen_expired or expired
    assert seen_expired


@pytest.mark.parametrize("day, end", [("garbage", "10:00"), ("2025-01-01", "late"), (None, None)])
def test_parse_failure_is_not_expired(day, end):
    assert not is_expired(day, end, offset_hours=7, grace=GRACE, now=utc(2030, 1, 1))


def test_minutes_until_expiry():
    assert minutes_until_expiry("2025-01-01", "10:00", offset_hours=7, grace=GRACE,
                                now=utc(2025, 1, 1, 3, 0)) == 30.0
    assert minutes_until_expiry("bad", "10:00", offset_hours=7, now=utc(2025, 1, 1)) is None


def test_minutes_until_expiry_not_positive_for_yesterday():
    # 00:05 по Бангкоку: вчерашняя бронь до 23:50 истекла, хотя grace ещё идёт
    now = utc(2025, 1, 1, 17, 5)
    assert is_expired("2025-01-01", "23:50", offset_hours=7, grace=GRACE, now=now)
    assert minutes_until_expiry("2025-01-01", "23:50", offset_hours=7, grace=GRACE, now=now) == 0.0
