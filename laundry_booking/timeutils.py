import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_GRACE = timedelta(minutes=30)


def fixed_offset(offset_hours: int) -> timezone:
    return timezone(timedelta(hours=offset_hours))


def parse_civil_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def parse_civil_time(value) -> time:
    """Принимает "HH:MM" или "HH:MM:SS"; секунды и таймзона отбрасываются."""
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"invalid time: {value!r}")


def to_instant(day, wall_time, offset_hours: int) -> datetime:
    """(дата, время на часах, сдвиг) -> абсолютный момент с tzinfo."""
    return datetime.combine(
        parse_civil_date(day),
        parse_civil_time(wall_time),
        tzinfo=fixed_offset(offset_hours),
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_in_offset(offset_hours: int, now: Optional[datetime] = None) -> datetime:
    # Простой арифметический сдвиг UTC, без базы часовых поясов
    current = now if now is not None else utcnow()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(fixed_offset(offset_hours))


def is_expired(day, end_time, *, offset_hours: int, grace: timedelta = DEFAULT_GRACE,
               now: Optional[datetime] = None) -> bool:
    """Бронь истекла, если её дата уже прошла или конец был раньше now - grace.

    При ошибке разбора возвращает False: лучше оставить запись, чем удалить.
    """
    try:
        local_now = now_in_offset(offset_hours, now)
        booking_day = parse_civil_date(day)
        end_instant = to_instant(booking_day, end_time, offset_hours)
    except (TypeError, ValueError):
        logger.warning("Cannot evaluate expiry for date=%r end_time=%r", day, end_time)
        return False
    if booking_day < local_now.date():
        return True
    return local_now - end_instant > grace


def minutes_until_expiry(day, end_time, *, offset_hours: int, grace: timedelta = DEFAULT_GRACE,
                         now: Optional[datetime] = None) -> Optional[float]:
    try:
        end_instant = to_instant(day, end_time, offset_hours)
    except (TypeError, ValueError):
        return None
    delta = end_instant + grace - now_in_offset(offset_hours, now)
    minutes = round(delta.total_seconds() / 60, 1)
    # Вчерашние брони уже истекли, даже если grace ещё не вышел
    if is_expired(day, end_time, offset_hours=offset_hours, grace=grace, now=now):
        return min(minutes, 0.0)
    return minutes
