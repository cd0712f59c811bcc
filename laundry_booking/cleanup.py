import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from laundry_booking import crud, schemas
from laundry_booking.config import settings
from laundry_booking.timeutils import is_expired, now_in_offset, utcnow

logger = logging.getLogger(__name__)


def grace_window() -> timedelta:
    return timedelta(minutes=settings.GRACE_MINUTES)


def split_expired(bookings, now: datetime) -> tuple[list, list]:
    expired, active = [], []
    for booking in bookings:
        if is_expired(booking.date, booking.end_time, offset_hours=settings.TIMEZONE_OFFSET_HOURS,
                      grace=grace_window(), now=now):
            logger.debug("Removing expired booking %s: %s %s %s-%s", booking.id, booking.machine,
                         booking.date, booking.start_time, booking.end_time)
            expired.append(booking)
        else:
            active.append(booking)
    return expired, active


async def perform_cleanup(db: AsyncSession, now: Optional[datetime] = None) -> schemas.CleanupResult:
    """Удаляет истёкшие брони. Повторный запуск без новых истёкших ничего не меняет."""
    now = now or utcnow()
    bookings = await crud.list_bookings(db)
    expired, active = split_expired(bookings, now)

    deleted = await crud.delete_bookings(db, [b.id for b in expired])

    if deleted:
        logger.info("Cleanup completed: removed %d expired booking(s)", deleted)
    else:
        logger.info("No expired bookings found during cleanup")

    return schemas.CleanupResult(
        success=True,
        message=f"Removed {deleted} expired booking(s)",
        deleted_count=deleted,
        original_count=len(bookings),
        active_count=len(active),
        server_time=now,
        local_time=now_in_offset(settings.TIMEZONE_OFFSET_HOURS, now),
        timezone=settings.TIMEZONE_LABEL,
    )
