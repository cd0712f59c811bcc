from datetime import date
from typing import Iterable, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from laundry_booking import models


async def list_bookings(db: AsyncSession, machine: Optional[str] = None,
                        day: Optional[date] = None) -> list[models.Booking]:
    stmt = select(models.Booking)
    if machine is not None:
        stmt = stmt.where(models.Booking.machine == machine)
    if day is not None:
        stmt = stmt.where(models.Booking.date == day)
    stmt = stmt.order_by(models.Booking.date, models.Booking.start_time)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_booking(db: AsyncSession, booking_id: str) -> Optional[models.Booking]:
    result = await db.execute(select(models.Booking).where(models.Booking.id == booking_id))
    return result.scalar_one_or_none()


async def insert_booking(db: AsyncSession, booking: models.Booking) -> models.Booking:
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


async def delete_bookings(db: AsyncSession, booking_ids: Iterable[str]) -> int:
    ids = list(booking_ids)
    # Пустой список: ничего не трогаем
    if not ids:
        return 0
    result = await db.execute(delete(models.Booking).where(models.Booking.id.in_(ids)))
    await db.commit()
    return result.rowcount
