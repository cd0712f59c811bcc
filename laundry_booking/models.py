import uuid

from sqlalchemy import Column, String, Date, Time, DateTime, Index
from laundry_booking.database import Base
from laundry_booking.timeutils import utcnow


def generate_id() -> str:
    return uuid.uuid4().hex


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    booker_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    machine = Column(String, nullable=False)
    # Дата и время хранятся "как на часах", без часового пояса
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    session_id = Column(String, nullable=False, index=True)

    __table_args__ = (
        Index("idx_bookings_machine_date", "machine", "date"),
    )
