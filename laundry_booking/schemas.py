from pydantic import BaseModel, Field, ConfigDict, field_serializer
from datetime import date, datetime, time
from typing import Optional, Any

from laundry_booking.validation import BookingCandidate


class BookingCreate(BaseModel):
    # Пустые значения пропускаем: проверка полей идёт в validation.py
    booker_name: Optional[str] = Field(None, alias="bookerName")
    phone: Optional[str] = None
    machine: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")

    model_config = ConfigDict(populate_by_name=True)

    def to_candidate(self) -> BookingCandidate:
        return BookingCandidate(**self.model_dump())


class DeleteRequest(BaseModel):
    is_admin: bool = Field(False, alias="isAdmin")

    model_config = ConfigDict(populate_by_name=True)


class BookingResponse(BaseModel):
    id: str
    booker_name: str
    phone: str
    machine: str
    date: date
    start_time: time
    end_time: time
    created_at: Optional[datetime] = None
    is_owner: bool = Field(False, alias="isOwner")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_serializer("start_time", "end_time", when_used="json")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    @classmethod
    def from_booking(cls, booking, session_id: Optional[str]) -> "BookingResponse":
        out = cls.model_validate(booking)
        out.is_owner = session_id is not None and booking.session_id == session_id
        return out


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    count: int
    session_id: Optional[str] = Field(None, alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class BookingCreatedResponse(BaseModel):
    message: str
    booking: BookingResponse


class BookingDeletedResponse(BaseModel):
    message: str
    deleted_booking: BookingResponse = Field(alias="deletedBooking")

    model_config = ConfigDict(populate_by_name=True)


class SessionResponse(BaseModel):
    session_id: str = Field(alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class CleanupResult(BaseModel):
    success: bool
    message: str
    deleted_count: int = Field(alias="deletedCount")
    original_count: int = Field(alias="originalCount")
    active_count: int = Field(alias="activeCount")
    server_time: datetime = Field(alias="serverTime")
    local_time: datetime = Field(alias="localTime")
    timezone: str

    model_config = ConfigDict(populate_by_name=True)


class CronCleanupResponse(BaseModel):
    success: bool
    message: str
    cleanup_result: CleanupResult = Field(alias="cleanupResult")
    timestamp: datetime

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
