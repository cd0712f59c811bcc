from typing import Optional

from fastapi import status


class BookingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid booking request"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingFieldsError(BookingError):
    message = "Missing fields: please fill in all booking details"


class InvalidPhoneError(BookingError):
    message = "Invalid phone number (e.g. 08X-XXX-XXXX or 02-XXX-XXXX)"


class UnknownMachineError(BookingError):
    message = "Unknown machine"


class InvalidDateTimeError(BookingError):
    message = "Invalid date or time format"


class TimeOrderError(BookingError):
    message = "End time must be after start time"


class PastBookingError(BookingError):
    message = "Cannot book in the past, please choose a future time"


class BookingConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    message = "This time slot conflicts with an existing booking"


class SessionMissingError(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "No session found, please refresh the page"


class NotOwnerError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "You can only delete your own bookings"


class BookingNotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Booking not found"
