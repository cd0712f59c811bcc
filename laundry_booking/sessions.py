import uuid
from typing import Optional

from fastapi import Request, Response

from laundry_booking.config import settings


def new_session_id() -> str:
    return str(uuid.uuid4())


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_MAX_AGE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def ensure_session(request: Request, response: Response) -> str:
    session_id = get_session_id(request)
    if session_id is None:
        session_id = new_session_id()
        set_session_cookie(response, session_id)
    return session_id


def issue_session(response: Response) -> str:
    session_id = new_session_id()
    set_session_cookie(response, session_id)
    return session_id


def can_delete(booking, session_id: Optional[str], is_admin: bool = False) -> bool:
    if is_admin and settings.ADMIN_OVERRIDE_ENABLED:
        return True
    return session_id is not None and booking.session_id == session_id
