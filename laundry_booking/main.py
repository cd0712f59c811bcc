import logging
import os
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Depends, Request, Response, Form, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from laundry_booking import cleanup, crud, models, schemas, database, sessions
from laundry_booking.config import settings
from laundry_booking.errors import (
    BookingError,
    BookingNotFoundError,
    NotOwnerError,
    SessionMissingError,
)
from laundry_booking.timeutils import (
    is_expired,
    minutes_until_expiry,
    now_in_offset,
    parse_civil_date,
    to_instant,
    utcnow,
)
from laundry_booking.validation import BookingCandidate, validate_booking

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.LOG_LEVEL,
)
logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Создаём таблицу при старте
    async with database.engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield
    await database.engine.dispose()


app = FastAPI(title="Laundry Booking", lifespan=lifespan)


# --- Обработка ошибок ---

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": jsonable_errors(exc)},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # Детали только в лог, клиенту общий текст
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Booking storage is unavailable, please try again"},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


# --- Общая логика ---

async def create_booking(db: AsyncSession, candidate: BookingCandidate, session_id: str) -> models.Booking:
    now = utcnow()
    # Перечитываем брони этой машины на эту дату прямо перед проверкой пересечений
    existing = []
    if candidate.machine and candidate.date:
        try:
            day = parse_civil_date(candidate.date)
        except ValueError:
            day = None
        if day is not None:
            existing = await crud.list_bookings(db, machine=candidate.machine.strip(), day=day)

    valid = validate_booking(
        candidate,
        existing,
        now=now,
        offset_hours=settings.TIMEZONE_OFFSET_HOURS,
        machines=settings.MACHINES,
    )

    booking = models.Booking(
        id=models.generate_id(),
        booker_name=valid.booker_name,
        phone=valid.phone,
        machine=valid.machine,
        date=valid.date,
        start_time=valid.start_time,
        end_time=valid.end_time,
        created_at=now,
        session_id=session_id,
    )
    booking = await crud.insert_booking(db, booking)
    logger.info("New booking %s: %s - %s on %s %s-%s", booking.id, booking.booker_name, booking.machine,
                booking.date, booking.start_time, booking.end_time)
    return booking


async def delete_booking(db: AsyncSession, booking_id: str, session_id: Optional[str],
                         is_admin: bool = False) -> models.Booking:
    if session_id is None:
        raise SessionMissingError()

    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise BookingNotFoundError()

    if not sessions.can_delete(booking, session_id, is_admin):
        raise NotOwnerError()

    await crud.delete_bookings(db, [booking.id])
    logger.info("Booking deleted: %s - %s on %s (ID: %s, admin=%s)", booking.booker_name, booking.machine,
                booking.date, booking.id, is_admin)
    return booking


# --- API Endpoints ---

@app.get("/api/auth/session", response_model=schemas.SessionResponse)
async def get_session(request: Request, response: Response):
    return schemas.SessionResponse(session_id=sessions.ensure_session(request, response))


@app.post("/api/auth/session", response_model=schemas.SessionResponse)
async def refresh_session(response: Response):
    return schemas.SessionResponse(session_id=sessions.issue_session(response))


@app.get("/api/machines", response_model=list[str])
async def read_machines():
    return settings.MACHINES


@app.get("/api/bookings", response_model=schemas.BookingListResponse)
async def read_bookings(request: Request, db: AsyncSession = Depends(database.get_db)):
    session_id = sessions.get_session_id(request)
    await cleanup.perform_cleanup(db)
    bookings = await crud.list_bookings(db)
    return schemas.BookingListResponse(
        bookings=[schemas.BookingResponse.from_booking(b, session_id) for b in bookings],
        count=len(bookings),
        session_id=session_id,
    )


@app.post("/api/bookings", response_model=schemas.BookingCreatedResponse,
          status_code=status.HTTP_201_CREATED)
async def create_booking_api(payload: schemas.BookingCreate, request: Request,
                             db: AsyncSession = Depends(database.get_db)):
    session_id = sessions.get_session_id(request)
    if session_id is None:
        raise SessionMissingError()

    booking = await create_booking(db, payload.to_candidate(), session_id)
    return schemas.BookingCreatedResponse(
        message="Booking created",
        booking=schemas.BookingResponse.from_booking(booking, session_id),
    )


@app.delete("/api/bookings/{booking_id}", response_model=schemas.BookingDeletedResponse)
async def delete_booking_api(booking_id: str, request: Request,
                             payload: Optional[schemas.DeleteRequest] = None,
                             db: AsyncSession = Depends(database.get_db)):
    session_id = sessions.get_session_id(request)
    is_admin = payload.is_admin if payload is not None else False
    booking = await delete_booking(db, booking_id, session_id, is_admin)
    return schemas.BookingDeletedResponse(
        message="Booking deleted successfully",
        deleted_booking=schemas.BookingResponse.from_booking(booking, session_id),
    )


@app.post("/api/cleanup", response_model=schemas.CleanupResult)
async def run_cleanup(db: AsyncSession = Depends(database.get_db)):
    logger.info("Starting manual cleanup")
    return await cleanup.perform_cleanup(db)


# GET для внешних планировщиков (cron)
@app.get("/api/cleanup", response_model=schemas.CleanupResult)
async def run_cleanup_get(db: AsyncSession = Depends(database.get_db)):
    logger.info("Starting automatic cleanup")
    return await cleanup.perform_cleanup(db)


@app.api_route("/api/cron/cleanup", methods=["GET", "POST"], response_model=schemas.CronCleanupResponse)
async def cron_cleanup(db: AsyncSession = Depends(database.get_db)):
    result = await cleanup.perform_cleanup(db)
    return schemas.CronCleanupResponse(
        success=True,
        message="Automatic cleanup completed",
        cleanup_result=result,
        timestamp=utcnow(),
    )


@app.get("/api/debug")
async def debug_info(db: AsyncSession = Depends(database.get_db)):
    now = utcnow()
    offset = settings.TIMEZONE_OFFSET_HOURS
    grace = timedelta(minutes=settings.GRACE_MINUTES)
    bookings = await crud.list_bookings(db)

    analysis = []
    for b in bookings:
        analysis.append({
            "id": b.id,
            "booker_name": b.booker_name,
            "machine": b.machine,
            "date": b.date.isoformat(),
            "end_time": b.end_time.strftime("%H:%M"),
            "bookingEndDateTime": to_instant(b.date, b.end_time, offset).isoformat(),
            "expired": is_expired(b.date, b.end_time, offset_hours=offset, grace=grace, now=now),
            "minutesUntilCleanup": minutes_until_expiry(b.date, b.end_time, offset_hours=offset,
                                                        grace=grace, now=now),
        })

    expired_count = sum(1 for a in analysis if a["expired"])
    return {
        "serverInfo": {
            "serverTime": now.isoformat(),
            "localTime": now_in_offset(offset, now).isoformat(),
            "timezone": settings.TIMEZONE_LABEL,
            "offsetHours": offset,
            "graceMinutes": settings.GRACE_MINUTES,
            "environment": settings.ENVIRONMENT,
        },
        "bookingsCount": {
            "total": len(analysis),
            "expired": expired_count,
            "active": len(analysis) - expired_count,
        },
        "bookingAnalysis": analysis,
        "timestamp": now.isoformat(),
    }


# --- Frontend Endpoints (Работа с формами) ---

def redirect_home(error: Optional[str] = None) -> RedirectResponse:
    url = "/" if error is None else "/?" + urlencode({"error": error})
    return RedirectResponse(url=url, status_code=303)


@app.get("/", response_class=HTMLResponse)
async def read_root(request: Request, error: Optional[str] = None,
                    db: AsyncSession = Depends(database.get_db)):
    now = now_in_offset(settings.TIMEZONE_OFFSET_HOURS)
    session_id = sessions.get_session_id(request)

    await cleanup.perform_cleanup(db)
    bookings = await crud.list_bookings(db)

    # Группируем по машинам, в порядке из настроек
    grouped = {machine: [] for machine in settings.MACHINES}
    for b in bookings:
        grouped.setdefault(b.machine, []).append(schemas.BookingResponse.from_booking(b, session_id))

    response = templates.TemplateResponse(request, "index.html", {
        "grouped": grouped,
        "machines": settings.MACHINES,
        "now": now,
        "today": now.date().isoformat(),
        "error": error,
        "count": len(bookings),
        "refresh_interval": settings.REFRESH_INTERVAL_SECONDS,
    })
    if session_id is None:
        sessions.set_session_cookie(response, sessions.new_session_id())
    return response


@app.post("/add")
async def add_booking_form(
    request: Request,
    booker_name: str = Form(""),
    phone: str = Form(""),
    machine: str = Form(""),
    date: str = Form(""),
    start_time: str = Form(""),
    end_time: str = Form(""),
    db: AsyncSession = Depends(database.get_db)
):
    session_id = sessions.get_session_id(request)
    if session_id is None:
        return redirect_home(SessionMissingError.message)

    candidate = BookingCandidate(
        booker_name=booker_name,
        phone=phone,
        machine=machine,
        date=date,
        start_time=start_time,
        end_time=end_time,
    )
    try:
        await create_booking(db, candidate, session_id)
    except BookingError as exc:
        return redirect_home(exc.message)
    return redirect_home()


@app.post("/delete/{booking_id}")
async def delete_booking_form(booking_id: str, request: Request, db: AsyncSession = Depends(database.get_db)):
    try:
        await delete_booking(db, booking_id, sessions.get_session_id(request))
    except BookingError as exc:
        return redirect_home(exc.message)
    return redirect_home()


# --- Админка ---

def redirect_admin(**params) -> RedirectResponse:
    query = {k: v for k, v in params.items() if v is not None}
    url = "/admin" if not query else "/admin?" + urlencode(query)
    return RedirectResponse(url=url, status_code=303)


@app.get("/admin", response_class=HTMLResponse)
async def read_admin(request: Request, error: Optional[str] = None, message: Optional[str] = None,
                     db: AsyncSession = Depends(database.get_db)):
    # Без автоочистки: администратор видит и истёкшие брони
    session_id = sessions.get_session_id(request)
    bookings = await crud.list_bookings(db)

    response = templates.TemplateResponse(request, "admin.html", {
        "bookings": bookings,
        "count": len(bookings),
        "now": now_in_offset(settings.TIMEZONE_OFFSET_HOURS),
        "error": error,
        "message": message,
    })
    if session_id is None:
        sessions.set_session_cookie(response, sessions.new_session_id())
    return response


@app.post("/admin/delete/{booking_id}")
async def admin_delete_form(booking_id: str, request: Request, db: AsyncSession = Depends(database.get_db)):
    try:
        await delete_booking(db, booking_id, sessions.get_session_id(request), is_admin=True)
    except BookingError as exc:
        return redirect_admin(error=exc.message)
    return redirect_admin(message="Booking deleted successfully")


@app.post("/admin/cleanup")
async def admin_cleanup_form(db: AsyncSession = Depends(database.get_db)):
    logger.info("Starting manual cleanup from admin page")
    result = await cleanup.perform_cleanup(db)
    return redirect_admin(message=result.message)


if __name__ == "__main__":
    import uvicorn

    print("\n" + "=" * 50)
    print("🧺 Laundry Booking запущен!")
    print("👉 Локальная ссылка: http://127.0.0.1:8000")
    print("=" * 50 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=8000)
