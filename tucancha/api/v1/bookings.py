import datetime as dt
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from tucancha.api.deps import (
    get_court_in_venue,
    get_current_user,
    get_notification_dispatcher,
    get_owned_venue,
    get_venue_or_404,
    is_admin,
    require_roles,
)
from tucancha.api.pagination import LimitParam, OffsetParam, paginate
from tucancha.core.config import settings
from tucancha.core.exceptions import AppError
from tucancha.core.rate_limiter import enforce_rate_limit
from tucancha.db.models import Booking, BookingStatus, User, UserRole, Venue
from tucancha.db.session import get_db
from tucancha.schemas.booking import (
    BookingCreateRequest,
    BookingRescheduleRequest,
    BookingResponse,
    OwnerBookingResponse,
    RecurringBookingRequest,
    RecurringBookingResponse,
)
from tucancha.services import booking_service
from tucancha.services.booking_service import BookingErrorKind, BookingResult
from tucancha.services.notification_service import NotificationDispatcher

router = APIRouter(prefix="/bookings", tags=["bookings"])

SLOT_OCCUPIED_MESSAGE = "El horario seleccionado ya está reservado"
NO_RECURRING_BOOKINGS_MESSAGE = "No se pudo crear ninguna reserva. Verificá si los horarios están disponibles."


def _unwrap(result: BookingResult) -> Booking:
    if result.success:
        return result.data
    if result.kind is BookingErrorKind.SLOT_OCCUPIED:
        raise AppError(status.HTTP_409_CONFLICT, booking_service.SLOT_OCCUPIED, SLOT_OCCUPIED_MESSAGE)
    if result.kind is BookingErrorKind.NOT_FOUND:
        raise AppError(status.HTTP_404_NOT_FOUND, "booking_not_found", result.error)
    if result.kind is BookingErrorKind.VALIDATION:
        raise AppError(status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", result.error)
    raise AppError(status.HTTP_503_SERVICE_UNAVAILABLE, "storage_error", result.error)


def _get_accessible_booking(db: Session, booking_id: uuid.UUID, user: User) -> Booking:
    booking = db.scalar(select(Booking).options(joinedload(Booking.venue)).where(Booking.id == booking_id))
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if not (is_admin(user) or booking.player_id == user.id or booking.venue.owner_id == user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return booking


def _owner_view(booking: Booking) -> OwnerBookingResponse:
    base = BookingResponse.model_validate(booking).model_dump()
    return OwnerBookingResponse(
        **base,
        venue_name=booking.venue.name,
        court_name=booking.court.name,
        court_type=booking.court.type,
        player_display_name=booking.player_name or booking.player.full_name,
    )


def _ensure_bookable(db: Session, venue: Venue, court_id: uuid.UUID, player_id: uuid.UUID) -> None:
    if not venue.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")
    court = get_court_in_venue(db, venue.id, court_id)
    if not court.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")
    if db.get(User, player_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not found")


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateRequest,
    request: Request,
    current_user: User = Depends(require_roles(UserRole.PLAYER, UserRole.OWNER, UserRole.ADMIN)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: Session = Depends(get_db),
) -> BookingResponse:
    enforce_rate_limit(
        "booking_create",
        request,
        limit=settings.booking_create_max_attempts,
        window_seconds=settings.booking_rate_limit_window_seconds,
    )
    if current_user.role == UserRole.PLAYER.value:
        if payload.player_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Players can only book for themselves")
        venue = get_venue_or_404(db, payload.venue_id)
    else:
        venue = get_owned_venue(db, payload.venue_id, current_user)
    _ensure_bookable(db, venue, payload.court_id, payload.player_id)

    booking = _unwrap(booking_service.create_booking(db, payload, dispatcher=dispatcher))
    return BookingResponse.model_validate(booking)


@router.post("/recurring", response_model=RecurringBookingResponse, status_code=status.HTTP_201_CREATED)
def create_recurring_bookings(
    payload: RecurringBookingRequest,
    request: Request,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: Session = Depends(get_db),
) -> RecurringBookingResponse:
    enforce_rate_limit(
        "booking_create",
        request,
        limit=settings.booking_create_max_attempts,
        window_seconds=settings.booking_rate_limit_window_seconds,
    )
    venue = get_owned_venue(db, payload.venue_id, current_user)
    _ensure_bookable(db, venue, payload.court_id, payload.player_id)

    summary = booking_service.create_recurring_bookings(
        db,
        payload.template(),
        start_date=payload.start_date,
        end_date=payload.end_date,
        day_of_week=payload.day_of_week,
        dispatcher=dispatcher,
    )
    if not summary.created:
        if BookingErrorKind.STORAGE in summary.failed.values():
            raise AppError(
                status.HTTP_503_SERVICE_UNAVAILABLE, "storage_error", booking_service.STORAGE_ERROR_MESSAGE
            )
        raise AppError(status.HTTP_409_CONFLICT, booking_service.SLOT_OCCUPIED, NO_RECURRING_BOOKINGS_MESSAGE)

    return RecurringBookingResponse(
        success=summary.success,
        failures=summary.failures,
        failed_dates=sorted(summary.failed),
        bookings=[BookingResponse.model_validate(booking) for booking in summary.created],
    )


@router.get("/me", response_model=list[BookingResponse], status_code=status.HTTP_200_OK)
def list_my_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    date_from: dt.date | None = Query(default=None),
    date_to: dt.date | None = Query(default=None),
    limit: LimitParam = 20,
    offset: OffsetParam = 0,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[BookingResponse]:
    query = select(Booking).where(Booking.player_id == current_user.id)
    if status_filter:
        query = query.where(Booking.status == status_filter.value)
    if date_from:
        query = query.where(Booking.date >= date_from)
    if date_to:
        query = query.where(Booking.date <= date_to)

    query = query.order_by(Booking.date.desc(), Booking.start_time.desc())
    bookings = db.scalars(paginate(query, limit, offset)).all()
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.get("/owner", response_model=list[OwnerBookingResponse], status_code=status.HTTP_200_OK)
def list_owner_bookings(
    venue_id: uuid.UUID | None = Query(default=None),
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    date_from: dt.date | None = Query(default=None),
    date_to: dt.date | None = Query(default=None),
    limit: LimitParam = 20,
    offset: OffsetParam = 0,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> list[OwnerBookingResponse]:
    query = (
        select(Booking)
        .join(Venue, Booking.venue_id == Venue.id)
        .options(joinedload(Booking.venue), joinedload(Booking.court), joinedload(Booking.player))
    )
    if not is_admin(current_user):
        query = query.where(Venue.owner_id == current_user.id)
    if venue_id:
        query = query.where(Booking.venue_id == venue_id)
    if status_filter:
        query = query.where(Booking.status == status_filter.value)
    if date_from:
        query = query.where(Booking.date >= date_from)
    if date_to:
        query = query.where(Booking.date <= date_to)

    query = query.order_by(Booking.date, Booking.start_time)
    bookings = db.scalars(paginate(query, limit, offset)).unique().all()
    return [_owner_view(booking) for booking in bookings]


@router.get("/{booking_id}", response_model=BookingResponse, status_code=status.HTTP_200_OK)
def get_booking_by_id(
    booking_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookingResponse:
    booking = _get_accessible_booking(db, booking_id, current_user)
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/cancel", response_model=BookingResponse, status_code=status.HTTP_200_OK)
def cancel_booking(
    booking_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: Session = Depends(get_db),
) -> BookingResponse:
    _get_accessible_booking(db, booking_id, current_user)
    booking = _unwrap(booking_service.cancel_booking(db, booking_id, dispatcher=dispatcher))
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/reschedule", response_model=BookingResponse, status_code=status.HTTP_200_OK)
def reschedule_existing_booking(
    booking_id: uuid.UUID,
    payload: BookingRescheduleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookingResponse:
    _get_accessible_booking(db, booking_id, current_user)
    booking = _unwrap(booking_service.reschedule_booking(db, booking_id, payload))
    return BookingResponse.model_validate(booking)
