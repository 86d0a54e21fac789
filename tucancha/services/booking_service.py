"""Booking validation, overlap detection and persistence.

A booking request flows through three synchronous steps:

1. ``validate_booking_input`` checks the payload shape (identifiers, date,
   exact-hour start, positive price).
2. ``find_overlapping_booking`` looks for a live booking on the same court and
   date whose ``[start, end)`` interval intersects the requested one.
3. ``create_booking`` inserts the row. Two requests can both pass step 2, so
   the partial unique index ``uq_bookings_active_slot`` is what finally keeps
   a slot single-booked; its violation is reported exactly like an overlap.

Every step reports failures through ``BookingResult`` instead of raising.
"""

import datetime as dt
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tucancha.core.metrics import BOOKING_ATTEMPTS
from tucancha.db.models import Booking, BookingStatus, PaymentStatus
from tucancha.schemas.booking import BookingCreateRequest, BookingRescheduleRequest, first_error_message
from tucancha.services.notification_service import NotificationDispatcher
from tucancha.utils.time_slots import default_end_time, end_minutes, intervals_overlap, start_minutes, weekly_dates

logger = logging.getLogger(__name__)

SLOT_OCCUPIED = "HORARIO_OCUPADO"
STORAGE_ERROR_MESSAGE = "No se pudo procesar la reserva. Intentá nuevamente."
BOOKING_NOT_FOUND_MESSAGE = "Reserva no encontrada"
BOOKING_CANCELLED_MESSAGE = "La reserva está cancelada y no puede modificarse"
BOOKING_LOCKED_MESSAGE = "La reserva ya está confirmada o finalizada y no puede modificarse"
RECURRING_NOTES = "Reserva Recurrente"

LOCKED_STATUSES = frozenset({BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value})

# unique_violation, exclusion_violation
PG_SLOT_CONFLICT_SQLSTATES = {"23505", "23P01"}


class BookingErrorKind(str, Enum):
    VALIDATION = "validation"
    SLOT_OCCUPIED = "slot_occupied"
    NOT_FOUND = "not_found"
    STORAGE = "storage"


@dataclass(frozen=True)
class BookingResult:
    success: bool
    data: Booking | None = None
    error: str | None = None
    kind: BookingErrorKind | None = None

    @classmethod
    def ok(cls, booking: Booking) -> "BookingResult":
        return cls(success=True, data=booking)

    @classmethod
    def fail(cls, kind: BookingErrorKind, error: str) -> "BookingResult":
        return cls(success=False, error=error, kind=kind)

    @classmethod
    def occupied(cls) -> "BookingResult":
        return cls.fail(BookingErrorKind.SLOT_OCCUPIED, SLOT_OCCUPIED)


@dataclass
class RecurringBookingSummary:
    created: list[Booking] = field(default_factory=list)
    failed: dict[dt.date, BookingErrorKind] = field(default_factory=dict)

    @property
    def success(self) -> int:
        return len(self.created)

    @property
    def failures(self) -> int:
        return len(self.failed)


def validate_booking_input(data: BookingCreateRequest | Mapping[str, Any]) -> BookingCreateRequest | str:
    """Return the parsed request, or the first validation message."""
    if isinstance(data, BookingCreateRequest):
        return data
    try:
        return BookingCreateRequest.model_validate(dict(data))
    except ValidationError as exc:
        return first_error_message(exc)


def find_overlapping_booking(
    db: Session,
    court_id: uuid.UUID,
    booking_date: dt.date,
    start_time: dt.time,
    end_time: dt.time | None = None,
    exclude_booking_id: uuid.UUID | None = None,
) -> Booking | None:
    end_time = end_time or default_end_time(start_time)
    query = select(Booking).where(
        Booking.court_id == court_id,
        Booking.date == booking_date,
        Booking.status != BookingStatus.CANCELLED.value,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    wanted_start, wanted_end = start_minutes(start_time), end_minutes(end_time)
    for existing in db.scalars(query):
        if intervals_overlap(
            wanted_start,
            wanted_end,
            start_minutes(existing.start_time),
            end_minutes(existing.end_time),
        ):
            return existing
    return None


def is_slot_conflict(exc: IntegrityError) -> bool:
    original_error = getattr(exc, "orig", None)
    sqlstate = getattr(original_error, "sqlstate", None) or getattr(original_error, "pgcode", None)
    if sqlstate is not None:
        return sqlstate in PG_SLOT_CONFLICT_SQLSTATES
    # SQLite reports neither; match its message instead.
    return "UNIQUE constraint failed" in str(original_error)


def _notify(dispatcher: NotificationDispatcher | None, event: str, booking: Booking) -> None:
    if dispatcher is None:
        return
    try:
        getattr(dispatcher, event)(booking)
    except Exception:
        logger.exception("notification_dispatch_failed event=%s booking_id=%s", event, booking.id)


def _commit_booking(db: Session, booking: Booking, action: str) -> BookingResult:
    court_id, booking_date, start_time = booking.court_id, booking.date, booking.start_time
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_slot_conflict(exc):
            BOOKING_ATTEMPTS.labels(outcome="race_conflict").inc()
            logger.info(
                "booking_rejected action=%s reason=unique_violation court_id=%s date=%s start=%s",
                action,
                court_id,
                booking_date,
                start_time,
            )
            return BookingResult.occupied()
        BOOKING_ATTEMPTS.labels(outcome="storage_error").inc()
        logger.exception("booking_integrity_error action=%s court_id=%s", action, court_id)
        return BookingResult.fail(BookingErrorKind.STORAGE, STORAGE_ERROR_MESSAGE)
    except SQLAlchemyError:
        db.rollback()
        BOOKING_ATTEMPTS.labels(outcome="storage_error").inc()
        logger.exception("booking_storage_error action=%s court_id=%s", action, court_id)
        return BookingResult.fail(BookingErrorKind.STORAGE, STORAGE_ERROR_MESSAGE)

    db.refresh(booking)
    return BookingResult.ok(booking)


def create_booking(
    db: Session,
    data: BookingCreateRequest | Mapping[str, Any],
    dispatcher: NotificationDispatcher | None = None,
) -> BookingResult:
    candidate = validate_booking_input(data)
    if isinstance(candidate, str):
        BOOKING_ATTEMPTS.labels(outcome="invalid").inc()
        return BookingResult.fail(BookingErrorKind.VALIDATION, candidate)

    end_time = candidate.end_time or default_end_time(candidate.start_time)
    try:
        conflict = find_overlapping_booking(
            db,
            court_id=candidate.court_id,
            booking_date=candidate.date,
            start_time=candidate.start_time,
            end_time=end_time,
        )
    except SQLAlchemyError:
        db.rollback()
        BOOKING_ATTEMPTS.labels(outcome="storage_error").inc()
        logger.exception("booking_overlap_check_failed court_id=%s", candidate.court_id)
        return BookingResult.fail(BookingErrorKind.STORAGE, STORAGE_ERROR_MESSAGE)

    if conflict is not None:
        BOOKING_ATTEMPTS.labels(outcome="overlap").inc()
        logger.info(
            "booking_rejected reason=overlap court_id=%s date=%s start=%s existing_id=%s",
            candidate.court_id,
            candidate.date,
            candidate.start_time,
            conflict.id,
        )
        return BookingResult.occupied()

    booking = Booking(
        venue_id=candidate.venue_id,
        court_id=candidate.court_id,
        player_id=candidate.player_id,
        date=candidate.date,
        start_time=candidate.start_time,
        end_time=end_time,
        price=candidate.price,
        status=(candidate.status or BookingStatus.ACTIVE).value,
        payment_status=(candidate.payment_status or PaymentStatus.PENDING).value,
        player_name=candidate.player_name,
        player_phone=candidate.player_phone,
        notes=candidate.notes,
    )
    db.add(booking)
    result = _commit_booking(db, booking, action="create")
    if not result.success:
        return result

    BOOKING_ATTEMPTS.labels(outcome="created").inc()
    logger.info(
        "booking_created booking_id=%s court_id=%s date=%s start=%s end=%s",
        booking.id,
        booking.court_id,
        booking.date,
        booking.start_time,
        booking.end_time,
    )
    _notify(dispatcher, "booking_created", booking)
    return result


def reschedule_booking(
    db: Session,
    booking_id: uuid.UUID,
    data: BookingRescheduleRequest | Mapping[str, Any],
) -> BookingResult:
    """Move a live booking to another interval on the same court.

    The booking's own row is excluded from the overlap check, so shifting
    within or across its previous interval only collides with other bookings.
    """
    if isinstance(data, BookingRescheduleRequest):
        request = data
    else:
        try:
            request = BookingRescheduleRequest.model_validate(dict(data))
        except ValidationError as exc:
            return BookingResult.fail(BookingErrorKind.VALIDATION, first_error_message(exc))

    booking = db.get(Booking, booking_id)
    if booking is None:
        return BookingResult.fail(BookingErrorKind.NOT_FOUND, BOOKING_NOT_FOUND_MESSAGE)
    if booking.is_cancelled:
        return BookingResult.fail(BookingErrorKind.VALIDATION, BOOKING_CANCELLED_MESSAGE)
    if booking.status in LOCKED_STATUSES:
        return BookingResult.fail(BookingErrorKind.VALIDATION, BOOKING_LOCKED_MESSAGE)

    end_time = request.end_time or default_end_time(request.start_time)
    try:
        conflict = find_overlapping_booking(
            db,
            court_id=booking.court_id,
            booking_date=request.date,
            start_time=request.start_time,
            end_time=end_time,
            exclude_booking_id=booking.id,
        )
    except SQLAlchemyError:
        db.rollback()
        BOOKING_ATTEMPTS.labels(outcome="storage_error").inc()
        logger.exception("booking_overlap_check_failed action=reschedule booking_id=%s", booking_id)
        return BookingResult.fail(BookingErrorKind.STORAGE, STORAGE_ERROR_MESSAGE)

    if conflict is not None:
        BOOKING_ATTEMPTS.labels(outcome="overlap").inc()
        return BookingResult.occupied()

    booking.date = request.date
    booking.start_time = request.start_time
    booking.end_time = end_time
    result = _commit_booking(db, booking, action="reschedule")
    if result.success:
        logger.info(
            "booking_rescheduled booking_id=%s date=%s start=%s",
            booking.id,
            booking.date,
            booking.start_time,
        )
    return result


def create_recurring_bookings(
    db: Session,
    template: Mapping[str, Any],
    start_date: dt.date,
    end_date: dt.date,
    day_of_week: int,
    dispatcher: NotificationDispatcher | None = None,
) -> RecurringBookingSummary:
    """Book the same slot on every ``day_of_week`` (0 = Sunday) of the range.

    Each date goes through ``create_booking`` on its own, so an occupied date
    only counts as a failure and does not stop the rest of the series.
    """
    summary = RecurringBookingSummary()
    for booking_date in weekly_dates(start_date, end_date, day_of_week):
        data = {**template, "date": booking_date, "notes": template.get("notes") or RECURRING_NOTES}
        result = create_booking(db, data, dispatcher=dispatcher)
        if result.success:
            summary.created.append(result.data)
        else:
            summary.failed[booking_date] = result.kind
            logger.info("recurring_booking_skipped date=%s reason=%s", booking_date, result.kind.value)

    logger.info(
        "recurring_bookings_processed court_id=%s created=%s failed=%s",
        template.get("court_id"),
        summary.success,
        summary.failures,
    )
    return summary


def cancel_booking(
    db: Session,
    booking_id: uuid.UUID,
    dispatcher: NotificationDispatcher | None = None,
) -> BookingResult:
    booking = db.scalar(select(Booking).where(Booking.id == booking_id).with_for_update())
    if booking is None:
        return BookingResult.fail(BookingErrorKind.NOT_FOUND, BOOKING_NOT_FOUND_MESSAGE)
    if booking.is_cancelled:
        return BookingResult.ok(booking)

    booking.cancel()
    result = _commit_booking(db, booking, action="cancel")
    if result.success:
        logger.info("booking_cancelled booking_id=%s", booking.id)
        _notify(dispatcher, "booking_cancelled", booking)
    return result


def list_court_bookings(db: Session, court_id: uuid.UUID, booking_date: dt.date) -> list[Booking]:
    return list(
        db.scalars(
            select(Booking)
            .where(
                Booking.court_id == court_id,
                Booking.date == booking_date,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            .order_by(Booking.start_time)
        )
    )
