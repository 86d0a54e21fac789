import logging
import uuid

from sqlalchemy.orm import Session

from tucancha.db.models import Booking
from tucancha.db.session import SessionLocal
from tucancha.services.notification_service import EmailSender, PushNotifier, render_email
from tucancha.tasks.celery_app import celery_app
from tucancha.utils.time_slots import format_hhmm

logger = logging.getLogger(__name__)


class CeleryNotificationDispatcher:
    """Enqueues owner notifications without waiting for delivery."""

    def booking_created(self, booking: Booking) -> None:
        notify_booking_created_task.apply_async(args=[str(booking.id)], retry=False)

    def booking_cancelled(self, booking: Booking) -> None:
        notify_booking_cancelled_task.apply_async(args=[str(booking.id)], retry=False)


def _player_display_name(booking: Booking) -> str:
    if booking.player_name:
        return booking.player_name
    if booking.player is not None:
        return booking.player.full_name
    return "Un usuario"


def notify_booking_created(
    db: Session,
    booking_id: uuid.UUID,
    email_sender: EmailSender | None = None,
) -> dict[str, int]:
    booking = db.get(Booking, booking_id)
    if booking is None:
        logger.warning("notification_booking_missing booking_id=%s", booking_id)
        return {"push_sent": 0, "push_failed": 0, "email_sent": 0}

    venue = booking.venue
    owner = venue.owner
    player_name = _player_display_name(booking)
    start, end = format_hhmm(booking.start_time), format_hhmm(booking.end_time)

    push = PushNotifier(db).send_to_user(
        owner.id,
        title="Nueva reserva",
        body=f"{player_name} reservó {booking.court.name} en {venue.name} el {booking.date} a las {start}hs",
        url="/dashboard",
        data={"bookingId": str(booking.id), "type": "BOOKING"},
    )

    html = render_email(
        "owner_new_booking.html",
        owner_name=owner.full_name,
        player_name=player_name,
        venue_name=venue.name,
        court_name=booking.court.name,
        booking_date=booking.date.strftime("%d/%m/%Y"),
        start_time=start,
        end_time=end,
        price=f"{booking.price:,}".replace(",", "."),
    )
    sender = email_sender or EmailSender()
    email_sent = sender.send(owner.email, f"Nueva reserva en {venue.name}", html)

    return {
        "push_sent": push["sent"],
        "push_failed": push["failed"] + push["expired"],
        "email_sent": int(email_sent),
    }


def notify_booking_cancelled(db: Session, booking_id: uuid.UUID) -> dict[str, int]:
    booking = db.get(Booking, booking_id)
    if booking is None:
        logger.warning("notification_booking_missing booking_id=%s", booking_id)
        return {"push_sent": 0, "push_failed": 0}

    venue = booking.venue
    push = PushNotifier(db).send_to_user(
        venue.owner_id,
        title="Reserva cancelada",
        body=(
            f"{_player_display_name(booking)} canceló su reserva en {venue.name} "
            f"para el {booking.date} a las {format_hhmm(booking.start_time)}hs"
        ),
        url="/dashboard",
        data={"bookingId": str(booking.id), "type": "CANCELLATION"},
    )
    return {"push_sent": push["sent"], "push_failed": push["failed"] + push["expired"]}


@celery_app.task(name="notifications.booking_created")
def notify_booking_created_task(booking_id: str) -> dict[str, int]:
    db = SessionLocal()
    try:
        return notify_booking_created(db=db, booking_id=uuid.UUID(booking_id))
    finally:
        db.close()


@celery_app.task(name="notifications.booking_cancelled")
def notify_booking_cancelled_task(booking_id: str) -> dict[str, int]:
    db = SessionLocal()
    try:
        return notify_booking_cancelled(db=db, booking_id=uuid.UUID(booking_id))
    finally:
        db.close()
