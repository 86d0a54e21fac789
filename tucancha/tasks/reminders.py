import logging
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from tucancha.core.config import settings
from tucancha.db.models import Booking, BookingNotification, BookingStatus, DeliveryStatus, NotificationChannel
from tucancha.db.session import SessionLocal
from tucancha.services.notification_service import EmailSender, render_email
from tucancha.tasks.celery_app import celery_app
from tucancha.utils.time_slots import format_hhmm

logger = logging.getLogger(__name__)

REMINDABLE_STATUSES = (BookingStatus.ACTIVE.value, BookingStatus.CONFIRMED.value)


def _local_now(now: datetime | None) -> datetime:
    tz = ZoneInfo(settings.app_timezone)
    return (now or datetime.now(tz)).astimezone(tz)


def reminder_day_label(booking_date: date, today: date) -> str:
    if booking_date == today:
        return "hoy"
    if booking_date == today + timedelta(days=1):
        return "mañana"
    return f"el {booking_date:%d/%m}"


def find_bookings_to_remind(db: Session, now: datetime | None = None) -> list[Booking]:
    """Live bookings starting inside the reminder window that got no reminder yet."""
    tz = ZoneInfo(settings.app_timezone)
    current_time = _local_now(now)
    window_start = current_time + timedelta(hours=settings.reminder_lead_hours)
    window_end = window_start + timedelta(minutes=settings.reminder_window_minutes)

    already_reminded = select(BookingNotification.booking_id).where(
        BookingNotification.notification_type == NotificationChannel.EMAIL.value
    )
    candidates = db.scalars(
        select(Booking)
        .where(
            Booking.status.in_(REMINDABLE_STATUSES),
            Booking.date.in_(sorted({window_start.date(), window_end.date()})),
            Booking.id.not_in(already_reminded),
        )
        .order_by(Booking.date, Booking.start_time)
    ).all()

    return [
        booking
        for booking in candidates
        if window_start <= datetime.combine(booking.date, booking.start_time, tzinfo=tz) < window_end
    ]


def _record(db: Session, booking: Booking, status: DeliveryStatus, error: str | None = None) -> None:
    db.add(
        BookingNotification(
            booking_id=booking.id,
            notification_type=NotificationChannel.EMAIL.value,
            status=status.value,
            error_message=error,
        )
    )
    db.commit()


def send_booking_reminders(
    db: Session,
    now: datetime | None = None,
    email_sender: EmailSender | None = None,
) -> dict[str, int]:
    sender = email_sender or EmailSender()
    current_time = _local_now(now)
    today = current_time.date()
    bookings = find_bookings_to_remind(db, now=current_time)
    sent = 0
    failed = 0

    for booking in bookings:
        player = booking.player
        if player is None or not player.email:
            logger.warning("reminder_skipped_no_email booking_id=%s", booking.id)
            continue

        start = format_hhmm(booking.start_time)
        day_label = reminder_day_label(booking.date, today)
        html = render_email(
            "booking_reminder.html",
            player_name=booking.player_name or player.full_name,
            venue_name=booking.venue.name,
            venue_address=booking.venue.address,
            court_name=booking.court.name,
            booking_date=booking.date.strftime("%d/%m/%Y"),
            start_time=start,
            end_time=format_hhmm(booking.end_time),
            price=f"{booking.price:,}".replace(",", "."),
            day_label=day_label,
        )
        if sender.send(player.email, f"Recordatorio: tu reserva es {day_label} a las {start}", html):
            _record(db, booking, DeliveryStatus.SENT)
            sent += 1
        else:
            _record(db, booking, DeliveryStatus.FAILED, error="email delivery failed")
            failed += 1

    logger.info("reminders_processed sent=%s failed=%s total=%s", sent, failed, len(bookings))
    return {"sent": sent, "failed": failed, "total": len(bookings)}


@celery_app.task(name="bookings.send_reminders")
def send_booking_reminders_task() -> dict[str, int]:
    db = SessionLocal()
    try:
        return send_booking_reminders(db=db)
    finally:
        db.close()
