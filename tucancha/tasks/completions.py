from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from tucancha.core.config import settings
from tucancha.db.models import Booking, BookingStatus
from tucancha.db.session import SessionLocal
from tucancha.tasks.celery_app import celery_app
from tucancha.utils.time_slots import slot_end_datetime


def complete_finished_bookings(db: Session, now: datetime | None = None) -> int:
    """Mark ACTIVE bookings whose end has passed as COMPLETED."""
    tz = ZoneInfo(settings.app_timezone)
    current_time = (now or datetime.now(tz)).astimezone(tz)

    candidates = db.scalars(
        select(Booking).where(
            Booking.status == BookingStatus.ACTIVE.value,
            Booking.date <= current_time.date(),
        )
    ).all()

    finished = [
        booking
        for booking in candidates
        if slot_end_datetime(booking.date, booking.end_time, tz) <= current_time
    ]
    for booking in finished:
        booking.status = BookingStatus.COMPLETED.value

    if finished:
        db.commit()
    return len(finished)


@celery_app.task(name="bookings.complete_finished")
def complete_finished_bookings_task() -> dict[str, int]:
    db = SessionLocal()
    try:
        return {"completed": complete_finished_bookings(db=db)}
    finally:
        db.close()
