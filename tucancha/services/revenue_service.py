"""Per-venue revenue and platform commission.

Cancelled bookings are left out. The platform charges a flat amount per
booked hour, prorated by minutes; a booking without a positive duration is
charged as one hour.
"""

import datetime as dt
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from tucancha.core.config import settings
from tucancha.db.models import Booking, BookingStatus, Venue
from tucancha.utils.time_slots import SLOT_MINUTES, slot_duration_minutes

logger = logging.getLogger(__name__)


@dataclass
class VenueRevenue:
    venue_id: uuid.UUID
    venue_name: str
    owner_id: uuid.UUID
    is_active: bool
    total_revenue: int = 0
    total_bookings: int = 0
    platform_commission: int = 0
    revenue_by_court: dict[uuid.UUID, int] = field(default_factory=dict)


def booking_commission(start_time: dt.time, end_time: dt.time, per_hour: int | None = None) -> int:
    per_hour = settings.platform_commission_per_hour if per_hour is None else per_hour
    minutes = slot_duration_minutes(start_time, end_time)
    if minutes <= 0:
        minutes = SLOT_MINUTES
    return minutes * per_hour // 60


def venue_revenue_summaries(
    db: Session,
    owner_id: uuid.UUID | None = None,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
) -> list[VenueRevenue]:
    venue_query = select(Venue).options(selectinload(Venue.courts)).order_by(Venue.name)
    if owner_id is not None:
        venue_query = venue_query.where(Venue.owner_id == owner_id)
    venues = db.scalars(venue_query).all()
    if not venues:
        return []

    booking_query = select(Booking).where(
        Booking.venue_id.in_([venue.id for venue in venues]),
        Booking.status != BookingStatus.CANCELLED.value,
    )
    if date_from:
        booking_query = booking_query.where(Booking.date >= date_from)
    if date_to:
        booking_query = booking_query.where(Booking.date <= date_to)

    bookings_by_venue: dict[uuid.UUID, list[Booking]] = defaultdict(list)
    for booking in db.scalars(booking_query):
        bookings_by_venue[booking.venue_id].append(booking)

    summaries = []
    for venue in venues:
        summary = VenueRevenue(
            venue_id=venue.id,
            venue_name=venue.name,
            owner_id=venue.owner_id,
            is_active=venue.is_active,
            revenue_by_court={court.id: 0 for court in venue.courts},
        )
        for booking in bookings_by_venue[venue.id]:
            summary.total_revenue += booking.price
            summary.total_bookings += 1
            summary.platform_commission += booking_commission(booking.start_time, booking.end_time)
            court_total = summary.revenue_by_court.get(booking.court_id, 0)
            summary.revenue_by_court[booking.court_id] = court_total + booking.price
        summaries.append(summary)

    logger.info("revenue_summary_built venues=%s owner_id=%s", len(summaries), owner_id)
    return summaries
