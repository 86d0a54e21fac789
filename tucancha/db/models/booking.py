import datetime as dt
import uuid
from enum import Enum

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    Uuid,
    case,
    event,
    func,
    literal_column,
    text,
)
from sqlalchemy.dialects.postgresql import ExcludeConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tucancha.db.base import Base


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    ACTIVE = "ACTIVE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    REFUNDED = "REFUNDED"


ACTIVE_SLOT_PREDICATE = text("status <> 'CANCELLED'")
MIDNIGHT = literal_column("time '00:00'", Time)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one live booking may start at a given hour on a court.
        Index(
            "uq_bookings_active_slot",
            "court_id",
            "date",
            "start_time",
            unique=True,
            postgresql_where=ACTIVE_SLOT_PREDICATE,
            sqlite_where=ACTIVE_SLOT_PREDICATE,
        ),
        Index("ix_bookings_court_date", "court_id", "date"),
        CheckConstraint("price > 0", name="ck_bookings_price_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    venue_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    court_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("courts.id", ondelete="RESTRICT"), nullable=False)
    player_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BookingStatus.ACTIVE.value)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    player_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    player_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
    cancelled_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    venue = relationship("Venue")
    court = relationship("Court", back_populates="bookings")
    player = relationship("User", back_populates="bookings")

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def cancel(self) -> None:
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = dt.datetime.now(dt.UTC)


def _slot_range(table):
    """``tsrange`` of a booking; an end of 00:00 is midnight after the booking date."""
    slot_end = case(
        (table.c.end_time == MIDNIGHT, table.c.date + 1 + MIDNIGHT),
        else_=table.c.date + table.c.end_time,
    )
    return func.tsrange(table.c.date + table.c.start_time, slot_end)


# Intersecting intervals with different start hours slip past the unique
# index; on PostgreSQL this constraint rejects them as well.
Booking.__table__.append_constraint(
    ExcludeConstraint(
        (Booking.__table__.c.court_id, "="),
        (_slot_range(Booking.__table__), "&&"),
        name="ex_bookings_no_overlap",
        using="gist",
        where=ACTIVE_SLOT_PREDICATE,
    ).ddl_if(dialect="postgresql")
)
event.listen(
    Booking.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
