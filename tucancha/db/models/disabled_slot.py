import datetime as dt
import uuid

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Time, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tucancha.db.base import Base


class DisabledSlot(Base):
    __tablename__ = "disabled_slots"
    __table_args__ = (Index("ix_disabled_slots_venue_date", "venue_id", "date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    venue_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    court_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[dt.time] = mapped_column(Time, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    court = relationship("Court")
