import datetime as dt
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tucancha.db.models import DisabledSlot
from tucancha.schemas.disabled_slot import DisabledSlotCreateRequest

logger = logging.getLogger(__name__)


def create_disabled_slot(
    db: Session,
    payload: DisabledSlotCreateRequest,
    created_by: uuid.UUID | None = None,
) -> DisabledSlot | None:
    slot = DisabledSlot(
        venue_id=payload.venue_id,
        court_id=payload.court_id,
        date=payload.date,
        time_slot=payload.time_slot,
        reason=payload.reason,
        created_by=created_by,
    )
    db.add(slot)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "disabled_slot_create_failed court_id=%s date=%s time_slot=%s",
            payload.court_id,
            payload.date,
            payload.time_slot,
        )
        return None
    db.refresh(slot)
    logger.info("disabled_slot_created slot_id=%s court_id=%s", slot.id, slot.court_id)
    return slot


def delete_disabled_slot(db: Session, slot_id: uuid.UUID) -> bool:
    slot = db.get(DisabledSlot, slot_id)
    if slot is None:
        return False
    db.delete(slot)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("disabled_slot_delete_failed slot_id=%s", slot_id)
        return False
    return True


def find_disabled_slots(
    db: Session,
    court_id: uuid.UUID,
    slot_date: dt.date,
    time_slot: dt.time,
) -> list[DisabledSlot]:
    return list(
        db.scalars(
            select(DisabledSlot).where(
                DisabledSlot.court_id == court_id,
                DisabledSlot.date == slot_date,
                DisabledSlot.time_slot == time_slot,
            )
        )
    )


def toggle_slot_availability(
    db: Session,
    payload: DisabledSlotCreateRequest,
    created_by: uuid.UUID | None = None,
) -> tuple[bool, DisabledSlot | None]:
    """Enable the hour if any block exists for it, otherwise block it.

    Returns ``(ok, slot)``: ``slot`` is the new block, or None when the hour
    was enabled. Duplicate blocks for the same hour are all removed.
    """
    existing = find_disabled_slots(db, payload.court_id, payload.date, payload.time_slot)
    if existing:
        for slot in existing:
            db.delete(slot)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("slot_enable_failed court_id=%s date=%s", payload.court_id, payload.date)
            return False, None
        logger.info("slot_enabled court_id=%s date=%s time_slot=%s", payload.court_id, payload.date, payload.time_slot)
        return True, None

    slot = create_disabled_slot(db, payload, created_by=created_by)
    return slot is not None, slot


def list_disabled_slots(
    db: Session,
    venue_id: uuid.UUID,
    slot_date: dt.date,
    court_id: uuid.UUID | None = None,
) -> list[DisabledSlot]:
    query = select(DisabledSlot).where(DisabledSlot.venue_id == venue_id, DisabledSlot.date == slot_date)
    if court_id is not None:
        query = query.where(DisabledSlot.court_id == court_id)
    return list(db.scalars(query.order_by(DisabledSlot.time_slot, DisabledSlot.created_at)))
