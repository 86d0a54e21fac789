import datetime as dt
import uuid
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

from tucancha.schemas.booking import BookingDate, booking_error, coerce_time
from tucancha.schemas.types import HourMinute

TIME_SLOT_NOT_ON_HOUR = "Los bloqueos solo se permiten en horas exactas (ej: 14:00, 15:00)"


def coerce_time_slot(value: Any) -> dt.time:
    parsed = coerce_time(value)
    if parsed.minute or parsed.second or parsed.microsecond:
        raise booking_error(TIME_SLOT_NOT_ON_HOUR)
    return parsed


BlockedHour = Annotated[HourMinute, BeforeValidator(coerce_time_slot)]


class DisabledSlotCreateRequest(BaseModel):
    venue_id: uuid.UUID
    court_id: uuid.UUID
    date: BookingDate
    time_slot: BlockedHour
    reason: str | None = Field(default=None, max_length=255)


class DisabledSlotResponse(BaseModel):
    id: uuid.UUID
    venue_id: uuid.UUID
    court_id: uuid.UUID
    date: dt.date
    time_slot: HourMinute
    reason: str | None
    created_by: uuid.UUID | None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class SlotToggleResponse(BaseModel):
    disabled: bool
    slot: DisabledSlotResponse | None = None
