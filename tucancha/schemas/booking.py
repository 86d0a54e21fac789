import datetime as dt
import uuid
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ValidationError, model_validator
from pydantic_core import PydanticCustomError

from tucancha.db.models.booking import BookingStatus, PaymentStatus
from tucancha.schemas.types import HourMinute
from tucancha.utils.time_slots import DATE_PATTERN, end_minutes, parse_hhmm, start_minutes, weekly_dates

BOOKING_ERROR_TYPE = "booking_validation"

INVALID_VENUE_ID = "ID de complejo inválido"
INVALID_COURT_ID = "ID de cancha inválido"
INVALID_PLAYER_ID = "ID de jugador inválido"
INVALID_DATE_FORMAT = "Formato de fecha inválido (YYYY-MM-DD)"
INVALID_DATE = "Fecha inválida"
INVALID_TIME_FORMAT = "Formato de hora inválido (HH:mm)"
EXACT_HOUR_REQUIRED = "Las reservas solo se permiten en horas exactas (ej: 14:00, 15:00)"
END_BEFORE_START = "La hora de fin debe ser posterior a la hora de inicio"
INVALID_PRICE = "El precio debe ser un número positivo"
INVALID_STATUS = "Estado de reserva inválido"
INVALID_PAYMENT_STATUS = "Estado de pago inválido"
INVALID_DAY_OF_WEEK = "Día de la semana inválido (0 = domingo, 6 = sábado)"
END_DATE_BEFORE_START = "La fecha de fin debe ser igual o posterior a la fecha de inicio"
RANGE_TOO_LONG = "El rango de fechas no puede superar un año"
NO_MATCHING_DATES = "El rango de fechas no incluye el día de la semana elegido"

MAX_RECURRING_DAYS = 366


def booking_error(message: str) -> PydanticCustomError:
    return PydanticCustomError(BOOKING_ERROR_TYPE, message)


def coerce_uuid(value: Any, message: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise booking_error(message)
    try:
        return uuid.UUID(value)
    except ValueError:
        raise booking_error(message) from None


def coerce_date(value: Any) -> dt.date:
    if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise booking_error(INVALID_DATE_FORMAT)
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise booking_error(INVALID_DATE) from None


def coerce_time(value: Any) -> dt.time:
    if isinstance(value, dt.time):
        return value
    parsed = parse_hhmm(value) if isinstance(value, str) else None
    if parsed is None:
        raise booking_error(INVALID_TIME_FORMAT)
    return parsed


def coerce_hour(value: Any) -> dt.time:
    parsed = coerce_time(value)
    if parsed.minute or parsed.second or parsed.microsecond:
        raise booking_error(EXACT_HOUR_REQUIRED)
    return parsed


def coerce_price(value: Any) -> int:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise booking_error(INVALID_PRICE)
    return value


def coerce_enum(enum_cls, message: str):
    def validator(value: Any):
        if value is None:
            return None
        try:
            return enum_cls(value)
        except ValueError:
            raise booking_error(message) from None

    return validator


def check_interval(start: dt.time, end: dt.time | None) -> None:
    if end is not None and end_minutes(end) <= start_minutes(start):
        raise booking_error(END_BEFORE_START)


def _uuid_field(message: str):
    return BeforeValidator(lambda value: coerce_uuid(value, message))


BookingDate = Annotated[dt.date, BeforeValidator(coerce_date)]
SlotStart = Annotated[HourMinute, BeforeValidator(coerce_hour)]
SlotEnd = Annotated[HourMinute | None, BeforeValidator(lambda v: None if v is None else coerce_time(v))]


class BookingCreateRequest(BaseModel):
    venue_id: Annotated[uuid.UUID, _uuid_field(INVALID_VENUE_ID)]
    court_id: Annotated[uuid.UUID, _uuid_field(INVALID_COURT_ID)]
    player_id: Annotated[uuid.UUID, _uuid_field(INVALID_PLAYER_ID)]
    date: BookingDate
    start_time: SlotStart
    end_time: SlotEnd = None
    price: Annotated[int, BeforeValidator(coerce_price)]
    status: Annotated[BookingStatus | None, BeforeValidator(coerce_enum(BookingStatus, INVALID_STATUS))] = None
    payment_status: Annotated[
        PaymentStatus | None, BeforeValidator(coerce_enum(PaymentStatus, INVALID_PAYMENT_STATUS))
    ] = None
    player_name: str | None = None
    player_phone: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def validate_interval(self) -> "BookingCreateRequest":
        check_interval(self.start_time, self.end_time)
        return self


class BookingRescheduleRequest(BaseModel):
    date: BookingDate
    start_time: SlotStart
    end_time: SlotEnd = None

    @model_validator(mode="after")
    def validate_interval(self) -> "BookingRescheduleRequest":
        check_interval(self.start_time, self.end_time)
        return self


def coerce_day_of_week(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise booking_error(INVALID_DAY_OF_WEEK)
    return value


class RecurringBookingRequest(BaseModel):
    """One booking per ``day_of_week`` between ``start_date`` and ``end_date``, both inclusive."""

    venue_id: Annotated[uuid.UUID, _uuid_field(INVALID_VENUE_ID)]
    court_id: Annotated[uuid.UUID, _uuid_field(INVALID_COURT_ID)]
    player_id: Annotated[uuid.UUID, _uuid_field(INVALID_PLAYER_ID)]
    start_date: BookingDate
    end_date: BookingDate
    day_of_week: Annotated[int, BeforeValidator(coerce_day_of_week)]
    start_time: SlotStart
    end_time: SlotEnd = None
    price: Annotated[int, BeforeValidator(coerce_price)]
    status: Annotated[BookingStatus | None, BeforeValidator(coerce_enum(BookingStatus, INVALID_STATUS))] = None
    payment_status: Annotated[
        PaymentStatus | None, BeforeValidator(coerce_enum(PaymentStatus, INVALID_PAYMENT_STATUS))
    ] = None
    player_name: str | None = None
    player_phone: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def validate_range(self) -> "RecurringBookingRequest":
        check_interval(self.start_time, self.end_time)
        if self.end_date < self.start_date:
            raise booking_error(END_DATE_BEFORE_START)
        if (self.end_date - self.start_date).days > MAX_RECURRING_DAYS:
            raise booking_error(RANGE_TOO_LONG)
        if not weekly_dates(self.start_date, self.end_date, self.day_of_week):
            raise booking_error(NO_MATCHING_DATES)
        return self

    def template(self) -> dict[str, Any]:
        """Fields shared by every booking of the series."""
        range_fields = {"start_date", "end_date", "day_of_week"}
        return {name: getattr(self, name) for name in type(self).model_fields if name not in range_fields}


def first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    if first["type"] == BOOKING_ERROR_TYPE:
        return first["msg"]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


class BookingResponse(BaseModel):
    id: uuid.UUID
    venue_id: uuid.UUID
    court_id: uuid.UUID
    player_id: uuid.UUID
    date: dt.date
    start_time: HourMinute
    end_time: HourMinute
    price: int
    status: str
    payment_status: str
    player_name: str | None
    player_phone: str | None
    notes: str | None
    created_at: dt.datetime
    cancelled_at: dt.datetime | None

    model_config = {"from_attributes": True}


class OwnerBookingResponse(BookingResponse):
    venue_name: str
    court_name: str
    court_type: str
    player_display_name: str


class RecurringBookingResponse(BaseModel):
    success: int
    failures: int
    failed_dates: list[dt.date]
    bookings: list[BookingResponse]


class OccupiedInterval(BaseModel):
    booking_id: uuid.UUID
    start_time: HourMinute
    end_time: HourMinute
    status: str
