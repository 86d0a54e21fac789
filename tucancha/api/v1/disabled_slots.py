import datetime as dt
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from tucancha.api.deps import get_court_in_venue, get_owned_venue, require_roles
from tucancha.core.exceptions import AppError
from tucancha.db.models import DisabledSlot, User, UserRole
from tucancha.db.session import get_db
from tucancha.schemas.disabled_slot import DisabledSlotCreateRequest, DisabledSlotResponse, SlotToggleResponse
from tucancha.services.disabled_slot_service import (
    create_disabled_slot,
    delete_disabled_slot,
    list_disabled_slots,
    toggle_slot_availability,
)

router = APIRouter(prefix="/disabled-slots", tags=["disabled-slots"])

SLOT_STORAGE_MESSAGE = "No se pudo actualizar la disponibilidad. Intentá nuevamente."


def _storage_error() -> AppError:
    return AppError(status.HTTP_503_SERVICE_UNAVAILABLE, "storage_error", SLOT_STORAGE_MESSAGE)


def _check_ownership(db: Session, payload: DisabledSlotCreateRequest, user: User) -> None:
    venue = get_owned_venue(db, payload.venue_id, user)
    get_court_in_venue(db, venue.id, payload.court_id)


@router.post("", response_model=DisabledSlotResponse, status_code=status.HTTP_201_CREATED)
def block_slot(
    payload: DisabledSlotCreateRequest,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> DisabledSlotResponse:
    _check_ownership(db, payload, current_user)
    slot = create_disabled_slot(db, payload, created_by=current_user.id)
    if slot is None:
        raise _storage_error()
    return DisabledSlotResponse.model_validate(slot)


@router.get("", response_model=list[DisabledSlotResponse], status_code=status.HTTP_200_OK)
def list_blocked_slots(
    venue_id: uuid.UUID,
    slot_date: dt.date = Query(alias="date"),
    court_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[DisabledSlotResponse]:
    slots = list_disabled_slots(db, venue_id, slot_date, court_id=court_id)
    return [DisabledSlotResponse.model_validate(slot) for slot in slots]


@router.post("/toggle", response_model=SlotToggleResponse, status_code=status.HTTP_200_OK)
def toggle_slot(
    payload: DisabledSlotCreateRequest,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> SlotToggleResponse:
    _check_ownership(db, payload, current_user)
    ok, slot = toggle_slot_availability(db, payload, created_by=current_user.id)
    if not ok:
        raise _storage_error()
    return SlotToggleResponse(
        disabled=slot is not None,
        slot=DisabledSlotResponse.model_validate(slot) if slot is not None else None,
    )


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def unblock_slot(
    slot_id: uuid.UUID,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> Response:
    slot = db.get(DisabledSlot, slot_id)
    if not slot:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Disabled slot not found")
    get_owned_venue(db, slot.venue_id, current_user)
    if not delete_disabled_slot(db, slot_id):
        raise _storage_error()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
