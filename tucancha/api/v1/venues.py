import datetime as dt
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from tucancha.api.deps import get_owned_venue, get_venue_or_404, require_roles
from tucancha.api.pagination import LimitParam, OffsetParam, paginate
from tucancha.db.models import Court, User, UserRole, Venue
from tucancha.db.session import get_db
from tucancha.schemas.booking import OccupiedInterval
from tucancha.schemas.venue import CourtCreateRequest, CourtResponse, VenueCreateRequest, VenueResponse, VenueUpdateRequest
from tucancha.services.booking_service import list_court_bookings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/venues", tags=["venues"])
courts_router = APIRouter(prefix="/courts", tags=["courts"])


def _build_court(payload: CourtCreateRequest) -> Court:
    return Court(
        name=payload.name.strip(),
        type=payload.type.value,
        price_per_hour=payload.price_per_hour,
        image_url=payload.image_url,
    )


@router.post("", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
def create_venue(
    payload: VenueCreateRequest,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> VenueResponse:
    venue = Venue(
        owner_id=current_user.id,
        name=payload.name.strip(),
        address=payload.address.strip(),
        opening_hours=payload.opening_hours,
        amenities=payload.amenities,
        contact_info=payload.contact_info,
        image_url=payload.image_url,
        latitude=payload.latitude,
        longitude=payload.longitude,
        courts=[_build_court(court) for court in payload.courts],
    )
    db.add(venue)
    db.commit()
    db.refresh(venue)
    logger.info("venue_created venue_id=%s owner_id=%s courts=%s", venue.id, venue.owner_id, len(venue.courts))
    return VenueResponse.model_validate(venue)


@router.get("", response_model=list[VenueResponse], status_code=status.HTTP_200_OK)
def list_venues(
    owner_id: uuid.UUID | None = Query(default=None),
    limit: LimitParam = 20,
    offset: OffsetParam = 0,
    db: Session = Depends(get_db),
) -> list[VenueResponse]:
    query = select(Venue).options(selectinload(Venue.courts)).where(Venue.is_active.is_(True))
    if owner_id:
        query = query.where(Venue.owner_id == owner_id)
    venues = db.scalars(paginate(query.order_by(Venue.name, Venue.id), limit, offset)).all()
    return [VenueResponse.model_validate(venue) for venue in venues]


@router.get("/{venue_id}", response_model=VenueResponse, status_code=status.HTTP_200_OK)
def get_venue(venue_id: uuid.UUID, db: Session = Depends(get_db)) -> VenueResponse:
    venue = get_venue_or_404(db, venue_id)
    if not venue.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")
    return VenueResponse.model_validate(venue)


@router.patch("/{venue_id}", response_model=VenueResponse, status_code=status.HTTP_200_OK)
def update_venue(
    venue_id: uuid.UUID,
    payload: VenueUpdateRequest,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> VenueResponse:
    venue = get_owned_venue(db, venue_id, current_user)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(venue, field, value)
    db.commit()
    db.refresh(venue)
    return VenueResponse.model_validate(venue)


@router.delete("/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_venue(
    venue_id: uuid.UUID,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> Response:
    # Bookings keep referencing the venue, so it is only hidden.
    venue = get_owned_venue(db, venue_id, current_user)
    venue.is_active = False
    db.commit()
    logger.info("venue_deactivated venue_id=%s", venue.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{venue_id}/courts", response_model=CourtResponse, status_code=status.HTTP_201_CREATED)
def add_court(
    venue_id: uuid.UUID,
    payload: CourtCreateRequest,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> CourtResponse:
    venue = get_owned_venue(db, venue_id, current_user)
    court = _build_court(payload)
    venue.courts.append(court)
    db.commit()
    db.refresh(court)
    return CourtResponse.model_validate(court)


@courts_router.delete("/{court_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_court(
    court_id: uuid.UUID,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> Response:
    court = db.get(Court, court_id)
    if not court:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")
    get_owned_venue(db, court.venue_id, current_user)
    court.is_active = False
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@courts_router.get("/{court_id}/bookings", response_model=list[OccupiedInterval], status_code=status.HTTP_200_OK)
def list_occupied_intervals(
    court_id: uuid.UUID,
    booking_date: dt.date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> list[OccupiedInterval]:
    if db.get(Court, court_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")
    return [
        OccupiedInterval(
            booking_id=booking.id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=booking.status,
        )
        for booking in list_court_bookings(db, court_id, booking_date)
    ]
