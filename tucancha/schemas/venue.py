import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from tucancha.db.models.venue import SportType


class CourtCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: SportType
    price_per_hour: int = Field(gt=0)
    image_url: str | None = Field(default=None, max_length=500)


class VenueCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    address: str = Field(min_length=3, max_length=255)
    opening_hours: str = Field(default="", max_length=120)
    amenities: list[str] = Field(default_factory=list)
    contact_info: str | None = Field(default=None, max_length=255)
    image_url: str | None = Field(default=None, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    courts: list[CourtCreateRequest] = Field(default_factory=list)


class VenueUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    address: str | None = Field(default=None, min_length=3, max_length=255)
    opening_hours: str | None = Field(default=None, max_length=120)
    amenities: list[str] | None = None
    contact_info: str | None = Field(default=None, max_length=255)
    image_url: str | None = Field(default=None, max_length=500)


class CourtResponse(BaseModel):
    id: uuid.UUID
    venue_id: uuid.UUID
    name: str
    type: str
    price_per_hour: int
    image_url: str | None
    is_active: bool

    model_config = {"from_attributes": True}


class VenueResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    address: str
    opening_hours: str
    amenities: list[str]
    contact_info: str | None
    image_url: str | None
    latitude: float | None
    longitude: float | None
    is_active: bool
    created_at: datetime
    courts: list[CourtResponse]

    model_config = {"from_attributes": True}
