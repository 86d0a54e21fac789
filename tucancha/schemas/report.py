import uuid

from pydantic import BaseModel


class VenueRevenueResponse(BaseModel):
    venue_id: uuid.UUID
    venue_name: str
    owner_id: uuid.UUID
    is_active: bool
    total_revenue: int
    total_bookings: int
    platform_commission: int
    revenue_by_court: dict[uuid.UUID, int]

    model_config = {"from_attributes": True}
