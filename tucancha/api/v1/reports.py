import datetime as dt
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tucancha.api.deps import is_admin, require_roles
from tucancha.db.models import User, UserRole
from tucancha.db.session import get_db
from tucancha.schemas.report import VenueRevenueResponse
from tucancha.services.revenue_service import venue_revenue_summaries

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/revenue", response_model=list[VenueRevenueResponse], status_code=status.HTTP_200_OK)
def get_revenue_summary(
    owner_id: uuid.UUID | None = Query(default=None),
    date_from: dt.date | None = Query(default=None),
    date_to: dt.date | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> list[VenueRevenueResponse]:
    """Admins see every venue (optionally one owner's); owners only their own."""
    scoped_owner = owner_id if is_admin(current_user) else current_user.id
    summaries = venue_revenue_summaries(db, owner_id=scoped_owner, date_from=date_from, date_to=date_to)
    return [VenueRevenueResponse.model_validate(summary) for summary in summaries]
