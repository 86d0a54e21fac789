from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from tucancha.api.deps import get_current_user
from tucancha.core.config import settings
from tucancha.db.models import User
from tucancha.db.session import get_db
from tucancha.schemas.push import (
    PushSubscriptionRequest,
    PushSubscriptionResponse,
    PushUnsubscribeRequest,
    VapidKeyResponse,
)
from tucancha.services.push_service import remove_subscription, save_subscription

router = APIRouter(prefix="/push", tags=["push"])


@router.get("/vapid-public-key", response_model=VapidKeyResponse, status_code=status.HTTP_200_OK)
def get_vapid_public_key() -> VapidKeyResponse:
    if not settings.vapid_public_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return VapidKeyResponse(public_key=settings.vapid_public_key)


@router.post("/subscriptions", response_model=PushSubscriptionResponse, status_code=status.HTTP_201_CREATED)
def subscribe(
    payload: PushSubscriptionRequest,
    user_agent: Annotated[str | None, Header()] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PushSubscriptionResponse:
    subscription = save_subscription(db, current_user.id, payload, user_agent=user_agent)
    return PushSubscriptionResponse.model_validate(subscription)


@router.delete("/subscriptions", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe(
    payload: PushUnsubscribeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    if not remove_subscription(db, current_user.id, str(payload.endpoint)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
