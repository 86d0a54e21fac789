import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from tucancha.db.models import PushSubscription
from tucancha.schemas.push import PushSubscriptionRequest

logger = logging.getLogger(__name__)


def save_subscription(
    db: Session,
    user_id: uuid.UUID,
    payload: PushSubscriptionRequest,
    user_agent: str | None = None,
) -> PushSubscription:
    """Store a browser subscription, refreshing its keys when the endpoint is already known."""
    endpoint = str(payload.endpoint)
    subscription = db.scalar(
        select(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
    )
    if subscription is None:
        subscription = PushSubscription(user_id=user_id, endpoint=endpoint)
        db.add(subscription)

    subscription.p256dh_key = payload.keys.p256dh
    subscription.auth_key = payload.keys.auth
    subscription.user_agent = user_agent[:255] if user_agent else None
    db.commit()
    db.refresh(subscription)
    logger.info("push_subscription_saved user_id=%s subscription_id=%s", user_id, subscription.id)
    return subscription


def remove_subscription(db: Session, user_id: uuid.UUID, endpoint: str) -> int:
    result = db.execute(
        delete(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
    )
    db.commit()
    return result.rowcount
