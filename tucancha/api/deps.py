import uuid
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from tucancha.core.security import decode_access_token
from tucancha.db.models import Court, User, UserRole, Venue
from tucancha.db.session import get_db
from tucancha.services.notification_service import NotificationDispatcher
from tucancha.tasks.notifications import CeleryNotificationDispatcher

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

_dispatcher = CeleryNotificationDispatcher()


def get_notification_dispatcher() -> NotificationDispatcher:
    return _dispatcher


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    unauthorized_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(payload.get("sub", ""))
    except (ValueError, TypeError):
        raise unauthorized_exc

    user = db.scalar(select(User).where(User.id == user_id))
    if not user or not user.is_active:
        raise unauthorized_exc
    return user


def require_roles(*roles: UserRole | str) -> Callable[[User], User]:
    allowed_roles = {role.value if isinstance(role, UserRole) else role for role in roles}

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return current_user

    return checker


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN.value


def get_venue_or_404(db: Session, venue_id: uuid.UUID) -> Venue:
    venue = db.get(Venue, venue_id)
    if not venue:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")
    return venue


def get_owned_venue(db: Session, venue_id: uuid.UUID, user: User) -> Venue:
    venue = get_venue_or_404(db, venue_id)
    if not (is_admin(user) or venue.owner_id == user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return venue


def get_court_in_venue(db: Session, venue_id: uuid.UUID, court_id: uuid.UUID) -> Court:
    court = db.get(Court, court_id)
    if not court or court.venue_id != venue_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")
    return court
