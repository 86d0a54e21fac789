from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from tucancha.core.config import settings
from tucancha.core.rate_limiter import enforce_rate_limit
from tucancha.db.session import get_db
from tucancha.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from tucancha.schemas.user import UserResponse
from tucancha.services.auth_service import login_user, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> UserResponse:
    enforce_rate_limit(
        "register",
        request,
        limit=settings.auth_register_max_attempts,
        window_seconds=settings.auth_rate_limit_window_seconds,
    )
    user = register_user(payload=payload, db=db)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> TokenResponse:
    enforce_rate_limit(
        "login",
        request,
        limit=settings.auth_login_max_attempts,
        window_seconds=settings.auth_rate_limit_window_seconds,
    )
    return login_user(payload=payload, db=db)
