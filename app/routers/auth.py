import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user, get_settings
from app.core.config import Settings
from app.core.db import get_db
from app.core.errors import Unauthenticated
from app.core.security import create_access_token, create_refresh_token, decode_refresh_token, verify_password
from app.models.user import User
from app.schemas.auth import LoginIn, SignupIn, TokenOut
from app.schemas.common import SuccessOut
from app.schemas.user import UserOut
from app.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE = "refreshToken"


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupIn, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    return user_service.create_user(db, settings, payload.name, payload.email, payload.password)


@router.post("/login", response_model=TokenOut, status_code=status.HTTP_200_OK)
def login(
    payload: LoginIn,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = user_service.get_by_email(db, payload.email.strip().lower())
    if not user or not verify_password(payload.password, user.password_hash):
        logger.info("failed login for %s", payload.email)
        raise Unauthenticated("invalid_credentials")

    response.set_cookie(
        key=REFRESH_COOKIE,
        value=create_refresh_token(str(user.user_id), settings),
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite="none" if settings.REFRESH_COOKIE_SECURE else "lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
    )
    return {"accessToken": create_access_token(user, settings)}


@router.post("/refresh", response_model=TokenOut, status_code=status.HTTP_200_OK)
def refresh(request: Request, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise Unauthenticated("no_refresh_token")

    payload = decode_refresh_token(token, settings)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise Unauthenticated("invalid_token_payload")

    # fresh claims, so a role change shows up in the next access token
    user = db.get(User, user_id)
    if user is None:
        raise Unauthenticated("user_not_found")
    return {"accessToken": create_access_token(user, settings)}


@router.post("/logout", response_model=SuccessOut, status_code=status.HTTP_200_OK)
def logout(
    response: Response,
    me: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    response.delete_cookie(
        key=REFRESH_COOKIE,
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite="none" if settings.REFRESH_COOKIE_SECURE else "lax",
        path="/",
    )
    return SuccessOut(message="logged out")
