from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.db import get_db
from app.core.errors import Unauthenticated
from app.core.security import decode_access_token
from app.models.user import User

bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _resolve_user(token: str, db: Session, settings: Settings) -> User:
    payload = decode_access_token(token, settings)
    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated("invalid_token_payload")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise Unauthenticated("invalid_sub")

    user = db.get(User, user_id)
    if not user:
        raise Unauthenticated("user_not_found")

    # role as issued in the token; only consulted when TRUST_SESSION_ROLE is on
    user.session_role = payload.get("role")
    return user


def get_current_user_optional(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    """
    No Authorization header: anonymous, returns None.
    A header with an invalid or expired token: 401.
    """
    if creds is None:
        return None
    if (creds.scheme or "").lower() != "bearer":
        return None
    return _resolve_user(creds.credentials, db, settings)


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """JWT bearer auth; the caller's User row or 401."""
    if not creds or (creds.scheme or "").lower() != "bearer":
        raise Unauthenticated("token_required")
    return _resolve_user(creds.credentials, db, settings)
