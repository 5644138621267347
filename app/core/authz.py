# app/core/authz.py
"""Authorization predicates for listing moderation and admin actions.

Each check is evaluated per request and has no side effects. The caller's
admin status comes from the users table unless ``TRUST_SESSION_ROLE`` is
set, in which case the role claim carried in the access token wins.
"""
from typing import Optional

from fastapi import Depends

from app.core.auth import get_current_user, get_settings
from app.core.config import Settings
from app.core.errors import Forbidden, Unauthenticated
from app.models.user import ROLE_ADMIN, User


def is_admin(user: Optional[User], settings: Settings) -> bool:
    if user is None:
        return False
    if settings.TRUST_SESSION_ROLE:
        return getattr(user, "session_role", None) == ROLE_ADMIN
    return user.role == ROLE_ADMIN


def require_authenticated(user: Optional[User]) -> User:
    if user is None:
        raise Unauthenticated("token_required")
    return user


def require_owner(user: Optional[User], owner_id: int) -> User:
    user = require_authenticated(user)
    if user.user_id != owner_id:
        raise Forbidden("not_owner")
    return user


def require_owner_or_admin(user: Optional[User], owner_id: int, settings: Settings) -> User:
    user = require_authenticated(user)
    if user.user_id != owner_id and not is_admin(user, settings):
        raise Forbidden("not_owner_or_admin")
    return user


def require_admin(user: Optional[User], settings: Settings) -> User:
    user = require_authenticated(user)
    if not is_admin(user, settings):
        raise Forbidden("admin_only")
    return user


def get_admin_user(
    me: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> User:
    return require_admin(me, settings)
