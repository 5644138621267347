import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.db import utcnow
from app.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.core.security import hash_password
from app.models.user import ROLE_ADMIN, ROLE_USER, ROLES, User

logger = logging.getLogger(__name__)


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(db: Session, settings: Settings, name: str, email: str, password: Optional[str]) -> User:
    email = email.strip().lower()
    if get_by_email(db, email) is not None:
        raise Conflict("email_duplicate")

    bootstrap = {e.strip().lower() for e in settings.BOOTSTRAP_ADMIN_EMAILS}
    now = utcnow()
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password) if password else None,
        role=ROLE_ADMIN if email in bootstrap else ROLE_USER,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    if user.role == ROLE_ADMIN:
        logger.info("user %s created with bootstrap admin role", user.user_id)
    return user


def list_users(db: Session) -> List[User]:
    return list(db.execute(select(User).order_by(User.user_id)).scalars().all())


def change_role(db: Session, admin: User, user_id: int, role: str) -> User:
    if role not in ROLES:
        raise ValidationFailed.single("role", f"role must be one of {', '.join(ROLES)}")
    target = db.get(User, user_id)
    if target is None:
        raise NotFound("user_not_found")
    # a role can only be changed by a different admin
    if target.user_id == admin.user_id:
        raise Forbidden("cannot_change_own_role")

    previous = target.role
    target.role = role
    target.updated_at = utcnow()
    db.commit()
    db.refresh(target)
    logger.info("admin %s changed role of user %s: %s -> %s", admin.user_id, target.user_id, previous, role)
    return target
