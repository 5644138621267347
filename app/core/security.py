from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError
from passlib.hash import argon2

from app.core.config import Settings
from app.core.errors import Unauthenticated
from app.models.user import User


def hash_password(plain: str) -> str:
    return argon2.using(time_cost=2, memory_cost=102400, parallelism=8).hash(plain)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    # federated accounts have no local password
    if not hashed:
        return False
    return argon2.verify(plain, hashed)


def session_claims(user: User) -> dict:
    return {
        "sub": str(user.user_id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
    }


def create_access_token(user: User, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = session_claims(user)
    payload.update({"iat": now, "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)})
    return jwt.encode(payload, settings.JWT_ACCESS_SECRET, algorithm=settings.JWT_ALG)


def create_refresh_token(sub: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": str(sub), "iat": now, "exp": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)}
    return jwt.encode(payload, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.JWT_ACCESS_SECRET, algorithms=[settings.JWT_ALG], options={"verify_aud": False})
    except ExpiredSignatureError:
        raise Unauthenticated("token_expired")
    except JWTError:
        raise Unauthenticated("invalid_token")


def decode_refresh_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.JWT_REFRESH_SECRET, algorithms=[settings.JWT_ALG], options={"verify_aud": False})
    except ExpiredSignatureError:
        raise Unauthenticated("refresh_token_expired")
    except JWTError:
        raise Unauthenticated("invalid_refresh_token")
