from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.core.authz import get_admin_user
from app.core.auth import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.schemas.user import RoleUpdateIn, UserOut
from app.services import users as user_service

router = APIRouter(prefix="/api/users", tags=["users"])
admin_router = APIRouter(prefix="/api/admin/users", tags=["admin"])


@router.get("/me", response_model=UserOut)
def get_me(current: User = Depends(get_current_user)):
    return current


@admin_router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    return user_service.list_users(db)


@admin_router.patch("/{user_id}", response_model=UserOut)
def change_role(
    body: RoleUpdateIn,
    user_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    return user_service.change_role(db, admin, user_id, body.role)
