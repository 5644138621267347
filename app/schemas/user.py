# app/schemas/user.py
from datetime import datetime
from typing import Literal
from .base import BaseSchema, InputSchema


class UserOut(BaseSchema):
    user_id: int
    name: str
    email: str
    role: str
    created_at: datetime
    updated_at: datetime


class RoleUpdateIn(InputSchema):
    role: Literal["user", "admin"]
