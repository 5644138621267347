from pydantic import Field, EmailStr
from .base import InputSchema, BaseSchema


class SignupIn(InputSchema):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginIn(InputSchema):
    email: str
    password: str = Field(..., min_length=8)


class TokenOut(BaseSchema):
    access_token: str
