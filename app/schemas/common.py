# app/schemas/common.py
from typing import Generic, List, TypeVar
from pydantic import Field
from .base import BaseSchema

T = TypeVar("T")


class PageOut(BaseSchema, Generic[T]):
    page: int = Field(1, ge=1)
    size: int = Field(20, ge=1, le=100)
    total: int = Field(0, ge=0)
    data: List[T]


class SuccessOut(BaseSchema):
    success: bool = True
    message: str
