from datetime import datetime
from typing import Literal
from pydantic import Field
from .base import BaseSchema, InputSchema


class InteractionIn(InputSchema):
    listing_id: int = Field(..., ge=1)
    action: Literal["view", "like"]


class InteractionOut(BaseSchema):
    interaction_id: int
    user_id: int
    listing_id: int
    action: str
    created_at: datetime
