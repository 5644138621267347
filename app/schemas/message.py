# app/schemas/message.py
from datetime import datetime
from typing import List, Optional
from pydantic import Field
from .base import BaseSchema, InputSchema


class MessageIn(InputSchema):
    receiver_id: int = Field(..., ge=1)
    content: str = Field(..., min_length=1, max_length=5000)
    listing_id: Optional[int] = Field(None, ge=1)


class ParticipantOut(BaseSchema):
    user_id: int
    name: str
    email: str


class MessageListingOut(BaseSchema):
    listing_id: int
    model: str
    year: int


class MessageOut(BaseSchema):
    message_id: int
    sender: ParticipantOut
    receiver: ParticipantOut
    content: str
    listing: Optional[MessageListingOut] = None
    read: bool
    created_at: datetime


class MessagesOut(BaseSchema):
    messages: List[MessageOut]
    unread_count: int
