from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.db import get_db
from app.models.message import Message
from app.models.user import User
from app.schemas.message import MessageIn, MessageListingOut, MessageOut, MessagesOut, ParticipantOut
from app.services import messages as message_service

router = APIRouter(prefix="/api/messages", tags=["messages"])


def to_message_out(m: Message) -> MessageOut:
    listing = None
    if m.listing is not None:
        listing = MessageListingOut(listing_id=m.listing.id, model=m.listing.model, year=m.listing.year)
    return MessageOut(
        message_id=m.id,
        sender=ParticipantOut.model_validate(m.sender),
        receiver=ParticipantOut.model_validate(m.receiver),
        content=m.content,
        listing=listing,
        read=m.read,
        created_at=m.created_at,
    )


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(body: MessageIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    msg = message_service.send_message(db, me, body.receiver_id, body.content, body.listing_id)
    return to_message_out(msg)


@router.get("", response_model=MessagesOut)
def list_messages(
    listing_id: Optional[int] = Query(None, alias="listingId", ge=1),
    receiver_id: Optional[int] = Query(None, alias="receiverId", ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    rows, unread = message_service.list_messages(db, me, listing_id=listing_id, receiver_id=receiver_id)
    return MessagesOut(messages=[to_message_out(m) for m in rows], unread_count=unread)


@router.patch("/{message_id}/read", response_model=MessageOut)
def mark_read(
    message_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return to_message_out(message_service.mark_read(db, me, message_id))
