from typing import List, Optional, Tuple

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from app.core.db import utcnow
from app.core.errors import Forbidden, NotFound, ValidationFailed
from app.models.listing import Listing
from app.models.message import Message
from app.models.user import User


def send_message(db: Session, sender: User, receiver_id: int, content: str, listing_id: Optional[int] = None) -> Message:
    if receiver_id == sender.user_id:
        raise ValidationFailed.single("receiverId", "cannot send a message to yourself")
    if db.get(User, receiver_id) is None:
        raise NotFound("receiver_not_found")
    if listing_id is not None and db.get(Listing, listing_id) is None:
        raise NotFound("listing_not_found")

    msg = Message(
        sender_id=sender.user_id,
        receiver_id=receiver_id,
        content=content,
        listing_id=listing_id,
        read=False,
        created_at=utcnow(),
    )
    db.add(msg)
    db.commit()
    db.refresh(msg)
    return msg


def list_messages(
    db: Session,
    me: User,
    listing_id: Optional[int] = None,
    receiver_id: Optional[int] = None,
) -> Tuple[List[Message], int]:
    q = select(Message).where(or_(Message.sender_id == me.user_id, Message.receiver_id == me.user_id))
    if listing_id is not None:
        q = q.where(Message.listing_id == listing_id)
    if receiver_id is not None:
        q = q.where(Message.receiver_id == receiver_id)
    rows = db.execute(q.order_by(desc(Message.created_at), desc(Message.id))).scalars().all()

    unread = db.scalar(
        select(func.count()).select_from(Message).where(Message.receiver_id == me.user_id, Message.read.is_(False))
    ) or 0
    return list(rows), unread


def mark_read(db: Session, me: User, message_id: int) -> Message:
    msg = db.get(Message, message_id)
    if msg is None:
        raise NotFound("message_not_found")
    if msg.receiver_id != me.user_id:
        raise Forbidden("not_receiver")
    if not msg.read:
        msg.read = True
        db.commit()
        db.refresh(msg)
    return msg
