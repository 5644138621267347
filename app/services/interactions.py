import logging
from typing import List

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from app.core.db import utcnow
from app.core.errors import NotFound, ValidationFailed
from app.models.interaction import ACTIONS, Interaction
from app.models.listing import Listing

logger = logging.getLogger(__name__)


def record_interaction(db: Session, user_id: int, listing_id: int, action: str) -> Interaction:
    if action not in ACTIONS:
        raise ValidationFailed.single("action", f"action must be one of {', '.join(ACTIONS)}")
    if db.get(Listing, listing_id) is None:
        raise NotFound("listing_not_found")

    row = Interaction(user_id=user_id, listing_id=listing_id, action=action, created_at=utcnow())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def recent_interactions(db: Session, user_id: int, limit: int = 10) -> List[Interaction]:
    q = (
        select(Interaction)
        .where(Interaction.user_id == user_id)
        .order_by(desc(Interaction.created_at), desc(Interaction.id))
        .limit(limit)
    )
    return list(db.execute(q).scalars().all())


def record_view_in_background(session_factory, user_id: int, listing_id: int) -> None:
    """Runs after the detail response went out, on its own session."""
    db = session_factory()
    try:
        record_interaction(db, user_id, listing_id, "view")
    except NotFound:
        # deleted between the response and this task
        logger.info("view of vanished listing %s by user %s not recorded", listing_id, user_id)
    finally:
        db.close()
