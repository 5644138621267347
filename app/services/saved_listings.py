from typing import Iterable, List, Set

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.db import utcnow
from app.core.errors import Conflict, NotFound
from app.models.listing import Listing
from app.models.saved_listing import SavedListing


def save_listing(db: Session, user_id: int, listing_id: int) -> SavedListing:
    if db.get(Listing, listing_id) is None:
        raise NotFound("listing_not_found")
    if db.get(SavedListing, (user_id, listing_id)) is not None:
        raise Conflict("listing_already_saved")

    row = SavedListing(user_id=user_id, listing_id=listing_id, saved_at=utcnow())
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent save of the same pair
        db.rollback()
        raise Conflict("listing_already_saved")
    db.refresh(row)
    return row


def list_saved(db: Session, user_id: int) -> List[SavedListing]:
    q = (
        select(SavedListing)
        .where(SavedListing.user_id == user_id)
        .order_by(desc(SavedListing.saved_at), desc(SavedListing.listing_id))
    )
    return list(db.execute(q).scalars().all())


def unsave_listing(db: Session, user_id: int, listing_id: int) -> None:
    row = db.get(SavedListing, (user_id, listing_id))
    if row is None:
        raise NotFound("saved_listing_not_found")
    db.delete(row)
    db.commit()


def saved_ids(db: Session, user_id: int, listing_ids: Iterable[int]) -> Set[int]:
    ids = list(listing_ids)
    if not ids:
        return set()
    return set(
        db.execute(
            select(SavedListing.listing_id)
            .where(SavedListing.user_id == user_id, SavedListing.listing_id.in_(ids))
        ).scalars().all()
    )
