#app/services/listings.py

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, desc, asc, func, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.db import utcnow
from app.core.errors import NotFound, ValidationFailed
from app.models.interaction import Interaction
from app.models.listing import (
    Listing, ListingImage, ListingViewer,
    STATUS_ACTIVE, STATUS_PENDING, MODERATION_STATUSES,
)
from app.models.message import Message
from app.models.saved_listing import SavedListing
from app.models.user import User
from app.schemas.listing import ListingCreateIn, ListingUpdateIn

logger = logging.getLogger(__name__)

# keys a client may send but that never reach validation
STRIPPED_KEYS = ("status",)
# any of these in an update is an attempt to reassign the listing
OWNER_KEYS = ("sellerId", "seller_id", "user", "userId", "user_id")
NOT_NULL_ON_UPDATE = (
    ("vehicle_type", "vehicleType"),
    ("model", "model"),
    ("condition", "condition"),
    ("year", "year"),
    ("price", "price"),
    ("location", "location"),
)

SORTS = {
    "latest": (desc(Listing.created_at), desc(Listing.id)),
    "priceAsc": (asc(Listing.price), desc(Listing.id)),
    "priceDesc": (desc(Listing.price), desc(Listing.id)),
    "viewCount": (desc(Listing.view_count), desc(Listing.id)),
}


# ---------- payload preparation ----------
def strip_client_status(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in raw.items() if k not in STRIPPED_KEYS}


def owner_change_errors(raw: Dict[str, Any]) -> List[Dict[str, str]]:
    return [
        {"field": k, "message": "the owner of a listing cannot be changed"}
        for k in OWNER_KEYS if k in raw
    ]


def null_required_errors(raw: Dict[str, Any]) -> List[Dict[str, str]]:
    errors = []
    for snake, camel in NOT_NULL_ON_UPDATE:
        for key in dict.fromkeys((snake, camel)):
            if key in raw and raw[key] is None:
                errors.append({"field": key, "message": "field cannot be null"})
    return errors


# ---------- lookups ----------
def get_listing(db: Session, listing_id: int) -> Listing:
    listing = db.get(Listing, listing_id)
    if not listing:
        raise NotFound("listing_not_found")
    return listing


def ensure_visible(listing: Listing, me: Optional[User], admin: bool) -> None:
    """Non-Active listings exist only for their owner and for admins."""
    if listing.status == STATUS_ACTIVE:
        return
    if me is not None and (me.user_id == listing.seller_id or admin):
        return
    raise NotFound("listing_not_found")


def unique_viewer_count(db: Session, listing_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(ListingViewer).where(ListingViewer.listing_id == listing_id)
    ) or 0


# ---------- lifecycle ----------
def _apply_location(listing: Listing, region: str, city: str, point: Tuple[float, float]) -> None:
    listing.region = region
    listing.city = city
    listing.latitude, listing.longitude = point


def _replace_images(listing: Listing, urls: Sequence[str]) -> None:
    listing.images.clear()
    for i, url in enumerate(urls):
        listing.images.append(ListingImage(position=i, url=str(url)))


def create_listing(
    db: Session,
    seller: User,
    body: ListingCreateIn,
    image_urls: Sequence[str],
    point: Tuple[float, float],
) -> Listing:
    now = utcnow()
    listing = Listing(
        seller_id=seller.user_id,
        vehicle_type=body.vehicle_type,
        model=body.model,
        condition=body.condition,
        year=body.year,
        price=body.price,
        mileage=body.mileage,
        fuel_type=body.fuel_type,
        transmission=body.transmission,
        description=body.description,
        contact_phone=body.contact_phone,
        contact_email=body.contact_email,
        status=STATUS_PENDING,
        view_count=0,
        created_at=now,
        updated_at=now,
    )
    _apply_location(listing, body.location.region, body.location.city, point)
    _replace_images(listing, image_urls)

    db.add(listing)
    db.commit()
    db.refresh(listing)
    logger.info("listing %s created by user %s (%d images)", listing.id, seller.user_id, len(image_urls))
    return listing


def update_listing(
    db: Session,
    listing: Listing,
    body: ListingUpdateIn,
    point: Optional[Tuple[float, float]] = None,
) -> Listing:
    """Owner edit: apply the given fields and send the listing back to moderation."""
    data = body.model_dump(exclude_unset=True, by_alias=False)

    for field in (
        "vehicle_type", "model", "condition", "year", "price", "mileage",
        "fuel_type", "transmission", "description", "contact_phone", "contact_email",
    ):
        if field in data:
            setattr(listing, field, data[field])

    if body.location is not None:
        _apply_location(listing, body.location.region, body.location.city, point or (0.0, 0.0))
    if body.images is not None:
        _replace_images(listing, body.images)

    listing.status = STATUS_PENDING
    listing.updated_at = utcnow()
    db.commit()
    db.refresh(listing)
    logger.info("listing %s edited by owner, back to %s", listing.id, STATUS_PENDING)
    return listing


def moderate_listing(db: Session, listing: Listing, status: str, admin: User) -> Listing:
    if status not in MODERATION_STATUSES:
        raise ValidationFailed.single("status", f"status must be one of {', '.join(MODERATION_STATUSES)}")
    previous = listing.status
    listing.status = status
    db.commit()
    db.refresh(listing)
    logger.info("listing %s moderated by admin %s: %s -> %s", listing.id, admin.user_id, previous, status)
    return listing


def delete_listing(db: Session, listing: Listing, actor: User) -> int:
    """Hard delete. Bookmarks, viewer rows and interactions go with the
    listing; messages stay but lose their listing reference."""
    lid = listing.id
    db.execute(delete(Interaction).where(Interaction.listing_id == lid))
    db.execute(delete(SavedListing).where(SavedListing.listing_id == lid))
    db.execute(delete(ListingViewer).where(ListingViewer.listing_id == lid))
    db.execute(update(Message).where(Message.listing_id == lid).values(listing_id=None))
    db.delete(listing)
    db.commit()
    logger.info("listing %s deleted by user %s", lid, actor.user_id)
    return lid


# ---------- views ----------
def _insert_viewer(db: Session, listing_id: int, user_id: int) -> None:
    values = {"listing_id": listing_id, "user_id": user_id, "first_viewed_at": utcnow()}
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        db.execute(pg_insert(ListingViewer).values(**values).on_conflict_do_nothing())
    elif dialect == "sqlite":
        db.execute(sqlite_insert(ListingViewer).values(**values).on_conflict_do_nothing())
    else:
        try:
            with db.begin_nested():
                db.execute(insert(ListingViewer).values(**values))
        except IntegrityError:
            # viewer already in the set
            logger.debug("viewer %s already recorded for listing %s", user_id, listing_id)


def record_view(db: Session, listing: Listing, viewer: Optional[User]) -> None:
    """Count a detail visit.

    The counter goes up on every visit; the viewer set only gains a row the
    first time a given user looks. Both happen in SQL so concurrent first
    views cannot double-insert.
    """
    db.execute(
        update(Listing)
        .where(Listing.id == listing.id)
        .values(view_count=Listing.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    if viewer is not None:
        _insert_viewer(db, listing.id, viewer.user_id)
    db.commit()
    db.refresh(listing)


# ---------- queries ----------
def visibility_clause(me: Optional[User], settings: Settings, mine: bool = False):
    owner_statuses = list(settings.OWNER_VISIBLE_STATUSES)
    if me is None:
        return Listing.status == STATUS_ACTIVE
    own = and_(Listing.seller_id == me.user_id, Listing.status.in_(owner_statuses))
    if mine:
        return own
    return or_(Listing.status == STATUS_ACTIVE, own)


def search_listings(
    db: Session,
    me: Optional[User],
    settings: Settings,
    filters: Optional[Dict[str, Any]] = None,
    mine: bool = False,
    sort: str = "latest",
    page: int = 1,
    size: int = 20,
) -> Tuple[List[Listing], int]:
    q = select(Listing).where(visibility_clause(me, settings, mine))

    filters = filters or {}
    if filters.get("search"):
        term = filters["search"]
        q = q.where(or_(
            Listing.model.icontains(term, autoescape=True),
            Listing.description.icontains(term, autoescape=True),
        ))
    if filters.get("vehicle_type"):
        q = q.where(Listing.vehicle_type == filters["vehicle_type"])
    if filters.get("model"):
        q = q.where(Listing.model.icontains(filters["model"], autoescape=True))
    if filters.get("year") is not None:
        q = q.where(Listing.year == filters["year"])
    if filters.get("fuel_type"):
        q = q.where(Listing.fuel_type == filters["fuel_type"])
    if filters.get("min_price") is not None:
        q = q.where(Listing.price >= filters["min_price"])
    if filters.get("max_price") is not None:
        q = q.where(Listing.price <= filters["max_price"])

    total = db.scalar(select(func.count()).select_from(q.subquery()))
    rows = db.execute(
        q.order_by(*SORTS.get(sort, SORTS["latest"])).offset((page - 1) * size).limit(size)
    ).scalars().all()
    return list(rows), total


def pending_queue(db: Session) -> List[Listing]:
    q = (
        select(Listing)
        .where(Listing.status == STATUS_PENDING)
        .order_by(desc(Listing.created_at), desc(Listing.id))
    )
    return list(db.execute(q).scalars().all())
