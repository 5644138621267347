# app/services/recommendations.py
"""Rule-based "more like what you looked at" shortlist.

The user's last few views and likes pick a set of preference listings;
candidates are Active listings sharing a vehicle type or model with them,
or priced inside the band spanned by them. Liked listings come first in
the preference list, nothing is scored.
"""
from typing import List, Sequence

from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session

from app.models.interaction import ACTION_LIKE, ACTION_VIEW, Interaction
from app.models.listing import Listing, STATUS_ACTIVE
from app.services.interactions import recent_interactions

HISTORY_SIZE = 10
PREFERENCE_SIZE = 5
RESULT_SIZE = 5
PRICE_BAND_LOW = 0.8
PRICE_BAND_HIGH = 1.2


def newest_active(db: Session, limit: int = RESULT_SIZE) -> List[Listing]:
    q = (
        select(Listing)
        .where(Listing.status == STATUS_ACTIVE)
        .order_by(desc(Listing.created_at), desc(Listing.id))
        .limit(limit)
    )
    return list(db.execute(q).scalars().all())


def preference_ids(interactions: Sequence[Interaction]) -> List[int]:
    liked = [i.listing_id for i in interactions if i.action == ACTION_LIKE]
    viewed = [i.listing_id for i in interactions if i.action == ACTION_VIEW]
    # dict keeps first-seen order, so likes stay ahead of views
    return list(dict.fromkeys(liked + viewed))[:PREFERENCE_SIZE]


def recommend(db: Session, user_id: int) -> List[Listing]:
    history = recent_interactions(db, user_id, limit=HISTORY_SIZE)
    if not history:
        return newest_active(db)

    ids = preference_ids(history)
    prefs = list(db.execute(select(Listing).where(Listing.id.in_(ids))).scalars().all())
    if not prefs:
        # every listing in the history has been deleted
        return newest_active(db)

    types = {p.vehicle_type for p in prefs}
    models = {p.model for p in prefs}
    low = min(p.price * PRICE_BAND_LOW for p in prefs)
    high = max(p.price * PRICE_BAND_HIGH for p in prefs)

    q = (
        select(Listing)
        .where(
            Listing.status == STATUS_ACTIVE,
            Listing.id.not_in([p.id for p in prefs]),
            or_(
                Listing.vehicle_type.in_(types),
                Listing.model.in_(models),
                Listing.price.between(low, high),
            ),
        )
        .order_by(desc(Listing.created_at), desc(Listing.id))
        .limit(RESULT_SIZE)
    )
    return list(db.execute(q).scalars().all())
