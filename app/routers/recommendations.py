from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.routers.listings import to_listing_out
from app.schemas.listing import ListingOut
from app.services.recommendations import recommend

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("", response_model=List[ListingOut])
def get_recommendations(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return [to_listing_out(l, is_owner=l.seller_id == me.user_id) for l in recommend(db, me.user_id)]
