from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.db import get_db
from app.models.saved_listing import SavedListing
from app.models.user import User
from app.routers.listings import to_listing_out
from app.schemas.common import SuccessOut
from app.schemas.saved_listing import SavedListingOut, SaveListingIn
from app.services import saved_listings as saved_service

router = APIRouter(prefix="/api/saved-listings", tags=["saved-listings"])


def to_saved_out(row: SavedListing, me: User) -> SavedListingOut:
    return SavedListingOut(
        listing_id=row.listing_id,
        saved_at=row.saved_at,
        listing=to_listing_out(row.listing, is_owner=row.listing.seller_id == me.user_id, is_saved=True),
    )


@router.post("", response_model=SavedListingOut, status_code=status.HTTP_201_CREATED)
def save_listing(body: SaveListingIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    row = saved_service.save_listing(db, me.user_id, body.listing_id)
    return to_saved_out(row, me)


@router.get("", response_model=List[SavedListingOut])
def list_saved(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return [to_saved_out(row, me) for row in saved_service.list_saved(db, me.user_id)]


@router.delete("/{listing_id}", response_model=SuccessOut)
def unsave_listing(
    listing_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    saved_service.unsave_listing(db, me.user_id, listing_id)
    return SuccessOut(message="listing removed from saved")
