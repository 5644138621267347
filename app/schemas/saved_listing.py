from datetime import datetime
from pydantic import Field
from .base import BaseSchema, InputSchema
from .listing import ListingOut


class SaveListingIn(InputSchema):
    listing_id: int = Field(..., ge=1)


class SavedListingOut(BaseSchema):
    listing_id: int
    saved_at: datetime
    listing: ListingOut
