from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.core.db import Base, utcnow


class SavedListing(Base):
    __tablename__ = "saved_listings"

    # the composite key makes (user, listing) unique
    user_id = Column(Integer, ForeignKey("users.userId", ondelete="CASCADE"), primary_key=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True)

    saved_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    listing = relationship("Listing", lazy="joined")
