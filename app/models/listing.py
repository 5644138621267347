from sqlalchemy import Column, Integer, String, Text, Float, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from app.core.db import Base, utcnow

STATUS_PENDING = "Pending"
STATUS_ACTIVE = "Active"
STATUS_REJECTED = "Rejected"
STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_REJECTED)
# values an admin may set through the moderation action
MODERATION_STATUSES = (STATUS_ACTIVE, STATUS_REJECTED)

VEHICLE_TYPES = ("car", "van", "jeep/suv", "double-cab")
CONDITIONS = ("brand-new", "used", "unregister")
FUEL_TYPES = ("Petrol", "Diesel", "Electric")
TRANSMISSIONS = ("Manual", "Automatic")


class Listing(Base):
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)

    # owner never changes after creation
    seller_id = Column(Integer, ForeignKey("users.userId", ondelete="CASCADE"), nullable=False, index=True)

    vehicle_type = Column(String(20), nullable=False)
    model = Column(String(100), nullable=False)
    condition = Column(String(20), nullable=False)
    year = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    mileage = Column(Integer, nullable=True)
    fuel_type = Column(String(20), nullable=True)
    transmission = Column(String(20), nullable=True)

    region = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    latitude = Column(Float, nullable=False, default=0.0)
    longitude = Column(Float, nullable=False, default=0.0)

    description = Column(Text, nullable=True)
    contact_phone = Column(String(30), nullable=True)
    contact_email = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    view_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    images = relationship(
        "ListingImage",
        cascade="all, delete-orphan",
        back_populates="listing",
        order_by="ListingImage.position",
        lazy="selectin",
    )
    viewers = relationship("ListingViewer", cascade="all, delete-orphan", passive_deletes=True)
    seller = relationship("User", lazy="joined")

    __table_args__ = (
        Index("ix_listings_comparable", "vehicle_type", "condition", "status", "year"),
    )


class ListingImage(Base):
    __tablename__ = "listing_images"

    id = Column(Integer, primary_key=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    url = Column(String(500), nullable=False)

    listing = relationship("Listing", back_populates="images")


class ListingViewer(Base):
    """Distinct authenticated viewers of a listing; one row per (listing, user)."""

    __tablename__ = "listing_viewers"

    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.userId", ondelete="CASCADE"), primary_key=True)
    first_viewed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
