from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from app.core.db import Base, utcnow

ACTION_VIEW = "view"
ACTION_LIKE = "like"
ACTIONS = (ACTION_VIEW, ACTION_LIKE)


class Interaction(Base):
    # append-only: repeated views of the same listing are separate rows
    __tablename__ = "interactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.userId", ondelete="CASCADE"), nullable=False)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_interactions_user_recent", "user_id", "created_at"),)
