from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.schemas.interaction import InteractionIn, InteractionOut
from app.services.interactions import record_interaction

router = APIRouter(prefix="/api/interactions", tags=["interactions"])


@router.post("", response_model=InteractionOut, status_code=status.HTTP_201_CREATED)
def create_interaction(
    body: InteractionIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    row = record_interaction(db, me.user_id, body.listing_id, body.action)
    return InteractionOut(
        interaction_id=row.id,
        user_id=row.user_id,
        listing_id=row.listing_id,
        action=row.action,
        created_at=row.created_at,
    )
