from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from app.core.auth import get_current_user, get_current_user_optional, get_settings
from app.core.authz import get_admin_user, is_admin, require_authenticated, require_owner, require_owner_or_admin
from app.core.config import Settings
from app.core.db import get_db
from app.models.listing import Listing
from app.models.user import User
from app.schemas.base import parse_payload
from app.schemas.common import PageOut
from app.schemas.listing import (
    ComparisonEnvelopeOut, ListingCreateIn, ListingDetailOut, ListingOut, ListingUpdateIn,
    LocationIn, LocationOut, ModerationIn, SellerOut,
)
from app.services import listings as listing_service
from app.services.comparison import market_comparison
from app.services.geocoding import resolve_point
from app.services.image_store import upload_listing_images
from app.services.interactions import record_view_in_background
from app.services.saved_listings import saved_ids

router = APIRouter(prefix="/api/listings", tags=["listings"])


# ---------- helpers ----------
def to_listing_out(l: Listing, is_owner: Optional[bool] = None, is_saved: Optional[bool] = None) -> ListingOut:
    return ListingOut(**_listing_fields(l), is_owner=is_owner, is_saved=is_saved)


def _listing_fields(l: Listing) -> Dict[str, Any]:
    return dict(
        listing_id=l.id,
        seller_id=l.seller_id,
        seller=SellerOut.model_validate(l.seller) if l.seller is not None else None,
        vehicle_type=l.vehicle_type,
        model=l.model,
        condition=l.condition,
        year=l.year,
        price=l.price,
        mileage=l.mileage,
        fuel_type=l.fuel_type,
        transmission=l.transmission,
        location=LocationOut(region=l.region, city=l.city, latitude=l.latitude, longitude=l.longitude),
        description=l.description,
        contact_phone=l.contact_phone,
        contact_email=l.contact_email,
        images=[img.url for img in (l.images or [])],
        status=l.status,
        view_count=l.view_count,
        created_at=l.created_at,
        updated_at=l.updated_at,
    )


async def _locate(request: Request, location: LocationIn):
    if location.has_point:
        return location.latitude, location.longitude
    return await run_in_threadpool(resolve_point, request.app.state.geocoder, location.region, location.city)


# ---------- 1) create (multipart: fields + up to N images) ----------
@router.post("", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
async def create_listing(
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    form = await request.form()

    raw: Dict[str, Any] = {}
    files: List[UploadFile] = []
    errors = []
    for key, value in form.multi_items():
        if key == "images":
            if isinstance(value, UploadFile):
                files.append(value)
            else:
                errors.append({"field": "images", "message": "images must be uploaded files"})
            continue
        # blank optional inputs arrive as ""
        if isinstance(value, str) and not value.strip():
            continue
        raw[key] = value

    if len(files) > settings.MAX_LISTING_IMAGES:
        errors.append({"field": "images", "message": f"at most {settings.MAX_LISTING_IMAGES} images are allowed"})

    body = parse_payload(ListingCreateIn, listing_service.strip_client_status(raw), errors)

    uploads = [(f.filename or "", f.content_type, await f.read()) for f in files]
    image_urls = await upload_listing_images(request.app.state.image_store, uploads)
    point = await _locate(request, body.location)

    listing = listing_service.create_listing(db, me, body, image_urls, point)
    return to_listing_out(listing, is_owner=True, is_saved=False)


# ---------- 2) search / filter ----------
@router.get("", response_model=PageOut[ListingOut])
def list_listings(
    search: Optional[str] = None,
    vehicle_type: Optional[str] = Query(None, alias="vehicleType"),
    model: Optional[str] = None,
    year: Optional[int] = None,
    fuel_type: Optional[str] = Query(None, alias="fuelType"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    mine: bool = False,
    sort: str = Query("latest", pattern="^(latest|priceAsc|priceDesc|viewCount)$"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
    settings: Settings = Depends(get_settings),
):
    if mine:
        require_authenticated(me)

    filters = {
        "search": (search or "").strip() or None,
        "vehicle_type": (vehicle_type or "").strip() or None,
        "model": (model or "").strip() or None,
        "year": year,
        "fuel_type": (fuel_type or "").strip() or None,
        "min_price": min_price,
        "max_price": max_price,
    }
    rows, total = listing_service.search_listings(
        db, me, settings, filters=filters, mine=mine, sort=sort, page=page, size=size
    )

    saved: set = set()
    if me and rows:
        saved = saved_ids(db, me.user_id, [l.id for l in rows])

    data = [
        to_listing_out(
            l,
            is_owner=bool(me and l.seller_id == me.user_id),
            is_saved=(l.id in saved) if me else None,
        )
        for l in rows
    ]
    return PageOut[ListingOut](page=page, size=size, total=total, data=data)


# ---------- 3) moderation queue ----------
@router.get("/pending", response_model=List[ListingOut])
def pending_listings(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    return [to_listing_out(l) for l in listing_service.pending_queue(db)]


# ---------- 4) detail (token optional) ----------
@router.get("/{listing_id}", response_model=ListingDetailOut)
def get_listing(
    request: Request,
    background: BackgroundTasks,
    listing_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
    settings: Settings = Depends(get_settings),
):
    listing = listing_service.get_listing(db, listing_id)
    listing_service.ensure_visible(listing, me, is_admin(me, settings))

    listing_service.record_view(db, listing, me)
    if me is not None and settings.RECORD_VIEW_INTERACTIONS:
        background.add_task(record_view_in_background, request.app.state.db.SessionLocal, me.user_id, listing.id)

    is_owner = bool(me and listing.seller_id == me.user_id)
    is_saved = None
    if me is not None:
        is_saved = listing.id in saved_ids(db, me.user_id, [listing.id])

    return ListingDetailOut(
        **_listing_fields(listing),
        is_owner=is_owner,
        is_saved=is_saved,
        unique_viewers=listing_service.unique_viewer_count(db, listing.id),
        comparison=market_comparison(db, listing),
    )


# ---------- 5) comparison only ----------
@router.get("/{listing_id}/price-comparison", response_model=ComparisonEnvelopeOut)
def price_comparison(
    listing_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
    settings: Settings = Depends(get_settings),
):
    listing = listing_service.get_listing(db, listing_id)
    listing_service.ensure_visible(listing, me, is_admin(me, settings))
    return ComparisonEnvelopeOut(comparison=market_comparison(db, listing))


# ---------- 6) owner update -> back to Pending ----------
@router.put("/{listing_id}", response_model=ListingOut)
async def update_listing(
    request: Request,
    listing_id: int = Path(..., ge=1),
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    listing = listing_service.get_listing(db, listing_id)
    require_owner(me, listing.seller_id)

    errors = listing_service.owner_change_errors(payload) + listing_service.null_required_errors(payload)
    raw = {
        k: v for k, v in listing_service.strip_client_status(payload).items()
        if k not in listing_service.OWNER_KEYS and not (v is None and any(e["field"] == k for e in errors))
    }
    body = parse_payload(ListingUpdateIn, raw, errors)

    point = await _locate(request, body.location) if body.location is not None else None
    listing = listing_service.update_listing(db, listing, body, point)
    return to_listing_out(listing, is_owner=True)


# ---------- 7) admin status transition ----------
@router.patch("/{listing_id}", response_model=ListingOut)
def moderate_listing(
    body: ModerationIn,
    listing_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    listing = listing_service.get_listing(db, listing_id)
    listing = listing_service.moderate_listing(db, listing, body.status, admin)
    return to_listing_out(listing)


# ---------- 8) delete ----------
@router.delete("/{listing_id}", status_code=200)
def delete_listing(
    listing_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    listing = listing_service.get_listing(db, listing_id)
    require_owner_or_admin(me, listing.seller_id, settings)
    listing_service.delete_listing(db, listing, me)
    return {"success": True, "listingId": listing_id}
