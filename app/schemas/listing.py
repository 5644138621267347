# app/schemas/listing.py
import json
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import EmailStr, Field, field_validator, model_serializer, model_validator

from .base import BaseSchema, InputSchema

VehicleType = Literal["car", "van", "jeep/suv", "double-cab"]
Condition = Literal["brand-new", "used", "unregister"]
FuelType = Literal["Petrol", "Diesel", "Electric"]
Transmission = Literal["Manual", "Automatic"]
ModerationStatus = Literal["Active", "Rejected"]

MIN_YEAR = 1900

ImageUrl = Annotated[str, Field(pattern=r"^https?://[^\s/]+\S*$", max_length=500)]


def _check_year(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    max_year = datetime.now().year + 1
    if not (MIN_YEAR <= v <= max_year):
        raise ValueError(f"year must be between {MIN_YEAR} and {max_year}")
    return v


def _decode_json(v: Any) -> Any:
    # multipart forms carry the location as a JSON string
    if isinstance(v, (str, bytes)):
        try:
            return json.loads(v)
        except ValueError:
            raise ValueError("location must be a JSON object")
    return v


class LocationIn(InputSchema):
    region: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def v_coordinates(cls, data: Any) -> Any:
        # GeoJSON order: [longitude, latitude]
        if isinstance(data, dict) and "coordinates" in data:
            data = dict(data)
            coords = data.pop("coordinates")
            if not isinstance(coords, (list, tuple)) or len(coords) != 2:
                raise ValueError("coordinates must be [longitude, latitude]")
            data.setdefault("longitude", coords[0])
            data.setdefault("latitude", coords[1])
        return data

    @property
    def has_point(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class ListingCreateIn(InputSchema):
    vehicle_type: VehicleType
    model: str = Field(..., min_length=1, max_length=100)
    condition: Condition
    year: int
    price: float = Field(..., ge=0, allow_inf_nan=False)
    mileage: Optional[int] = Field(None, ge=0)
    fuel_type: Optional[FuelType] = None
    transmission: Optional[Transmission] = None
    location: LocationIn
    description: Optional[str] = Field(None, max_length=5000)
    contact_phone: Optional[str] = Field(None, max_length=30)
    contact_email: Optional[EmailStr] = None

    @field_validator("year")
    @classmethod
    def v_year(cls, v):
        return _check_year(v)

    @field_validator("location", mode="before")
    @classmethod
    def v_location(cls, v):
        return _decode_json(v)


class ListingUpdateIn(InputSchema):
    vehicle_type: Optional[VehicleType] = None
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    condition: Optional[Condition] = None
    year: Optional[int] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    mileage: Optional[int] = Field(None, ge=0)
    fuel_type: Optional[FuelType] = None
    transmission: Optional[Transmission] = None
    location: Optional[LocationIn] = None
    description: Optional[str] = Field(None, max_length=5000)
    contact_phone: Optional[str] = Field(None, max_length=30)
    contact_email: Optional[EmailStr] = None
    # already-uploaded image URLs, in display order, stored as sent
    images: Optional[List[ImageUrl]] = Field(None, max_length=5)

    @field_validator("year")
    @classmethod
    def v_year(cls, v):
        return _check_year(v)

    @field_validator("location", mode="before")
    @classmethod
    def v_location(cls, v):
        return _decode_json(v)


class ModerationIn(InputSchema):
    status: ModerationStatus


class SellerOut(BaseSchema):
    user_id: int
    name: str
    email: str


class LocationOut(BaseSchema):
    region: str
    city: str
    latitude: float
    longitude: float


class MetricOut(BaseSchema):
    average: float
    percentile: int


class ComparisonOut(BaseSchema):
    price: MetricOut
    year: MetricOut
    mileage: Optional[MetricOut] = None
    similar_count: int

    @model_serializer(mode="wrap")
    def omit_missing_mileage(self, handler):
        data = handler(self)
        if self.mileage is None:
            data.pop("mileage", None)
        return data


class ComparisonEnvelopeOut(BaseSchema):
    comparison: Optional[ComparisonOut] = None


class ListingOut(BaseSchema):
    listing_id: int
    seller_id: int
    seller: Optional[SellerOut] = None
    vehicle_type: str
    model: str
    condition: str
    year: int
    price: float
    mileage: Optional[int] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    location: LocationOut
    description: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    images: List[str]
    status: str
    view_count: int
    created_at: datetime
    updated_at: datetime
    is_owner: Optional[bool] = None
    is_saved: Optional[bool] = None


class ListingDetailOut(ListingOut):
    unique_viewers: int
    comparison: Optional[ComparisonOut] = None
