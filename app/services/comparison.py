# app/services/comparison.py
"""Market comparison of one listing against similar Active listings.

Similar means: same vehicle type and condition, model year within two
years, and a model name containing the subject's model (case-insensitive).
Statistics are plain aggregates over that match set; nothing is cached.
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.listing import Listing, STATUS_ACTIVE

YEAR_WINDOW = 2
# below this many data points a percentile is meaningless
MIN_RANKED = 2
NEUTRAL_PERCENTILE = 50


@dataclass(frozen=True)
class Comparable:
    price: float
    year: int
    mileage: Optional[int] = None


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentile(values: Sequence[float], subject: Optional[float]) -> int:
    if len(values) < MIN_RANKED or subject is None:
        return NEUTRAL_PERCENTILE
    below = sum(1 for v in values if v < subject)
    return int(round_half_up(below / len(values) * 100))


def _average(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def compare(subject: Comparable, matches: Sequence[Comparable]) -> Optional[Dict]:
    """Price/year/mileage standing of ``subject`` among ``matches``.

    Returns None for an empty match set. The ``mileage`` key is present
    only when at least one match has a mileage.
    """
    if not matches:
        return None

    prices = [m.price for m in matches]
    years = [m.year for m in matches]
    mileages = [m.mileage for m in matches if m.mileage is not None]

    result = {
        "price": {
            "average": round_half_up(_average(prices)),
            "percentile": percentile(prices, subject.price),
        },
        "year": {
            "average": round_half_up(_average(years), 1),
            "percentile": percentile(years, subject.year),
        },
        "similar_count": len(matches),
    }
    if mileages:
        result["mileage"] = {
            "average": round_half_up(_average(mileages)),
            "percentile": percentile(mileages, subject.mileage),
        }
    return result


def find_comparables(db: Session, listing: Listing) -> List[Comparable]:
    q = select(Listing.price, Listing.year, Listing.mileage).where(
        Listing.id != listing.id,
        Listing.status == STATUS_ACTIVE,
        Listing.vehicle_type == listing.vehicle_type,
        Listing.condition == listing.condition,
        Listing.year.between(listing.year - YEAR_WINDOW, listing.year + YEAR_WINDOW),
        Listing.model.icontains(listing.model, autoescape=True),
    )
    return [Comparable(price=row.price, year=row.year, mileage=row.mileage) for row in db.execute(q)]


def market_comparison(db: Session, listing: Listing) -> Optional[Dict]:
    subject = Comparable(price=listing.price, year=listing.year, mileage=listing.mileage)
    return compare(subject, find_comparables(db, listing))
