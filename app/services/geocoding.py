from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

import requests

from app.core.config import Settings
from app.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

ZERO_POINT: Tuple[float, float] = (0.0, 0.0)
USER_AGENT = "vehicle-marketplace-api/1.0"


class Geocoder(Protocol):
    def lookup(self, region: str, city: str) -> Tuple[float, float]:
        ...


class NominatimGeocoder:
    """Region + city to (latitude, longitude) via a Nominatim-style search API."""

    def __init__(self, *, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def _search(self, query: str) -> Tuple[float, float]:
        try:
            r = requests.get(
                self.url,
                params={"q": query, "format": "json", "limit": 1},
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamFailure(f"geocoder_unreachable: {e}")
        if not (200 <= r.status_code < 300):
            raise UpstreamFailure(f"geocoder_http_{r.status_code}")
        try:
            rows = r.json()
            first = rows[0]
            return float(first["lat"]), float(first["lon"])
        except (ValueError, LookupError, TypeError):
            raise UpstreamFailure("geocoder_no_result")

    def lookup(self, region: str, city: str) -> Tuple[float, float]:
        query = ", ".join(p for p in ((city or "").strip(), (region or "").strip()) if p)
        if not query:
            return ZERO_POINT
        try:
            return self._search(query)
        except UpstreamFailure as e:
            logger.warning("geocoding %r failed, using zero point: %s", query, e.detail)
            return ZERO_POINT


def build_geocoder(settings: Settings) -> Optional[Geocoder]:
    if not settings.GEOCODER_ENABLED or not settings.GEOCODER_URL:
        return None
    return NominatimGeocoder(url=settings.GEOCODER_URL, timeout=settings.GEOCODER_TIMEOUT_SECONDS)


def resolve_point(geocoder: Optional[Geocoder], region: str, city: str) -> Tuple[float, float]:
    if geocoder is None:
        return ZERO_POINT
    return geocoder.lookup(region, city)
