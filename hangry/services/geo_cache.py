"""
Geo-cache lookup — fresh cached places near a coordinate.

The bounding box is a rectangle approximating the search circle, padded by
20% so places just outside the radius edge are still considered.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hangry.config import settings
from hangry.models.place import CACHE_TTL, Place
from hangry.schemas.place import PhotoReference, PlaceSummary

logger = logging.getLogger(__name__)

MIN_RADIUS_M = 200
MAX_RADIUS_M = 5000
MAX_CACHED_RESULTS = 60

# At least this many cached rows means the upstream nearby search is skipped
SUFFICIENT_CACHE_HITS = 5

_METERS_PER_DEGREE = 111_000.0
_BOX_PADDING = 1.2


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


def clamp_radius(radius_m: float) -> int:
    return int(max(MIN_RADIUS_M, min(MAX_RADIUS_M, radius_m)))


def bounding_box(lat: float, lon: float, radius_m: float) -> BoundingBox:
    lat_delta = radius_m * _BOX_PADDING / _METERS_PER_DEGREE
    # Guard the poles, where cos(lat) approaches zero
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    lon_delta = lat_delta / cos_lat
    return BoundingBox(
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
        min_lon=lon - lon_delta,
        max_lon=lon + lon_delta,
    )


async def lookup_nearby(
    db: AsyncSession,
    lat: float,
    lon: float,
    radius_m: float,
    now: Optional[datetime] = None,
    provider: Optional[str] = None,
) -> list[Place]:
    """Return up to 60 fresh, cover-bearing cached places inside the padded box."""
    now = now or datetime.now(timezone.utc)
    provider = provider or settings.places_provider
    box = bounding_box(lat, lon, clamp_radius(radius_m))

    stmt = (
        select(Place)
        .options(selectinload(Place.photos))
        .where(
            Place.provider == provider,
            Place.lat.between(box.min_lat, box.max_lat),
            Place.lon.between(box.min_lon, box.max_lon),
            Place.cover_image.is_not(None),
            Place.last_updated_at > now - CACHE_TTL,
            or_(Place.expires_at.is_(None), Place.expires_at > now),
        )
        .limit(MAX_CACHED_RESULTS)
    )
    result = await db.execute(stmt)
    places = list(result.scalars().all())
    logger.debug(
        "Geo-cache lookup (%.4f, %.4f) r=%dm → %d fresh places", lat, lon, radius_m, len(places)
    )
    return places


def is_sufficient(cached: list[Place]) -> bool:
    return len(cached) >= SUFFICIENT_CACHE_HITS


async def get_cached_place(
    db: AsyncSession, provider: str, provider_place_id: str
) -> Optional[Place]:
    """Point lookup by provider identity, photos eagerly loaded."""
    stmt = (
        select(Place)
        .options(selectinload(Place.photos))
        .where(Place.provider == provider, Place.provider_place_id == provider_place_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def summary_from_cached(place: Place) -> PlaceSummary:
    """Rebuild a search-hit summary from a cached record so it can re-enter enrichment."""
    photos = [
        PhotoReference(
            photo_reference=photo.provider_photo_id,
            width=photo.width,
            height=photo.height,
            html_attributions=[photo.attribution] if photo.attribution else [],
        )
        for photo in ordered_photos(place)
    ]
    return PlaceSummary(
        place_id=place.provider_place_id,
        name=place.name,
        lat=place.lat,
        lon=place.lon,
        formatted_address=place.formatted_address,
        types=list(place.type_tags or []),
        rating=place.rating,
        rating_count=place.rating_count,
        price_level=place.price_level,
        photos=photos,
    )


def ordered_photos(place: Place) -> list:
    """Primary photo first, then insertion order."""
    return sorted(place.photos or [], key=lambda p: (not p.is_primary, p.id or 0))
