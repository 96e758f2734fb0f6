"""
Cache writer — upserts an enrichment result and its photos.

Place rows are keyed by (provider, provider_place_id); photo rows by
(place_id, provider_photo_id). Both use the dialect's
INSERT ... ON CONFLICT DO UPDATE, so concurrent writers of the same key
are last-writer-wins.

Each write replaces the place's gallery: photo rows from an earlier cycle
that are not part of the new one are deleted, so the only primary left is
the new cover (or none when the cover fell back to a stock image).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hangry.config import settings
from hangry.models.place import CACHE_TTL, Place
from hangry.models.place_photo import PlacePhoto
from hangry.schemas.place import EnrichedPlace

logger = logging.getLogger(__name__)

MAX_STORED_REVIEWS = 5

# Columns a refresh must never touch
_IMMUTABLE_PLACE_COLUMNS = {"provider", "provider_place_id"}


@dataclass
class GalleryPhoto:
    """One successfully fetched photo, ready to store."""

    provider_photo_id: str
    data_url: str
    attribution: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


def map_url_for(provider_place_id: str) -> str:
    return f"https://www.google.com/maps/place/?q=place_id:{provider_place_id}"


def _insert_for(db: AsyncSession):
    """Pick the dialect-specific insert that supports ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")


def _place_values(
    record: EnrichedPlace, gallery: list[GalleryPhoto], now: datetime, provider: str
) -> dict[str, Any]:
    return {
        "provider": provider,
        "provider_place_id": record.place_id,
        "name": record.name,
        "lat": record.lat,
        "lon": record.lon,
        "formatted_address": record.formatted_address,
        "primary_type": record.primary_type,
        "type_tags": list(record.types),
        "rating": record.rating,
        "rating_count": record.rating_count,
        "price_level": record.price_level,
        "phone": record.phone,
        "international_phone": record.international_phone,
        "website_url": record.website,
        "map_url": map_url_for(record.place_id),
        "opening_hours": record.opening_hours.model_dump() if record.opening_hours else None,
        "reviews": [r.model_dump() for r in record.reviews[:MAX_STORED_REVIEWS]],
        "description": record.description,
        "business_status": record.business_status,
        "cover_image": record.cover,
        "has_photos": record.has_photos,
        "last_updated_at": now,
        "expires_at": now + CACHE_TTL,
        "cover_photo_reference": gallery[0].provider_photo_id if gallery else None,
    }


async def _upsert_place(db: AsyncSession, values: dict[str, Any]) -> int:
    insert = _insert_for(db)
    stmt = insert(Place).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["provider", "provider_place_id"],
        set_={
            key: stmt.excluded[key]
            for key in values
            if key not in _IMMUTABLE_PLACE_COLUMNS
        },
    )
    await db.execute(stmt)

    result = await db.execute(
        select(Place.id).where(
            Place.provider == values["provider"],
            Place.provider_place_id == values["provider_place_id"],
        )
    )
    return result.scalar_one()


async def _upsert_photo(db: AsyncSession, place_id: int, photo: GalleryPhoto, primary: bool) -> None:
    insert = _insert_for(db)
    values = {
        "place_id": place_id,
        "provider_photo_id": photo.provider_photo_id,
        "image_data": photo.data_url,
        "attribution": photo.attribution,
        "width": photo.width,
        "height": photo.height,
        "is_primary": primary,
    }
    stmt = insert(PlacePhoto).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["place_id", "provider_photo_id"],
        set_={
            "image_data": stmt.excluded.image_data,
            "attribution": stmt.excluded.attribution,
            "width": stmt.excluded.width,
            "height": stmt.excluded.height,
            "is_primary": stmt.excluded.is_primary,
        },
    )
    await db.execute(stmt)


async def write_enrichment(
    db: AsyncSession,
    record: EnrichedPlace,
    gallery: list[GalleryPhoto],
    now: Optional[datetime] = None,
    provider: Optional[str] = None,
) -> Optional[int]:
    """
    Persist one enrichment result. Returns the place row id, or None if the
    place write failed. Never raises on persistence errors: the caller keeps
    serving the in-memory record either way.
    """
    now = now or datetime.now(timezone.utc)
    provider = provider or settings.places_provider

    try:
        place_id = await _upsert_place(db, _place_values(record, gallery, now, provider))
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Cache write failed for place %s: %s", record.place_id, exc)
        return None

    stored_ids: list[str] = []
    for index, photo in enumerate(gallery):
        try:
            await _upsert_photo(db, place_id, photo, primary=index == 0)
            await db.commit()
            stored_ids.append(photo.provider_photo_id)
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error(
                "Photo write failed for place %s photo %d: %s", record.place_id, index, exc
            )

    # The new cycle's gallery supersedes the old one, an empty gallery included
    stale = delete(PlacePhoto).where(PlacePhoto.place_id == place_id)
    if gallery:
        stale = stale.where(
            PlacePhoto.provider_photo_id.not_in([photo.provider_photo_id for photo in gallery])
        )
    try:
        result = await db.execute(stale)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Stale photo cleanup failed for place %s: %s", record.place_id, exc)
    else:
        if result.rowcount:
            logger.debug("Dropped %d stale photos for place %s", result.rowcount, record.place_id)

    logger.debug(
        "Cached place %s (row %d) with %d/%d photos",
        record.place_id, place_id, len(stored_ids), len(gallery),
    )
    return place_id
