"""
Enrichment pipeline — turns nearby-search hits into cached, photo-bearing places.

Pipeline:
  1. Nearby search: first page plus up to 2 continuation pages, each preceded
     by a fixed delay (the provider rejects tokens used too early).
     De-duplicated by place id, capped at 60, memoised in a TTLCache.
  2. Per place, in batches of 5 (settle-all):
       a. Load the cached record and evaluate the decision table
       b. Serve from cache, or fetch details and/or photos as the table says
       c. Upsert the result through the cache writer
       d. Return the in-memory record whether or not the write succeeded

Caching:
  _search_cache key: (lat, lon) rounded to 0.01°, radius rounded to 100 m
  TTL: 1800 s (30 min)
  Size: 1000 entries
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from cachetools import TTLCache
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hangry.config import settings
from hangry.database import AsyncSessionLocal
from hangry.models.place import Place
from hangry.schemas.place import (
    EnrichedPlace,
    OpeningHours,
    PhotoReference,
    PlaceReview,
    PlaceSummary,
)
from hangry.services.cache_writer import MAX_STORED_REVIEWS, GalleryPhoto, write_enrichment
from hangry.services.geo_cache import get_cached_place, ordered_photos
from hangry.services.places_client import (
    PHOTO_TIMEOUT_SECONDS,
    PlacesClient,
    PlacesError,
    PlacesTimeoutError,
)
from hangry.utils.cuisine import fallback_image_for_types

logger = logging.getLogger(__name__)

MAX_NEARBY_RESULTS = 60
MAX_EXTRA_PAGES = 2
NEXT_PAGE_DELAY_SECONDS = 2.0

ENRICH_BATCH_SIZE = 5

MAX_PHOTOS = 4              # 1 cover + 3 gallery
PHOTO_FETCH_ATTEMPTS = 2
PHOTO_RETRY_DELAY_SECONDS = 0.1

DESCRIPTION_SNIPPET_CHARS = 200

SEARCH_CACHE_TTL_SECONDS = 1800
SEARCH_CACHE_MAXSIZE = 1_000


# ── Decision table ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EnrichmentPlan:
    """What one place needs, decided before any network call."""

    serve_cached: bool
    fetch_details: bool
    fetch_photos: bool


def plan_enrichment(existing: Optional[Place], now: Optional[datetime] = None) -> EnrichmentPlan:
    """
    serve_cached takes precedence over the other two flags: fetch_photos is
    only false for a fresh row with a cover, and such a row is always served
    from cache. fetch_details can be false on its own (fresh, complete
    details, no cover).
    """
    if existing is None:
        return EnrichmentPlan(serve_cached=False, fetch_details=True, fetch_photos=True)

    fresh = existing.is_fresh(now)
    has_cover = bool(existing.cover_image)
    has_gallery = bool(existing.photos)
    return EnrichmentPlan(
        serve_cached=fresh and has_cover,
        fetch_details=not (fresh and existing.has_complete_details),
        fetch_photos=not (fresh and has_cover and has_gallery),
    )


@dataclass
class EnrichmentStats:
    """Running counters for one pipeline instance."""

    pages_fetched: int = 0
    search_cache_hits: int = 0
    cached_served: int = 0
    details_fetched: int = 0
    details_skipped: int = 0
    details_failed: int = 0
    photos_fetched: int = 0
    photos_failed: int = 0
    photo_timeouts: int = 0
    fallback_covers: int = 0
    places_failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def search_cache_key(lat: float, lon: float, radius: float, category: str) -> tuple:
    return (round(lat, 2), round(lon, 2), int(round(radius / 100.0)) * 100, category)


# ── Record builders ────────────────────────────────────────────────────────────


def enriched_from_cached(place: Place) -> EnrichedPlace:
    """Project a cached row into an EnrichedPlace without any upstream call."""
    extras = [p.image_data for p in ordered_photos(place) if not p.is_primary]
    return EnrichedPlace(
        place_id=place.provider_place_id,
        name=place.name,
        lat=place.lat,
        lon=place.lon,
        formatted_address=place.formatted_address,
        primary_type=place.primary_type or "restaurant",
        types=list(place.type_tags or []),
        rating=place.rating,
        rating_count=place.rating_count,
        price_level=place.price_level,
        cover=place.cover_image,
        gallery=extras[: MAX_PHOTOS - 1],
        has_photos=bool(place.has_photos),
        from_cache=True,
        **_cached_details(place),
    )


def _cached_details(place: Optional[Place]) -> dict[str, Any]:
    if place is None:
        return {}
    return {
        "description": place.description,
        "phone": place.phone,
        "international_phone": place.international_phone,
        "website": place.website_url,
        "opening_hours": OpeningHours.model_validate(place.opening_hours)
        if place.opening_hours
        else None,
        "reviews": [PlaceReview.model_validate(r) for r in place.reviews or []],
        "business_status": place.business_status,
    }


def details_to_fields(details: dict[str, Any]) -> dict[str, Any]:
    """Map a details payload to EnrichedPlace fields. Absent values are left out."""
    reviews = [
        PlaceReview(
            author_name=r.get("author_name"),
            rating=r.get("rating"),
            text=r.get("text") or "",
            time=r.get("time"),
        )
        for r in (details.get("reviews") or [])[:MAX_STORED_REVIEWS]
    ]

    description = (details.get("editorial_summary") or {}).get("overview")
    if not description and reviews and reviews[0].text:
        description = reviews[0].text[:DESCRIPTION_SNIPPET_CHARS] + "..."

    hours = details.get("opening_hours")
    opening_hours = (
        OpeningHours(
            weekday_text=list(hours.get("weekday_text") or []),
            open_now=hours.get("open_now"),
        )
        if hours
        else None
    )

    fields = {
        "description": description,
        "phone": details.get("formatted_phone_number"),
        "international_phone": details.get("international_phone_number"),
        "website": details.get("website"),
        "opening_hours": opening_hours,
        "reviews": reviews,
        "business_status": details.get("business_status"),
    }
    return {k: v for k, v in fields.items() if v}


# ── Pipeline ───────────────────────────────────────────────────────────────────


class EnrichmentPipeline:
    """
    One instance per process, created in the app lifespan.
    Every concurrently enriched place opens its own session from `session_factory`.
    """

    def __init__(
        self,
        client: PlacesClient,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        provider: Optional[str] = None,
        category: Optional[str] = None,
        search_cache: Optional[TTLCache] = None,
    ) -> None:
        self.client = client
        self.session_factory = session_factory
        self.provider = provider or settings.places_provider
        self.category = category or settings.search_category
        self.stats = EnrichmentStats()
        self._search_cache: TTLCache = (
            search_cache
            if search_cache is not None
            else TTLCache(maxsize=SEARCH_CACHE_MAXSIZE, ttl=SEARCH_CACHE_TTL_SECONDS)
        )
        self._warned_missing_key = False

    @property
    def has_credentials(self) -> bool:
        if self.client.has_credentials:
            return True
        if not self._warned_missing_key:
            logger.warning(
                "GOOGLE_PLACES_API_KEY is not set; upstream lookups are disabled "
                "and places get fallback images"
            )
            self._warned_missing_key = True
        return False

    # ── Nearby search ──────────────────────────────────────────────────────────

    async def search_nearby(self, lat: float, lon: float, radius: int) -> list[PlaceSummary]:
        """Paginated nearby search. Returns [] without credentials."""
        if not self.has_credentials:
            return []

        key = search_cache_key(lat, lon, radius, self.category)
        if key in self._search_cache:
            self.stats.search_cache_hits += 1
            logger.info("Nearby search cache hit for %s", key)
            return list(self._search_cache[key])

        results: list[PlaceSummary] = []
        seen: set[str] = set()
        page_token: Optional[str] = None

        for page_index in range(1 + MAX_EXTRA_PAGES):
            if page_index > 0:
                if not page_token:
                    break
                await asyncio.sleep(NEXT_PAGE_DELAY_SECONDS)

            try:
                page = await self.client.nearby_search(
                    lat, lon, radius, self.category, page_token=page_token
                )
            except PlacesError as exc:
                logger.warning(
                    "Nearby search page %d failed, keeping %d results: %s",
                    page_index + 1, len(results), exc,
                )
                break

            self.stats.pages_fetched += 1
            for raw in page.results:
                summary = PlaceSummary.from_provider(raw)
                if summary is None or summary.place_id in seen:
                    continue
                seen.add(summary.place_id)
                results.append(summary)

            if len(results) >= MAX_NEARBY_RESULTS:
                break
            page_token = page.next_page_token

        results = results[:MAX_NEARBY_RESULTS]
        if results:
            self._search_cache[key] = list(results)
        logger.info(
            "Nearby search (%.4f, %.4f) r=%dm → %d places", lat, lon, radius, len(results)
        )
        return results

    # ── Per-place enrichment ───────────────────────────────────────────────────

    async def enrich_all(
        self, summaries: Sequence[PlaceSummary], now: Optional[datetime] = None
    ) -> list[EnrichedPlace]:
        """Enrich in sequential batches; a failing place is logged and dropped."""
        now = now or datetime.now(timezone.utc)
        enriched: list[EnrichedPlace] = []

        for start in range(0, len(summaries), ENRICH_BATCH_SIZE):
            batch = summaries[start:start + ENRICH_BATCH_SIZE]
            outcomes = await asyncio.gather(
                *(self.enrich_place(summary, now) for summary in batch),
                return_exceptions=True,
            )
            for summary, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    self.stats.places_failed += 1
                    logger.error(
                        "Enrichment failed for place %s: %r", summary.place_id, outcome
                    )
                    continue
                enriched.append(outcome)

        return enriched

    async def enrich_place(
        self, summary: PlaceSummary, now: Optional[datetime] = None
    ) -> EnrichedPlace:
        now = now or datetime.now(timezone.utc)

        if not self.has_credentials:
            self.stats.fallback_covers += 1
            return EnrichedPlace.from_summary(
                summary, fallback_image_for_types(summary.types), has_photos=False
            )

        # Read session is closed before any upstream call
        async with self.session_factory() as db:
            existing = await get_cached_place(db, self.provider, summary.place_id)
            plan = plan_enrichment(existing, now)

            if plan.serve_cached:
                self.stats.cached_served += 1
                logger.debug("Serving place %s from cache", summary.place_id)
                return enriched_from_cached(existing)

            fields = _cached_details(existing)

        photo_refs = list(summary.photos)
        if plan.fetch_details:
            details = await self._fetch_details(summary.place_id)
            fields.update(details_to_fields(details))
            detail_refs = [
                ref
                for ref in (PhotoReference.from_provider(p) for p in details.get("photos") or [])
                if ref is not None
            ]
            if len(detail_refs) > len(photo_refs):
                photo_refs = detail_refs
        else:
            self.stats.details_skipped += 1

        # Not serving from cache implies fetch_photos
        gallery = await self._fetch_gallery(summary.place_id, photo_refs[:MAX_PHOTOS])
        if gallery:
            cover = gallery[0].data_url
        else:
            self.stats.fallback_covers += 1
            cover = fallback_image_for_types(summary.types)

        record = EnrichedPlace.from_summary(
            summary,
            cover,
            gallery=[photo.data_url for photo in gallery[1:]],
            has_photos=bool(gallery),
            **fields,
        )
        async with self.session_factory() as db:
            await write_enrichment(db, record, gallery, now=now, provider=self.provider)
        return record

    async def _fetch_details(self, place_id: str) -> dict[str, Any]:
        """One details call; a failure means no new data."""
        try:
            details = await self.client.place_details(place_id)
        except PlacesError as exc:
            self.stats.details_failed += 1
            logger.warning("Details fetch failed for place %s: %s", place_id, exc)
            return {}
        self.stats.details_fetched += 1
        return details

    async def _fetch_gallery(
        self, place_id: str, refs: Sequence[PhotoReference]
    ) -> list[GalleryPhoto]:
        gallery: list[GalleryPhoto] = []
        for ref in refs:
            photo = await self._fetch_photo_with_retry(place_id, ref)
            if photo is not None:
                gallery.append(photo)
        return gallery

    async def _fetch_photo_with_retry(
        self, place_id: str, ref: PhotoReference
    ) -> Optional[GalleryPhoto]:
        for attempt in range(1, PHOTO_FETCH_ATTEMPTS + 1):
            try:
                payload = await self.client.fetch_photo(
                    ref.photo_reference, timeout=PHOTO_TIMEOUT_SECONDS
                )
            except PlacesTimeoutError as exc:
                self.stats.photo_timeouts += 1
                logger.warning(
                    "Photo fetch timed out for place %s (attempt %d/%d): %s",
                    place_id, attempt, PHOTO_FETCH_ATTEMPTS, exc,
                )
            except PlacesError as exc:
                logger.warning(
                    "Photo fetch failed for place %s (attempt %d/%d): %s",
                    place_id, attempt, PHOTO_FETCH_ATTEMPTS, exc,
                )
            else:
                self.stats.photos_fetched += 1
                return GalleryPhoto(
                    provider_photo_id=ref.photo_reference,
                    data_url=payload.as_data_url(),
                    attribution=ref.html_attributions[0] if ref.html_attributions else None,
                    width=ref.width,
                    height=ref.height,
                )

            if attempt < PHOTO_FETCH_ATTEMPTS:
                await asyncio.sleep(PHOTO_RETRY_DELAY_SECONDS)

        self.stats.photos_failed += 1
        return None
