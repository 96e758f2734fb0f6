"""
Restaurant service — the nearby search flow.

  1. Geo-cache lookup in the padded bounding box
  2. ≥ 5 fresh cached places → reuse them as candidates; otherwise run the
     paginated upstream nearby search (falling back to the cached rows if it
     yields nothing)
  3. Per-place enrichment in batches
  4. Project each result into a RestaurantCard, nearest first

Without an API key the flow serves the cached rows as they are.
"""

from __future__ import annotations

import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession

from hangry.schemas.place import EnrichedPlace, RestaurantCard
from hangry.services.distance import format_distance, haversine_meters
from hangry.services.enrichment import (
    MAX_NEARBY_RESULTS,
    EnrichmentPipeline,
    enriched_from_cached,
)
from hangry.services.geo_cache import (
    clamp_radius,
    is_sufficient,
    lookup_nearby,
    summary_from_cached,
)
from hangry.utils.cuisine import detect_cuisine, spice_level_for

logger = logging.getLogger(__name__)

MAX_SPECIALTIES = 3


def _describe(place: EnrichedPlace, cuisine: str) -> str:
    parts: list[str] = []
    if place.formatted_address:
        parts.append(place.formatted_address)
    if place.rating:
        parts.append(f"Rated {place.rating:.1f} / 5")
    if place.rating_count:
        parts.append(f"{place.rating_count} reviews")
    if place.price_level is not None:
        parts.append("$" * max(1, min(4, place.price_level + 1)) + " price level")
    return " · ".join(parts) if parts else f"Local {cuisine.lower()} spot."


def _specialties(place: EnrichedPlace, cuisine: str) -> list[str]:
    tags = [cuisine]
    if place.rating and place.rating >= 4.0:
        tags.append("Highly rated")
    if place.rating_count and place.rating_count > 200:
        tags.append("Popular")
    if place.opening_hours and place.opening_hours.open_now:
        tags.append("Open now")
    return tags[:MAX_SPECIALTIES]


def build_restaurant_card(place: EnrichedPlace, origin: tuple[float, float]) -> RestaurantCard:
    """Project an enrichment result into the caller-facing card."""
    cuisine = detect_cuisine(place.types)
    meters = haversine_meters(origin[0], origin[1], place.lat, place.lon)

    return RestaurantCard(
        id=place.place_id,
        name=place.name,
        cuisine=cuisine,
        spice_level=spice_level_for(cuisine),
        distance=format_distance(meters),
        description=place.description or _describe(place, cuisine),
        specialties=_specialties(place, cuisine),
        image=place.cover,
        gallery=list(place.gallery),
        is_new=False,
        lat=place.lat,
        lon=place.lon,
        phone=place.phone,
        website=place.website,
        rating=place.rating,
        rating_count=place.rating_count,
        price_level=place.price_level,
        opening_hours=place.opening_hours,
        reviews=list(place.reviews),
        business_status=place.business_status,
        formatted_address=place.formatted_address,
    )


async def find_nearby_restaurants(
    db: AsyncSession,
    pipeline: EnrichmentPipeline,
    lat: float,
    lon: float,
    radius: int,
) -> list[RestaurantCard]:
    """Up to 60 enriched restaurant cards around (lat, lon), nearest first."""
    radius = clamp_radius(radius)
    cached = await lookup_nearby(db, lat, lon, radius, provider=pipeline.provider)

    places: list[EnrichedPlace]
    if not pipeline.has_credentials:
        places = [enriched_from_cached(p) for p in cached]
    else:
        if is_sufficient(cached):
            logger.info("Geo-cache hit: %d fresh places, skipping nearby search", len(cached))
            summaries = [summary_from_cached(p) for p in cached]
        else:
            summaries = await pipeline.search_nearby(lat, lon, radius)
            if not summaries:
                summaries = [summary_from_cached(p) for p in cached]
        places = await pipeline.enrich_all(summaries)

    return _order_cards(places, (lat, lon))


def _order_cards(places: list[EnrichedPlace], origin: tuple[float, float]) -> list[RestaurantCard]:
    def _meters(card: RestaurantCard) -> float:
        if card.lat is None or card.lon is None:
            return math.inf
        return haversine_meters(origin[0], origin[1], card.lat, card.lon)

    cards = sorted((build_restaurant_card(p, origin) for p in places), key=_meters)
    cards = cards[:MAX_NEARBY_RESULTS]
    if cards:
        cards[0].is_new = True
    return cards
