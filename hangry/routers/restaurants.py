"""
Restaurants router — nearby search over the enrichment cache.

Endpoints:
  GET /restaurants?lat=&lon=&radius=  — up to 60 enriched cards, nearest first
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hangry.database import get_db
from hangry.dependencies import get_enrichment_pipeline
from hangry.schemas.place import NearbyResponse
from hangry.services.enrichment import EnrichmentPipeline
from hangry.services.restaurant_service import find_nearby_restaurants

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/restaurants", tags=["restaurants"])


@router.get("", response_model=NearbyResponse)
async def nearby_restaurants(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: int = Query(default=2000, description="Meters, clamped to 200–5000"),
    db: AsyncSession = Depends(get_db),
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> NearbyResponse:
    """
    Return enriched restaurants around a coordinate.

    - Served from the geo-cache when at least 5 fresh places are cached
    - Otherwise fetched upstream (paginated), enriched and cached
    - Places without photos carry a stock fallback image
    """
    restaurants = await find_nearby_restaurants(db, pipeline, lat, lon, radius)
    return NearbyResponse(restaurants=restaurants, count=len(restaurants))
