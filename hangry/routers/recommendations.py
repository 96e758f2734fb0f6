"""
Recommendations router — ranked suggestions from the caller's saved history.

Endpoints:
  POST /recommendations  — body {lat, lon, radius, saved}, returns top 20
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hangry.database import get_db
from hangry.dependencies import get_enrichment_pipeline
from hangry.schemas.recommendation import RecommendationPayload, RecommendationRequest
from hangry.services.enrichment import EnrichmentPipeline
from hangry.services.recommendation_service import get_recommendations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.post("", response_model=RecommendationPayload)
async def recommendations(
    body: RecommendationRequest,
    db: AsyncSession = Depends(get_db),
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> RecommendationPayload:
    """
    Score nearby restaurants against a profile built from `saved`.

    - Saved restaurants never appear in the result
    - Profile is recomputed per request; nothing about the caller is stored
    """
    logger.debug("Recommendations request: %d saved, r=%dm", len(body.saved), body.radius)
    return await get_recommendations(body, db, pipeline)
