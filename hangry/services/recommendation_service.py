"""
Recommendation service — ranked, not-yet-saved restaurants near the caller.

Pipeline:
  1. Build a PreferenceProfile from the saved history sent with the request
  2. Pull nearby candidates through the restaurant service (cache + enrichment)
  3. Drop anything already saved, score the rest (pure Python, no I/O)
  4. Tie-aware sort, take the top 20, assemble RecommendationPayload

Not cached: the saved history changes between requests and is owned by the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from hangry.schemas.recommendation import RecommendationPayload, RecommendationRequest
from hangry.services.enrichment import EnrichmentPipeline
from hangry.services.profiler import extract_preferences
from hangry.services.recommendation_scorer import (
    MAX_RECOMMENDATIONS,
    RecommendationScorer,
    rank_candidates,
)
from hangry.services.restaurant_service import find_nearby_restaurants

logger = logging.getLogger(__name__)

# ── Module-level singletons ────────────────────────────────────────────────────

_scorer = RecommendationScorer()


async def get_recommendations(
    request: RecommendationRequest,
    db: AsyncSession,
    pipeline: EnrichmentPipeline,
    limit: int = MAX_RECOMMENDATIONS,
) -> RecommendationPayload:
    """Build and return a RecommendationPayload for one request."""
    # ── Step 1: Profile from saved history ────────────────────────────────────
    profile = extract_preferences(request.saved, parser=_scorer.parser)

    # ── Step 2: Candidate retrieval ───────────────────────────────────────────
    candidates = await find_nearby_restaurants(
        db, pipeline, request.lat, request.lon, request.radius
    )

    # ── Steps 3–4: Exclude saved, score, rank ─────────────────────────────────
    ranked = rank_candidates(
        candidates,
        profile,
        exclude_ids=[s.id for s in request.saved],
        limit=limit,
        scorer=_scorer,
    )

    logger.info(
        "Recommendations generated: %d of %d candidates (saved=%d)",
        len(ranked), len(candidates), profile.total_saved,
    )
    return RecommendationPayload(
        generated_at=datetime.now(timezone.utc),
        profile=profile,
        candidates_considered=len(candidates),
        recommendations=ranked,
    )
