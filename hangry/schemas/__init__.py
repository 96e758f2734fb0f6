"""Pydantic schemas package."""

from hangry.schemas.place import (
    EnrichedPlace,
    NearbyResponse,
    OpeningHours,
    PhotoReference,
    PlaceReview,
    PlaceSummary,
    RestaurantCard,
)
from hangry.schemas.recommendation import (
    PreferenceProfile,
    RecommendationPayload,
    RecommendationRequest,
    SavedRestaurant,
    ScoredCandidate,
)

__all__ = [
    "PhotoReference", "PlaceSummary", "OpeningHours", "PlaceReview",
    "EnrichedPlace", "RestaurantCard", "NearbyResponse",
    "SavedRestaurant", "PreferenceProfile", "ScoredCandidate",
    "RecommendationRequest", "RecommendationPayload",
]
