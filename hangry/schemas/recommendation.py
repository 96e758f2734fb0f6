"""Pydantic schemas for the recommendation system."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from hangry.schemas.place import RestaurantCard


class SavedRestaurant(BaseModel):
    """
    Minimal projection of a restaurant the user kept. Owned by the caller and
    sent fresh with every request; accepts camelCase keys from the web client.
    """

    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, alias_generator=to_camel
    )

    id: str
    name: str = ""
    cuisine: Optional[str] = None
    rating: Optional[float] = None
    distance: Optional[str] = None
    price_level: Optional[int] = None
    spice_level: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class PreferenceProfile(BaseModel):
    """Statistical summary of saved history, recomputed on every request."""

    favorite_cuisines: dict[str, int] = Field(default_factory=dict)
    avg_rating: float = 0.0
    avg_distance: float = 0.0           # meters
    preferred_price_levels: dict[int, int] = Field(default_factory=dict)
    preferred_spice_levels: dict[str, int] = Field(default_factory=dict)
    total_saved: int = 0


class ScoredCandidate(BaseModel):
    """A ranked, not-yet-saved restaurant and its match score."""

    rank: int
    score: float
    restaurant: RestaurantCard


class RecommendationRequest(BaseModel):
    """Body for POST /recommendations."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    radius: int = Field(5000, description="Search radius in meters, clamped to 200–5000")
    saved: list[SavedRestaurant] = Field(default_factory=list)


class RecommendationPayload(BaseModel):
    """Top-level recommendations response."""

    generated_at: datetime
    profile: PreferenceProfile
    candidates_considered: int
    recommendations: list[ScoredCandidate]
