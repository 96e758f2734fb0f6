"""Pydantic schemas for upstream place payloads, enrichment results and restaurant cards."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PhotoReference(BaseModel):
    """A provider photo handle; the image itself is fetched separately."""

    photo_reference: str
    width: Optional[int] = None
    height: Optional[int] = None
    html_attributions: list[str] = Field(default_factory=list)

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Optional["PhotoReference"]:
        ref = raw.get("photo_reference")
        if not ref:
            return None
        return cls(
            photo_reference=ref,
            width=raw.get("width"),
            height=raw.get("height"),
            html_attributions=list(raw.get("html_attributions") or []),
        )


class PlaceSummary(BaseModel):
    """One nearby-search hit, either from the provider or rebuilt from the cache."""

    place_id: str
    name: str
    lat: float
    lon: float
    formatted_address: Optional[str] = None
    types: list[str] = Field(default_factory=list)
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    price_level: Optional[int] = None
    photos: list[PhotoReference] = Field(default_factory=list)

    @property
    def primary_type(self) -> str:
        return self.types[0] if self.types else "restaurant"

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Optional["PlaceSummary"]:
        """Parse a nearby-search result; hits without an id or coordinate are dropped."""
        location = (raw.get("geometry") or {}).get("location") or {}
        lat, lng = location.get("lat"), location.get("lng")
        place_id = raw.get("place_id")
        if not place_id or lat is None or lng is None:
            return None
        photos = [PhotoReference.from_provider(p) for p in raw.get("photos") or []]
        return cls(
            place_id=place_id,
            name=raw.get("name") or "Restaurant",
            lat=lat,
            lon=lng,
            formatted_address=raw.get("vicinity") or raw.get("formatted_address"),
            types=list(raw.get("types") or []),
            rating=raw.get("rating"),
            rating_count=raw.get("user_ratings_total"),
            price_level=raw.get("price_level"),
            photos=[p for p in photos if p is not None],
        )


class OpeningHours(BaseModel):
    """Opening-hours snapshot taken at enrichment time."""

    weekday_text: list[str] = Field(default_factory=list)
    open_now: Optional[bool] = None


class PlaceReview(BaseModel):
    """A single review excerpt (at most 5 are kept per place)."""

    author_name: Optional[str] = None
    rating: Optional[float] = None
    text: str = ""
    time: Optional[int] = None


class EnrichedPlace(BaseModel):
    """
    In-memory result of enriching one place. This is what callers receive,
    whether or not the cache write that follows it succeeded.
    """

    place_id: str
    name: str
    lat: float
    lon: float
    formatted_address: Optional[str] = None
    primary_type: str = "restaurant"
    types: list[str] = Field(default_factory=list)
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    price_level: Optional[int] = None

    cover: str
    gallery: list[str] = Field(default_factory=list)   # extras only, max 3
    has_photos: bool = False

    description: Optional[str] = None
    phone: Optional[str] = None
    international_phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[OpeningHours] = None
    reviews: list[PlaceReview] = Field(default_factory=list)
    business_status: Optional[str] = None

    from_cache: bool = False

    @classmethod
    def from_summary(cls, summary: PlaceSummary, cover: str, **fields: Any) -> "EnrichedPlace":
        return cls(
            place_id=summary.place_id,
            name=summary.name,
            lat=summary.lat,
            lon=summary.lon,
            formatted_address=summary.formatted_address,
            primary_type=summary.primary_type,
            types=summary.types,
            rating=summary.rating,
            rating_count=summary.rating_count,
            price_level=summary.price_level,
            cover=cover,
            **fields,
        )


class RestaurantCard(BaseModel):
    """Caller-facing restaurant record returned by the nearby search."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    cuisine: str
    spice_level: str
    distance: str
    description: str
    specialties: list[str] = Field(default_factory=list)
    image: str
    gallery: list[str] = Field(default_factory=list)
    is_new: bool = False
    lat: Optional[float] = None
    lon: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    price_level: Optional[int] = None
    opening_hours: Optional[OpeningHours] = None
    reviews: list[PlaceReview] = Field(default_factory=list)
    business_status: Optional[str] = None
    formatted_address: Optional[str] = None


class NearbyResponse(BaseModel):
    """Response for GET /restaurants."""

    restaurants: list[RestaurantCard]
    count: int
