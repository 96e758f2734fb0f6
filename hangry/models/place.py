"""Place ORM model — the persistent enrichment cache for one upstream place."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import (
    JSON, TIMESTAMP, Boolean, Column, Double, Integer, String, Text,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from hangry.database import Base

# Fixed freshness window for every cached place.
CACHE_TTL = timedelta(days=30)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive timestamps; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Place(Base):
    """
    A place record keyed by (provider, provider_place_id).
    Refreshed in place by the enrichment pipeline; never deleted by it.
    """

    __tablename__ = "places"
    __table_args__ = (
        UniqueConstraint("provider", "provider_place_id", name="uq_places_provider_place"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider = Column(String(32), nullable=False, server_default="google")
    provider_place_id = Column(String(255), nullable=False)

    name = Column(Text, nullable=False)
    lat = Column(Double, nullable=False, index=True)
    lon = Column(Double, nullable=False, index=True)
    formatted_address = Column(Text, nullable=True)

    primary_type = Column(String(64), nullable=True)
    type_tags = Column(JSON, nullable=False, default=list)

    rating = Column(Double, nullable=True)
    rating_count = Column(Integer, nullable=True)
    price_level = Column(Integer, nullable=True)

    phone = Column(String(64), nullable=True)
    international_phone = Column(String(64), nullable=True)
    website_url = Column(Text, nullable=True)
    map_url = Column(Text, nullable=True)

    opening_hours = Column(JSON, nullable=True)   # {"weekday_text": [...], "open_now": bool}
    reviews = Column(JSON, nullable=True)         # at most 5 excerpts
    description = Column(Text, nullable=True)
    business_status = Column(String(32), nullable=True)

    # Data URL of the primary photo, or a stock fallback image URL
    cover_image = Column(Text, nullable=True)
    cover_photo_reference = Column(Text, nullable=True)
    has_photos = Column(Boolean, nullable=False, default=False)

    last_updated_at = Column(TIMESTAMP(timezone=True), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    photos = relationship(
        "PlacePhoto",
        back_populates="place",
        cascade="all, delete-orphan",
        order_by="PlacePhoto.id",
    )

    def __repr__(self) -> str:
        return f"<Place(provider='{self.provider}', id='{self.provider_place_id}', name='{self.name}')>"

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """Fresh iff now < expires_at; without an expiry, iff younger than the TTL."""
        now = now or datetime.now(timezone.utc)
        expires_at = as_utc(self.expires_at)
        if expires_at is not None:
            return now < expires_at
        last_updated_at = as_utc(self.last_updated_at)
        if last_updated_at is None:
            return False
        return now - last_updated_at < CACHE_TTL

    @property
    def has_complete_details(self) -> bool:
        """True when contact, hours and reviews are all cached."""
        return bool(self.phone and self.website_url and self.opening_hours and self.reviews)
