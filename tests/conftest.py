"""Shared fixtures: temp-file SQLite store, fake Places client, sample payloads."""

from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./hangry-test.db")

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hangry.models import Base, Place, PlacePhoto
from hangry.services import enrichment
from hangry.services.places_client import NearbyPage, PhotoPayload

# Relative to the wall clock: flows that read the current time must see these rows as fresh
NOW = datetime.now(timezone.utc).replace(microsecond=0)


# ── Store ──────────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A fresh SQLite file per test, schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def no_delays(monkeypatch):
    """Pagination and retry pauses are real sleeps; zero them for tests."""
    monkeypatch.setattr(enrichment, "NEXT_PAGE_DELAY_SECONDS", 0)
    monkeypatch.setattr(enrichment, "PHOTO_RETRY_DELAY_SECONDS", 0)


def make_place(
    provider_place_id: str = "p1",
    lat: float = 0.0,
    lon: float = 0.0,
    updated: Optional[datetime] = None,
    photos: int = 0,
    **overrides: Any,
) -> Place:
    updated = updated or NOW - timedelta(days=1)
    fields: dict[str, Any] = dict(
        provider="google",
        provider_place_id=provider_place_id,
        name=f"Place {provider_place_id}",
        lat=lat,
        lon=lon,
        formatted_address="1 Main St",
        primary_type="restaurant",
        type_tags=["italian_restaurant", "restaurant"],
        rating=4.2,
        rating_count=120,
        price_level=2,
        cover_image="data:image/jpeg;base64,Y292ZXI=",
        has_photos=photos > 0,
        last_updated_at=updated,
        expires_at=updated + timedelta(days=30),
    )
    fields.update(overrides)
    place = Place(**fields)
    place.photos = [
        PlacePhoto(
            provider_photo_id=f"{provider_place_id}-ref{i}",
            image_data=f"data:image/jpeg;base64,{provider_place_id}{i}",
            is_primary=i == 0,
        )
        for i in range(photos)
    ]
    return place


# ── Upstream ───────────────────────────────────────────────────────────────────


def raw_place(
    place_id: str,
    lat: float = 0.0,
    lon: float = 0.0,
    types: Optional[list[str]] = None,
    photo_refs: Optional[list[str]] = None,
    **extra: Any,
) -> dict[str, Any]:
    """A nearby-search result as the provider returns it."""
    payload: dict[str, Any] = {
        "place_id": place_id,
        "name": f"Place {place_id}",
        "geometry": {"location": {"lat": lat, "lng": lon}},
        "vicinity": "1 Main St",
        "types": types or ["restaurant"],
        "rating": 4.3,
        "user_ratings_total": 250,
        "price_level": 1,
        "photos": [
            {"photo_reference": ref, "width": 800, "height": 600, "html_attributions": ["A"]}
            for ref in photo_refs or []
        ],
    }
    payload.update(extra)
    return payload


class FakePlacesClient:
    """
    Scripted stand-in for PlacesClient.

    pages          — consumed in order by nearby_search; an Exception item is raised
    details        — place_id → payload dict or Exception
    photo_failures — photo ref → exceptions raised on successive attempts
    """

    def __init__(
        self,
        pages: Optional[list] = None,
        details: Optional[dict[str, Any]] = None,
        photo_failures: Optional[dict[str, list[Exception]]] = None,
        api_key: Optional[str] = "test-key",
    ) -> None:
        self.api_key = api_key
        self.pages = list(pages or [])
        self.details = details or {}
        self.photo_failures = {k: list(v) for k, v in (photo_failures or {}).items()}
        self.nearby_calls: list[Optional[str]] = []
        self.details_calls: list[str] = []
        self.photo_calls: list[str] = []

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    async def nearby_search(self, lat, lon, radius, category, page_token=None) -> NearbyPage:
        self.nearby_calls.append(page_token)
        item = self.pages[len(self.nearby_calls) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    async def place_details(self, place_id: str) -> dict[str, Any]:
        self.details_calls.append(place_id)
        item = self.details.get(place_id, {})
        if isinstance(item, Exception):
            raise item
        return item

    async def fetch_photo(self, photo_reference, max_width=900, max_height=None, timeout=10.0):
        self.photo_calls.append(photo_reference)
        failures = self.photo_failures.get(photo_reference)
        if failures:
            raise failures.pop(0)
        return PhotoPayload(content=f"img-{photo_reference}".encode(), content_type="image/jpeg")

    async def close(self) -> None:
        pass
