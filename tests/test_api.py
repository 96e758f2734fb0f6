"""HTTP surface tests through httpx.ASGITransport (lifespan not run)."""

from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from hangry.database import get_db
from hangry.dependencies import get_enrichment_pipeline
from hangry.main import app
from hangry.services.enrichment import EnrichmentPipeline
from hangry.services.places_client import NearbyPage
from tests.conftest import FakePlacesClient, raw_place


def _pages() -> list[NearbyPage]:
    return [
        NearbyPage([
            raw_place("far", lat=0.009, lon=0.0, types=["indian_restaurant"], photo_refs=["f0"]),
            raw_place("near", lat=0.001, lon=0.0, types=["sushi_restaurant"], photo_refs=["n0"]),
            raw_place("mid", lat=0.004, lon=0.0, types=["pizza"]),
        ])
    ]


@pytest_asyncio.fixture
async def api(session_factory):
    pipeline = EnrichmentPipeline(FakePlacesClient(pages=_pages()), session_factory)

    async def _db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_enrichment_pipeline] = lambda: pipeline
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, api):
        response = await api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_ready_reports_db_failure(self, api, monkeypatch):
        monkeypatch.setattr(
            "hangry.routers.health.check_db_connectivity", AsyncMock(return_value=False)
        )
        response = await api.get("/ready")
        assert response.status_code == 503
        assert response.json() == {"db": "error"}


class TestRestaurants:
    @pytest.mark.asyncio
    async def test_nearby_cards_nearest_first(self, api):
        response = await api.get("/restaurants", params={"lat": 0, "lon": 0, "radius": 1500})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        cards = body["restaurants"]
        assert [c["id"] for c in cards] == ["near", "mid", "far"]
        assert [c["is_new"] for c in cards] == [True, False, False]

        near, mid, far = cards
        assert near["cuisine"] == "Japanese"
        assert near["distance"] == "111 m away"
        assert near["image"].startswith("data:image/jpeg;base64,")
        assert far["spice_level"] == "Hot"
        assert far["specialties"] == ["Indian", "Highly rated", "Popular"]
        assert mid["image"].startswith("https://images.unsplash.com/")
        assert mid["description"] == "1 Main St · Rated 4.3 / 5 · 250 reviews · $$ price level"

    @pytest.mark.asyncio
    async def test_rejects_out_of_range_latitude(self, api):
        response = await api.get("/restaurants", params={"lat": 120, "lon": 0})
        assert response.status_code == 422


class TestRecommendations:
    @pytest.mark.asyncio
    async def test_excludes_saved_and_ranks(self, api):
        body = {
            "lat": 0,
            "lon": 0,
            "radius": 1500,
            "saved": [
                {"id": "far", "name": "Curry", "cuisine": "Indian", "rating": 4.3,
                 "distance": "1.0 km away", "priceLevel": 1, "spiceLevel": "Hot"},
                {"id": 7, "name": "Legacy", "cuisine": "Japanese", "unknownField": "x"},
            ],
        }
        response = await api.post("/recommendations", json=body)

        assert response.status_code == 200
        payload = response.json()
        ids = [r["restaurant"]["id"] for r in payload["recommendations"]]
        assert "far" not in ids
        assert ids == ["near", "mid"]
        assert [r["rank"] for r in payload["recommendations"]] == [1, 2]
        assert payload["candidates_considered"] == 3
        assert payload["profile"]["total_saved"] == 2
        assert payload["profile"]["favorite_cuisines"] == {"Indian": 1, "Japanese": 1}

    @pytest.mark.asyncio
    async def test_rejects_missing_coordinates(self, api):
        response = await api.post("/recommendations", json={"saved": []})
        assert response.status_code == 422


class TestErrors:
    @pytest.mark.asyncio
    async def test_unhandled_error_returns_json_500(self, api, monkeypatch):
        monkeypatch.setattr(
            "hangry.routers.restaurants.find_nearby_restaurants",
            AsyncMock(side_effect=RuntimeError("boom")),
        )
        response = await api.get("/restaurants", params={"lat": 0, "lon": 0})
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error", "code": "HANGRY_UNAVAILABLE"}
