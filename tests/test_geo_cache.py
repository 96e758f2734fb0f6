"""Tests for the bounding-box geo-cache lookup and freshness filtering."""

from datetime import timedelta

import pytest

from hangry.services.geo_cache import (
    MAX_CACHED_RESULTS,
    bounding_box,
    clamp_radius,
    get_cached_place,
    is_sufficient,
    lookup_nearby,
    summary_from_cached,
)
from tests.conftest import NOW, make_place


class TestBoundingBox:
    def test_equator_one_km(self):
        box = bounding_box(0.0, 0.0, 1000)
        assert box.max_lat == pytest.approx(1000 * 1.2 / 111000)
        assert box.max_lat == pytest.approx(0.0108, abs=1e-4)
        assert box.max_lon == pytest.approx(box.max_lat)

    def test_excludes_point_outside(self):
        box = bounding_box(0.0, 0.0, 1000)
        assert not box.contains(0.02, 0.0)
        assert box.contains(0.01, 0.0)

    def test_longitude_widens_with_latitude(self):
        box = bounding_box(60.0, 0.0, 1000)
        assert box.max_lon - 0.0 == pytest.approx(2 * (box.max_lat - 60.0), rel=1e-6)

    @pytest.mark.parametrize("radius, expected", [(50, 200), (200, 200), (2000, 2000), (20000, 5000)])
    def test_clamp_radius(self, radius, expected):
        assert clamp_radius(radius) == expected


class TestLookupNearby:
    @pytest.mark.asyncio
    async def test_returns_only_fresh_covered_places_in_box(self, db):
        db.add_all([
            make_place("inside", lat=0.005, lon=0.005, photos=2),
            make_place("no-expiry", lat=-0.003, lon=0.0, expires_at=None),
            make_place("far", lat=0.02, lon=0.0),
            make_place("expired", expires_at=NOW - timedelta(hours=1)),
            make_place("stale", updated=NOW - timedelta(days=31), expires_at=None),
            make_place("no-cover", cover_image=None),
            make_place("other-provider", provider="yelp"),
        ])
        await db.commit()

        places = await lookup_nearby(db, 0.0, 0.0, 1000, now=NOW)

        assert sorted(p.provider_place_id for p in places) == ["inside", "no-expiry"]
        inside = next(p for p in places if p.provider_place_id == "inside")
        assert len(inside.photos) == 2

    @pytest.mark.asyncio
    async def test_expired_records_never_returned(self, db):
        db.add(make_place("expired", updated=NOW - timedelta(days=2), expires_at=NOW - timedelta(seconds=1)))
        await db.commit()
        assert await lookup_nearby(db, 0.0, 0.0, 1000, now=NOW) == []

    @pytest.mark.asyncio
    async def test_capped_at_sixty(self, db):
        db.add_all([make_place(f"p{i}", lat=i * 1e-5) for i in range(MAX_CACHED_RESULTS + 5)])
        await db.commit()

        places = await lookup_nearby(db, 0.0, 0.0, 5000, now=NOW)
        assert len(places) == MAX_CACHED_RESULTS
        assert is_sufficient(places)

    @pytest.mark.asyncio
    async def test_fewer_than_five_is_insufficient(self, db):
        db.add_all([make_place(f"p{i}") for i in range(4)])
        await db.commit()
        assert not is_sufficient(await lookup_nearby(db, 0.0, 0.0, 1000, now=NOW))


class TestPointLookup:
    @pytest.mark.asyncio
    async def test_get_cached_place(self, db):
        db.add(make_place("abc", photos=3))
        await db.commit()

        place = await get_cached_place(db, "google", "abc")
        assert place is not None
        assert len(place.photos) == 3
        assert await get_cached_place(db, "google", "missing") is None

    @pytest.mark.asyncio
    async def test_summary_from_cached_puts_primary_first(self, db):
        db.add(make_place("abc", photos=3))
        await db.commit()
        place = await get_cached_place(db, "google", "abc")

        summary = summary_from_cached(place)

        assert summary.place_id == "abc"
        assert summary.types == ["italian_restaurant", "restaurant"]
        assert [p.photo_reference for p in summary.photos] == ["abc-ref0", "abc-ref1", "abc-ref2"]
