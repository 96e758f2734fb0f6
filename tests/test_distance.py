"""Tests for distance parsing, rendering and great-circle distance."""

import math

import pytest

from hangry.services.distance import (
    DistanceParser,
    format_distance,
    haversine_meters,
)


class TestDistanceParser:
    """Text → meters, unit resolution and memoisation"""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("450 m away", 450.0),
            ("1.2 km away", 1200.0),
            ("0.6 km", 600.0),
            ("2 mi", 2 * 1609.344),
            ("1 mile away", 1609.344),
            ("3 miles", 3 * 1609.344),
            ("  75m", 75.0),
            (".5 km", 500.0),
        ],
    )
    def test_parses_units(self, text, expected):
        assert DistanceParser().parse(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", [None, "", "nearby", "km 5", "12"])
    def test_unparseable_returns_none(self, text):
        assert DistanceParser().parse(text) is None

    def test_mile_is_not_read_as_meters(self):
        """The 'm' in 'mile' must not resolve to meters"""
        assert DistanceParser().parse("1 mile") != 1.0

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1.2 kilometers away", 1200.0),
            ("2 kilometres", 2000.0),
            ("3 KM", 3000.0),
        ],
    )
    def test_spelled_out_kilometers(self, text, expected):
        """'kilometers' contains an 'm' but is not meters"""
        assert DistanceParser().parse(text) == pytest.approx(expected)

    def test_memoises_per_exact_string(self):
        parser = DistanceParser()
        first = parser.parse("1.2 km away")
        second = parser.parse("1.2 km away")

        assert first == second
        assert parser.misses == 1
        assert parser.hits == 1
        assert len(parser) == 1

    def test_memoises_misses_too(self):
        parser = DistanceParser()
        parser.parse("nowhere")
        parser.parse("nowhere")
        assert parser.misses == 1
        assert parser.hits == 1

    def test_clear_resets_memo_and_counters(self):
        parser = DistanceParser()
        parser.parse("1 km")
        parser.clear()
        assert len(parser) == 0
        assert parser.hits == parser.misses == 0


class TestFormatDistance:
    def test_meters_below_one_km(self):
        assert format_distance(449.5) == "450 m away"
        assert format_distance(12.2) == "12 m away"

    def test_kilometers_one_decimal(self):
        assert format_distance(1234) == "1.2 km away"
        assert format_distance(1000) == "1.0 km away"

    def test_non_finite_is_empty(self):
        assert format_distance(math.inf) == ""
        assert format_distance(math.nan) == ""

    def test_rendered_text_parses_back(self):
        parser = DistanceParser()
        assert parser.parse(format_distance(450)) == 450
        assert parser.parse(format_distance(2300)) == pytest.approx(2300)


class TestHaversine:
    def test_zero_distance(self):
        assert haversine_meters(10.0, 20.0, 10.0, 20.0) == 0

    def test_one_hundredth_degree_latitude(self):
        # ~1.11 km per 0.01° of latitude
        assert haversine_meters(0, 0, 0.01, 0) == pytest.approx(1111.95, rel=1e-3)
