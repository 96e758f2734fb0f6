"""
Distance helpers — render meters as text and parse that text back.

Parsed values are memoised per exact input string. The memo never evicts:
its size is bounded by the number of distinct rendered distance strings a
process sees (e.g. "450 m away", "1.2 km away"). If inputs ever become
unbounded, swap the dict for a capped LRU.
"""

from __future__ import annotations

import math
import re
from typing import Optional

_EARTH_RADIUS_M = 6_371_000.0
_METERS_PER_MILE = 1609.344

# Same prefix rules as JavaScript's parseFloat
_NUMERIC_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?)")
_MILES = re.compile(r"\bmi\b|\bmiles?\b")
_KILOMETERS = re.compile(r"km|kilomet")


class DistanceParser:
    """Memoising parser from distance text to meters."""

    def __init__(self) -> None:
        self._memo: dict[str, Optional[float]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._memo)

    def parse(self, text: Optional[str]) -> Optional[float]:
        """Return meters for text like "1.2 km away", or None if unparseable."""
        if not text:
            return None
        if text in self._memo:
            self.hits += 1
            return self._memo[text]
        self.misses += 1
        result = self._parse_uncached(text)
        self._memo[text] = result
        return result

    def clear(self) -> None:
        self._memo.clear()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _parse_uncached(text: str) -> Optional[float]:
        lower = text.lower()
        match = _NUMERIC_PREFIX.match(lower)
        if not match:
            return None
        value = float(match.group(1))
        unit = lower[match.end():]

        # Miles first: the "m" in "mile" must not be read as meters
        if _MILES.search(unit):
            return value * _METERS_PER_MILE
        if _KILOMETERS.search(unit):
            return value * 1000
        if "m" in unit:
            return value
        return None


# Process-wide default parser used by the profiler and the scorer.
distance_parser = DistanceParser()


def parse_distance_to_meters(text: Optional[str]) -> Optional[float]:
    return distance_parser.parse(text)


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return _EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(meters: float) -> str:
    """Render meters as e.g. "450 m away" or "1.2 km away"."""
    if not math.isfinite(meters):
        return ""
    if meters < 1000:
        return f"{math.floor(meters + 0.5)} m away"
    return f"{meters / 1000:.1f} km away"
