"""
Cuisine lookup tables — single source of truth for cuisine detection,
spice levels and stock fallback images.
"""

from __future__ import annotations

from typing import Iterable, Optional

# Ordered: the first matching keyword group wins.
CUISINE_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("mexican",), "Mexican"),
    (("japanese", "sushi"), "Japanese"),
    (("italian",), "Italian"),
    (("chinese",), "Chinese"),
    (("indian",), "Indian"),
    (("burger", "american"), "American"),
]

DEFAULT_CUISINE = "Restaurant"

SPICE_LEVELS: dict[str, str] = {
    "indian": "Hot",
    "thai": "Hot",
    "mexican": "Medium",
    "korean": "Medium",
}

DEFAULT_SPICE_LEVEL = "Mild"

_UNSPLASH = "https://images.unsplash.com/{}?auto=format&fit=crop&w=900&q=80"

# Ordered keyword → stock image, matched against the joined type tags.
FALLBACK_IMAGES: list[tuple[tuple[str, ...], str]] = [
    (("mexican",), _UNSPLASH.format("photo-1617196034796-73dfa7b1fd56")),
    (("sushi", "japanese"), _UNSPLASH.format("photo-1546069901-ba9599a7e63c")),
    (("chinese",), _UNSPLASH.format("photo-1513104890138-7c749659a591")),
    (("indian",), _UNSPLASH.format("photo-1565557623262-b51c2513a641")),
    (("pizza", "italian"), _UNSPLASH.format("photo-1513104890138-7c749659a591")),
    (("burger",), _UNSPLASH.format("photo-1550547660-d9450f859349")),
]

DEFAULT_FALLBACK_IMAGE = _UNSPLASH.format("photo-1521017432531-fbd92d768814")


def fallback_image_for_types(types: Optional[Iterable[str]]) -> str:
    """Deterministic stock image for a place with no obtainable photos."""
    joined = ",".join(types or []).lower()
    for keywords, url in FALLBACK_IMAGES:
        if any(k in joined for k in keywords):
            return url
    return DEFAULT_FALLBACK_IMAGE


def detect_cuisine(types: Optional[Iterable[str]]) -> str:
    """Map provider type tags to a display cuisine."""
    types_lower = [t.lower() for t in types or []]
    for keywords, cuisine in CUISINE_KEYWORDS:
        if any(k in t for t in types_lower for k in keywords):
            return cuisine
    return DEFAULT_CUISINE


def spice_level_for(cuisine: str) -> str:
    return SPICE_LEVELS.get(cuisine.lower(), DEFAULT_SPICE_LEVEL)
