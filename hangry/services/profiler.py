"""
Profiler — reduces a user's saved restaurants to a PreferenceProfile.

Pure and cheap: runs on every recommendation request, holds no state
between calls.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, Optional

from hangry.schemas.recommendation import PreferenceProfile, SavedRestaurant
from hangry.services.distance import DistanceParser, distance_parser


def extract_preferences(
    saved: Iterable[SavedRestaurant],
    parser: Optional[DistanceParser] = None,
) -> PreferenceProfile:
    """
    Build a PreferenceProfile in a single pass over saved history.

    Averages only include entries with a usable value: ratings must be finite
    and > 0, distances must parse to a finite number of meters. Entries
    missing either do not count toward that average's denominator.
    """
    parser = parser if parser is not None else distance_parser
    saved = list(saved)
    if not saved:
        return PreferenceProfile()

    cuisines: Counter[str] = Counter()
    prices: Counter[int] = Counter()
    spices: Counter[str] = Counter()
    rating_sum = 0.0
    rating_n = 0
    distance_sum = 0.0
    distance_n = 0

    for store in saved:
        if store.cuisine:
            cuisines[store.cuisine] += 1
        if store.price_level is not None:
            prices[store.price_level] += 1
        if store.spice_level:
            spices[store.spice_level] += 1

        if store.rating is not None and math.isfinite(store.rating) and store.rating > 0:
            rating_sum += store.rating
            rating_n += 1

        meters = parser.parse(store.distance)
        if meters is not None and math.isfinite(meters):
            distance_sum += meters
            distance_n += 1

    return PreferenceProfile(
        favorite_cuisines=dict(cuisines),
        avg_rating=rating_sum / rating_n if rating_n else 0.0,
        avg_distance=distance_sum / distance_n if distance_n else 0.0,
        preferred_price_levels=dict(prices),
        preferred_spice_levels=dict(spices),
        total_saved=len(saved),
    )
