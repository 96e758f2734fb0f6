"""
RecommendationScorer — pure algorithmic scorer.
No network calls. No DB calls. Scores a restaurant against a preference profile.

Additive model, no upper bound:
  Cuisine affinity   — +8 per saved match, saturating at +25 (−2 if unseen)
  Rating alignment   — up to +28, plus up to +3 social proof
  Distance alignment — up to +27 profile fit, plus up to +10 proximity
  Price level        — +5 per saved match (−1 if unseen)
  Spice level        — +3 per saved match
  Diversity          — +2 for an unseen cuisine once history has 5+ saves
  Flags              — +3 new, +5 open now

The profile-distance bonus and the absolute proximity bands both apply to
one candidate, so short distances are rewarded twice.
"""

from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Iterable, Optional

from hangry.schemas.place import RestaurantCard
from hangry.schemas.recommendation import PreferenceProfile, ScoredCandidate
from hangry.services.distance import DistanceParser, distance_parser

MAX_RECOMMENDATIONS = 20

# Scores closer than this are treated as a tie
SCORE_TIE_EPSILON = 0.1

_CUISINE_SATURATION_COUNT = 3
_CUISINE_SATURATED_POINTS = 25.0

# (upper bound in meters, points); first band that fits wins
_PROXIMITY_BANDS: list[tuple[float, float]] = [
    (500, 10.0),
    (1000, 7.0),
    (2000, 4.0),
    (5000, 1.0),
]


class RecommendationScorer:
    """
    Receives one candidate and the current profile and returns a float score.
    Runs on up to 60 candidates per request; must stay fast.
    """

    def __init__(self, parser: Optional[DistanceParser] = None) -> None:
        self.parser = parser if parser is not None else distance_parser

    def score(self, restaurant: RestaurantCard, profile: PreferenceProfile) -> float:
        """Score a single restaurant against the profile. Higher is a better match."""
        cuisine_count = profile.favorite_cuisines.get(restaurant.cuisine or "", 0)

        return (
            self._score_cuisine(cuisine_count, profile)
            + self._score_rating(restaurant, profile)
            + self._score_distance(restaurant, profile)
            + self._score_price(restaurant, profile)
            + self._score_spice(restaurant, profile)
            + self._score_diversity(cuisine_count, profile)
            + self._score_flags(restaurant)
        )

    # ── Dimension scorers ──────────────────────────────────────────────────────

    def _score_cuisine(self, cuisine_count: int, profile: PreferenceProfile) -> float:
        """Linear up to three saves, flat after."""
        if cuisine_count >= _CUISINE_SATURATION_COUNT:
            return _CUISINE_SATURATED_POINTS
        if cuisine_count > 0:
            return 8.0 * cuisine_count
        if profile.total_saved > 0:
            return -2.0
        return 0.0

    def _score_rating(self, restaurant: RestaurantCard, profile: PreferenceProfile) -> float:
        rating = restaurant.rating
        if rating is None or not math.isfinite(rating) or rating <= 0:
            return 0.0

        pts = 0.0
        if profile.avg_rating > 0:
            diff = abs(rating - profile.avg_rating)
            if diff < 0.5:
                pts += 20
            elif diff < 1.0:
                pts += 12
            else:
                pts += 5

            if profile.avg_rating >= 4.0 and rating >= 4.5:
                pts += 8
        else:
            # No rating signal yet
            pts += rating * 3

        # Social proof
        if restaurant.rating_count and restaurant.rating_count > 100:
            pts += min(restaurant.rating_count / 300, 3)
        return pts

    def _score_distance(self, restaurant: RestaurantCard, profile: PreferenceProfile) -> float:
        meters = self.parser.parse(restaurant.distance)
        if meters is None or not math.isfinite(meters) or meters <= 0:
            return 0.0

        pts = 0.0
        if profile.avg_distance > 0:
            diff = abs(meters - profile.avg_distance)
            if diff < 500:
                pts += 15
            elif diff < 1000:
                pts += 10

            if profile.avg_distance < 1000 and meters < 1500:
                pts += 12

        for upper, band_pts in _PROXIMITY_BANDS:
            if meters < upper:
                pts += band_pts
                break
        return pts

    def _score_price(self, restaurant: RestaurantCard, profile: PreferenceProfile) -> float:
        if restaurant.price_level is None:
            return 0.0
        count = profile.preferred_price_levels.get(restaurant.price_level, 0)
        if count > 0:
            return 5.0 * count
        if profile.total_saved > 0:
            return -1.0
        return 0.0

    def _score_spice(self, restaurant: RestaurantCard, profile: PreferenceProfile) -> float:
        return 3.0 * profile.preferred_spice_levels.get(restaurant.spice_level or "", 0)

    def _score_diversity(self, cuisine_count: int, profile: PreferenceProfile) -> float:
        """Nudge toward exploration once there is enough history."""
        if profile.total_saved >= 5 and cuisine_count == 0:
            return 2.0
        return 0.0

    def _score_flags(self, restaurant: RestaurantCard) -> float:
        pts = 0.0
        if restaurant.is_new:
            pts += 3
        if restaurant.opening_hours and restaurant.opening_hours.open_now:
            pts += 5
        return pts


# ── Ranking ────────────────────────────────────────────────────────────────────


def rank_candidates(
    candidates: Iterable[RestaurantCard],
    profile: PreferenceProfile,
    exclude_ids: Iterable[str] = (),
    limit: int = MAX_RECOMMENDATIONS,
    scorer: Optional[RecommendationScorer] = None,
) -> list[ScoredCandidate]:
    """
    Score every candidate not already saved and return the best `limit`.

    Order: score descending. Scores within SCORE_TIE_EPSILON are tied and
    fall back to rating descending, then parsed distance ascending with
    unparseable distances last.
    """
    scorer = scorer or RecommendationScorer()
    excluded = {str(i) for i in exclude_ids}

    scored: list[tuple[RestaurantCard, float]] = [
        (restaurant, scorer.score(restaurant, profile))
        for restaurant in candidates
        if str(restaurant.id) not in excluded
    ]

    def _meters(restaurant: RestaurantCard) -> float:
        meters = scorer.parser.parse(restaurant.distance)
        return meters if meters is not None else math.inf

    def _compare(a: tuple[RestaurantCard, float], b: tuple[RestaurantCard, float]) -> int:
        score_diff = b[1] - a[1]
        if abs(score_diff) > SCORE_TIE_EPSILON:
            return 1 if score_diff > 0 else -1

        rating_a = a[0].rating or 0.0
        rating_b = b[0].rating or 0.0
        if rating_a != rating_b:
            return 1 if rating_b > rating_a else -1

        dist_a, dist_b = _meters(a[0]), _meters(b[0])
        if dist_a == dist_b:
            return 0
        return -1 if dist_a < dist_b else 1

    scored.sort(key=cmp_to_key(_compare))

    return [
        ScoredCandidate(rank=rank, score=score, restaurant=restaurant)
        for rank, (restaurant, score) in enumerate(scored[:limit], start=1)
    ]
