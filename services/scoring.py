"""
Candidate Scoring

Scores vehicle/driver candidates against a trip request using the weights of
an allocation rule, and ranks them.

Each factor produces a sub-score on a 0-100 scale:

- availability: fixed 100, candidates are pre-filtered to available-only
- distance:     piecewise linear penalty on distance to pickup
- rating:       driver rating x 20 (5 stars = 100)
- cost:         ownership class lookup (own > attached > rental)
- fuel:         fuel level tiers

The composite is the weighted mean of the sub-scores, so only the relative
size of the weights matters.
"""

from typing import List, Sequence, Tuple

from models import OwnershipClass
from .allocation_types import AllocationRequest, ScoreBreakdown, ScoredCandidate, VehicleCandidate
from .exceptions import NoCandidatesAvailable
from .geo import distance_km

AVAILABILITY_SCORE = 100.0

COST_SCORES = {
    OwnershipClass.OWN: 100.0,
    OwnershipClass.ATTACHED: 70.0,
    OwnershipClass.RENTAL: 50.0,
}

# (minimum fuel percentage, score), checked top down
FUEL_TIERS = (
    (70, 100.0),
    (50, 80.0),
    (30, 60.0),
)
FUEL_FLOOR_SCORE = 40.0


def _clamp(score: float) -> float:
    return min(max(score, 0.0), 100.0)


def distance_score(distance: float) -> float:
    """
    Score distance to pickup (closer = higher score)
    0-5 km: 90-100
    5-10 km: 70-90
    10-20 km: 40-70
    >20 km: 0-40
    """
    if distance <= 5:
        score = 100 - distance * 2
    elif distance <= 10:
        score = 90 - (distance - 5) * 4
    elif distance <= 20:
        score = 70 - (distance - 10) * 3
    else:
        score = max(0, 40 - (distance - 20))
    return _clamp(score)


def rating_score(rating: float) -> float:
    return _clamp((rating or 0) * 20)


def cost_score(ownership_class: OwnershipClass) -> float:
    return COST_SCORES[ownership_class]


def fuel_score(fuel_level: float) -> float:
    level = fuel_level or 0
    for threshold, score in FUEL_TIERS:
        if level >= threshold:
            return score
    return FUEL_FLOOR_SCORE


def composite_score(sub_scores: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted mean of the sub-scores, rounded to one decimal"""
    total_weight = sum(weights)
    if total_weight <= 0:
        return 0.0
    weighted = sum(score * weight for score, weight in zip(sub_scores, weights))
    return round(_clamp(weighted / total_weight), 1)


def score(candidate: VehicleCandidate, request: AllocationRequest, rule) -> Tuple[ScoreBreakdown, float]:
    """
    Score one candidate for a request.

    Args:
        candidate: Available vehicle/driver pair
        request: Trip being allocated
        rule: AllocationRule supplying the five weights

    Returns:
        tuple: (ScoreBreakdown, distance from candidate to pickup in km)
    """
    distance = distance_km(
        candidate.current_latitude,
        candidate.current_longitude,
        request.pickup_latitude,
        request.pickup_longitude,
    )

    sub_scores = (
        AVAILABILITY_SCORE,
        distance_score(distance),
        rating_score(candidate.driver_rating),
        cost_score(candidate.ownership_class),
        fuel_score(candidate.fuel_level_percentage),
    )
    weights = (
        rule.weight_availability,
        rule.weight_distance,
        rule.weight_rating,
        rule.weight_cost,
        rule.weight_fuel,
    )

    breakdown = ScoreBreakdown(
        availability_score=sub_scores[0],
        distance_score=sub_scores[1],
        rating_score=sub_scores[2],
        cost_score=sub_scores[3],
        fuel_score=sub_scores[4],
        total_score=composite_score(sub_scores, weights),
    )
    return breakdown, distance


def rank(candidates: Sequence[VehicleCandidate], request: AllocationRequest, rule) -> List[ScoredCandidate]:
    """
    Score every candidate and sort best first.

    The sort is stable, so candidates with equal composite scores keep the
    order in which the candidate source returned them.

    Raises:
        NoCandidatesAvailable: if there is nothing to rank
    """
    if not candidates:
        raise NoCandidatesAvailable()

    scored = []
    for candidate in candidates:
        breakdown, distance = score(candidate, request, rule)
        scored.append(ScoredCandidate(candidate=candidate, score=breakdown, distance_km=distance))

    scored.sort(key=lambda item: item.score.total_score, reverse=True)
    return scored
