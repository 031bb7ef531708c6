"""Estimated trip cost for a candidate"""

from typing import Optional
import logging

from flask import current_app, has_app_context

from .allocation_types import AllocationRequest, VehicleCandidate
from .geo import distance_km

logger = logging.getLogger(__name__)

DEFAULT_COST_BUFFER = 1.10


class CostEstimator:
    """Straight-line cost estimate: (trip + approach distance) x rate x buffer"""

    def __init__(self, buffer: Optional[float] = None):
        self._buffer = buffer

    @property
    def buffer(self) -> float:
        if self._buffer is not None:
            return self._buffer
        if has_app_context():
            return current_app.config.get('ALLOCATION_COST_BUFFER', DEFAULT_COST_BUFFER)
        return DEFAULT_COST_BUFFER

    def estimate(self, candidate: VehicleCandidate, request: AllocationRequest) -> float:
        trip_distance = distance_km(
            request.pickup_latitude,
            request.pickup_longitude,
            request.drop_latitude,
            request.drop_longitude,
        )

        # Distance the vehicle covers to reach the pickup
        approach_distance = distance_km(
            candidate.current_latitude,
            candidate.current_longitude,
            request.pickup_latitude,
            request.pickup_longitude,
        )

        base_cost = (trip_distance + approach_distance) * candidate.rate_per_km
        estimated = round(base_cost * self.buffer, 2)

        logger.debug(f"Cost estimate for vehicle {candidate.vehicle_id}: trip={trip_distance:.2f}km "
                     f"approach={approach_distance:.2f}km rate={candidate.rate_per_km} -> {estimated}")
        return estimated
