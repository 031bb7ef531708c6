"""
Allocation Service

Finds the best vehicle/driver pair for a trip and reserves it:

    resolve rule -> fetch candidates -> score and rank -> reserve best
    (falling through to the next-ranked candidate on conflict) -> estimate
    cost -> record in ledger -> return result

``allocate`` never raises; every outcome, including store failures, comes
back as an AllocationResult so callers can branch on ``success``.
"""

from typing import Optional, Dict, Any, List
import logging
import time

from models import db
from .allocation_types import AllocationRequest, AllocationResult, ScoredCandidate
from .allocation_ledger import AllocationLedger, LedgerEntry
from .candidate_source import CandidateSource
from .cost_estimator import CostEstimator
from .exceptions import (AllocationError, AllocationErrorCode, AllocationExhausted,
                         NoCandidatesAvailable, ResourceConflict, RuleNotFound)
from .logging_service import LoggingService
from .reservation_service import ReservationCoordinator
from .rule_resolver import RuleResolver
from . import scoring

logger = logging.getLogger(__name__)


class AllocationService:
    """Service class for vehicle/driver allocation"""

    def __init__(self,
                 rule_resolver: Optional[RuleResolver] = None,
                 candidate_source: Optional[CandidateSource] = None,
                 reservations: Optional[ReservationCoordinator] = None,
                 cost_estimator: Optional[CostEstimator] = None,
                 ledger: Optional[AllocationLedger] = None):
        self.rule_resolver = rule_resolver or RuleResolver()
        self.candidate_source = candidate_source or CandidateSource()
        self.reservations = reservations or ReservationCoordinator()
        self.cost_estimator = cost_estimator or CostEstimator()
        self.ledger = ledger or AllocationLedger()
        self.logging_service = LoggingService()

    def allocate(self, request: AllocationRequest, actor_id: Optional[int] = None) -> AllocationResult:
        """
        Allocate the best available vehicle and driver for a trip.

        Args:
            request: Validated allocation request
            actor_id: ID of the user or integration making the allocation

        Returns:
            AllocationResult: success with vehicle/driver/score/cost, or failure with an error code
        """
        started = time.perf_counter()
        logger.info(f"Starting allocation for trip {request.trip_id}")

        try:
            result = self._allocate(request, actor_id)
        except AllocationError as e:
            result = AllocationResult.failure(e.code, self._failure_message(e.code), detail=e.message)
        except Exception as e:
            db.session.rollback()
            self.logging_service.log_error(e, context='allocate', user_id=actor_id,
                                           details={'trip_id': request.trip_id})
            result = AllocationResult.failure(
                AllocationErrorCode.ALLOCATION_FAILED,
                'Allocation failed',
                detail=f"{type(e).__name__}: {str(e)}",
            )

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        self.logging_service.log_business_operation(
            'allocate', 'trip', entity_id=request.trip_id, user_id=actor_id,
            details={
                'success': result.success,
                'error': result.error.value if result.error else None,
                'vehicle_id': result.vehicle['vehicle_id'] if result.vehicle else None,
                'driver_id': result.driver['driver_id'] if result.driver else None,
                'rule_used': result.rule_used,
                'reservation_attempts': result.reservation_attempts,
            },
            level=logging.INFO if result.success else logging.WARNING,
        )
        self.logging_service.log_performance_metric('allocation_duration', elapsed_ms, 'ms', operation='allocate')
        return result

    def _allocate(self, request: AllocationRequest, actor_id: Optional[int]) -> AllocationResult:
        # Step 1: Get allocation rule
        try:
            rule = self.rule_resolver.resolve(request)
        except RuleNotFound as e:
            return AllocationResult.failure(AllocationErrorCode.RULE_NOT_FOUND,
                                            'Allocation rule not found', detail=e.message)

        # Commits below expire ORM instances, so keep plain copies
        rule_id, rule_name = rule.id, rule.name

        # Step 2: Get available vehicle candidates
        candidates = self.candidate_source.fetch(request)
        if not candidates:
            return AllocationResult.failure(AllocationErrorCode.NO_CANDIDATES_AVAILABLE,
                                            'No available vehicles found',
                                            detail=NoCandidatesAvailable().message,
                                            rule_used=rule_name)

        # Step 3: Score and rank every candidate
        ranked = scoring.rank(candidates, request, rule)

        # Step 4: Reserve the best candidate still available
        winner, attempts = self._reserve_first_available(ranked, request)
        if winner is None:
            exhausted = AllocationExhausted(attempts)
            return AllocationResult.failure(exhausted.code, 'All matching vehicles were taken',
                                            detail=exhausted.message, rule_used=rule_name,
                                            candidates_considered=len(ranked),
                                            reservation_attempts=attempts)

        # Step 5: Calculate estimated cost
        estimated_cost = self.cost_estimator.estimate(winner.candidate, request)

        # Step 6: Log allocation
        allocation_log_id = self.ledger.record(LedgerEntry(
            trip_id=request.trip_id,
            vehicle_id=winner.candidate.vehicle_id,
            driver_id=winner.candidate.driver_id,
            rule_id=rule_id,
            rule_name=rule_name,
            allocation_score=winner.score.total_score,
            score_breakdown=winner.score.to_dict(),
            estimated_cost=estimated_cost,
            distance_from_pickup=round(winner.distance_km, 2),
            allocated_by=actor_id,
        ))

        # Step 7: Return result
        candidate = winner.candidate
        return AllocationResult(
            success=True,
            message='Vehicle and driver allocated successfully',
            vehicle={
                'vehicle_id': candidate.vehicle_id,
                'registration_number': candidate.registration_number,
                'make': candidate.make,
                'model': candidate.model,
                'category_name': candidate.category_name,
                'ownership_class': candidate.ownership_class.value,
                'current_location': candidate.current_location_name,
                'distance_from_pickup': round(winner.distance_km, 2),
                'fuel_level': candidate.fuel_level_percentage,
                'estimated_cost': estimated_cost,
            },
            driver={
                'driver_id': candidate.driver_id,
                'full_name': candidate.driver_name,
                'mobile_number': candidate.driver_mobile,
                'rating': candidate.driver_rating,
                'total_trips': candidate.driver_total_trips,
                'license_number': candidate.driver_license,
            },
            score=winner.score,
            estimated_cost=estimated_cost,
            allocation_log_id=allocation_log_id,
            rule_used=rule_name,
            candidates_considered=len(ranked),
            reservation_attempts=attempts,
        )

    def _reserve_first_available(self, ranked: List[ScoredCandidate], request: AllocationRequest):
        """Walk the ranked list until a reservation sticks. Returns (winner or None, attempts)."""
        attempts = 0
        for scored in ranked:
            attempts += 1
            try:
                self.reservations.reserve(scored.candidate.vehicle_id, scored.candidate.driver_id)
                return scored, attempts
            except ResourceConflict as e:
                logger.info(f"Trip {request.trip_id}: {e.message}; trying next candidate")
        return None, attempts

    @staticmethod
    def _failure_message(code: AllocationErrorCode) -> str:
        return {
            AllocationErrorCode.RULE_NOT_FOUND: 'Allocation rule not found',
            AllocationErrorCode.NO_CANDIDATES_AVAILABLE: 'No available vehicles found',
            AllocationErrorCode.ALLOCATION_EXHAUSTED: 'All matching vehicles were taken',
        }.get(code, 'Allocation failed')

    def release(self, vehicle_id: int, driver_id: int) -> None:
        """
        Release an allocated vehicle and driver (trip completed or cancelled).

        Idempotent. Ledger bookkeeping failures are logged and do not undo the release.
        """
        try:
            last_entry_id = self.ledger.latest_entry_id(vehicle_id, driver_id)
        except Exception as e:
            logger.error(f"Error reading ledger for vehicle {vehicle_id}, driver {driver_id}: {str(e)}")
            db.session.rollback()
            last_entry_id = None

        self.reservations.release(vehicle_id, driver_id)

        try:
            released_entries = 0
            if last_entry_id is not None:
                released_entries = self.ledger.mark_released(vehicle_id, driver_id, up_to_id=last_entry_id)
        except Exception as e:
            logger.error(f"Error marking ledger entries released for vehicle {vehicle_id}, driver {driver_id}: {str(e)}")
            released_entries = 0

        self.logging_service.log_business_operation(
            'release', 'vehicle', entity_id=vehicle_id,
            details={'driver_id': driver_id, 'ledger_entries_released': released_entries}
        )

    def history(self, trip_id: int) -> List[Dict[str, Any]]:
        """Get allocation history for a trip as dicts, most recent first"""
        return [entry.to_dict() for entry in self.ledger.history(trip_id)]
