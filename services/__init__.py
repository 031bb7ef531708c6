"""
Service Layer Architecture

This package contains the allocation engine. Route handlers and the CLI call
into services; services own transactions and logging. Services provide:

1. **Transaction Management**: Atomic reservation with proper rollback
2. **Business Logic Separation**: Scoring and rule resolution are pure and independent of Flask
3. **Testability**: Each stage can be unit tested on its own
4. **Error Handling**: Structured failure results instead of exceptions at the boundary

Services Architecture:
- **AllocationService**: End-to-end allocation, release and history
- **RuleResolver**: Picks the scoring weights for a request
- **CandidateSource**: Reads available vehicle/driver pairs
- **scoring**: Sub-scores, composite score and ranking
- **CostEstimator**: Trip cost estimate for the winner
- **ReservationCoordinator**: Atomic reserve/release of a vehicle+driver pair
- **AllocationLedger**: Audit trail of allocation decisions
"""

from .allocation_service import AllocationService
from .allocation_types import (AllocationRequest, AllocationResult, VehicleCandidate,
                               ScoreBreakdown, ScoredCandidate)
from .allocation_ledger import AllocationLedger, LedgerEntry
from .candidate_source import CandidateSource
from .cost_estimator import CostEstimator
from .exceptions import (AllocationError, AllocationErrorCode, RuleNotFound, NoCandidatesAvailable,
                         ResourceConflict, AllocationExhausted, InvalidAllocationRequest)
from .reservation_service import ReservationCoordinator
from .rule_resolver import RuleResolver
from .transaction_helper import TransactionHelper

__all__ = [
    'AllocationService',
    'AllocationRequest',
    'AllocationResult',
    'VehicleCandidate',
    'ScoreBreakdown',
    'ScoredCandidate',
    'AllocationLedger',
    'LedgerEntry',
    'CandidateSource',
    'CostEstimator',
    'AllocationError',
    'AllocationErrorCode',
    'RuleNotFound',
    'NoCandidatesAvailable',
    'ResourceConflict',
    'AllocationExhausted',
    'InvalidAllocationRequest',
    'ReservationCoordinator',
    'RuleResolver',
    'TransactionHelper'
]
