"""
Value types exchanged at the allocation engine boundary.

Requests and candidates arrive as loosely-typed JSON payloads and database
rows; they are turned into these validated dataclasses before any scoring
happens, so the rest of the engine never sees an out-of-range coordinate or
an unknown ownership class.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from models import OwnershipClass, TripType
from timezone_utils import parse_to_ist_naive
from .exceptions import AllocationErrorCode, InvalidAllocationRequest


def _validate_coordinates(prefix: str, latitude: float, longitude: float, errors: List[str]):
    if not -90 <= latitude <= 90:
        errors.append(f"{prefix}_latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        errors.append(f"{prefix}_longitude must be between -180 and 180")


def _read_int(payload: Dict[str, Any], key: str, errors: List[str], required: bool = False) -> Optional[int]:
    value = payload.get(key)
    if value is None or value == '':
        if required:
            errors.append(f"{key} is required")
        return None
    if isinstance(value, bool):
        errors.append(f"{key} must be an integer")
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    errors.append(f"{key} must be an integer")
    return None


def _read_float(payload: Dict[str, Any], key: str, errors: List[str]) -> Optional[float]:
    value = payload.get(key)
    if value is None or value == '':
        errors.append(f"{key} is required")
        return None
    if isinstance(value, bool):
        errors.append(f"{key} must be a number")
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        errors.append(f"{key} must be a number")
        return None


@dataclass(frozen=True)
class AllocationRequest:
    """A trip that needs a vehicle and driver"""
    trip_id: int
    pickup_latitude: float
    pickup_longitude: float
    drop_latitude: float
    drop_longitude: float
    pickup_datetime: datetime
    vehicle_category_id: int
    company_id: Optional[int] = None
    trip_type: Optional[TripType] = None
    allocation_rule_id: Optional[int] = None
    passengers: int = 1
    pickup_location: Optional[str] = None
    drop_location: Optional[str] = None

    def __post_init__(self):
        errors: List[str] = []
        _validate_coordinates('pickup', self.pickup_latitude, self.pickup_longitude, errors)
        _validate_coordinates('drop', self.drop_latitude, self.drop_longitude, errors)
        if self.passengers < 1:
            errors.append("passengers must be at least 1")
        if self.trip_type is not None and not isinstance(self.trip_type, TripType):
            errors.append("trip_type must be a TripType")
        if errors:
            raise InvalidAllocationRequest(errors)

    @classmethod
    def from_dict(cls, payload: Optional[Dict[str, Any]]) -> 'AllocationRequest':
        """
        Build a request from a JSON payload.

        Accepts either ``trip_id`` or ``booking_id`` for the trip identifier.
        Collects every problem before raising so callers can report them together.

        Raises:
            InvalidAllocationRequest: listing each offending field
        """
        if not isinstance(payload, dict):
            raise InvalidAllocationRequest(["request body must be a JSON object"])

        errors: List[str] = []

        trip_key = 'trip_id' if payload.get('trip_id') is not None else 'booking_id'
        trip_id = _read_int(payload, trip_key, errors, required=False)
        if trip_id is None and not any(e.startswith(trip_key) for e in errors):
            errors.append("trip_id is required")

        pickup_latitude = _read_float(payload, 'pickup_latitude', errors)
        pickup_longitude = _read_float(payload, 'pickup_longitude', errors)
        drop_latitude = _read_float(payload, 'drop_latitude', errors)
        drop_longitude = _read_float(payload, 'drop_longitude', errors)

        pickup_datetime = None
        raw_pickup = payload.get('pickup_datetime')
        if not raw_pickup:
            errors.append("pickup_datetime is required")
        else:
            try:
                pickup_datetime = parse_to_ist_naive(raw_pickup)
            except ValueError:
                errors.append("pickup_datetime must be an ISO-8601 datetime")

        vehicle_category_id = _read_int(payload, 'vehicle_category_id', errors, required=True)
        company_id = _read_int(payload, 'company_id', errors)
        allocation_rule_id = _read_int(payload, 'allocation_rule_id', errors)

        passengers = _read_int(payload, 'passengers', errors)
        if passengers is None:
            passengers = 1

        trip_type = None
        raw_trip_type = payload.get('trip_type')
        if raw_trip_type:
            try:
                trip_type = TripType(str(raw_trip_type).lower())
            except ValueError:
                allowed = ', '.join(t.value for t in TripType)
                errors.append(f"trip_type must be one of: {allowed}")

        if errors:
            raise InvalidAllocationRequest(errors)

        return cls(
            trip_id=trip_id,
            pickup_latitude=pickup_latitude,
            pickup_longitude=pickup_longitude,
            drop_latitude=drop_latitude,
            drop_longitude=drop_longitude,
            pickup_datetime=pickup_datetime,
            vehicle_category_id=vehicle_category_id,
            company_id=company_id,
            trip_type=trip_type,
            allocation_rule_id=allocation_rule_id,
            passengers=passengers,
            pickup_location=payload.get('pickup_location'),
            drop_location=payload.get('drop_location'),
        )


@dataclass(frozen=True)
class VehicleCandidate:
    """An available vehicle together with the driver paired to it"""
    vehicle_id: int
    driver_id: int
    registration_number: str
    make: Optional[str]
    model: Optional[str]
    category_name: str
    ownership_class: OwnershipClass
    rate_per_km: float
    current_latitude: float
    current_longitude: float
    fuel_level_percentage: float
    driver_rating: float
    driver_total_trips: int
    current_location_name: Optional[str] = None
    driver_name: Optional[str] = None
    driver_mobile: Optional[str] = None
    driver_license: Optional[str] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    availability_score: float
    distance_score: float
    rating_score: float
    cost_score: float
    fuel_score: float
    total_score: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: VehicleCandidate
    score: ScoreBreakdown
    distance_km: float


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of one allocate() call; callers branch on ``success``"""
    success: bool
    message: str
    vehicle: Optional[Dict[str, Any]] = None
    driver: Optional[Dict[str, Any]] = None
    score: Optional[ScoreBreakdown] = None
    estimated_cost: Optional[float] = None
    allocation_log_id: Optional[int] = None
    rule_used: Optional[str] = None
    error: Optional[AllocationErrorCode] = None
    error_detail: Optional[str] = None
    candidates_considered: int = 0
    reservation_attempts: int = 0

    @classmethod
    def failure(cls, error: AllocationErrorCode, message: str, detail: Optional[str] = None,
                rule_used: Optional[str] = None, candidates_considered: int = 0,
                reservation_attempts: int = 0) -> 'AllocationResult':
        return cls(success=False, message=message, error=error, error_detail=detail,
                   rule_used=rule_used, candidates_considered=candidates_considered,
                   reservation_attempts=reservation_attempts)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'success': self.success,
            'message': self.message,
        }
        if self.success:
            data.update({
                'vehicle': self.vehicle,
                'driver': self.driver,
                'score': self.score.to_dict() if self.score else None,
                'estimated_cost': self.estimated_cost,
                'allocation_log_id': self.allocation_log_id,
                'rule_used': self.rule_used,
            })
        else:
            data['error'] = self.error.value if self.error else None
            if self.error_detail:
                data['error_detail'] = self.error_detail
            if self.rule_used:
                data['rule_used'] = self.rule_used
        data['candidates_considered'] = self.candidates_considered
        data['reservation_attempts'] = self.reservation_attempts
        return data
