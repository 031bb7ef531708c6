"""
Allocation engine exceptions.

Every exception carries an AllocationErrorCode so that the orchestration
layer can turn it into a structured result without string matching.
"""

from enum import Enum
from typing import List, Optional


class AllocationErrorCode(Enum):
    RULE_NOT_FOUND = 'RULE_NOT_FOUND'
    NO_CANDIDATES_AVAILABLE = 'NO_CANDIDATES_AVAILABLE'
    RESOURCE_CONFLICT = 'RESOURCE_CONFLICT'
    ALLOCATION_EXHAUSTED = 'ALLOCATION_EXHAUSTED'
    ALLOCATION_FAILED = 'ALLOCATION_FAILED'
    INVALID_REQUEST = 'INVALID_REQUEST'


class AllocationError(Exception):
    """Base class for allocation engine failures"""

    code = AllocationErrorCode.ALLOCATION_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RuleNotFound(AllocationError):
    """An explicitly requested rule does not exist or is inactive"""

    code = AllocationErrorCode.RULE_NOT_FOUND

    def __init__(self, rule_id: int):
        super().__init__(f"Allocation rule {rule_id} not found or inactive")
        self.rule_id = rule_id


class NoCandidatesAvailable(AllocationError):
    code = AllocationErrorCode.NO_CANDIDATES_AVAILABLE

    def __init__(self, message: str = "No vehicles match the criteria or all vehicles are busy"):
        super().__init__(message)


class ResourceConflict(AllocationError):
    """Lost the race: the vehicle or the driver is no longer available"""

    code = AllocationErrorCode.RESOURCE_CONFLICT

    def __init__(self, vehicle_id: int, driver_id: int, resource: str):
        super().__init__(f"{resource.capitalize()} no longer available "
                         f"(vehicle {vehicle_id}, driver {driver_id})")
        self.vehicle_id = vehicle_id
        self.driver_id = driver_id
        self.resource = resource


class AllocationExhausted(AllocationError):
    code = AllocationErrorCode.ALLOCATION_EXHAUSTED

    def __init__(self, attempted: int):
        super().__init__(f"All {attempted} ranked candidates were reserved by concurrent allocations")
        self.attempted = attempted


class InvalidAllocationRequest(AllocationError):
    code = AllocationErrorCode.INVALID_REQUEST

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message or "Invalid allocation request: " + "; ".join(errors))
        self.errors = errors
