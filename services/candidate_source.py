"""
Candidate Source

Reads the pool of vehicle/driver pairs that can take a trip right now.
Results are a fresh snapshot per call and may already be stale by the time
they are reserved; the reservation step is what guarantees exclusivity.
"""

from typing import List
import logging
from sqlalchemy import or_

from models import (db, Vehicle, VehicleCategory, VehicleAvailability, Driver,
                    DriverAvailability, AvailabilityStatus)
from .allocation_types import AllocationRequest, VehicleCandidate
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)


class CandidateSource:
    """Queries the availability store for allocation candidates"""

    @TransactionHelper.with_connection_retry()
    def fetch(self, request: AllocationRequest) -> List[VehicleCandidate]:
        """
        Get available vehicles of the requested category paired with an
        available, on-duty driver.

        Args:
            request: Trip being allocated

        Returns:
            List of candidates in availability-record order (empty when nothing matches)
        """
        rows = db.session.query(VehicleAvailability, Vehicle, VehicleCategory, DriverAvailability, Driver) \
            .join(Vehicle, Vehicle.id == VehicleAvailability.vehicle_id) \
            .join(VehicleCategory, VehicleCategory.id == Vehicle.category_id) \
            .join(DriverAvailability, DriverAvailability.driver_id == VehicleAvailability.driver_id) \
            .join(Driver, Driver.id == VehicleAvailability.driver_id) \
            .filter(
                VehicleAvailability.status == AvailabilityStatus.AVAILABLE,
                Vehicle.category_id == request.vehicle_category_id,
                Vehicle.is_active.is_(True),
                DriverAvailability.status == AvailabilityStatus.AVAILABLE,
                DriverAvailability.is_on_duty.is_(True),
                Driver.is_active.is_(True),
                or_(Vehicle.seating_capacity.is_(None), Vehicle.seating_capacity >= request.passengers)
            ) \
            .order_by(VehicleAvailability.id) \
            .all()

        candidates = [self._to_candidate(*row) for row in rows]
        logger.debug(f"Trip {request.trip_id}: {len(candidates)} candidates in category {request.vehicle_category_id}")
        return candidates

    @staticmethod
    def _to_candidate(availability: VehicleAvailability, vehicle: Vehicle, category: VehicleCategory,
                      driver_availability: DriverAvailability, driver: Driver) -> VehicleCandidate:
        return VehicleCandidate(
            vehicle_id=vehicle.id,
            driver_id=driver.id,
            registration_number=vehicle.registration_number,
            make=vehicle.make,
            model=vehicle.model,
            category_name=category.name,
            ownership_class=vehicle.ownership_class,
            rate_per_km=vehicle.rate_per_km or 0.0,
            current_latitude=availability.current_latitude,
            current_longitude=availability.current_longitude,
            fuel_level_percentage=availability.fuel_level_percentage or 0.0,
            driver_rating=driver.rating_average or 0.0,
            driver_total_trips=driver.total_trips or 0,
            current_location_name=availability.current_location_name,
            driver_name=driver.full_name,
            driver_mobile=driver.mobile_number,
            driver_license=driver.license_number,
        )
