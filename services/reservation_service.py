"""
Reservation Service

Moves a vehicle and its driver between ``available`` and ``reserved``.

Reservation is a compare-and-set on the status columns: each UPDATE only
matches a row that is still available, and both UPDATEs run in one
transaction. If either matches nothing the transaction is rolled back, so a
reservation is all-or-nothing and two allocations can never hold the same
vehicle or driver.
"""

from typing import Optional, Tuple
import logging
from sqlalchemy import update

from models import db, VehicleAvailability, DriverAvailability, AvailabilityStatus
from timezone_utils import get_ist_time_naive
from .exceptions import ResourceConflict
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)


def _set_status(model, key_column, key, new_status: AvailabilityStatus,
                expected: Optional[AvailabilityStatus] = None) -> int:
    statement = update(model).where(key_column == key)
    if expected is not None:
        statement = statement.where(model.status == expected)
    statement = statement.values(status=new_status, updated_at=get_ist_time_naive()) \
                         .execution_options(synchronize_session=False)
    return db.session.execute(statement).rowcount


class ReservationCoordinator:
    """Atomic reserve/release of vehicle+driver pairs"""

    @TransactionHelper.with_connection_retry()
    def reserve(self, vehicle_id: int, driver_id: int) -> None:
        """
        Reserve a vehicle and driver together.

        Raises:
            ResourceConflict: if either is no longer available; nothing is changed
        """
        try:
            reserved = _set_status(VehicleAvailability, VehicleAvailability.vehicle_id, vehicle_id,
                                   AvailabilityStatus.RESERVED, expected=AvailabilityStatus.AVAILABLE)
            if reserved != 1:
                raise ResourceConflict(vehicle_id, driver_id, 'vehicle')

            reserved = _set_status(DriverAvailability, DriverAvailability.driver_id, driver_id,
                                   AvailabilityStatus.RESERVED, expected=AvailabilityStatus.AVAILABLE)
            if reserved != 1:
                raise ResourceConflict(vehicle_id, driver_id, 'driver')

            db.session.commit()
        except ResourceConflict as e:
            db.session.rollback()
            logger.info(f"Reservation conflict: {e.message}")
            raise
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Reserved vehicle {vehicle_id} with driver {driver_id}")

    @TransactionHelper.with_connection_retry()
    @TransactionHelper.with_transaction
    def release(self, vehicle_id: int, driver_id: int) -> Tuple[int, int]:
        """
        Mark a vehicle and driver available again.

        Unconditional and idempotent: releasing an already-available pair is a no-op.

        Returns:
            tuple: (vehicle rows updated, driver rows updated)
        """
        vehicle_rows = _set_status(VehicleAvailability, VehicleAvailability.vehicle_id, vehicle_id,
                                   AvailabilityStatus.AVAILABLE)
        driver_rows = _set_status(DriverAvailability, DriverAvailability.driver_id, driver_id,
                                  AvailabilityStatus.AVAILABLE)

        if not vehicle_rows:
            logger.warning(f"Release: no availability record for vehicle {vehicle_id}")
        if not driver_rows:
            logger.warning(f"Release: no availability record for driver {driver_id}")

        logger.info(f"Released vehicle {vehicle_id} and driver {driver_id}")
        return vehicle_rows, driver_rows

    @staticmethod
    def current_status(vehicle_id: int, driver_id: int) -> Tuple[Optional[AvailabilityStatus], Optional[AvailabilityStatus]]:
        """Read the stored status of a vehicle and driver (None when there is no record)"""
        vehicle_status = db.session.query(VehicleAvailability.status) \
                                   .filter(VehicleAvailability.vehicle_id == vehicle_id).scalar()
        driver_status = db.session.query(DriverAvailability.status) \
                                  .filter(DriverAvailability.driver_id == driver_id).scalar()
        return vehicle_status, driver_status
