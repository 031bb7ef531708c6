"""
Allocation Ledger

Audit trail of allocation decisions: which rule was used, the score
breakdown, the estimated cost and the resulting vehicle/driver pair.

The reservation is the source of truth for resource state; the ledger only
records it. A failed or slow ledger write is logged and never undoes a
reservation or holds the caller past the configured timeout.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import logging
import threading
from flask import current_app
from sqlalchemy import func, update

from models import db, AllocationLog, AllocationStatus
from timezone_utils import get_ist_time_naive
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_TIMEOUT = 2.0


@dataclass(frozen=True)
class LedgerEntry:
    trip_id: int
    vehicle_id: int
    driver_id: int
    rule_id: Optional[int]
    rule_name: str
    allocation_score: float
    score_breakdown: Dict[str, Any] = field(default_factory=dict)
    estimated_cost: Optional[float] = None
    distance_from_pickup: Optional[float] = None
    allocated_by: Optional[int] = None


class AllocationLedger:
    """Service class for the allocation audit trail"""

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        return current_app.config.get('ALLOCATION_LEDGER_TIMEOUT', DEFAULT_LEDGER_TIMEOUT)

    def record(self, entry: LedgerEntry) -> Optional[int]:
        """
        Append a ledger entry.

        The write runs on its own thread with its own application context and
        session; the caller waits at most ``timeout`` seconds for it.

        Args:
            entry: Decision to record

        Returns:
            int: ID of the new AllocationLog row, or None if the write failed or timed out
        """
        app = current_app._get_current_object()
        outcome: Dict[str, Any] = {}

        def _run():
            try:
                outcome['id'] = self._write_entry(app, entry)
            except Exception as e:
                outcome['error'] = e

        writer = threading.Thread(target=_run, name=f"ledger-trip-{entry.trip_id}", daemon=True)
        writer.start()
        writer.join(self.timeout)

        if writer.is_alive():
            logger.warning(f"Ledger write for trip {entry.trip_id} still running after {self.timeout}s; "
                           f"continuing without a ledger id")
            return None

        if 'error' in outcome:
            logger.error(f"Error logging allocation for trip {entry.trip_id}: {str(outcome['error'])}")
            return None

        return outcome.get('id')

    @staticmethod
    def _write_entry(app, entry: LedgerEntry) -> int:
        with app.app_context():
            try:
                log = AllocationLog()
                log.trip_id = entry.trip_id
                log.vehicle_id = entry.vehicle_id
                log.driver_id = entry.driver_id
                log.allocation_rule_id = entry.rule_id
                log.rule_name = entry.rule_name
                log.allocation_score = entry.allocation_score
                log.set_score_breakdown(entry.score_breakdown)
                log.estimated_cost = entry.estimated_cost
                log.distance_from_pickup = entry.distance_from_pickup
                log.allocation_status = AllocationStatus.ALLOCATED
                log.allocated_by = entry.allocated_by
                log.allocated_at = get_ist_time_naive()

                db.session.add(log)
                db.session.flush()
                log_id = log.id
                db.session.commit()

                logger.debug(f"Allocation logged: trip {entry.trip_id} -> log {log_id}")
                return log_id
            except Exception:
                db.session.rollback()
                raise

    @staticmethod
    def history(trip_id: int) -> List[AllocationLog]:
        """
        Get allocation history for a trip, most recent first.

        Args:
            trip_id: ID of the trip (booking)

        Returns:
            List of AllocationLog records
        """
        return AllocationLog.query.filter_by(trip_id=trip_id) \
                                  .order_by(AllocationLog.allocated_at.desc(), AllocationLog.id.desc()) \
                                  .all()

    @staticmethod
    def latest_entry_id(vehicle_id: int, driver_id: int) -> Optional[int]:
        """Highest ledger id recorded for a vehicle/driver pair, or None"""
        return db.session.query(func.max(AllocationLog.id)) \
                         .filter(AllocationLog.vehicle_id == vehicle_id,
                                 AllocationLog.driver_id == driver_id) \
                         .scalar()

    @staticmethod
    @TransactionHelper.with_transaction
    def mark_released(vehicle_id: int, driver_id: int, up_to_id: Optional[int] = None) -> int:
        """
        Move this pair's open ledger entries from allocated to released.

        Args:
            up_to_id: Only touch entries with an id at or below this one, so an
                allocation recorded after the release began stays open

        Returns:
            int: Number of entries changed
        """
        statement = update(AllocationLog).where(
            AllocationLog.vehicle_id == vehicle_id,
            AllocationLog.driver_id == driver_id,
            AllocationLog.allocation_status == AllocationStatus.ALLOCATED
        )
        if up_to_id is not None:
            statement = statement.where(AllocationLog.id <= up_to_id)
        result = db.session.execute(
            statement
            .values(allocation_status=AllocationStatus.RELEASED, released_at=get_ist_time_naive())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
