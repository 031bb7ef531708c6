"""
Integration tests for concurrent allocation against a shared database
"""

import threading
import pytest

from app import create_app, db
from models import AllocationLog, AllocationStatus, AvailabilityStatus
from services.allocation_service import AllocationService
from services.exceptions import AllocationErrorCode
from services.reservation_service import ReservationCoordinator
from tests.conftest import VehicleCategoryFactory, create_available_pair, make_request

WORKERS = 6


@pytest.fixture
def file_app(tmp_path):
    """Application backed by a file database so that threads get separate connections"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'allocation_race.db'}",
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def run_in_threads(app, tasks):
    """Run each task on its own thread inside an app context, all released at once"""
    barrier = threading.Barrier(len(tasks), timeout=10)
    results = [None] * len(tasks)
    errors = []

    def worker(index, task):
        try:
            with app.app_context():
                barrier.wait()
                results[index] = task(index)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i, task)) for i, task in enumerate(tasks)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert not errors
    return results


def allocate_task(request):
    return lambda index: AllocationService().allocate(request, actor_id=index)


def release_task(vehicle_id, driver_id):
    def release(index):
        AllocationService().release(vehicle_id, driver_id)
        return 'released'
    return release


def run_concurrently(app, requests):
    """Run one allocate() per request on its own thread"""
    results = run_in_threads(app, [allocate_task(request) for request in requests])
    assert all(result is not None for result in results)
    return results


class TestConcurrentAllocation:
    """A vehicle or driver is never handed to two allocations"""

    def test_single_candidate_race(self, file_app):
        category = VehicleCategoryFactory(name='SUV')
        vehicle_id, driver_id = create_available_pair(category)
        category_id = category.id
        requests = [make_request(category_id, trip_id=7000 + i) for i in range(WORKERS)]

        results = run_concurrently(file_app, requests)

        winners = [r for r in results if r.success]
        losers = [r for r in results if not r.success]
        assert len(winners) == 1
        assert winners[0].vehicle['vehicle_id'] == vehicle_id
        assert {r.error for r in losers} <= {AllocationErrorCode.ALLOCATION_EXHAUSTED,
                                            AllocationErrorCode.NO_CANDIDATES_AVAILABLE}

        assert ReservationCoordinator.current_status(vehicle_id, driver_id) == \
            (AvailabilityStatus.RESERVED, AvailabilityStatus.RESERVED)
        assert AllocationLog.query.count() == 1

    def test_every_winner_gets_a_distinct_pair(self, file_app):
        category = VehicleCategoryFactory(name='Sedan')
        for latitude in (12.86, 12.88, 12.90):
            create_available_pair(category, latitude=latitude)
        category_id = category.id
        requests = [make_request(category_id, trip_id=8000 + i) for i in range(WORKERS)]

        results = run_concurrently(file_app, requests)

        winners = [r for r in results if r.success]
        assert len(winners) == 3
        assert len({r.vehicle['vehicle_id'] for r in winners}) == 3
        assert len({r.driver['driver_id'] for r in winners}) == 3
        assert all(r.error in (AllocationErrorCode.ALLOCATION_EXHAUSTED,
                               AllocationErrorCode.NO_CANDIDATES_AVAILABLE)
                   for r in results if not r.success)


class TestConcurrentRelease:
    """Release is safe against itself and against in-flight allocations"""

    def test_concurrent_releases(self, file_app):
        category = VehicleCategoryFactory(name='SUV')
        vehicle_id, driver_id = create_available_pair(category)
        allocated = AllocationService().allocate(make_request(category.id, trip_id=9100), actor_id=1)
        assert allocated.success

        results = run_in_threads(file_app, [release_task(vehicle_id, driver_id) for _ in range(WORKERS)])

        assert results == ['released'] * WORKERS
        db.session.expire_all()
        assert ReservationCoordinator.current_status(vehicle_id, driver_id) == \
            (AvailabilityStatus.AVAILABLE, AvailabilityStatus.AVAILABLE)
        entry = db.session.get(AllocationLog, allocated.allocation_log_id)
        assert entry.allocation_status == AllocationStatus.RELEASED

    def test_release_during_allocations(self, file_app):
        category = VehicleCategoryFactory(name='Sedan')
        vehicle_id, driver_id = create_available_pair(category)
        category_id = category.id
        allocated = AllocationService().allocate(make_request(category_id, trip_id=9200), actor_id=1)
        assert allocated.success

        tasks = [release_task(vehicle_id, driver_id)]
        tasks += [allocate_task(make_request(category_id, trip_id=9300 + i)) for i in range(WORKERS - 1)]
        results = run_in_threads(file_app, tasks)

        assert results[0] == 'released'
        winners = [r for r in results[1:] if r.success]
        assert len(winners) <= 1
        assert all(r.error in (AllocationErrorCode.ALLOCATION_EXHAUSTED,
                               AllocationErrorCode.NO_CANDIDATES_AVAILABLE)
                   for r in results[1:] if not r.success)

        db.session.expire_all()
        status = ReservationCoordinator.current_status(vehicle_id, driver_id)
        if winners:
            assert status == (AvailabilityStatus.RESERVED, AvailabilityStatus.RESERVED)
            winner_entry = db.session.get(AllocationLog, winners[0].allocation_log_id)
            assert winner_entry.allocation_status == AllocationStatus.ALLOCATED
        else:
            assert status == (AvailabilityStatus.AVAILABLE, AvailabilityStatus.AVAILABLE)
        assert AllocationLog.query.count() == 1 + len(winners)
        assert db.session.get(AllocationLog, allocated.allocation_log_id).allocation_status == \
            AllocationStatus.RELEASED
