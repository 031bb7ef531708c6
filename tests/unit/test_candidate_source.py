"""
Unit tests for candidate lookup
"""

from models import VehicleAvailability, DriverAvailability, Vehicle, AvailabilityStatus, OwnershipClass, db
from services.candidate_source import CandidateSource
from tests.conftest import VehicleCategoryFactory, create_available_pair, make_request


class TestCandidateSource:
    """Test filtering of the availability pool"""

    def test_returns_available_pair(self, category, available_pair):
        vehicle_id, driver_id = available_pair

        candidates = CandidateSource().fetch(make_request(category.id))

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.vehicle_id == vehicle_id
        assert candidate.driver_id == driver_id
        assert candidate.category_name == 'SUV'
        assert candidate.ownership_class == OwnershipClass.OWN
        assert candidate.rate_per_km == 15.0
        assert candidate.driver_rating == 4.5
        assert candidate.current_latitude == 12.9

    def test_empty_pool(self, category):
        assert CandidateSource().fetch(make_request(category.id)) == []

    def test_filters_other_category(self, category, available_pair):
        other = VehicleCategoryFactory(name='Sedan')
        assert CandidateSource().fetch(make_request(other.id)) == []

    def test_excludes_reserved_vehicle(self, category, available_pair, db_session):
        vehicle_id, _ = available_pair
        VehicleAvailability.query.filter_by(vehicle_id=vehicle_id).update({'status': AvailabilityStatus.RESERVED})
        db_session.commit()

        assert CandidateSource().fetch(make_request(category.id)) == []

    def test_excludes_reserved_driver(self, category, available_pair, db_session):
        _, driver_id = available_pair
        DriverAvailability.query.filter_by(driver_id=driver_id).update({'status': AvailabilityStatus.RESERVED})
        db_session.commit()

        assert CandidateSource().fetch(make_request(category.id)) == []

    def test_excludes_off_duty_driver(self, category):
        create_available_pair(category, on_duty=False)
        assert CandidateSource().fetch(make_request(category.id)) == []

    def test_excludes_inactive_vehicle(self, category, available_pair, db_session):
        vehicle_id, _ = available_pair
        db.session.get(Vehicle, vehicle_id).is_active = False
        db_session.commit()

        assert CandidateSource().fetch(make_request(category.id)) == []

    def test_seating_capacity(self, category):
        small_id, _ = create_available_pair(category, seating_capacity=4)
        large_id, _ = create_available_pair(category, seating_capacity=7)

        candidates = CandidateSource().fetch(make_request(category.id, passengers=6))

        assert [c.vehicle_id for c in candidates] == [large_id]
        assert small_id not in [c.vehicle_id for c in candidates]

    def test_ordered_by_availability_record(self, category):
        first, _ = create_available_pair(category, latitude=13.0)
        second, _ = create_available_pair(category, latitude=12.85)

        candidates = CandidateSource().fetch(make_request(category.id))

        assert [c.vehicle_id for c in candidates] == [first, second]
