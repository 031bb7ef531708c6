"""
Test configuration and fixtures for the fleet allocation service
"""

import pytest
import os
from datetime import datetime

# Set test environment before importing app
os.environ.update({
    'FLASK_ENV': 'testing',
    'TESTING': 'true',
    'SESSION_SECRET': 'test_secret_key_for_testing_only',
    'JWT_SECRET_KEY': 'test_jwt_secret_for_testing_only',
    'DATABASE_URL': 'sqlite:///:memory:'
})

from app import create_app, db
from models import (VehicleCategory, Vehicle, Driver, VehicleAvailability, DriverAvailability,
                    AllocationRule, AvailabilityStatus, OwnershipClass)
from services.allocation_types import AllocationRequest, VehicleCandidate
import factory
from factory import Faker

# Pickup/drop used throughout: Bengaluru city to the airport
PICKUP = (12.8456, 77.6603)
DROP = (13.1986, 77.7066)


@pytest.fixture(scope='function')
def app():
    """Create application for testing"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing"""
    yield db.session
    db.session.rollback()


# Factory classes for test data generation
class VehicleCategoryFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = VehicleCategory
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    name = factory.Sequence(lambda n: f"Category {n}")
    description = "Test category"
    is_active = True


class VehicleFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = Vehicle
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    category = factory.SubFactory(VehicleCategoryFactory)
    registration_number = factory.Sequence(lambda n: f"KA01AB{n:04d}")
    make = "Toyota"
    model = "Innova Crysta"
    seating_capacity = 6
    ownership_class = OwnershipClass.OWN
    rate_per_km = 15.0
    is_active = True


class DriverFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = Driver
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    full_name = Faker('name')
    mobile_number = factory.Sequence(lambda n: f"98450{n:05d}")
    license_number = factory.Sequence(lambda n: f"KA0120{n:08d}")
    rating_average = 4.5
    total_trips = 120
    is_active = True


class VehicleAvailabilityFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = VehicleAvailability
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    vehicle = factory.SubFactory(VehicleFactory)
    paired_driver = factory.SubFactory(DriverFactory)
    status = AvailabilityStatus.AVAILABLE
    current_location_name = Faker('street_name')
    current_latitude = 12.9
    current_longitude = 77.6
    fuel_level_percentage = 80.0


class DriverAvailabilityFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = DriverAvailability
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    driver = factory.SubFactory(DriverFactory)
    status = AvailabilityStatus.AVAILABLE
    is_on_duty = True


class AllocationRuleFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = AllocationRule
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    name = factory.Sequence(lambda n: f"Rule {n}")
    weight_availability = 1.5
    weight_distance = 1.3
    weight_rating = 1.2
    weight_cost = 1.0
    weight_fuel = 1.0
    priority_order = 0
    is_active = True


def create_available_pair(category, latitude=12.9, longitude=77.6, fuel_level=80.0, rating=4.5,
                          ownership_class=OwnershipClass.OWN, rate_per_km=15.0, seating_capacity=6,
                          on_duty=True):
    """Create a vehicle and its driver, both available. Returns (vehicle_id, driver_id)."""
    driver = DriverFactory(rating_average=rating)
    vehicle = VehicleFactory(category=category, ownership_class=ownership_class,
                             rate_per_km=rate_per_km, seating_capacity=seating_capacity)
    VehicleAvailabilityFactory(vehicle=vehicle, paired_driver=driver, current_latitude=latitude,
                               current_longitude=longitude, fuel_level_percentage=fuel_level)
    DriverAvailabilityFactory(driver=driver, is_on_duty=on_duty)
    return vehicle.id, driver.id


def make_request(vehicle_category_id, **overrides):
    """Build an AllocationRequest for the standard pickup/drop"""
    values = {
        'trip_id': 1001,
        'pickup_latitude': PICKUP[0],
        'pickup_longitude': PICKUP[1],
        'drop_latitude': DROP[0],
        'drop_longitude': DROP[1],
        'pickup_datetime': datetime(2025, 1, 15, 9, 0),
        'vehicle_category_id': vehicle_category_id,
    }
    values.update(overrides)
    return AllocationRequest(**values)


def make_candidate(**overrides):
    """Build an in-memory VehicleCandidate"""
    values = {
        'vehicle_id': 1,
        'driver_id': 1,
        'registration_number': 'KA01AB0001',
        'make': 'Toyota',
        'model': 'Innova Crysta',
        'category_name': 'SUV',
        'ownership_class': OwnershipClass.OWN,
        'rate_per_km': 15.0,
        'current_latitude': 12.9,
        'current_longitude': 77.6,
        'fuel_level_percentage': 80.0,
        'driver_rating': 4.5,
        'driver_total_trips': 120,
    }
    values.update(overrides)
    return VehicleCandidate(**values)


@pytest.fixture
def category(db_session):
    """Create test vehicle category"""
    return VehicleCategoryFactory(name='SUV')


@pytest.fixture
def available_pair(category):
    """One available vehicle/driver pair 8.9 km from the pickup"""
    return create_available_pair(category)
