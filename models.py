import json
from app import db
from sqlalchemy import Index, CheckConstraint
from enum import Enum
from timezone_utils import get_ist_time_naive

# Enums for better data integrity
class AvailabilityStatus(Enum):
    AVAILABLE = 'available'
    RESERVED = 'reserved'

class OwnershipClass(Enum):
    OWN = 'own'
    ATTACHED = 'attached'
    RENTAL = 'rental'

class TripType(Enum):
    REGULAR = 'regular'
    EMERGENCY = 'emergency'
    CORPORATE = 'corporate'
    SHUTTLE = 'shuttle'

class AllocationStatus(Enum):
    ALLOCATED = 'allocated'
    RELEASED = 'released'


class VehicleCategory(db.Model):
    __tablename__ = 'vehicle_categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, unique=True)  # Sedan, SUV, Tempo Traveller
    description = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=get_ist_time_naive)

    vehicles = db.relationship('Vehicle', backref='category', lazy=True)

    def __repr__(self):
        return f'<VehicleCategory {self.name}>'

class Vehicle(db.Model):
    __tablename__ = 'vehicles'

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey('vehicle_categories.id'), nullable=False, index=True)

    registration_number = db.Column(db.String(20), unique=True, nullable=False, index=True)
    make = db.Column(db.String(50))
    model = db.Column(db.String(100))
    seating_capacity = db.Column(db.Integer)

    ownership_class = db.Column(db.Enum(OwnershipClass), nullable=False, default=OwnershipClass.OWN)
    rate_per_km = db.Column(db.Float, nullable=False, default=0.0)

    is_active = db.Column(db.Boolean, default=True, index=True)
    created_at = db.Column(db.DateTime, default=get_ist_time_naive)
    updated_at = db.Column(db.DateTime, default=get_ist_time_naive, onupdate=get_ist_time_naive)

    availability = db.relationship('VehicleAvailability', backref='vehicle', uselist=False)

    __table_args__ = (
        CheckConstraint('rate_per_km >= 0', name='check_rate_per_km_positive'),
        CheckConstraint('seating_capacity IS NULL OR seating_capacity > 0', name='check_seating_capacity_positive'),
    )

    def __repr__(self):
        return f'<Vehicle {self.registration_number}>'

class Driver(db.Model):
    __tablename__ = 'drivers'

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(100), nullable=False, index=True)
    mobile_number = db.Column(db.String(20))
    license_number = db.Column(db.String(50), unique=True, index=True)

    # Performance metrics
    rating_average = db.Column(db.Float, default=0.0)
    total_trips = db.Column(db.Integer, default=0)

    is_active = db.Column(db.Boolean, default=True, index=True)
    created_at = db.Column(db.DateTime, default=get_ist_time_naive)
    updated_at = db.Column(db.DateTime, default=get_ist_time_naive, onupdate=get_ist_time_naive)

    availability = db.relationship('DriverAvailability', backref='driver', uselist=False)

    __table_args__ = (
        CheckConstraint('rating_average >= 0 AND rating_average <= 5', name='check_rating_range'),
    )

    def __repr__(self):
        return f'<Driver {self.full_name}>'

class VehicleAvailability(db.Model):
    """Live status of a vehicle and the driver currently paired with it"""
    __tablename__ = 'vehicle_availability'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id'), nullable=False, unique=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=False, index=True)

    status = db.Column(db.Enum(AvailabilityStatus), nullable=False, default=AvailabilityStatus.AVAILABLE, index=True)

    current_location_name = db.Column(db.String(255))
    current_latitude = db.Column(db.Float, nullable=False)
    current_longitude = db.Column(db.Float, nullable=False)
    fuel_level_percentage = db.Column(db.Float, default=100.0)

    updated_at = db.Column(db.DateTime, default=get_ist_time_naive, onupdate=get_ist_time_naive)

    paired_driver = db.relationship('Driver', foreign_keys=[driver_id])

    __table_args__ = (
        Index('idx_vehicle_availability_status_driver', 'status', 'driver_id'),
        CheckConstraint('current_latitude >= -90 AND current_latitude <= 90', name='check_vehicle_latitude_range'),
        CheckConstraint('current_longitude >= -180 AND current_longitude <= 180', name='check_vehicle_longitude_range'),
        CheckConstraint('fuel_level_percentage IS NULL OR (fuel_level_percentage >= 0 AND fuel_level_percentage <= 100)',
                        name='check_fuel_level_range'),
    )

    def __repr__(self):
        return f'<VehicleAvailability vehicle:{self.vehicle_id} {self.status.value}>'

class DriverAvailability(db.Model):
    __tablename__ = 'driver_availability'

    id = db.Column(db.Integer, primary_key=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=False, unique=True)

    status = db.Column(db.Enum(AvailabilityStatus), nullable=False, default=AvailabilityStatus.AVAILABLE, index=True)
    is_on_duty = db.Column(db.Boolean, default=False, index=True)

    updated_at = db.Column(db.DateTime, default=get_ist_time_naive, onupdate=get_ist_time_naive)

    def __repr__(self):
        return f'<DriverAvailability driver:{self.driver_id} {self.status.value}>'

class AllocationRule(db.Model):
    """Operator-configured scoring weights plus the conditions under which they apply"""
    __tablename__ = 'allocation_rules'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text)

    weight_availability = db.Column(db.Float, nullable=False, default=1.0)
    weight_distance = db.Column(db.Float, nullable=False, default=1.0)
    weight_rating = db.Column(db.Float, nullable=False, default=1.0)
    weight_cost = db.Column(db.Float, nullable=False, default=1.0)
    weight_fuel = db.Column(db.Float, nullable=False, default=1.0)

    priority_order = db.Column(db.Integer, nullable=False, default=0, index=True)

    # Conditions (both empty = generic rule)
    company_id = db.Column(db.Integer, index=True)
    trip_type = db.Column(db.Enum(TripType), index=True)

    is_active = db.Column(db.Boolean, default=True, index=True)
    created_at = db.Column(db.DateTime, default=get_ist_time_naive)
    updated_at = db.Column(db.DateTime, default=get_ist_time_naive, onupdate=get_ist_time_naive)

    __table_args__ = (
        Index('idx_allocation_rule_active_priority', 'is_active', 'priority_order'),
        CheckConstraint('weight_availability >= 0 AND weight_distance >= 0 AND weight_rating >= 0 '
                        'AND weight_cost >= 0 AND weight_fuel >= 0', name='check_rule_weights_non_negative'),
        CheckConstraint('weight_availability + weight_distance + weight_rating + weight_cost + weight_fuel > 0',
                        name='check_rule_weights_positive_sum'),
    )

    @property
    def weights(self):
        return {
            'availability': self.weight_availability,
            'distance': self.weight_distance,
            'rating': self.weight_rating,
            'cost': self.weight_cost,
            'fuel': self.weight_fuel,
        }

    @property
    def is_generic(self):
        return self.company_id is None and self.trip_type is None

    def __repr__(self):
        return f'<AllocationRule {self.name} priority={self.priority_order}>'

class AllocationLog(db.Model):
    """Ledger of allocation decisions. Rows are append-only apart from the release transition."""
    __tablename__ = 'allocation_logs'

    id = db.Column(db.Integer, primary_key=True)
    trip_id = db.Column(db.Integer, nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id'), nullable=False, index=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=False, index=True)

    # Built-in fallback rule has no row, so rule_id may be empty; rule_name is always kept
    allocation_rule_id = db.Column(db.Integer, db.ForeignKey('allocation_rules.id'))
    rule_name = db.Column(db.String(100), nullable=False)

    allocation_score = db.Column(db.Float, nullable=False)
    score_breakdown = db.Column(db.Text)  # JSON
    estimated_cost = db.Column(db.Float)
    distance_from_pickup = db.Column(db.Float)

    allocation_status = db.Column(db.Enum(AllocationStatus), nullable=False, default=AllocationStatus.ALLOCATED, index=True)
    allocated_by = db.Column(db.Integer)
    allocated_at = db.Column(db.DateTime, default=get_ist_time_naive, nullable=False, index=True)
    released_at = db.Column(db.DateTime)

    vehicle = db.relationship('Vehicle')
    driver = db.relationship('Driver')
    rule = db.relationship('AllocationRule')

    __table_args__ = (
        Index('idx_allocation_log_trip_allocated', 'trip_id', 'allocated_at'),
        Index('idx_allocation_log_pair_status', 'vehicle_id', 'driver_id', 'allocation_status'),
    )

    def get_score_breakdown(self):
        """Get score breakdown as dict"""
        if self.score_breakdown:
            try:
                return json.loads(self.score_breakdown)
            except json.JSONDecodeError:
                return {}
        return {}

    def set_score_breakdown(self, breakdown):
        self.score_breakdown = json.dumps(breakdown) if breakdown else None

    def to_dict(self):
        return {
            'allocation_log_id': self.id,
            'trip_id': self.trip_id,
            'vehicle_id': self.vehicle_id,
            'driver_id': self.driver_id,
            'allocation_rule_id': self.allocation_rule_id,
            'rule_name': self.rule_name,
            'allocation_score': self.allocation_score,
            'score_breakdown': self.get_score_breakdown(),
            'estimated_cost': self.estimated_cost,
            'distance_from_pickup': self.distance_from_pickup,
            'allocation_status': self.allocation_status.value,
            'allocated_by': self.allocated_by,
            'allocated_at': self.allocated_at.isoformat() if self.allocated_at else None,
            'released_at': self.released_at.isoformat() if self.released_at else None,
            'vehicle': {
                'registration_number': self.vehicle.registration_number,
                'make': self.vehicle.make,
                'model': self.vehicle.model,
            } if self.vehicle else None,
            'driver': {
                'full_name': self.driver.full_name,
                'mobile_number': self.driver.mobile_number,
            } if self.driver else None,
        }

    def __repr__(self):
        return f'<AllocationLog trip:{self.trip_id} vehicle:{self.vehicle_id} {self.allocation_status.value}>'
