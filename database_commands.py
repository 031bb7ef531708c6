#!/usr/bin/env python3
"""
Operator Commands for the Fleet Allocation Service

Database setup and manual allocation operations:
- Table creation
- Seeding the standard allocation rules
- Manual release of a stuck vehicle/driver pair
- Allocation history lookup
- Configuration validation

Usage:
    python database_commands.py --help
    python database_commands.py init
    python database_commands.py seed-rules
    python database_commands.py release 12 34
    python database_commands.py history 1001
    python database_commands.py validate-config
"""

import os
import sys
import argparse
import logging
from sqlalchemy.exc import SQLAlchemyError
from app import create_app, db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Standard rule set: (name, description, weights, priority, trip_type)
STANDARD_RULES = [
    ('Default Rule', 'Balanced weights for regular bookings',
     {'weight_availability': 1.5, 'weight_distance': 1.3, 'weight_rating': 1.2,
      'weight_cost': 1.0, 'weight_fuel': 1.0}, 0, None),
    ('Emergency Rule', 'Nearest vehicle first for emergency trips',
     {'weight_availability': 1.5, 'weight_distance': 3.0, 'weight_rating': 1.0,
      'weight_cost': 0.5, 'weight_fuel': 1.0}, 100, 'emergency'),
    ('Corporate Rule', 'Best-rated drivers for corporate trips',
     {'weight_availability': 1.5, 'weight_distance': 1.2, 'weight_rating': 2.0,
      'weight_cost': 1.0, 'weight_fuel': 1.0}, 50, 'corporate'),
    ('Shuttle Rule', 'Own fleet first for shuttle runs',
     {'weight_availability': 1.5, 'weight_distance': 1.0, 'weight_rating': 1.0,
      'weight_cost': 2.0, 'weight_fuel': 1.5}, 50, 'shuttle'),
]


def setup_app_context():
    """Setup Flask application context for database operations."""
    # Set a temporary SESSION_SECRET for CLI operations if not set
    if not os.environ.get('SESSION_SECRET'):
        os.environ['SESSION_SECRET'] = 'cli_temp_secret_not_for_production'

    app = create_app()
    return app.app_context()


def seed_standard_rules():
    """
    Insert the standard allocation rules that are not present yet.

    Returns:
        list: Names of the rules created
    """
    from models import AllocationRule, TripType

    created = []
    for name, description, weights, priority, trip_type in STANDARD_RULES:
        if AllocationRule.query.filter_by(name=name).first():
            continue
        rule = AllocationRule(
            name=name,
            description=description,
            priority_order=priority,
            trip_type=TripType(trip_type) if trip_type else None,
            is_active=True,
            **weights
        )
        db.session.add(rule)
        created.append(name)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.error(f"Seeding allocation rules failed, nothing was created: {created}")
        raise
    return created


def cmd_init(args):
    """Create all tables."""
    with setup_app_context():
        db.create_all()
        print("✅ Database tables created")


def cmd_seed_rules(args):
    """Insert the standard allocation rule set if absent."""
    with setup_app_context():
        created = seed_standard_rules()
        if created:
            print(f"✅ Created {len(created)} rules: {', '.join(created)}")
        else:
            print("Standard rules already present - nothing to do")


def cmd_release(args):
    """Manually release a vehicle and driver."""
    from services import AllocationService

    with setup_app_context():
        AllocationService().release(args.vehicle_id, args.driver_id)
        print(f"✅ Released vehicle {args.vehicle_id} and driver {args.driver_id}")


def cmd_history(args):
    """Print the allocation ledger for a trip."""
    from services import AllocationService

    with setup_app_context():
        history = AllocationService().history(args.trip_id)

        if not history:
            print(f"No allocations recorded for trip {args.trip_id}")
            return

        print("=" * 60)
        print(f"ALLOCATION HISTORY FOR TRIP {args.trip_id}")
        print("=" * 60)
        for entry in history:
            print(f"[{entry['allocated_at']}] #{entry['allocation_log_id']} {entry['allocation_status'].upper()}: "
                  f"vehicle {entry['vehicle_id']}, driver {entry['driver_id']}, "
                  f"rule '{entry['rule_name']}', score {entry['allocation_score']}, "
                  f"cost {entry['estimated_cost']}")


def cmd_validate_config(args):
    """Validate environment and allocation engine settings."""
    from utils.config_validator import check_production_readiness

    with setup_app_context():
        from flask import current_app
        status = check_production_readiness(current_app.config)

    if status['production_ready']:
        print("✅ Configuration is production-ready")
        return

    print(f"❌ Configuration has {len(status['issues'])} issues:")
    for i, issue in enumerate(status['issues'], 1):
        print(f"  {i}. {issue}")
    for recommendation in status['recommendations']:
        print(f"  ⚠️  {recommendation}")
    sys.exit(1)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Operator Commands for the Fleet Allocation Service",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('init', help='Create database tables')
    subparsers.add_parser('seed-rules', help='Insert the standard allocation rules')

    release_parser = subparsers.add_parser('release', help='Release a vehicle and driver')
    release_parser.add_argument('vehicle_id', type=int, help='Vehicle ID')
    release_parser.add_argument('driver_id', type=int, help='Driver ID')

    history_parser = subparsers.add_parser('history', help='Show allocation history for a trip')
    history_parser.add_argument('trip_id', type=int, help='Trip (booking) ID')

    subparsers.add_parser('validate-config', help='Validate configuration')

    return parser


COMMANDS = {
    'init': cmd_init,
    'seed-rules': cmd_seed_rules,
    'release': cmd_release,
    'history': cmd_history,
    'validate-config': cmd_validate_config,
}


def main(argv=None):
    """Main command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error occurred")
        print(f"❌ Unexpected error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
