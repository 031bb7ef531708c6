"""
Unit tests for allocation rule resolution
"""

import pytest

from models import TripType
from services.exceptions import RuleNotFound
from services.rule_resolver import RuleResolver, DEFAULT_RULE_NAME, DEFAULT_RULE_WEIGHTS
from tests.conftest import AllocationRuleFactory, make_request


class TestRuleResolver:
    """Test the rule resolution order"""

    def test_builtin_default_when_no_rules(self, db_session):
        rule = RuleResolver().resolve(make_request(1))

        assert rule.id is None
        assert rule.name == DEFAULT_RULE_NAME
        assert rule.weight_availability == DEFAULT_RULE_WEIGHTS['weight_availability']
        assert rule.weight_distance == DEFAULT_RULE_WEIGHTS['weight_distance']

    def test_explicit_rule_wins(self, db_session):
        explicit = AllocationRuleFactory(name='Explicit', priority_order=0)
        AllocationRuleFactory(name='Company', company_id=7, priority_order=100)

        rule = RuleResolver().resolve(make_request(1, allocation_rule_id=explicit.id, company_id=7))

        assert rule.name == 'Explicit'

    def test_explicit_rule_missing(self, db_session):
        with pytest.raises(RuleNotFound) as exc_info:
            RuleResolver().resolve(make_request(1, allocation_rule_id=999))
        assert exc_info.value.rule_id == 999

    def test_explicit_rule_inactive(self, db_session):
        inactive = AllocationRuleFactory(is_active=False)
        with pytest.raises(RuleNotFound):
            RuleResolver().resolve(make_request(1, allocation_rule_id=inactive.id))

    def test_company_rule_before_trip_type_rule(self, db_session):
        AllocationRuleFactory(name='Emergency', trip_type=TripType.EMERGENCY, priority_order=100)
        AllocationRuleFactory(name='Acme', company_id=7, priority_order=1)

        rule = RuleResolver().resolve(make_request(1, company_id=7, trip_type=TripType.EMERGENCY))

        assert rule.name == 'Acme'

    def test_trip_type_rule_when_no_company_rule(self, db_session):
        AllocationRuleFactory(name='Acme', company_id=7)
        AllocationRuleFactory(name='Emergency', trip_type=TripType.EMERGENCY)
        AllocationRuleFactory(name='Generic', priority_order=500)

        rule = RuleResolver().resolve(make_request(1, company_id=8, trip_type=TripType.EMERGENCY))

        assert rule.name == 'Emergency'

    def test_company_bound_trip_type_rule_not_shared(self, db_session):
        AllocationRuleFactory(name='Acme Emergency', company_id=7, trip_type=TripType.EMERGENCY)
        AllocationRuleFactory(name='Generic')

        rule = RuleResolver().resolve(make_request(1, company_id=8, trip_type=TripType.EMERGENCY))

        assert rule.name == 'Generic'

    def test_generic_rule_highest_priority(self, db_session):
        AllocationRuleFactory(name='Low', priority_order=1)
        AllocationRuleFactory(name='High', priority_order=10)
        AllocationRuleFactory(name='Inactive', priority_order=50, is_active=False)
        AllocationRuleFactory(name='Corporate', trip_type=TripType.CORPORATE, priority_order=99)

        rule = RuleResolver().resolve(make_request(1))

        assert rule.name == 'High'

    def test_priority_tie_goes_to_oldest_rule(self, db_session):
        AllocationRuleFactory(name='First', priority_order=5)
        AllocationRuleFactory(name='Second', priority_order=5)

        assert RuleResolver().resolve(make_request(1)).name == 'First'

    def test_falls_back_to_default_when_only_conditional_rules(self, db_session):
        AllocationRuleFactory(name='Acme', company_id=7)
        AllocationRuleFactory(name='Shuttle', trip_type=TripType.SHUTTLE)

        rule = RuleResolver().resolve(make_request(1, trip_type=TripType.REGULAR))

        assert rule.name == DEFAULT_RULE_NAME
        assert rule.id is None
