"""
Rule Resolver

Chooses the allocation rule (scoring weights) for a request. Resolution
order, first match wins:

1. explicit ``allocation_rule_id`` on the request (must exist and be active)
2. highest-priority rule for the request's company
3. highest-priority rule for the request's trip type (company-agnostic rules only)
4. highest-priority rule without conditions
5. the built-in default rule
"""

import logging

from models import AllocationRule
from .allocation_types import AllocationRequest
from .exceptions import RuleNotFound
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)

DEFAULT_RULE_NAME = 'Default Rule'
DEFAULT_RULE_WEIGHTS = {
    'weight_availability': 1.5,
    'weight_distance': 1.3,
    'weight_rating': 1.2,
    'weight_cost': 1.0,
    'weight_fuel': 1.0,
}


def default_rule() -> AllocationRule:
    """Built-in fallback used when no configured rule matches. Never persisted."""
    return AllocationRule(
        id=None,
        name=DEFAULT_RULE_NAME,
        description='Built-in fallback weights',
        priority_order=0,
        company_id=None,
        trip_type=None,
        is_active=True,
        **DEFAULT_RULE_WEIGHTS,
    )


class RuleResolver:
    """Resolves the allocation rule to score a request with"""

    @staticmethod
    def _active_rules():
        return AllocationRule.query.filter(AllocationRule.is_active.is_(True)) \
                                   .order_by(AllocationRule.priority_order.desc(), AllocationRule.id.asc())

    @TransactionHelper.with_connection_retry()
    def resolve(self, request: AllocationRequest) -> AllocationRule:
        """
        Resolve the rule for a request.

        Database errors propagate to the caller; only an empty result moves
        resolution on to the next step.

        Raises:
            RuleNotFound: if an explicit rule id is missing or inactive
        """
        if request.allocation_rule_id is not None:
            rule = AllocationRule.query.filter_by(id=request.allocation_rule_id, is_active=True).first()
            if not rule:
                logger.warning(f"Requested allocation rule {request.allocation_rule_id} not found for trip {request.trip_id}")
                raise RuleNotFound(request.allocation_rule_id)
            return rule

        # Corporate bookings take precedence
        if request.company_id is not None:
            rule = self._active_rules().filter(AllocationRule.company_id == request.company_id).first()
            if rule:
                logger.debug(f"Trip {request.trip_id}: company rule '{rule.name}'")
                return rule

        if request.trip_type is not None:
            rule = self._active_rules().filter(
                AllocationRule.trip_type == request.trip_type,
                AllocationRule.company_id.is_(None)
            ).first()
            if rule:
                logger.debug(f"Trip {request.trip_id}: trip type rule '{rule.name}'")
                return rule

        rule = self._active_rules().filter(
            AllocationRule.company_id.is_(None),
            AllocationRule.trip_type.is_(None)
        ).first()
        if rule:
            return rule

        logger.info(f"Trip {request.trip_id}: no configured rule matched, using built-in default")
        return default_rule()
