"""
Plan management service.

Reads and records the plan tier a member has accepted.
"""

import logging
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction

from apps.leagues.choices import PlanTier

from .exceptions import InvalidPlanTierError, UserNotFoundError

User = get_user_model()

logger = logging.getLogger(__name__)


def get_plan_tier(*, user_id: UUID) -> PlanTier:
    """
    Return the member's current plan tier.

    Raises:
        UserNotFoundError: If user doesn't exist
    """
    try:
        raw = User.objects.values_list('plan_tier', flat=True).get(id=user_id)
    except User.DoesNotExist:
        raise UserNotFoundError(f"User with ID {user_id} not found")

    return PlanTier.parse(raw)


@transaction.atomic
def accept_plan_tier(*, user_id: UUID, tier) -> PlanTier:
    """
    Durably record that a member accepted a plan tier.

    Idempotent: accepting the tier the member already holds performs
    no write.

    Args:
        user_id: UUID of the member
        tier: PlanTier or raw tier value

    Returns:
        The member's plan tier after the call

    Raises:
        InvalidPlanTierError: If tier is not a known tier
        UserNotFoundError: If user doesn't exist
    """
    try:
        tier = PlanTier.parse(tier)
    except ValueError as e:
        raise InvalidPlanTierError(str(e))

    try:
        user = (
            User.objects
            .select_for_update()
            .get(id=user_id)
        )
    except User.DoesNotExist:
        raise UserNotFoundError(f"User with ID {user_id} not found")

    if user.plan_tier == tier:
        return tier

    previous = user.plan_tier
    user.plan_tier = tier
    user.save(update_fields=['plan_tier'])
    logger.info("User %s accepted plan tier %s (was %s)", user_id, tier, previous)

    return tier
