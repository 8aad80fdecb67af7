"""
League management service.

Handles league creation under the free league quota, and league lookups.
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.leagues.choices import PlanTier, MemberRole, LeagueStatus
from apps.leagues.models import League, LeagueMembership, generate_invite_code, month_key_for

from .exceptions import (
    LeagueNotFoundError,
    FreeQuotaExhaustedError,
    PaymentRequiredError,
    InvalidLeagueDataError,
)

User = get_user_model()

logger = logging.getLogger(__name__)


def _clean_league_input(name, activity, is_free, plan_tier):
    name = (name or '').strip()
    activity = (activity or '').strip()[:settings.ACTIVITY_MAX_LENGTH]

    if not name:
        raise InvalidLeagueDataError("League name is required")
    if not activity:
        raise InvalidLeagueDataError(
            f"Activity is required (max {settings.ACTIVITY_MAX_LENGTH} chars)"
        )

    if is_free:
        if plan_tier not in (None, '', PlanTier.FREE):
            raise InvalidLeagueDataError("A free league cannot carry a paid plan tier")
        return name, activity, None

    try:
        tier = PlanTier.parse(plan_tier)
    except ValueError as e:
        raise InvalidLeagueDataError(str(e))
    if tier == PlanTier.FREE:
        raise InvalidLeagueDataError("A paid league needs a paid plan tier")

    return name, activity, tier


def _existing_by_creation_key(owner_id, creation_key):
    if not creation_key:
        return None
    return League.objects.filter(owner_id=owner_id, creation_key=creation_key).first()


def create_league_and_join(
    *,
    owner_id: UUID,
    name: str,
    activity: str,
    is_free: bool,
    plan_tier=None,
    month_key: Optional[str] = None,
    creation_key: Optional[str] = None,
    max_retries: int = 5
) -> League:
    """
    Create a league and add the creator as its owner.

    Each attempt is one transaction:
    1. Claim the owner's free league quota (free leagues only)
    2. Create the league with a fresh invite code
    3. Create owner membership

    The quota claim is a single conditional UPDATE, so two concurrent
    free creations by the same owner cannot both observe "unused".

    A repeated call with the same creation_key returns the league created
    by the first call instead of creating a second one.

    Args:
        owner_id: UUID of the creating user
        name: League name
        activity: Activity label (trimmed, cut to ACTIVITY_MAX_LENGTH)
        is_free: Whether the league is free
        plan_tier: Paid tier for non-free leagues
        month_key: Tracking period 'YYYY-MM' (defaults to current month)
        creation_key: Client idempotency key
        max_retries: Maximum attempts to generate unique invite code

    Returns:
        The created (or previously created) League

    Raises:
        InvalidLeagueDataError: If name/activity/tier input is invalid
        PaymentRequiredError: If a paid league is requested while the paywall is on
        FreeQuotaExhaustedError: If the owner already created a free league
        RuntimeError: If cannot generate unique invite code after retries
    """
    name, activity, tier = _clean_league_input(name, activity, is_free, plan_tier)

    existing = _existing_by_creation_key(owner_id, creation_key)
    if existing is not None:
        logger.info("Replayed league creation %s for owner %s", creation_key, owner_id)
        return existing

    if not is_free and settings.PAYWALL_ENABLED:
        raise PaymentRequiredError("Payment required to create a paid league")

    if not User.objects.filter(id=owner_id).exists():
        raise InvalidLeagueDataError(f"User with ID {owner_id} not found")

    month_key = month_key or month_key_for(timezone.localdate())

    for attempt in range(max_retries):
        try:
            with transaction.atomic():
                if is_free:
                    claimed = (
                        User.objects
                        .filter(id=owner_id, free_league_used=False)
                        .update(free_league_used=True)
                    )
                    if not claimed:
                        raise FreeQuotaExhaustedError("Free league already used")

                league = League.objects.create(
                    name=name,
                    activity=activity,
                    plan_tier=tier,
                    month_key=month_key,
                    is_free=is_free,
                    status=LeagueStatus.ACTIVE,
                    owner_id=owner_id,
                    creation_key=creation_key or None,
                    invite_code=generate_invite_code(),
                )

                LeagueMembership.objects.create(
                    user_id=owner_id,
                    league=league,
                    role=MemberRole.OWNER,
                )

            logger.info(
                "League %s created by %s (free=%s, tier=%s)",
                league.id, owner_id, is_free, tier,
            )
            return league

        except FreeQuotaExhaustedError:
            # A concurrent call with the same key may have won the claim
            existing = _existing_by_creation_key(owner_id, creation_key)
            if existing is not None:
                return existing
            logger.info("Free league quota exhausted for %s", owner_id)
            raise

        except IntegrityError:
            existing = _existing_by_creation_key(owner_id, creation_key)
            if existing is not None:
                return existing
            # Invite code collision
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique invite code after {max_retries} attempts"
                )
            continue

    # Should never reach here
    raise RuntimeError("Unexpected error in league creation")


def get_league_by_id(*, league_id: UUID) -> League:
    """
    Get a league by ID.

    Raises:
        LeagueNotFoundError: If league doesn't exist
    """
    try:
        return (
            League.objects
            .select_related('owner')
            .get(id=league_id)
        )
    except (League.DoesNotExist, ValueError):
        raise LeagueNotFoundError(f"League with ID {league_id} not found")


def get_my_leagues(*, user_id: UUID) -> QuerySet[League]:
    """Return leagues the user belongs to, newest first."""
    return (
        League.objects
        .filter(memberships__user_id=user_id)
        .select_related('owner')
        .distinct()
        .order_by('-created_at')
    )


def month_bounds(month_key: str):
    """
    Return the first and last day of a 'YYYY-MM' period.

    Raises:
        ValueError: If month_key is malformed
    """
    year, month = (int(part) for part in month_key.split('-'))
    first = date(year, month, 1)
    if month == 12:
        last = date(year + 1, 1, 1)
    else:
        last = date(year, month + 1, 1)
    return first, date.fromordinal(last.toordinal() - 1)
