"""
Membership management service.

Handles invite code admission and roster lookups with concurrency protection.
"""

import logging
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import Case, When, Value, IntegerField, QuerySet

from apps.leagues.choices import MemberRole
from apps.leagues.models import League, LeagueMembership, normalize_invite_code

from .exceptions import (
    LeagueNotFoundError,
    InvalidInviteCodeError,
    NotMemberError,
)

logger = logging.getLogger(__name__)


@transaction.atomic
def resolve_invite_code(*, code: str, user_id: UUID) -> LeagueMembership:
    """
    Resolve an invite code and make the user a member of its league.

    The lookup is case-insensitive (codes are stored upper-case). The
    league row is locked while the membership is checked and created,
    and re-admitting an existing member returns the existing membership,
    so a retried request never duplicates anything.

    Args:
        code: Invite code as typed by the user
        user_id: UUID of the joining user

    Returns:
        The user's LeagueMembership (new or existing)

    Raises:
        InvalidInviteCodeError: If the code matches no league
    """
    normalized = normalize_invite_code(code)
    if not normalized:
        raise InvalidInviteCodeError("Invite code is required")

    try:
        league = (
            League.objects
            .select_for_update()
            .get(invite_code=normalized)
        )
    except League.DoesNotExist:
        raise InvalidInviteCodeError("Invalid invite code")

    existing = LeagueMembership.objects.filter(league=league, user_id=user_id).first()
    if existing is not None:
        return existing

    try:
        with transaction.atomic():
            membership = LeagueMembership.objects.create(
                user_id=user_id,
                league=league,
                role=MemberRole.MEMBER,
            )
    except IntegrityError:
        # Database constraint caught a concurrent join
        return LeagueMembership.objects.get(league=league, user_id=user_id)

    logger.info("User %s joined league %s by invite code", user_id, league.id)
    return membership


def get_league_members(*, league_id: UUID) -> QuerySet[LeagueMembership]:
    """
    Get all members of a league, owner first, then admins, then members.

    Raises:
        LeagueNotFoundError: If league doesn't exist
    """
    if not League.objects.filter(id=league_id).exists():
        raise LeagueNotFoundError(f"League with ID {league_id} not found")

    role_rank = Case(
        When(role=MemberRole.OWNER, then=Value(0)),
        When(role=MemberRole.ADMIN, then=Value(1)),
        default=Value(2),
        output_field=IntegerField(),
    )

    return (
        LeagueMembership.objects
        .filter(league_id=league_id)
        .select_related('user')
        .annotate(role_rank=role_rank)
        .order_by('role_rank', 'joined_at')
    )


def get_membership(*, league_id: UUID, user_id: UUID) -> LeagueMembership:
    """
    Get one user's membership in a league.

    Raises:
        NotMemberError: If the user is not a member
    """
    try:
        return (
            LeagueMembership.objects
            .select_related('league')
            .get(league_id=league_id, user_id=user_id)
        )
    except LeagueMembership.DoesNotExist:
        raise NotMemberError("User is not a member of this league")
