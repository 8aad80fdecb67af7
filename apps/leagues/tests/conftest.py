import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.leagues.choices import PlanTier, MemberRole
from apps.leagues.models import League, LeagueMembership
from apps.leagues.realtime import feed
from apps.leagues.services import create_league_and_join


def authenticate(client, user):
    """Attach a JWT for ``user`` to ``client``."""
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture(autouse=True)
def clean_feed():
    """Drop change feed subscriptions left by a test."""
    yield
    feed.clear()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def league_owner(db):
    """Create and return a test user (league owner)."""
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        username='owner',
    )


@pytest.fixture
def member_user(db):
    """Create and return a second user."""
    return User.objects.create_user(
        email='member@example.com',
        password='TestPass123!',
        full_name='Mia Member',
    )


@pytest.fixture
def other_user(db):
    """Create and return a user not in any league."""
    return User.objects.create_user(
        email='other@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def free_league(league_owner):
    """Free league created through the service (uses the owner's quota)."""
    return create_league_and_join(
        owner_id=league_owner.id,
        name='Morning Runs',
        activity='Run 5k',
        is_free=True,
        month_key='2026-10',
    )


@pytest.fixture
def paid_league(league_owner):
    """Paid tier B league with a known invite code."""
    league = League.objects.create(
        name='Reading Circle',
        activity='Read 20 pages',
        plan_tier=PlanTier.B,
        month_key='2026-10',
        is_free=False,
        owner=league_owner,
        invite_code='AB12CD',
    )
    LeagueMembership.objects.create(user=league_owner, league=league, role=MemberRole.OWNER)
    return league


@pytest.fixture
def league_with_member(free_league, member_user):
    """Free league with one regular member besides the owner."""
    LeagueMembership.objects.create(user=member_user, league=free_league, role=MemberRole.MEMBER)
    return free_league


@pytest.fixture
def owner_client(api_client, league_owner):
    return authenticate(api_client, league_owner)


@pytest.fixture
def member_client(member_user):
    return authenticate(APIClient(), member_user)


@pytest.fixture
def other_client(other_user):
    return authenticate(APIClient(), other_user)
