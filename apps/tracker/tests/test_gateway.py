"""
Django gateway integration tests.

The engine runs against the real services and change feed here. ORM
work happens in the gateway's worker thread, so these tests need
committed data (transaction=True) rather than a wrapping transaction.
"""

import asyncio
from datetime import timedelta

import pytest
from django.utils import timezone

from apps.accounts.models import User
from apps.leagues.choices import PlanTier, MemberRole
from apps.leagues.models import League, LeagueMembership, month_key_for
from apps.leagues.realtime import feed
from apps.tracker.admission import AdmissionController
from apps.tracker.exceptions import (
    InvalidCodeError,
    FreeQuotaExhaustedError,
    RequestRejectedError,
    NotAuthenticatedError,
)
from apps.tracker.gateway import DjangoLeagueGateway
from apps.tracker.session import LeagueSession

pytestmark = pytest.mark.django_db(transaction=True)


@pytest.fixture(autouse=True)
def clean_feed():
    yield
    feed.clear()


@pytest.fixture
def owner(transactional_db):
    return User.objects.create_user(email='owner@example.com', password='TestPass123!', username='owner')


@pytest.fixture
def member(transactional_db):
    return User.objects.create_user(email='mia@example.com', password='TestPass123!', full_name='Mia Member')


@pytest.fixture
def paid_league(owner):
    league = League.objects.create(
        name='Reading Circle',
        activity='Read 20 pages',
        plan_tier=PlanTier.B,
        month_key=month_key_for(timezone.localdate()),
        is_free=False,
        owner=owner,
        invite_code='AB12CD',
    )
    LeagueMembership.objects.create(user=owner, league=league, role=MemberRole.OWNER)
    return league


async def wait_for(condition, attempts=100):
    for _ in range(attempts):
        if condition():
            return True
        await asyncio.sleep(0.01)
    return condition()


class TestAdmission:

    @pytest.mark.asyncio
    async def test_paid_code_end_to_end(self, paid_league, member):
        gateway = DjangoLeagueGateway(member.id)
        controller = AdmissionController(gateway)

        result = await controller.admit('ab12cd')
        assert result.required_tier == PlanTier.B
        assert controller.needs_acceptance is True

        await controller.accept_tier(PlanTier.B)

        assert controller.continue_() == str(paid_league.id)
        assert await gateway.fetch_plan_tier() == PlanTier.B
        members = await gateway.fetch_members(paid_league.id)
        assert [m.display_name for m in members] == ['owner', 'Mia Member']

    @pytest.mark.asyncio
    async def test_unknown_code(self, member):
        with pytest.raises(InvalidCodeError):
            await DjangoLeagueGateway(member.id).resolve_invite_code('NOPE00')

    @pytest.mark.asyncio
    async def test_anonymous_gateway(self):
        with pytest.raises(NotAuthenticatedError):
            await DjangoLeagueGateway().fetch_plan_tier()

    @pytest.mark.asyncio
    async def test_second_free_league(self, owner):
        controller = AdmissionController(DjangoLeagueGateway(owner.id))

        league_id = await controller.create_league('Runners', 'Run', is_free=True)
        with pytest.raises(FreeQuotaExhaustedError):
            await controller.create_league('Swimmers', 'Swim', is_free=True)

        leagues = await DjangoLeagueGateway(owner.id).fetch_my_leagues()
        assert [league.id for league in leagues] == [league_id]


class TestLedger:

    @pytest.mark.asyncio
    async def test_toggle_persists(self, paid_league, owner):
        gateway = DjangoLeagueGateway(owner.id)

        async with LeagueSession(gateway, paid_league.id) as session:
            today = session.today_index
            assert await session.toggle_day(today) is True

        logs = await gateway.fetch_month_logs(
            paid_league.id, timezone.localdate(), timezone.localdate(),
        )
        assert [(log.member_id, log.completed) for log in logs] == [(str(owner.id), True)]

    @pytest.mark.asyncio
    async def test_remote_write_reaches_open_session(self, paid_league, owner, member):
        member_gateway = DjangoLeagueGateway(member.id)
        await member_gateway.resolve_invite_code('AB12CD')

        async with LeagueSession(DjangoLeagueGateway(owner.id), paid_league.id) as session:
            today = timezone.localdate()
            await member_gateway.upsert_daily_log(
                paid_league.id, member.id, today, True, timezone.now(),
            )

            assert await wait_for(lambda: session.days(str(member.id))[session.today_index])
            assert session.streak(str(member.id)) == 1

    @pytest.mark.asyncio
    async def test_writes_for_others_rejected(self, paid_league, owner, member):
        gateway = DjangoLeagueGateway(owner.id)

        with pytest.raises(RequestRejectedError):
            await gateway.upsert_daily_log(
                paid_league.id, member.id, timezone.localdate(), True, timezone.now(),
            )

    @pytest.mark.asyncio
    async def test_non_member_write_rejected(self, paid_league, member):
        gateway = DjangoLeagueGateway(member.id)

        with pytest.raises(RequestRejectedError):
            await gateway.upsert_daily_log(
                paid_league.id, member.id, timezone.localdate(), True, timezone.now(),
            )

    @pytest.mark.asyncio
    async def test_stale_write_returns_stored_value(self, paid_league, owner):
        gateway = DjangoLeagueGateway(owner.id)
        today = timezone.localdate()
        now = timezone.now()

        await gateway.upsert_daily_log(paid_league.id, owner.id, today, True, now)
        record = await gateway.upsert_daily_log(
            paid_league.id, owner.id, today, False, now - timedelta(minutes=5),
        )

        assert record.completed is True
        assert record.written_at == now
