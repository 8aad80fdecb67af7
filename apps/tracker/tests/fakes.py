"""Test doubles and sample data for the tracker engine."""

import asyncio
import itertools
from datetime import date, datetime, timedelta, timezone as dt_timezone

from apps.leagues.choices import PlanTier, MemberRole, LeagueStatus
from apps.leagues.events import LedgerChange, RosterChange
from apps.tracker.exceptions import (
    InvalidCodeError,
    FreeQuotaExhaustedError,
)
from apps.tracker.types import LeagueInfo, MemberInfo, LogRecord

ME = 'member-me'
ALICE = 'member-alice'
BOB = 'member-bob'

LEAGUE_ID = 'league-1'

# A 30 day month; "today" is the 14th
TODAY = date(2026, 9, 14)


def at(hour, minute=0, day=14):
    return datetime(2026, 9, day, hour, minute, tzinfo=dt_timezone.utc)


class Clock:
    """Monotonic fake ``now`` so every write gets a fresh timestamp."""

    def __init__(self, start=None):
        self._ticks = itertools.count()
        self._start = start or at(8)

    def __call__(self):
        return self._start + timedelta(seconds=next(self._ticks))


class FakeGateway:
    """
    In-memory backend honouring the gateway contract.

    ``fail`` maps a method name to an exception raised on its next call;
    ``delay`` maps a method name to seconds slept before answering.
    Writes echo a LedgerChange to ledger subscribers like the real feed.
    """

    def __init__(self, caller_id=ME, tier=PlanTier.FREE):
        self.caller_id = caller_id
        self.tiers = {caller_id: tier}
        self.leagues = {}
        self.codes = {}
        self.members = {}
        self.logs = {}
        self.free_used = set()
        self.creation_keys = {}
        self.calls = []
        self.fail = {}
        self.delay = {}
        self.ledger_subscribers = {}
        self.roster_subscribers = {}
        self._ids = itertools.count(100)

    # -- test helpers --------------------------------------------------

    def add_league(self, info: LeagueInfo, members=()):
        self.leagues[info.id] = info
        self.codes[info.invite_code] = info.id
        self.members[info.id] = list(members)
        return info

    def add_log(self, league_id, member_id, day, completed=True, written_at=None):
        self.logs[(league_id, member_id, day)] = LogRecord(member_id, day, completed, written_at)

    def emit_ledger(self, change):
        for on_event, _ in list(self.ledger_subscribers.get(change.league_id, [])):
            on_event(change)

    def emit_roster(self, change):
        for on_event, _ in list(self.roster_subscribers.get(change.league_id, [])):
            on_event(change)

    def drop_ledger(self, league_id, error):
        subscribers = self.ledger_subscribers.pop(league_id, [])
        for _, on_error in subscribers:
            on_error(error)

    def subscriber_count(self, league_id):
        return (
            len(self.ledger_subscribers.get(league_id, []))
            + len(self.roster_subscribers.get(league_id, []))
        )

    async def _enter(self, name):
        self.calls.append(name)
        if name in self.delay:
            await asyncio.sleep(self.delay.pop(name))
        if name in self.fail:
            raise self.fail.pop(name)

    # -- contract ------------------------------------------------------

    async def resolve_invite_code(self, code):
        await self._enter('resolve_invite_code')
        league_id = self.codes.get(code)
        if league_id is None:
            raise InvalidCodeError('Invalid invite code')
        if not any(m.member_id == self.caller_id for m in self.members[league_id]):
            self.members[league_id].append(MemberInfo(self.caller_id, MemberRole.MEMBER, 'Me'))
        return league_id

    async def create_league_and_join(self, *, name, activity, month_key, is_free, plan_tier, creation_key=None):
        await self._enter('create_league_and_join')
        key = (self.caller_id, creation_key)
        if creation_key and key in self.creation_keys:
            return self.creation_keys[key]
        if is_free:
            if self.caller_id in self.free_used:
                raise FreeQuotaExhaustedError('Free league already used')
            self.free_used.add(self.caller_id)

        league_id = f'league-{next(self._ids)}'
        self.add_league(
            LeagueInfo(
                id=league_id,
                name=name,
                activity=activity,
                plan_tier=plan_tier,
                month_key=month_key or '2026-09',
                is_free=is_free,
                status=LeagueStatus.ACTIVE,
                invite_code=f'C{league_id[-3:]}XY',
            ),
            members=[MemberInfo(self.caller_id, MemberRole.OWNER, 'Me')],
        )
        if creation_key:
            self.creation_keys[key] = league_id
        return league_id

    async def fetch_league(self, league_id):
        await self._enter('fetch_league')
        return self.leagues[league_id]

    async def fetch_my_leagues(self):
        await self._enter('fetch_my_leagues')
        return [
            self.leagues[league_id]
            for league_id, members in self.members.items()
            if any(m.member_id == self.caller_id for m in members)
        ]

    async def fetch_plan_tier(self):
        await self._enter('fetch_plan_tier')
        return self.tiers[self.caller_id]

    async def accept_plan_tier(self, tier):
        await self._enter('accept_plan_tier')
        self.tiers[self.caller_id] = tier
        return tier

    async def fetch_members(self, league_id):
        await self._enter('fetch_members')
        return list(self.members[league_id])

    async def fetch_month_logs(self, league_id, from_date, to_date):
        await self._enter('fetch_month_logs')
        return [
            record for (lid, _, day), record in sorted(self.logs.items(), key=lambda item: str(item[0]))
            if lid == league_id and from_date <= day <= to_date
        ]

    async def upsert_daily_log(self, league_id, member_id, date, completed, written_at):
        await self._enter('upsert_daily_log')
        key = (league_id, member_id, date)
        current = self.logs.get(key)
        if current is None or current.written_at is None or current.written_at <= written_at:
            current = LogRecord(member_id, date, completed, written_at)
            self.logs[key] = current

        change = LedgerChange(league_id, member_id, date, current.completed, current.written_at)
        loop = asyncio.get_running_loop()
        for on_event, _ in list(self.ledger_subscribers.get(league_id, [])):
            loop.call_soon(on_event, change)
        return current

    def subscribe_to_ledger_changes(self, league_id, on_event, on_error=None):
        return self._subscribe(self.ledger_subscribers, league_id, on_event, on_error)

    def subscribe_to_roster_changes(self, league_id, on_event, on_error=None):
        return self._subscribe(self.roster_subscribers, league_id, on_event, on_error)

    def _subscribe(self, registry, league_id, on_event, on_error):
        if 'subscribe' in self.fail:
            raise self.fail.pop('subscribe')
        entry = (on_event, on_error)
        registry.setdefault(league_id, []).append(entry)

        def unsubscribe():
            if entry in registry.get(league_id, []):
                registry[league_id].remove(entry)

        return unsubscribe


def paid_league_info(**overrides):
    values = dict(
        id='league-paid',
        name='Reading Circle',
        activity='Read 20 pages',
        plan_tier=PlanTier.B,
        month_key='2026-09',
        is_free=False,
        status=LeagueStatus.ACTIVE,
        invite_code='AB12CD',
    )
    values.update(overrides)
    return LeagueInfo(**values)


def free_league_info(**overrides):
    values = dict(
        id=LEAGUE_ID,
        name='Morning Runs',
        activity='Run 5k',
        plan_tier=None,
        month_key='2026-09',
        is_free=True,
        status=LeagueStatus.ACTIVE,
        invite_code='FR33AA',
    )
    values.update(overrides)
    return LeagueInfo(**values)


ROSTER = [
    MemberInfo(ALICE, MemberRole.OWNER, 'alice'),
    MemberInfo(ME, MemberRole.MEMBER, 'Me'),
    MemberInfo(BOB, MemberRole.MEMBER, 'Bob'),
]


def ledger_change(member_id, day, completed, written_at=None, league_id=LEAGUE_ID):
    return LedgerChange(league_id, member_id, day, completed, written_at)


def roster_change(member_id, kind=RosterChange.JOINED, league_id=LEAGUE_ID):
    return RosterChange(league_id, member_id, kind)

