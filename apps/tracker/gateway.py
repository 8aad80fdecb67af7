"""
Backend gateway for the tracker engine.

``LeagueGateway`` is the contract the engine is written against: every
call that crosses the process boundary is a coroutine, and change feed
subscriptions return an unsubscribe callable.

``DjangoLeagueGateway`` implements it in-process on top of the leagues
and accounts services. ORM work runs through ``sync_to_async``, service
exceptions are translated into the tracker's error taxonomy, and feed
events published from worker threads are handed to the event loop with
``call_soon_threadsafe``.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Protocol

from asgiref.sync import sync_to_async
from django.db import DatabaseError

from apps.accounts import services as account_services
from apps.leagues import realtime
from apps.leagues import services as league_services
from apps.leagues.choices import PlanTier, MemberRole, LeagueStatus

from .exceptions import (
    NotAuthenticatedError,
    InvalidCodeError,
    FreeQuotaExhaustedError,
    PaymentRequiredError,
    NetworkFailureError,
    RequestRejectedError,
)
from .types import LeagueInfo, MemberInfo, LogRecord

logger = logging.getLogger(__name__)

EventHandler = Callable[[object], None]
ErrorHandler = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class LeagueGateway(Protocol):
    """Asynchronous collaborator contract consumed by the engine."""

    @property
    def caller_id(self) -> Optional[str]:
        ...

    async def resolve_invite_code(self, code: str) -> str:
        ...

    async def create_league_and_join(
        self,
        *,
        name: str,
        activity: str,
        month_key: Optional[str],
        is_free: bool,
        plan_tier: Optional[PlanTier],
        creation_key: Optional[str] = None,
    ) -> str:
        ...

    async def fetch_league(self, league_id) -> LeagueInfo:
        ...

    async def fetch_my_leagues(self) -> List[LeagueInfo]:
        ...

    async def fetch_plan_tier(self) -> PlanTier:
        ...

    async def accept_plan_tier(self, tier: PlanTier) -> PlanTier:
        ...

    async def fetch_members(self, league_id) -> List[MemberInfo]:
        ...

    async def fetch_month_logs(self, league_id, from_date: date, to_date: date) -> List[LogRecord]:
        ...

    async def upsert_daily_log(
        self,
        league_id,
        member_id,
        date: date,
        completed: bool,
        written_at: datetime,
    ) -> LogRecord:
        ...

    def subscribe_to_ledger_changes(
        self,
        league_id,
        on_event: EventHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        ...

    def subscribe_to_roster_changes(
        self,
        league_id,
        on_event: EventHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        ...


# ----------------------------------------------------------------------
# Model to value conversions
# ----------------------------------------------------------------------

def league_info(league) -> LeagueInfo:
    return LeagueInfo(
        id=str(league.id),
        name=league.name,
        activity=league.activity,
        plan_tier=PlanTier(league.plan_tier) if league.plan_tier else None,
        month_key=league.month_key,
        is_free=league.is_free,
        status=LeagueStatus(league.status),
        invite_code=league.invite_code,
    )


def member_info(membership) -> MemberInfo:
    return MemberInfo(
        member_id=str(membership.user_id),
        role=MemberRole(membership.role),
        display_name=membership.user.get_display_name(),
        joined_at=membership.joined_at,
    )


def log_record(entry) -> LogRecord:
    return LogRecord(
        member_id=str(entry.user_id),
        date=entry.date,
        completed=entry.completed,
        written_at=entry.written_at,
    )


def _translate(exc: Exception) -> Exception:
    """Map a service or database exception to a tracker error."""
    if isinstance(exc, league_services.InvalidInviteCodeError):
        return InvalidCodeError(str(exc))
    if isinstance(exc, league_services.FreeQuotaExhaustedError):
        return FreeQuotaExhaustedError(str(exc))
    if isinstance(exc, league_services.PaymentRequiredError):
        return PaymentRequiredError(str(exc))
    if isinstance(exc, (league_services.LeaguesServiceError, account_services.AccountsServiceError)):
        return RequestRejectedError(str(exc))
    if isinstance(exc, DatabaseError):
        return NetworkFailureError(str(exc))
    return exc


class DjangoLeagueGateway:
    """In-process gateway acting on behalf of one user."""

    def __init__(self, user_id=None, *, change_feed: Optional[realtime.ChangeFeed] = None):
        self._user_id = str(user_id) if user_id else None
        self._feed = change_feed or realtime.feed

    @property
    def caller_id(self) -> Optional[str]:
        return self._user_id

    def _require_caller(self) -> str:
        if self._user_id is None:
            raise NotAuthenticatedError("No authenticated caller")
        return self._user_id

    async def _run(self, func, **kwargs):
        try:
            return await sync_to_async(func, thread_sensitive=True)(**kwargs)
        except (
            league_services.LeaguesServiceError,
            account_services.AccountsServiceError,
            DatabaseError,
        ) as e:
            raise _translate(e) from e

    # ------------------------------------------------------------------
    # Leagues
    # ------------------------------------------------------------------

    async def resolve_invite_code(self, code: str) -> str:
        user_id = self._require_caller()
        membership = await self._run(
            league_services.resolve_invite_code, code=code, user_id=user_id,
        )
        return str(membership.league_id)

    async def create_league_and_join(
        self,
        *,
        name: str,
        activity: str,
        month_key: Optional[str],
        is_free: bool,
        plan_tier: Optional[PlanTier],
        creation_key: Optional[str] = None,
    ) -> str:
        user_id = self._require_caller()
        league = await self._run(
            league_services.create_league_and_join,
            owner_id=user_id,
            name=name,
            activity=activity,
            is_free=is_free,
            plan_tier=plan_tier,
            month_key=month_key,
            creation_key=creation_key,
        )
        return str(league.id)

    async def fetch_league(self, league_id) -> LeagueInfo:
        league = await self._run(league_services.get_league_by_id, league_id=league_id)
        return league_info(league)

    async def fetch_my_leagues(self) -> List[LeagueInfo]:
        user_id = self._require_caller()

        def load():
            return [league_info(league) for league in league_services.get_my_leagues(user_id=user_id)]

        return await self._run(load)

    # ------------------------------------------------------------------
    # Plan tier
    # ------------------------------------------------------------------

    async def fetch_plan_tier(self) -> PlanTier:
        user_id = self._require_caller()
        return await self._run(account_services.get_plan_tier, user_id=user_id)

    async def accept_plan_tier(self, tier: PlanTier) -> PlanTier:
        user_id = self._require_caller()
        return await self._run(account_services.accept_plan_tier, user_id=user_id, tier=tier)

    # ------------------------------------------------------------------
    # Roster and ledger
    # ------------------------------------------------------------------

    async def fetch_members(self, league_id) -> List[MemberInfo]:
        def load():
            return [member_info(m) for m in league_services.get_league_members(league_id=league_id)]

        return await self._run(load)

    async def fetch_month_logs(self, league_id, from_date: date, to_date: date) -> List[LogRecord]:
        def load():
            entries = league_services.fetch_month_logs(
                league_id=league_id, from_date=from_date, to_date=to_date,
            )
            return [log_record(entry) for entry in entries]

        return await self._run(load)

    async def upsert_daily_log(
        self,
        league_id,
        member_id,
        date: date,
        completed: bool,
        written_at: datetime,
    ) -> LogRecord:
        user_id = self._require_caller()
        if str(member_id) != user_id:
            raise RequestRejectedError("Members may only write their own log")

        entry, applied = await self._run(
            league_services.upsert_daily_log,
            league_id=league_id,
            user_id=user_id,
            date=date,
            completed=completed,
            written_at=written_at,
        )
        if not applied:
            logger.debug("Server kept a newer log value for %s on %s", member_id, date)
        return log_record(entry)

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    def subscribe_to_ledger_changes(
        self,
        league_id,
        on_event: EventHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        return self._subscribe(realtime.LEDGER, league_id, on_event, on_error)

    def subscribe_to_roster_changes(
        self,
        league_id,
        on_event: EventHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        return self._subscribe(realtime.ROSTER, league_id, on_event, on_error)

    def _subscribe(self, topic, league_id, on_event, on_error):
        # Feed handlers run in whichever thread committed the write
        loop = asyncio.get_running_loop()

        def deliver(event):
            loop.call_soon_threadsafe(on_event, event)

        def report(error):
            if on_error is not None and not loop.is_closed():
                loop.call_soon_threadsafe(on_error, error)

        return self._feed.subscribe(topic, league_id, deliver, on_error=report)
