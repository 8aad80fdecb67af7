"""
League session: one open league view.

Loads the league, its roster and the displayed month's logs into a fresh
Ledger Store, keeps it reconciled with the change feed, and exposes the
Mutation Coordinator and projections for it. Use as an async context
manager so both subscriptions are torn down when the view goes away.
"""

import logging
from datetime import date
from typing import List, Optional

from django.utils import timezone

from .exceptions import NotAuthenticatedError
from .gateway import LeagueGateway
from .ledger import LedgerStore
from .mutations import MutationCoordinator
from .projections import (
    RankMode,
    rank_members,
    roster_order,
    streak,
    pending_streak,
    is_today_streak,
    completed_count,
)
from .reconciliation import ReconciliationChannel
from .types import LeagueInfo, MemberRow

logger = logging.getLogger(__name__)


class LeagueSession:

    def __init__(
        self,
        gateway: LeagueGateway,
        league_id,
        *,
        month: Optional[date] = None,
        today=None,
        now=None,
        **channel_options,
    ):
        self.gateway = gateway
        self.league_id = str(league_id)
        self._today = today or timezone.localdate
        self._now = now or timezone.now
        self._month = month
        self._channel_options = channel_options

        self.league: Optional[LeagueInfo] = None
        self.store: Optional[LedgerStore] = None
        self.coordinator: Optional[MutationCoordinator] = None
        self.channel: Optional[ReconciliationChannel] = None

    @property
    def viewer_id(self) -> Optional[str]:
        return self.gateway.caller_id

    async def open(self) -> 'LeagueSession':
        if self.viewer_id is None:
            raise NotAuthenticatedError("Sign in to open a league")

        store = LedgerStore.for_month(self.league_id, self._month or self._today())
        channel = ReconciliationChannel(store=store, gateway=self.gateway, **self._channel_options)

        # Subscribe before fetching so nothing committed in between is lost
        await channel.start()
        try:
            self.league = await self.gateway.fetch_league(self.league_id)
            members = await self.gateway.fetch_members(self.league_id)
            logs = await self.gateway.fetch_month_logs(self.league_id, store.first_day, store.last_day)
        except Exception:
            await channel.close()
            raise

        store.load(members, logs)
        self.store = store
        self.channel = channel
        self.coordinator = MutationCoordinator(
            store=store,
            gateway=self.gateway,
            viewer_id=self.viewer_id,
            today=self._today,
            now=self._now,
        )
        logger.debug("Opened league %s for %s", self.league_id, store.first_day.strftime('%Y-%m'))
        return self

    async def close(self):
        if self.channel is not None:
            await self.channel.close()
            self.channel = None

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def toggle_day(self, day_index: int, member_id=None) -> bool:
        """Toggle a day of the viewer's row (or of ``member_id``'s, which is ignored)."""
        return await self.coordinator.toggle_day(member_id or self.viewer_id, day_index)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    @property
    def today_index(self) -> Optional[int]:
        return self.store.index_for(self._today())

    def days(self, member_id=None):
        return self.store.snapshot().days_for(member_id or self.viewer_id)

    def rows(self, mode: RankMode = RankMode.SELF_PINNED) -> List[MemberRow]:
        return rank_members(self.store.snapshot().rows(), self.viewer_id, mode)

    def roster(self) -> List[MemberRow]:
        """Members by role, then name, for the member list."""
        return roster_order(self.store.snapshot().rows())

    def completed(self, member_id=None) -> int:
        return completed_count(self.days(member_id))

    def streak(self, member_id=None) -> int:
        return streak(self.days(member_id), self.today_index)

    def pending_streak(self, member_id=None) -> int:
        return pending_streak(self.days(member_id), self.today_index)

    def is_today_streak(self, member_id=None) -> bool:
        return is_today_streak(self.days(member_id), self.today_index)

    def is_editable(self, member_id, day_index: int) -> bool:
        return self.coordinator.can_toggle(member_id, day_index)
