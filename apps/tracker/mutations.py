"""
Mutation Coordinator.

Every mutating operation goes through ``OptimisticCommand``: apply the
change locally so readers see it at once, await the durable commit, and
revert if the commit fails. ``MutationCoordinator.toggle_day`` is the
ledger write built on it.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from django.utils import timezone

from apps.leagues.events import LedgerChange

from .exceptions import WriteRejectedError
from .gateway import LeagueGateway
from .ledger import LedgerStore
from .projections import is_editable

logger = logging.getLogger(__name__)


class OptimisticCommand:
    """
    Apply, commit, revert on failure.

    ``apply`` and ``revert`` are plain callables run on the event loop;
    ``commit`` returns an awaitable. A failed commit is re-raised as
    WriteRejectedError after ``revert`` ran. Cancellation also reverts
    and then propagates unchanged.
    """

    def __init__(
        self,
        *,
        apply: Callable[[], object],
        commit: Callable[[], Awaitable],
        revert: Callable[[], object],
        description: str = 'write',
    ):
        self._apply = apply
        self._commit = commit
        self._revert = revert
        self.description = description

    async def run(self):
        self._apply()
        try:
            return await self._commit()
        except asyncio.CancelledError:
            self._revert()
            raise
        except Exception as e:
            self._revert()
            logger.warning("Rolled back %s: %s", self.description, e)
            raise WriteRejectedError(f"Could not save {self.description}") from e


class MutationCoordinator:
    """Self-only edits of the ledger with optimistic apply and rollback."""

    def __init__(
        self,
        *,
        store: LedgerStore,
        gateway: LeagueGateway,
        viewer_id,
        today: Optional[Callable] = None,
        now: Optional[Callable] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.viewer_id = str(viewer_id) if viewer_id is not None else None
        self._today = today or timezone.localdate
        self._now = now or timezone.now

    def today_index(self) -> Optional[int]:
        return self.store.index_for(self._today())

    def can_toggle(self, member_id, day_index: int) -> bool:
        if not self.store.has_member(member_id):
            return False
        return is_editable(
            viewer_id=self.viewer_id,
            member_id=member_id,
            day_index=day_index,
            today_index=self.today_index(),
            month_length=self.store.month_length,
        )

    async def toggle_day(self, member_id, day_index: int) -> bool:
        """
        Flip one of the viewer's own days.

        Other members' rows, indexes outside the month and days outside
        the today/yesterday window are ignored without error.

        Returns:
            True if a write was issued, False for an ignored toggle

        Raises:
            WriteRejectedError: If the durable write failed (slot reverted)
        """
        if not self.can_toggle(member_id, day_index):
            logger.debug("Ignoring toggle of %s day %s", member_id, day_index + 1)
            return False

        store = self.store
        member_id = str(member_id)
        day = store.date_for(day_index)
        previous = store.get(member_id, day_index)
        previous_stamp = store.stamp(member_id, day_index)
        value = not previous
        written_at = self._now()

        def apply():
            store.set(member_id, day_index, value, written_at=written_at)

        def commit():
            return self.gateway.upsert_daily_log(
                store.league_id, member_id, day, value, written_at,
            )

        def revert():
            # A newer write or remote fact owns the slot now
            if store.stamp(member_id, day_index) != written_at:
                return
            store.restore(member_id, day_index, previous, previous_stamp)

        command = OptimisticCommand(
            apply=apply,
            commit=commit,
            revert=revert,
            description=f"day {day_index + 1}",
        )
        record = await command.run()

        # The server may have kept a newer value than ours
        store.apply(LedgerChange(
            league_id=store.league_id,
            member_id=member_id,
            date=record.date,
            completed=record.completed,
            written_at=record.written_at,
        ))
        return True
