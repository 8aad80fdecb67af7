"""
Reconciliation Channel.

Merges the backend's change feed into the Ledger Store. Feed callbacks
only enqueue events; a single consumer task applies them in order, so
the store is never patched from a stale closure.

Ledger changes go through ``LedgerStore.apply`` which discards facts for
other months, stale facts and values the slot already holds (our own
echoes). Any roster change reloads the roster portion of the store.

Errors here are logged, never raised: a dropped subscription is
re-established with exponential backoff and followed by a catch-up fetch
that the no-op guard turns into mutations only where state diverged.
"""

import asyncio
import logging
from typing import Optional

from django.conf import settings

from apps.leagues import realtime
from apps.leagues.events import LedgerChange

from .gateway import LeagueGateway
from .ledger import LedgerStore

logger = logging.getLogger(__name__)


class ReconciliationChannel:

    def __init__(
        self,
        *,
        store: LedgerStore,
        gateway: LeagueGateway,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.base_delay = (
            settings.RESUBSCRIBE_BASE_DELAY_SECONDS if base_delay is None else base_delay
        )
        self.max_delay = (
            settings.RESUBSCRIBE_MAX_DELAY_SECONDS if max_delay is None else max_delay
        )
        self.applied_count = 0
        self.discarded_count = 0

        self._queue: asyncio.Queue = asyncio.Queue()
        self._unsubscribe = {}
        self._consumer: Optional[asyncio.Task] = None
        self._retries = {}
        self._closed = False

    @property
    def league_id(self) -> str:
        return self.store.league_id

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self):
        """Subscribe to both feeds and start the consumer task."""
        if self.is_running:
            return
        self._closed = False
        self._subscribe(realtime.LEDGER)
        self._subscribe(realtime.ROSTER)
        self._consumer = asyncio.get_running_loop().create_task(self._consume())
        logger.debug("Reconciliation started for league %s", self.league_id)

    async def close(self):
        """Unsubscribe, stop the consumer and any pending resubscription."""
        self._closed = True
        for unsubscribe in self._unsubscribe.values():
            unsubscribe()
        self._unsubscribe.clear()

        tasks = list(self._retries.values())
        if self._consumer is not None:
            tasks.append(self._consumer)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._retries.clear()
        self._consumer = None
        logger.debug("Reconciliation closed for league %s", self.league_id)

    async def drain(self):
        """Wait until every event queued so far has been handled."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def handle_ledger_change(self, change: LedgerChange) -> bool:
        """
        Apply one ledger change to the store.

        Returns:
            True if the store was mutated
        """
        store = self.store
        if str(change.league_id) != store.league_id or store.index_for(change.date) is None:
            self.discarded_count += 1
            return False

        if not store.has_member(change.member_id):
            # Someone we have not loaded yet; fetch their profile later
            store.ensure_member(change.member_id)
            self._queue.put_nowait((realtime.ROSTER, None))

        if store.apply(change):
            self.applied_count += 1
            return True

        self.discarded_count += 1
        return False

    async def reload_roster(self):
        members = await self.gateway.fetch_members(self.league_id)
        self.store.replace_roster(members)

    async def catch_up(self):
        """Refetch roster and month logs and merge them like live events."""
        await self.reload_roster()
        store = self.store
        logs = await self.gateway.fetch_month_logs(self.league_id, store.first_day, store.last_day)
        for record in logs:
            self.handle_ledger_change(LedgerChange(
                league_id=self.league_id,
                member_id=record.member_id,
                date=record.date,
                completed=record.completed,
                written_at=record.written_at,
            ))

    async def _consume(self):
        while True:
            topic, event = await self._queue.get()
            try:
                if topic == realtime.LEDGER:
                    self.handle_ledger_change(event)
                else:
                    await self.reload_roster()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Failed to reconcile %s event for league %s", topic, self.league_id)
            finally:
                self._queue.task_done()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def _subscribe(self, topic):
        def on_event(event):
            self._queue.put_nowait((topic, event))

        def on_error(error):
            self._on_dropped(topic, error)

        if topic == realtime.LEDGER:
            subscribe = self.gateway.subscribe_to_ledger_changes
        else:
            subscribe = self.gateway.subscribe_to_roster_changes
        self._unsubscribe[topic] = subscribe(self.league_id, on_event, on_error)

    def _on_dropped(self, topic, error):
        if self._closed or topic in self._retries:
            return
        logger.info("%s subscription for league %s dropped: %s", topic, self.league_id, error)
        unsubscribe = self._unsubscribe.pop(topic, None)
        if unsubscribe is not None:
            unsubscribe()
        task = asyncio.get_running_loop().create_task(self._resubscribe(topic))
        self._retries[topic] = task

    def _backoff(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    async def _resubscribe(self, topic):
        attempt = 0
        try:
            while not self._closed:
                await asyncio.sleep(self._backoff(attempt))
                try:
                    self._subscribe(topic)
                except Exception as e:
                    attempt += 1
                    logger.warning(
                        "Resubscribing to %s for league %s failed (attempt %s): %s",
                        topic, self.league_id, attempt, e,
                    )
                    continue

                logger.info("Resubscribed to %s for league %s", topic, self.league_id)
                try:
                    await self.catch_up()
                except Exception as e:
                    logger.warning("Catch-up after resubscribe failed for league %s: %s", self.league_id, e)
                return
        finally:
            self._retries.pop(topic, None)
