"""
In-process change feed for league tables.

Committed writes to daily logs and memberships are published here (see
signals.py) and fanned out to subscribers registered per league. Each
subscription returns an unsubscribe callable.

Handlers run synchronously in the publishing thread. A handler that
raises is dropped from the feed and its ``on_error`` callback is told,
so the subscriber can decide to resubscribe.
"""

import logging
import threading
from collections import defaultdict
from typing import Callable, Optional

logger = logging.getLogger(__name__)

LEDGER = 'ledger'
ROSTER = 'roster'

Handler = Callable[[object], None]
ErrorHandler = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class _Subscription:
    __slots__ = ('handler', 'on_error', 'active')

    def __init__(self, handler, on_error):
        self.handler = handler
        self.on_error = on_error
        self.active = True


class ChangeFeed:
    """Topic + league keyed publish/subscribe registry."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions = defaultdict(list)

    def subscribe(
        self,
        topic: str,
        league_id,
        handler: Handler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        key = (topic, str(league_id))
        subscription = _Subscription(handler, on_error)

        with self._lock:
            self._subscriptions[key].append(subscription)

        logger.debug("Subscribed to %s changes for league %s", topic, league_id)

        def unsubscribe():
            self._remove(key, subscription)

        return unsubscribe

    def publish(self, topic: str, league_id, event) -> int:
        """
        Deliver an event to every active subscriber of the topic/league.

        Returns:
            Number of handlers that received the event
        """
        key = (topic, str(league_id))
        with self._lock:
            targets = list(self._subscriptions.get(key, ()))

        delivered = 0
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.handler(event)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Dropping %s subscriber for league %s after handler error: %s",
                    topic, league_id, e,
                )
                self._remove(key, subscription)
                if subscription.on_error is not None:
                    subscription.on_error(e)

        return delivered

    def subscriber_count(self, topic: str, league_id) -> int:
        with self._lock:
            return len(self._subscriptions.get((topic, str(league_id)), ()))

    def clear(self):
        with self._lock:
            self._subscriptions.clear()

    def _remove(self, key, subscription):
        subscription.active = False
        with self._lock:
            subscribers = self._subscriptions.get(key)
            if subscribers and subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscriptions.pop(key, None)


feed = ChangeFeed()
