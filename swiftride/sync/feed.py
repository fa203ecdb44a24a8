"""In-process change notifications for committed inserts.

Services publish a row after its transaction commits; subscribers register a
column predicate (``booking_id == 7``) on a relation and receive matching rows.
Callbacks run on the publishing thread, so asyncio consumers must hop back onto
their loop (see :class:`swiftride.sync.channel.BookingChannel`).
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Mapping

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


class FeedSubscription:
    """Handle returned by :meth:`ChangeFeed.subscribe`."""

    def __init__(self, feed: "ChangeFeed", relation: str, column: str, value: Any, callback: Callable[[Row], None]):
        self._feed = feed
        self.relation = relation
        self.column = column
        self.value = value
        self.callback = callback
        self.active = True

    def matches(self, row: Row) -> bool:
        return self.active and row.get(self.column) == self.value

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[FeedSubscription]] = defaultdict(list)

    def subscribe(self, relation: str, column: str, value: Any, callback: Callable[[Row], None]) -> FeedSubscription:
        subscription = FeedSubscription(self, relation, column, value, callback)
        with self._lock:
            self._subscribers[relation].append(subscription)
        logger.debug("Subscribed to %s where %s=%s", relation, column, value)
        return subscription

    def publish(self, relation: str, row: Row) -> int:
        with self._lock:
            targets = [sub for sub in self._subscribers.get(relation, ()) if sub.matches(row)]
        for subscription in targets:
            try:
                subscription.callback(row)
            except Exception:
                logger.exception("Change listener failed for %s", relation)
        return len(targets)

    def subscriber_count(self, relation: str) -> int:
        with self._lock:
            return len(self._subscribers.get(relation, ()))

    def _remove(self, subscription: FeedSubscription) -> None:
        with self._lock:
            listeners = self._subscribers.get(subscription.relation, [])
            if subscription in listeners:
                listeners.remove(subscription)
