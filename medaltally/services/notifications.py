"""
In-process write notifications.

Writers publish a topic after a successful commit; cached read paths
subscribe and drop whatever they derived from the changed data. This keeps
the list of dependent caches out of the write paths.

Topics:
- "medals": a medal was added or deleted, or a batch was submitted
- "roster": a category, team or event changed
- "settings": score settings changed (recorded medals keep their snapshot)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Iterable

logger = logging.getLogger(__name__)

TOPICS = frozenset({"medals", "roster", "settings"})

Callback = Callable[[str, Dict[str, Any]], None]


@dataclass(frozen=True)
class Subscription:
    """A registered callback and the topics it listens to."""

    callback: Callback
    topics: FrozenSet[str] = field(default=TOPICS)


class LedgerNotifier:
    """Thread-safe publish / subscribe registry."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callback, topics: Optional[Iterable[str]] = None) -> Subscription:
        """
        Register a callback.

        Args:
            callback: Called as callback(topic, info) after each publish
            topics: Topics to listen to, all topics when None

        Returns:
            The subscription, usable with unsubscribe()
        """
        wanted = frozenset(topics) if topics is not None else TOPICS
        unknown = wanted - TOPICS
        if unknown:
            raise ValueError(f"Unknown topics: {sorted(unknown)}")
        subscription = Subscription(callback=callback, topics=wanted)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, topic: str, **info: Any) -> int:
        """
        Notify subscribers of a topic.

        A failing subscriber is logged and skipped; the write that
        published has already been committed.

        Returns:
            Number of subscribers notified successfully
        """
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic}")
        with self._lock:
            targets = [s for s in self._subscriptions if topic in s.topics]

        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(topic, info)
                delivered += 1
            except Exception:
                logger.exception("Subscriber failed for topic %s", topic)
        return delivered
