"""
In-process change feed: register callbacks against a named feed (usually a
table name) and receive structured change events after writes commit.
Dashboards subscribe here instead of to a specific backend's realtime wire format.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List

from flask import current_app

logger = logging.getLogger(__name__)

EVENT_TYPES = ('INSERT', 'UPDATE', 'DELETE')
ALL_FEEDS = '*'


@dataclass(frozen=True)
class ChangeEvent:
    feed: str
    event_type: str
    record: Dict[str, Any]
    occurred_at: datetime = field(default_factory=datetime.utcnow)


class Subscription:
    """Handle returned by ChangeFeed.subscribe."""

    def __init__(self, feed_bus, feed, callback):
        self._bus = feed_bus
        self.feed = feed
        self.callback = callback

    def unsubscribe(self):
        self._bus._remove(self)


class ChangeFeed:
    """Synchronous publish/subscribe registry keyed by feed name."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._lock = RLock()

    def subscribe(self, feed: str, callback: Callable[[ChangeEvent], None]) -> Subscription:
        """Register callback for feed; use '*' to receive every feed."""
        if not feed:
            raise ValueError("feed name is required")
        if not callable(callback):
            raise TypeError("callback must be callable")
        sub = Subscription(self, feed, callback)
        with self._lock:
            self._subscriptions.setdefault(feed, []).append(sub)
        return sub

    def _remove(self, sub):
        with self._lock:
            subs = self._subscriptions.get(sub.feed, [])
            if sub in subs:
                subs.remove(sub)

    def subscriber_count(self, feed: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(feed, []))

    def publish(self, feed: str, event_type: str, record: Dict[str, Any]) -> ChangeEvent:
        """
        Deliver an event to subscribers of feed, then to '*' subscribers.
        A failing callback is logged and does not stop delivery.
        """
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown change event type: {event_type}")
        event = ChangeEvent(feed=feed, event_type=event_type, record=dict(record))
        with self._lock:
            targets = list(self._subscriptions.get(feed, []))
            if feed != ALL_FEEDS:
                targets += self._subscriptions.get(ALL_FEEDS, [])
        for sub in targets:
            try:
                sub.callback(event)
            except Exception:
                logger.exception("Change feed subscriber failed for %s %s", feed, event_type)
        return event


def init_change_feed(app) -> ChangeFeed:
    """Attach a fresh feed to the app."""
    feed = ChangeFeed()
    app.extensions['change_feed'] = feed
    return feed


def get_change_feed():
    """Feed of the current app, or None outside an app context."""
    try:
        return current_app.extensions.get('change_feed')
    except RuntimeError:
        return None
