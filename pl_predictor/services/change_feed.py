"""
In-process change feed for fixture documents.

Writers publish a before/after pair once their update is committed; every
subscriber then receives the change with a session of its own, the way a
database trigger would run in a fresh process.
"""

import logging
from typing import Any, Callable, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..config import SCORING_BATCH_SIZE
from .cache import clear_all_caches
from .triggers import FixtureChange, FixtureFinalizationTrigger

logger = logging.getLogger(__name__)

Subscriber = Callable[[Session, FixtureChange], Any]


class ChangeFeed:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers.append(subscriber)
        return subscriber

    def publish(self, change: FixtureChange) -> List[Any]:
        """
        Deliver a change to every subscriber.

        A failing subscriber is logged and does not stop delivery to the
        others; the write that produced the change is already committed.
        The exception takes that subscriber's place in the returned list.
        """
        results = []
        for subscriber in self._subscribers:
            try:
                with Session(self.engine) as session:
                    results.append(subscriber(session, change))
            except Exception as exc:
                logger.exception(
                    "Subscriber %r failed on change to fixture %s",
                    subscriber, change.fixture_id
                )
                results.append(exc)
        return results


def invalidate_read_caches(session: Session, change: FixtureChange) -> None:
    clear_all_caches()


def build_change_feed(engine: Engine, batch_size: Optional[int] = None) -> ChangeFeed:
    """Feed with the finalization trigger first, then cache invalidation."""
    feed = ChangeFeed(engine)
    feed.subscribe(FixtureFinalizationTrigger(batch_size or SCORING_BATCH_SIZE))
    feed.subscribe(invalidate_read_caches)
    return feed
