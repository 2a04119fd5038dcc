"""
In-process change feed for partner progress rows.

Every mutation is broadcast to every subscription and each subscription
filters by its own set of partnership ids. There is no server-side
predicate for "any of N ids", so the cost is one membership check per
subscription per mutation.

A subscription may name the user it listens for. Partnerships accepted or
ended while it is open are then granted to or revoked from it, so a
long-lived socket follows its user's partnerships without reconnecting.
"""
import inspect
import logging
import uuid
from typing import Awaitable, Callable, Dict, Iterable, Optional, Union

from accountability.schemas.progress import ProgressChange

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressChange], Union[None, Awaitable[None]]]


class Subscription:
    """Handle for a live registration. Call `unsubscribe()` to stop callbacks."""

    def __init__(
        self,
        feed: "ProgressFeed",
        partnership_ids: Iterable[str],
        callback: ProgressCallback,
        owner_id: Optional[str] = None,
    ):
        self.id = str(uuid.uuid4())
        self.partnership_ids = set(partnership_ids)
        self.owner_id = owner_id
        self._feed = feed
        self._callback = callback
        self.active = True

    def matches(self, change: ProgressChange) -> bool:
        return self.active and change.partnership_id in self.partnership_ids

    async def deliver(self, change: ProgressChange):
        result = self._callback(change)
        if inspect.isawaitable(result):
            await result

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._feed.remove(self)


class ProgressFeed:
    def __init__(self):
        self._subscriptions: Dict[str, Subscription] = {}

    def subscribe(
        self, partnership_ids: Iterable[str], callback: ProgressCallback, owner_id: Optional[str] = None
    ) -> Subscription:
        subscription = Subscription(self, partnership_ids, callback, owner_id=owner_id)
        if not subscription.partnership_ids and owner_id is None:
            # Nothing to listen for and nothing can be granted later
            subscription.active = False
            return subscription
        self._subscriptions[subscription.id] = subscription
        logger.info(
            f"Progress subscription {subscription.id} active for {len(subscription.partnership_ids)} partnerships"
        )
        return subscription

    def remove(self, subscription: Subscription):
        self._subscriptions.pop(subscription.id, None)
        logger.info(f"Progress subscription {subscription.id} released")

    def grant(self, user_id: str, partnership_id: str):
        """Start delivering a partnership's changes to the user's open subscriptions."""
        for subscription in list(self._subscriptions.values()):
            if subscription.owner_id == user_id:
                subscription.partnership_ids.add(partnership_id)

    def revoke(self, partnership_id: str):
        for subscription in list(self._subscriptions.values()):
            subscription.partnership_ids.discard(partnership_id)

    async def publish(self, change: ProgressChange):
        # Snapshot: callbacks may unsubscribe while we iterate
        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(change):
                continue
            try:
                await subscription.deliver(change)
            except Exception:
                logger.exception(f"Progress subscriber {subscription.id} failed")


progress_feed = ProgressFeed()
