"""
Publish/subscribe channel for the post collection.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from blog_client.posts_service import Post

logger = logging.getLogger(__name__)

Subscriber = Callable[[list["Post"]], None]


class PostsChannel:
    """Delivers the full post list to every subscriber on publish."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, posts: list["Post"]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            # each subscriber gets its own list so it cannot mutate the cache
            callback(list(posts))
        logger.debug("Published %d posts to %d subscribers", len(posts), len(subscribers))

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
