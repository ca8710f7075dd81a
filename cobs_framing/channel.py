# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Publish/subscribe channel for delivering decoded frames to consumers.

Each subscriber gets its own :class:`Subscription` handle; no state is
shared between subscribers other than the values they are handed.
"""

import queue
import threading
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class Subscription(Generic[T]):
    """
    Handle returned by :meth:`Channel.subscribe`.

    Can be used as a context manager:
        with channel.subscribe(print):
            ...
    """

    def __init__(self, channel: "Channel[T]", callback: Callable[[T], None]):
        self._channel = channel
        self.callback = callback
        self.active = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()
        return False

    def unsubscribe(self) -> None:
        """Stop receiving values. Safe to call more than once."""
        if self.active:
            self.active = False
            self._channel._remove(self)


class Channel(Generic[T]):
    """Ordered, synchronous fan-out of published values."""

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._subscribers: List[Subscription[T]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __repr__(self) -> str:
        return f"Channel({self.name!r}, subscribers={len(self)})"

    def subscribe(self, callback: Callable[[T], None]) -> Subscription[T]:
        """Register callback(value), called for every published value."""
        sub = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def subscribe_queue(self, maxsize: int = 0) -> Tuple[Subscription[T], "queue.Queue[T]"]:
        """Deliver published values into a new thread-safe queue."""
        q: "queue.Queue[T]" = queue.Queue(maxsize)
        return self.subscribe(q.put), q

    def publish(self, value: T) -> int:
        """
        Deliver value to every active subscriber, in subscription order.

        Returns:
            Number of subscribers the value was delivered to
        """
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for sub in subscribers:
            if sub.active:
                sub.callback(value)
                delivered += 1
        return delivered

    def _remove(self, sub: Subscription[T]) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)
