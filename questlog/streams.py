"""
Realtime subscriptions as iterators.

A SnapshotStream wraps a store watch in a lazy, infinite, restartable
sequence: nothing is subscribed until iteration starts, every iteration
opens its own subscription, and the subscription is released when the
iterator is closed or `close()` is called.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from questlog.db import DocumentStore, Unsubscribe
from questlog.types import Board

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class SnapshotStream(Generic[T]):
    def __init__(
        self,
        subscribe: Callable[[Callable[[Any], None]], Unsubscribe],
        transform: Callable[[Any], T] = lambda value: value,
        name: str = "stream",
    ):
        self._subscribe = subscribe
        self._transform = transform
        self._name = name
        self._lock = threading.Lock()
        self._queues: set[queue.Queue] = set()

    def __iter__(self) -> Iterator[T]:
        # Registered before the first next() so a close() that races the
        # consumer's start still ends the iteration.
        pending: queue.Queue = queue.Queue()
        with self._lock:
            self._queues.add(pending)
        return self._iterate(pending)

    def _iterate(self, pending: queue.Queue) -> Iterator[T]:
        unsubscribe: Optional[Unsubscribe] = None
        try:
            unsubscribe = self._subscribe(pending.put)
            logger.info("Opened %s", self._name)
            while True:
                item = pending.get()
                if item is _CLOSED:
                    return
                yield self._transform(item)
        finally:
            if unsubscribe is not None:
                unsubscribe()
                logger.info("Closed %s", self._name)
            with self._lock:
                self._queues.discard(pending)

    def close(self) -> None:
        """Ends every open iteration; iterating again resubscribes."""
        with self._lock:
            queues = list(self._queues)
        for pending in queues:
            pending.put(_CLOSED)


def board_from_snapshot(data: Optional[dict]) -> Optional[Board]:
    """None means the document does not exist yet."""
    return Board.from_dict(data) if data is not None else None


def board_stream(store: DocumentStore, path: str) -> SnapshotStream[Optional[Board]]:
    return SnapshotStream(
        lambda callback: store.watch_document(path, callback),
        transform=board_from_snapshot,
        name=f"board stream {path}",
    )
