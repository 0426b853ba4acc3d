"""Change notification: live full-collection snapshots for store subscribers"""

import logging
import queue
import threading
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional

from loan_tracker.domain.exceptions import StoreError

_CANCELLED = object()


class Subscription:
    """
    Cancellable handle delivering full-collection snapshots.

    Each delivered item replaces the previous one wholesale; consumers never
    patch incrementally. A failed reload is delivered as a StoreError and
    raised to the consumer when it reaches that item.
    """

    def __init__(self, topic: Hashable, broker: "SnapshotBroker"):
        self.topic = topic
        self._broker = broker
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self.active = True

    def push(self, item: Any) -> None:
        if self.active:
            self._queue.put(item)

    def _unwrap(self, item: Any) -> Any:
        if isinstance(item, StoreError):
            raise item
        return item

    def get(self, timeout: Optional[float] = None) -> Optional[List[Any]]:
        """Block for the next snapshot; None once cancelled or on timeout"""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CANCELLED:
            return None
        return self._unwrap(item)

    def poll(self) -> Optional[List[Any]]:
        """Most recent pending snapshot without blocking, or None if nothing arrived.

        Older pending snapshots are skipped since only the latest matters. An
        error is raised only when it is the last item pending; a good
        snapshot queued after it supersedes it.
        """
        latest = None
        error: Optional[StoreError] = None
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CANCELLED:
                break
            if isinstance(item, StoreError):
                error = item
            else:
                latest = item
                error = None
        if error is not None:
            raise error
        return latest

    def __iter__(self) -> Iterator[List[Any]]:
        while True:
            snapshot = self.get()
            if snapshot is None:
                return
            yield snapshot

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._broker.unsubscribe(self)
        self._queue.put(_CANCELLED)


class SnapshotBroker:
    """Routes committed changes to subscribers of the affected collections"""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[Hashable, List[Subscription]] = {}
        self._loaders: Dict[Hashable, Callable[[], List[Any]]] = {}

    def subscribe(self, topic: Hashable, loader: Callable[[], List[Any]]) -> Subscription:
        """Register a subscriber and deliver the current snapshot immediately"""
        subscription = Subscription(topic, self)
        with self._lock:
            self._subscribers.setdefault(topic, []).append(subscription)
            self._loaders[topic] = loader
        subscription.push(self._load(topic, loader))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.topic, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.topic, None)
                self._loaders.pop(subscription.topic, None)

    def subscriber_count(self, topic: Hashable) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def publish(self, topic: Hashable) -> None:
        """Reload a changed collection once and fan it out"""
        with self._lock:
            subscribers = list(self._subscribers.get(topic, []))
            loader = self._loaders.get(topic)
        if not subscribers or loader is None:
            return

        snapshot = self._load(topic, loader)
        for subscription in subscribers:
            subscription.push(snapshot)

    def _load(self, topic: Hashable, loader: Callable[[], List[Any]]) -> Any:
        try:
            return loader()
        except StoreError as e:
            logging.error(f"Snapshot reload failed: {e}", extra={"topic": repr(topic)})
            return e
