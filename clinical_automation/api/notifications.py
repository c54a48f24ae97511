import itertools
import queue
import threading
from collections.abc import Callable
from typing import Any

from loguru import logger

from clinical_automation.ports import Subscription


class InProcessChannel:
    """Fan-out of workflow changes to subscribers, keyed by channel name.

    Callbacks run on the notifying thread; a failing subscriber is logged
    and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, dict[int, Callable[[Any], None]]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, episode_id: str, on_change: Callable[[Any], None]) -> Subscription:
        with self._lock:
            subscriber_id = next(self._ids)
            self._subscribers.setdefault(episode_id, {})[subscriber_id] = on_change
        return Subscription(channel=episode_id, subscriber_id=subscriber_id)

    def subscribe_queue(self, episode_id: str) -> tuple[Subscription, queue.Queue]:
        q: queue.Queue = queue.Queue()
        return self.subscribe(episode_id, q.put), q

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            callbacks = self._subscribers.get(subscription.channel, {})
            callbacks.pop(subscription.subscriber_id, None)
            if not callbacks:
                self._subscribers.pop(subscription.channel, None)

    def subscriber_count(self, episode_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(episode_id, {}))

    def notify(self, episode_id: str, payload: Any) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(episode_id, {}).values())
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Subscriber on channel {episode_id} failed")
