"""Fire-and-forget change notification for CrisisFusion.

ChangeNotifier hands every event to a background worker that calls the
publish sink. publish() returns immediately; sink failures are logged and
dropped, never retried or raised to the caller.

Per-disaster events go to the topic ``disaster-<id>``; everything else goes
to ``broadcast``.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from config.defaults import NOTIFIER_MAX_WORKERS
from crisisfusion.utils.date_utils import utc_now_iso

logger = logging.getLogger(__name__)

BROADCAST_TOPIC = "broadcast"
WILDCARD_TOPIC = "*"


class PublishSink(Protocol):
    """Opaque event transport: a WebSocket hub, message bus, or in-process fan-out."""

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        ...


def disaster_topic(disaster_id: str) -> str:
    return f"disaster-{disaster_id}"


class InProcessPublishSink:
    """Topic to subscriber-callback fan-out inside one process.

    Subscribers to ``*`` receive every event. Every published event is also
    appended to ``published`` for inspection.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callable[[str, Dict[str, Any]], Any]]] = defaultdict(list)
        self._lock = threading.Lock()
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    def subscribe(self, topic: str, callback: Callable[[str, Dict[str, Any]], Any]) -> None:
        with self._lock:
            self._subscribers[topic].append(callback)

    def unsubscribe(self, topic: str, callback: Callable[[str, Dict[str, Any]], Any]) -> None:
        with self._lock:
            if callback in self._subscribers.get(topic, []):
                self._subscribers[topic].remove(callback)

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.published.append((topic, payload))
            callbacks = list(self._subscribers.get(topic, [])) + list(
                self._subscribers.get(WILDCARD_TOPIC, [])
            )
        for callback in callbacks:
            callback(topic, payload)


class ChangeNotifier:
    """Asynchronous, best-effort delivery of change events to a publish sink.

    Args:
        sink: Object exposing ``publish(topic, payload)``.
        max_workers: Background delivery threads.
    """

    def __init__(self, sink: PublishSink, max_workers: int = NOTIFIER_MAX_WORKERS) -> None:
        self.sink = sink
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notifier")

    def _on_done(self, topic: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Publish to %s failed: %s", topic, exc)

    def publish(self, topic: str, payload: Dict[str, Any]) -> Optional[Future]:
        """Queue payload for delivery on topic and return without waiting.

        Returns:
            The delivery future, or None if the notifier is closed.
        """
        try:
            future = self._executor.submit(self.sink.publish, topic, payload)
        except RuntimeError as exc:
            logger.warning("Dropping event for %s: notifier closed (%s)", topic, exc)
            return None
        future.add_done_callback(lambda f: self._on_done(topic, f))
        return future

    def notify(
        self,
        event: str,
        payload: Optional[Mapping[str, Any]] = None,
        disaster_id: Optional[str] = None,
    ) -> Optional[Future]:
        """Publish a named event, stamped with ``event`` and ``timestamp``.

        Args:
            event: Event name, e.g. "disaster_created".
            payload: Event body.
            disaster_id: Routes to the disaster's topic when given, else broadcast.
        """
        topic = disaster_topic(disaster_id) if disaster_id else BROADCAST_TOPIC
        body = dict(payload or {})
        body["event"] = event
        body["timestamp"] = utc_now_iso()
        logger.debug("Notify %s on %s", event, topic)
        return self.publish(topic, body)

    def close(self, wait: bool = True) -> None:
        """Stop accepting events; with wait=True, drain pending deliveries first."""
        self._executor.shutdown(wait=wait)
