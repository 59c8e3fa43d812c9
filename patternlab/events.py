"""In-process notification bus and foreground work queue."""

from __future__ import annotations

import logging
import threading
from collections import deque
from enum import Enum
from typing import Callable, Deque, Dict, Hashable, List, Tuple

logger = logging.getLogger(__name__)


class Event(Enum):
    PATTERN_CHANGED = "pattern_changed"
    PROJECT_FILE_STORE = "project_file_store"
    PROJECT_FILE_LOAD = "project_file_load"
    APPEND_PATTERN_CODE = "append_pattern_code"
    FILE_LOADED = "file_loaded"
    CHANGE_THEME = "change_theme"


Handler = Callable[..., None]


class EventBus:
    """Publish/subscribe hub keyed by :class:`Event`.

    Subscriptions are tagged with an owner so a component can drop all of its
    handlers for an event at once.  Handlers run synchronously on the
    publishing thread, in subscription order.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Event, List[Tuple[Hashable, Handler]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: Event, owner: Hashable, handler: Handler) -> None:
        with self._lock:
            self._subscribers.setdefault(event, []).append((owner, handler))

    def unsubscribe(self, event: Event, owner: Hashable) -> None:
        with self._lock:
            remaining = [
                entry for entry in self._subscribers.get(event, []) if entry[0] is not owner
            ]
            self._subscribers[event] = remaining

    def publish(self, event: Event, *args: object) -> None:
        with self._lock:
            handlers = [handler for _, handler in self._subscribers.get(event, [])]
        logger.debug("publish %s to %d handler(s)", event.value, len(handlers))
        for handler in handlers:
            handler(*args)

    def subscriber_count(self, event: Event) -> int:
        with self._lock:
            return len(self._subscribers.get(event, []))


class DeferredQueue:
    """Callbacks posted from anywhere, run on the foreground's next tick."""

    def __init__(self) -> None:
        self._pending: Deque[Callable[[], None]] = deque()
        self._lock = threading.Lock()

    def post(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._pending.append(callback)

    def run_pending(self) -> int:
        with self._lock:
            batch = list(self._pending)
            self._pending.clear()
        for callback in batch:
            callback()
        return len(batch)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
