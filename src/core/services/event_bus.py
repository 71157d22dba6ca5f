"""
EventBus — thread-safe, in-process named events with wildcard listeners.

Every noteworthy thing in a dev session (settings resolved, tasks
queued/finished, remote requests) is emitted here by name. Listeners
subscribe to one event kind, or to any kind via ``on_any``; the remote
event channel uses ``on_any`` to forward local events to the remote
session.

Thread safety model
───────────────────
- ``_lock`` protects ``_seq`` and the listener tables.
- Listeners are snapshotted under the lock and called outside it, on
  the emitting thread, so a listener may emit or unsubscribe freely.
- A listener that raises is logged and skipped; it never breaks the
  emitter or the other listeners.
"""

from __future__ import annotations

import logging
import threading
from enum import StrEnum
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)


class EventName(StrEnum):
    """Event kinds known to the dev loop."""

    SESSION_SETTINGS = "sessionSettings"

    # Remote commands (inbound over the event channel)
    BUILD_REQUESTED = "buildRequested"
    DEPLOY_REQUESTED = "deployRequested"
    TEST_REQUESTED = "testRequested"

    # Executor / watch loop lifecycle
    TASK_PENDING = "taskPending"
    TASK_PROCESSING = "taskProcessing"
    TASK_COMPLETE = "taskComplete"
    TASK_ERROR = "taskError"
    TASK_GRAPH_COMPLETE = "taskGraphComplete"
    WATCHING = "watchingForChanges"
    MODULE_SOURCES_CHANGED = "moduleSourcesChanged"
    MODULE_CONFIG_CHANGED = "moduleConfigChanged"
    SERVICE_STATUS = "serviceStatus"

    EXIT = "_exit"


Listener = Callable[[dict[str, Any]], None]
AnyListener = Callable[[EventName, dict[str, Any]], None]


class EventBus:
    """Named emission with per-kind and wildcard subscription."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._listeners: dict[EventName, list[Listener]] = {}
        self._any_listeners: list[tuple[AnyListener, frozenset[EventName] | None]] = []

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        """Number of events emitted so far."""
        with self._lock:
            return self._seq

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._listeners.values()) + len(self._any_listeners)

    # ── Subscribing ─────────────────────────────────────────────

    def on(self, name: EventName | str, listener: Listener) -> Callable[[], None]:
        """Call ``listener(payload)`` for every ``name`` event.

        Returns a function that removes the subscription.
        """
        kind = EventName(name)
        with self._lock:
            self._listeners.setdefault(kind, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(kind, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def on_any(
        self,
        listener: AnyListener,
        kinds: Iterable[EventName | str] | None = None,
    ) -> Callable[[], None]:
        """Call ``listener(name, payload)`` for every event of ``kinds``.

        ``kinds=None`` subscribes to every kind. Returns a function that
        removes the subscription.
        """
        allowed = frozenset(EventName(k) for k in kinds) if kinds is not None else None
        entry = (listener, allowed)
        with self._lock:
            self._any_listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._any_listeners:
                    self._any_listeners.remove(entry)

        return unsubscribe

    # ── Emitting ────────────────────────────────────────────────

    def emit(self, name: EventName | str, payload: dict[str, Any] | None = None) -> int:
        """Deliver an event to all matching listeners. Returns its sequence number.

        Raises:
            ValueError: If ``name`` is not a known event kind.
        """
        kind = EventName(name)
        data = payload or {}

        with self._lock:
            self._seq += 1
            seq = self._seq
            listeners = list(self._listeners.get(kind, []))
            any_listeners = [
                fn for fn, allowed in self._any_listeners
                if allowed is None or kind in allowed
            ]

        logger.debug("event #%d %s", seq, kind.value)

        for listener in listeners:
            try:
                listener(data)
            except Exception as e:
                logger.warning("Listener for '%s' failed: %s", kind.value, e)

        for any_listener in any_listeners:
            try:
                any_listener(kind, data)
            except Exception as e:
                logger.warning("Wildcard listener failed on '%s': %s", kind.value, e)

        return seq

    def clear(self) -> None:
        """Remove every listener."""
        with self._lock:
            self._listeners.clear()
            self._any_listeners.clear()


# ── Module-level singleton ──────────────────────────────────────

bus = EventBus()
"""The process-wide event bus.

Import and use::

    from src.core.services.event_bus import EventName, bus
    bus.emit(EventName.SESSION_SETTINGS, settings.to_dict())
"""
