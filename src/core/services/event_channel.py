"""
Event channel — resilient duplex link to an optional remote session.

Outbound, every local event of the forwarded kinds is sent to the
remote session as ``{"type": "event", "name": ..., **payload}``.
Inbound, build/deploy/test requests from the remote session are
re-emitted on the local event bus.

States:
    NO_REMOTE  → No remote session capability. Terminal.
    CONNECTING → Connect attempt in flight.
    CONNECTED  → Frames flowing. Outbound events are sent.
    RETRYING   → Connection closed, waiting to reconnect.
    GIVEN_UP   → Retry budget exhausted. Terminal.
    CLOSED     → Shut down by ``close()``. Terminal.

Transitions:
    CONNECTING → CONNECTED:  connect succeeded
    CONNECTING → RETRYING:   connect failed and retries remain
    CONNECTED  → RETRYING:   connection closed and retries remain
    *          → GIVEN_UP:   closed (or failed) with no retries left

One supervisor thread owns the connection handle and the retry counter
and performs every transition, so reconnects are strictly sequential.
Senders only read the handle. Events raised while not connected are
dropped, never buffered or replayed. Error frames are logged; only a
close triggers a reconnect. The retry counter is never reset.
"""

from __future__ import annotations

import json
import logging
import threading
from enum import StrEnum
from typing import Any, Iterable

from src.adapters.base import Connection, FrameKind, RemoteSession
from src.core.reliability.reconnect import ReconnectPolicy
from src.core.services.event_bus import EventBus, EventName

logger = logging.getLogger(__name__)

INBOUND_EVENTS = frozenset({
    EventName.DEPLOY_REQUESTED,
    EventName.BUILD_REQUESTED,
    EventName.TEST_REQUESTED,
})


class ChannelState(StrEnum):
    """Event channel states."""

    IDLE = "idle"
    NO_REMOTE = "no_remote"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RETRYING = "disconnected_retrying"
    GIVEN_UP = "given_up"
    CLOSED = "closed"


TERMINAL_STATES = frozenset({ChannelState.NO_REMOTE, ChannelState.GIVEN_UP, ChannelState.CLOSED})


class EventChannel:
    """Duplex event link between the local event bus and a remote session.

    Args:
        remote: Remote session capability, or None when there is none.
        session_id: Identifier passed to ``remote.connect``.
        events: Local event bus.
        policy: Reconnect policy (default: 3 retries with backoff).
        forward_kinds: Event kinds to forward (None = every kind).
    """

    def __init__(
        self,
        remote: RemoteSession | None,
        session_id: str,
        events: EventBus,
        *,
        policy: ReconnectPolicy | None = None,
        forward_kinds: Iterable[EventName] | None = None,
    ) -> None:
        self._remote = remote
        self._session_id = session_id
        self._events = events
        self._policy = policy or ReconnectPolicy()
        self._forward_kinds = list(forward_kinds) if forward_kinds is not None else None

        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._send_lock = threading.Lock()
        self._stop = threading.Event()

        # ── Owned by the supervisor thread ──────────────────────
        self._state = ChannelState.IDLE
        self._conn: Connection | None = None
        self._retries = 0

        self._thread: threading.Thread | None = None
        self._unsubscribe: Any = None

    # ── Properties ──────────────────────────────────────────────

    @property
    def state(self) -> ChannelState:
        with self._lock:
            return self._state

    @property
    def retries(self) -> int:
        with self._lock:
            return self._retries

    @property
    def connected(self) -> bool:
        return self.state == ChannelState.CONNECTED

    @property
    def session_id(self) -> str:
        return self._session_id

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self) -> threading.Thread | None:
        """Start forwarding and connect in the background.

        Returns the supervisor thread, or None if there is no remote session.
        """
        if self._remote is None:
            self._set_state(ChannelState.NO_REMOTE)
            logger.debug("No remote session configured, event channel disabled")
            return None

        if self._thread is not None:
            return self._thread

        self._unsubscribe = self._events.on_any(self._forward, kinds=self._forward_kinds)
        self._set_state(ChannelState.CONNECTING)
        self._thread = threading.Thread(
            target=self._supervise,
            daemon=True,
            name="event-channel",
        )
        self._thread.start()
        return self._thread

    def close(self, timeout: float = 5.0) -> None:
        """Stop forwarding, close the connection and stop reconnecting."""
        self._stop.set()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        with self._lock:
            conn = self._conn
        if conn is not None:
            conn.close()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

        with self._lock:
            if self._state not in TERMINAL_STATES:
                self._state = ChannelState.CLOSED
                self._changed.notify_all()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the supervisor thread to finish."""
        if self._thread is not None:
            self._thread.join(timeout)

    def wait_for_state(self, *states: ChannelState, timeout: float = 5.0) -> bool:
        """Block until the channel is in one of ``states``. Returns False on timeout."""
        with self._changed:
            return self._changed.wait_for(lambda: self._state in states, timeout)

    # ── Sending ─────────────────────────────────────────────────

    def send(self, message: dict[str, Any]) -> bool:
        """Send a message if connected. Returns False if it was dropped."""
        with self._lock:
            conn = self._conn if self._state == ChannelState.CONNECTED else None

        if conn is None or not conn.is_open:
            return False

        text = json.dumps(message, default=str)
        try:
            with self._send_lock:
                conn.send(text)
        except Exception as e:
            logger.debug("Dropped outbound message: %s", e)
            return False
        return True

    def _forward(self, name: EventName, payload: dict[str, Any]) -> None:
        self.send({"type": "event", "name": name.value, **payload})

    # ── Supervisor ──────────────────────────────────────────────

    def _supervise(self) -> None:
        conn = self._open_connection()

        while not self._stop.is_set():
            if conn is not None:
                self._pump(conn)
                with self._lock:
                    self._conn = None
                if self._stop.is_set():
                    break
                logger.info("Remote session connection closed")

            with self._lock:
                retries = self._retries
            if not self._policy.allows(retries):
                logger.warning(
                    "Giving up on remote session after %d reconnect attempts; "
                    "continuing without remote collaboration",
                    retries,
                )
                self._set_state(ChannelState.GIVEN_UP)
                return

            with self._lock:
                self._retries += 1
                retries = self._retries
                self._state = ChannelState.RETRYING
                self._changed.notify_all()

            logger.info(
                "Attempting to reconnect %d/%d",
                retries,
                self._policy.max_retries,
            )
            if self._stop.wait(self._policy.delay_for(retries)):
                break

            self._set_state(ChannelState.CONNECTING)
            conn = self._open_connection()

        self._set_state(ChannelState.CLOSED)

    def _open_connection(self) -> Connection | None:
        assert self._remote is not None
        try:
            conn = self._remote.connect(self._session_id)
        except Exception as e:
            logger.warning("Could not connect to remote session: %s", e)
            return None

        with self._lock:
            if self._stop.is_set():
                conn.close()
                return None
            self._conn = conn
            self._state = ChannelState.CONNECTED
            self._changed.notify_all()

        logger.info("Connected to remote session %s", self._session_id)
        return conn

    def _pump(self, conn: Connection) -> None:
        """Handle inbound frames until the connection closes."""
        while True:
            try:
                frame = conn.receive()
            except Exception as e:
                logger.debug("Receive failed, treating as close: %s", e)
                return

            if frame.kind == FrameKind.CLOSE:
                return
            if frame.kind == FrameKind.PING:
                with self._send_lock:
                    conn.pong(frame.data)
            elif frame.kind == FrameKind.ERROR:
                logger.debug("Remote session error: %s", frame.data)
            elif frame.kind == FrameKind.TEXT:
                self._handle_message(frame.data)

    def _handle_message(self, text: str) -> None:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Ignoring non-JSON message from remote session")
            return

        if not isinstance(parsed, dict):
            return
        event = parsed.get("event")
        if not isinstance(event, str) or event not in INBOUND_EVENTS:
            logger.debug("Ignoring remote message with event=%r", event)
            return

        payload = {k: v for k, v in parsed.items() if k != "event"}
        self._events.emit(EventName(event), payload)

    def _set_state(self, state: ChannelState) -> None:
        with self._lock:
            self._state = state
            self._changed.notify_all()

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "state": self._state.value,
                "retries": self._retries,
                "session_id": self._session_id,
                "policy": self._policy.to_dict(),
            }
