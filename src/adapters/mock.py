"""
Mock adapters — test doubles for the remote session and log source.

Used by tests to drive a dev session without a network or running
services. Everything a mock receives is recorded for inspection.
"""

from __future__ import annotations

import queue
import threading
from typing import Iterable, Iterator

from src.adapters.base import Connection, Frame, FrameKind, LogSource, RemoteSession
from src.core.models.log_entry import ServiceLogEntry
from src.core.models.module import Service


class MockConnection(Connection):
    """In-memory connection.

    Push inbound frames with ``feed``/``ping``/``error``; call
    ``drop`` to simulate the remote side closing. Outbound messages are
    collected in ``sent``.
    """

    def __init__(self) -> None:
        self._frames: queue.Queue[Frame] = queue.Queue()
        self._open = True
        self._lock = threading.Lock()
        self.sent: list[str] = []
        self.pongs: list[str] = []

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, text: str) -> None:
        if not self._open:
            raise ConnectionError("connection is closed")
        with self._lock:
            self.sent.append(text)

    def pong(self, data: str = "") -> None:
        with self._lock:
            self.pongs.append(data)

    def receive(self) -> Frame:
        if not self._open and self._frames.empty():
            return Frame(FrameKind.CLOSE)
        frame = self._frames.get()
        if frame.kind == FrameKind.CLOSE:
            self._open = False
        return frame

    def close(self) -> None:
        self.drop()

    # ── Test controls ───────────────────────────────────────────

    def feed(self, text: str) -> None:
        self._frames.put(Frame(FrameKind.TEXT, text))

    def ping(self, data: str = "") -> None:
        self._frames.put(Frame(FrameKind.PING, data))

    def error(self, message: str) -> None:
        self._frames.put(Frame(FrameKind.ERROR, message))

    def drop(self) -> None:
        """Close from the remote side."""
        if self._open:
            self._open = False
            self._frames.put(Frame(FrameKind.CLOSE))


class MockRemoteSession(RemoteSession):
    """Hands out ``MockConnection`` objects and records every connect call.

    Args:
        fail_after: Number of successful connects before every further
            connect raises ``ConnectionError`` (None = never fail).
    """

    def __init__(self, fail_after: int | None = None) -> None:
        self._fail_after = fail_after
        self._lock = threading.Lock()
        self._connected = threading.Condition(self._lock)
        self.connect_calls: list[str] = []
        self.connections: list[MockConnection] = []

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.connect_calls)

    @property
    def latest(self) -> MockConnection | None:
        with self._lock:
            return self.connections[-1] if self.connections else None

    def connect(self, session_id: str) -> MockConnection:
        with self._lock:
            self.connect_calls.append(session_id)
            if self._fail_after is not None and len(self.connections) >= self._fail_after:
                raise ConnectionError("mock remote session refused the connection")
            conn = MockConnection()
            self.connections.append(conn)
            self._connected.notify_all()
            return conn

    def wait_for_connections(self, count: int, timeout: float = 2.0) -> bool:
        """Block until ``count`` connections have been handed out."""
        with self._connected:
            return self._connected.wait_for(lambda: len(self.connections) >= count, timeout)


class MockLogSource(LogSource):
    """Yields canned entries per service name.

    Args:
        entries: Mapping of service name to the entries to yield.
        failures: Mapping of service name to an exception raised after
            that service's entries have been yielded.
    """

    def __init__(
        self,
        entries: dict[str, Iterable[ServiceLogEntry]] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self._entries = {k: list(v) for k, v in (entries or {}).items()}
        self._failures = failures or {}
        self.calls: list[tuple[str, bool, str]] = []

    def stream_logs(
        self,
        service: Service,
        *,
        follow: bool,
        since: str,
    ) -> Iterator[ServiceLogEntry]:
        self.calls.append((service.name, follow, since))
        yield from self._entries.get(service.name, [])
        if service.name in self._failures:
            raise self._failures[service.name]
