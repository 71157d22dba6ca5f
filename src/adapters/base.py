"""
Adapter base — contracts for the external collaborators of a dev session.

The dev loop never talks to the network or to a service runtime
directly. It goes through these interfaces:

    RemoteSession  — opens a duplex connection to a collaboration session
    Connection     — one open duplex connection (frames in, text out)
    LogSource      — streams log entries for a deployed service

To create a new adapter:
    1. Subclass the relevant base class
    2. Implement its abstract methods
    3. Hand an instance to ``start_dev`` (or the component directly)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator

from src.core.models.log_entry import ServiceLogEntry
from src.core.models.module import Service


class FrameKind(StrEnum):
    """Kinds of frames a connection can deliver."""

    TEXT = "text"
    PING = "ping"
    ERROR = "error"
    CLOSE = "close"


@dataclass(frozen=True)
class Frame:
    """One inbound frame. ``data`` is the text, ping payload, or error message."""

    kind: FrameKind
    data: str = ""


class Connection(ABC):
    """An open duplex connection to a remote session.

    ``receive`` blocks until the next frame. After the connection has
    closed (from either side) it returns a CLOSE frame, every time.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether messages can currently be sent."""

    @abstractmethod
    def send(self, text: str) -> None:
        """Send one text message."""

    @abstractmethod
    def pong(self, data: str = "") -> None:
        """Answer a ping frame."""

    @abstractmethod
    def receive(self) -> Frame:
        """Block until the next inbound frame."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Safe to call more than once."""


class RemoteSession(ABC):
    """Capability to connect to a remote collaboration session."""

    @abstractmethod
    def connect(self, session_id: str) -> Connection:
        """Open a new connection for ``session_id``.

        Raises:
            ConnectionError: If the connection can't be established.
        """


class LogSource(ABC):
    """Source of live log entries for deployed services."""

    @abstractmethod
    def stream_logs(
        self,
        service: Service,
        *,
        follow: bool,
        since: str,
    ) -> Iterator[ServiceLogEntry]:
        """Yield log entries for ``service``, starting ``since`` ago (e.g. ``"10s"``).

        With ``follow`` the iterator keeps yielding new entries and only
        ends when the source is exhausted or fails. Each call opens a
        fresh stream.
        """
