"""Adapters — external collaborators of a dev session.

Public re-exports for convenient access.
"""

from src.adapters.base import Connection, Frame, FrameKind, LogSource, RemoteSession
from src.adapters.mock import MockConnection, MockLogSource, MockRemoteSession

__all__ = [
    "Connection",
    "Frame",
    "FrameKind",
    "LogSource",
    "MockConnection",
    "MockLogSource",
    "MockRemoteSession",
    "RemoteSession",
]
