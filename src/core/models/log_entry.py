"""
Service log entry — one line read from a service's log source.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel


class ServiceLogEntry(BaseModel):
    """A single log line emitted by a running service."""

    service_name: str
    message: str = ""
    timestamp: datetime | None = None

    @property
    def timestamp_ms(self) -> int | None:
        """Epoch milliseconds, or None if the source gave no timestamp.

        A timestamp without a time zone is taken to be UTC.
        """
        if self.timestamp is None:
            return None
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return int(ts.timestamp() * 1000)
