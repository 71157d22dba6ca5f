"""
Log stream — multiplex live service logs into the event channel.

One producer thread per service follows that service's log source and
pushes entries into a shared bounded queue; a single consumer thread
drops uninteresting entries and sends the rest through the event
channel as ``serviceLog`` messages.

Delivery is best-effort: entries that don't fit the queue, or that
arrive while the channel is disconnected, are dropped. Entries keep
their per-service order; entries of different services interleave.
A failing source ends only its own service's producer.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Iterable

from src.adapters.base import LogSource
from src.core.models.log_entry import ServiceLogEntry
from src.core.models.module import Service
from src.core.services.event_channel import EventChannel

logger = logging.getLogger(__name__)

LOG_SINCE = "10s"
"""How far back each stream starts when it is opened."""

_QUEUE_SIZE = 1000
_POLL_S = 0.2


def skip_entry(entry: ServiceLogEntry) -> bool:
    """Whether an entry is not worth sending (empty message body)."""
    return not entry.message or not entry.message.strip()


def serialize_entry(entry: ServiceLogEntry) -> dict[str, Any]:
    """Wire form of a log entry. ``timestamp`` is omitted when unknown."""
    message: dict[str, Any] = {
        "type": "serviceLog",
        "name": "serviceLog",
        "message": entry.message,
        "serviceName": entry.service_name,
    }
    timestamp = entry.timestamp_ms
    if timestamp is not None:
        message["timestamp"] = timestamp
    return message


class LogMultiplexer:
    """Fan-in of per-service log streams into one event channel.

    Args:
        source: Log source to open streams from.
        channel: Event channel the entries are sent through.
        since: How far back each stream starts.
        queue_size: Capacity of the shared queue.
    """

    def __init__(
        self,
        source: LogSource,
        channel: EventChannel,
        *,
        since: str = LOG_SINCE,
        queue_size: int = _QUEUE_SIZE,
    ) -> None:
        self._source = source
        self._channel = channel
        self._since = since
        self._queue: queue.Queue[ServiceLogEntry] = queue.Queue(maxsize=queue_size)
        self._stop = threading.Event()
        self._lock = threading.Lock()  # guards the counters below
        self._producers: list[threading.Thread] = []
        self._consumer: threading.Thread | None = None

        self.sent = 0
        self.skipped = 0
        self.dropped = 0
        self.failed_services: list[str] = []

    def start(self, services: Iterable[Service]) -> None:
        """Open a follow stream for every enabled service."""
        if self._consumer is None:
            self._consumer = threading.Thread(
                target=self._consume,
                daemon=True,
                name="log-stream",
            )
            self._consumer.start()

        for service in services:
            if service.disabled:
                continue
            t = threading.Thread(
                target=self._produce,
                args=(service,),
                daemon=True,
                name=f"log-stream:{service.name}",
            )
            t.start()
            self._producers.append(t)

        logger.debug("Started log streams for %d services", len(self._producers))

    def stop(self) -> None:
        """Stop consuming. Producers end at their next entry."""
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for every producer to finish and the queue to drain."""
        for t in self._producers:
            t.join(timeout)
        if not self._stop.is_set():
            self._queue.join()

    # ── Workers ─────────────────────────────────────────────────

    def _produce(self, service: Service) -> None:
        try:
            for entry in self._source.stream_logs(service, follow=True, since=self._since):
                if self._stop.is_set():
                    break
                try:
                    self._queue.put_nowait(entry)
                except queue.Full:
                    self._count("dropped")
        except Exception as e:
            with self._lock:
                self.failed_services.append(service.name)
            logger.error("Streaming logs for service '%s' failed: %s", service.name, e)
            return
        logger.debug("Log stream for service '%s' ended", service.name)

    def _consume(self) -> None:
        while not self._stop.is_set():
            try:
                entry = self._queue.get(timeout=_POLL_S)
            except queue.Empty:
                continue
            try:
                if skip_entry(entry):
                    self._count("skipped")
                elif self._channel.send(serialize_entry(entry)):
                    self._count("sent")
                else:
                    self._count("dropped")
            finally:
                self._queue.task_done()

    def _count(self, counter: str) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + 1)

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "streams": len(self._producers),
                "sent": self.sent,
                "skipped": self.skipped,
                "dropped": self.dropped,
                "failed_services": list(self.failed_services),
            }


def start_log_stream(
    services: Iterable[Service],
    channel: EventChannel,
    source: LogSource,
    *,
    since: str = LOG_SINCE,
) -> LogMultiplexer:
    """Start streaming logs of ``services`` into ``channel``."""
    mux = LogMultiplexer(source, channel, since=since)
    mux.start(services)
    return mux
