"""
Reconnect policy — bounded retries with exponential backoff and jitter.

Used by the event channel to decide whether another reconnect attempt
is allowed and how long to wait before making it.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconnectPolicy:
    """How many times, and how patiently, to reconnect.

    Args:
        max_retries: Reconnect attempts allowed after the first connection.
        base_delay: Delay before the first reconnect attempt (seconds).
        max_delay: Upper bound for the exponential delay (seconds).
        jitter: Fraction of the delay added at random (0 disables it).
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.3

    def allows(self, retries: int) -> bool:
        """Whether another attempt is allowed after ``retries`` attempts."""
        return retries < self.max_retries

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before reconnect ``attempt`` (1-based)."""
        if self.base_delay <= 0:
            return 0.0
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if self.jitter > 0:
            delay += random.uniform(0, delay * self.jitter)
        logger.debug(
            "Reconnect attempt %d/%d scheduled in %.1fs",
            attempt,
            self.max_retries,
            delay,
        )
        return delay

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_retries": self.max_retries,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "jitter": self.jitter,
        }
