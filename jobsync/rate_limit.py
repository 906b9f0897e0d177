"""Pacing gates for providers with a requests-per-minute quota."""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

# Groq free tier: 30 requests/minute. 2.1s keeps us at ~28/min.
GROQ_CLASSIFY_INTERVAL_SECS = 2.1


class RateGate(Protocol):
    def wait(self) -> None: ...


class FixedIntervalGate:
    """Sleeps a fixed interval each time it is passed.

    The caller decides where the pauses go; the gate only owns the quota value
    and the sleep function, so tests can swap in a recorder.
    """

    def __init__(
        self,
        interval_secs: float = GROQ_CLASSIFY_INTERVAL_SECS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval_secs = max(0.0, float(interval_secs))
        self._sleep = sleep
        self.waits = 0

    def wait(self) -> None:
        self.waits += 1
        if self.interval_secs <= 0:
            return
        logger.debug("Rate gate: sleeping %.1fs", self.interval_secs)
        self._sleep(self.interval_secs)

