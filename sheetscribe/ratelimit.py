"""Token-bucket pacing for calls to external APIs."""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class TokenBucket:
    """Blocking token bucket.

    ``rate`` tokens are added per second up to ``capacity``.  The bucket starts
    full, so the first ``capacity`` calls to :meth:`acquire` return at once.
    With ``rate=2`` and ``capacity=1`` consecutive calls are spaced 500 ms apart.
    """

    def __init__(
        self,
        rate: float = 2.0,
        capacity: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._updated = clock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def acquire(self) -> float:
        """Take one token, sleeping until one is available.

        Returns:
            The number of seconds spent waiting.
        """
        waited = 0.0
        self._refill()
        while self._tokens < 1:
            delay = (1 - self._tokens) / self.rate
            logger.debug("Rate limit reached; sleeping %.3fs", delay)
            self._sleep(delay)
            waited += delay
            self._refill()
        self._tokens -= 1
        return waited
