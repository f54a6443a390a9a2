"""Minimum spacing between generation dispatches."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Hold callers until ``min_interval`` seconds have passed since the last dispatch.

    Callers are delayed, never rejected. The check and the timestamp update
    happen under one lock, so concurrent waiters are released one at a time,
    each a full interval after the previous one.
    """

    def __init__(
        self,
        min_interval: float = 8.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_dispatch: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_dispatch(self) -> float | None:
        return self._last_dispatch

    def now(self) -> float:
        return self._clock()

    def status(self) -> tuple[bool, float]:
        """Return ``(can_dispatch_now, seconds_to_wait)``."""
        if self._last_dispatch is None:
            return True, 0.0
        remaining = self.min_interval - (self._clock() - self._last_dispatch)
        if remaining <= 0:
            return True, 0.0
        return False, remaining

    async def wait(self) -> float:
        """Suspend until a dispatch is allowed, then claim the slot.

        Returns:
            Seconds spent waiting.
        """
        async with self._lock:
            waited = 0.0
            if self._last_dispatch is not None:
                elapsed = self._clock() - self._last_dispatch
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.info("Rate limit: waiting %.1fs before dispatch", waited)
                    await self._sleep(waited)
            self._last_dispatch = self._clock()
            return waited

    def reset(self) -> None:
        self._last_dispatch = None
