"""Fixed-delay throttle between work units.

The Gov24 and provider rate budgets are shared by the whole run, so every
batch (Wave 1) and every record (Waves 2/3) is followed by the same pause.
No concurrency control happens here; that is the batch size's job.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable


logger = logging.getLogger("subsidy.ingestion.rate_limiter")

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_DELAY_SECONDS = 1.0


class RateLimiter:
    def __init__(self, delay_seconds: float = DEFAULT_DELAY_SECONDS, *, sleep: Sleep = asyncio.sleep) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.waits = 0

    async def wait(self) -> None:
        """Suspend for the configured delay."""
        self.waits += 1
        if self.delay_seconds <= 0:
            return
        await self._sleep(self.delay_seconds)
