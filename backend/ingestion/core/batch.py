"""
Batch driver for the refresh waves.

Two shapes of work share one throttle:
- run_batches: slices of `batch_size` items run concurrently; each slice is
  awaited in full, then the limiter pauses before the next slice.
- run_each: one item at a time with the pause after every item.

Failure policy:
- run_each always isolates: an item's exception is logged and the pass moves on.
- run_batches isolates only when abort_on_item_failure=False. With the default
  (True) the first failure of a slice is re-raised once the slice has settled,
  which ends the pass.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from ingestion.core.rate_limiter import RateLimiter


logger = logging.getLogger("subsidy.ingestion.batch")

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 10


@dataclass
class BatchReport:
    total: int = 0
    succeeded: int = 0
    failed: int = 0

    def merge(self, other: "BatchReport") -> None:
        self.total += other.total
        self.succeeded += other.succeeded
        self.failed += other.failed


class BatchProcessor:
    def __init__(
        self,
        rate_limiter: RateLimiter,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        abort_on_item_failure: bool = True,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.rate_limiter = rate_limiter
        self.batch_size = batch_size
        self.abort_on_item_failure = abort_on_item_failure

    async def run_batches(
        self,
        items: Sequence[T],
        action: Callable[[T], Awaitable[None]],
        *,
        label: str = "batch",
    ) -> BatchReport:
        report = BatchReport(total=len(items))

        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            outcomes = await asyncio.gather(*(action(item) for item in batch), return_exceptions=True)

            first_error: Optional[BaseException] = None
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    report.failed += 1
                    if first_error is None:
                        first_error = outcome
                    logger.error(
                        f"{label}: item failed in batch starting at {start}: {outcome!r}",
                        exc_info=outcome,
                    )
                else:
                    report.succeeded += 1

            if first_error is not None and self.abort_on_item_failure:
                logger.error(f"{label}: aborting, batch starting at {start} had {report.failed} failure(s)")
                raise first_error

            await self.rate_limiter.wait()

        return report

    async def run_each(
        self,
        items: Sequence[T],
        action: Callable[[T], Awaitable[None]],
        *,
        label: str = "pass",
        describe: Callable[[T], str] = repr,
    ) -> BatchReport:
        report = BatchReport(total=len(items))

        for item in items:
            try:
                await action(item)
                report.succeeded += 1
            except Exception:
                report.failed += 1
                logger.exception(f"{label}: error for {describe(item)}, skipping")
            finally:
                await self.rate_limiter.wait()

        return report
