from __future__ import annotations

import asyncio

import pytest

from ingestion.core.batch import BatchProcessor
from ingestion.core.rate_limiter import RateLimiter


class ConcurrencyTracker:
    """Action that tracks how many calls are in flight at once."""

    def __init__(self, fail_on=()):
        self.in_flight = 0
        self.peak = 0
        self.seen = []
        self.fail_on = set(fail_on)

    async def __call__(self, item):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.seen.append(item)
            if item in self.fail_on:
                raise RuntimeError(f"boom {item}")
        finally:
            self.in_flight -= 1


def test_rate_limiter_sleeps_configured_delay(sleep_recorder):
    limiter = RateLimiter(1.5, sleep=sleep_recorder)
    asyncio.run(limiter.wait())
    asyncio.run(limiter.wait())
    assert sleep_recorder.calls == [1.5, 1.5]
    assert limiter.waits == 2


def test_rate_limiter_zero_delay_does_not_sleep(sleep_recorder):
    limiter = RateLimiter(0, sleep=sleep_recorder)
    asyncio.run(limiter.wait())
    assert sleep_recorder.calls == []
    assert limiter.waits == 1


def test_rate_limiter_rejects_negative_delay():
    with pytest.raises(ValueError):
        RateLimiter(-1)


def test_batches_bound_concurrency_and_delay_after_each_batch(sleep_recorder):
    processor = BatchProcessor(RateLimiter(1.0, sleep=sleep_recorder), batch_size=10)
    tracker = ConcurrencyTracker()

    report = asyncio.run(processor.run_batches(list(range(25)), tracker))

    assert report.total == 25 and report.succeeded == 25 and report.failed == 0
    assert tracker.peak == 10
    assert sorted(tracker.seen) == list(range(25))
    # 10 + 10 + 5 -> three batches, one pause after each.
    assert sleep_recorder.calls == [1.0, 1.0, 1.0]


def test_batches_preserve_order_across_batches(sleep_recorder):
    processor = BatchProcessor(RateLimiter(0, sleep=sleep_recorder), batch_size=3)
    tracker = ConcurrencyTracker()

    asyncio.run(processor.run_batches(list(range(9)), tracker))

    for batch_index in range(3):
        chunk = tracker.seen[batch_index * 3:(batch_index + 1) * 3]
        assert sorted(chunk) == list(range(batch_index * 3, batch_index * 3 + 3))


def test_batch_failure_aborts_remaining_batches_by_default(sleep_recorder):
    processor = BatchProcessor(RateLimiter(1.0, sleep=sleep_recorder), batch_size=2)
    tracker = ConcurrencyTracker(fail_on={3})

    with pytest.raises(RuntimeError, match="boom 3"):
        asyncio.run(processor.run_batches([1, 2, 3, 4, 5, 6], tracker))

    # Second batch settled completely, third never started.
    assert sorted(tracker.seen) == [1, 2, 3, 4]
    assert sleep_recorder.calls == [1.0]


def test_every_failure_in_aborting_batch_is_logged(sleep_recorder, caplog):
    processor = BatchProcessor(RateLimiter(1.0, sleep=sleep_recorder), batch_size=2)
    tracker = ConcurrencyTracker(fail_on={1, 2})

    with caplog.at_level("ERROR"), pytest.raises(RuntimeError, match="boom 1"):
        asyncio.run(processor.run_batches([1, 2, 3], tracker, label="basics"))

    text = caplog.text
    assert "boom 1" in text
    assert "boom 2" in text
    failed = [r for r in caplog.records if "item failed" in r.getMessage()]
    assert len(failed) == 2
    assert all(r.exc_info for r in failed)


def test_batch_failure_isolated_when_configured(sleep_recorder):
    processor = BatchProcessor(
        RateLimiter(1.0, sleep=sleep_recorder), batch_size=2, abort_on_item_failure=False
    )
    tracker = ConcurrencyTracker(fail_on={3})

    report = asyncio.run(processor.run_batches([1, 2, 3, 4, 5, 6], tracker))

    assert report.succeeded == 5 and report.failed == 1
    assert sorted(tracker.seen) == [1, 2, 3, 4, 5, 6]
    assert sleep_recorder.calls == [1.0, 1.0, 1.0]


def test_run_each_is_sequential_and_isolates_failures(sleep_recorder):
    processor = BatchProcessor(RateLimiter(1.0, sleep=sleep_recorder))
    tracker = ConcurrencyTracker(fail_on={"b"})

    report = asyncio.run(processor.run_each(["a", "b", "c"], tracker, label="test"))

    assert tracker.peak == 1
    assert tracker.seen == ["a", "b", "c"]
    assert report.succeeded == 2 and report.failed == 1
    assert sleep_recorder.calls == [1.0, 1.0, 1.0]


def test_empty_input_does_nothing(sleep_recorder):
    processor = BatchProcessor(RateLimiter(1.0, sleep=sleep_recorder))
    tracker = ConcurrencyTracker()

    assert asyncio.run(processor.run_batches([], tracker)).total == 0
    assert asyncio.run(processor.run_each([], tracker)).total == 0
    assert sleep_recorder.calls == []


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BatchProcessor(RateLimiter(0), batch_size=0)
