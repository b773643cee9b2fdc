"""Bounded retry for the one transient failure the Gov24 API reports.

`supportConditions` answers `{"code": -10, ...}` while it is still preparing
data for a service. Those calls are retried with linear backoff; every other
failure (HTTP status, transport, parse) propagates on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from ingestion.core.rate_limiter import Sleep


logger = logging.getLogger("subsidy.ingestion.retry")

T = TypeVar("T")

STILL_PROCESSING_CODE = -10
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY_SECONDS) -> float:
    """Delay before retry number `attempt + 1` (attempt counts from 0): base × (attempt + 1)."""
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    return base_delay * (attempt + 1)


def response_error_code(exc: BaseException) -> Optional[int]:
    """Application-level `code` from an HTTP error body, if there is one."""
    if not isinstance(exc, httpx.HTTPStatusError):
        return None
    try:
        body = exc.response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    code = body.get("code")
    return code if isinstance(code, int) else None


def is_still_processing(exc: BaseException) -> bool:
    return response_error_code(exc) == STILL_PROCESSING_CODE


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    is_retryable: Callable[[BaseException], bool] = is_still_processing,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run `operation`, retrying at most `max_retries` times on retryable errors."""
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries or not is_retryable(e):
                raise
            delay = backoff_delay(attempt, base_delay)
            attempt += 1
            logger.info(f"Retrying {label} (attempt {attempt}) in {delay:.1f}s")
            await sleep(delay)
