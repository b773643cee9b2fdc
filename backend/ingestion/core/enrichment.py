"""
Per-record enrichment for the subsidy catalog.

Operations and their failure policy:
- embed: mandatory for Wave 1, errors propagate.
- fetch_condition: retried on the still-processing code, then propagates;
  an empty/malformed answer is None, not an error.
- extract_condition_list: pure.
- summarize / extract_keywords: never raise; an empty result is stored instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from ingestion.core.ai_summarizer import (
    TextGenerationClient,
    build_keywords_prompt,
    build_summary_prompt,
    parse_keywords,
)
from ingestion.core.embedding import EmbeddingClient
from ingestion.core.network_client import SubsidyApiClient
from ingestion.core.rate_limiter import Sleep
from ingestion.core.retry import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
    is_still_processing,
    with_retry,
)


logger = logging.getLogger("subsidy.ingestion.enrichment")

# supportConditions flags are named JA0101, JA0102, ...
CONDITION_KEY_PREFIX = "JA"


def extract_condition_list(payload: Optional[Mapping[str, Any]]) -> List[str]:
    """Values of JA* keys in payload order, None values dropped."""
    if not payload:
        return []
    return [
        value
        for key, value in payload.items()
        if key.startswith(CONDITION_KEY_PREFIX) and value is not None
    ]


class EnrichmentService:
    def __init__(
        self,
        source: SubsidyApiClient,
        embedder: EmbeddingClient,
        generator: TextGenerationClient,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self._source = source
        self._embedder = embedder
        self._generator = generator
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep

    async def embed(self, text: str) -> List[float]:
        return await self._embedder.embed(text)

    async def fetch_condition(self, service_id: str) -> Optional[Dict[str, Any]]:
        return await with_retry(
            lambda: self._source.fetch_support_condition(service_id),
            max_retries=self._max_retries,
            is_retryable=is_still_processing,
            base_delay=self._retry_base_delay,
            sleep=self._sleep,
            label=f"fetchSupportCondition for serviceId {service_id}",
        )

    extract_condition_list = staticmethod(extract_condition_list)

    async def summarize(self, text: str) -> str:
        try:
            return (await self._generator.generate(build_summary_prompt(text))).strip()
        except Exception as e:
            logger.error(f"Error summarizing content: {e}")
            return ""

    async def extract_keywords(self, text: str) -> List[str]:
        try:
            return parse_keywords(await self._generator.generate(build_keywords_prompt(text)))
        except Exception as e:
            logger.error(f"Error extracting keywords: {e}")
            return []
