"""Ingestion core for the subsidy catalog refresh.

- SubsidyApiClient: Gov24 serviceDetail pages and supportConditions lookups
- EnrichmentService: embeddings, conditions, summaries, keywords
- BatchProcessor / RateLimiter: throttled, bounded-concurrency passes
- IngestionPipeline: the four-stage full refresh
"""

from ingestion.core.batch import BatchProcessor, BatchReport
from ingestion.core.enrichment import EnrichmentService, extract_condition_list
from ingestion.core.errors import EnrichmentError, IngestionAborted, IngestionError
from ingestion.core.network_client import SubsidyApiClient, SubsidyPage
from ingestion.core.pipeline import IngestionPipeline, PipelineReport, PipelineStage, page_count
from ingestion.core.rate_limiter import RateLimiter
from ingestion.core.retry import backoff_delay, is_still_processing, with_retry

__all__ = [
    "BatchProcessor",
    "BatchReport",
    "EnrichmentService",
    "extract_condition_list",
    "EnrichmentError",
    "IngestionAborted",
    "IngestionError",
    "SubsidyApiClient",
    "SubsidyPage",
    "IngestionPipeline",
    "PipelineReport",
    "PipelineStage",
    "page_count",
    "RateLimiter",
    "backoff_delay",
    "is_still_processing",
    "with_retry",
]
