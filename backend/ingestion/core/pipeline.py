"""Subsidy catalog full-refresh pipeline.

Execution Flow:
    IngestionPipeline.run()
    ├── Stage 1: CLEAR              delete every stored record            (fatal)
    ├── Stage 2: FETCH_BASICS       probe totalCount, page through serviceDetail,
    │                               embed + insert in concurrent batches  (fatal)
    ├── Stage 3: UPDATE_CONDITIONS  supportConditions per record          (isolated)
    └── Stage 4: UPDATE_SUMMARIES   summary + keywords per record         (isolated)

Stages run strictly in order and never overlap. A fatal failure ends the run
as ABORTED; there is no resume point, the next run starts again from CLEAR.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

from app.schemas.subsidy import SubsidyCreate, SubsidyRead, SubsidySource
from ingestion.core.batch import BatchProcessor, BatchReport, DEFAULT_BATCH_SIZE
from ingestion.core.enrichment import EnrichmentService
from ingestion.core.errors import IngestionAborted
from ingestion.core.network_client import SubsidyPage
from ingestion.core.rate_limiter import RateLimiter, Sleep


UTC = timezone.utc
logger = logging.getLogger("subsidy.ingestion")

DEFAULT_PAGE_SIZE = 500
DEFAULT_DELAY_SECONDS = 1.0


class SubsidyStore(Protocol):
    async def clear_all(self) -> int: ...

    async def insert(self, data: SubsidyCreate) -> None: ...

    async def list_all(self) -> List[SubsidyRead]: ...

    async def update_support_condition(self, service_id: str, conditions: Sequence[str]) -> None: ...

    async def update_summary(self, service_id: str, summary: str, keywords: Sequence[str]) -> None: ...


class PageFetcher(Protocol):
    async def fetch_page(self, page: int, per_page: int) -> SubsidyPage: ...


class PipelineStage(str, Enum):
    PENDING = "pending"
    CLEAR = "clear"
    FETCH_BASICS = "fetch_basics"
    UPDATE_CONDITIONS = "update_conditions"
    UPDATE_SUMMARIES = "update_summaries"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class PipelineReport:
    stage: PipelineStage = PipelineStage.PENDING
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    cleared: int = 0
    total_count: int = 0
    pages: int = 0
    pages_processed: int = 0
    basics: BatchReport = field(default_factory=BatchReport)
    conditions: BatchReport = field(default_factory=BatchReport)
    conditions_empty: int = 0
    summaries: BatchReport = field(default_factory=BatchReport)
    aborted_stage: Optional[PipelineStage] = None
    error: Optional[str] = None

    def to_log_event(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event"] = "ingestion_run_summary"
        data["stage"] = self.stage.value
        data["aborted_stage"] = self.aborted_stage.value if self.aborted_stage else None
        data["started_at"] = self.started_at.isoformat() if self.started_at else None
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


def page_count(total_count: int, per_page: int) -> int:
    if per_page < 1:
        raise ValueError("per_page must be >= 1")
    return math.ceil(max(total_count, 0) / per_page)


def _log(event: dict) -> None:
    logger.info(json.dumps(event, ensure_ascii=False, default=str))


class IngestionPipeline:
    def __init__(
        self,
        store: SubsidyStore,
        fetcher: PageFetcher,
        enrichment: EnrichmentService,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        abort_on_batch_item_failure: bool = True,
        sleep: Sleep = asyncio.sleep,
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.store = store
        self.fetcher = fetcher
        self.enrichment = enrichment
        self.page_size = page_size
        self.basics_processor = BatchProcessor(
            RateLimiter(delay_seconds, sleep=sleep),
            batch_size=batch_size,
            abort_on_item_failure=abort_on_batch_item_failure,
        )
        # Waves 2/3 are serialized: one record, one pause.
        self.update_processor = BatchProcessor(RateLimiter(delay_seconds, sleep=sleep), batch_size=1)
        self.report = PipelineReport()

    async def run(self) -> PipelineReport:
        """Run all four stages. Raises IngestionAborted on a fatal failure."""
        self.report = PipelineReport(started_at=datetime.now(UTC))

        stages = [
            (PipelineStage.CLEAR, self.clear),
            (PipelineStage.FETCH_BASICS, self.fetch_and_store_basics),
            (PipelineStage.UPDATE_CONDITIONS, self.update_support_conditions),
            (PipelineStage.UPDATE_SUMMARIES, self.update_summaries),
        ]
        for stage, step in stages:
            self.report.stage = stage
            logger.info(f"Starting stage {stage.value}")
            try:
                await step()
            except Exception as e:
                self.report.aborted_stage = stage
                self.report.stage = PipelineStage.ABORTED
                self.report.error = f"{type(e).__name__}: {e}"
                self.report.finished_at = datetime.now(UTC)
                logger.exception(f"Ingestion aborted during stage {stage.value}")
                raise IngestionAborted(stage.value) from e

        self.report.stage = PipelineStage.COMPLETED
        self.report.finished_at = datetime.now(UTC)
        logger.info("All data processing completed successfully")
        return self.report

    async def clear(self) -> None:
        self.report.cleared = await self.store.clear_all()
        logger.info(f"All existing data cleared successfully ({self.report.cleared} records)")

    async def fetch_and_store_basics(self) -> None:
        probe = await self.fetcher.fetch_page(1, 1)
        self.report.total_count = probe.total_count
        self.report.pages = page_count(probe.total_count, self.page_size)
        logger.info(f"Source reports {probe.total_count} subsidies in {self.report.pages} page(s)")

        for page in range(1, self.report.pages + 1):
            result = await self.fetcher.fetch_page(page, self.page_size)
            page_report = await self.basics_processor.run_batches(
                result.data, self.save_basic_info, label=f"basic info page {page}"
            )
            self.report.basics.merge(page_report)
            self.report.pages_processed += 1
            logger.info(f"Processed page {page} of basic info ({page_report.succeeded}/{page_report.total})")

        _log({"event": "ingestion_stage_summary", "stage": PipelineStage.FETCH_BASICS.value,
              **asdict(self.report.basics)})

    async def save_basic_info(self, raw: Dict[str, Any]) -> None:
        source = SubsidySource.model_validate(raw)
        embedding = await self.enrichment.embed(source.service_name or "")
        await self.store.insert(SubsidyCreate(**source.model_dump(), vector_embedding=embedding))
        logger.debug(f"Basic subsidy data for service {source.service_id} saved successfully.")

    async def update_support_conditions(self) -> None:
        records = await self.store.list_all()
        self.report.conditions = await self.update_processor.run_each(
            records,
            self.update_support_condition,
            label="support conditions",
            describe=lambda r: f"serviceId {r.service_id}",
        )
        _log({"event": "ingestion_stage_summary", "stage": PipelineStage.UPDATE_CONDITIONS.value,
              "empty": self.report.conditions_empty, **asdict(self.report.conditions)})

    async def update_support_condition(self, record: SubsidyRead) -> None:
        payload = await self.enrichment.fetch_condition(record.service_id)
        if payload is None:
            self.report.conditions_empty += 1
            return
        conditions = self.enrichment.extract_condition_list(payload)
        await self.store.update_support_condition(record.service_id, conditions)

    async def update_summaries(self) -> None:
        records = await self.store.list_all()
        self.report.summaries = await self.update_processor.run_each(
            records,
            self.update_summary,
            label="summaries",
            describe=lambda r: f"serviceId {r.service_id}",
        )
        _log({"event": "ingestion_stage_summary", "stage": PipelineStage.UPDATE_SUMMARIES.value,
              **asdict(self.report.summaries)})

    async def update_summary(self, record: SubsidyRead) -> None:
        summary = await self.enrichment.summarize(record.support_details or "")
        keywords = await self.enrichment.extract_keywords(record.service_name or "")
        await self.store.update_summary(record.service_id, summary, keywords)
