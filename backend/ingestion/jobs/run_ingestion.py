from __future__ import annotations

"""Full refresh of the subsidy catalog: clear -> basics -> conditions -> summaries.

Run:
  python ingestion/jobs/run_ingestion.py

Exit code 0 when the run completes (some records may lack enrichment),
1 when a fatal stage aborted it.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import httpx

# Ensure `backend/` is on sys.path so `import app...` works when run from repo root.
BASE_DIR = Path(__file__).resolve().parents[2]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from app.core.config import Settings, load_settings  # noqa: E402
from app.core.db import Database  # noqa: E402
from app.repositories.subsidy_repo import SubsidyRepository  # noqa: E402
from ingestion.core.ai_summarizer import TextGenerationClient  # noqa: E402
from ingestion.core.embedding import EmbeddingClient  # noqa: E402
from ingestion.core.enrichment import EnrichmentService  # noqa: E402
from ingestion.core.errors import IngestionAborted  # noqa: E402
from ingestion.core.network_client import SubsidyApiClient  # noqa: E402
from ingestion.core.pipeline import IngestionPipeline, PipelineReport  # noqa: E402


logger = logging.getLogger("subsidy.ingestion.job")
logger.setLevel(logging.INFO)

# Ensure logs are visible when run from cron / console.
if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _log(event: dict) -> None:
    logger.info(json.dumps(event, ensure_ascii=False, default=str))


def build_pipeline(settings: Settings, database: Database, http: httpx.AsyncClient) -> IngestionPipeline:
    source = SubsidyApiClient(http, settings.gov24_api_key, base_url=settings.gov24_base_url)
    enrichment = EnrichmentService(
        source,
        EmbeddingClient(
            http,
            settings.openai_api_key,
            base_url=settings.embedding_base_url,
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
        ),
        TextGenerationClient(http, settings.text_generation_url),
        max_retries=settings.condition_max_retries,
        retry_base_delay=settings.delay_seconds,
    )
    return IngestionPipeline(
        SubsidyRepository(database),
        source,
        enrichment,
        page_size=settings.page_size,
        batch_size=settings.batch_size,
        delay_seconds=settings.delay_seconds,
        abort_on_batch_item_failure=settings.abort_on_batch_item_failure,
    )


async def run_refresh(settings: Settings) -> PipelineReport:
    database = Database(settings.database_url)
    await database.open()
    try:
        await database.ensure_schema()
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
            pipeline = build_pipeline(settings, database, http)
            try:
                return await pipeline.run()
            finally:
                _log(pipeline.report.to_log_event())
    finally:
        await database.close()


def main() -> int:
    try:
        settings = load_settings()
        asyncio.run(run_refresh(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except IngestionAborted as e:
        # Traceback already logged by the pipeline.
        logger.error(f"Refresh aborted during stage {e.stage}")
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
