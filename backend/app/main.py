"""FastAPI application (read-only search over the subsidy catalog).

- The database handle and the outbound HTTP client are opened in the lifespan
  and closed at shutdown; nothing connects at import time.
- Request-id propagation and structured JSON access logs.
- Store outages surface as 503, never as fabricated results.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.api.router import router as api_router
from app.core.config import Settings, load_settings
from app.core.db import Database
from app.services.search_service import SearchGateway
from ingestion.core.embedding import EmbeddingClient


logger = logging.getLogger("subsidy")
logger.setLevel(logging.INFO)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        cfg = settings or load_settings()
        database = Database(cfg.database_url)
        await database.open()
        http = httpx.AsyncClient(timeout=cfg.http_timeout_seconds)
        try:
            await database.ensure_schema()
            embedder = EmbeddingClient(
                http,
                cfg.openai_api_key,
                base_url=cfg.embedding_base_url,
                model=cfg.embedding_model,
                dimension=cfg.embedding_dimension,
            )
            app.state.search_gateway = SearchGateway(
                embedder, database, candidate_pool=cfg.search_candidate_pool
            )
            yield
        finally:
            await http.aclose()
            await database.close()

    app = FastAPI(
        title="Subsidy Catalog Search API",
        version="1.0.0",
        openapi_url="/openapi.json",
        description="Semantic search over the Gov24 subsidy catalog. Read-only.",
        lifespan=lifespan,
    )

    app.include_router(api_router)

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except OperationalError as e:
            logger.warning(f"Search store unavailable: {e.__class__.__name__}")
            response = _error_response(503, "Search store temporarily unavailable.")
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            response = _error_response(500, "Internal error.")

        response.headers["x-request-id"] = request_id
        logger.info(
            json.dumps(_access_event(request, response.status_code, request_id, started))
        )
        return response

    return app


def _error_response(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def _access_event(request: Request, status_code: int, request_id: str, started: float) -> dict:
    # Path only; the query string carries user search text.
    return {
        "event": "access",
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status_code": status_code,
        "duration_ms": int((time.perf_counter() - started) * 1000),
    }


app = create_app()
