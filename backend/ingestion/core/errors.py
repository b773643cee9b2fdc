from __future__ import annotations

"""Ingestion error taxonomy.

- IngestionAborted: fatal; the refresh stops and the error reaches the job entry point.
- EnrichmentError: a provider answered but the payload is unusable.
Per-item failures in the condition and summary waves are logged and skipped,
never wrapped.
"""

from typing import Optional


class IngestionError(RuntimeError):
    """Base error for the subsidy ingestion pipeline."""


class EnrichmentError(IngestionError):
    """Raised when an enrichment provider returns a malformed response."""


class IngestionAborted(IngestionError):
    """Raised when a fatal stage failure ends the refresh run."""

    def __init__(self, stage: str, message: Optional[str] = None) -> None:
        self.stage = stage
        super().__init__(message or f"Ingestion aborted during stage {stage!r}")
