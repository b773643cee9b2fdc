"""OpenAI-compatible embedding client (`POST {base}/embeddings`)."""

from __future__ import annotations

import logging
from typing import List

import httpx

from ingestion.core.errors import EnrichmentError


logger = logging.getLogger("subsidy.ingestion.embedding")

DEFAULT_EMBEDDING_BASE_URL = "https://api.openai.com/v1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_EMBEDDING_DIMENSION = 1536


class EmbeddingClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        *,
        base_url: str = DEFAULT_EMBEDDING_BASE_URL,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimension: int = DEFAULT_EMBEDDING_DIMENSION,
    ):
        self._http = http
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/embeddings"
        self.model = model
        self.dimension = dimension

    async def embed(self, text: str) -> List[float]:
        """Embedding vector for `text`. Errors propagate: a record cannot be stored without one."""
        try:
            response = await self._http.post(
                self._url,
                json={"input": text, "model": self.model},
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
            body = response.json()
        except Exception as e:
            logger.error(f"Error fetching embedding: {e}")
            raise

        try:
            vector = [float(x) for x in body["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EnrichmentError("Malformed embedding response") from e

        if len(vector) != self.dimension:
            raise EnrichmentError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {len(vector)}"
            )
        return vector
