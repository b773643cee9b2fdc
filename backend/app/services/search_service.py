"""Semantic search over the subsidy catalog.

The similarity query keeps a fixed candidate pool (100 nearest records) no
matter which page is requested; pagination is applied inside that pool. Page
metadata is computed from the full record count, so `hasNextPage` can stay
true past the end of the pool, where pages come back empty.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import Database
from app.repositories.subsidy_repo import SubsidySearchRepository
from app.schemas.subsidy import Pagination, PaginationResult, SubsidySearchHit


logger = logging.getLogger("subsidy.search")

DEFAULT_CANDIDATE_POOL = 100


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]: ...


class SearchRepository(Protocol):
    async def similar(
        self, query_vector: Sequence[float], *, candidate_pool: int, skip: int, limit: int
    ) -> List[SubsidySearchHit]: ...

    async def count(self) -> int: ...


class SearchGateway:
    def __init__(
        self,
        embedder: Embedder,
        database: Database,
        *,
        candidate_pool: int = DEFAULT_CANDIDATE_POOL,
        repository_factory: Callable[[AsyncSession], SearchRepository] = SubsidySearchRepository,
    ):
        self._embedder = embedder
        self._database = database
        self.candidate_pool = candidate_pool
        self._repository_factory = repository_factory

    async def search(self, query: str, page: int = 1, limit: int = 10) -> PaginationResult[SubsidySearchHit]:
        if page < 1:
            raise ValueError("page must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        try:
            query_vector = await self._embedder.embed(query)
            skip = (page - 1) * limit

            async with self._database.session() as session:
                repo = self._repository_factory(session)
                results = await repo.similar(
                    query_vector,
                    candidate_pool=self.candidate_pool,
                    skip=skip,
                    limit=limit,
                )
                total_count = await repo.count()
        except Exception as e:
            logger.error(f"Error in vector search: {e}")
            raise

        return PaginationResult[SubsidySearchHit](
            results=results,
            pagination=Pagination.build(page=page, limit=limit, total_count=total_count),
        )
