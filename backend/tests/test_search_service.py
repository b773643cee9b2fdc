from __future__ import annotations

import asyncio
import math
from typing import List, Sequence

import pytest

from app.schemas.subsidy import Pagination, SubsidySearchHit
from app.services.search_service import SearchGateway


class FakeSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeDatabase:
    def session(self) -> FakeSession:
        return FakeSession()


class FixedEmbedder:
    def __init__(self, vector: List[float]) -> None:
        self.vector = vector
        self.queries: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.queries.append(text)
        return self.vector


class InMemorySearchRepository:
    """Ranks stored vectors by cosine similarity, mirroring the SQL query."""

    def __init__(self, vectors: dict) -> None:
        self.vectors = vectors
        self.calls = []

    async def similar(self, query_vector: Sequence[float], *, candidate_pool: int, skip: int, limit: int):
        self.calls.append({"candidate_pool": candidate_pool, "skip": skip, "limit": limit})

        def cosine(v):
            dot = sum(a * b for a, b in zip(query_vector, v))
            return dot / (math.hypot(*query_vector) * math.hypot(*v))

        ranked = sorted(
            (SubsidySearchHit(service_id=sid, service_name=f"name {sid}", score=cosine(v))
             for sid, v in self.vectors.items()),
            key=lambda h: h.score,
            reverse=True,
        )[:candidate_pool]
        return ranked[skip:skip + limit]

    async def count(self) -> int:
        return len(self.vectors)


def _vectors(n: int) -> dict:
    # Record i sits at angle i*0.01 rad from the query direction, so rank == i.
    return {f"S{i:03d}": [math.cos(i * 0.01), math.sin(i * 0.01)] for i in range(n)}


def _gateway(repo, **kwargs) -> SearchGateway:
    return SearchGateway(FixedEmbedder([1.0, 0.0]), FakeDatabase(), repository_factory=lambda s: repo, **kwargs)


def test_second_page_returns_ranks_11_to_20():
    repo = InMemorySearchRepository(_vectors(50))

    result = asyncio.run(_gateway(repo).search("노인 생활비", page=2, limit=10))

    assert [h.service_id for h in result.results] == [f"S{i:03d}" for i in range(10, 20)]
    scores = [h.score for h in result.results]
    assert scores == sorted(scores, reverse=True)
    assert result.pagination.has_previous_page is True
    assert result.pagination.current_page == 2
    assert repo.calls == [{"candidate_pool": 100, "skip": 10, "limit": 10}]


def test_total_pages_use_full_collection_not_candidate_pool():
    repo = InMemorySearchRepository(_vectors(250))

    result = asyncio.run(_gateway(repo).search("q", page=11, limit=10))

    # Past the 100-candidate pool: empty page, yet metadata says more pages exist.
    assert result.results == []
    assert result.pagination.total_count == 250
    assert result.pagination.total_pages == 25
    assert result.pagination.has_next_page is True


def test_first_page_has_no_previous():
    repo = InMemorySearchRepository(_vectors(5))

    result = asyncio.run(_gateway(repo).search("q", page=1, limit=10))

    assert len(result.results) == 5
    assert result.pagination.has_previous_page is False
    assert result.pagination.has_next_page is False
    assert result.pagination.total_pages == 1


def test_candidate_pool_is_configurable():
    repo = InMemorySearchRepository(_vectors(30))

    result = asyncio.run(_gateway(repo, candidate_pool=15).search("q", page=2, limit=10))

    assert [h.service_id for h in result.results] == [f"S{i:03d}" for i in range(10, 15)]


@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
def test_invalid_paging_rejected(page, limit):
    with pytest.raises(ValueError):
        asyncio.run(_gateway(InMemorySearchRepository({})).search("q", page=page, limit=limit))


def test_pagination_serializes_camel_case():
    data = Pagination.build(page=2, limit=10, total_count=35).model_dump(by_alias=True)
    assert data == {
        "currentPage": 2,
        "totalPages": 4,
        "totalCount": 35,
        "hasNextPage": True,
        "hasPreviousPage": True,
    }


def test_empty_collection_has_zero_pages():
    p = Pagination.build(page=1, limit=10, total_count=0)
    assert p.total_pages == 0
    assert p.has_next_page is False
