"""Repositories for SubsidyRecord.

- `SubsidyRepository`: the write side used by the ingestion pipeline. Each call
  runs in its own short session so concurrent Wave 1 inserts never share one.
- `SubsidySearchRepository`: read-only similarity and count queries.
"""
from __future__ import annotations

from typing import Any, List, Sequence

from sqlalchemy import delete, func, select, update

from app.core.db import Database
from app.models.subsidy import SubsidyRecord
from app.repositories.base import BaseRepository
from app.schemas.subsidy import SubsidyCreate, SubsidyRead, SubsidySearchHit


class SubsidyRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def clear_all(self) -> int:
        """Delete every record. Returns the number of rows removed."""
        async with self._db.session() as session:
            result = await session.execute(delete(SubsidyRecord))
            await session.commit()
            return result.rowcount or 0

    async def insert(self, data: SubsidyCreate) -> None:
        async with self._db.session() as session:
            session.add(SubsidyRecord(**data.model_dump()))
            await session.commit()

    async def list_all(self) -> List[SubsidyRead]:
        async with self._db.session() as session:
            rows = (
                await session.scalars(select(SubsidyRecord).order_by(SubsidyRecord.created_at))
            ).all()
            return [SubsidyRead.model_validate(r) for r in rows]

    async def update_support_condition(self, service_id: str, conditions: Sequence[str]) -> None:
        await self._update(service_id, support_condition=list(conditions))

    async def update_summary(self, service_id: str, summary: str, keywords: Sequence[str]) -> None:
        await self._update(service_id, summary=summary, keywords=list(keywords))

    async def _update(self, service_id: str, **values: Any) -> None:
        async with self._db.session() as session:
            result = await session.execute(
                update(SubsidyRecord)
                .where(SubsidyRecord.service_id == service_id)
                .values(**values)
            )
            await session.commit()
        if not result.rowcount:
            raise LookupError(f"No subsidy record with service_id {service_id}")


class SubsidySearchRepository(BaseRepository[SubsidyRecord]):
    async def similar(
        self,
        query_vector: Sequence[float],
        *,
        candidate_pool: int,
        skip: int,
        limit: int,
    ) -> List[SubsidySearchHit]:
        """Nearest `candidate_pool` records by cosine distance, then skip/limit by score."""
        distance = SubsidyRecord.vector_embedding.cosine_distance(list(query_vector))
        candidates = (
            select(
                SubsidyRecord.service_id,
                SubsidyRecord.service_name,
                SubsidyRecord.service_purpose,
                SubsidyRecord.support_details,
                SubsidyRecord.keywords,
                SubsidyRecord.summary,
                (1 - distance).label("score"),
            )
            .order_by(distance)
            .limit(candidate_pool)
            .subquery("candidates")
        )
        stmt = (
            select(candidates)
            .order_by(candidates.c.score.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self._execute(stmt)
        return [SubsidySearchHit.model_validate(dict(row)) for row in result.mappings()]

    async def count(self) -> int:
        result = await self._execute(select(func.count()).select_from(SubsidyRecord))
        return result.scalar_one()
