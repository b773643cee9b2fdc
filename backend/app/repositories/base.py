"""Read-only repository base.

The search path must never mutate the catalog; only the ingestion pipeline
writes. Read repositories go through `_execute`, which accepts SELECT only.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable
from sqlalchemy.sql.selectable import Select


T = TypeVar("T")


class RepositoryReadOnlyViolation(RuntimeError):
    """A read repository was asked to write, or ran on a session with pending writes."""


def _pending_changes(session: AsyncSession) -> dict[str, int]:
    sync = session.sync_session
    return {"new": len(sync.new), "dirty": len(sync.dirty), "deleted": len(sync.deleted)}


class BaseRepository(Generic[T]):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _assert_clean_uow(self) -> None:
        pending = _pending_changes(self._session)
        if any(pending.values()):
            detail = ", ".join(f"{k}={v}" for k, v in pending.items())
            raise RepositoryReadOnlyViolation(f"Session has pending changes ({detail}); refusing to query.")

    @staticmethod
    def _assert_select_only(stmt: Executable) -> None:
        if not isinstance(stmt, Select):
            raise RepositoryReadOnlyViolation(
                f"Read repositories only run SELECT statements, got {type(stmt).__name__}."
            )

    async def _execute(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> Result[Any]:
        self._assert_select_only(stmt)
        self._assert_clean_uow()
        result = await self._session.execute(stmt, params or {})
        # Autoflush is off, but a lazy load could still stage objects.
        self._assert_clean_uow()
        return result
