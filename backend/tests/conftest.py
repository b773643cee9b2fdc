from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
import pytest


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/` packages are importable as top-level `app` / `ingestion` for tests.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.schemas.subsidy import SubsidyCreate, SubsidyRead  # noqa: E402
from ingestion.core.network_client import SubsidyPage  # noqa: E402


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class InMemorySubsidyStore:
    """Dict-backed store with the same async surface as SubsidyRepository."""

    def __init__(self) -> None:
        self.records: Dict[str, SubsidyCreate] = {}
        self.fail_updates_for: set[str] = set()

    async def clear_all(self) -> int:
        n = len(self.records)
        self.records.clear()
        return n

    async def insert(self, data: SubsidyCreate) -> None:
        if data.service_id in self.records:
            raise ValueError(f"duplicate service_id {data.service_id}")
        self.records[data.service_id] = data

    async def list_all(self) -> List[SubsidyRead]:
        return [SubsidyRead(**r.model_dump()) for r in self.records.values()]

    async def update_support_condition(self, service_id: str, conditions: Sequence[str]) -> None:
        self._check(service_id)
        self.records[service_id] = self.records[service_id].model_copy(
            update={"support_condition": list(conditions)}
        )

    async def update_summary(self, service_id: str, summary: str, keywords: Sequence[str]) -> None:
        self._check(service_id)
        self.records[service_id] = self.records[service_id].model_copy(
            update={"summary": summary, "keywords": list(keywords)}
        )

    def _check(self, service_id: str) -> None:
        if service_id in self.fail_updates_for:
            raise RuntimeError(f"store unavailable for {service_id}")
        if service_id not in self.records:
            raise LookupError(service_id)


class FakePageFetcher:
    """Serves a fixed list of raw rows page by page, like serviceDetail."""

    def __init__(self, rows: List[Dict[str, Any]], fail_on_page: Optional[int] = None) -> None:
        self.rows = rows
        self.fail_on_page = fail_on_page
        self.calls: List[tuple[int, int]] = []

    async def fetch_page(self, page: int, per_page: int) -> SubsidyPage:
        self.calls.append((page, per_page))
        if self.fail_on_page is not None and page == self.fail_on_page and per_page > 1:
            raise httpx.ConnectError("source unreachable")
        start = (page - 1) * per_page
        return SubsidyPage(total_count=len(self.rows), data=self.rows[start:start + per_page])


def make_row(service_id: str, name: Optional[str] = None, details: Optional[str] = None) -> Dict[str, Any]:
    return {
        "서비스ID": service_id,
        "서비스명": name or f"지원사업 {service_id}",
        "서비스목적": "생활 안정 지원",
        "지원내용": details or f"{service_id} 월 10만원 지원",
        "지원대상": "만 65세 이상",
        "소관기관명": "보건복지부",
        "수정일시": "20240101120000",
    }


def json_handler(routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> httpx.MockTransport:
    """MockTransport dispatching on the request path suffix."""

    def handler(request: httpx.Request) -> httpx.Response:
        for suffix, fn in routes.items():
            if request.url.path.endswith(suffix):
                return fn(request)
        return httpx.Response(404, json={"detail": "not found"})

    return httpx.MockTransport(handler)


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def store() -> InMemorySubsidyStore:
    return InMemorySubsidyStore()
