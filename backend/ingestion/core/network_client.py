"""
Gov24 subsidy API client.

Two read endpoints of the public-data gateway (api.odcloud.kr, gov24 v3):
- serviceDetail: paginated catalog, one call per page.
- supportConditions: eligibility flags for a single service id.

The API key goes both in the `serviceKey` query parameter and the
`Authorization` header; the gateway accepts either depending on the key type.
Errors are logged and re-raised unchanged; retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ingestion.core.errors import IngestionError

logger = logging.getLogger("subsidy.ingestion.network_client")

DEFAULT_BASE_URL = "https://api.odcloud.kr/api/gov24/v3"
SERVICE_ID_CONDITION_PARAM = "cond[서비스ID::EQ]"


@dataclass(frozen=True)
class SubsidyPage:
    """One page of `serviceDetail`."""
    total_count: int
    data: List[Dict[str, Any]] = field(default_factory=list)


class SubsidyApiClient:
    """
    Thin async wrapper over the Gov24 endpoints.

    The httpx.AsyncClient is injected and owned by the caller, so one
    connection pool serves the source API and the enrichment providers.
    """

    def __init__(self, http: httpx.AsyncClient, api_key: str, *, base_url: str = DEFAULT_BASE_URL):
        self._http = http
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def _params(self, **params: Any) -> Dict[str, Any]:
        return {**params, "serviceKey": self._api_key}

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self._api_key}

    async def fetch_page(self, page: int, per_page: int) -> SubsidyPage:
        """
        Fetch one page of the subsidy catalog.

        Args:
            page: 1-based page number.
            per_page: Page size (>= 1).

        Returns:
            SubsidyPage with the catalog's totalCount and this page's rows.
        """
        if page < 1 or per_page < 1:
            raise ValueError(f"page and per_page must be >= 1 (got page={page}, per_page={per_page})")

        try:
            response = await self._http.get(
                f"{self._base_url}/serviceDetail",
                params=self._params(page=page, perPage=per_page),
                headers=self._headers(),
            )
            response.raise_for_status()
            body = response.json()
        except Exception as e:
            logger.error(f"Error fetching subsidy page {page}: {e}")
            raise

        if not isinstance(body, dict):
            raise IngestionError(f"Malformed serviceDetail response for page {page}")

        data = body.get("data")
        return SubsidyPage(
            total_count=int(body.get("totalCount") or 0),
            data=list(data) if isinstance(data, list) else [],
        )

    async def fetch_support_condition(self, service_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the supportConditions row for one service.

        Returns None (with a warning) when the call succeeds but carries no
        usable row; raises on HTTP/transport errors so the caller can decide
        whether to retry.
        """
        try:
            response = await self._http.get(
                f"{self._base_url}/supportConditions",
                params=self._params(**{SERVICE_ID_CONDITION_PARAM: service_id}, page=1, perPage=1),
                headers=self._headers(),
            )
            response.raise_for_status()
            body = response.json()
        except Exception as e:
            logger.error(f"Error fetching support condition for serviceId {service_id}: {e}")
            raise

        rows = body.get("data") if isinstance(body, dict) else None
        if not isinstance(rows, list):
            logger.warning(f"Invalid response format for serviceId {service_id}")
            return None

        if not rows:
            logger.warning(f"No support condition data found for serviceId {service_id}")
            return None

        first = rows[0]
        if not isinstance(first, dict):
            logger.warning(f"Invalid support condition row for serviceId {service_id}")
            return None
        return first
