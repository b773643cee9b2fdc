"""Pydantic schemas for subsidy records and search results."""
from __future__ import annotations

import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class SubsidySource(BaseModel):
    """One raw `serviceDetail` row, keyed by the source's Korean field names."""

    service_id: str = Field(..., alias="서비스ID", min_length=1)
    support_type: Optional[str] = Field(None, alias="지원유형")
    service_name: Optional[str] = Field(None, alias="서비스명")
    service_purpose: Optional[str] = Field(None, alias="서비스목적")
    application_deadline: Optional[str] = Field(None, alias="신청기한")
    target_group: Optional[str] = Field(None, alias="지원대상")
    selection_criteria: Optional[str] = Field(None, alias="선정기준")
    support_details: Optional[str] = Field(None, alias="지원내용")
    application_method: Optional[str] = Field(None, alias="신청방법")
    required_documents: Optional[str] = Field(None, alias="구비서류")
    reception_institution_name: Optional[str] = Field(None, alias="접수기관명")
    contact_info: Optional[str] = Field(None, alias="문의처")
    online_application_url: Optional[str] = Field(None, alias="온라인신청URL")
    last_modified: Optional[str] = Field(None, alias="수정일시")
    responsible_institution_name: Optional[str] = Field(None, alias="소관기관명")
    administrative_rules: Optional[str] = Field(None, alias="행정규칙")
    local_regulations: Optional[str] = Field(None, alias="자치법규")
    law: Optional[str] = Field(None, alias="법령")

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class SubsidyCreate(SubsidySource):
    """Wave 1 record: basic fields, embedding and empty enrichment fields."""

    vector_embedding: List[float]
    support_condition: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator("vector_embedding")
    @classmethod
    def validate_embedding(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("vector_embedding must not be empty")
        return v


class SubsidyRead(BaseModel):
    """Stored record as seen by the enrichment waves."""

    service_id: str
    service_name: Optional[str] = None
    support_details: Optional[str] = None
    support_condition: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    summary: str = ""

    model_config = ConfigDict(from_attributes=True)


class SubsidySearchHit(BaseModel):
    service_id: str
    service_name: Optional[str] = None
    service_purpose: Optional[str] = None
    support_details: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    summary: str = ""
    score: float

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_previous_page: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def build(cls, *, page: int, limit: int, total_count: int) -> "Pagination":
        total_pages = math.ceil(total_count / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class PaginationResult(BaseModel, Generic[T]):
    results: List[T]
    pagination: Pagination

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
