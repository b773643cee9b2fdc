"""SQLAlchemy model for SubsidyRecord."""

from __future__ import annotations

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB

from app.core.base import Base, CreatedAtMixin, UpdatedAtMixin, UUIDPrimaryKeyMixin


SUBSIDY_TABLE_NAME = "subsidies"
VECTOR_INDEX_NAME = "subsidy_vector_index"
EMBEDDING_DIMENSION = 1536


class SubsidyRecord(UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin, Base):
    """
    One government subsidy program (Gov24 serviceDetail row).

    Filled in three waves:
    - basic fields + vector_embedding (insert)
    - support_condition (update)
    - summary + keywords (update)
    """
    __tablename__ = SUBSIDY_TABLE_NAME
    __table_args__ = (
        UniqueConstraint("service_id", name="uq_subsidies_service_id"),
        Index("idx_subsidies_service_name", "service_name"),
        {"comment": "Gov24 subsidy catalog, rebuilt wholesale on every refresh"},
    )

    service_id = Column(String(64), nullable=False, comment="서비스ID (external identity)")
    support_type = Column(Text, nullable=True, comment="지원유형")
    service_name = Column(Text, nullable=True, comment="서비스명")
    service_purpose = Column(Text, nullable=True, comment="서비스목적")
    application_deadline = Column(Text, nullable=True, comment="신청기한")
    target_group = Column(Text, nullable=True, comment="지원대상")
    selection_criteria = Column(Text, nullable=True, comment="선정기준")
    support_details = Column(Text, nullable=True, comment="지원내용")
    application_method = Column(Text, nullable=True, comment="신청방법")
    required_documents = Column(Text, nullable=True, comment="구비서류")
    reception_institution_name = Column(Text, nullable=True, comment="접수기관명")
    contact_info = Column(Text, nullable=True, comment="문의처")
    online_application_url = Column(Text, nullable=True, comment="온라인신청URL")
    last_modified = Column(Text, nullable=True, comment="수정일시 (source format, not parsed)")
    responsible_institution_name = Column(Text, nullable=True, comment="소관기관명")
    administrative_rules = Column(Text, nullable=True, comment="행정규칙")
    local_regulations = Column(Text, nullable=True, comment="자치법규")
    law = Column(Text, nullable=True, comment="법령")

    # Enrichment
    support_condition = Column(
        JSONB,
        nullable=False,
        default=list,
        comment="Ordered JA* condition values from supportConditions",
    )
    keywords = Column(JSONB, nullable=False, default=list, comment="Extracted keywords")
    summary = Column(Text, nullable=False, default="", comment="Generated short summary")
    vector_embedding = Column(
        Vector(EMBEDDING_DIMENSION),
        nullable=False,
        comment="Embedding of service_name",
    )

    def __repr__(self) -> str:
        return (
            f"<SubsidyRecord(service_id={self.service_id}, "
            f"service_name={self.service_name}, "
            f"conditions={len(self.support_condition or [])}, "
            f"keywords={len(self.keywords or [])})>"
        )
