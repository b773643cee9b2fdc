"""SQLAlchemy models package.

All ORM classes are imported here so Base.metadata is complete before
`create_all` runs.
"""

from app.models import subsidy  # noqa: F401
from app.models.subsidy import SubsidyRecord

__all__ = ["SubsidyRecord"]
