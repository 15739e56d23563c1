from datetime import datetime

from sqlalchemy import JSON, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from reelfeed.db.base import Base
from reelfeed.models._columns import new_id, utcnow


class IngestDefaultRule(Base):
    """Default classification applied to uploads arriving from a named ingest source."""
    __tablename__ = "ingest_default_rules"
    __table_args__ = (UniqueConstraint("tenant_id", "source_key", name="uq_ingest_rule_source"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    source_key: Mapped[str] = mapped_column(String(100), nullable=False)

    default_category_ids: Mapped[list] = mapped_column(JSON, default=list)
    default_topic_ids: Mapped[list] = mapped_column(JSON, default=list)
    default_subject_ids: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
