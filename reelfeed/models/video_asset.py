from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reelfeed.db.base import Base
from reelfeed.models._columns import new_id, utcnow

if TYPE_CHECKING:
    from reelfeed.models.video import Video


class VideoAsset(Base):
    __tablename__ = "video_assets"
    # Pipeline re-runs upsert on this key instead of inserting duplicates
    __table_args__ = (UniqueConstraint("video_id", "kind", "variant_label", name="uq_video_asset_variant"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    video_id: Mapped[str] = mapped_column(String(36), ForeignKey("videos.id"), nullable=False, index=True)

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    variant_label: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    storage_provider: Mapped[str] = mapped_column(String(20), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    video: Mapped["Video"] = relationship(back_populates="assets")
