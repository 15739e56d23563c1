from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reelfeed.core.enums import StreamStatus, TaxonomyKind, VideoStatus
from reelfeed.db.base import Base
from reelfeed.models._columns import new_id, utcnow

if TYPE_CHECKING:
    from reelfeed.models.video_asset import VideoAsset


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), default=VideoStatus.PROCESSING.value, index=True)
    # Segmented-stream outcome; a ready video may still be on its master asset
    stream_status: Mapped[str] = mapped_column(String(20), default=StreamStatus.PENDING.value)
    error_message: Mapped[str | None] = mapped_column(String(500), nullable=True)

    title: Mapped[str | None] = mapped_column(String(300), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    aspect_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Classification; ids are validated against the tenant taxonomy, not FK-enforced
    primary_category_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    secondary_labels: Mapped[list | None] = mapped_column(JSON, nullable=True)
    tagging_source: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ingest_source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    primary_asset_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    ranking_score: Mapped[float] = mapped_column(Float, default=0.0, index=True)
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    up_vote_count: Mapped[int] = mapped_column(Integer, default=0)
    super_vote_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    assets: Mapped[list["VideoAsset"]] = relationship(
        back_populates="video",
        order_by="VideoAsset.created_at",
        cascade="all, delete-orphan",
    )
    primary_asset: Mapped[Optional["VideoAsset"]] = relationship(
        primaryjoin="foreign(Video.primary_asset_id) == VideoAsset.id",
        viewonly=True,
    )
    taxonomy_links: Mapped[list["VideoTaxonomyLink"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
    )

    def taxonomy_ids(self, kind: TaxonomyKind) -> list[str]:
        return [link.node_id for link in self.taxonomy_links if link.kind == kind.value]

    def set_taxonomy_ids(self, kind: TaxonomyKind, ids: list[str]) -> None:
        """Replace the links of one kind, keeping first-seen order and dropping duplicates."""
        existing = {link.node_id: link for link in self.taxonomy_links if link.kind == kind.value}
        kept = [link for link in self.taxonomy_links if link.kind != kind.value]
        for node_id in dict.fromkeys(ids):
            kept.append(existing.get(node_id) or VideoTaxonomyLink(node_id=node_id, kind=kind.value))
        self.taxonomy_links = kept

    @property
    def category_ids(self) -> list[str]:
        return self.taxonomy_ids(TaxonomyKind.CATEGORY)

    @property
    def topic_ids(self) -> list[str]:
        return self.taxonomy_ids(TaxonomyKind.TOPIC)

    @property
    def subject_ids(self) -> list[str]:
        return self.taxonomy_ids(TaxonomyKind.SUBJECT)


class VideoTaxonomyLink(Base):
    __tablename__ = "video_taxonomy_links"

    video_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True
    )
    kind: Mapped[str] = mapped_column(String(20), primary_key=True)
    node_id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True)

    video: Mapped[Video] = relationship(back_populates="taxonomy_links")
