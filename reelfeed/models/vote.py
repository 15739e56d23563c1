from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from reelfeed.db.base import Base
from reelfeed.models._columns import new_id, utcnow


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (Index("ix_votes_video_user", "video_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    video_id: Mapped[str] = mapped_column(String(36), ForeignKey("videos.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    vote_type: Mapped[str] = mapped_column(String(20), nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    gesture_source: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Feed context the vote was cast from
    request_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rank_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feed_mode: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_denied: Mapped[bool] = mapped_column(Boolean, default=False)
    deny_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
