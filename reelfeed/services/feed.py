"""
Feed Assembly - ready videos for a tenant, ranked, filtered by taxonomy.

Ordering is (ranking_score desc, created_at desc, id desc); the cursor is the
id of the last item already served.
"""
import logging
from typing import Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from reelfeed.core.enums import TaxonomyKind, VideoStatus
from reelfeed.db.repositories import VoteRepository
from reelfeed.models import Video, VideoTaxonomyLink
from reelfeed.services.presenters import (
    counts,
    isoformat,
    master_url,
    preferred_thumbnail,
    primary_asset,
    taxonomy_block,
    taxonomy_ids_of,
    thumbnail_urls,
    vote_flags,
)
from reelfeed.services.taxonomy import resolve_nodes
from reelfeed.services.videos import clamp_limit

logger = logging.getLogger(__name__)


def _linked(kind: TaxonomyKind, ids: Sequence[str]):
    return Video.id.in_(
        select(VideoTaxonomyLink.video_id).where(
            VideoTaxonomyLink.kind == kind.value,
            VideoTaxonomyLink.node_id.in_(ids),
        )
    )


def _after(anchor: Video):
    return or_(
        Video.ranking_score < anchor.ranking_score,
        and_(Video.ranking_score == anchor.ranking_score, Video.created_at < anchor.created_at),
        and_(
            Video.ranking_score == anchor.ranking_score,
            Video.created_at == anchor.created_at,
            Video.id < anchor.id,
        ),
    )


def feed_item(video: Video, nodes: dict[str, dict], viewer_flags: Optional[dict] = None) -> dict:
    primary = primary_asset(video)
    thumbnails = thumbnail_urls(video)
    item = {
        "id": video.id,
        "title": video.title,
        "description": video.description,
        "durationMs": video.duration_ms,
        "aspectRatio": video.aspect_ratio,
        "url": primary.url if primary else None,
        "mp4Url": master_url(video),
        "thumbnailUrl": preferred_thumbnail(thumbnails),
        "thumbnailUrls": thumbnails,
        **taxonomy_block(video, nodes),
        "secondaryLabels": video.secondary_labels or [],
        **counts(video),
        "createdAt": isoformat(video.created_at),
    }
    if viewer_flags is not None:
        item.update(viewer_flags)
    return item


def get_feed(
    db: Session,
    tenant_id: str,
    category_ids: Optional[Sequence[str]] = None,
    topic_ids: Optional[Sequence[str]] = None,
    subject_ids: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
    viewer_id: Optional[str] = None,
) -> dict:
    """
    One page of the tenant's feed.

    Within a dimension any listed id matches; dimensions combine with AND. A
    category matches either the primary category or a linked one. An unknown
    cursor yields an empty last page.
    """
    limit = clamp_limit(limit)
    stmt = (
        select(Video)
        .where(Video.tenant_id == tenant_id, Video.status == VideoStatus.READY.value)
        .options(selectinload(Video.assets), selectinload(Video.taxonomy_links))
        .order_by(Video.ranking_score.desc(), Video.created_at.desc(), Video.id.desc())
    )
    if category_ids:
        stmt = stmt.where(
            or_(Video.primary_category_id.in_(category_ids), _linked(TaxonomyKind.CATEGORY, category_ids))
        )
    if topic_ids:
        stmt = stmt.where(_linked(TaxonomyKind.TOPIC, topic_ids))
    if subject_ids:
        stmt = stmt.where(_linked(TaxonomyKind.SUBJECT, subject_ids))

    if cursor:
        anchor = db.execute(
            select(Video).where(Video.id == cursor, Video.tenant_id == tenant_id)
        ).scalar_one_or_none()
        if anchor is None:
            logger.info(f"[feed] Unknown cursor {cursor} for tenant {tenant_id}")
            return {"items": [], "nextCursor": None, "hasMore": False}
        stmt = stmt.where(_after(anchor))

    rows = db.execute(stmt.limit(limit + 1)).scalars().all()
    has_more = len(rows) > limit
    rows = rows[:limit]

    nodes = resolve_nodes(db, tenant_id, taxonomy_ids_of(rows))
    votes = None
    if viewer_id:
        votes = VoteRepository(db).vote_types_by_video(viewer_id, [v.id for v in rows])

    items = [
        feed_item(v, nodes, vote_flags(votes.get(v.id, set())) if votes is not None else None)
        for v in rows
    ]
    return {
        "items": items,
        "nextCursor": rows[-1].id if has_more else None,
        "hasMore": has_more,
    }
