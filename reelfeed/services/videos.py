"""
Video lifecycle on the request path: create, owner update, bulk tagging, reads.

Creation validates everything before touching disk, inserts the row as
``processing`` and hands the source file to the pipeline.
"""
from __future__ import annotations

import binascii
import logging
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from reelfeed.core.enums import AssetKind, TaggingSource, TaxonomyKind, VideoStatus
from reelfeed.core.errors import NoSourceProvided, StorageNotConfigured, VideoNotFound
from reelfeed.db.context import get_db_session, transaction
from reelfeed.db.repositories import IngestRuleRepository, VideoAssetRepository, VideoRepository, VoteRepository
from reelfeed.models import Video
from reelfeed.models._columns import new_id
from reelfeed.schemas.video import BulkTagIn, VideoCreateIn, VideoUpdateIn
from reelfeed.services.presenters import present_video, taxonomy_ids_of
from reelfeed.services.source import acquire_source, cleanup_source, decode_inline_payload, has_source, is_inline_payload
from reelfeed.services.taxonomy import ensure_valid_taxonomy, resolve_nodes
from reelfeed.storage import MP4_MIME, PNG_MIME, MediaStore, upload_key
from reelfeed.workers.jobs import schedule_video_processing

if TYPE_CHECKING:
    from reelfeed.context import AppContext

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def clamp_limit(limit: Optional[int]) -> int:
    if not limit or limit < 1:
        return DEFAULT_PAGE_SIZE
    return min(limit, MAX_PAGE_SIZE)


def _decode_upload(value: str, field: str) -> bytes:
    try:
        data, _ = decode_inline_payload(value)
    except (binascii.Error, ValueError):
        raise NoSourceProvided(f"{field} could not be decoded")
    return data


def _upload_custom_thumbnail(store: MediaStore, tenant_id: str, video_id: str, payload: str) -> tuple[str, object]:
    label = f"custom-{uuid4().hex[:8]}"
    data = _decode_upload(payload, "thumbnailBase64")
    stored = store.put(upload_key("thumbnails", tenant_id, video_id, f"{label}.png"), data, PNG_MIME)
    return label, stored


def _asset_fields(stored, mime: str, **extra) -> dict:
    return {
        "storage_provider": stored.provider,
        "storage_key": stored.key,
        "url": stored.url,
        "mime_type": mime,
        **extra,
    }


def _present(db: Session, video: Video, viewer_id: Optional[str] = None) -> dict:
    nodes = resolve_nodes(db, video.tenant_id, taxonomy_ids_of([video]))
    votes = None
    if viewer_id:
        votes = VoteRepository(db).vote_types_by_video(viewer_id, [video.id]).get(video.id, set())
    return present_video(video, nodes, votes)


# =============================================================================
# Create
# =============================================================================

def create_video(ctx: "AppContext", tenant_id: str, creator_id: str, data: VideoCreateIn) -> dict:
    if not has_source(data.video_base64, data.video_url):
        raise NoSourceProvided()

    category_ids = data.category_ids
    topic_ids = data.topic_ids
    subject_ids = data.subject_ids
    tagging_source = None

    with get_db_session(ctx.session_factory) as db:
        if data.ingest_source:
            rule = IngestRuleRepository(db).get_by_source(tenant_id, data.ingest_source.strip())
            if rule is not None:
                if category_ids is None and rule.default_category_ids:
                    category_ids = list(rule.default_category_ids)
                    tagging_source = TaggingSource.RULE.value
                if topic_ids is None and rule.default_topic_ids:
                    topic_ids = list(rule.default_topic_ids)
                    tagging_source = TaggingSource.RULE.value
                if subject_ids is None and rule.default_subject_ids:
                    subject_ids = list(rule.default_subject_ids)
                    tagging_source = TaggingSource.RULE.value

        ensure_valid_taxonomy(
            db,
            tenant_id,
            category_ids=[data.primary_category_id, *(category_ids or [])],
            topic_ids=topic_ids,
            subject_ids=subject_ids,
        )

    if not ctx.store.configured:
        raise StorageNotConfigured()

    source_path = acquire_source(data.video_base64, data.video_url, ctx.fetcher, ctx.settings.temp_dir)
    video_id = new_id()
    try:
        thumbnail = None
        if data.thumbnail_base64 and is_inline_payload(data.thumbnail_base64):
            thumbnail = _upload_custom_thumbnail(ctx.store, tenant_id, video_id, data.thumbnail_base64)

        with transaction(ctx.session_factory) as db:
            video = VideoRepository(db).create(
                id=video_id,
                tenant_id=tenant_id,
                creator_id=creator_id,
                status=VideoStatus.PROCESSING.value,
                title=data.title,
                description=data.description,
                duration_ms=data.duration_ms,
                aspect_ratio=data.aspect_ratio,
                primary_category_id=data.primary_category_id,
                secondary_labels=data.secondary_labels or [],
                tagging_source=tagging_source,
                ingest_source=data.ingest_source,
            )
            video.set_taxonomy_ids(TaxonomyKind.CATEGORY, category_ids or [])
            video.set_taxonomy_ids(TaxonomyKind.TOPIC, topic_ids or [])
            video.set_taxonomy_ids(TaxonomyKind.SUBJECT, subject_ids or [])
            if thumbnail is not None:
                label, stored = thumbnail
                VideoAssetRepository(db).create(
                    tenant_id=tenant_id,
                    video_id=video_id,
                    kind=AssetKind.THUMBNAIL.value,
                    variant_label=label,
                    **_asset_fields(stored, PNG_MIME, is_primary=False),
                )
            db.flush()
            db.refresh(video)
            snapshot = _present(db, video)
    except BaseException:
        cleanup_source(source_path)
        raise

    logger.info(f"[videos] Created {video_id} for tenant {tenant_id}; scheduling processing")
    try:
        schedule_video_processing(ctx, video_id, tenant_id, source_path)
    except Exception as e:
        # A committed row with no job behind it must not stay processing
        logger.exception(f"[videos] Could not schedule processing for {video_id}")
        cleanup_source(source_path)
        ctx.pipeline().mark_failed(video_id, f"Could not schedule processing: {e}")
        raise
    return snapshot


# =============================================================================
# Owner update
# =============================================================================

def update_video(ctx: "AppContext", tenant_id: str, user_id: str, video_id: str, data: VideoUpdateIn) -> dict:
    fields = data.model_dump(exclude_unset=True)
    video_payload = fields.pop("video_base64", None)
    thumbnail_payload = fields.pop("thumbnail_base64", None)
    wants_video = bool(video_payload) and is_inline_payload(video_payload)
    wants_thumbnail = bool(thumbnail_payload) and is_inline_payload(thumbnail_payload)

    with transaction(ctx.session_factory) as db:
        video = VideoRepository(db).get_owned(tenant_id, video_id, user_id)
        if video is None:
            raise VideoNotFound(video_id)

        category_ids = fields.pop("category_ids", None)
        topic_ids = fields.pop("topic_ids", None)
        subject_ids = fields.pop("subject_ids", None)
        primary_category_id = fields.get("primary_category_id")
        ensure_valid_taxonomy(
            db,
            tenant_id,
            category_ids=[*([primary_category_id] if primary_category_id else []), *(category_ids or [])],
            topic_ids=topic_ids,
            subject_ids=subject_ids,
        )
        # Required columns can't be cleared
        for required in ("primary_category_id", "duration_ms"):
            if required in fields and fields[required] is None:
                fields.pop(required)

        if (wants_video or wants_thumbnail) and not ctx.store.configured:
            raise StorageNotConfigured()

        assets = VideoAssetRepository(db)
        if wants_video:
            label = f"upload-{uuid4().hex[:8]}"
            data_bytes = _decode_upload(video_payload, "videoBase64")
            stored = ctx.store.put(
                upload_key("videos", tenant_id, video_id, f"uploads/{uuid4()}.mp4"), data_bytes, MP4_MIME
            )
            assets.demote_all(video_id)
            asset = assets.create(
                tenant_id=tenant_id,
                video_id=video_id,
                kind=AssetKind.MASTER.value,
                variant_label=label,
                **_asset_fields(stored, MP4_MIME, is_primary=True),
            )
            db.flush()
            video.primary_asset_id = asset.id
            logger.info(f"[videos] Replaced primary asset of {video_id} with {asset.id}")

        if wants_thumbnail:
            label, stored = _upload_custom_thumbnail(ctx.store, tenant_id, video_id, thumbnail_payload)
            assets.create(
                tenant_id=tenant_id,
                video_id=video_id,
                kind=AssetKind.THUMBNAIL.value,
                variant_label=label,
                **_asset_fields(stored, PNG_MIME, is_primary=False),
            )

        if "tagging_source" in fields and fields["tagging_source"] is not None:
            fields["tagging_source"] = TaggingSource(fields["tagging_source"]).value
        for name, value in fields.items():
            setattr(video, name, value)
        if category_ids is not None:
            video.set_taxonomy_ids(TaxonomyKind.CATEGORY, category_ids)
        if topic_ids is not None:
            video.set_taxonomy_ids(TaxonomyKind.TOPIC, topic_ids)
        if subject_ids is not None:
            video.set_taxonomy_ids(TaxonomyKind.SUBJECT, subject_ids)

        db.flush()
        db.refresh(video)
        return _present(db, video, user_id)


# =============================================================================
# Bulk tagging
# =============================================================================

def bulk_tag_videos(ctx: "AppContext", tenant_id: str, data: BulkTagIn) -> dict:
    """
    Apply classification to many videos of the tenant at once.

    Any invalid taxonomy id rejects the whole request. Unknown video ids are
    reported in ``errors`` while the rest are still updated.
    """
    with transaction(ctx.session_factory) as db:
        ensure_valid_taxonomy(
            db,
            tenant_id,
            category_ids=data.category_ids,
            topic_ids=data.topic_ids,
            subject_ids=data.subject_ids,
        )
        videos = VideoRepository(db).get_many_for_tenant(tenant_id, data.video_ids)
        found = {v.id for v in videos}
        errors = [f"Video not found: {vid}" for vid in dict.fromkeys(data.video_ids) if vid not in found]

        for video in videos:
            if data.category_ids is not None:
                video.set_taxonomy_ids(TaxonomyKind.CATEGORY, data.category_ids)
            if data.topic_ids is not None:
                video.set_taxonomy_ids(TaxonomyKind.TOPIC, data.topic_ids)
            if data.subject_ids is not None:
                video.set_taxonomy_ids(TaxonomyKind.SUBJECT, data.subject_ids)
            if data.tagging_source is not None:
                video.tagging_source = data.tagging_source.value

    logger.info(f"[videos] Bulk-tagged {len(videos)} videos for tenant {tenant_id}")
    return {"updated": len(videos), "errors": errors}


# =============================================================================
# Reads
# =============================================================================

def get_video(db: Session, tenant_id: str, video_id: str, viewer_id: Optional[str] = None) -> dict:
    video = db.execute(
        select(Video)
        .where(Video.id == video_id, Video.tenant_id == tenant_id)
        .options(selectinload(Video.assets), selectinload(Video.taxonomy_links))
    ).scalar_one_or_none()
    if video is None:
        raise VideoNotFound(video_id)
    return _present(db, video, viewer_id)


def list_my_videos(
    db: Session,
    tenant_id: str,
    user_id: str,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
) -> dict:
    """Caller's own videos in any status, newest first."""
    limit = clamp_limit(limit)
    stmt = (
        select(Video)
        .where(Video.tenant_id == tenant_id, Video.creator_id == user_id)
        .options(selectinload(Video.assets), selectinload(Video.taxonomy_links))
        .order_by(Video.created_at.desc(), Video.id.desc())
    )
    if cursor:
        anchor = VideoRepository(db).get_owned(tenant_id, cursor, user_id)
        if anchor is None:
            return {"items": [], "nextCursor": None, "hasMore": False}
        stmt = stmt.where(
            or_(
                Video.created_at < anchor.created_at,
                and_(Video.created_at == anchor.created_at, Video.id < anchor.id),
            )
        )

    rows = db.execute(stmt.limit(limit + 1)).scalars().all()
    has_more = len(rows) > limit
    rows = rows[:limit]
    nodes = resolve_nodes(db, tenant_id, taxonomy_ids_of(rows))
    items = [present_video(v, nodes) for v in rows]
    return {
        "items": items,
        "nextCursor": rows[-1].id if has_more else None,
        "hasMore": has_more,
    }
