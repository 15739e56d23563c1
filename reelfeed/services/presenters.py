"""
Response shaping shared by video reads and the feed.
"""
from typing import Iterable, Optional

from reelfeed.core.enums import AssetKind, VoteType

THUMBNAIL_PREFERENCE = ("5", "15", "30")


def isoformat(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def asset_to_dict(asset) -> dict:
    return {
        "id": asset.id,
        "kind": asset.kind,
        "variantLabel": asset.variant_label or None,
        "url": asset.url,
        "storageKey": asset.storage_key,
        "mimeType": asset.mime_type,
        "width": asset.width,
        "height": asset.height,
        "isPrimary": asset.is_primary,
        "createdAt": isoformat(asset.created_at),
    }


def primary_asset(video):
    """The asset the video row points at, looked up in the already-loaded assets."""
    if video.primary_asset_id is None:
        return None
    return next((a for a in video.assets if a.id == video.primary_asset_id), None)


def master_url(video) -> Optional[str]:
    masters = [a for a in video.assets if a.kind == AssetKind.MASTER.value]
    if not masters:
        return None
    primary = next((a for a in masters if a.is_primary), None)
    return (primary or masters[-1]).url


def thumbnail_urls(video) -> dict[str, str]:
    return {
        a.variant_label: a.url
        for a in video.assets
        if a.kind == AssetKind.THUMBNAIL.value and a.variant_label
    }


def preferred_thumbnail(thumbnails: dict[str, str]) -> Optional[str]:
    """Pipeline frames in fixed order, then the newest owner-supplied one."""
    for label in THUMBNAIL_PREFERENCE:
        if label in thumbnails:
            return thumbnails[label]
    custom = [url for label, url in thumbnails.items() if label not in THUMBNAIL_PREFERENCE]
    return custom[-1] if custom else None


def taxonomy_ids_of(videos: Iterable) -> set[str]:
    ids: set[str] = set()
    for v in videos:
        ids.add(v.primary_category_id)
        ids.update(link.node_id for link in v.taxonomy_links)
    return ids


def taxonomy_block(video, nodes: dict[str, dict]) -> dict:
    """Display objects for the video's taxonomy; ids no longer in the directory are dropped."""
    return {
        "category": nodes.get(video.primary_category_id),
        "categories": [nodes[i] for i in video.category_ids if i in nodes],
        "topics": [nodes[i] for i in video.topic_ids if i in nodes],
        "subjects": [nodes[i] for i in video.subject_ids if i in nodes],
    }


def counts(video) -> dict:
    return {
        "likeCount": video.like_count,
        "upVoteCount": video.up_vote_count,
        "superVoteCount": video.super_vote_count,
    }


def vote_flags(cast: set[VoteType]) -> dict:
    return {
        "hasLiked": VoteType.LIKE in cast,
        "hasUpVoted": VoteType.UP_VOTE in cast,
        "hasSuperVoted": VoteType.SUPER_VOTE in cast,
    }


def present_video(video, nodes: dict[str, dict], viewer_votes: Optional[set[VoteType]] = None) -> dict:
    """Full video row with assets and resolved taxonomy."""
    primary = primary_asset(video)
    thumbnails = thumbnail_urls(video)
    data = {
        "id": video.id,
        "appId": video.tenant_id,
        "creatorId": video.creator_id,
        "status": video.status,
        "streamStatus": video.stream_status,
        "errorMessage": video.error_message,
        "title": video.title,
        "description": video.description,
        "durationMs": video.duration_ms,
        "aspectRatio": video.aspect_ratio,
        "primaryCategoryId": video.primary_category_id,
        "categoryIds": video.category_ids,
        "topicIds": video.topic_ids,
        "subjectIds": video.subject_ids,
        "secondaryLabels": video.secondary_labels or [],
        "taggingSource": video.tagging_source,
        "ingestSource": video.ingest_source,
        "primaryAssetId": video.primary_asset_id,
        "primaryAsset": asset_to_dict(primary) if primary else None,
        "assets": [asset_to_dict(a) for a in video.assets],
        "url": primary.url if primary else None,
        "thumbnailUrl": preferred_thumbnail(thumbnails),
        "thumbnailUrls": thumbnails,
        **taxonomy_block(video, nodes),
        **counts(video),
        "rankingScore": video.ranking_score,
        "createdAt": isoformat(video.created_at),
        "updatedAt": isoformat(video.updated_at),
    }
    if viewer_votes is not None:
        data.update(vote_flags(viewer_votes))
    return data
