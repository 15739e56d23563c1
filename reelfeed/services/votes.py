"""
Votes - append a vote row and bump the matching counter in one transaction.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import InstrumentedAttribute, sessionmaker

from reelfeed.core.enums import VoteType
from reelfeed.core.errors import VideoNotFound
from reelfeed.db.context import transaction
from reelfeed.db.repositories import VoteRepository
from reelfeed.models import Video
from reelfeed.schemas.vote import VoteIn
from reelfeed.services.presenters import isoformat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteRule:
    counter: InstrumentedAttribute
    weight: int
    default_gesture: str


def vote_rule(vote_type: VoteType) -> VoteRule:
    match vote_type:
        case VoteType.LIKE:
            return VoteRule(Video.like_count, 1, "double_tap")
        case VoteType.UP_VOTE:
            return VoteRule(Video.up_vote_count, 3, "triple_tap")
        case VoteType.SUPER_VOTE:
            return VoteRule(Video.super_vote_count, 10, "s_gesture")
    raise ValueError(f"Unknown vote type: {vote_type}")


def cast_vote(session_factory: sessionmaker, tenant_id: str, user_id: str, video_id: str, data: VoteIn) -> dict:
    rule = vote_rule(data.vote_type)
    with transaction(session_factory) as db:
        exists = db.execute(
            select(Video.id).where(Video.id == video_id, Video.tenant_id == tenant_id)
        ).scalar_one_or_none()
        if exists is None:
            raise VideoNotFound(video_id)

        vote = VoteRepository(db).create(
            tenant_id=tenant_id,
            video_id=video_id,
            user_id=user_id,
            vote_type=data.vote_type.value,
            weight=rule.weight,
            gesture_source=data.gesture_source or rule.default_gesture,
            request_id=data.request_id,
            rank_position=data.rank_position,
            feed_mode=data.feed_mode,
            is_denied=False,
        )
        db.flush()
        # Increment in SQL so concurrent votes can't lose updates
        db.execute(
            update(Video)
            .where(Video.id == video_id)
            .values({rule.counter: rule.counter + 1})
            .execution_options(synchronize_session=False)
        )
        like_count, up_vote_count, super_vote_count = db.execute(
            select(Video.like_count, Video.up_vote_count, Video.super_vote_count).where(Video.id == video_id)
        ).one()

        result = {
            "vote": {
                "id": vote.id,
                "videoId": vote.video_id,
                "voteType": vote.vote_type,
                "gestureSource": vote.gesture_source,
                "weight": vote.weight,
                "isDenied": vote.is_denied,
                "denyReason": vote.deny_reason,
                "createdAt": isoformat(vote.created_at),
            },
            "counts": {
                "likeCount": like_count,
                "upVoteCount": up_vote_count,
                "superVoteCount": super_vote_count,
            },
        }
    logger.info(f"[votes] {data.vote_type.value} on {video_id} by {user_id}")
    return result
