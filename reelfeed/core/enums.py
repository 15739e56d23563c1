from enum import Enum

class VideoStatus(str, Enum):
    # Initial state, not visible in feeds
    PROCESSING = "processing"

    # Terminal states
    READY = "ready"
    FAILED = "failed"

class StreamStatus(str, Enum):
    """Outcome of the segmented-stream stage, tracked apart from feed visibility."""
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"

class AssetKind(str, Enum):
    MASTER = "master"
    HLS = "hls"
    THUMBNAIL = "thumbnail"

class TaggingSource(str, Enum):
    MANUAL = "manual"
    RULE = "rule"
    AI_SUGGESTED = "ai_suggested"
    AI_CONFIRMED = "ai_confirmed"

class TaxonomyKind(str, Enum):
    CATEGORY = "category"
    TOPIC = "topic"
    SUBJECT = "subject"

class VoteType(str, Enum):
    LIKE = "like"
    UP_VOTE = "up_vote"
    SUPER_VOTE = "super_vote"

class JobKind(str, Enum):
    PROCESS_VIDEO = "process_video"
    AFTER_VIDEO_READY = "after_video_ready"
