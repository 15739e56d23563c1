"""Domain errors raised by services and the ingestion pipeline."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from reelfeed.services.taxonomy import TaxonomyValidation


class ReelfeedError(Exception):
    """Base class for all domain errors."""


class InvalidTaxonomyReference(ReelfeedError):
    def __init__(self, result: "TaxonomyValidation"):
        self.result = result
        parts = []
        if result.invalid_category_ids:
            parts.append(f"Invalid category ids: {', '.join(result.invalid_category_ids)}")
        if result.invalid_topic_ids:
            parts.append(f"Invalid topic ids: {', '.join(result.invalid_topic_ids)}")
        if result.invalid_subject_ids:
            parts.append(f"Invalid subject ids: {', '.join(result.invalid_subject_ids)}")
        super().__init__("; ".join(parts) or "Invalid taxonomy reference")


class NoSourceProvided(ReelfeedError):
    def __init__(self, message: str = "Either videoUrl or videoBase64 is required"):
        super().__init__(message)


class SourceFetchFailed(ReelfeedError):
    def __init__(self, url: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        detail = f"HTTP {status}" if status is not None else "request error"
        super().__init__(f"Failed to download video from URL ({detail})")


class StorageNotConfigured(ReelfeedError):
    def __init__(self):
        super().__init__(
            "Missing object storage settings: STORAGE_ENDPOINT, STORAGE_ACCESS_KEY, "
            "STORAGE_SECRET_KEY, STORAGE_BUCKET"
        )


class StorageError(ReelfeedError):
    pass


class VideoNotFound(ReelfeedError):
    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__("Video not found")


class TranscodeFailed(ReelfeedError):
    def __init__(self, step: str, stderr: str = ""):
        self.step = step
        self.stderr = stderr
        # Last lines of ffmpeg output are the useful ones
        tail = "\n".join(stderr.strip().splitlines()[-5:])
        super().__init__(f"ffmpeg {step} failed" + (f": {tail}" if tail else ""))
