from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from reelfeed.core.enums import TaggingSource


class VideoCreateIn(BaseModel):
    title: str | None = None
    description: str | None = None
    primary_category_id: str
    secondary_labels: list[str] | None = None
    category_ids: list[str] | None = None
    topic_ids: list[str] | None = None
    subject_ids: list[str] | None = None
    ingest_source: str | None = None
    duration_ms: int = Field(ge=0)
    aspect_ratio: float | None = None
    video_url: str | None = None
    video_base64: str | None = None
    thumbnail_base64: str | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class VideoUpdateIn(BaseModel):
    """Only fields present in the request body are applied."""
    title: str | None = None
    description: str | None = None
    primary_category_id: str | None = None
    secondary_labels: list[str] | None = None
    category_ids: list[str] | None = None
    topic_ids: list[str] | None = None
    subject_ids: list[str] | None = None
    tagging_source: TaggingSource | None = None
    duration_ms: int | None = Field(default=None, ge=0)
    aspect_ratio: float | None = None
    video_base64: str | None = None
    thumbnail_base64: str | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class BulkTagIn(BaseModel):
    video_ids: list[str] = Field(min_length=1)
    category_ids: list[str] | None = None
    topic_ids: list[str] | None = None
    subject_ids: list[str] | None = None
    tagging_source: TaggingSource | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class BulkTagOut(BaseModel):
    updated: int
    errors: list[str] = Field(default_factory=list)
