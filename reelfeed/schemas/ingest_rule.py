from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class IngestRuleIn(BaseModel):
    source_key: str = Field(min_length=1)
    default_category_ids: list[str] = Field(default_factory=list)
    default_topic_ids: list[str] = Field(default_factory=list)
    default_subject_ids: list[str] = Field(default_factory=list)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class IngestRuleOut(BaseModel):
    id: str
    source_key: str
    default_category_ids: list[str]
    default_topic_ids: list[str]
    default_subject_ids: list[str]
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
