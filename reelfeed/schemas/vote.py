from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from reelfeed.core.enums import VoteType


class VoteIn(BaseModel):
    vote_type: VoteType
    gesture_source: str | None = None
    request_id: str | None = None
    rank_position: int | None = None
    feed_mode: str | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
