from reelfeed.models.ingest_rule import IngestDefaultRule
from reelfeed.models.taxonomy import TaxonomyNode
from reelfeed.models.video import Video, VideoTaxonomyLink
from reelfeed.models.video_asset import VideoAsset
from reelfeed.models.vote import Vote

__all__ = [
    "IngestDefaultRule",
    "TaxonomyNode",
    "Video",
    "VideoAsset",
    "VideoTaxonomyLink",
    "Vote",
]
