from fastapi import APIRouter
from reelfeed.api.routes.health import router as health
from reelfeed.api.routes.videos import router as videos
from reelfeed.api.routes.votes import router as votes
from reelfeed.api.routes.feed import router as feed
from reelfeed.api.routes.taxonomy import router as taxonomy
from reelfeed.api.routes.ingest_rules import router as ingest_rules

router = APIRouter()
router.include_router(health)
router.include_router(videos)
router.include_router(votes)
router.include_router(feed)
router.include_router(taxonomy)
router.include_router(ingest_rules)
