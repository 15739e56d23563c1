from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reelfeed.api.deps import get_db, get_optional_viewer, resolve_feed_tenant
from reelfeed.services.feed import get_feed

router = APIRouter(prefix="/api", tags=["feed"])


def _split_ids(*values: str | None) -> list[str]:
    ids = []
    for value in values:
        if value:
            ids.extend(p.strip() for p in value.split(",") if p.strip())
    return list(dict.fromkeys(ids))


@router.get("/feed")
def feed(
    category_ids: str | None = Query(default=None),
    category_id: str | None = Query(default=None),
    topic_ids: str | None = Query(default=None),
    subject_ids: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    tenant_id: str = Depends(resolve_feed_tenant),
    viewer_id: str | None = Depends(get_optional_viewer),
    db: Session = Depends(get_db),
):
    """Ready videos for the app. Id filters are comma-separated; ``category_id`` is the single-id form."""
    return get_feed(
        db,
        tenant_id,
        category_ids=_split_ids(category_ids, category_id),
        topic_ids=_split_ids(topic_ids),
        subject_ids=_split_ids(subject_ids),
        limit=limit,
        cursor=cursor,
        viewer_id=viewer_id,
    )
