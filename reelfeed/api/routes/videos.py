from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from reelfeed.api.deps import TenantContext, get_context, get_db, get_tenant
from reelfeed.context import AppContext
from reelfeed.core.errors import InvalidTaxonomyReference
from reelfeed.schemas.video import BulkTagIn, BulkTagOut, VideoCreateIn, VideoUpdateIn
from reelfeed.services import videos as video_service

router = APIRouter(prefix="/api", tags=["videos"])


@router.post("/videos", status_code=201)
def create_video(
    body: VideoCreateIn,
    tenant: TenantContext = Depends(get_tenant),
    ctx: AppContext = Depends(get_context),
):
    """
    Create a video from ``videoUrl`` or ``videoBase64``.

    Returns the row in ``processing``; transcoding continues in the background.
    """
    return video_service.create_video(ctx, tenant.tenant_id, tenant.user_id, body)


@router.get("/videos")
def list_my_videos(
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    tenant: TenantContext = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    return video_service.list_my_videos(db, tenant.tenant_id, tenant.user_id, limit, cursor)


@router.post("/videos/bulk-tag", response_model=BulkTagOut)
def bulk_tag(
    body: BulkTagIn,
    tenant: TenantContext = Depends(get_tenant),
    ctx: AppContext = Depends(get_context),
):
    try:
        result = video_service.bulk_tag_videos(ctx, tenant.tenant_id, body)
    except InvalidTaxonomyReference as e:
        return JSONResponse(
            status_code=400,
            content={"error": str(e), "updated": 0, **e.result.as_dict()},
        )
    if result["errors"] and result["updated"] == 0:
        return JSONResponse(
            status_code=400,
            content={"error": "; ".join(result["errors"]), "updated": 0},
        )
    return result


@router.get("/videos/{video_id}")
def get_video(
    video_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    return video_service.get_video(db, tenant.tenant_id, video_id, tenant.user_id)


@router.patch("/videos/{video_id}")
def update_video(
    video_id: str,
    body: VideoUpdateIn,
    tenant: TenantContext = Depends(get_tenant),
    ctx: AppContext = Depends(get_context),
):
    return video_service.update_video(ctx, tenant.tenant_id, tenant.user_id, video_id, body)
