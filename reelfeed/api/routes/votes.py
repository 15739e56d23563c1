from fastapi import APIRouter, Depends

from reelfeed.api.deps import TenantContext, get_context, get_tenant
from reelfeed.context import AppContext
from reelfeed.schemas.vote import VoteIn
from reelfeed.services.votes import cast_vote

router = APIRouter(prefix="/api", tags=["votes"])


@router.post("/videos/{video_id}/vote", status_code=201)
def vote(
    video_id: str,
    body: VoteIn,
    tenant: TenantContext = Depends(get_tenant),
    ctx: AppContext = Depends(get_context),
):
    return cast_vote(ctx.session_factory, tenant.tenant_id, tenant.user_id, video_id, body)
