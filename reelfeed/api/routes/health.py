import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from reelfeed.api.deps import get_context
from reelfeed.context import AppContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(ctx: AppContext = Depends(get_context)):
    db_ok = True
    try:
        with ctx.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"[health] Database check failed: {e}")
        db_ok = False
    return {
        "ok": db_ok,
        "database": db_ok,
        "queue": "redis" if ctx.queue.enabled else "local",
        "storage": ctx.store.configured,
        "localRunner": ctx.local_runner.stats(),
    }
