"""
Job functions - what rq workers (or the local fallback runner) execute.

Payloads are plain dicts so they survive the trip through Redis:
    {"kind": "process_video", "videoId", "tenantId", "sourcePath"}
    {"kind": "after_video_ready", "videoId", "tenantId"}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Optional

from rq import get_current_job
from sqlalchemy.orm import sessionmaker

from reelfeed.core.enums import JobKind, TaggingSource
from reelfeed.core.logging import JobContext
from reelfeed.db.context import transaction
from reelfeed.db.repositories import VideoRepository
from reelfeed.services.source import cleanup_source
from reelfeed.workers.queue import TAGGING_POLICY, VIDEO_PROCESS_POLICY

if TYPE_CHECKING:
    from reelfeed.context import AppContext

logger = logging.getLogger(__name__)

_context: Optional["AppContext"] = None


def bind_context(ctx: Optional["AppContext"]) -> None:
    global _context
    _context = ctx


def get_context() -> "AppContext":
    """Context for this process, built on first use inside a forked rq worker."""
    global _context
    if _context is None:
        from reelfeed.context import build_context
        from reelfeed.core.settings import settings

        _context = build_context(settings)
    return _context


# =============================================================================
# Payloads
# =============================================================================

@dataclass(frozen=True)
class ProcessVideoPayload:
    video_id: str
    tenant_id: str
    source_path: str

    def to_dict(self) -> dict:
        return {
            "kind": JobKind.PROCESS_VIDEO.value,
            "videoId": self.video_id,
            "tenantId": self.tenant_id,
            "sourcePath": self.source_path,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProcessVideoPayload":
        return cls(data["videoId"], data["tenantId"], data["sourcePath"])


@dataclass(frozen=True)
class AfterVideoReadyPayload:
    video_id: str
    tenant_id: str

    def to_dict(self) -> dict:
        return {
            "kind": JobKind.AFTER_VIDEO_READY.value,
            "videoId": self.video_id,
            "tenantId": self.tenant_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AfterVideoReadyPayload":
        return cls(data["videoId"], data["tenantId"])


# =============================================================================
# Job entry points
# =============================================================================

def process_video_job(payload: dict) -> None:
    """rq entry point. The source file is kept until the last attempt is over."""
    p = ProcessVideoPayload.from_dict(payload)
    ctx = get_context()
    job = get_current_job()
    with JobContext(job_id=job.id if job else None, video_id=p.video_id, tenant_id=p.tenant_id):
        try:
            ctx.pipeline().run(
                p.video_id, p.tenant_id, p.source_path,
                on_ready=partial(schedule_tagging, ctx, p.video_id, p.tenant_id),
            )
        except Exception:
            if job is None or not job.retries_left:
                logger.error(f"[pipeline] Giving up on {p.video_id}; no retries left")
                cleanup_source(p.source_path)
            raise
        cleanup_source(p.source_path)


def after_video_ready_job(payload: dict) -> None:
    p = AfterVideoReadyPayload.from_dict(payload)
    ctx = get_context()
    job = get_current_job()
    with JobContext(job_id=job.id if job else None, video_id=p.video_id, tenant_id=p.tenant_id):
        run_tagging_hook(ctx.session_factory, p.video_id, p.tenant_id)


def run_tagging_hook(session_factory: sessionmaker, video_id: str, tenant_id: str) -> None:
    """Default the tagging provenance to manual when nothing else set it."""
    with transaction(session_factory) as db:
        video = VideoRepository(db).get_for_tenant(tenant_id, video_id)
        if video is None:
            logger.warning(f"[tagging] Video {video_id} not found for tenant {tenant_id}")
            return
        if video.tagging_source is None:
            video.tagging_source = TaggingSource.MANUAL.value
            logger.info(f"[tagging] Video {video_id} tagging source -> manual")


# =============================================================================
# Scheduling (durable queue first, local runner otherwise)
# =============================================================================

def schedule_video_processing(ctx: "AppContext", video_id: str, tenant_id: str, source_path: str) -> bool:
    """Returns True when the durable queue accepted the job."""
    payload = ProcessVideoPayload(video_id, tenant_id, source_path)
    if ctx.queue.enqueue(JobKind.PROCESS_VIDEO, payload.to_dict(), VIDEO_PROCESS_POLICY):
        return True
    ctx.local_runner.submit(
        f"process_video {video_id}",
        _run_in_process,
        ctx,
        payload,
        on_failure=lambda e: ctx.pipeline().mark_failed(video_id, str(e)),
    )
    return False


def schedule_tagging(ctx: "AppContext", video_id: str, tenant_id: str) -> bool:
    payload = AfterVideoReadyPayload(video_id, tenant_id)
    if ctx.queue.enqueue(JobKind.AFTER_VIDEO_READY, payload.to_dict(), TAGGING_POLICY):
        return True
    ctx.local_runner.submit(
        f"after_video_ready {video_id}",
        run_tagging_hook,
        ctx.session_factory,
        video_id,
        tenant_id,
    )
    return False


def _run_in_process(ctx: "AppContext", payload: ProcessVideoPayload) -> None:
    with JobContext(video_id=payload.video_id, tenant_id=payload.tenant_id):
        try:
            ctx.pipeline().run(
                payload.video_id, payload.tenant_id, payload.source_path,
                on_ready=partial(schedule_tagging, ctx, payload.video_id, payload.tenant_id),
            )
        finally:
            cleanup_source(payload.source_path)
