"""
rq worker entry point.

    python -m reelfeed.workers.worker video     # 2 parallel video jobs
    python -m reelfeed.workers.worker tagging   # 5 parallel tagging hooks
"""
import argparse
import logging
import os
import sys

from reelfeed.core.enums import JobKind
from reelfeed.core.logging import setup_logging
from reelfeed.core.settings import settings
from reelfeed.services.source import sweep_stale_uploads

logger = logging.getLogger(__name__)

WORKER_KINDS = {
    "video": (JobKind.PROCESS_VIDEO, "video_worker_concurrency"),
    "tagging": (JobKind.AFTER_VIDEO_READY, "tagging_worker_concurrency"),
}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run an rq worker for one job kind")
    parser.add_argument("kind", choices=sorted(WORKER_KINDS))
    parser.add_argument("--concurrency", type=int, default=None)
    args = parser.parse_args(argv)

    setup_logging(settings.log_level, settings.log_structured)

    from reelfeed.context import build_context
    from reelfeed.workers.jobs import bind_context

    ctx = build_context(settings)
    if not ctx.queue.enabled:
        logger.error("[worker] Redis is not reachable; nothing to consume")
        return 1
    bind_context(ctx)

    job_kind, concurrency_field = WORKER_KINDS[args.kind]
    concurrency = args.concurrency or getattr(settings, concurrency_field)
    queue = ctx.queue.queue_for(job_kind)

    if job_kind is JobKind.PROCESS_VIDEO:
        sweep_stale_uploads(settings.temp_dir, settings.stale_upload_max_age_hours)

    # Forked workers and job horses must not share pooled DB connections
    ctx.engine.dispose()
    os.register_at_fork(after_in_child=lambda: ctx.engine.dispose(close=False))

    logger.info(f"[worker] Consuming {queue.name} with concurrency {concurrency}")
    if concurrency > 1:
        from rq.worker_pool import WorkerPool

        pool = WorkerPool([queue], connection=ctx.queue.connection, num_workers=concurrency)
        pool.start()
    else:
        from rq import Worker

        w = Worker([queue], connection=ctx.queue.connection)
        w.work()
    return 0


if __name__ == "__main__":
    sys.exit(main())
