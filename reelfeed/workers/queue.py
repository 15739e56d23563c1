"""
Queue Adapter - rq queues per job kind, with retry policies
Disables itself for the process lifetime when Redis is unreachable at startup;
callers then run the job in-process instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Retry

from reelfeed.core.enums import JobKind
from reelfeed.core.pipeline_settings import transcode_settings
from reelfeed.core.settings import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Retry Configuration
# =============================================================================

@dataclass(frozen=True)
class RetryPolicy:
    """Total attempts (first run included) with doubling backoff from ``backoff_seconds``."""
    attempts: int
    backoff_seconds: int

    @property
    def intervals(self) -> list[int]:
        return [self.backoff_seconds * 2 ** i for i in range(self.attempts - 1)]

    def to_rq_retry(self) -> Optional[Retry]:
        if self.attempts <= 1:
            return None
        return Retry(max=self.attempts - 1, interval=self.intervals)


VIDEO_PROCESS_POLICY = RetryPolicy(attempts=3, backoff_seconds=2)
TAGGING_POLICY = RetryPolicy(attempts=2, backoff_seconds=1)

JOB_FUNCTIONS = {
    JobKind.PROCESS_VIDEO: "reelfeed.workers.jobs.process_video_job",
    JobKind.AFTER_VIDEO_READY: "reelfeed.workers.jobs.after_video_ready_job",
}

JOB_TIMEOUTS = {
    JobKind.PROCESS_VIDEO: transcode_settings.video_job_timeout,
    JobKind.AFTER_VIDEO_READY: transcode_settings.tagging_job_timeout,
}


# =============================================================================
# Adapter
# =============================================================================

class JobQueue:
    def __init__(
        self,
        connection: Optional[Redis],
        queue_names: dict[JobKind, str],
        queue_factory: Callable[..., Queue] = Queue,
    ):
        self.connection = connection
        self.queue_names = queue_names
        self._queues: dict[JobKind, Queue] = {}
        if connection is not None:
            for kind, name in queue_names.items():
                self._queues[kind] = queue_factory(name, connection=connection)

    @classmethod
    def disabled(cls) -> "JobQueue":
        return cls(None, {})

    @classmethod
    def connect(cls, settings: Settings) -> "JobQueue":
        """Ping Redis once; any failure leaves the adapter disabled for good."""
        if not settings.redis_url:
            logger.info("[queue] REDIS_URL not set; jobs will run in-process")
            return cls.disabled()
        try:
            conn = Redis.from_url(settings.redis_url)
            conn.ping()
        except (RedisError, ValueError) as e:
            logger.warning(f"[queue] Redis unavailable ({e}); jobs will run in-process")
            return cls.disabled()
        logger.info("[queue] Connected to Redis")
        return cls(conn, queue_names_from(settings))

    @property
    def enabled(self) -> bool:
        return self.connection is not None

    def queue_for(self, kind: JobKind) -> Optional[Queue]:
        return self._queues.get(kind)

    def enqueue(self, kind: JobKind, payload: dict, policy: RetryPolicy) -> bool:
        """
        Hand the job to the durable queue.

        Returns False when the adapter is disabled or the push fails; the caller
        must then run the work itself.
        """
        queue = self.queue_for(kind)
        if queue is None:
            return False
        try:
            job = queue.enqueue(
                JOB_FUNCTIONS[kind],
                payload,
                job_timeout=JOB_TIMEOUTS[kind],
                retry=policy.to_rq_retry(),
            )
        except RedisError as e:
            logger.error(f"[queue] Failed to enqueue {kind.value}: {e}")
            return False
        logger.info(f"[queue] Enqueued {kind.value} job {job.id} on {queue.name}")
        return True


def queue_names_from(settings: Settings) -> dict[JobKind, str]:
    return {
        JobKind.PROCESS_VIDEO: settings.rq_queue_video,
        JobKind.AFTER_VIDEO_READY: settings.rq_queue_tagging,
    }
