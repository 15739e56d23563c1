"""
Logging - JSON or console output carrying the current job, video and tenant
"""
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

current_job_id: ContextVar[Optional[str]] = ContextVar("current_job_id", default=None)
current_video_id: ContextVar[Optional[str]] = ContextVar("current_video_id", default=None)
current_tenant_id: ContextVar[Optional[str]] = ContextVar("current_tenant_id", default=None)

CONTEXT_VARS = {
    "job_id": current_job_id,
    "video_id": current_video_id,
    "tenant_id": current_tenant_id,
}


def context_fields() -> dict:
    """Non-empty context values, keyed by log field name."""
    return {name: var.get() for name, var in CONTEXT_VARS.items() if var.get()}


class ContextFilter(logging.Filter):
    """Copies the context vars onto each record so any formatter can use them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in CONTEXT_VARS.items():
            setattr(record, name, var.get())
        record.context = " ".join(f"{k}={v}" for k, v in context_fields().items())
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **context_fields(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", structured: bool = True):
    """
    Configure root logging for the API and the workers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        structured: JSON lines (True) or human-readable (False)
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric)
    handler.addFilter(ContextFilter())

    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s %(context)s"
        ))

    root_logger.addHandler(handler)

    # rq logs every job twice at INFO
    logging.getLogger("rq.worker").setLevel(max(numeric, logging.WARNING))


class JobContext:
    """
    Scope job/video/tenant ids to a block of work.

    Usage:
        with JobContext(job_id=job.id, video_id=video_id):
            logger.info("Transcoding...")  # carries job_id and video_id
    """
    def __init__(self, job_id: Optional[str] = None, video_id: Optional[str] = None, tenant_id: Optional[str] = None):
        self.values = {"job_id": job_id, "video_id": video_id, "tenant_id": tenant_id}
        self._tokens = []

    def __enter__(self):
        for name, value in self.values.items():
            if value:
                var = CONTEXT_VARS[name]
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
