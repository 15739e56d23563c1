"""
Local Runner - bounded in-process execution for jobs the durable queue refused.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class LocalJobRunner:
    """
    Thread pool with a concurrency cap and visible counters.

    ``inline=True`` runs each job on the caller's thread; used by tests and
    scripts that want the job finished before ``submit`` returns.
    """

    def __init__(self, max_workers: int = 2, inline: bool = False):
        self.max_workers = max_workers
        self.inline = inline
        self._executor: Optional[ThreadPoolExecutor] = None
        if not inline:
            self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="local-job")
        self._lock = threading.Lock()
        self.submitted = 0
        self.in_flight = 0
        self.completed = 0
        self.failed = 0

    def submit(self, name: str, fn: Callable, *args, on_failure: Optional[Callable] = None) -> Optional[Future]:
        with self._lock:
            self.submitted += 1
            self.in_flight += 1
        logger.info(f"[local-runner] Running {name} in-process")
        if self.inline:
            self._execute(name, fn, args, on_failure)
            return None
        return self._executor.submit(self._execute, name, fn, args, on_failure)

    def _execute(self, name: str, fn: Callable, args: tuple, on_failure: Optional[Callable]) -> None:
        try:
            fn(*args)
        except Exception as e:
            with self._lock:
                self.in_flight -= 1
                self.failed += 1
            logger.exception(f"[local-runner] {name} failed: {e}")
            if on_failure is not None:
                try:
                    on_failure(e)
                except Exception:
                    logger.exception(f"[local-runner] Failure handler for {name} raised")
            return
        with self._lock:
            self.in_flight -= 1
            self.completed += 1

    def stats(self) -> dict:
        with self._lock:
            return {
                "maxWorkers": self.max_workers,
                "submitted": self.submitted,
                "inFlight": self.in_flight,
                "completed": self.completed,
                "failed": self.failed,
            }

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
