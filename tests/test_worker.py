"""Tests for the rq worker entry point."""
from unittest.mock import MagicMock, patch

import pytest

from reelfeed.core.enums import JobKind
from reelfeed.workers import worker
from reelfeed.workers.jobs import bind_context


@pytest.fixture
def worker_ctx():
    events = []
    ctx = MagicMock()
    ctx.queue.enabled = True
    ctx.engine.dispose.side_effect = lambda **kwargs: events.append(("dispose", kwargs))
    ctx.events = events
    yield ctx
    bind_context(None)


def run_main(ctx, argv):
    pool = MagicMock()
    pool.start.side_effect = lambda: ctx.events.append(("start", {}))
    single = MagicMock()
    single.work.side_effect = lambda: ctx.events.append(("work", {}))
    with patch("reelfeed.context.build_context", return_value=ctx), \
         patch("reelfeed.workers.worker.setup_logging"), \
         patch("reelfeed.workers.worker.sweep_stale_uploads") as sweep, \
         patch("reelfeed.workers.worker.os.register_at_fork") as at_fork, \
         patch("rq.worker_pool.WorkerPool", return_value=pool) as pool_cls, \
         patch("rq.Worker", return_value=single):
        code = worker.main(argv)
    return code, sweep, at_fork, pool_cls


def test_pool_starts_without_pooled_connections(worker_ctx):
    code, sweep, at_fork, pool_cls = run_main(worker_ctx, ["video"])

    assert code == 0
    assert [name for name, _ in worker_ctx.events] == ["dispose", "start"]
    worker_ctx.queue.queue_for.assert_called_with(JobKind.PROCESS_VIDEO)
    assert pool_cls.call_args.kwargs["num_workers"] == 2
    sweep.assert_called_once()

    # Forked children drop inherited connections without closing the parent's sockets
    after_in_child = at_fork.call_args.kwargs["after_in_child"]
    after_in_child()
    assert worker_ctx.events[-1] == ("dispose", {"close": False})


def test_single_worker_disposes_before_work(worker_ctx):
    code, sweep, _, pool_cls = run_main(worker_ctx, ["tagging", "--concurrency", "1"])

    assert code == 0
    assert [name for name, _ in worker_ctx.events] == ["dispose", "work"]
    worker_ctx.queue.queue_for.assert_called_with(JobKind.AFTER_VIDEO_READY)
    pool_cls.assert_not_called()
    sweep.assert_not_called()


def test_exits_when_redis_unreachable(worker_ctx):
    worker_ctx.queue.enabled = False
    code, _, _, pool_cls = run_main(worker_ctx, ["video"])
    assert code == 1
    pool_cls.assert_not_called()
