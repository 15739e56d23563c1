"""
Composition root: every client the app and the workers share, built once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from reelfeed.core.pipeline_settings import TranscodeSettings, transcode_settings
from reelfeed.core.settings import Settings
from reelfeed.db.session import init_db, make_engine, make_session_factory
from reelfeed.services.source import SourceFetcher
from reelfeed.services.transcoder import Transcoder
from reelfeed.storage import MediaStore
from reelfeed.workers.local_runner import LocalJobRunner
from reelfeed.workers.pipeline import VideoPipeline
from reelfeed.workers.queue import JobQueue

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    store: MediaStore
    queue: JobQueue
    local_runner: LocalJobRunner
    transcoder: Transcoder
    fetcher: SourceFetcher
    transcode: TranscodeSettings = transcode_settings

    def pipeline(self) -> VideoPipeline:
        return VideoPipeline(
            self.session_factory,
            self.store,
            self.transcoder,
            config=self.transcode,
            temp_root=self.settings.temp_dir,
        )

    def close(self, wait: bool = False) -> None:
        self.local_runner.shutdown(wait=wait)
        self.engine.dispose()


def build_context(settings: Settings) -> AppContext:
    engine = make_engine(settings.database_url)
    init_db(engine)
    ctx = AppContext(
        settings=settings,
        engine=engine,
        session_factory=make_session_factory(engine),
        store=MediaStore.from_settings(settings),
        queue=JobQueue.connect(settings),
        local_runner=LocalJobRunner(max_workers=settings.local_runner_concurrency),
        transcoder=Transcoder(transcode_settings),
        fetcher=SourceFetcher(timeout=settings.source_fetch_timeout),
    )
    logger.info(
        f"[context] Ready (queue={'redis' if ctx.queue.enabled else 'local'}, "
        f"storage={'on' if ctx.store.configured else 'off'})"
    )
    return ctx
