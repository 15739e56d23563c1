"""Test fixtures for the reelfeed backend tests."""
import base64
import math
import os
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import ffmpeg
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

from reelfeed.api.deps import create_access_token
from reelfeed.context import AppContext
from reelfeed.core.enums import AssetKind, StreamStatus, TaxonomyKind, VideoStatus
from reelfeed.core.pipeline_settings import TranscodeSettings
from reelfeed.core.settings import Settings
from reelfeed.db.base import Base
from reelfeed.db.session import init_db, make_engine, make_session_factory
from reelfeed.main import create_app
from reelfeed.models import TaxonomyNode, Video, VideoAsset
from reelfeed.services.source import SourceFetcher
from reelfeed.services.transcoder import Transcoder
from reelfeed.storage import MediaStore
from reelfeed.workers.local_runner import LocalJobRunner
from reelfeed.workers.queue import JobQueue

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.gettempdir(), 'reelfeed-test.db')}",
)

PUBLIC_BASE = "https://cdn.test/media"

TENANT_A = "app-a"
TENANT_B = "app-b"
USER_1 = "user-1"
USER_2 = "user-2"

# Taxonomy ids per tenant
CAT_A1 = "cat-a-1"
CAT_A2 = "cat-a-2"
TOPIC_A1 = "topic-a-1"
SUBJECT_A1 = "subject-a-1"
CAT_B1 = "cat-b-1"
TOPIC_B1 = "topic-b-1"

INLINE_VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 200
INLINE_VIDEO = base64.b64encode(INLINE_VIDEO_BYTES).decode()
INLINE_VIDEO_DATA_URL = f"data:video/mp4;base64,{INLINE_VIDEO}"
INLINE_PNG = "data:image/png;base64," + base64.b64encode(b"\x89PNG" + b"\x02" * 120).decode()


class FakeTranscoder(Transcoder):
    """Writes deterministic HLS and thumbnail files instead of running ffmpeg."""

    def __init__(self, duration: float = 10.0, fail_hls: bool = False):
        super().__init__(TranscodeSettings())
        self.duration = duration
        self.fail_hls = fail_hls
        self.hls_calls = 0

    def probe_duration(self, src):
        return self.duration

    def has_audio(self, src):
        return True

    def _run_hls(self, src, out_dir, manifest_path):
        self.hls_calls += 1
        if self.fail_hls:
            raise ffmpeg.Error("ffmpeg", b"", b"Conversion failed!")
        count = max(1, math.ceil(self.duration / self.config.segment_seconds))
        lines = ["#EXTM3U"]
        for i in range(count):
            name = f"segment_{i}.ts"
            with open(os.path.join(out_dir, name), "wb") as f:
                f.write(b"ts" * 10)
            lines.append(name)
        with open(manifest_path, "w") as f:
            f.write("\n".join(lines))

    def _run_thumbnail(self, src, path, offset):
        with open(path, "wb") as f:
            f.write(b"\x89PNG" + str(offset).encode())


@pytest.fixture(scope="session")
def db_engine():
    """Create a test database engine."""
    engine = make_engine(TEST_DATABASE_URL)
    Base.metadata.drop_all(bind=engine)
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="session")
def TestingSessionLocal(db_engine):
    """Shared session factory for the test database."""
    return make_session_factory(db_engine)


@pytest.fixture(autouse=True)
def clean_tables(db_engine):
    """Delete all rows between tests for isolation."""
    yield
    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(delete(table))


@pytest.fixture
def db_session(TestingSessionLocal):
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def mock_minio():
    """Mock MinIO client that records calls."""
    mock_client = MagicMock()
    mock_client.put_object = MagicMock(return_value=None)
    mock_client.fput_object = MagicMock(return_value=None)
    mock_client.remove_object = MagicMock(return_value=None)
    return mock_client


@pytest.fixture
def store(mock_minio):
    return MediaStore(mock_minio, "media", PUBLIC_BASE)


@pytest.fixture
def transcoder():
    return FakeTranscoder(duration=10.0)


@pytest.fixture
def http_session():
    """requests.Session stand-in whose GET serves a small mp4 body."""
    session = MagicMock()
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.iter_content.return_value = [b"\x00\x00\x00\x18ftyp", b"mp42" * 16]
    session.get.return_value = response
    return session


@pytest.fixture
def fetcher(http_session):
    return SourceFetcher(timeout=5, session=http_session)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        JWT_SECRET="test-secret",
        TEMP_DIR=str(tmp_path / "uploads"),
        CORS_ORIGINS="http://localhost:3000",
        REDIS_URL="",
    )


@pytest.fixture
def context(settings, db_engine, TestingSessionLocal, store, transcoder, fetcher):
    ctx = AppContext(
        settings=settings,
        engine=db_engine,
        session_factory=TestingSessionLocal,
        store=store,
        queue=JobQueue.disabled(),
        local_runner=LocalJobRunner(inline=True),
        transcoder=transcoder,
        fetcher=fetcher,
    )
    yield ctx
    ctx.local_runner.shutdown()


@pytest.fixture
def app(context):
    return create_app(context.settings, context)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(settings):
    """Build Authorization headers for a (tenant, user) pair."""
    def _headers(tenant_id: str = TENANT_A, user_id: str = USER_1) -> dict:
        return {"Authorization": f"Bearer {create_access_token(settings, user_id, tenant_id)}"}
    return _headers


@pytest.fixture
def taxonomy(db_session):
    """Two tenants with disjoint vocabularies."""
    nodes = [
        TaxonomyNode(id=CAT_A1, tenant_id=TENANT_A, kind=TaxonomyKind.CATEGORY.value, name="Comedy", slug="comedy"),
        TaxonomyNode(id=CAT_A2, tenant_id=TENANT_A, kind=TaxonomyKind.CATEGORY.value, name="Art", slug="art"),
        TaxonomyNode(id=TOPIC_A1, tenant_id=TENANT_A, kind=TaxonomyKind.TOPIC.value, name="Cooking", slug="cooking"),
        TaxonomyNode(id=SUBJECT_A1, tenant_id=TENANT_A, kind=TaxonomyKind.SUBJECT.value, name="Pasta", slug="pasta"),
        TaxonomyNode(id=CAT_B1, tenant_id=TENANT_B, kind=TaxonomyKind.CATEGORY.value, name="News", slug="news"),
        TaxonomyNode(id=TOPIC_B1, tenant_id=TENANT_B, kind=TaxonomyKind.TOPIC.value, name="Politics", slug="politics"),
    ]
    db_session.add_all(nodes)
    db_session.commit()
    return {n.id: n for n in nodes}


@pytest.fixture
def video_factory(db_session):
    """Insert a video directly, optionally ready with a primary master asset."""
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(
        tenant_id: str = TENANT_A,
        creator_id: str = USER_1,
        status: VideoStatus = VideoStatus.READY,
        primary_category_id: str = CAT_A1,
        ranking_score: float = 0.0,
        category_ids=(),
        topic_ids=(),
        subject_ids=(),
        thumbnails=(),
        created_offset: int | None = None,
        title: str | None = None,
    ) -> Video:
        counter["n"] += 1
        offset = counter["n"] if created_offset is None else created_offset
        video = Video(
            tenant_id=tenant_id,
            creator_id=creator_id,
            status=status.value,
            stream_status=StreamStatus.PENDING.value,
            title=title or f"video {counter['n']}",
            duration_ms=10000,
            primary_category_id=primary_category_id,
            ranking_score=ranking_score,
            created_at=base_time + timedelta(minutes=offset),
        )
        video.set_taxonomy_ids(TaxonomyKind.CATEGORY, list(category_ids))
        video.set_taxonomy_ids(TaxonomyKind.TOPIC, list(topic_ids))
        video.set_taxonomy_ids(TaxonomyKind.SUBJECT, list(subject_ids))
        db_session.add(video)
        db_session.flush()
        if status == VideoStatus.READY:
            master = VideoAsset(
                tenant_id=tenant_id,
                video_id=video.id,
                kind=AssetKind.MASTER.value,
                variant_label="source",
                storage_provider="r2",
                storage_key=f"videos/{tenant_id}/{video.id}/source.mp4",
                url=f"{PUBLIC_BASE}/videos/{tenant_id}/{video.id}/source.mp4",
                mime_type="video/mp4",
                is_primary=True,
            )
            db_session.add(master)
            db_session.flush()
            video.primary_asset_id = master.id
        for label in thumbnails:
            db_session.add(VideoAsset(
                tenant_id=tenant_id,
                video_id=video.id,
                kind=AssetKind.THUMBNAIL.value,
                variant_label=str(label),
                storage_provider="r2",
                storage_key=f"thumbnails/{tenant_id}/{video.id}/{label}.png",
                url=f"{PUBLIC_BASE}/thumbnails/{tenant_id}/{video.id}/{label}.png",
                mime_type="image/png",
            ))
        db_session.commit()
        return video

    return _make


def video_payload(**overrides) -> dict:
    body = {
        "title": "Test clip",
        "primaryCategoryId": CAT_A1,
        "durationMs": 10000,
        "videoUrl": "https://media.example.com/clip.mp4",
    }
    body.update(overrides)
    return {k: v for k, v in body.items() if v is not None}
