"""
Video Pipeline - master upload, HLS transcode, thumbnails, promotion
Each promotion is one transaction: demote every asset, upsert the new primary,
repoint the video. Storage keys and asset rows are keyed by stage so a retried
run overwrites instead of duplicating.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from reelfeed.core.enums import AssetKind, StreamStatus, VideoStatus
from reelfeed.core.errors import VideoNotFound
from reelfeed.core.pipeline_settings import TranscodeSettings, transcode_settings
from reelfeed.db.context import transaction
from reelfeed.db.repositories import VideoAssetRepository
from reelfeed.models import Video
from reelfeed.services.transcoder import Transcoder
from reelfeed.storage import (
    HLS_MANIFEST_NAME,
    HLS_MIME,
    MP4_MIME,
    PNG_MIME,
    SEGMENT_MIME,
    MediaStore,
    StoredObject,
    hls_key,
    master_key,
    thumbnail_key,
)

logger = logging.getLogger(__name__)

MASTER_LABEL = "source"
STREAM_LABEL = "stream"
ERROR_MESSAGE_MAX = 500
WORK_DIR_PREFIX = "transcode-"


class VideoPipeline:
    def __init__(
        self,
        session_factory: sessionmaker,
        store: MediaStore,
        transcoder: Transcoder,
        config: TranscodeSettings = transcode_settings,
        temp_root: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.store = store
        self.transcoder = transcoder
        self.config = config
        self.temp_root = temp_root

    def run(
        self,
        video_id: str,
        tenant_id: str,
        source_path: str,
        on_ready: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Process one upload from its local source file.

        The source file itself is left in place; the caller owns it so that a
        retried attempt can read it again.
        """
        if self.temp_root:
            os.makedirs(self.temp_root, exist_ok=True)
        work_dir = tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=self.temp_root)
        ready = False
        try:
            # 1. Master upload + fast-ready
            logger.info(f"[pipeline] Step 1: Uploading master for {video_id}")
            master = self.store.put_file(master_key(tenant_id, video_id), source_path, MP4_MIME)
            duration_ms = self._promote_master(video_id, tenant_id, master)
            ready = True
            logger.info(f"[pipeline] Video {video_id} -> ready (master)")
            if on_ready is not None:
                on_ready()

            # 2. HLS transcode
            logger.info(f"[pipeline] Step 2: Transcoding {video_id} to HLS")
            duration_sec = self.transcoder.probe_duration(source_path)
            if duration_sec is None and duration_ms:
                duration_sec = duration_ms / 1000
            hls = self.transcoder.transcode_hls(source_path, os.path.join(work_dir, "hls"))

            # 3. Thumbnails
            logger.info(f"[pipeline] Step 3: Extracting thumbnails for {video_id}")
            frames = self.transcoder.extract_thumbnails(
                source_path, os.path.join(work_dir, "thumbs"), duration_sec
            )

            # 4. Uploads
            logger.info(
                f"[pipeline] Step 4: Uploading manifest, {len(hls.segment_paths)} segments, "
                f"{len(frames)} thumbnails"
            )
            manifest = self.store.put_file(
                hls_key(tenant_id, video_id, HLS_MANIFEST_NAME), hls.manifest_path, HLS_MIME
            )
            for segment_path in hls.segment_paths:
                self.store.put_file(
                    hls_key(tenant_id, video_id, os.path.basename(segment_path)), segment_path, SEGMENT_MIME
                )
            thumbnails = [
                (offset, self.store.put_file(thumbnail_key(tenant_id, video_id, offset), path, PNG_MIME))
                for offset, path in frames
            ]

            # 5. Segmented promotion
            self._promote_stream(video_id, tenant_id, manifest, thumbnails)
            logger.info(f"[pipeline] Video {video_id} -> stream ready")
        except Exception as e:
            if ready:
                self._mark_stream_failed(video_id, str(e))
            else:
                self._record_error(video_id, str(e))
            raise
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    def _asset_fields(self, stored: StoredObject, mime: str, **extra) -> dict:
        return {
            "storage_provider": stored.provider,
            "storage_key": stored.key,
            "url": stored.url,
            "mime_type": mime,
            **extra,
        }

    def _promote_master(self, video_id: str, tenant_id: str, master: StoredObject) -> int:
        with transaction(self.session_factory) as db:
            video = db.get(Video, video_id)
            if video is None:
                raise VideoNotFound(video_id)
            assets = VideoAssetRepository(db)
            assets.demote_all(video_id)
            asset = assets.upsert(
                tenant_id, video_id, AssetKind.MASTER.value, MASTER_LABEL,
                **self._asset_fields(master, MP4_MIME, is_primary=True),
            )
            video.primary_asset_id = asset.id
            video.status = VideoStatus.READY.value
            video.error_message = None
            return video.duration_ms

    def _promote_stream(
        self,
        video_id: str,
        tenant_id: str,
        manifest: StoredObject,
        thumbnails: list[tuple[int, StoredObject]],
    ) -> None:
        c = self.config
        with transaction(self.session_factory) as db:
            video = db.get(Video, video_id)
            if video is None:
                raise VideoNotFound(video_id)
            assets = VideoAssetRepository(db)
            assets.demote_all(video_id)
            for offset, stored in thumbnails:
                assets.upsert(
                    tenant_id, video_id, AssetKind.THUMBNAIL.value, str(offset),
                    **self._asset_fields(stored, PNG_MIME, width=c.width, height=c.height, is_primary=False),
                )
            stream = assets.upsert(
                tenant_id, video_id, AssetKind.HLS.value, STREAM_LABEL,
                **self._asset_fields(manifest, HLS_MIME, width=c.width, height=c.height, is_primary=True),
            )
            video.primary_asset_id = stream.id
            video.aspect_ratio = c.aspect_ratio
            video.stream_status = StreamStatus.READY.value
            video.error_message = None

    def _update_video(self, video_id: str, **fields) -> None:
        try:
            with transaction(self.session_factory) as db:
                video = db.get(Video, video_id)
                if video is None:
                    return
                for name, value in fields.items():
                    setattr(video, name, value)
        except Exception:
            logger.exception(f"[pipeline] Could not record failure state for {video_id}")

    def _mark_stream_failed(self, video_id: str, message: str) -> None:
        logger.error(f"[pipeline] Stream failed for {video_id}; master stays primary: {message}")
        self._update_video(
            video_id,
            stream_status=StreamStatus.FAILED.value,
            error_message=message[:ERROR_MESSAGE_MAX],
        )

    def _record_error(self, video_id: str, message: str) -> None:
        logger.error(f"[pipeline] Master upload failed for {video_id}: {message}")
        self._update_video(video_id, error_message=message[:ERROR_MESSAGE_MAX])

    def mark_failed(self, video_id: str, message: str) -> None:
        """Terminal failure for a video that never reached ready."""
        try:
            with transaction(self.session_factory) as db:
                video = db.get(Video, video_id)
                if video is None or video.status != VideoStatus.PROCESSING.value:
                    return
                video.status = VideoStatus.FAILED.value
                video.error_message = message[:ERROR_MESSAGE_MAX]
            logger.info(f"[pipeline] Video {video_id} -> failed")
        except Exception:
            logger.exception(f"[pipeline] Could not mark {video_id} failed")
