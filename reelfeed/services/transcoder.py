import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import ffmpeg

from reelfeed.core.errors import TranscodeFailed
from reelfeed.core.pipeline_settings import TranscodeSettings, transcode_settings
from reelfeed.storage import HLS_MANIFEST_NAME

logger = logging.getLogger(__name__)

SEGMENT_PATTERN = "segment_%d.ts"


@dataclass
class HlsOutput:
    manifest_path: str
    segment_paths: list[str] = field(default_factory=list)


def _stderr_text(e: ffmpeg.Error) -> str:
    return e.stderr.decode("utf-8", errors="replace") if e.stderr else ""


class Transcoder:
    def __init__(self, config: TranscodeSettings = transcode_settings):
        self.config = config

    def probe_duration(self, src: str) -> Optional[float]:
        """Duration of the source in seconds, or None if ffprobe can't tell."""
        try:
            info = ffmpeg.probe(src)
        except ffmpeg.Error as e:
            logger.warning(f"[transcoder] ffprobe failed for {src}: {_stderr_text(e)[-200:]}")
            return None
        duration = info.get("format", {}).get("duration")
        return float(duration) if duration else None

    def has_audio(self, src: str) -> bool:
        try:
            info = ffmpeg.probe(src, select_streams="a")
        except ffmpeg.Error:
            return False
        return bool(info.get("streams"))

    def transcode_hls(self, src: str, out_dir: str) -> HlsOutput:
        """
        Encode the source as a VOD HLS ladder of one rendition.

        Output is letterboxed into the target frame so nothing is cropped.
        Returns the manifest path and the segment files in playback order.
        """
        os.makedirs(out_dir, exist_ok=True)
        manifest_path = os.path.join(out_dir, HLS_MANIFEST_NAME)
        try:
            self._run_hls(src, out_dir, manifest_path)
        except ffmpeg.Error as e:
            logger.error(f"[transcoder] HLS encode failed for {src}")
            raise TranscodeFailed("hls", _stderr_text(e)) from e

        segments = sorted(
            (name for name in os.listdir(out_dir) if name.endswith(".ts")),
            key=lambda name: int(name.rsplit("_", 1)[-1].split(".")[0]),
        )
        return HlsOutput(manifest_path, [os.path.join(out_dir, name) for name in segments])

    def _run_hls(self, src: str, out_dir: str, manifest_path: str) -> None:
        c = self.config
        stream = ffmpeg.input(src)
        video = (
            stream.video
            .filter("scale", w=c.width, h=c.height, force_original_aspect_ratio="decrease")
            .filter("pad", w=c.width, h=c.height, x="(ow-iw)/2", y="(oh-ih)/2")
        )
        streams = [video]
        audio_opts = {}
        if self.has_audio(src):
            streams.append(stream.audio)
            audio_opts = {"acodec": "aac", "b:a": c.audio_bitrate}

        output = ffmpeg.output(
            *streams,
            manifest_path,
            vcodec="libx264",
            preset=c.preset,
            crf=c.crf,
            maxrate=c.maxrate,
            bufsize=c.bufsize,
            pix_fmt="yuv420p",
            hls_time=c.segment_seconds,
            hls_playlist_type="vod",
            hls_segment_filename=os.path.join(out_dir, SEGMENT_PATTERN),
            f="hls",
            **audio_opts,
        )
        ffmpeg.run(output, overwrite_output=True, capture_stdout=True, capture_stderr=True)

    def extract_thumbnails(
        self, src: str, out_dir: str, duration_sec: Optional[float]
    ) -> list[tuple[int, str]]:
        """
        Grab one still per configured offset.

        Offsets at or past the end of the source are skipped, and so is any
        single frame that fails to extract. Fewer stills than offsets is fine.
        """
        os.makedirs(out_dir, exist_ok=True)
        results = []
        for offset in self.config.thumbnail_offsets:
            if duration_sec is not None and offset >= duration_sec:
                logger.info(f"[transcoder] Skipping {offset}s thumbnail (source is {duration_sec:.1f}s)")
                continue
            path = os.path.join(out_dir, f"{offset}.png")
            try:
                self._run_thumbnail(src, path, offset)
            except ffmpeg.Error as e:
                logger.warning(f"[transcoder] Thumbnail at {offset}s failed: {_stderr_text(e)[-200:]}")
                continue
            if os.path.exists(path):
                results.append((offset, path))
        return results

    def _run_thumbnail(self, src: str, path: str, offset: int) -> None:
        c = self.config
        output = (
            ffmpeg
            .input(src, ss=offset)
            .filter("scale", w=c.width, h=c.height, force_original_aspect_ratio="decrease")
            .output(path, vframes=1)
        )
        ffmpeg.run(output, overwrite_output=True, capture_stdout=True, capture_stderr=True)
