"""
Pipeline Settings - Transcode targets and job retry policy knobs
"""
from __future__ import annotations
import os
from dataclasses import dataclass

def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else int(v)

def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v

def _env_offsets(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return tuple(int(p) for p in v.split(",") if p.strip())

@dataclass(frozen=True)
class TranscodeSettings:
    # HLS target: 9:16 portrait, 1920 on the long edge
    width: int = _env_int("HLS_WIDTH", 1080)
    height: int = _env_int("HLS_HEIGHT", 1920)
    crf: int = _env_int("HLS_CRF", 23)
    preset: str = _env_str("HLS_PRESET", "fast")
    maxrate: str = _env_str("HLS_MAXRATE", "5M")
    bufsize: str = _env_str("HLS_BUFSIZE", "10M")
    audio_bitrate: str = _env_str("HLS_AUDIO_BITRATE", "128k")
    segment_seconds: int = _env_int("HLS_SEGMENT_SECONDS", 6)

    # Still frames, seconds into the source
    thumbnail_offsets: tuple[int, ...] = _env_offsets("THUMBNAIL_OFFSETS", (5, 15, 30))

    # Job timeouts (seconds)
    video_job_timeout: int = _env_int("VIDEO_JOB_TIMEOUT", 3600)
    tagging_job_timeout: int = _env_int("TAGGING_JOB_TIMEOUT", 60)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

transcode_settings = TranscodeSettings()
