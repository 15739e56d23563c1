"""
Object storage client for uploaded media and pipeline artifacts.

Works against any S3-compatible endpoint (Cloudflare R2, MinIO). Keys follow
``{category}/{tenant}/{entity}/{filename}``; pipeline-managed trees use fixed
sub-paths so a re-run overwrites rather than duplicates.
"""
import io
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error

from reelfeed.core.errors import StorageError, StorageNotConfigured
from reelfeed.core.settings import Settings

logger = logging.getLogger(__name__)

HLS_MANIFEST_NAME = "master.m3u8"
HLS_MIME = "application/vnd.apple.mpegurl"
SEGMENT_MIME = "video/MP2T"
MP4_MIME = "video/mp4"
PNG_MIME = "image/png"


def upload_key(category: str, tenant_id: str, entity_id: str, filename: str) -> str:
    return f"{category}/{tenant_id}/{entity_id}/{filename}"


def master_key(tenant_id: str, video_id: str) -> str:
    return upload_key("videos", tenant_id, video_id, "source.mp4")


def hls_key(tenant_id: str, video_id: str, filename: str) -> str:
    return upload_key("videos", tenant_id, video_id, f"hls/{filename}")


def thumbnail_key(tenant_id: str, video_id: str, offset_sec: int) -> str:
    return upload_key("thumbnails", tenant_id, video_id, f"{offset_sec}.png")


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str
    provider: str


class MediaStore:
    """Thin put/delete wrapper; no retries, failures propagate to the caller."""

    def __init__(
        self,
        client: Optional[Minio],
        bucket: str,
        public_url: str = "",
        provider: str = "r2",
    ):
        self._client = client
        self.bucket = bucket
        self.provider = provider
        self._public_base = public_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaStore":
        if not settings.storage_configured:
            logger.warning("[storage] Object storage not configured; uploads will be rejected")
            return cls(None, settings.storage_bucket, provider=settings.storage_provider)

        client = Minio(
            endpoint=settings.storage_endpoint,
            access_key=settings.storage_access_key,
            secret_key=settings.storage_secret_key,
            secure=settings.storage_secure,
            region=settings.storage_region or None,
        )
        public_url = settings.storage_public_url
        if not public_url:
            scheme = "https" if settings.storage_secure else "http"
            public_url = f"{scheme}://{settings.storage_endpoint}/{settings.storage_bucket}"
        return cls(client, settings.storage_bucket, public_url, provider=settings.storage_provider)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> Minio:
        if self._client is None:
            raise StorageNotConfigured()
        return self._client

    def public_url(self, key: str) -> str:
        return f"{self._public_base}/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> StoredObject:
        client = self._require_client()
        try:
            client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            raise StorageError(f"Failed to upload {key}: {e.code}") from e
        logger.debug(f"[storage] put {key} ({len(data)} bytes)")
        return StoredObject(key=key, url=self.public_url(key), provider=self.provider)

    def put_file(self, key: str, path: str, content_type: str) -> StoredObject:
        client = self._require_client()
        try:
            client.fput_object(
                bucket_name=self.bucket,
                object_name=key,
                file_path=path,
                content_type=content_type,
            )
        except S3Error as e:
            raise StorageError(f"Failed to upload {key}: {e.code}") from e
        logger.debug(f"[storage] put {key} from {path}")
        return StoredObject(key=key, url=self.public_url(key), provider=self.provider)

    def key_from(self, key_or_url: str) -> str:
        if not key_or_url.startswith(("http://", "https://")):
            return key_or_url.lstrip("/")
        if self._public_base and key_or_url.startswith(self._public_base + "/"):
            return key_or_url[len(self._public_base) + 1:]
        path = urlparse(key_or_url).path.lstrip("/")
        bucket_prefix = f"{self.bucket}/"
        if self.bucket and path.startswith(bucket_prefix):
            path = path[len(bucket_prefix):]
        return path

    def delete(self, key_or_url: str) -> None:
        """Delete by key or public URL. An already-absent object counts as deleted."""
        client = self._require_client()
        key = self.key_from(key_or_url)
        try:
            client.remove_object(bucket_name=self.bucket, object_name=key)
        except S3Error as e:
            if e.code == "NoSuchKey":
                return
            raise StorageError(f"Failed to delete {key}: {e.code}") from e
