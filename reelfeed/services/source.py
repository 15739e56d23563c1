"""
Source acquisition - materialize an upload as a local temporary file.

Accepts either an inline payload (data URL or bare base64) or a remote URL.
The returned file lives alone in a fresh directory; that directory is the
unit of cleanup once processing is over.
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
import re
import shutil
import tempfile
import time
from typing import Optional
from urllib.parse import unquote_to_bytes

import requests

from reelfeed.core.errors import NoSourceProvided, SourceFetchFailed

logger = logging.getLogger(__name__)

UPLOAD_DIR_PREFIX = "upload-"
SOURCE_FILENAME = "source.mp4"

DATA_URL_REGEX = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),", re.IGNORECASE)
BARE_BASE64_REGEX = re.compile(r"^[A-Za-z0-9+/]+=*$")
# Short bare strings are far more likely to be ids or typos than media
MIN_BARE_BASE64_LENGTH = 100
WHITESPACE_REGEX = re.compile(r"\s+")


def is_inline_payload(value: Optional[str]) -> bool:
    """True for a data URL with a body separator, or a long bare base64 string."""
    if not value:
        return False
    if value.startswith("data:"):
        return "," in value
    return len(value) > MIN_BARE_BASE64_LENGTH and bool(BARE_BASE64_REGEX.match(value))


def has_source(inline: Optional[str], url: Optional[str]) -> bool:
    return is_inline_payload(inline) or bool(url and url.strip())


def _strip_whitespace(value: str) -> str:
    # MIME encoders wrap base64 at 76 columns
    return WHITESPACE_REGEX.sub("", value)


def decode_inline_payload(value: str) -> tuple[bytes, Optional[str]]:
    """
    Decode a data URL or bare base64 string.

    Returns (bytes, mime) where mime comes from the data URL when it carries one.
    Raises binascii.Error / ValueError for a malformed payload.
    """
    match = DATA_URL_REGEX.match(value)
    if match:
        body = value[match.end():]
        mime = match.group("mime").strip() or None
        params = [p.strip().lower() for p in match.group("params").split(";") if p.strip()]
        if "base64" in params:
            return base64.b64decode(_strip_whitespace(body), validate=True), mime
        return unquote_to_bytes(body), mime
    return base64.b64decode(_strip_whitespace(value), validate=True), None


class SourceFetcher:
    """Downloads remote sources with a plain HTTP GET."""

    def __init__(self, timeout: int = 120, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_to(self, url: str, path: str) -> int:
        try:
            resp = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[source] Fetch failed for {url}: {e}")
            raise SourceFetchFailed(url) from e

        try:
            if not resp.ok:
                logger.error(f"[source] Fetch returned HTTP {resp.status_code} for {url}")
                raise SourceFetchFailed(url, resp.status_code)
            written = 0
            with open(path, "wb") as f:
                for chunk in resp.iter_content(chunk_size=1024 * 1024):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
        except requests.RequestException as e:
            logger.error(f"[source] Download interrupted for {url}: {e}")
            raise SourceFetchFailed(url) from e
        finally:
            resp.close()
        return written


def acquire_source(
    inline: Optional[str],
    url: Optional[str],
    fetcher: SourceFetcher,
    temp_root: Optional[str] = None,
) -> str:
    """
    Write the upload to ``<fresh temp dir>/source.mp4`` and return the path.

    The inline payload wins when it decodes; otherwise the URL is fetched.
    """
    if not has_source(inline, url):
        raise NoSourceProvided()

    if temp_root:
        os.makedirs(temp_root, exist_ok=True)
    tmp_dir = tempfile.mkdtemp(prefix=UPLOAD_DIR_PREFIX, dir=temp_root)
    source_path = os.path.join(tmp_dir, SOURCE_FILENAME)

    try:
        data = None
        if is_inline_payload(inline):
            try:
                data, _ = decode_inline_payload(inline)
            except (binascii.Error, ValueError):
                logger.warning("[source] Inline payload is not valid base64")
                if not (url and url.strip()):
                    raise NoSourceProvided("videoBase64 could not be decoded")

        if data is not None:
            with open(source_path, "wb") as f:
                f.write(data)
            logger.info(f"[source] Wrote inline upload ({len(data)} bytes) to {source_path}")
        else:
            size = fetcher.fetch_to(url.strip(), source_path)
            logger.info(f"[source] Downloaded {size} bytes from {url.strip()}")
    except BaseException:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        raise

    return source_path


def cleanup_source(source_path: str) -> None:
    """Recursively remove the directory that holds an acquired source."""
    shutil.rmtree(os.path.dirname(source_path), ignore_errors=True)


def sweep_stale_uploads(temp_root: Optional[str], max_age_hours: int) -> int:
    """Backstop for sources orphaned by a crash: remove old upload dirs."""
    root = temp_root or tempfile.gettempdir()
    if not os.path.isdir(root):
        return 0
    cutoff = time.time() - max_age_hours * 3600
    removed = 0
    for name in os.listdir(root):
        if not name.startswith(UPLOAD_DIR_PREFIX):
            continue
        path = os.path.join(root, name)
        try:
            if os.path.isdir(path) and os.path.getmtime(path) < cutoff:
                shutil.rmtree(path, ignore_errors=True)
                removed += 1
        except OSError:
            continue
    if removed:
        logger.info(f"[source] Swept {removed} stale upload dirs from {root}")
    return removed
