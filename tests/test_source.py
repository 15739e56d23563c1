"""Tests for source acquisition and temp cleanup."""
import base64
import os
import time

import pytest
import requests

from reelfeed.core.errors import NoSourceProvided, SourceFetchFailed
from reelfeed.services.source import (
    UPLOAD_DIR_PREFIX,
    acquire_source,
    cleanup_source,
    decode_inline_payload,
    has_source,
    is_inline_payload,
    sweep_stale_uploads,
)
from tests.conftest import INLINE_VIDEO, INLINE_VIDEO_BYTES, INLINE_VIDEO_DATA_URL


class TestInlineDetection:
    def test_data_url_is_inline(self):
        assert is_inline_payload("data:video/mp4;base64,AAAA")

    def test_data_url_without_body_is_not_inline(self):
        assert not is_inline_payload("data:video/mp4;base64")

    def test_long_bare_base64_is_inline(self):
        assert is_inline_payload(INLINE_VIDEO)

    def test_short_bare_string_is_not_inline(self):
        assert not is_inline_payload("abc123")

    def test_has_source_accepts_url_or_payload(self):
        assert has_source(None, "https://x.test/a.mp4")
        assert has_source(INLINE_VIDEO, None)
        assert not has_source(None, "   ")
        assert not has_source("", None)


class TestDecode:
    def test_data_url_base64(self):
        data, mime = decode_inline_payload(INLINE_VIDEO_DATA_URL)
        assert data == INLINE_VIDEO_BYTES
        assert mime == "video/mp4"

    def test_bare_base64(self):
        data, mime = decode_inline_payload(INLINE_VIDEO)
        assert data == INLINE_VIDEO_BYTES
        assert mime is None

    def test_line_wrapped_data_url(self):
        encoded = base64.b64encode(INLINE_VIDEO_BYTES).decode()
        wrapped = "\r\n".join(encoded[i:i + 76] for i in range(0, len(encoded), 76))
        data, mime = decode_inline_payload(f"data:video/mp4;base64,{wrapped}\n")
        assert data == INLINE_VIDEO_BYTES
        assert mime == "video/mp4"

    def test_bare_base64_with_embedded_newlines(self):
        encoded = base64.b64encode(INLINE_VIDEO_BYTES).decode()
        data, _ = decode_inline_payload(encoded[:40] + "\n" + encoded[40:])
        assert data == INLINE_VIDEO_BYTES

    def test_percent_encoded_data_url(self):
        data, mime = decode_inline_payload("data:text/plain,hello%20world")
        assert data == b"hello world"
        assert mime == "text/plain"


class TestAcquireSource:
    def test_inline_payload_written_to_fresh_dir(self, fetcher, tmp_path):
        path = acquire_source(INLINE_VIDEO_DATA_URL, None, fetcher, str(tmp_path))
        assert os.path.basename(os.path.dirname(path)).startswith(UPLOAD_DIR_PREFIX)
        with open(path, "rb") as f:
            assert f.read() == INLINE_VIDEO_BYTES

    def test_inline_wins_over_url(self, fetcher, http_session, tmp_path):
        acquire_source(INLINE_VIDEO, "https://x.test/a.mp4", fetcher, str(tmp_path))
        http_session.get.assert_not_called()

    def test_url_is_downloaded(self, fetcher, http_session, tmp_path):
        path = acquire_source(None, " https://x.test/a.mp4 ", fetcher, str(tmp_path))
        http_session.get.assert_called_once_with("https://x.test/a.mp4", stream=True, timeout=5)
        with open(path, "rb") as f:
            assert f.read().startswith(b"\x00\x00\x00\x18ftyp")

    def test_undecodable_inline_falls_back_to_url(self, fetcher, http_session, tmp_path):
        acquire_source("data:video/mp4;base64,!!!not-base64!!!", "https://x.test/a.mp4", fetcher, str(tmp_path))
        http_session.get.assert_called_once()

    def test_no_source_raises(self, fetcher, tmp_path):
        with pytest.raises(NoSourceProvided):
            acquire_source(None, None, fetcher, str(tmp_path))
        assert os.listdir(tmp_path) == []

    def test_http_error_raises_and_cleans_up(self, fetcher, http_session, tmp_path):
        http_session.get.return_value.ok = False
        http_session.get.return_value.status_code = 404
        with pytest.raises(SourceFetchFailed) as exc:
            acquire_source(None, "https://x.test/missing.mp4", fetcher, str(tmp_path))
        assert exc.value.status == 404
        assert os.listdir(tmp_path) == []

    def test_connection_error_raises(self, fetcher, http_session, tmp_path):
        http_session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(SourceFetchFailed) as exc:
            acquire_source(None, "https://x.test/a.mp4", fetcher, str(tmp_path))
        assert exc.value.status is None

    def test_cleanup_removes_parent_dir(self, fetcher, tmp_path):
        path = acquire_source(INLINE_VIDEO, None, fetcher, str(tmp_path))
        cleanup_source(path)
        assert not os.path.exists(os.path.dirname(path))


class TestSweep:
    def test_removes_only_old_upload_dirs(self, tmp_path):
        old = tmp_path / f"{UPLOAD_DIR_PREFIX}old"
        fresh = tmp_path / f"{UPLOAD_DIR_PREFIX}fresh"
        other = tmp_path / "unrelated"
        for d in (old, fresh, other):
            d.mkdir()
        stale = time.time() - 48 * 3600
        os.utime(old, (stale, stale))
        os.utime(other, (stale, stale))

        removed = sweep_stale_uploads(str(tmp_path), max_age_hours=24)

        assert removed == 1
        assert not old.exists()
        assert fresh.exists()
        assert other.exists()
