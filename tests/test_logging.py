"""Tests for structured logging and job context."""
import json
import logging

from reelfeed.core.logging import ContextFilter, JobContext, StructuredFormatter, current_job_id, current_video_id


def make_record(message="hello"):
    return logging.LogRecord("reelfeed.test", logging.INFO, __file__, 1, message, None, None)


def test_job_context_sets_and_resets():
    with JobContext(job_id="job-1", video_id="vid-1"):
        assert current_job_id.get() == "job-1"
        with JobContext(video_id="vid-2"):
            assert current_video_id.get() == "vid-2"
            assert current_job_id.get() == "job-1"
        assert current_video_id.get() == "vid-1"
    assert current_job_id.get() is None
    assert current_video_id.get() is None


def test_structured_formatter_includes_context():
    with JobContext(job_id="job-1", video_id="vid-1", tenant_id="app-a"):
        line = StructuredFormatter().format(make_record())
    data = json.loads(line)
    assert data["message"] == "hello"
    assert data["level"] == "INFO"
    assert data["job_id"] == "job-1"
    assert data["video_id"] == "vid-1"
    assert data["tenant_id"] == "app-a"


def test_structured_formatter_omits_empty_context():
    data = json.loads(StructuredFormatter().format(make_record()))
    assert "job_id" not in data
    assert "video_id" not in data


def test_context_filter_annotates_record():
    record = make_record()
    with JobContext(video_id="vid-9"):
        assert ContextFilter().filter(record) is True
    assert record.video_id == "vid-9"
    assert record.job_id is None
    assert record.context == "video_id=vid-9"
