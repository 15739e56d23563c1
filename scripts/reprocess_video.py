"""
Re-run processing for an existing video from a local copy of its source.

    python scripts/reprocess_video.py <video_id> <path/to/source.mp4>

The file is copied into a fresh upload dir first; the pipeline removes that
copy when it is done, never the original.
"""
import os
import shutil
import sys
import tempfile

from reelfeed.context import build_context
from reelfeed.core.logging import setup_logging
from reelfeed.core.settings import settings
from reelfeed.db.context import get_db_session
from reelfeed.models import Video
from reelfeed.services.source import SOURCE_FILENAME, UPLOAD_DIR_PREFIX
from reelfeed.workers.jobs import schedule_video_processing


def main(argv) -> int:
    if len(argv) != 2:
        print(__doc__)
        return 2
    video_id, path = argv
    if not os.path.isfile(path):
        print(f"No such file: {path}")
        return 2

    setup_logging(settings.log_level, structured=False)
    ctx = build_context(settings)
    try:
        with get_db_session(ctx.session_factory) as db:
            video = db.get(Video, video_id)
            if video is None:
                print(f"Video {video_id} not found")
                return 1
            tenant_id = video.tenant_id

        if settings.temp_dir:
            os.makedirs(settings.temp_dir, exist_ok=True)
        tmp_dir = tempfile.mkdtemp(prefix=UPLOAD_DIR_PREFIX, dir=settings.temp_dir)
        source_path = os.path.join(tmp_dir, SOURCE_FILENAME)
        shutil.copyfile(path, source_path)

        queued = schedule_video_processing(ctx, video_id, tenant_id, source_path)
        print(f"Video {video_id}: {'enqueued' if queued else 'running in-process'}")
    finally:
        # Waits for an in-process run to finish
        ctx.close(wait=True)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
