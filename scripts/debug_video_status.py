import sys

from reelfeed.core.settings import settings
from reelfeed.db.context import get_db_session
from reelfeed.db.repositories import VideoAssetRepository
from reelfeed.db.session import make_engine, make_session_factory
from reelfeed.models import Video

limit = int(sys.argv[1]) if len(sys.argv) > 1 else 5
SessionLocal = make_session_factory(make_engine(settings.database_url))

with get_db_session(SessionLocal) as db:
    videos = db.query(Video).order_by(Video.created_at.desc()).limit(limit).all()
    print(f"{'ID':<36} | {'Status':<10} | {'Stream':<8} | {'Tenant':<20} | {'Title'}")
    print("-" * 110)
    for v in videos:
        print(f"{v.id:<36} | {v.status:<10} | {v.stream_status:<8} | {v.tenant_id:<20} | {v.title}")
        if v.error_message:
            print(f"  [ERROR] {v.error_message}")
        for a in VideoAssetRepository(db).list_for_video(v.id):
            marker = "*" if a.id == v.primary_asset_id else " "
            print(f"  {marker} {a.kind:<9} {a.variant_label or '-':<16} {a.storage_key}")
