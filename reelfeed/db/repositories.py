from typing import Generic, Iterable, Optional, Type, TypeVar
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from reelfeed.core.enums import TaxonomyKind, VoteType
from reelfeed.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Generic repository for tenant-scoped CRUD operations."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def get_for_tenant(self, tenant_id: str, id: str) -> Optional[T]:
        return self.db.query(self.model).filter(
            self.model.id == id,
            self.model.tenant_id == tenant_id,
        ).first()

    def create(self, **kwargs) -> T:
        if "id" not in kwargs:
            kwargs["id"] = str(uuid4())
        instance = self.model(**kwargs)
        self.db.add(instance)
        return instance


class VideoRepository(BaseRepository):
    """Repository for Video operations."""

    def __init__(self, db: Session):
        from reelfeed.models import Video
        super().__init__(db, Video)

    def get_owned(self, tenant_id: str, video_id: str, user_id: str):
        """Video only when the caller created it; anything else looks absent."""
        return self.db.query(self.model).filter(
            self.model.id == video_id,
            self.model.tenant_id == tenant_id,
            self.model.creator_id == user_id,
        ).first()

    def get_many_for_tenant(self, tenant_id: str, video_ids: Iterable[str]):
        ids = list(dict.fromkeys(video_ids))
        if not ids:
            return []
        return self.db.query(self.model).filter(
            self.model.tenant_id == tenant_id,
            self.model.id.in_(ids),
        ).all()


class VideoAssetRepository(BaseRepository):
    """Repository for VideoAsset operations."""

    def __init__(self, db: Session):
        from reelfeed.models import VideoAsset
        super().__init__(db, VideoAsset)

    def list_for_video(self, video_id: str):
        return self.db.query(self.model).filter(
            self.model.video_id == video_id
        ).order_by(self.model.created_at.asc()).all()

    def demote_all(self, video_id: str) -> int:
        result = self.db.execute(
            update(self.model)
            .where(self.model.video_id == video_id, self.model.is_primary.is_(True))
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def upsert(self, tenant_id: str, video_id: str, kind: str, variant_label: str, **fields):
        """Insert or refresh the asset identified by (video, kind, variant label)."""
        asset = self.db.query(self.model).filter(
            self.model.video_id == video_id,
            self.model.kind == kind,
            self.model.variant_label == variant_label,
        ).first()
        if asset is None:
            asset = self.create(
                tenant_id=tenant_id,
                video_id=video_id,
                kind=kind,
                variant_label=variant_label,
                **fields,
            )
        else:
            for name, value in fields.items():
                setattr(asset, name, value)
        self.db.flush()
        return asset


class TaxonomyRepository(BaseRepository):
    """Repository for TaxonomyNode operations."""

    def __init__(self, db: Session):
        from reelfeed.models import TaxonomyNode
        super().__init__(db, TaxonomyNode)

    def existing_ids(self, tenant_id: str, kind: TaxonomyKind, ids: Iterable[str]) -> set[str]:
        ids = list(dict.fromkeys(ids))
        if not ids:
            return set()
        rows = self.db.execute(
            select(self.model.id).where(
                self.model.tenant_id == tenant_id,
                self.model.kind == kind.value,
                self.model.id.in_(ids),
            )
        ).scalars()
        return set(rows)

    def list_by_kind(self, tenant_id: str, kind: TaxonomyKind):
        return self.db.query(self.model).filter(
            self.model.tenant_id == tenant_id,
            self.model.kind == kind.value,
        ).order_by(self.model.name.asc()).all()

    def get_many(self, tenant_id: str, ids: Iterable[str]):
        ids = list(dict.fromkeys(ids))
        if not ids:
            return []
        return self.db.query(self.model).filter(
            self.model.tenant_id == tenant_id,
            self.model.id.in_(ids),
        ).all()


class VoteRepository(BaseRepository):
    """Repository for Vote operations."""

    def __init__(self, db: Session):
        from reelfeed.models import Vote
        super().__init__(db, Vote)

    def vote_types_by_video(self, user_id: str, video_ids: Iterable[str]) -> dict[str, set[VoteType]]:
        ids = list(dict.fromkeys(video_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(self.model.video_id, self.model.vote_type).where(
                self.model.user_id == user_id,
                self.model.video_id.in_(ids),
                self.model.is_denied.is_(False),
            ).distinct()
        ).all()
        result: dict[str, set[VoteType]] = {}
        for video_id, vote_type in rows:
            result.setdefault(video_id, set()).add(VoteType(vote_type))
        return result


class IngestRuleRepository(BaseRepository):
    """Repository for IngestDefaultRule operations."""

    def __init__(self, db: Session):
        from reelfeed.models import IngestDefaultRule
        super().__init__(db, IngestDefaultRule)

    def list_for_tenant(self, tenant_id: str):
        return self.db.query(self.model).filter(
            self.model.tenant_id == tenant_id
        ).order_by(self.model.source_key.asc()).all()

    def get_by_source(self, tenant_id: str, source_key: str):
        return self.db.query(self.model).filter(
            self.model.tenant_id == tenant_id,
            self.model.source_key == source_key,
        ).first()
