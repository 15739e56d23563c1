"""
Taxonomy directory - tenant-scoped membership checks and display resolution.
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from reelfeed.core.enums import TaxonomyKind
from reelfeed.core.errors import InvalidTaxonomyReference
from reelfeed.db.repositories import TaxonomyRepository


@dataclass
class TaxonomyValidation:
    invalid_category_ids: list[str] = field(default_factory=list)
    invalid_topic_ids: list[str] = field(default_factory=list)
    invalid_subject_ids: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not (self.invalid_category_ids or self.invalid_topic_ids or self.invalid_subject_ids)

    def as_dict(self) -> dict:
        return {
            "invalidCategoryIds": self.invalid_category_ids,
            "invalidTopicIds": self.invalid_topic_ids,
            "invalidSubjectIds": self.invalid_subject_ids,
        }


def _invalid(repo: TaxonomyRepository, tenant_id: str, kind: TaxonomyKind, ids: Optional[Iterable[str]]) -> list[str]:
    ids = list(dict.fromkeys(ids or []))
    if not ids:
        return []
    found = repo.existing_ids(tenant_id, kind, ids)
    return [i for i in ids if i not in found]


def validate_taxonomy_ids(
    db: Session,
    tenant_id: str,
    category_ids: Optional[Iterable[str]] = None,
    topic_ids: Optional[Iterable[str]] = None,
    subject_ids: Optional[Iterable[str]] = None,
) -> TaxonomyValidation:
    """An id is valid only as a member of this tenant's vocabulary of the expected kind."""
    repo = TaxonomyRepository(db)
    return TaxonomyValidation(
        invalid_category_ids=_invalid(repo, tenant_id, TaxonomyKind.CATEGORY, category_ids),
        invalid_topic_ids=_invalid(repo, tenant_id, TaxonomyKind.TOPIC, topic_ids),
        invalid_subject_ids=_invalid(repo, tenant_id, TaxonomyKind.SUBJECT, subject_ids),
    )


def ensure_valid_taxonomy(db: Session, tenant_id: str, **ids) -> None:
    result = validate_taxonomy_ids(db, tenant_id, **ids)
    if not result.valid:
        raise InvalidTaxonomyReference(result)


def node_to_dict(node) -> dict:
    return {"id": node.id, "name": node.name, "slug": node.slug}


def list_nodes(db: Session, tenant_id: str, kind: TaxonomyKind) -> list[dict]:
    return [node_to_dict(n) for n in TaxonomyRepository(db).list_by_kind(tenant_id, kind)]


def get_all_taxonomy(db: Session, tenant_id: str) -> dict:
    return {
        "categories": list_nodes(db, tenant_id, TaxonomyKind.CATEGORY),
        "topics": list_nodes(db, tenant_id, TaxonomyKind.TOPIC),
        "subjects": list_nodes(db, tenant_id, TaxonomyKind.SUBJECT),
    }


def resolve_nodes(db: Session, tenant_id: str, ids: Iterable[str]) -> dict[str, dict]:
    """One query for every id referenced across a page; unknown ids are left out."""
    return {n.id: node_to_dict(n) for n in TaxonomyRepository(db).get_many(tenant_id, ids)}
