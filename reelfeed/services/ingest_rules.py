"""
Ingest default rules - per-tenant default classification keyed by ingest source.
"""
from sqlalchemy.orm import Session

from reelfeed.db.repositories import IngestRuleRepository
from reelfeed.schemas.ingest_rule import IngestRuleIn
from reelfeed.services.taxonomy import ensure_valid_taxonomy


def list_rules(db: Session, tenant_id: str):
    return IngestRuleRepository(db).list_for_tenant(tenant_id)


def upsert_rule(db: Session, tenant_id: str, data: IngestRuleIn):
    source_key = data.source_key.strip()
    ensure_valid_taxonomy(
        db,
        tenant_id,
        category_ids=data.default_category_ids,
        topic_ids=data.default_topic_ids,
        subject_ids=data.default_subject_ids,
    )
    repo = IngestRuleRepository(db)
    rule = repo.get_by_source(tenant_id, source_key)
    if rule is None:
        rule = repo.create(tenant_id=tenant_id, source_key=source_key)
    rule.default_category_ids = list(data.default_category_ids)
    rule.default_topic_ids = list(data.default_topic_ids)
    rule.default_subject_ids = list(data.default_subject_ids)
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, tenant_id: str, rule_id: str) -> bool:
    rule = IngestRuleRepository(db).get_for_tenant(tenant_id, rule_id)
    if rule is None:
        return False
    db.delete(rule)
    db.commit()
    return True
