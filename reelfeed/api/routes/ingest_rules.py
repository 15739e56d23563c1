from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from reelfeed.api.deps import TenantContext, get_db, get_tenant
from reelfeed.schemas.ingest_rule import IngestRuleIn, IngestRuleOut
from reelfeed.services import ingest_rules as rule_service

router = APIRouter(prefix="/api/ingest-default-rules", tags=["ingest-rules"])


@router.get("")
def list_rules(tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    rules = rule_service.list_rules(db, tenant.tenant_id)
    return {"rules": [IngestRuleOut.model_validate(r).model_dump(by_alias=True, mode="json") for r in rules]}


@router.post("", response_model=IngestRuleOut, status_code=201)
def upsert_rule(body: IngestRuleIn, tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    return rule_service.upsert_rule(db, tenant.tenant_id, body)


@router.delete("/{rule_id}")
def delete_rule(rule_id: str, tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    if not rule_service.delete_rule(db, tenant.tenant_id, rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"ok": True}
