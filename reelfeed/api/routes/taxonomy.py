from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from reelfeed.api.deps import TenantContext, get_db, get_tenant
from reelfeed.core.enums import TaxonomyKind
from reelfeed.schemas.taxonomy import TaxonomyNodeOut, TaxonomyOut
from reelfeed.services.taxonomy import get_all_taxonomy, list_nodes

router = APIRouter(prefix="/api/taxonomy", tags=["taxonomy"])

# Plural path segments accepted alongside the kind names
KIND_ALIASES = {
    "categories": TaxonomyKind.CATEGORY,
    "topics": TaxonomyKind.TOPIC,
    "subjects": TaxonomyKind.SUBJECT,
}


@router.get("", response_model=TaxonomyOut)
def all_taxonomy(tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    return get_all_taxonomy(db, tenant.tenant_id)


@router.get("/{kind}", response_model=list[TaxonomyNodeOut])
def taxonomy_by_kind(kind: str, tenant: TenantContext = Depends(get_tenant), db: Session = Depends(get_db)):
    resolved = KIND_ALIASES.get(kind)
    if resolved is None:
        try:
            resolved = TaxonomyKind(kind)
        except ValueError:
            raise HTTPException(status_code=404, detail="Unknown taxonomy kind")
    return list_nodes(db, tenant.tenant_id, resolved)
