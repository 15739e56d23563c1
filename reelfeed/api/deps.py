"""
Request dependencies: app context, DB session, and tenant identity.

Identity is issued elsewhere; here a bearer JWT is only decoded. Claims used:
``sub`` (user id) and ``appId`` (tenant id).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, Query, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from reelfeed.context import AppContext
from reelfeed.core.settings import Settings

ACCESS_TOKEN_EXPIRE_HOURS = 24


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    user_id: str


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_db(ctx: AppContext = Depends(get_context)) -> Iterator[Session]:
    db = ctx.session_factory()
    try:
        yield db
    finally:
        db.close()


def create_access_token(settings: Settings, user_id: str, tenant_id: str, expires_hours: int = ACCESS_TOKEN_EXPIRE_HOURS) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=expires_hours)
    claims = {"sub": user_id, "appId": tenant_id, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _decode(settings: Settings, token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def get_tenant(
    authorization: Optional[str] = Header(default=None),
    ctx: AppContext = Depends(get_context),
) -> TenantContext:
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = _decode(ctx.settings, token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("sub")
    tenant_id = payload.get("appId")
    if not user_id or not tenant_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return TenantContext(tenant_id=tenant_id, user_id=user_id)


def _optional_claims(authorization: Optional[str], settings: Settings) -> dict:
    token = _bearer_token(authorization)
    if not token:
        return {}
    return _decode(settings, token) or {}


def get_optional_viewer(
    authorization: Optional[str] = Header(default=None),
    ctx: AppContext = Depends(get_context),
) -> Optional[str]:
    return _optional_claims(authorization, ctx.settings).get("sub")


def resolve_feed_tenant(
    app_id: Optional[str] = Query(default=None),
    x_app_id: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    ctx: AppContext = Depends(get_context),
) -> str:
    """Token appId first, then the app_id query parameter, then X-App-Id."""
    tenant_id = _optional_claims(authorization, ctx.settings).get("appId") or app_id or x_app_id
    if not tenant_id:
        raise HTTPException(
            status_code=400,
            detail="app_id (query or X-App-Id header) or valid JWT is required",
        )
    return tenant_id
