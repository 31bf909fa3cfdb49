# utils/identity.py

from typing import Optional

from fastapi import Header, HTTPException


def get_tenant_id(x_tenant_id: Optional[str] = Header(default=None)) -> str:
    """
    Tenant scope for the request. Authentication happens upstream; the
    identity provider's tenant id is trusted as-is.
    """
    tenant_id = (x_tenant_id or "").strip()
    if not tenant_id:
        raise HTTPException(status_code=401, detail={"code": "missing_tenant", "message": "X-Tenant-ID header is required"})
    if len(tenant_id) > 64:
        raise HTTPException(status_code=400, detail={"code": "invalid_tenant", "message": "X-Tenant-ID is too long"})
    return tenant_id
