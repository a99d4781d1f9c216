"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from credit_ledger.services.container import LedgerServices


def get_services(request: Request) -> LedgerServices:
    """Ledger services bound to the store the host opened at startup"""
    return request.app.state.services


def get_tenant_id(x_tenant_id: Optional[str] = Header(None)) -> str:
    """Owning shop, stamped on the request by the identity gateway"""
    if x_tenant_id is None or not x_tenant_id.strip():
        raise HTTPException(status_code=401, detail="X-Tenant-ID header is required")
    return x_tenant_id.strip()
