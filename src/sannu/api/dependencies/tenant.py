import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from sannu.config import get_app_host
from sannu.db.database import get_db
from sannu.exceptions import TenantNotFound
from sannu.models.tenant import Tenant
from sannu.services.tenant_service import TenantService

logger = logging.getLogger(__name__)


def subdomain_slug(host: Optional[str]) -> Optional[str]:
    """First label of `host` when it is a subdomain of the APP_URL host."""
    if not host:
        return None
    host = host.split(":")[0].lower()
    base = get_app_host().lower()
    if not host.endswith("." + base):
        return None
    label = host[: -len(base) - 1].split(".")[0]
    return label or None


async def identify_tenant(request: Request, db: Session = Depends(get_db)) -> Tenant:
    """
    Resolve the tenant for a tenant route, from the subdomain first and then
    the `{tenant}` path segment, and make it current for the request.

    Declared async so the tenant context is set in the request's own context
    and is inherited by the (threadpool) endpoint. The lookup itself is
    blocking, so it runs in the threadpool.
    """
    service = TenantService(db)

    slug = subdomain_slug(request.headers.get("host"))
    if slug is not None:
        tenant = await run_in_threadpool(service.find_by_slug, slug)
        if tenant is None:
            logger.warning(f"Tenant not found for subdomain: {slug}")
            raise TenantNotFound(slug, via_subdomain=True)
    else:
        slug = request.path_params.get("tenant")
        tenant = await run_in_threadpool(service.find_by_slug, slug) if slug else None
        if tenant is None:
            logger.warning(f"Tenant not found for path: {slug}")
            raise TenantNotFound(slug or "")

    service.switch_to(tenant)
    request.state.tenant = tenant
    return tenant
