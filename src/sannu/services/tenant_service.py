"""
Tenant lookup, caching and URL helpers.
"""
import logging
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from sannu.config import get_app_url
from sannu.models.enums import TenantStatus
from sannu.models.tenant import Tenant
from sannu.services.audit_log_service import AuditLogService
from sannu.services.cache import get_cache
from sannu.tenancy import context
from sannu.utils.clock import utcnow

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 60 * 60


def cache_key(slug: str) -> str:
    return f"tenant.slug.{slug}"


class TenantService:
    """Service for resolving tenants and the current tenant context."""

    def __init__(self, db: Session, cache=None):
        self.db = db
        self.cache = cache if cache is not None else get_cache()

    # ------------------------------------------------------------------
    # Current tenant
    # ------------------------------------------------------------------
    def current(self) -> Optional[Tenant]:
        return context.current_tenant()

    def has_tenant(self) -> bool:
        return context.has_tenant()

    def switch_to(self, tenant: Tenant):
        """Make `tenant` current for the rest of this request. Returns a reset token."""
        logger.debug(f"Switching tenant context to {tenant.slug}")
        return context.set_current_tenant(tenant)

    def clear(self):
        return context.set_current_tenant(None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def _active_query(self):
        return self.db.query(Tenant).filter(
            Tenant.is_active.is_(True),
            Tenant.status == TenantStatus.ACTIVE.value,
        )

    def find_by_slug(self, slug: str) -> Optional[Tenant]:
        """
        Find an active tenant by slug.

        The slug -> id mapping is cached for an hour; the row itself is
        always loaded from the database so callers get a live instance.
        """
        cached = self.cache.get(cache_key(slug))
        if cached is not None:
            tenant = self._active_query().filter(Tenant.id == cached["id"]).first()
            if tenant is not None and tenant.slug == slug:
                return tenant
            self.cache.delete(cache_key(slug))

        tenant = self._active_query().filter(Tenant.slug == slug).first()
        if tenant is not None:
            self._remember(tenant)
        return tenant

    def _remember(self, tenant: Tenant) -> None:
        self.cache.set(
            cache_key(tenant.slug),
            {"id": tenant.id, "slug": tenant.slug, "name": tenant.name},
            CACHE_TTL_SECONDS,
        )

    def clear_cache(self, slug: Optional[str] = None) -> int:
        """Forget one slug, or every tenant's slug when none is given."""
        if slug is not None:
            self.cache.delete(cache_key(slug))
            logger.info(f"Cleared tenant cache for {slug}")
            return 1

        slugs = [row.slug for row in self.db.query(Tenant.slug).all()]
        for s in slugs:
            self.cache.delete(cache_key(s))
        logger.info(f"Cleared tenant cache for {len(slugs)} tenants")
        return len(slugs)

    def warm_cache(self, slug: Optional[str] = None) -> int:
        """Pre-load active tenants into the cache. Returns how many were cached."""
        query = self._active_query()
        if slug is not None:
            query = query.filter(Tenant.slug == slug)

        count = 0
        for tenant in query.all():
            self._remember(tenant)
            count += 1
        logger.info(f"Warmed tenant cache with {count} tenants")
        return count

    # ------------------------------------------------------------------
    # URLs and frontend context
    # ------------------------------------------------------------------
    def get_url(self, slug: str, path: str = "") -> str:
        """Build the subdomain URL for a tenant, e.g. https://acme.example.com/projects."""
        parsed = urlparse(get_app_url())
        scheme = parsed.scheme or "http"
        host = parsed.hostname or "localhost"
        port = f":{parsed.port}" if parsed.port and parsed.port not in (80, 443) else ""
        path = path.lstrip("/")
        return f"{scheme}://{slug}.{host}{port}/{path}"

    def get_context_for_frontend(self) -> Optional[dict]:
        tenant = self.current()
        if tenant is None:
            return None
        return {
            "id": tenant.id,
            "slug": tenant.slug,
            "name": tenant.name,
            "logo_url": tenant.logo_url,
            "primary_color": tenant.primary_color,
            "secondary_color": tenant.secondary_color,
        }

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    def suspend(self, tenant: Tenant, reason: str, admin) -> Tenant:
        """
        Suspend a tenant. Its slug stops resolving immediately.

        Raises:
            ValueError: If the tenant is already suspended
        """
        if tenant.is_suspended():
            raise ValueError("Tenant is already suspended.")

        tenant.status = TenantStatus.SUSPENDED.value
        tenant.suspended_at = utcnow()
        tenant.suspended_reason = reason
        tenant.suspended_by = admin.id
        AuditLogService(self.db).log_security_event(
            "tenant_suspended", severity="high", user=admin,
            extra={"tenant_id": tenant.id, "tenant_slug": tenant.slug, "reason": reason},
        )
        self.db.commit()
        self.clear_cache(tenant.slug)

        logger.warning(f"Tenant {tenant.slug} suspended by user {admin.id}: {reason}")
        return tenant

    def activate(self, tenant: Tenant, admin) -> Tenant:
        tenant.status = TenantStatus.ACTIVE.value
        tenant.is_active = True
        tenant.suspended_at = None
        tenant.suspended_reason = None
        tenant.suspended_by = None
        AuditLogService(self.db).log_security_event(
            "tenant_activated", severity="info", user=admin,
            extra={"tenant_id": tenant.id, "tenant_slug": tenant.slug},
        )
        self.db.commit()
        self.clear_cache(tenant.slug)

        logger.info(f"Tenant {tenant.slug} activated by user {admin.id}")
        return tenant
