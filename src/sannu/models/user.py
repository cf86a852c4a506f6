from typing import List, Optional

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_pk
from sannu.models.enums import Role
from sannu.models.mixins import AuditMixin


class User(Base, AuditMixin):
    """
    Platform user.

    `role` is the global role (system_admin or contributor). Tenant roles
    are granted per tenant through UserTenantRole.
    """
    __tablename__ = "users"

    id = int_pk()
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=Role.CONTRIBUTOR.value, index=True)
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    email_verified_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    tenant_roles = relationship(
        "UserTenantRole",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="UserTenantRole.user_id",
    )

    def _active_roles(self):
        return [r for r in self.tenant_roles if r.is_active]

    def is_system_admin(self) -> bool:
        return self.role == Role.SYSTEM_ADMIN.value

    def get_role_in_tenant(self, tenant_id) -> Optional[str]:
        for assignment in self._active_roles():
            if assignment.tenant_id == tenant_id:
                return assignment.role
        return None

    def has_role_in_tenant(self, role, tenant_id) -> bool:
        return self.get_role_in_tenant(tenant_id) == Role(role).value

    def has_any_tenant_role(self) -> bool:
        return len(self._active_roles()) > 0

    def is_tenant_admin(self, tenant_id=None) -> bool:
        if tenant_id is None:
            return any(r.role == Role.TENANT_ADMIN.value for r in self._active_roles())
        return self.has_role_in_tenant(Role.TENANT_ADMIN, tenant_id)

    def is_project_manager(self, tenant_id) -> bool:
        return self.has_role_in_tenant(Role.PROJECT_MANAGER, tenant_id)

    def needs_tenant_selection(self) -> bool:
        """Users with tenant roles pick a tenant after login; system admins never do."""
        return not self.is_system_admin() and self.has_any_tenant_role()

    def tenants(self) -> List:
        return [
            r.tenant for r in self._active_roles()
            if r.tenant is not None and r.tenant.is_active_tenant()
        ]

    def get_admin_tenants(self) -> List:
        return [
            r.tenant for r in self._active_roles()
            if r.role == Role.TENANT_ADMIN.value and r.tenant is not None
        ]

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
