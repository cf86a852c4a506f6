"""
UserTenantRole model - tracks which users hold a role in which tenants.

This is the junction table between users and tenants. A user holds at most
one role per tenant.
"""
from sqlalchemy import Column, String, Boolean, Index
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk
from sannu.models.enums import Role
from sannu.models.mixins import AuditMixin


class UserTenantRole(Base, AuditMixin):
    __tablename__ = "user_tenant_roles"

    id = int_pk()
    user_id = int_fk("users")
    tenant_id = int_fk("tenants")

    # tenant_admin or project_manager
    role = Column(String(50), nullable=False, default=Role.PROJECT_MANAGER.value)
    is_active = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="tenant_roles", foreign_keys=[user_id])
    tenant = relationship("Tenant", back_populates="user_roles", foreign_keys=[tenant_id])

    __table_args__ = (
        Index("ix_user_tenant_roles_user_tenant", "user_id", "tenant_id", unique=True),
        Index("ix_user_tenant_roles_tenant_role", "tenant_id", "role"),
    )

    def __repr__(self):
        return f"<UserTenantRole(user={self.user_id}, tenant={self.tenant_id}, role={self.role})>"
