from decimal import Decimal

from sqlalchemy import Column, String, Boolean, Integer, Numeric, DateTime, Text, JSON, func
from sqlalchemy.orm import relationship, object_session

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk
from sannu.models.enums import TenantStatus, ProjectStatus
from sannu.models.mixins import AuditMixin
from sannu.tenancy.scoping import without_tenant_scope


class Tenant(Base, AuditMixin):
    __tablename__ = "tenants"

    id = int_pk()
    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    domain = Column(String(255), unique=True, nullable=True)
    logo_url = Column(String(500), nullable=True)
    primary_color = Column(String(7), nullable=False, default="#3B82F6")
    secondary_color = Column(String(7), nullable=False, default="#10B981")
    platform_fee_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal("5.00"))

    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE.value, index=True)
    trial_ends_at = Column(DateTime, nullable=True)
    max_projects = Column(Integer, nullable=True)
    max_users = Column(Integer, nullable=True)
    max_storage_mb = Column(Integer, nullable=False, default=10000)

    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(20), nullable=True)

    settings = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Onboarding / suspension tracking
    application_id = int_fk("tenant_applications", nullable=True, ondelete="SET NULL")
    suspended_at = Column(DateTime, nullable=True)
    suspended_reason = Column(Text, nullable=True)
    suspended_by = int_fk("users", nullable=True, ondelete="SET NULL", index=False)

    user_roles = relationship(
        "UserTenantRole",
        back_populates="tenant",
        cascade="all, delete-orphan",
        foreign_keys="UserTenantRole.tenant_id",
    )
    application = relationship("TenantApplication", foreign_keys=[application_id])

    def is_active_tenant(self) -> bool:
        return bool(self.is_active) and self.status == TenantStatus.ACTIVE.value

    def is_suspended(self) -> bool:
        return self.status == TenantStatus.SUSPENDED.value

    def get_setting(self, key: str, default=None):
        return (self.settings or {}).get(key, default)

    def get_metrics(self) -> dict:
        """Aggregate counts and revenue for dashboards."""
        from sannu.models.contribution import Contribution
        from sannu.models.project import Project
        from sannu.models.user_tenant_role import UserTenantRole

        db = object_session(self)

        total_users = db.query(func.count(func.distinct(UserTenantRole.user_id))).filter(
            UserTenantRole.tenant_id == self.id,
            UserTenantRole.is_active.is_(True)
        ).scalar()

        projects = without_tenant_scope(db.query(Project)).filter(Project.tenant_id == self.id)
        contributions = without_tenant_scope(db.query(Contribution)).filter(
            Contribution.tenant_id == self.id
        )
        total_revenue = without_tenant_scope(
            db.query(func.coalesce(func.sum(Contribution.total_paid), 0))
        ).filter(Contribution.tenant_id == self.id).scalar()

        return {
            "total_users": total_users or 0,
            "total_projects": projects.count(),
            "active_projects": projects.filter(Project.status == ProjectStatus.ACTIVE.value).count(),
            "total_contributions": contributions.count(),
            "total_revenue": Decimal(str(total_revenue or 0)),
        }

    def __repr__(self):
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status})>"
