"""
Project model - a tenant's funding project with products and contributions.
"""
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import Column, String, Boolean, Integer, Text, Date, JSON, Index, or_, func
from sqlalchemy.orm import relationship, object_session

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk, money
from sannu.models.enums import ProjectStatus, ProjectVisibility, InstallmentFrequency
from sannu.models.mixins import AuditMixin, BelongsToTenant
from sannu.utils.clock import today


class Project(Base, AuditMixin, BelongsToTenant):
    __tablename__ = "projects"

    id = int_pk()
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    visibility = Column(String(20), nullable=False, default=ProjectVisibility.PUBLIC.value)
    requires_approval = Column(Boolean, nullable=False, default=False)
    max_contributors = Column(Integer, nullable=True)

    total_amount = money(default=Decimal("0.00"))
    minimum_contribution = money(nullable=True)
    payment_options = Column(JSON, nullable=False, default=lambda: ["full"])
    installment_frequency = Column(String(20), nullable=False, default=InstallmentFrequency.MONTHLY.value)
    custom_installment_months = Column(Integer, nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    registration_deadline = Column(Date, nullable=True)

    created_by = int_fk("users", nullable=True, ondelete="SET NULL")
    managed_by = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False, default=ProjectStatus.DRAFT.value, index=True)
    settings = Column(JSON, nullable=True)

    tenant = relationship("Tenant")
    creator = relationship("User", foreign_keys=[created_by])
    products = relationship(
        "Product",
        back_populates="project",
        order_by="Product.sort_order",
        cascade="all, delete-orphan",
    )
    contributions = relationship("Contribution", back_populates="project")
    invitations = relationship(
        "ProjectInvitation",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_projects_tenant_slug", "tenant_id", "slug", unique=True),
        Index("ix_projects_tenant_status", "tenant_id", "status"),
        Index("ix_projects_visibility_status", "visibility", "status"),
    )

    # ------------------------------------------------------------------
    # Enum accessors
    # ------------------------------------------------------------------
    @property
    def status_enum(self) -> ProjectStatus:
        return ProjectStatus(self.status)

    @property
    def visibility_enum(self) -> ProjectVisibility:
        return ProjectVisibility(self.visibility)

    def is_publicly_discoverable(self) -> bool:
        return self.visibility_enum.is_publicly_discoverable() and self.status == ProjectStatus.ACTIVE.value

    def accepts_contributions(self) -> bool:
        return self.status_enum.accepts_contributions()

    def managers(self) -> list:
        return list(self.managed_by or [])

    def can_be_managed_by(self, user) -> bool:
        if user is None:
            return False
        return (
            self.created_by == user.id
            or user.is_system_admin()
            or user.id in self.managers()
            or user.is_tenant_admin(self.tenant_id)
        )

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    def calculate_total_amount(self) -> Decimal:
        return sum((Decimal(str(p.price or 0)) for p in self.products), Decimal("0.00"))

    def has_contributions(self) -> bool:
        from sannu.models.contribution import Contribution
        from sannu.tenancy.scoping import without_tenant_scope

        db = object_session(self)
        if db is None or self.id is None:
            return False
        return without_tenant_scope(db.query(Contribution)).filter(
            Contribution.project_id == self.id
        ).count() > 0

    def get_statistics(self) -> dict:
        from sannu.models.contribution import Contribution
        from sannu.tenancy.scoping import without_tenant_scope

        db = object_session(self)
        contributors = 0
        raised = Decimal("0.00")
        if db is not None and self.id is not None:
            contributors, raised = without_tenant_scope(
                db.query(
                    func.count(Contribution.id),
                    func.coalesce(func.sum(Contribution.total_paid), 0),
                )
            ).filter(Contribution.project_id == self.id).one()
            raised = Decimal(str(raised or 0)).quantize(Decimal("0.01"))

        total = Decimal(str(self.total_amount or 0))
        if total > 0:
            completion = min(Decimal("100"), raised / total * 100)
            completion = float(completion.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
        else:
            completion = 0.0

        days_remaining = None
        if self.end_date is not None:
            days_remaining = max(0, (self.end_date - today()).days)

        average = (raised / contributors).quantize(Decimal("0.01")) if contributors else Decimal("0.00")

        return {
            "total_contributors": contributors or 0,
            "total_raised": raised,
            "completion_percentage": completion,
            "days_remaining": days_remaining,
            "average_contribution": average,
        }

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @classmethod
    def with_status(cls, query, status):
        return query.filter(cls.status == ProjectStatus(status).value)

    @classmethod
    def with_visibility(cls, query, visibility):
        return query.filter(cls.visibility == ProjectVisibility(visibility).value)

    @classmethod
    def publicly_discoverable(cls, query):
        return query.filter(
            cls.visibility == ProjectVisibility.PUBLIC.value,
            cls.status == ProjectStatus.ACTIVE.value,
        )

    @classmethod
    def active(cls, query):
        return query.filter(cls.status.in_([s.value for s in ProjectStatus if s.is_active()]))

    @classmethod
    def search(cls, query, term: str):
        pattern = f"%{term.lower()}%"
        return query.filter(or_(
            func.lower(cls.name).like(pattern),
            func.lower(cls.description).like(pattern),
        ))

    def __repr__(self):
        return f"<Project(id={self.id}, slug={self.slug}, status={self.status})>"
