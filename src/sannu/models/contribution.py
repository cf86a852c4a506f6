from decimal import Decimal

from sqlalchemy import Column, String, Integer, Date, DateTime, Index
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk, money
from sannu.models.enums import ContributionStatus, ApprovalStatus, PaymentType
from sannu.models.mixins import AuditMixin, BelongsToTenant
from sannu.utils.clock import today


class Contribution(Base, AuditMixin, BelongsToTenant):
    """A user's commitment to fund a project, paid in full or in installments."""
    __tablename__ = "contributions"

    id = int_pk()
    user_id = int_fk("users")
    project_id = int_fk("projects")

    total_committed = money()
    payment_type = Column(String(20), nullable=False, default=PaymentType.FULL.value)
    installment_amount = money(nullable=True)
    installment_frequency = Column(String(20), nullable=True)
    total_installments = Column(Integer, nullable=True)

    arrears_amount = money(default=Decimal("0.00"))
    arrears_paid = money(default=Decimal("0.00"))
    total_paid = money(default=Decimal("0.00"))
    next_payment_due = Column(Date, nullable=True, index=True)

    status = Column(String(20), nullable=False, default=ContributionStatus.ACTIVE.value, index=True)
    joined_date = Column(Date, nullable=False, default=today)
    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.APPROVED.value, index=True)
    approved_by = int_fk("users", nullable=True, ondelete="SET NULL", index=False)
    approved_at = Column(DateTime, nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    project = relationship("Project", back_populates="contributions")

    __table_args__ = (
        Index("ix_contributions_user_project", "user_id", "project_id", unique=True),
    )

    def is_pending_or_active(self) -> bool:
        return (
            self.status == ContributionStatus.ACTIVE.value
            or self.approval_status == ApprovalStatus.PENDING.value
        )

    def __repr__(self):
        return f"<Contribution(id={self.id}, user={self.user_id}, project={self.project_id})>"
