"""
TenantApplication model - an organization's request to become a tenant.

Applications are reviewed by system admins; approval provisions the tenant
and its first tenant admin.
"""
import logging
import string
import uuid

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk
from sannu.models.enums import TenantApplicationStatus
from sannu.models.mixins import AuditMixin
from sannu.utils.clock import utcnow
from sannu.utils.slug_utils import random_string

logger = logging.getLogger(__name__)

REFERENCE_ATTEMPTS = 10


class TenantApplication(Base, AuditMixin):
    __tablename__ = "tenant_applications"

    id = int_pk()
    reference_number = Column(String(40), unique=True, nullable=False, index=True)
    organization_name = Column(String(255), nullable=False)
    business_description = Column(Text, nullable=False)
    industry_type = Column(String(100), nullable=False)
    contact_person_name = Column(String(255), nullable=False)
    contact_person_email = Column(String(255), nullable=False)
    contact_person_phone = Column(String(20), nullable=True)
    business_registration_number = Column(String(100), nullable=True)
    website_url = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=TenantApplicationStatus.PENDING.value, index=True)
    submitted_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewer_id = int_fk("users", nullable=True, ondelete="SET NULL", index=False)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    reviewer = relationship("User", foreign_keys=[reviewer_id])

    @property
    def status_enum(self) -> TenantApplicationStatus:
        return TenantApplicationStatus(self.status)

    @property
    def status_label(self) -> str:
        return self.status_enum.label()

    def can_be_reviewed(self) -> bool:
        return self.status == TenantApplicationStatus.PENDING.value

    @staticmethod
    def generate_reference_number(db) -> str:
        """
        Build a reference like TA-20250816-172012-K3ZQ.

        Falls back to a uuid-based reference if no unique candidate is found
        after a few attempts.
        """
        for _ in range(REFERENCE_ATTEMPTS):
            stamp = utcnow().strftime("%Y%m%d-%H%M%S")
            suffix = random_string(4, string.ascii_uppercase + string.digits)
            candidate = f"TA-{stamp}-{suffix}"
            exists = db.query(TenantApplication.id).filter(
                TenantApplication.reference_number == candidate
            ).first()
            if not exists:
                return candidate

        logger.warning("Reference number collisions exhausted, using uuid fallback")
        return f"TA-{uuid.uuid4().hex.upper()}"

    def __repr__(self):
        return f"<TenantApplication(ref={self.reference_number}, status={self.status})>"
