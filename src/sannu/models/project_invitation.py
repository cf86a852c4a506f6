"""
ProjectInvitation model - invitations to view and join a restricted project.

Invitations are sent via email, expire after 7 days, and can only be used once.
"""
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk
from sannu.models.enums import InvitationStatus
from sannu.models.mixins import AuditMixin
from sannu.utils.clock import utcnow


class ProjectInvitation(Base, AuditMixin):
    __tablename__ = "project_invitations"

    id = int_pk()
    project_id = int_fk("projects")
    email = Column(String(255), nullable=False, index=True)
    invited_by = int_fk("users", nullable=True, ondelete="SET NULL", index=False)

    # Secure token for accepting invitation
    token = Column(String(64), nullable=False, unique=True, index=True)

    # Status: 'pending', 'accepted', 'declined'
    status = Column(String(20), nullable=False, default=InvitationStatus.PENDING.value)

    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)

    project = relationship("Project", back_populates="invitations")
    inviter = relationship("User", foreign_keys=[invited_by])

    __table_args__ = (
        Index("ix_project_invitations_project_email", "project_id", "email"),
    )

    @property
    def is_expired(self) -> bool:
        return utcnow() > self.expires_at

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING.value

    def __repr__(self):
        return f"<ProjectInvitation(email={self.email}, project={self.project_id}, status={self.status})>"
