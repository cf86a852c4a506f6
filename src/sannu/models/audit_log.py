from sqlalchemy import Column, String, Text, DateTime, JSON, Index

from sannu.db.database import Base
from sannu.models.base_model import int_pk, int_fk
from sannu.utils.clock import utcnow


class AuditLog(Base):
    """Append-only record of authentication, session, tenant and project events."""
    __tablename__ = "audit_logs"

    id = int_pk()
    event = Column(String(100), nullable=False, index=True)
    message = Column(String(255), nullable=False)
    severity = Column(String(20), nullable=False, default="info")
    user_id = int_fk("users", nullable=True, ondelete="SET NULL")
    tenant_id = int_fk("tenants", nullable=True, ondelete="SET NULL")
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    context = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_audit_logs_event_created", "event", "created_at"),
    )

    def __repr__(self):
        return f"<AuditLog(event={self.event}, user={self.user_id})>"
