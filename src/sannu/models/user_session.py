"""
Server-side session store.

The browser only holds a signed token naming the session id; everything else
(selected tenant, login time, last activity) lives in this table so sessions
can be listed and revoked.
"""
from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship

from sannu.db.database import Base
from sannu.models.base_model import int_fk
from sannu.utils.clock import utcnow


class UserSession(Base):
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    user_id = int_fk("users", nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    last_activity = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User")

    def get(self, key: str, default=None):
        return (self.payload or {}).get(key, default)

    def put(self, **values) -> None:
        # Reassign so the JSON column is flagged dirty
        payload = dict(self.payload or {})
        payload.update(values)
        self.payload = payload

    def forget(self, *keys: str) -> None:
        payload = dict(self.payload or {})
        for key in keys:
            payload.pop(key, None)
        self.payload = payload

    def __repr__(self):
        return f"<UserSession(id={self.id[:8]}..., user={self.user_id})>"
