from datetime import timedelta

from sqlalchemy import Column, String, DateTime

from sannu.db.database import Base
from sannu.utils.clock import utcnow

RESET_TOKEN_TTL = timedelta(minutes=60)


class PasswordResetToken(Base):
    """One outstanding reset token per email; the token itself is stored hashed."""
    __tablename__ = "password_reset_tokens"

    email = Column(String(255), primary_key=True)
    token_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def is_expired(self) -> bool:
        return utcnow() > self.created_at + RESET_TOKEN_TTL
